"""
scrapers/reconciliation.py

Merges the two independent extraction paths of a results page:

    AIExtractionResult  — rich fields, approximate/hallucination-prone
    DomLink             — ground-truth URL + title read from markup

Matching is a case-insensitive containment test of the first
``title_match_chars`` characters of the AI title within the DOM title (and,
for sources that expose it, the same test on the company name). The first
DomLink in document order that matches wins.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from core.models import (
    PLACEHOLDER_COMPANY,
    UNKNOWN_COMPANY,
    UNKNOWN_TITLE,
    AIExtractionResult,
    DomLink,
    JobSource,
    ScrapedJobRecord,
)

__all__ = ["find_matching_link", "reconcile_records", "build_fallback_records"]


def _prefix(value: Optional[str], length: Optional[int]) -> str:
    if not value or not length:
        return ""
    return value.strip().lower()[:length]


def find_matching_link(
    result: AIExtractionResult,
    links: Sequence[DomLink],
    title_match_chars: int = 20,
    company_match_chars: Optional[int] = None,
) -> Optional[DomLink]:
    """Return the first DomLink whose title (or company) contains the AI prefix."""
    title_prefix = _prefix(result.title, title_match_chars)
    company_prefix = _prefix(result.company, company_match_chars)
    if not title_prefix and not company_prefix:
        return None

    for link in links:
        if title_prefix and title_prefix in link.title.lower():
            return link
        if company_prefix and company_prefix in link.company.lower():
            return link
    return None


def reconcile_records(
    results: Sequence[AIExtractionResult],
    links: Sequence[DomLink],
    *,
    source: JobSource,
    search_url: str,
    location: Optional[str],
    default_location: str,
    max_results: int,
    title_match_chars: int = 20,
    company_match_chars: Optional[int] = None,
) -> List[ScrapedJobRecord]:
    """One record per AI result (up to ``max_results``), URL taken from the matched DomLink."""
    records: List[ScrapedJobRecord] = []
    for result in results[:max_results]:
        match = find_matching_link(result, links, title_match_chars, company_match_chars)
        records.append(
            ScrapedJobRecord(
                title=result.title or UNKNOWN_TITLE,
                company=result.company or UNKNOWN_COMPANY,
                location=result.location or location or default_location,
                salary=result.salary,
                url=match.url if match else search_url,
                posted_date=result.posted_date,
                work_type=result.work_type,
                remote=result.remote,
                source=source,
                low_confidence=match is None,
            )
        )
    return records


def build_fallback_records(
    links: Sequence[DomLink],
    *,
    source: JobSource,
    location: Optional[str],
    default_location: str,
    max_results: int,
) -> List[ScrapedJobRecord]:
    """DOM-only records used when AI extraction produced nothing usable."""
    return [
        ScrapedJobRecord(
            title=link.title,
            company=link.company or PLACEHOLDER_COMPANY,
            location=location or default_location,
            url=link.url,
            source=source,
            remote=False,
            low_confidence=True,
        )
        for link in links[:max_results]
    ]

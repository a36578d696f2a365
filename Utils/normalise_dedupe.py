"""Utility functions for job URL normalisation and deduplication.
Called by the per-source scrapers and the scraper engine after collection."""

import re
import logging
from typing import Optional, Sequence, TypeVar
from urllib.parse import urljoin, urlparse

logger = logging.getLogger(__name__)

__all__ = ["resolve_url", "canonical_url", "deduplicate_jobs", "clean_text"]

T = TypeVar("T")


def clean_text(text: str, limit: Optional[int] = None) -> str:
    """Collapse runs of blank lines/spaces and optionally truncate."""
    if not text:
        return ""
    text = re.sub(r"[ \t\f\v]+", " ", str(text))
    text = re.sub(r"\n\s*\n+", "\n", text)
    text = text.strip()
    return text[:limit] if limit else text


def resolve_url(href: str, base_url: str) -> str:
    """Resolve a scraped href against the source origin.

    Absolute URLs are returned unchanged, ``//host/path`` gets ``https:``
    and relative paths are joined to ``base_url``.
    """
    href = (href or "").strip()
    if not href:
        return ""
    if href.startswith("//"):
        return f"https:{href}"
    if urlparse(href).scheme in ("http", "https"):
        return href
    return urljoin(base_url, href)


def canonical_url(url: str) -> str:
    """Dedup key for a job URL."""
    return str(url).strip() if url else ""


def deduplicate_jobs(jobs: Sequence[T]) -> list[T]:
    """Deduplicate records by canonical ``url``; first occurrence wins."""
    seen: set[str] = set()
    result: list[T] = []

    for job in jobs:
        key = canonical_url(getattr(job, "url", "") or "")
        if key in seen:
            continue
        seen.add(key)
        result.append(job)

    removed = len(jobs) - len(result)
    logger.info(
        "deduplicate_jobs: %d input -> %d after dedup (%d removed)",
        len(jobs),
        len(result),
        removed,
    )
    return result

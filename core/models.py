"""
core/models.py

Data shapes flowing through the scraping pipeline:

    SearchRequest ──► DomLink[] + AIExtractionResult[] ──► ScrapedJobRecord[]

Only ``ScrapedJobRecord`` leaves the pipeline; everything else is transient.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

__all__ = [
    "JobSource",
    "SearchRequest",
    "DomLink",
    "AIExtractionResult",
    "ScrapedJobRecord",
    "JobPostingDetails",
    "SearchMetrics",
    "PLACEHOLDER_COMPANY",
    "UNKNOWN_TITLE",
    "UNKNOWN_COMPANY",
]

PLACEHOLDER_COMPANY = "See listing"
UNKNOWN_TITLE = "Unknown Title"
UNKNOWN_COMPANY = "Unknown Company"


class JobSource(str, Enum):
    SEEK = "seek"
    LINKEDIN = "linkedin"
    INDEED = "indeed"

    @classmethod
    def parse(cls, value: str) -> "JobSource":
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(
                f"Unknown job source: '{value}'. "
                f"Valid sources: {[s.value for s in cls]}"
            ) from None


def _opt_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in {"true", "yes", "1", "remote", "hybrid"}
    return bool(value)


@dataclass
class SearchRequest:
    """A single job search across one or more sources.

    Attributes:
        keywords: Free-text search terms. Required, non-blank.
        location: Optional location filter passed to each source.
        sources: Sources to query, in iteration (and dedup priority) order.
        max_results: Upper bound on records emitted per source.
    """

    keywords: str
    location: Optional[str] = None
    sources: List[JobSource] = field(default_factory=lambda: list(JobSource))
    max_results: int = 10

    def __post_init__(self) -> None:
        self.keywords = (self.keywords or "").strip()
        if not self.keywords:
            raise ValueError("keywords are required")
        self.location = _opt_str(self.location)
        if not isinstance(self.max_results, int) or self.max_results < 1:
            raise ValueError("max_results must be a positive integer")

        ordered: List[JobSource] = []
        for source in self.sources:
            parsed = source if isinstance(source, JobSource) else JobSource.parse(source)
            if parsed not in ordered:
                ordered.append(parsed)
        if not ordered:
            raise ValueError("at least one source is required")
        self.sources = ordered

    @classmethod
    def from_dict(cls, data: Dict[str, Any], default_max_results: int = 10) -> "SearchRequest":
        """Build from a loosely-typed payload (route layer / CLI).

        ``sources`` may be omitted, contain ``"all"``, or list source names.
        """
        raw_sources: Optional[Iterable[str]] = data.get("sources")
        if not raw_sources or "all" in [str(s).lower() for s in raw_sources]:
            sources = list(JobSource)
        else:
            sources = [JobSource.parse(s) for s in raw_sources]

        max_results = data.get("maxResults", data.get("max_results"))
        return cls(
            keywords=data.get("keywords") or "",
            location=data.get("location"),
            sources=sources,
            max_results=int(max_results) if max_results is not None else default_max_results,
        )


@dataclass(frozen=True)
class DomLink:
    """A job URL/title pair read directly from results-page markup."""

    url: str
    title: str
    company: str = ""


@dataclass
class AIExtractionResult:
    """Best-effort job fields returned by the model for one listing."""

    title: Optional[str] = None
    company: Optional[str] = None
    location: Optional[str] = None
    salary: Optional[str] = None
    posted_date: Optional[str] = None
    work_type: Optional[str] = None
    remote: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AIExtractionResult":
        return cls(
            title=_opt_str(data.get("title")),
            company=_opt_str(data.get("company")),
            location=_opt_str(data.get("location")),
            salary=_opt_str(data.get("salary")),
            posted_date=_opt_str(data.get("postedDate") or data.get("posted_date")),
            work_type=_opt_str(data.get("workType") or data.get("work_type")),
            remote=_as_bool(data.get("remote", False)),
        )


@dataclass
class ScrapedJobRecord:
    """One job listing produced by a Per-Source Scraper.

    ``url`` is absolute and is the identity key used for dedup and upsert.
    ``low_confidence`` marks DOM-only records and records whose URL could
    not be matched to a listing link.
    """

    title: str
    company: str
    location: str
    url: str
    source: JobSource
    salary: Optional[str] = None
    posted_date: Optional[str] = None
    work_type: Optional[str] = None
    remote: bool = False
    low_confidence: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "company": self.company,
            "location": self.location,
            "salary": self.salary,
            "url": self.url,
            "postedDate": self.posted_date,
            "workType": self.work_type,
            "remote": self.remote,
            "source": self.source.value,
            "lowConfidence": self.low_confidence,
        }


@dataclass
class JobPostingDetails:
    """Structured fields parsed from a full job posting page."""

    url: str
    job_title: Optional[str] = None
    company: Optional[str] = None
    location: Optional[str] = None
    job_description: str = ""
    requirements: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class SearchMetrics:
    total_jobs_raw: int = 0
    total_jobs_unique: int = 0
    deduped_jobs: int = 0

    scrapers_succeeded: int = 0
    scrapers_failed: int = 0

    execution_time_ms: float = 0.0

    # name -> {"count": int, "runtime_ms": float, "errors": int}
    sites_scraped: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

# integrations/structured_extractor.py
"""
Structured Extractor — turns free-text model output into JSON.

No prompt guarantees syntactically valid JSON, so responses are recovered
defensively:

    1. trim, unwrap a fenced code block (or stray backticks)
    2. slice from the first ``{``/``[`` to the last matching ``}``/``]``
    3. ``json.loads``; on failure repair trailing commas and raw control
       characters inside strings, then parse once more
    4. give up with ``ExtractionParseError`` carrying the original text
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, List, Optional

from integrations.llm_interface import AIDisabledError, LLMInterface
from core.models import AIExtractionResult, JobPostingDetails

__all__ = [
    "StructuredExtractor",
    "ExtractionParseError",
    "parse_json_response",
    "repair_json",
]

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*([\s\S]*?)\s*```")
_TRAILING_COMMA_RE = re.compile(r",(\s*[\]}])")
_STRING_ESCAPES = {"\n": "\\n", "\r": "\\r", "\t": "\\t"}

_LISTINGS_PROMPT = """You are a job listing parser. Extract job listings from the following {source} search results page.

Page Content:
{content}

Extract up to {limit} visible job listings. For each job, provide:
- title: Job title
- company: Company name
- location: Location/city
- salary: Salary if shown (or null)
- postedDate: When posted (e.g., "2 days ago", "Posted today")
- workType: full-time, part-time, contract, casual (if shown)
- remote: true if remote/hybrid mentioned

Return a JSON array of jobs:
[
  {{
    "title": "Software Engineer",
    "company": "TechCorp",
    "location": "Sydney",
    "salary": "$120,000 - $150,000",
    "postedDate": "2 days ago",
    "workType": "full-time",
    "remote": false
  }}
]

Return ONLY valid JSON array, no other text. If no jobs found, return []."""

_POSTING_PROMPT = """You are a job posting parser. The text below was read from the job posting at {url}.

Page Content:
{content}

Return a JSON object:
{{
  "jobTitle": "Job title",
  "company": "Hiring company",
  "location": "Location or null",
  "jobDescription": "The full role description, responsibilities and benefits as plain text",
  "requirements": ["requirement 1", "requirement 2"]
}}

Ignore navigation, cookie banners and unrelated listings. Return ONLY valid JSON, no other text."""


class ExtractionParseError(ValueError):
    """No well-formed JSON could be recovered from a model response."""

    def __init__(self, message: str, raw_text: str) -> None:
        super().__init__(message)
        self.raw_text = raw_text


_OPENERS = {"{": "}", "[": "]"}


def _slice_json_span(text: str, opener: Optional[str] = None) -> Optional[str]:
    """Slice from the first opener to the last matching closer.

    Without ``opener`` the earliest of ``{``/``[`` decides the shape.
    """
    if opener is None:
        starts = [i for i in (text.find("{"), text.find("[")) if i != -1]
        if not starts:
            return None
        start = min(starts)
    else:
        start = text.find(opener)
        if start == -1:
            return None
    end = text.rfind(_OPENERS[text[start]])
    if end <= start:
        return None
    return text[start : end + 1]


def _escape_control_chars_in_strings(text: str) -> str:
    out: List[str] = []
    in_string = False
    escaped = False
    for char in text:
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            elif char in _STRING_ESCAPES:
                out.append(_STRING_ESCAPES[char])
                continue
        elif char == '"':
            in_string = True
        out.append(char)
    return "".join(out)


def repair_json(text: str) -> str:
    """Fix the mechanically-repairable faults models commonly emit."""
    text = _TRAILING_COMMA_RE.sub(r"\1", text)
    return _escape_control_chars_in_strings(text)


def parse_json_response(text: str, expected_type: Optional[type] = None) -> Any:
    """
    Recover a JSON value from a model response.

    With ``expected_type`` of ``list`` (or ``dict``) the ``[``...``]``
    (or ``{``...``}``) span is tried before the earliest-opener span, so
    stray braces in surrounding prose do not hide the array.

    Raises:
        ExtractionParseError: No object/array span exists, or every span
            is still invalid after one repair pass.
    """
    raw = text or ""
    cleaned = raw.strip()

    fenced = _FENCE_RE.search(cleaned)
    if fenced:
        cleaned = fenced.group(1).strip()
    else:
        cleaned = cleaned.strip("`").strip()

    spans: List[str] = []
    preferred = {list: "[", dict: "{"}.get(expected_type)
    for opener in (preferred, None) if preferred else (None,):
        span = _slice_json_span(cleaned, opener)
        if span is not None and span not in spans:
            spans.append(span)
    if not spans:
        raise ExtractionParseError("no JSON object or array in model response", raw)

    error: Optional[json.JSONDecodeError] = None
    for span in spans:
        try:
            return json.loads(span)
        except json.JSONDecodeError:
            pass
        try:
            return json.loads(repair_json(span))
        except json.JSONDecodeError as exc:
            error = exc

    raise ExtractionParseError(
        f"model response is not valid JSON after repair: {error}", raw
    ) from error


class StructuredExtractor:
    """Prompt → gateway → typed record."""

    def __init__(self, llm: LLMInterface) -> None:
        self.llm = llm

    async def extract(
        self,
        prompt: str,
        model: Optional[str] = None,
        expected_type: Optional[type] = None,
    ) -> Any:
        """
        Call the gateway and parse its answer as JSON.

        Args:
            prompt: Full prompt text.
            model: Gateway model identifier (gateway default when ``None``).
            expected_type: ``list`` or ``dict`` to enforce the top-level shape.

        Raises:
            ExtractionParseError: Response not recoverable as JSON, or the
                wrong top-level type.
            LLMError: Propagated from the gateway.
        """
        text = await self.llm.call_ai(prompt, model)
        try:
            parsed = parse_json_response(text, expected_type)
        except ExtractionParseError as exc:
            logger.warning("extract: %s | raw snippet: %.200s", exc, exc.raw_text)
            raise

        # {"jobs": [...]} style wrappers around the requested array
        if expected_type is list and isinstance(parsed, dict):
            wrapped = [v for v in parsed.values() if isinstance(v, list)]
            if len(wrapped) == 1:
                parsed = wrapped[0]

        if expected_type is not None and not isinstance(parsed, expected_type):
            raise ExtractionParseError(
                f"expected JSON {expected_type.__name__}, got {type(parsed).__name__}",
                text,
            )
        return parsed

    async def extract_job_listings(
        self,
        page_text: str,
        source_label: str,
        limit: int,
        model: Optional[str] = None,
    ) -> List[AIExtractionResult]:
        """
        Extract up to ``limit`` listings from search-results page text.

        Parse failures and a disabled AI flag yield ``[]`` so the caller can
        fall back to DOM-only records. Provider failures propagate.
        """
        if not self.llm.enabled:
            logger.info("AI parsing disabled, falling back to basic scraping")
            return []

        prompt = _LISTINGS_PROMPT.format(source=source_label, content=page_text, limit=limit)
        try:
            parsed = await self.extract(prompt, model, expected_type=list)
        except (ExtractionParseError, AIDisabledError) as exc:
            logger.warning("%s: AI extraction unusable: %s", source_label, exc)
            return []

        results = [AIExtractionResult.from_dict(item) for item in parsed if isinstance(item, dict)]
        return results[:limit]

    async def parse_job_posting(
        self,
        page_text: str,
        url: str,
        model: Optional[str] = None,
    ) -> JobPostingDetails:
        """Parse a full posting page into ``JobPostingDetails``."""
        prompt = _POSTING_PROMPT.format(url=url, content=page_text)
        data = await self.extract(prompt, model, expected_type=dict)

        requirements = data.get("requirements") or []
        if not isinstance(requirements, list):
            requirements = [str(requirements)]

        return JobPostingDetails(
            url=url,
            job_title=(data.get("jobTitle") or None),
            company=(data.get("company") or None),
            location=(data.get("location") or None),
            job_description=str(data.get("jobDescription") or "").strip(),
            requirements=[str(r).strip() for r in requirements if str(r).strip()],
        )

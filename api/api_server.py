"""
FastAPI server for the job-search assistant.

Thin HTTP boundary over the scraping pipeline: request validation, response
shaping, and upserting search results into the job store keyed on ``url``.
No scraping or AI logic lives here.
"""

import os
import logging
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Awaitable, Callable, Dict, List, Optional
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Depends, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator
import uvicorn

from config.settings import ai_config, scraper_config
from core.models import SearchRequest
from integrations.llm_interface import LLMError, LLMInterface
from integrations.structured_extractor import ExtractionParseError, StructuredExtractor
from scrapers.scraper_engine import ScraperEngine
from scrapers.scraper_service import fetch_full_text
from api.job_store import InMemoryJobStore

logger = logging.getLogger(__name__)

__all__ = ["app", "main"]

DescriptionFetcher = Callable[[str], Awaitable[str]]


# ---------------------------------------------------------------------------
# Pydantic Models
# ---------------------------------------------------------------------------


class JobSearchBody(BaseModel):
    """Request payload for ``POST /jobs/search``.

    ``keywords`` is optional at the schema level so that a missing or blank
    value is reported as a 400 with a readable message.
    """

    keywords: Optional[str] = None
    location: Optional[str] = None
    sources: Optional[List[str]] = None
    max_results: Optional[int] = Field(default=None, alias="maxResults", gt=0)

    model_config = {"populate_by_name": True}


class JobSearchResponse(BaseModel):
    count: int
    jobs: List[Dict[str, Any]]


class FetchDescriptionBody(BaseModel):
    """Request payload for ``POST /jobs/fetch-description``."""

    url: str

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError("url must be a valid HTTP/HTTPS URL")
        return v


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    ai_enabled: bool
    version: str = "1.0.0"


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def get_extractor() -> StructuredExtractor:
    return StructuredExtractor(LLMInterface(ai_config))


@lru_cache(maxsize=1)
def get_engine() -> ScraperEngine:
    return ScraperEngine(extractor=get_extractor(), config=scraper_config)


_JOB_STORE = InMemoryJobStore()


def get_job_store() -> InMemoryJobStore:
    return _JOB_STORE


def get_description_fetcher() -> DescriptionFetcher:
    async def _fetch(url: str) -> str:
        return await fetch_full_text(url, config=scraper_config)

    return _fetch


# ---------------------------------------------------------------------------
# App Setup
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI):  # type: ignore[type-arg]
    """Log startup/shutdown and the AI feature flag state."""
    logger.info(
        "FastAPI server starting | port=%s | ai_enabled=%s",
        os.getenv("FASTAPI_PORT", "8000"),
        ai_config.enable_ai_features,
    )
    yield
    logger.info("FastAPI server shutting down")


app = FastAPI(
    title="Job Search Assistant API",
    description="HTTP boundary for job search, scraping and description fetch",
    version="1.0.0",
    docs_url="/docs",
    redoc_url=None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@app.get("/health", response_model=HealthResponse, tags=["health"])
async def get_health() -> HealthResponse:
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc).isoformat(),
        ai_enabled=ai_config.enable_ai_features,
    )


@app.post("/jobs/search", response_model=JobSearchResponse, tags=["jobs"])
async def search_jobs(
    body: JobSearchBody,
    engine: ScraperEngine = Depends(get_engine),
    store: InMemoryJobStore = Depends(get_job_store),
) -> JobSearchResponse:
    """Search the requested boards and upsert every result by URL.

    Partial source failure is not an error; the response simply holds
    fewer (possibly zero) jobs.
    """
    try:
        request = SearchRequest.from_dict(
            body.model_dump(by_alias=True, exclude_none=True),
            default_max_results=scraper_config.default_max_results,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    logger.info(
        "🔍 Job search request: %s in %s",
        request.keywords,
        request.location or "any location",
    )
    records = await engine.search_all(request)

    saved: List[Dict[str, Any]] = []
    for record in records:
        try:
            saved.append(store.upsert(record))
        except Exception as exc:  # noqa: BLE001
            logger.error("Failed to save job: %s (%s)", record.title, exc)

    logger.info("💾 Saved %d jobs", len(saved))
    return JobSearchResponse(count=len(saved), jobs=saved)


@app.get("/jobs", tags=["jobs"])
async def list_jobs(
    source: Optional[str] = None,
    store: InMemoryJobStore = Depends(get_job_store),
) -> List[Dict[str, Any]]:
    return store.list(source=source)


@app.delete("/jobs", tags=["jobs"])
async def delete_job(
    url: str,
    store: InMemoryJobStore = Depends(get_job_store),
) -> Dict[str, Any]:
    """Remove a stored job by its URL."""
    if not store.delete(url):
        raise HTTPException(status_code=404, detail="Job not found")
    logger.info("🗑️ Deleted job: %s", url)
    return {"url": url, "deleted": True}


@app.post("/jobs/fetch-description", tags=["jobs"])
async def fetch_description(
    body: FetchDescriptionBody,
    fetcher: DescriptionFetcher = Depends(get_description_fetcher),
    extractor: StructuredExtractor = Depends(get_extractor),
    store: InMemoryJobStore = Depends(get_job_store),
) -> Dict[str, Any]:
    """Fetch a posting's full text and, with AI enabled, parse it.

    Updates the stored job (if any) with the parsed description.
    """
    logger.info("📄 Fetching full description for: %s", body.url)
    try:
        page_text = await fetcher(body.url)
    except Exception as exc:  # noqa: BLE001
        logger.error("Description fetch failed for %s: %s", body.url, exc)
        raise HTTPException(status_code=502, detail=f"Failed to fetch job page: {exc}") from exc

    if not extractor.llm.enabled:
        description = page_text.strip()
        store.update(body.url, description=description)
        return {"url": body.url, "job_description": description, "parsed": False}

    try:
        details = await extractor.parse_job_posting(page_text, body.url)
    except (ExtractionParseError, LLMError) as exc:
        logger.error("Description parse failed for %s: %s", body.url, exc)
        raise HTTPException(status_code=502, detail=f"Failed to parse job page: {exc}") from exc

    store.update(
        body.url,
        description=details.job_description or None,
        title=details.job_title,
        company=details.company,
    )
    return {**details.to_dict(), "parsed": True}


# ---------------------------------------------------------------------------
# Global Exception Handler
# ---------------------------------------------------------------------------


@app.exception_handler(Exception)
async def global_exception_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    """Log unhandled exceptions with the request path and return a 500."""
    logger.error("Unhandled exception: %s | path=%s", exc, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"error": str(exc), "path": str(request.url.path)},
    )


# ---------------------------------------------------------------------------
# Main Runner
# ---------------------------------------------------------------------------


def main() -> None:
    """Start the uvicorn ASGI server (``FASTAPI_HOST``/``FASTAPI_PORT``)."""
    uvicorn.run(
        "api.api_server:app",
        host=os.getenv("FASTAPI_HOST", "127.0.0.1"),
        port=int(os.getenv("FASTAPI_PORT", "8000")),
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
        reload=False,
        workers=1,
    )


if __name__ == "__main__":
    main()

"""
scrapers/scraper_engine.py

JOB SCRAPER ENGINE
==================

Purpose:
    Fan a search out to every requested job board concurrently, wait for all
    of them to settle, and return the union deduplicated by URL.

    This layer does NOT persist anything. The caller (route layer / CLI)
    owns storage and upserts records keyed on ``url``.

Guarantees:
- One board failing or hanging until its own timeouts fire never voids
  the others; partial failure is logged, not raised
- Records are deduplicated on ``url``, first occurrence wins in the order
  the sources were requested
- Every returned record's ``source`` is one of the requested sources
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Dict, List, Mapping, Optional, Union

from config.settings import ScraperConfig, scraper_config
from core.models import JobSource, ScrapedJobRecord, SearchMetrics, SearchRequest
from integrations.llm_interface import LLMInterface
from integrations.structured_extractor import StructuredExtractor
from scrapers.scraper_service import (
    SCRAPER_CLASSES,
    BaseJobBoardScraper,
    StealthSessionFactory,
)
from Utils.normalise_dedupe import deduplicate_jobs

LOG = logging.getLogger("scraper_engine")

__all__ = ["ScraperEngine", "search_all"]


class ScraperEngine:
    """Master orchestrator for multi-source job search."""

    def __init__(
        self,
        scrapers: Optional[Mapping[JobSource, BaseJobBoardScraper]] = None,
        extractor: Optional[StructuredExtractor] = None,
        session_factory: Optional[StealthSessionFactory] = None,
        config: ScraperConfig = scraper_config,
    ) -> None:
        self.config = config
        if scrapers is None:
            extractor = extractor or StructuredExtractor(LLMInterface())
            session_factory = session_factory or StealthSessionFactory(config)
            scrapers = {
                source: cls(extractor=extractor, session_factory=session_factory, config=config)
                for source, cls in SCRAPER_CLASSES.items()
            }
        self.scrapers: Dict[JobSource, BaseJobBoardScraper] = dict(scrapers)
        self.last_metrics = SearchMetrics()

        LOG.info(
            "ScraperEngine initialized | scrapers=%s",
            [source.value for source in self.scrapers],
        )

    async def search_all(self, request: SearchRequest) -> List[ScrapedJobRecord]:
        """Run every requested scraper concurrently and merge their results."""
        start_time = time.time()
        metrics = SearchMetrics()
        selected = [source for source in request.sources if source in self.scrapers]
        skipped = [source.value for source in request.sources if source not in self.scrapers]
        if skipped:
            LOG.warning("No scraper registered for: %s", skipped)

        LOG.info(
            "🚀 Starting job search across %d source(s) for: \"%s\"",
            len(selected),
            request.keywords,
        )

        async def _execute(source: JobSource) -> List[ScrapedJobRecord]:
            name = source.value
            entry: Dict[str, Any] = {"count": 0, "runtime_ms": 0.0, "errors": 0}
            metrics.sites_scraped[name] = entry
            t0 = time.time()
            try:
                records = await self.scrapers[source].scrape(request)
                entry["count"] = len(records)
                metrics.scrapers_succeeded += 1
                LOG.info("✅ %s: %d jobs", name, len(records))
                return [r for r in records if r.source == source]
            except Exception as e:
                entry["errors"] += 1
                metrics.scrapers_failed += 1
                LOG.error("❌ %s failed: %s", name, e, exc_info=True)
                return []
            finally:
                entry["runtime_ms"] = (time.time() - t0) * 1000.0

        batches = await asyncio.gather(*[_execute(source) for source in selected])

        all_jobs: List[ScrapedJobRecord] = []
        for batch in batches:
            all_jobs.extend(batch)

        unique_jobs = deduplicate_jobs(all_jobs)

        metrics.total_jobs_raw = len(all_jobs)
        metrics.total_jobs_unique = len(unique_jobs)
        metrics.deduped_jobs = len(all_jobs) - len(unique_jobs)
        metrics.execution_time_ms = (time.time() - start_time) * 1000.0
        self.last_metrics = metrics

        LOG.info(
            "📊 Total unique jobs: %d (from %d raw, %d deduped) in %.0f ms",
            metrics.total_jobs_unique,
            metrics.total_jobs_raw,
            metrics.deduped_jobs,
            metrics.execution_time_ms,
        )
        return unique_jobs

    def search_all_sync(self, request: SearchRequest) -> List[ScrapedJobRecord]:
        """Synchronous wrapper for search_all()."""
        return asyncio.run(self.search_all(request))


async def search_all(
    params: Union[SearchRequest, Dict[str, Any]],
    engine: Optional[ScraperEngine] = None,
) -> List[ScrapedJobRecord]:
    """Convenience entry point accepting a request object or a raw payload."""
    request = params if isinstance(params, SearchRequest) else SearchRequest.from_dict(params)
    return await (engine or ScraperEngine()).search_all(request)

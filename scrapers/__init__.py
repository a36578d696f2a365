"""
scrapers/__init__.py

JOB SEARCH ASSISTANT — SCRAPERS PACKAGE
=======================================

Purpose:
    Scrape job listings from Seek, LinkedIn and Indeed with stealth
    Playwright sessions, extract structured fields with the AI gateway,
    reconcile them with links read from the page, and merge the results.

    This package does NOT perform database writes. Persistence belongs to
    the caller.

Public API:

    from scrapers import ScraperEngine
    from core.models import SearchRequest

    # Async usage
    engine = ScraperEngine()
    jobs = await engine.search_all(SearchRequest(keywords="React Developer"))

    # Synchronous usage
    jobs = engine.search_all_sync(SearchRequest(keywords="React Developer"))

Advanced (single board / single posting):

    from scrapers import SeekScraper, fetch_full_text
"""

from scrapers.scraper_engine import ScraperEngine, search_all
from scrapers.scraper_service import (
    IndeedScraper,
    LaunchError,
    LinkedInScraper,
    SeekScraper,
    StealthSessionFactory,
    fetch_full_text,
)

__all__ = [
    # Primary engine
    "ScraperEngine",
    "search_all",
    # Per-board scrapers
    "SeekScraper",
    "LinkedInScraper",
    "IndeedScraper",
    # Browser layer
    "StealthSessionFactory",
    "LaunchError",
    "fetch_full_text",
]

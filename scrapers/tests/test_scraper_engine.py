# scrapers/tests/test_scraper_engine.py
# Concurrent fan-out, partial failure and URL dedup

import json

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from conftest import FakePage, FakeSessionFactory, ScriptedCompletion
from core.models import JobSource, ScrapedJobRecord, SearchRequest
from scrapers.scraper_engine import ScraperEngine, search_all
from scrapers.scraper_service import LinkedInScraper, SeekScraper


def _record(url, source=JobSource.SEEK, title="Developer"):
    return ScrapedJobRecord(
        title=title, company="Acme", location="Sydney", url=url, source=source
    )


class StaticScraper:
    def __init__(self, records=None, error=None):
        self.records = records or []
        self.error = error
        self.requests = []

    async def scrape(self, request):
        self.requests.append(request)
        if self.error:
            raise self.error
        return list(self.records)


async def test_seek_results_survive_linkedin_timeout(scraper_settings, ai_enabled, make_extractor):
    listings = [
        {"title": "Senior React Developer", "company": "Atlassian"},
        {"title": "React Native Engineer", "company": "Canva"},
        {"title": "Frontend Developer (React)", "company": "Xero"},
    ]
    completion = ScriptedCompletion({"gemini/gemini-2.0-flash": json.dumps(listings)})
    extractor = make_extractor(ai_enabled, completion)
    seek_page = FakePage(
        dom_items=[
            {"href": "/job/1", "title": "Senior React Developer", "company": ""},
            {"href": "/job/2", "title": "React Native Engineer", "company": ""},
            {"href": "/job/3", "title": "Frontend Developer (React)", "company": ""},
        ]
    )
    linkedin_page = FakePage(goto_error=PlaywrightTimeoutError("Timeout 60000ms exceeded."))
    engine = ScraperEngine(
        scrapers={
            JobSource.SEEK: SeekScraper(
                extractor=extractor,
                session_factory=FakeSessionFactory(seek_page),
                config=scraper_settings,
            ),
            JobSource.LINKEDIN: LinkedInScraper(
                extractor=extractor,
                session_factory=FakeSessionFactory(linkedin_page),
                config=scraper_settings,
            ),
        },
        config=scraper_settings,
    )

    jobs = await engine.search_all(
        SearchRequest(
            keywords="React Developer",
            location="Sydney",
            sources=[JobSource.SEEK, JobSource.LINKEDIN],
        )
    )

    assert len(jobs) == 3
    assert all(job.source is JobSource.SEEK for job in jobs)
    assert engine.last_metrics.sites_scraped["linkedin"]["count"] == 0
    assert engine.last_metrics.scrapers_succeeded == 2


async def test_results_are_unique_by_url_first_source_wins():
    seek = StaticScraper([_record("https://x/1"), _record("https://x/2")])
    indeed = StaticScraper(
        [
            _record("https://x/2", JobSource.INDEED, "Duplicate"),
            _record("https://x/3", JobSource.INDEED),
        ]
    )
    engine = ScraperEngine(scrapers={JobSource.SEEK: seek, JobSource.INDEED: indeed})

    jobs = await engine.search_all(
        SearchRequest(keywords="dev", sources=["seek", "indeed"])
    )

    assert [job.url for job in jobs] == ["https://x/1", "https://x/2", "https://x/3"]
    assert jobs[1].source is JobSource.SEEK
    assert engine.last_metrics.total_jobs_raw == 4
    assert engine.last_metrics.deduped_jobs == 1


async def test_only_requested_sources_run():
    seek = StaticScraper([_record("https://x/1")])
    indeed = StaticScraper([_record("https://x/2", JobSource.INDEED)])
    engine = ScraperEngine(scrapers={JobSource.SEEK: seek, JobSource.INDEED: indeed})

    jobs = await engine.search_all(SearchRequest(keywords="dev", sources=["indeed"]))

    assert [job.source for job in jobs] == [JobSource.INDEED]
    assert seek.requests == []


async def test_records_with_foreign_source_are_dropped():
    seek = StaticScraper([_record("https://x/1"), _record("https://x/9", JobSource.LINKEDIN)])
    engine = ScraperEngine(scrapers={JobSource.SEEK: seek})

    jobs = await engine.search_all(SearchRequest(keywords="dev", sources=["seek"]))

    assert [job.url for job in jobs] == ["https://x/1"]


async def test_raising_scraper_does_not_void_others():
    seek = StaticScraper(error=RuntimeError("browser crashed"))
    indeed = StaticScraper([_record("https://x/2", JobSource.INDEED)])
    engine = ScraperEngine(scrapers={JobSource.SEEK: seek, JobSource.INDEED: indeed})

    jobs = await engine.search_all(SearchRequest(keywords="dev", sources=["seek", "indeed"]))

    assert [job.url for job in jobs] == ["https://x/2"]
    assert engine.last_metrics.scrapers_failed == 1
    assert engine.last_metrics.sites_scraped["seek"]["errors"] == 1


async def test_repeat_search_yields_same_url_set():
    seek = StaticScraper([_record("https://x/1"), _record("https://x/1"), _record("https://x/2")])
    engine = ScraperEngine(scrapers={JobSource.SEEK: seek})
    request = SearchRequest(keywords="dev", sources=["seek"])

    first = {job.url for job in await engine.search_all(request)}
    second = {job.url for job in await engine.search_all(request)}

    assert first == second == {"https://x/1", "https://x/2"}


async def test_module_search_all_accepts_payload():
    seek = StaticScraper([_record("https://x/1")])
    engine = ScraperEngine(scrapers={JobSource.SEEK: seek})

    jobs = await search_all({"keywords": "dev", "sources": ["seek"], "maxResults": 5}, engine)

    assert len(jobs) == 1
    assert seek.requests[0].max_results == 5


async def test_zero_max_results_is_rejected():
    seek = StaticScraper([_record("https://x/1")])
    engine = ScraperEngine(scrapers={JobSource.SEEK: seek})

    with pytest.raises(ValueError):
        await search_all({"keywords": "dev", "sources": ["seek"], "maxResults": 0}, engine)
    assert seek.requests == []

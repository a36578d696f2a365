# scrapers/tests/test_scraper_service.py
# Per-source scrapers driven through fake browser sessions

import json

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from conftest import FakePage, FakeSessionFactory, ScriptedCompletion
from config.settings import ScraperConfig
from core.models import PLACEHOLDER_COMPANY, JobSource, SearchRequest
from scrapers.scraper_service import (
    IndeedScraper,
    LaunchError,
    LinkedInScraper,
    SeekScraper,
    fetch_full_text,
    simulate_scroll,
)

SEEK_ITEMS = [
    {"href": "/job/101?type=standard", "title": "Senior React Developer", "company": ""},
    {"href": "/job/102", "title": "React Native Engineer", "company": ""},
    {"href": "/companies/acme", "title": "Acme Pty Ltd", "company": ""},
    {"href": "https://www.seek.com.au/job/103", "title": "Frontend Developer (React)", "company": ""},
]

SEEK_LISTINGS = [
    {"title": "Senior React Developer", "company": "Atlassian", "location": "Sydney NSW"},
    {"title": "React Native Engineer", "company": "Canva", "salary": "$140k"},
    {"title": "Frontend Developer (React)", "company": "Xero", "remote": True},
]


@pytest.fixture
def request_sydney():
    return SearchRequest(keywords="React Developer", location="Sydney", max_results=10)


def _scraper(cls, page, config, extractor, **kwargs):
    factory = FakeSessionFactory(page, **kwargs)
    return cls(extractor=extractor, session_factory=factory, config=config), factory


def test_search_url_grammars(request_sydney, scraper_settings, ai_disabled, make_extractor):
    extractor = make_extractor(ai_disabled)
    seek = SeekScraper(extractor=extractor, config=scraper_settings)
    linkedin = LinkedInScraper(extractor=extractor, config=scraper_settings)
    indeed = IndeedScraper(extractor=extractor, config=scraper_settings)

    assert seek.build_search_url(request_sydney) == (
        "https://www.seek.com.au/React%20Developer-jobs/in-Sydney"
    )
    assert linkedin.build_search_url(request_sydney) == (
        "https://www.linkedin.com/jobs/search?keywords=React%20Developer&location=Sydney"
    )
    assert indeed.build_search_url(request_sydney) == (
        "https://au.indeed.com/jobs?q=React%20Developer&l=Sydney"
    )

    anywhere = SearchRequest(keywords="C++ & Rust")
    assert seek.build_search_url(anywhere) == "https://www.seek.com.au/C%2B%2B%20%26%20Rust-jobs"
    assert indeed.build_search_url(anywhere) == "https://au.indeed.com/jobs?q=C%2B%2B%20%26%20Rust"


async def test_seek_reconciles_ai_records_with_dom_links(
    request_sydney, scraper_settings, ai_enabled, make_extractor
):
    completion = ScriptedCompletion({"gemini/gemini-2.0-flash": json.dumps(SEEK_LISTINGS)})
    page = FakePage(body_text="Seek results\n\n\nReact jobs", dom_items=SEEK_ITEMS)
    scraper, factory = _scraper(
        SeekScraper, page, scraper_settings, make_extractor(ai_enabled, completion)
    )

    records = await scraper.scrape(request_sydney)

    assert [r.url for r in records] == [
        "https://www.seek.com.au/job/101?type=standard",
        "https://www.seek.com.au/job/102",
        "https://www.seek.com.au/job/103",
    ]
    assert all(r.source is JobSource.SEEK for r in records)
    assert not any(r.low_confidence for r in records)
    assert records[0].location == "Sydney NSW"
    assert records[1].location == "Sydney"
    assert records[2].remote is True
    assert page.visited[0]["wait_until"] == "domcontentloaded"
    assert factory.sessions[0].closed is True


async def test_dom_links_skip_non_job_hrefs_and_cap(ai_disabled, make_extractor):
    config = ScraperConfig(human_delays=False, max_dom_links=2)
    page = FakePage(dom_items=SEEK_ITEMS)
    scraper, _ = _scraper(SeekScraper, page, config, make_extractor(ai_disabled))

    links = await scraper.extract_dom_links(page)

    assert [link.url for link in links] == [
        "https://www.seek.com.au/job/101?type=standard",
        "https://www.seek.com.au/job/102",
    ]


async def test_linkedin_passes_card_selectors(scraper_settings, ai_disabled, make_extractor):
    page = FakePage(
        dom_items=[
            {"href": "https://au.linkedin.com/jobs/view/1", "title": "React Dev", "company": "Canva"},
            {"href": "", "title": "No link", "company": "Nobody"},
        ]
    )
    scraper, _ = _scraper(LinkedInScraper, page, scraper_settings, make_extractor(ai_disabled))

    records = await scraper.scrape(SearchRequest(keywords="React"))

    assert page.dom_args["card"] == LinkedInScraper.card_selector
    assert len(records) == 1
    assert records[0].company == "Canva"
    assert records[0].location == "Unknown"


async def test_ai_disabled_falls_back_to_dom_records(
    request_sydney, scraper_settings, ai_disabled, make_extractor
):
    page = FakePage(dom_items=SEEK_ITEMS)
    scraper, _ = _scraper(SeekScraper, page, scraper_settings, make_extractor(ai_disabled))

    records = await scraper.scrape(request_sydney)

    assert len(records) == 3
    assert all(r.company == PLACEHOLDER_COMPANY for r in records)
    assert all(r.low_confidence for r in records)
    assert all(r.location == "Sydney" for r in records)
    assert records[0].title == "Senior React Developer"


async def test_provider_failure_falls_back_to_dom_records(
    scraper_settings, ai_enabled, make_extractor
):
    completion = ScriptedCompletion()  # every model fails
    page = FakePage(dom_items=SEEK_ITEMS)
    scraper, factory = _scraper(
        SeekScraper, page, scraper_settings, make_extractor(ai_enabled, completion)
    )

    records = await scraper.scrape(SearchRequest(keywords="React Developer"))

    assert len(completion.calls) == 3
    assert len(records) == 3
    assert all(r.location == "Australia" for r in records)
    assert factory.sessions[0].closed is True


async def test_navigation_timeout_returns_empty_and_closes_session(
    request_sydney, scraper_settings, ai_enabled, make_extractor
):
    page = FakePage(goto_error=PlaywrightTimeoutError("Timeout 60000ms exceeded."))
    scraper, factory = _scraper(
        LinkedInScraper, page, scraper_settings, make_extractor(ai_enabled)
    )

    assert await scraper.scrape(request_sydney) == []
    assert factory.sessions[0].closed is True


async def test_launch_failure_returns_empty(
    request_sydney, scraper_settings, ai_enabled, make_extractor
):
    scraper, factory = _scraper(
        IndeedScraper,
        None,
        scraper_settings,
        make_extractor(ai_enabled),
        error=LaunchError("Chromium launch failed: executable doesn't exist"),
    )

    assert await scraper.scrape(request_sydney) == []
    assert factory.sessions == []


async def test_results_marker_timeout_is_not_fatal(
    request_sydney, scraper_settings, ai_enabled, make_extractor
):
    completion = ScriptedCompletion({"gemini/gemini-2.0-flash": json.dumps(SEEK_LISTINGS[:1])})
    page = FakePage(
        dom_items=SEEK_ITEMS,
        wait_error=PlaywrightTimeoutError("waiting for selector"),
    )
    scraper, _ = _scraper(
        SeekScraper, page, scraper_settings, make_extractor(ai_enabled, completion)
    )

    records = await scraper.scrape(request_sydney)

    assert len(records) == 1
    assert records[0].company == "Atlassian"


async def test_empty_page_yields_no_records(
    request_sydney, scraper_settings, ai_enabled, make_extractor
):
    completion = ScriptedCompletion({"gemini/gemini-2.0-flash": "[]"})
    scraper, _ = _scraper(
        IndeedScraper, FakePage(), scraper_settings, make_extractor(ai_enabled, completion)
    )

    assert await scraper.scrape(request_sydney) == []


async def test_scroll_stops_at_cap(scraper_settings):
    page = FakePage(scroll_height=50_000)

    covered = await simulate_scroll(page, scraper_settings)

    assert covered == 3000
    assert len(page.scroll_calls) == 30
    assert set(page.scroll_calls) == {100}


async def test_scroll_stops_at_page_height(scraper_settings):
    page = FakePage(scroll_height=450)

    assert await simulate_scroll(page, scraper_settings) == 500
    assert len(page.scroll_calls) == 5


async def test_fetch_full_text_returns_body_and_closes(scraper_settings):
    page = FakePage(body_text="Senior React Developer\nAbout the role")
    factory = FakeSessionFactory(page)

    text = await fetch_full_text(
        "https://www.seek.com.au/job/101", session_factory=factory, config=scraper_settings
    )

    assert text.startswith("Senior React Developer")
    assert page.visited[0]["wait_until"] == "networkidle"
    assert page.scroll_calls == [500]
    assert factory.sessions[0].closed is True


async def test_fetch_full_text_propagates_navigation_errors(scraper_settings):
    page = FakePage(goto_error=PlaywrightTimeoutError("Timeout 30000ms exceeded."))
    factory = FakeSessionFactory(page)

    with pytest.raises(PlaywrightTimeoutError):
        await fetch_full_text("https://example.com/job", session_factory=factory, config=scraper_settings)
    assert factory.sessions[0].closed is True

"""
scrapers/scraper_service.py

PLAYWRIGHT SCRAPER STACK
========================

Stealth browser infrastructure + site-specific scrapers for the job-search
assistant.

Responsibilities:
├── One isolated, stealth-hardened Chromium process per scraping task
├── Human-like scrolling with timing jitter
├── Site scrapers: Seek, LinkedIn (guest search), Indeed AU
├── DOM link extraction + AI extraction + reconciliation
├── Failure isolation (a scraper never raises to its caller)
└── Full-text fetch of a single posting

Usage by ScraperEngine:
    scraper = SeekScraper(extractor=extractor)
    records = await scraper.scrape(request)
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from urllib.parse import quote, urlencode

from playwright.async_api import (
    Browser,
    BrowserContext,
    Page,
    Playwright,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

from config.settings import ScraperConfig, scraper_config
from core.models import DomLink, JobSource, ScrapedJobRecord, SearchRequest
from integrations.llm_interface import LLMError, LLMInterface
from integrations.structured_extractor import StructuredExtractor
from scrapers.reconciliation import build_fallback_records, reconcile_records
from Utils.normalise_dedupe import clean_text, resolve_url

LOG = logging.getLogger("playwright_scrapers")

# =================================================================================
# STEALTH SESSION
# =================================================================================

STEALTH_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/122.0.0.0 Safari/537.36"
)

STEALTH_VIEWPORT = {"width": 1920, "height": 1080}

STEALTH_LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-blink-features=AutomationControlled",
    "--window-size=1920,1080",
]

STEALTH_HEADERS = {
    "Accept-Language": "en-US,en;q=0.9",
    "Accept": (
        "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,"
        "image/webp,image/apng,*/*;q=0.8,application/signed-exchange;v=b3;q=0.7"
    ),
    "Cache-Control": "max-age=0",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Sec-Fetch-User": "?1",
    "Upgrade-Insecure-Requests": "1",
}

# Runs before any page script: hide webdriver, fake plugins/languages, chrome runtime
STEALTH_INIT_SCRIPT = """
    Object.defineProperty(navigator, 'webdriver', {
        get: () => undefined,
    });
    Object.defineProperty(navigator, 'languages', {
        get: () => ['en-US', 'en'],
    });
    Object.defineProperty(navigator, 'plugins', {
        get: () => [1, 2, 3, 4, 5],
    });
    window.chrome = window.chrome || { runtime: {} };
"""


class LaunchError(RuntimeError):
    """The browser process could not be started."""


@dataclass
class BrowserSession:
    """One browser process + context + page owned by a single task."""

    playwright: Playwright
    browser: Browser
    context: BrowserContext
    page: Page

    async def close(self) -> None:
        """Release every layer; each step is attempted even if an earlier one fails."""
        for label, closer in (
            ("context", self.context.close),
            ("browser", self.browser.close),
            ("playwright", self.playwright.stop),
        ):
            try:
                await closer()
            except Exception as e:
                LOG.warning("BrowserSession: failed to close %s: %s", label, e)

    async def __aenter__(self) -> "BrowserSession":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()


class StealthSessionFactory:
    """Launches an isolated stealth Chromium session per scraping task."""

    def __init__(self, config: ScraperConfig = scraper_config) -> None:
        self.config = config

    async def create_session(self) -> BrowserSession:
        """
        Start Chromium with anti-detection configuration.

        Raises:
            LaunchError: The browser binary is missing or the process
                failed to start.
        """
        playwright: Optional[Playwright] = None
        browser: Optional[Browser] = None
        try:
            playwright = await async_playwright().start()
            browser = await playwright.chromium.launch(
                headless=self.config.headless,
                args=STEALTH_LAUNCH_ARGS,
            )
            context = await browser.new_context(
                user_agent=STEALTH_USER_AGENT,
                viewport=STEALTH_VIEWPORT,
                locale="en-US",
                extra_http_headers=STEALTH_HEADERS,
            )
            await context.add_init_script(STEALTH_INIT_SCRIPT)
            page = await context.new_page()
            page.set_default_navigation_timeout(self.config.navigation_timeout_ms)
            page.set_default_timeout(self.config.results_wait_timeout_ms)
        except Exception as e:
            for closer in (browser.close if browser else None, playwright.stop if playwright else None):
                if closer is None:
                    continue
                try:
                    await closer()
                except Exception as cleanup_err:
                    LOG.debug("Launch cleanup failed: %s", cleanup_err)
            raise LaunchError(f"Chromium launch failed: {e}") from e

        LOG.debug("Stealth session launched (headless=%s)", self.config.headless)
        return BrowserSession(playwright, browser, context, page)


# =================================================================================
# HUMAN BEHAVIOUR
# =================================================================================

SCROLL_HEIGHT_JS = "() => document.body.scrollHeight"
SCROLL_BY_JS = "(dy) => window.scrollBy(0, dy)"


async def human_delay(config: ScraperConfig, base_ms: int) -> None:
    """Sleep ``base_ms`` plus up to one second of jitter."""
    if not config.human_delays or base_ms <= 0:
        return
    await asyncio.sleep((base_ms + random.random() * 1000) / 1000)


async def simulate_scroll(page: Page, config: ScraperConfig = scraper_config) -> int:
    """
    Scroll in ``scroll_step_px`` increments with 100–300 ms jitter until the
    page height or ``scroll_cap_px`` is covered. Best-effort: never raises.

    Returns:
        Total pixels scrolled.
    """
    covered = 0
    try:
        while True:
            scroll_height = await page.evaluate(SCROLL_HEIGHT_JS)
            await page.evaluate(SCROLL_BY_JS, config.scroll_step_px)
            covered += config.scroll_step_px
            if covered >= int(scroll_height or 0) or covered >= config.scroll_cap_px:
                break
            if config.human_delays:
                await asyncio.sleep(
                    random.uniform(config.scroll_delay_min_s, config.scroll_delay_max_s)
                )
    except Exception as e:
        LOG.debug("simulate_scroll stopped early after %dpx: %s", covered, e)
    return covered


# =================================================================================
# BASE SCRAPER
# =================================================================================

# Reads {href, title, company} triples. Without a card selector every element
# matching `link` is its own card and its text is the title.
DOM_LINKS_JS = """
({card, link, title, company}) => {
    const text = (el) => (el && el.textContent ? el.textContent.trim() : '');
    const out = [];
    if (!card) {
        document.querySelectorAll(link).forEach((a) => {
            out.push({href: a.getAttribute('href') || '', title: text(a), company: ''});
        });
        return out;
    }
    document.querySelectorAll(card).forEach((root) => {
        const a = root.querySelector(link);
        const t = title ? root.querySelector(title) : a;
        const c = company ? root.querySelector(company) : null;
        if (a && t) {
            out.push({href: a.getAttribute('href') || '', title: text(t), company: text(c)});
        }
    });
    return out;
}
"""


class BaseJobBoardScraper:
    """Shared logic: session lifecycle, navigation, extraction, reconciliation."""

    # Subclasses MUST set source, label, base_url, results_selector and
    # link_selector, and implement build_search_url().
    source: JobSource
    label: str = "base"
    base_url: str = ""
    results_selector: str = ""
    card_selector: Optional[str] = None
    link_selector: str = ""
    title_selector: Optional[str] = None
    company_selector: Optional[str] = None
    href_must_contain: Optional[str] = None
    default_location: str = "Unknown"
    title_match_chars: int = 15
    company_match_chars: Optional[int] = None
    pre_navigation_delay_ms: int = 1000
    post_navigation_delay_ms: int = 2000
    settle_delay_ms: int = 0

    def __init__(
        self,
        extractor: Optional[StructuredExtractor] = None,
        session_factory: Optional[StealthSessionFactory] = None,
        config: ScraperConfig = scraper_config,
        model: Optional[str] = None,
    ) -> None:
        self.config = config
        self.extractor = extractor or StructuredExtractor(LLMInterface())
        self.session_factory = session_factory or StealthSessionFactory(config)
        self.model = model

    def build_search_url(self, request: SearchRequest) -> str:
        raise NotImplementedError

    async def scrape(self, request: SearchRequest) -> List[ScrapedJobRecord]:
        """
        Run one search against this board.

        Never raises: navigation, selector, AI and parse errors are logged
        and whatever was assembled (possibly nothing) is returned. The
        browser session is released on every exit path.
        """
        jobs: List[ScrapedJobRecord] = []
        session: Optional[BrowserSession] = None
        search_url = self.build_search_url(request)
        LOG.info("🔍 Scraping %s: %s", self.label, search_url)

        try:
            session = await self.session_factory.create_session()
            page = session.page

            await human_delay(self.config, self.pre_navigation_delay_ms)
            await page.goto(
                search_url,
                wait_until="domcontentloaded",
                timeout=self.config.navigation_timeout_ms,
            )
            await human_delay(self.config, self.post_navigation_delay_ms)

            await self._wait_for_results(page)
            await simulate_scroll(page, self.config)
            await human_delay(self.config, self.settle_delay_ms)

            page_text = clean_text(
                await page.inner_text("body"), self.config.page_text_limit
            )
            dom_links = await self.extract_dom_links(page)
            LOG.info("📋 Found %d job links on %s", len(dom_links), self.label)

            try:
                parsed = await self.extractor.extract_job_listings(
                    page_text, self.label, request.max_results, self.model
                )
            except LLMError as e:
                LOG.warning("%s: AI extraction failed, using DOM links only: %s", self.label, e)
                parsed = []

            jobs = reconcile_records(
                parsed,
                dom_links,
                source=self.source,
                search_url=search_url,
                location=request.location,
                default_location=self.default_location,
                max_results=request.max_results,
                title_match_chars=self.title_match_chars,
                company_match_chars=self.company_match_chars,
            )

            if not jobs and dom_links:
                LOG.info("%s: AI returned no listings, falling back to DOM links", self.label)
                jobs = build_fallback_records(
                    dom_links,
                    source=self.source,
                    location=request.location,
                    default_location=self.default_location,
                    max_results=request.max_results,
                )

        except Exception as e:
            LOG.error("%s scraping error: %s", self.label, e)
        finally:
            if session is not None:
                await session.close()

        LOG.info("✅ Scraped %d jobs from %s", len(jobs), self.label)
        return jobs

    async def _wait_for_results(self, page: Page) -> bool:
        """Best-effort wait for the results marker; a timeout is not fatal."""
        try:
            await page.wait_for_selector(
                self.results_selector, timeout=self.config.results_wait_timeout_ms
            )
            return True
        except PlaywrightTimeoutError:
            LOG.warning(
                "⚠️ %s: results didn't appear within %dms, continuing anyway...",
                self.label,
                self.config.results_wait_timeout_ms,
            )
            return False

    async def extract_dom_links(self, page: Page) -> List[DomLink]:
        """Read job links straight from markup, resolved to absolute URLs."""
        raw: List[Dict[str, str]] = await page.evaluate(
            DOM_LINKS_JS,
            {
                "card": self.card_selector,
                "link": self.link_selector,
                "title": self.title_selector,
                "company": self.company_selector,
            },
        )
        links: List[DomLink] = []
        for item in raw or []:
            href = (item.get("href") or "").strip()
            title = (item.get("title") or "").strip()
            if not href or not title:
                continue
            if self.href_must_contain and self.href_must_contain not in href:
                continue
            links.append(
                DomLink(
                    url=resolve_url(href, self.base_url),
                    title=title,
                    company=(item.get("company") or "").strip(),
                )
            )
            if len(links) >= self.config.max_dom_links:
                break
        return links


# =================================================================================
# SITE-SPECIFIC SCRAPERS
# =================================================================================


class SeekScraper(BaseJobBoardScraper):
    """Seek (seek.com.au). Path-style search URLs: /{keywords}-jobs/in-{location}."""

    source = JobSource.SEEK
    label = "Seek"
    base_url = "https://www.seek.com.au"
    results_selector = (
        '[data-testid="job-card"], article, .job-card, [data-automation="jobCard"]'
    )
    link_selector = (
        'article a[href*="/job/"], [data-testid="job-card"] a, a[data-automation="jobTitle"]'
    )
    href_must_contain = "/job/"
    default_location = "Australia"
    title_match_chars = 20
    pre_navigation_delay_ms = 1000
    post_navigation_delay_ms = 2000

    def build_search_url(self, request: SearchRequest) -> str:
        url = f"{self.base_url}/{quote(request.keywords, safe='')}-jobs"
        if request.location:
            url += f"/in-{quote(request.location, safe='')}"
        return url


class LinkedInScraper(BaseJobBoardScraper):
    """
    LinkedIn public (guest) job search.

    Guest search frequently hits an auth wall; the results wait is
    best-effort and the page text is still handed to the extractor.
    """

    source = JobSource.LINKEDIN
    label = "LinkedIn"
    base_url = "https://www.linkedin.com"
    results_selector = ".jobs-search__results-list, .base-search-card, .job-card-container"
    card_selector = ".base-search-card, .job-card-container, [data-job-id]"
    link_selector = 'a.base-card__full-link, a[href*="/jobs/view/"]'
    title_selector = ".base-search-card__title, .job-card-list__title, h3"
    company_selector = ".base-search-card__subtitle, .job-card-container__company-name, h4"
    default_location = "Unknown"
    title_match_chars = 15
    company_match_chars = 10
    pre_navigation_delay_ms = 2000
    post_navigation_delay_ms = 3000
    settle_delay_ms = 1500

    def build_search_url(self, request: SearchRequest) -> str:
        params = {"keywords": request.keywords}
        if request.location:
            params["location"] = request.location
        return f"{self.base_url}/jobs/search?{urlencode(params, quote_via=quote)}"


class IndeedScraper(BaseJobBoardScraper):
    """Indeed Australia (au.indeed.com)."""

    source = JobSource.INDEED
    label = "Indeed"
    base_url = "https://au.indeed.com"
    results_selector = ".job_seen_beacon, .jobsearch-ResultsList, .result"
    card_selector = ".job_seen_beacon, .result, [data-jk]"
    link_selector = "h2 a, .jobTitle a, a[data-jk]"
    company_selector = '.companyName, [data-testid="company-name"]'
    default_location = "Australia"
    title_match_chars = 15
    pre_navigation_delay_ms = 1500
    post_navigation_delay_ms = 2500
    settle_delay_ms = 1000

    def build_search_url(self, request: SearchRequest) -> str:
        params = {"q": request.keywords}
        if request.location:
            params["l"] = request.location
        return f"{self.base_url}/jobs?{urlencode(params, quote_via=quote)}"


SCRAPER_CLASSES: Dict[JobSource, type] = {
    JobSource.SEEK: SeekScraper,
    JobSource.LINKEDIN: LinkedInScraper,
    JobSource.INDEED: IndeedScraper,
}


# =================================================================================
# DESCRIPTION FETCHER
# =================================================================================


async def fetch_full_text(
    url: str,
    session_factory: Optional[StealthSessionFactory] = None,
    config: ScraperConfig = scraper_config,
) -> str:
    """
    Open ``url`` in a fresh stealth session and return the visible body text.

    Unlike ``scrape()`` errors propagate; the session is always released.
    """
    factory = session_factory or StealthSessionFactory(config)
    session = await factory.create_session()
    try:
        page = session.page
        await human_delay(config, 1000)
        await page.goto(url, wait_until="networkidle", timeout=config.description_timeout_ms)
        await page.evaluate(SCROLL_BY_JS, 500)
        await human_delay(config, 1000)
        text = await page.inner_text("body")
        LOG.info("📄 Fetched %d chars from %s", len(text), url)
        return text
    finally:
        await session.close()


__all__ = [
    "LaunchError",
    "BrowserSession",
    "StealthSessionFactory",
    "simulate_scroll",
    "human_delay",
    "BaseJobBoardScraper",
    "SeekScraper",
    "LinkedInScraper",
    "IndeedScraper",
    "SCRAPER_CLASSES",
    "fetch_full_text",
]

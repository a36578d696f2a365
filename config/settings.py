"""Centralised configuration settings for the job-search assistant.

All environment variable reads are consolidated here into typed, frozen
dataclass instances. Components accept these objects as constructor
arguments; the module-level singletons (``ai_config``, ``scraper_config``)
are only the defaults used when nothing is passed explicitly.

Secrets and flags are loaded exclusively from environment variables
(typically a local ``.env`` file loaded by the CLI or API entry point).
"""

import logging
import os
from dataclasses import dataclass, field

__all__ = [
    "ai_config",
    "scraper_config",
    "get_settings",
    "AIConfig",
    "ScraperConfig",
    "DEFAULT_FALLBACK_MODELS",
]

DEFAULT_FALLBACK_MODELS: tuple[str, ...] = (
    "anthropic/claude-sonnet-4-5",
    "gemini/gemini-2.0-flash",
    "anthropic/claude-haiku-4-5",
)


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() == "true"


def _env_list(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.getenv(name, "")
    items = tuple(part.strip() for part in raw.split(",") if part.strip())
    return items or default


@dataclass(frozen=True)
class AIConfig:
    """Text-generation gateway configuration.

    Attributes:
        enable_ai_features: Master feature flag. When ``False`` every gateway
            call fails fast with ``AIDisabledError`` and scrapers fall back
            to DOM-only records.
        extraction_model: Model identifier (``provider/model``) used for job
            listing extraction.
        fallback_models: Ordered models tried once each when a call fails.
        max_tokens: Completion token ceiling per call.
        temperature: Sampling temperature.
        request_timeout_s: Per-call provider timeout in seconds.
    """

    enable_ai_features: bool = field(
        default_factory=lambda: _env_flag("ENABLE_AI_FEATURES")
    )
    extraction_model: str = field(
        default_factory=lambda: os.getenv(
            "AI_EXTRACTION_MODEL", "gemini/gemini-2.0-flash"
        )
    )
    fallback_models: tuple[str, ...] = field(
        default_factory=lambda: _env_list(
            "AI_FALLBACK_MODELS", DEFAULT_FALLBACK_MODELS
        )
    )
    max_tokens: int = field(
        default_factory=lambda: int(os.getenv("AI_MAX_TOKENS", "4096"))
    )
    temperature: float = field(
        default_factory=lambda: float(os.getenv("AI_TEMPERATURE", "0.2"))
    )
    request_timeout_s: float = field(
        default_factory=lambda: float(os.getenv("AI_REQUEST_TIMEOUT_S", "60"))
    )


@dataclass(frozen=True)
class ScraperConfig:
    """Browser scraping behaviour.

    Attributes:
        headless: Launch Chromium without a window.
        navigation_timeout_ms: Hard timeout for search page navigation.
        results_wait_timeout_ms: Best-effort wait for the results marker.
        description_timeout_ms: Navigation timeout for single postings.
        max_dom_links: Maximum DomLinks read from one results page.
        page_text_limit: Characters of visible page text sent to the model.
        scroll_step_px: Pixels per simulated scroll tick.
        scroll_cap_px: Hard cap on total simulated scroll distance.
        scroll_delay_min_s: Lower bound of the jitter between ticks.
        scroll_delay_max_s: Upper bound of the jitter between ticks.
        human_delays: When ``False`` all jitter sleeps are skipped.
        default_max_results: ``max_results`` used when a request omits it.
    """

    headless: bool = field(
        default_factory=lambda: _env_flag("SCRAPER_HEADLESS", "true")
    )
    navigation_timeout_ms: int = field(
        default_factory=lambda: int(os.getenv("SCRAPER_NAV_TIMEOUT_MS", "60000"))
    )
    results_wait_timeout_ms: int = field(
        default_factory=lambda: int(
            os.getenv("SCRAPER_RESULTS_WAIT_TIMEOUT_MS", "30000")
        )
    )
    description_timeout_ms: int = field(
        default_factory=lambda: int(
            os.getenv("SCRAPER_DESCRIPTION_TIMEOUT_MS", "30000")
        )
    )
    max_dom_links: int = field(
        default_factory=lambda: int(os.getenv("SCRAPER_MAX_DOM_LINKS", "20"))
    )
    page_text_limit: int = field(
        default_factory=lambda: int(os.getenv("SCRAPER_PAGE_TEXT_LIMIT", "15000"))
    )
    scroll_step_px: int = 100
    scroll_cap_px: int = 3000
    scroll_delay_min_s: float = 0.1
    scroll_delay_max_s: float = 0.3
    human_delays: bool = field(
        default_factory=lambda: _env_flag("SCRAPER_HUMAN_DELAYS", "true")
    )
    default_max_results: int = field(
        default_factory=lambda: int(os.getenv("SCRAPER_MAX_RESULTS", "10"))
    )


def get_settings() -> tuple[AIConfig, ScraperConfig]:
    """Build the configuration objects from the current environment.

    Returns:
        A two-element tuple ``(ai_config, scraper_config)``.
    """
    logging.getLogger(__name__).debug("Loading settings from environment")
    return AIConfig(), ScraperConfig()


ai_config, scraper_config = get_settings()

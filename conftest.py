# conftest.py
# Shared fakes for the scraper, gateway and API test suites.

import os

# Offline test runs: use litellm's bundled model cost map instead of fetching it at import.
os.environ.setdefault("LITELLM_LOCAL_MODEL_COST_MAP", "True")

from types import SimpleNamespace
from typing import Any, Dict, List, Optional, Union

import pytest

from config.settings import AIConfig, ScraperConfig
from integrations.llm_interface import LLMInterface
from integrations.structured_extractor import StructuredExtractor
from scrapers.scraper_service import DOM_LINKS_JS, SCROLL_BY_JS, SCROLL_HEIGHT_JS


class ScriptedCompletion:
    """Stands in for litellm.acompletion: answers per model, records each call."""

    def __init__(self, responses: Optional[Dict[str, Union[str, Exception]]] = None):
        self.responses = dict(responses or {})
        self.calls: List[Dict[str, Any]] = []

    @property
    def models(self) -> List[str]:
        return [call["model"] for call in self.calls]

    async def __call__(self, **kwargs):
        self.calls.append(kwargs)
        answer = self.responses.get(kwargs["model"], RuntimeError("model unavailable"))
        if isinstance(answer, Exception):
            raise answer
        return SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=answer))]
        )


class FakePage:
    def __init__(
        self,
        body_text: str = "",
        dom_items: Optional[List[Dict[str, str]]] = None,
        scroll_height: int = 1000,
        goto_error: Optional[Exception] = None,
        wait_error: Optional[Exception] = None,
    ):
        self.body_text = body_text
        self.dom_items = dom_items or []
        self.scroll_height = scroll_height
        self.goto_error = goto_error
        self.wait_error = wait_error
        self.visited: List[Dict[str, Any]] = []
        self.scroll_calls: List[int] = []
        self.dom_args: Optional[Dict[str, Any]] = None

    async def goto(self, url, **kwargs):
        self.visited.append({"url": url, **kwargs})
        if self.goto_error:
            raise self.goto_error

    async def wait_for_selector(self, selector, timeout=None):
        if self.wait_error:
            raise self.wait_error

    async def evaluate(self, script, arg=None):
        if script == SCROLL_HEIGHT_JS:
            return self.scroll_height
        if script == SCROLL_BY_JS:
            self.scroll_calls.append(arg)
            return None
        if script == DOM_LINKS_JS:
            self.dom_args = arg
            return list(self.dom_items)
        raise AssertionError(f"unexpected script: {script[:40]}")

    async def inner_text(self, selector):
        return self.body_text


class FakeSession:
    def __init__(self, page: FakePage):
        self.page = page
        self.closed = False

    async def close(self):
        self.closed = True


class FakeSessionFactory:
    def __init__(self, page: Optional[FakePage] = None, error: Optional[Exception] = None):
        self.page = page or FakePage()
        self.error = error
        self.sessions: List[FakeSession] = []

    async def create_session(self):
        if self.error:
            raise self.error
        session = FakeSession(self.page)
        self.sessions.append(session)
        return session


@pytest.fixture
def scraper_settings():
    return ScraperConfig(headless=True, human_delays=False, max_dom_links=20)


@pytest.fixture
def ai_enabled():
    return AIConfig(
        enable_ai_features=True,
        extraction_model="gemini/gemini-2.0-flash",
        fallback_models=("anthropic/claude-sonnet-4-5", "anthropic/claude-haiku-4-5"),
    )


@pytest.fixture
def ai_disabled():
    return AIConfig(enable_ai_features=False)


@pytest.fixture
def completion():
    return ScriptedCompletion()


@pytest.fixture
def make_extractor():
    def _make(config: AIConfig, completion_fn: Optional[ScriptedCompletion] = None):
        return StructuredExtractor(LLMInterface(config, completion_fn or ScriptedCompletion()))

    return _make

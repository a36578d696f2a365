# integrations/llm_interface.py
"""
LLM Interface Module — single gateway for every text-generation call.

Model identifiers are ``provider/model`` strings routed through litellm. A
failed call walks the configured fallback list exactly once (no
fallback-of-a-fallback), skipping any model already attempted. If every
fallback fails, the error from the originally requested model is re-raised.
"""

from __future__ import annotations

import logging
import os
import time
from typing import Any, Awaitable, Callable, Optional

import litellm

from config.settings import AIConfig, ai_config

__all__ = [
    "LLMInterface",
    "LLMError",
    "AIDisabledError",
    "UnsupportedModelError",
    "ProviderError",
    "SUPPORTED_PROVIDERS",
]

logger = logging.getLogger(__name__)

# provider prefix -> API key env var passed through to litellm
SUPPORTED_PROVIDERS: dict[str, str] = {
    "anthropic": "ANTHROPIC_API_KEY",
    "gemini": "GEMINI_API_KEY",
    "openai": "OPENAI_API_KEY",
    "groq": "GROQ_API_KEY",
    "cerebras": "CEREBRAS_API_KEY",
}

CompletionFn = Callable[..., Awaitable[Any]]


class LLMError(Exception):
    """Base class for gateway failures."""


class AIDisabledError(LLMError):
    """AI features are switched off by configuration."""


class UnsupportedModelError(LLMError):
    """The model identifier's provider prefix is not recognised."""

    def __init__(self, model: str) -> None:
        super().__init__(
            f"Unsupported model '{model}'. "
            f"Known providers: {sorted(SUPPORTED_PROVIDERS)}"
        )
        self.model = model


class ProviderError(LLMError):
    """The provider call failed; the original exception is chained."""

    def __init__(self, model: str, message: str) -> None:
        super().__init__(f"{model}: {message}")
        self.model = model


def provider_of(model: str) -> str:
    """Return the provider prefix of a ``provider/model`` identifier."""
    prefix, sep, _ = (model or "").partition("/")
    return prefix.strip().lower() if sep else ""


class LLMInterface:
    """
    Gateway for all generative-text calls.

    Args:
        config: AI configuration; its ``enable_ai_features`` flag gates
            every call.
        completion_fn: Async completion callable with the
            ``litellm.acompletion`` signature. Injected by tests.
    """

    def __init__(
        self,
        config: AIConfig = ai_config,
        completion_fn: Optional[CompletionFn] = None,
    ) -> None:
        self.config = config
        self._completion_fn: CompletionFn = completion_fn or litellm.acompletion

    @property
    def enabled(self) -> bool:
        return self.config.enable_ai_features

    async def call_ai(
        self,
        prompt: str,
        model: Optional[str] = None,
        is_fallback: bool = False,
    ) -> str:
        """
        Send ``prompt`` to ``model`` and return the raw completion text.

        Args:
            prompt: User prompt text.
            model: ``provider/model`` identifier; defaults to the configured
                extraction model.
            is_fallback: When ``True`` the fallback chain is not consulted.

        Returns:
            The completion text, unmodified.

        Raises:
            AIDisabledError: AI features are disabled.
            UnsupportedModelError: Unknown provider prefix and no fallback
                succeeded (or ``is_fallback`` was set).
            ProviderError: The provider call failed and no fallback succeeded.
        """
        if not self.enabled:
            raise AIDisabledError("AI features are disabled (ENABLE_AI_FEATURES != true)")

        model = model or self.config.extraction_model
        try:
            return await self._dispatch(prompt, model)
        except LLMError as exc:
            if is_fallback:
                raise
            original = exc

        attempted = {model}
        for candidate in self.config.fallback_models:
            if candidate in attempted:
                continue
            attempted.add(candidate)
            logger.warning(
                "call_ai: %s failed (%s); falling back to %s", model, original, candidate
            )
            try:
                return await self._dispatch(prompt, candidate)
            except LLMError as exc:
                logger.warning("call_ai: fallback %s failed: %s", candidate, exc)

        logger.error(
            "call_ai: all %d fallback model(s) failed for %s", len(attempted) - 1, model
        )
        raise original

    async def _dispatch(self, prompt: str, model: str) -> str:
        """Single provider call without any fallback."""
        provider = provider_of(model)
        if provider not in SUPPORTED_PROVIDERS:
            raise UnsupportedModelError(model)

        completion_kwargs: dict[str, Any] = {
            "model": model,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
            "timeout": self.config.request_timeout_s,
        }
        api_key = os.getenv(SUPPORTED_PROVIDERS[provider], "").strip()
        if api_key:
            completion_kwargs["api_key"] = api_key

        start = time.perf_counter()
        logger.info("call_ai: requesting %s (%d prompt chars)", model, len(prompt))
        try:
            response = await self._completion_fn(**completion_kwargs)
            content = response.choices[0].message.content
        except Exception as exc:  # noqa: BLE001
            raise ProviderError(model, str(exc) or type(exc).__name__) from exc

        if not content:
            raise ProviderError(model, "empty completion")

        logger.info(
            "call_ai: %s answered in %.0f ms (%d chars)",
            model,
            (time.perf_counter() - start) * 1000,
            len(content),
        )
        return content

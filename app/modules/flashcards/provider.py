"""Text-generation provider boundary.

The generation service only needs ``complete(prompt) -> text``. The default
implementation wraps a pydantic-ai ``Agent`` with plain string output; model
imports and construction are kept lazy so missing credentials only matter
once a request actually reaches the provider.
"""

from __future__ import annotations

from typing import Protocol

import httpx
from pydantic_ai import Agent
from pydantic_ai.exceptions import AgentRunError, UserError

from app.core.config import GenerationSettings, settings
from app.core.logging import get_logger
from app.modules.flashcards.errors import ProviderError

logger = get_logger(__name__)


class TextGenerationProvider(Protocol):
    model_name: str

    async def complete(self, prompt: str) -> str: ...


SYSTEM_PROMPT = (
    "You are an expert educator who turns study notes into focused, accurate "
    "flashcards. Use only facts stated in the notes. Reply with a single JSON "
    "object and nothing else: "
    '{"flashcards": [{"question", "answer", "difficulty", "category", "source"}], '
    '"confidence"}. '
    "Rules: "
    "- question: clear and atomic, plain text, no markdown. "
    "- answer: concise (1-4 sentences), plain text. "
    "- difficulty: one of easy, medium, hard. "
    "- category: a short lowercase topic label (1-3 words). "
    "- source: the sentence of the notes the card is based on, copied verbatim. "
    "- confidence: a number between 0 and 1 for how well the notes support the cards. "
    "- Do not include code fences or commentary."
)


def _build_google_model(gen: GenerationSettings):
    """Build the Google Gemini model provider (lazy import)."""
    from pydantic_ai.models.google import GoogleModel
    from pydantic_ai.providers.google import GoogleProvider

    provider = GoogleProvider(api_key=gen.gemini_api_key)
    return GoogleModel(gen.gemini_model, provider=provider)


def _build_openrouter_model(gen: GenerationSettings):
    """Build OpenRouter model via OpenAI-compatible provider (lazy import)."""
    from pydantic_ai.models.openai import OpenAIChatModel
    from pydantic_ai.providers.openai import OpenAIProvider

    if not gen.openrouter_api_key:
        raise RuntimeError(
            "OpenRouter API key not configured. Set OPENROUTER_API_KEY in your environment."
        )

    provider = OpenAIProvider(
        api_key=gen.openrouter_api_key,
        base_url="https://openrouter.ai/api/v1",
    )
    return OpenAIChatModel(gen.openrouter_model, provider=provider)


def build_model(gen: GenerationSettings | None = None):
    gen = gen or settings.generation
    if _uses_openrouter(gen):
        return _build_openrouter_model(gen), gen.openrouter_model
    return _build_google_model(gen), gen.gemini_model


def _uses_openrouter(gen: GenerationSettings) -> bool:
    return (gen.model_provider or "google").lower() == "openrouter"


class AgentTextProvider:
    """``TextGenerationProvider`` backed by a pydantic-ai agent.

    Without an explicit ``model`` the configured one is built on the first
    ``complete`` call, so missing credentials surface as ``ProviderError``
    rather than failing at construction.
    """

    def __init__(self, model=None, *, model_name: str | None = None) -> None:
        self._model = model
        self._agent: Agent[None, str] | None = None
        if model_name:
            self.model_name = model_name
        elif model is not None:
            self.model_name = getattr(model, "model_name", "unknown")
        else:
            gen = settings.generation
            self.model_name = (
                gen.openrouter_model if _uses_openrouter(gen) else gen.gemini_model
            )

    def _get_agent(self) -> Agent[None, str]:
        if self._agent is None:
            model = self._model
            if model is None:
                try:
                    model, _ = build_model()
                except (UserError, RuntimeError) as e:
                    logger.error(f"Provider {self.model_name} is not configured: {e}")
                    raise ProviderError(
                        "Text generation provider is not configured", detail=str(e)
                    ) from e
            # Output validation retries are not wanted here; provider-level
            # retries are handled by the generation service.
            self._agent = Agent[None, str](
                model=model,
                output_type=str,
                system_prompt=SYSTEM_PROMPT,
                retries=0,
            )
        return self._agent

    async def complete(self, prompt: str) -> str:
        agent = self._get_agent()
        try:
            res = await agent.run(prompt)
        except (AgentRunError, UserError, httpx.HTTPError) as e:
            logger.warning(f"Provider {self.model_name} failed: {e}")
            raise ProviderError("Text generation provider failed", detail=str(e)) from e
        return res.output


def get_default_provider() -> TextGenerationProvider:
    return AgentTextProvider()

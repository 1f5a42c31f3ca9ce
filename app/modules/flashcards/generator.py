"""Flashcard generation from study notes.

``FlashcardGenerationService`` validates a request, asks the text-generation
provider for cards, parses the reply and labels every card with a difficulty,
a category and the notes excerpt it came from. Nothing is persisted here.
"""

from __future__ import annotations

import asyncio
import logging
import re
import time

from pydantic import ValidationError

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from app.core.config import GenerationSettings, settings
from app.core.logging import get_logger
from app.modules.flashcards.classifier import (
    classify_category,
    classify_difficulty,
    find_source_excerpt,
)
from app.modules.flashcards.errors import (
    FlashcardValidationError,
    ProviderError,
    ProviderTimeoutError,
)
from app.modules.flashcards.models import (
    Difficulty,
    DifficultyFilter,
    GeneratedFlashcard,
    GenerationRequest,
    GenerationResult,
)
from app.modules.flashcards.parser import parse_reply
from app.modules.flashcards.provider import TextGenerationProvider, get_default_provider

logger = get_logger(__name__)

_BLANK_LINES_RE = re.compile(r"\n{3,}")
_SPACES_RE = re.compile(r"[ \t]+")


def clean_notes(notes: str) -> str:
    text = notes.replace("\r\n", "\n").replace("\r", "\n")
    lines = [_SPACES_RE.sub(" ", line).strip() for line in text.split("\n")]
    return _BLANK_LINES_RE.sub("\n\n", "\n".join(lines)).strip()


def _build_instruction(
    notes: str, count: int, difficulty: DifficultyFilter, subject: str | None
) -> str:
    if difficulty is DifficultyFilter.MIXED:
        level = "Mix easy, medium and hard cards."
    else:
        level = f"Every card must be {difficulty.value} difficulty."
    subject_line = f"Subject: {subject}\n" if subject else ""
    return (
        f"Create up to {count} flashcards from the study notes below. "
        f"{level} Follow the system rules and output only the JSON object.\n\n"
        f"{subject_line}"
        f"Notes:\n{notes}"
    )


class FlashcardGenerationService:
    """Validates, delegates and shapes a single generation request."""

    def __init__(
        self,
        provider: TextGenerationProvider | None = None,
        *,
        config: GenerationSettings | None = None,
    ) -> None:
        self._provider = provider
        self.config = config or settings.generation

    @property
    def provider(self) -> TextGenerationProvider:
        # Resolved on first use so invalid requests never touch the default provider
        if self._provider is None:
            self._provider = get_default_provider()
        return self._provider

    def validate(
        self, request: GenerationRequest, *, max_count: int | None = None
    ) -> tuple[str, DifficultyFilter]:
        if not request.notes or not request.notes.strip():
            raise FlashcardValidationError("Notes must not be empty")
        if len(request.notes) > self.config.max_notes_chars:
            raise FlashcardValidationError(
                f"Notes exceed the maximum length of {self.config.max_notes_chars} characters"
            )

        ceiling = self.config.max_cards
        if max_count is not None:
            ceiling = min(ceiling, max_count)
        if isinstance(request.count, bool) or not isinstance(request.count, int):
            raise FlashcardValidationError("Count must be an integer")
        if request.count <= 0:
            raise FlashcardValidationError("Count must be a positive integer")
        if request.count > ceiling:
            raise FlashcardValidationError(f"Count must not exceed {ceiling}")

        raw = request.difficulty
        label = raw.value if isinstance(raw, DifficultyFilter) else str(raw or "")
        try:
            difficulty = DifficultyFilter(label.strip().lower())
        except ValueError:
            allowed = ", ".join(d.value for d in DifficultyFilter)
            raise FlashcardValidationError(
                f"Unknown difficulty {raw!r}; expected one of {allowed}"
            ) from None

        return clean_notes(request.notes), difficulty

    async def _complete(self, prompt: str) -> str:
        """Call the provider with retries on ``ProviderError``.

        ``timeout_seconds`` bounds each attempt. A timed out attempt is not
        retried, so the worst case is ``retry_attempts`` failed calls plus backoff.
        """
        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(ProviderError),
            stop=stop_after_attempt(max(1, self.config.retry_attempts)),
            wait=wait_exponential(multiplier=1, max=self.config.retry_max_wait),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        ):
            with attempt:
                try:
                    return await asyncio.wait_for(
                        self.provider.complete(prompt),
                        timeout=self.config.timeout_seconds,
                    )
                except asyncio.TimeoutError:
                    raise ProviderTimeoutError(
                        f"Provider did not respond within {self.config.timeout_seconds}s"
                    ) from None

    async def generate(
        self, request: GenerationRequest, *, max_count: int | None = None
    ) -> GenerationResult:
        started = time.perf_counter()
        notes, difficulty = self.validate(request, max_count=max_count)
        subject = (request.subject or "").strip() or None

        logger.info(
            f"Generating up to {request.count} flashcards "
            f"(difficulty={difficulty.value}, model={self.provider.model_name})"
        )
        prompt = _build_instruction(notes, request.count, difficulty, subject)
        try:
            reply = await self._complete(prompt)
        except ProviderTimeoutError:
            logger.error("Flashcard generation timed out")
            raise
        except ProviderError as e:
            logger.error(f"Flashcard generation failed: {e} ({e.detail})")
            raise

        parsed = parse_reply(reply)
        if parsed.dropped:
            logger.info(f"Dropped {parsed.dropped} malformed flashcard items")
        if not parsed.items:
            raise ProviderError(
                "Provider returned no usable flashcards", detail=reply[:500]
            )

        cards: list[GeneratedFlashcard] = []
        for item in parsed.items[: request.count]:
            if difficulty is DifficultyFilter.MIXED:
                level = classify_difficulty(item.question, item.answer, item.difficulty)
            else:
                level = Difficulty(difficulty.value)
            cards.append(
                GeneratedFlashcard(
                    question=item.question,
                    answer=item.answer,
                    difficulty=level,
                    category=classify_category(
                        item.question, item.answer, item.category, subject
                    ),
                    source_excerpt=item.source
                    or find_source_excerpt(item.question, item.answer, notes),
                )
            )

        confidence = (
            parsed.confidence
            if parsed.confidence is not None
            else self.config.default_confidence
        )
        duration_ms = round((time.perf_counter() - started) * 1000.0, 2)
        logger.info(f"Generated {len(cards)} flashcards in {duration_ms}ms")
        return GenerationResult(
            flashcards=cards,
            requested_count=request.count,
            duration_ms=duration_ms,
            model=self.provider.model_name,
            confidence=confidence,
        )


async def generate_flashcards(
    notes: str,
    count: int,
    difficulty: str = DifficultyFilter.MIXED.value,
    subject: str | None = None,
    *,
    provider: TextGenerationProvider | None = None,
) -> GenerationResult:
    """Generate a validated, classified set of flashcards from notes."""
    try:
        request = GenerationRequest(
            notes=notes, count=count, difficulty=difficulty, subject=subject
        )
    except ValidationError as e:
        raise FlashcardValidationError(str(e)) from e
    return await FlashcardGenerationService(provider).generate(request)


def generate_flashcards_sync(
    notes: str,
    count: int,
    difficulty: str = DifficultyFilter.MIXED.value,
    subject: str | None = None,
    *,
    provider: TextGenerationProvider | None = None,
) -> GenerationResult:
    """Synchronous wrapper if an event loop is unavailable."""
    return asyncio.run(
        generate_flashcards(notes, count, difficulty, subject, provider=provider)
    )

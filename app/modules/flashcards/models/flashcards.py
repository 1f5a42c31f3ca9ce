"""Pydantic models for flashcard generation requests and results.

Generated cards are transient: they carry no id or owner until the caller
saves them through the repository.
"""

from __future__ import annotations

import enum

from pydantic import AliasChoices, BaseModel, Field, field_validator


class Difficulty(str, enum.Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class DifficultyFilter(str, enum.Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    MIXED = "mixed"


UNCATEGORIZED = "uncategorized"


class GenerationRequest(BaseModel):
    """Raw caller input; checked by the service rather than by pydantic."""

    notes: str
    count: int
    difficulty: str = DifficultyFilter.MIXED.value
    subject: str | None = None


class GeneratedFlashcard(BaseModel):
    """Question/answer pair with classification, not yet persisted."""

    question: str
    answer: str
    difficulty: Difficulty = Difficulty.MEDIUM
    category: str = UNCATEGORIZED
    source_excerpt: str = ""


class GenerationResult(BaseModel):
    flashcards: list[GeneratedFlashcard] = Field(default_factory=list)
    requested_count: int
    duration_ms: float
    model: str
    confidence: float = Field(ge=0.0, le=1.0)


QUESTION_KEYS = ("question", "q", "front", "prompt")
ANSWER_KEYS = ("answer", "a", "back", "response")


class ParsedItem(BaseModel):
    """One question/answer item lifted out of a provider reply.

    Models name the fields inconsistently, so common aliases are accepted.
    Blank text counts as missing.
    """

    question: str = Field(validation_alias=AliasChoices(*QUESTION_KEYS))
    answer: str = Field(validation_alias=AliasChoices(*ANSWER_KEYS))
    difficulty: str | None = None
    category: str | None = Field(
        default=None, validation_alias=AliasChoices("category", "topic")
    )
    source: str | None = Field(
        default=None, validation_alias=AliasChoices("source", "source_excerpt")
    )

    @field_validator("question", "answer", "difficulty", "category", "source", mode="before")
    @classmethod
    def _as_text(cls, value):
        if isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            value = str(value)
        if isinstance(value, str):
            return value.strip() or None
        return None


class ParsedReply(BaseModel):
    items: list[ParsedItem] = Field(default_factory=list)
    confidence: float | None = None
    dropped: int = 0

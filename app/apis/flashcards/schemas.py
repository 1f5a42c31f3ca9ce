from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from app.modules.flashcards.models import (
    UNCATEGORIZED,
    Difficulty,
    DifficultyFilter,
    GeneratedFlashcard,
)


class GenerateRequest(BaseModel):
    notes: str = Field(..., description="Study notes to turn into flashcards")
    count: int = Field(10, description="Number of cards to request")
    difficulty: DifficultyFilter = Field(
        DifficultyFilter.MIXED, description="easy, medium, hard or mixed"
    )
    subject: str | None = Field(None, description="Optional subject/category hint")


class FlashcardCreate(BaseModel):
    question: str = Field(..., min_length=1)
    answer: str = Field(..., min_length=1)
    difficulty: Difficulty = Difficulty.MEDIUM
    category: str = UNCATEGORIZED
    source_excerpt: str = ""

    def to_generated(self) -> GeneratedFlashcard:
        return GeneratedFlashcard(**self.model_dump())


class SaveFlashcardsRequest(BaseModel):
    cards: list[FlashcardCreate] = Field(..., min_length=1)


class FlashcardUpdate(BaseModel):
    question: str | None = Field(None, min_length=1)
    answer: str | None = Field(None, min_length=1)
    difficulty: Difficulty | None = None
    category: str | None = None


class FlashcardRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    question: str
    answer: str
    difficulty: Difficulty
    category: str
    source_excerpt: str
    created_at: datetime
    updated_at: datetime

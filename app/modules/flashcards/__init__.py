"""Flashcards module exports."""

from .errors import (
    FlashcardError,
    FlashcardNotFoundError,
    FlashcardValidationError,
    PersistenceError,
    ProviderError,
    ProviderTimeoutError,
)
from .models.flashcards import (
    Difficulty,
    DifficultyFilter,
    GeneratedFlashcard,
    GenerationRequest,
    GenerationResult,
)
from .generator import (
    FlashcardGenerationService,
    generate_flashcards,
    generate_flashcards_sync,
)

__all__ = [
    "Difficulty",
    "DifficultyFilter",
    "GeneratedFlashcard",
    "GenerationRequest",
    "GenerationResult",
    "FlashcardGenerationService",
    "generate_flashcards",
    "generate_flashcards_sync",
    "FlashcardError",
    "FlashcardNotFoundError",
    "FlashcardValidationError",
    "PersistenceError",
    "ProviderError",
    "ProviderTimeoutError",
]

from .flashcards import (
    UNCATEGORIZED,
    Difficulty,
    DifficultyFilter,
    GeneratedFlashcard,
    GenerationRequest,
    GenerationResult,
    ParsedItem,
    ParsedReply,
)

__all__ = [
    "UNCATEGORIZED",
    "Difficulty",
    "DifficultyFilter",
    "GeneratedFlashcard",
    "GenerationRequest",
    "GenerationResult",
    "ParsedItem",
    "ParsedReply",
]

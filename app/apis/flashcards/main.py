from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response, status

from app.core.config import settings
from app.apis.deps import (
    CurrentUser,
    get_card_limit,
    get_flashcard_repository,
    get_generation_service,
)
from app.core.logging import get_logger
from app.modules.flashcards.generator import FlashcardGenerationService
from app.modules.flashcards.models import Difficulty, GenerationRequest, GenerationResult
from app.modules.flashcards.repository import FlashcardRepository
from .schemas import (
    FlashcardRead,
    FlashcardUpdate,
    GenerateRequest,
    SaveFlashcardsRequest,
)


router = APIRouter()
logger = get_logger(__name__)

PREFIX = f"/{settings.app.version}/flashcards"


@router.post(
    f"{PREFIX}/generate",
    response_model=GenerationResult,
    status_code=status.HTTP_200_OK,
    tags=["flashcards"],
)
async def generate(
    req: GenerateRequest,
    user: CurrentUser,
    card_limit: int = Depends(get_card_limit),
    service: FlashcardGenerationService = Depends(get_generation_service),
) -> GenerationResult:
    """Generate flashcards from notes. Nothing is saved until POST /flashcards."""
    logger.info(
        f"Generation requested: count={req.count}, difficulty={req.difficulty.value}",
        extra={"user_id": user.id},
    )
    return await service.generate(
        GenerationRequest(
            notes=req.notes,
            count=req.count,
            difficulty=req.difficulty.value,
            subject=req.subject,
        ),
        max_count=card_limit,
    )


@router.post(
    PREFIX,
    response_model=list[FlashcardRead],
    status_code=status.HTTP_201_CREATED,
    tags=["flashcards"],
)
async def save_flashcards(
    req: SaveFlashcardsRequest,
    repo: FlashcardRepository = Depends(get_flashcard_repository),
) -> list[FlashcardRead]:
    rows = await repo.save_many(c.to_generated() for c in req.cards)
    return [FlashcardRead.model_validate(r) for r in rows]


@router.get(
    PREFIX,
    response_model=list[FlashcardRead],
    tags=["flashcards"],
)
async def list_flashcards(
    difficulty: Difficulty | None = Query(None),
    category: str | None = Query(None),
    repo: FlashcardRepository = Depends(get_flashcard_repository),
) -> list[FlashcardRead]:
    rows = await repo.list_cards(difficulty=difficulty, category=category)
    return [FlashcardRead.model_validate(r) for r in rows]


@router.get(
    f"{PREFIX}/{{flashcard_id:int}}",
    response_model=FlashcardRead,
    tags=["flashcards"],
)
async def get_flashcard(
    flashcard_id: int,
    repo: FlashcardRepository = Depends(get_flashcard_repository),
) -> FlashcardRead:
    return FlashcardRead.model_validate(await repo.get(flashcard_id))


@router.patch(
    f"{PREFIX}/{{flashcard_id:int}}",
    response_model=FlashcardRead,
    tags=["flashcards"],
)
async def update_flashcard(
    flashcard_id: int,
    req: FlashcardUpdate,
    repo: FlashcardRepository = Depends(get_flashcard_repository),
) -> FlashcardRead:
    row = await repo.update(flashcard_id, **req.model_dump(exclude_unset=True))
    return FlashcardRead.model_validate(row)


@router.delete(
    f"{PREFIX}/{{flashcard_id:int}}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["flashcards"],
)
async def delete_flashcard(
    flashcard_id: int,
    repo: FlashcardRepository = Depends(get_flashcard_repository),
) -> Response:
    await repo.delete(flashcard_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

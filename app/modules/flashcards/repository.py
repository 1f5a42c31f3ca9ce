"""Database access for saved flashcards.

Every query is scoped to the user the repository is bound to, so rows owned
by someone else behave exactly like missing rows.
"""

from __future__ import annotations

from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db.schemas.flashcards import Flashcard
from app.core.logging import get_logger
from app.modules.flashcards.classifier import normalize_category
from app.modules.flashcards.errors import (
    FlashcardNotFoundError,
    FlashcardValidationError,
    PersistenceError,
)
from app.modules.flashcards.models import UNCATEGORIZED, Difficulty, GeneratedFlashcard

logger = get_logger(__name__)


def _required_text(value: Optional[str], field: str) -> str:
    if not value or not value.strip():
        raise FlashcardValidationError(f"Flashcard {field} must not be empty")
    return value


class FlashcardRepository:
    """Save, list, update and delete the flashcards of one user."""

    def __init__(self, session: AsyncSession, user_id: int):
        self.session = session
        self.user_id = user_id

    def _to_row(self, card: GeneratedFlashcard) -> Flashcard:
        return Flashcard(
            user_id=self.user_id,
            question=_required_text(card.question, "question"),
            answer=_required_text(card.answer, "answer"),
            difficulty=card.difficulty,
            category=normalize_category(card.category) or UNCATEGORIZED,
            source_excerpt=card.source_excerpt or "",
        )

    async def _commit(self, *rows: Flashcard) -> None:
        try:
            await self.session.commit()
            for row in rows:
                await self.session.refresh(row)
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(
                f"Flashcard write failed: {e}", extra={"user_id": self.user_id}
            )
            raise PersistenceError("Could not write flashcards") from e

    async def save(self, card: GeneratedFlashcard) -> int:
        """Persist a single card and return its id."""
        row = self._to_row(card)
        self.session.add(row)
        await self._commit(row)
        return row.id

    async def save_many(self, cards: Iterable[GeneratedFlashcard]) -> list[Flashcard]:
        rows = [self._to_row(c) for c in cards]
        if not rows:
            return []
        self.session.add_all(rows)
        await self._commit(*rows)
        logger.info(f"Saved {len(rows)} flashcards", extra={"user_id": self.user_id})
        return rows

    async def list_cards(
        self,
        *,
        difficulty: Optional[Difficulty] = None,
        category: Optional[str] = None,
    ) -> list[Flashcard]:
        stmt = select(Flashcard).where(Flashcard.user_id == self.user_id)
        if difficulty is not None:
            stmt = stmt.where(Flashcard.difficulty == difficulty)
        if category:
            stmt = stmt.where(
                Flashcard.category == (normalize_category(category) or UNCATEGORIZED)
            )
        stmt = stmt.order_by(Flashcard.created_at.desc(), Flashcard.id.desc())
        try:
            rows = await self.session.execute(stmt)
        except SQLAlchemyError as e:
            logger.error(f"Flashcard query failed: {e}", extra={"user_id": self.user_id})
            raise PersistenceError("Could not load flashcards") from e
        return list(rows.scalars().all())

    async def get(self, flashcard_id: int) -> Flashcard:
        try:
            result = await self.session.execute(
                select(Flashcard).where(
                    Flashcard.id == flashcard_id, Flashcard.user_id == self.user_id
                )
            )
        except SQLAlchemyError as e:
            raise PersistenceError("Could not load flashcard") from e
        card = result.scalar_one_or_none()
        if card is None:
            raise FlashcardNotFoundError(f"Flashcard {flashcard_id} not found")
        return card

    async def update(
        self,
        flashcard_id: int,
        *,
        question: Optional[str] = None,
        answer: Optional[str] = None,
        difficulty: Optional[Difficulty] = None,
        category: Optional[str] = None,
    ) -> Flashcard:
        card = await self.get(flashcard_id)
        if question is not None:
            card.question = _required_text(question, "question")
        if answer is not None:
            card.answer = _required_text(answer, "answer")
        if difficulty is not None:
            card.difficulty = difficulty
        if category is not None:
            card.category = normalize_category(category) or UNCATEGORIZED
        await self._commit(card)
        return card

    async def delete(self, flashcard_id: int) -> None:
        card = await self.get(flashcard_id)
        await self.session.delete(card)
        await self._commit()
        logger.info(
            f"Deleted flashcard {flashcard_id}", extra={"user_id": self.user_id}
        )

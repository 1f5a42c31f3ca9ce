from __future__ import annotations

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db.base import get_session
from app.core.db.schemas.auth import User
from app.modules.auth import current_active_user
from app.modules.billing import (
    PaymentProvider,
    SubscriptionService,
    get_payment_provider,
    plan_card_limit,
)
from app.modules.flashcards.generator import FlashcardGenerationService
from app.modules.flashcards.provider import TextGenerationProvider, get_default_provider
from app.modules.flashcards.repository import FlashcardRepository


CurrentUser = Annotated[User, Depends(current_active_user)]
Session = Annotated[AsyncSession, Depends(get_session)]


def get_text_provider() -> TextGenerationProvider:
    """Provider used by generation routes; overridden in tests."""
    return get_default_provider()


def get_generation_service(
    provider: TextGenerationProvider = Depends(get_text_provider),
) -> FlashcardGenerationService:
    return FlashcardGenerationService(provider)


def get_billing_provider() -> PaymentProvider:
    return get_payment_provider()


def get_flashcard_repository(user: CurrentUser, session: Session) -> FlashcardRepository:
    return FlashcardRepository(session, user.id)


async def get_card_limit(user: CurrentUser, session: Session) -> int:
    """Per-request card ceiling for the current user's plan."""
    plan = await SubscriptionService(session).get_plan(user.id)
    return plan_card_limit(plan)

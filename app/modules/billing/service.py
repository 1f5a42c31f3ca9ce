"""Subscription state and plan gating."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.db.schemas.auth import User
from app.core.db.schemas.billing import Plan, Subscription, SubscriptionStatus
from app.core.logging import get_logger
from app.modules.flashcards.errors import PersistenceError

logger = get_logger(__name__)


def plan_card_limit(plan: Plan) -> int:
    """Per-request card ceiling for ``plan``, never above the global maximum."""
    limit = (
        settings.billing.pro_max_cards
        if plan is Plan.PRO
        else settings.billing.free_max_cards
    )
    return min(limit, settings.generation.max_cards)


class SubscriptionService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def _commit(self, sub: Subscription) -> None:
        user_id = sub.user_id
        try:
            await self.session.commit()
            await self.session.refresh(sub)
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(
                f"Subscription write failed: {e}", extra={"user_id": user_id}
            )
            raise PersistenceError("Could not update subscription") from e

    async def get(self, user_id: int) -> Optional[Subscription]:
        result = await self.session.execute(
            select(Subscription).where(Subscription.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_plan(self, user_id: int) -> Plan:
        sub = await self.get(user_id)
        if sub is None or sub.status is not SubscriptionStatus.ACTIVE:
            return Plan.FREE
        return sub.plan

    async def activate(
        self,
        user_id: int,
        plan: Plan,
        *,
        customer_id: Optional[str] = None,
        subscription_id: Optional[str] = None,
    ) -> Subscription:
        sub = await self.get(user_id)
        if sub is None:
            sub = Subscription(user_id=user_id)
            self.session.add(sub)
        sub.plan = plan
        sub.status = SubscriptionStatus.ACTIVE
        if customer_id:
            sub.customer_id = customer_id
        if subscription_id:
            sub.provider_subscription_id = subscription_id
        await self._commit(sub)
        logger.info(f"Activated plan {plan.value}", extra={"user_id": user_id})
        return sub

    async def cancel_by_subscription_id(self, subscription_id: str) -> Optional[Subscription]:
        result = await self.session.execute(
            select(Subscription).where(
                Subscription.provider_subscription_id == subscription_id
            )
        )
        sub = result.scalar_one_or_none()
        if sub is None:
            logger.warning(f"No subscription found for {subscription_id}")
            return None
        sub.status = SubscriptionStatus.CANCELED
        sub.plan = Plan.FREE
        await self._commit(sub)
        logger.info("Subscription canceled", extra={"user_id": sub.user_id})
        return sub

    async def handle_event(self, event: Mapping[str, Any]) -> bool:
        """Apply a verified payment event. Returns False for ignored types."""
        event_type = event.get("type")
        obj = (event.get("data") or {}).get("object") or {}

        if event_type == "checkout.session.completed":
            metadata = obj.get("metadata") or {}
            raw_user = metadata.get("user_id") or obj.get("client_reference_id")
            try:
                user_id = int(raw_user)
                plan = Plan(metadata.get("plan", Plan.PRO.value))
            except (TypeError, ValueError):
                logger.warning(f"Ignoring checkout event with bad metadata: {metadata}")
                return False
            if await self.session.get(User, user_id) is None:
                logger.warning(f"Ignoring checkout event for unknown user {user_id}")
                return False
            await self.activate(
                user_id,
                plan,
                customer_id=obj.get("customer"),
                subscription_id=obj.get("subscription"),
            )
            return True

        if event_type == "customer.subscription.deleted":
            sub_id = obj.get("id")
            if not sub_id:
                return False
            return await self.cancel_by_subscription_id(sub_id) is not None

        logger.debug(f"Ignoring payment event {event_type}")
        return False

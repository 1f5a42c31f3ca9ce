from __future__ import annotations

from fastapi import APIRouter, Depends, Header, Request

from app.apis.deps import CurrentUser, Session, get_billing_provider
from app.core.config import settings
from app.core.db.schemas.billing import SubscriptionStatus
from app.core.logging import get_logger
from app.modules.billing import PaymentProvider, SubscriptionService, plan_card_limit
from .schemas import (
    CheckoutRequest,
    CheckoutResponse,
    SubscriptionRead,
    WebhookResponse,
)


router = APIRouter()
logger = get_logger(__name__)

PREFIX = f"/{settings.app.version}/billing"


@router.get(
    f"{PREFIX}/subscription",
    response_model=SubscriptionRead,
    tags=["billing"],
)
async def get_subscription(user: CurrentUser, session: Session) -> SubscriptionRead:
    svc = SubscriptionService(session)
    sub = await svc.get(user.id)
    plan = await svc.get_plan(user.id)
    return SubscriptionRead(
        plan=plan,
        status=sub.status.value if sub else SubscriptionStatus.ACTIVE.value,
        max_cards_per_request=plan_card_limit(plan),
    )


@router.post(
    f"{PREFIX}/checkout",
    response_model=CheckoutResponse,
    tags=["billing"],
)
async def create_checkout(
    req: CheckoutRequest,
    user: CurrentUser,
    provider: PaymentProvider = Depends(get_billing_provider),
) -> CheckoutResponse:
    receipt = await provider.charge(user.id, req.plan, str(user.email))
    return CheckoutResponse(**receipt.model_dump())


@router.post(
    f"{PREFIX}/webhook",
    response_model=WebhookResponse,
    tags=["billing"],
)
async def payment_webhook(
    request: Request,
    session: Session,
    stripe_signature: str | None = Header(default=None, alias="Stripe-Signature"),
    provider: PaymentProvider = Depends(get_billing_provider),
) -> WebhookResponse:
    payload = await request.body()
    event = provider.parse_event(payload, stripe_signature)
    logger.info(f"Payment event received: {event.get('type')}")
    handled = await SubscriptionService(session).handle_event(event)
    return WebhookResponse(received=True, handled=handled)

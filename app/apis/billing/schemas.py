from __future__ import annotations

from pydantic import BaseModel

from app.core.db.schemas.billing import Plan


class SubscriptionRead(BaseModel):
    plan: Plan
    status: str
    max_cards_per_request: int


class CheckoutRequest(BaseModel):
    plan: Plan = Plan.PRO


class CheckoutResponse(BaseModel):
    session_id: str
    url: str | None = None
    plan: Plan


class WebhookResponse(BaseModel):
    received: bool
    handled: bool

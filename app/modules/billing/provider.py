"""Payment processor boundary.

Only two things are needed from the processor: a hosted checkout session for
a paid plan and verified webhook events. Stripe calls are blocking, so they
run in a worker thread.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Optional, Protocol

import stripe
from pydantic import BaseModel

from app.core.config import BillingSettings, settings
from app.core.db.schemas.billing import Plan
from app.core.logging import get_logger

logger = get_logger(__name__)


class BillingError(Exception):
    kind = "billing_error"


class CheckoutReceipt(BaseModel):
    session_id: str
    url: Optional[str] = None
    plan: Plan


class PaymentProvider(Protocol):
    async def charge(
        self, user_id: int, plan: Plan, email: Optional[str] = None
    ) -> CheckoutReceipt: ...

    def parse_event(self, payload: bytes, signature: Optional[str]) -> dict[str, Any]: ...


class StripePaymentProvider:
    def __init__(self, config: BillingSettings | None = None) -> None:
        self.config = config or settings.billing

    def _price_for(self, plan: Plan) -> str:
        if plan is not Plan.PRO:
            raise BillingError(f"Plan {plan.value!r} cannot be purchased")
        if not self.config.stripe_pro_price_id:
            raise BillingError("STRIPE_PRO_PRICE_ID is not configured")
        return self.config.stripe_pro_price_id

    async def charge(
        self, user_id: int, plan: Plan, email: Optional[str] = None
    ) -> CheckoutReceipt:
        """Create a subscription checkout session for ``plan``."""
        price_id = self._price_for(plan)
        if not self.config.stripe_api_key:
            raise BillingError("STRIPE_API_KEY is not configured")

        metadata = {"user_id": str(user_id), "plan": plan.value}
        params: dict[str, Any] = {
            "api_key": self.config.stripe_api_key,
            "mode": "subscription",
            "line_items": [{"price": price_id, "quantity": 1}],
            "success_url": self.config.success_url,
            "cancel_url": self.config.cancel_url,
            "client_reference_id": str(user_id),
            "metadata": metadata,
            "subscription_data": {"metadata": metadata},
        }
        if email:
            params["customer_email"] = email

        try:
            session = await asyncio.to_thread(stripe.checkout.Session.create, **params)
        except stripe.StripeError as e:
            logger.error(f"Checkout session failed: {e}", extra={"user_id": user_id})
            raise BillingError(f"Payment provider error: {e.user_message or e}") from e

        logger.info(
            f"Created checkout session {session.id} for plan {plan.value}",
            extra={"user_id": user_id},
        )
        return CheckoutReceipt(session_id=session.id, url=session.url, plan=plan)

    def parse_event(self, payload: bytes, signature: Optional[str]) -> dict[str, Any]:
        """Verify a webhook payload signature and return the event."""
        if not self.config.stripe_webhook_secret:
            raise BillingError("STRIPE_WEBHOOK_SECRET is not configured")
        if not signature:
            raise BillingError("Missing Stripe-Signature header")
        try:
            stripe.Webhook.construct_event(
                payload, signature, self.config.stripe_webhook_secret
            )
        except ValueError as e:
            raise BillingError("Invalid webhook payload") from e
        except stripe.SignatureVerificationError as e:
            raise BillingError("Invalid webhook signature") from e
        # Verified above; hand back plain JSON rather than StripeObject
        return json.loads(payload)


def get_payment_provider() -> PaymentProvider:
    return StripePaymentProvider()

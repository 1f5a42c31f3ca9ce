"""Tests for subscriptions, plan gating and the payment webhook."""

import hashlib
import hmac
import json
import time

import pytest
from httpx import AsyncClient
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import BillingSettings
from app.core.db.schemas import Plan, SubscriptionStatus, User
from app.modules.billing import (
    BillingError,
    StripePaymentProvider,
    SubscriptionService,
    plan_card_limit,
)
from app.modules.flashcards import PersistenceError
from tests.conftest import FakePaymentProvider

WEBHOOK_SECRET = "whsec_test"


def _billing_config(**overrides) -> BillingSettings:
    values = {
        "STRIPE_API_KEY": None,
        "STRIPE_WEBHOOK_SECRET": WEBHOOK_SECRET,
        "STRIPE_PRO_PRICE_ID": "price_pro",
    }
    values.update(overrides)
    return BillingSettings(**values)


def _sign(payload: bytes, secret: str = WEBHOOK_SECRET) -> str:
    timestamp = int(time.time())
    signed = f"{timestamp}.{payload.decode()}".encode()
    digest = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


def _checkout_completed(user_id: int, plan: str = "pro") -> dict:
    return {
        "type": "checkout.session.completed",
        "data": {
            "object": {
                "client_reference_id": str(user_id),
                "customer": "cus_123",
                "subscription": "sub_123",
                "metadata": {"user_id": str(user_id), "plan": plan},
            }
        },
    }


class TestPlanLimits:
    def test_free_and_pro_limits(self):
        assert plan_card_limit(Plan.FREE) == 10
        assert plan_card_limit(Plan.PRO) == 50

    def test_limit_never_exceeds_global_maximum(self, monkeypatch):
        from app.core.config import settings

        monkeypatch.setattr(settings.generation, "max_cards", 20)

        assert plan_card_limit(Plan.PRO) == 20


class TestSubscriptionService:
    @pytest.mark.asyncio
    async def test_user_without_subscription_is_free(
        self, db_session: AsyncSession, test_user: User
    ):
        assert await SubscriptionService(db_session).get_plan(test_user.id) is Plan.FREE

    @pytest.mark.asyncio
    async def test_checkout_completed_activates_pro(
        self, db_session: AsyncSession, test_user: User
    ):
        svc = SubscriptionService(db_session)

        handled = await svc.handle_event(_checkout_completed(test_user.id))

        assert handled is True
        sub = await svc.get(test_user.id)
        assert sub.plan is Plan.PRO
        assert sub.status is SubscriptionStatus.ACTIVE
        assert sub.customer_id == "cus_123"
        assert sub.provider_subscription_id == "sub_123"

    @pytest.mark.asyncio
    async def test_activation_is_idempotent(
        self, db_session: AsyncSession, test_user: User
    ):
        svc = SubscriptionService(db_session)

        first = await svc.activate(test_user.id, Plan.PRO, subscription_id="sub_1")
        second = await svc.activate(test_user.id, Plan.PRO)

        assert first.id == second.id
        assert second.provider_subscription_id == "sub_1"

    @pytest.mark.asyncio
    async def test_subscription_deleted_downgrades(
        self, db_session: AsyncSession, test_user: User
    ):
        svc = SubscriptionService(db_session)
        await svc.handle_event(_checkout_completed(test_user.id))

        handled = await svc.handle_event(
            {"type": "customer.subscription.deleted", "data": {"object": {"id": "sub_123"}}}
        )

        assert handled is True
        assert await svc.get_plan(test_user.id) is Plan.FREE
        assert (await svc.get(test_user.id)).status is SubscriptionStatus.CANCELED

    @pytest.mark.asyncio
    async def test_unknown_events_and_bad_metadata_are_ignored(
        self, db_session: AsyncSession, test_user: User
    ):
        svc = SubscriptionService(db_session)

        assert await svc.handle_event({"type": "invoice.paid", "data": {}}) is False
        assert (
            await svc.handle_event(
                {"type": "checkout.session.completed", "data": {"object": {}}}
            )
            is False
        )
        assert (
            await svc.handle_event(
                {"type": "customer.subscription.deleted", "data": {"object": {"id": "sub_x"}}}
            )
            is False
        )
        assert await svc.get(test_user.id) is None

    @pytest.mark.asyncio
    async def test_checkout_for_unknown_user_is_ignored(self, db_session: AsyncSession):
        svc = SubscriptionService(db_session)

        handled = await svc.handle_event(_checkout_completed(999))

        assert handled is False
        assert await svc.get(999) is None

    @pytest.mark.asyncio
    async def test_store_failure_is_persistence_error(
        self, db_session: AsyncSession, test_user: User, monkeypatch
    ):
        async def broken_commit() -> None:
            raise IntegrityError("COMMIT", {}, Exception("foreign key violation"))

        monkeypatch.setattr(db_session, "commit", broken_commit)

        with pytest.raises(PersistenceError):
            await SubscriptionService(db_session).handle_event(
                _checkout_completed(test_user.id)
            )


class TestStripePaymentProvider:
    @pytest.mark.asyncio
    async def test_free_plan_cannot_be_purchased(self):
        provider = StripePaymentProvider(_billing_config(STRIPE_API_KEY="sk_test"))

        with pytest.raises(BillingError):
            await provider.charge(1, Plan.FREE)

    @pytest.mark.asyncio
    async def test_missing_api_key_is_billing_error(self):
        provider = StripePaymentProvider(_billing_config())

        with pytest.raises(BillingError, match="STRIPE_API_KEY"):
            await provider.charge(1, Plan.PRO)

    def test_parse_event_accepts_signed_payload(self):
        provider = StripePaymentProvider(_billing_config())
        payload = json.dumps(
            {"id": "evt_1", "object": "event", "type": "invoice.paid", "data": {"object": {}}}
        ).encode()

        event = provider.parse_event(payload, _sign(payload))

        assert event["type"] == "invoice.paid"

    def test_parse_event_rejects_bad_signature(self):
        provider = StripePaymentProvider(_billing_config())
        payload = b'{"id": "evt_1", "object": "event", "type": "invoice.paid"}'

        with pytest.raises(BillingError):
            provider.parse_event(payload, _sign(payload, secret="whsec_other"))
        with pytest.raises(BillingError):
            provider.parse_event(payload, None)

    def test_parse_event_requires_webhook_secret(self):
        provider = StripePaymentProvider(_billing_config(STRIPE_WEBHOOK_SECRET=None))

        with pytest.raises(BillingError, match="STRIPE_WEBHOOK_SECRET"):
            provider.parse_event(b"{}", "t=1,v1=abc")


class TestBillingApi:
    @pytest.mark.asyncio
    async def test_new_user_is_on_free_plan(self, client: AsyncClient):
        response = await client.get("/v1/billing/subscription")

        assert response.status_code == 200
        assert response.json() == {
            "plan": "free",
            "status": "active",
            "max_cards_per_request": 10,
        }

    @pytest.mark.asyncio
    async def test_checkout_returns_session(
        self, client: AsyncClient, payment_provider: FakePaymentProvider, test_user: User
    ):
        response = await client.post("/v1/billing/checkout", json={"plan": "pro"})

        assert response.status_code == 200
        assert response.json()["session_id"] == "cs_test_123"
        assert payment_provider.charges == [(test_user.id, Plan.PRO, test_user.email)]

    @pytest.mark.asyncio
    async def test_checkout_for_free_plan_is_400(self, client: AsyncClient):
        response = await client.post("/v1/billing/checkout", json={"plan": "free"})

        assert response.status_code == 400
        assert response.json()["error"] == "billing_error"

    @pytest.mark.asyncio
    async def test_webhook_upgrades_plan(
        self, client: AsyncClient, payment_provider: FakePaymentProvider, test_user: User
    ):
        payment_provider.event = _checkout_completed(test_user.id)

        response = await client.post(
            "/v1/billing/webhook",
            content=b"{}",
            headers={"Stripe-Signature": "valid"},
        )

        assert response.status_code == 200
        assert response.json() == {"received": True, "handled": True}
        subscription = await client.get("/v1/billing/subscription")
        assert subscription.json()["plan"] == "pro"
        assert subscription.json()["max_cards_per_request"] == 50

    @pytest.mark.asyncio
    async def test_webhook_with_bad_signature_is_400(self, client: AsyncClient):
        response = await client.post(
            "/v1/billing/webhook",
            content=b"{}",
            headers={"Stripe-Signature": "forged"},
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_webhook_for_unknown_user_is_not_handled(
        self, client: AsyncClient, payment_provider: FakePaymentProvider
    ):
        payment_provider.event = _checkout_completed(999)

        response = await client.post(
            "/v1/billing/webhook",
            content=b"{}",
            headers={"Stripe-Signature": "valid"},
        )

        assert response.status_code == 200
        assert response.json() == {"received": True, "handled": False}

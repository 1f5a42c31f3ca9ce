"""Billing module exports."""

from .provider import (
    BillingError,
    CheckoutReceipt,
    PaymentProvider,
    StripePaymentProvider,
    get_payment_provider,
)
from .service import SubscriptionService, plan_card_limit

__all__ = [
    "BillingError",
    "CheckoutReceipt",
    "PaymentProvider",
    "StripePaymentProvider",
    "get_payment_provider",
    "SubscriptionService",
    "plan_card_limit",
]

"""
Payment provider implementations.

This package contains provider-specific implementations:
- base.py: PaymentProvider protocol and shared data types
- paystack.py: Paystack (raw HTTP API, HMAC-SHA512 webhooks)
- stripe.py: Stripe Checkout (official SDK)

Provider Selection:
    Providers are selected by name ("paystack", "stripe"), which is also
    the Registration.payment_method value. Use get_provider().

Usage:
    from payments.providers import get_provider

    provider = get_provider()  # settings.DEFAULT_PAYMENT_PROVIDER
    result = provider.verify("evt_1700000000000_ab12cd34e")

Adding New Providers:
    1. Create new file (e.g., flutterwave.py)
    2. Subclass BaseProviderImpl and implement the protocol
    3. Register in PROVIDERS dict below
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.conf import settings

from payments.providers.base import (
    CHARGE_FAILED,
    CHARGE_SUCCESS,
    InitializeRequest,
    PaymentProvider,
    ProviderResult,
    WebhookNotification,
    to_minor_units,
)
from payments.providers.paystack import PaystackProvider
from payments.providers.stripe import StripeProvider

if TYPE_CHECKING:
    from typing import Any

logger = logging.getLogger(__name__)

# Provider registry
# Maps provider name to provider class
PROVIDERS: dict[str, type] = {
    PaystackProvider.name: PaystackProvider,
    StripeProvider.name: StripeProvider,
}


def get_provider(name: str | None = None, **kwargs: Any) -> PaymentProvider:
    """
    Get provider instance by name, configured from settings.

    Args:
        name: Provider name; defaults to settings.DEFAULT_PAYMENT_PROVIDER
        **kwargs: Passed to the provider's from_settings() (e.g. sleep)

    Returns:
        Configured provider instance

    Raises:
        ValueError: If provider name unknown
    """
    name = name or settings.DEFAULT_PAYMENT_PROVIDER
    provider_class = PROVIDERS.get(name)
    if not provider_class:
        raise ValueError(f"Unknown payment provider: {name}")
    logger.debug(f"Using payment provider {name}")
    return provider_class.from_settings(**kwargs)


def list_providers() -> list[str]:
    """Get list of available provider names."""
    return list(PROVIDERS.keys())


__all__ = [
    "CHARGE_FAILED",
    "CHARGE_SUCCESS",
    "InitializeRequest",
    "PaymentProvider",
    "PaystackProvider",
    "ProviderResult",
    "StripeProvider",
    "WebhookNotification",
    "get_provider",
    "list_providers",
    "to_minor_units",
]

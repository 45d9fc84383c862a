"""
Adapters for outbound payment provider calls.

All raw provider HTTP calls should go through ProviderHttpClient to get
consistent timeouts, linear retry and error translation.

Usage:
    from payments.adapters import ProviderHttpClient

    client = ProviderHttpClient(base_url, headers={"Authorization": "Bearer sk_..."})
    response = client.request("POST", "/transaction/initialize", json=body)
"""

from payments.adapters.http_client import (
    LinearRetry,
    ProviderHttpClient,
    ProviderResponse,
    classify_transport_error,
)

__all__ = [
    "LinearRetry",
    "ProviderHttpClient",
    "ProviderResponse",
    "classify_transport_error",
]

"""
Helper functions for common infrastructure operations.

This module provides domain-agnostic utility functions for:
- Hashing raw payloads
- HTTP request helpers (client IP extraction)

Usage:
    from core.helpers import get_client_ip, hash_bytes

    digest = hash_bytes(request.body)
    ip = get_client_ip(request)
"""

from __future__ import annotations

import hashlib
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from django.http import HttpRequest


def hash_bytes(value: bytes, algorithm: str = "sha256") -> str:
    """
    Hash raw bytes using the specified algorithm.

    Args:
        value: Bytes to hash
        algorithm: Hash algorithm (sha256, sha512, etc.)

    Returns:
        Hexadecimal hash string
    """
    hasher = hashlib.new(algorithm)
    hasher.update(value)
    return hasher.hexdigest()


def get_client_ip(request: HttpRequest) -> str:
    """
    Extract client IP from request, handling proxies.

    Checks X-Forwarded-For header for proxy chains.

    Args:
        request: Django HTTP request

    Returns:
        Client IP address string
    """
    x_forwarded_for = request.META.get("HTTP_X_FORWARDED_FOR")
    if x_forwarded_for:
        # First IP in the chain is the original client
        ip = x_forwarded_for.split(",")[0].strip()
    else:
        ip = request.META.get("REMOTE_ADDR", "")
    return ip

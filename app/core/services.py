"""
Service layer primitives shared by the events and payments apps.

Services return a ServiceResult for outcomes the caller is expected to
handle (a refused charge, a registration that cannot be paid, an
unreachable provider) and let exceptions escape for programming errors
and database faults.

Usage:
    from core.services import BaseService, ServiceResult

    class RefundService(BaseService):
        @classmethod
        def refund(cls, registration) -> ServiceResult[Registration]:
            if registration.payment_status != "paid":
                return ServiceResult.failure(
                    "Only paid registrations can be refunded",
                    error_code="REGISTRATION_NOT_REFUNDABLE",
                )
            ...
            return ServiceResult.success(registration)
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, TypeVar

from django.db import transaction

if TYPE_CHECKING:
    from collections.abc import Generator
    from typing import Any

T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    Outcome of a service call.

    On failure ``data`` may still hold a payload, e.g. the provider's
    decoded refusal body, so callers can hand it back to the client.
    ``errors`` holds field-level messages, plus a ``detail`` list with the
    underlying cause for diagnostic output.
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None
    errors: dict[str, list[str]] | None = field(default=None)

    @classmethod
    def success(cls, data: T) -> ServiceResult[T]:
        return cls(success=True, data=data)

    @classmethod
    def failure(
        cls,
        error: str,
        error_code: str | None = None,
        errors: dict[str, list[str]] | None = None,
        data: Any = None,
    ) -> ServiceResult[T]:
        """
        Build a failed result.

        Args:
            error: Message safe to show to the payer
            error_code: Stable code the views map to an HTTP status
            errors: Field-level or diagnostic messages
            data: Payload returned alongside the failure
        """
        return cls(
            success=False,
            data=data,
            error=error,
            error_code=error_code,
            errors=errors,
        )

    def to_response(self) -> dict[str, Any]:
        """Envelope used by the events API."""
        if self.success:
            return {"success": True, "data": self.data}

        response: dict[str, Any] = {"success": False, "error": self.error}
        if self.error_code:
            response["error_code"] = self.error_code
        if self.errors:
            response["errors"] = self.errors
        return response

    def __bool__(self) -> bool:
        return self.success


class BaseService:
    """
    Stateless service base: classmethods only, one logger per subclass.
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    @contextmanager
    def atomic(cls) -> Generator[None, None, None]:
        """Wrap the block in ``transaction.atomic()``."""
        with transaction.atomic():
            yield

"""
Application exception base classes.

Hierarchy:
    BaseApplicationError
    ├── ConflictError
    └── payments.exceptions.PaymentError and its subclasses

Each error carries a stable ``error_code`` so views and tasks can report
it without parsing messages:

    try:
        provider.initialize(request)
    except BaseApplicationError as e:
        logger.warning("Provider call failed", extra=e.to_dict())
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Root of the application's exceptions.

    Attributes:
        message: Human-readable description
        error_code: Machine-readable code, ``default_error_code`` if omitted
        details: Extra context such as the payment reference
    """

    default_error_code: str = "APPLICATION_ERROR"

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ConflictError(BaseApplicationError):
    """The requested change clashes with the record's current state (HTTP 409)."""

    default_error_code: str = "CONFLICT"

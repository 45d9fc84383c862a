"""
Outbound HTTP client for payment provider APIs.

All raw provider calls go through ProviderHttpClient so that every call
gets the same per-attempt timeout, linear retry and error translation.
The client is constructed explicitly with its base URL, credentials and
policy; it never reads settings itself.

Retry policy:
- Retryable: connection reset, unresolvable host, connection refused,
  per-attempt timeout, unparseable response body
- Not retryable: anything else at the transport level (raised at once)
- After failed attempt n (n < max_attempts) the client sleeps
  n * backoff_seconds before trying again
- HTTP error statuses with a JSON body are returned, not raised; the
  caller decides whether the provider's answer is a failure

Usage:
    from payments.adapters import ProviderHttpClient

    client = ProviderHttpClient(
        base_url="https://api.paystack.co",
        headers={"Authorization": f"Bearer {secret_key}"},
        timeout=15,
        max_attempts=3,
    )
    response = client.request("GET", f"/transaction/verify/{reference}")
    if response.payload.get("status"):
        ...
"""

from __future__ import annotations

import logging
import socket
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, TypeVar

import requests

from payments.exceptions import (
    ProviderError,
    ProviderResponseInvalidError,
    ProviderUnavailableError,
    TransportFailureKind,
)

if TYPE_CHECKING:
    from collections.abc import Iterator
    from typing import Any


logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TIMEOUT_SECONDS = 15
DEFAULT_MAX_ATTEMPTS = 3

# Fallback classification by message, for wrapped errors that lost their
# original exception type along the way.
_MESSAGE_HINTS = (
    ("connection reset", TransportFailureKind.RESET),
    ("econnreset", TransportFailureKind.RESET),
    ("name or service not known", TransportFailureKind.UNREACHABLE),
    ("nodename nor servname", TransportFailureKind.UNREACHABLE),
    ("getaddrinfo failed", TransportFailureKind.UNREACHABLE),
    ("failed to resolve", TransportFailureKind.UNREACHABLE),
    ("connection refused", TransportFailureKind.REFUSED),
    ("econnrefused", TransportFailureKind.REFUSED),
    ("timed out", TransportFailureKind.TIMEOUT),
)


# =============================================================================
# Data Types
# =============================================================================


@dataclass
class ProviderResponse:
    """
    A parsed provider response.

    Attributes:
        status_code: HTTP status code
        payload: Parsed JSON body
        attempts: Number of attempts it took to get this response
    """

    status_code: int
    payload: dict[str, Any] = field(default_factory=dict)
    attempts: int = 1

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


# =============================================================================
# Error Classification
# =============================================================================


def _iter_causes(error: BaseException) -> Iterator[BaseException]:
    """Walk an exception and everything it wraps, without revisiting."""
    pending = [error]
    seen: set[int] = set()
    while pending:
        current = pending.pop(0)
        if id(current) in seen:
            continue
        seen.add(id(current))
        yield current

        # urllib3 keeps the underlying error on .reason; requests puts the
        # urllib3 error in args[0]
        reason = getattr(current, "reason", None)
        if isinstance(reason, BaseException):
            pending.append(reason)
        pending.extend(arg for arg in current.args if isinstance(arg, BaseException))
        if current.__cause__ is not None:
            pending.append(current.__cause__)
        if current.__context__ is not None:
            pending.append(current.__context__)


def classify_transport_error(error: BaseException) -> TransportFailureKind:
    """
    Map a transport-level exception to a TransportFailureKind.

    Args:
        error: Exception raised while sending the request

    Returns:
        The failure kind; UNKNOWN when nothing recognizable is found
    """
    for cause in _iter_causes(error):
        if isinstance(cause, (requests.exceptions.Timeout, TimeoutError)):
            return TransportFailureKind.TIMEOUT
        if isinstance(cause, ConnectionResetError):
            return TransportFailureKind.RESET
        if isinstance(cause, ConnectionRefusedError):
            return TransportFailureKind.REFUSED
        if isinstance(cause, socket.gaierror):
            return TransportFailureKind.UNREACHABLE

    text = str(error).lower()
    for hint, kind in _MESSAGE_HINTS:
        if hint in text:
            return kind
    return TransportFailureKind.UNKNOWN


# =============================================================================
# Retry Loop
# =============================================================================


class LinearRetry:
    """
    Run an operation with linear backoff between attempts.

    The operation raises ProviderError subclasses to signal failure;
    retryable ones are attempted again until max_attempts is reached.
    Any other exception propagates immediately.

    Args:
        max_attempts: Total attempts, including the first
        backoff_seconds: Delay unit; attempt n is followed by n units
        sleep: Sleep primitive, injectable for tests
    """

    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        backoff_seconds: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds
        self.sleep = sleep

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after the given failed attempt."""
        return attempt * self.backoff_seconds

    def run(self, operation: Callable[[int], T], operation_name: str = "") -> tuple[T, int]:
        """
        Call operation(attempt) until it succeeds or retries run out.

        Returns:
            Tuple of (operation result, attempts used)

        Raises:
            ProviderError: The last failure, with attempts filled in
        """
        for attempt in range(1, self.max_attempts + 1):
            try:
                return operation(attempt), attempt
            except ProviderError as exc:
                exc.attempts = attempt
                exc.details["attempts"] = attempt

                if not exc.is_retryable:
                    logger.error(
                        f"Provider call failed with non-retryable error: {operation_name}",
                        extra={
                            "operation": operation_name,
                            "attempt": attempt,
                            "error_code": exc.error_code,
                            "cause": repr(exc.cause),
                        },
                    )
                    raise

                if attempt >= self.max_attempts:
                    logger.error(
                        f"Provider call failed after {attempt} attempts: {operation_name}",
                        extra={
                            "operation": operation_name,
                            "attempts": attempt,
                            "error_code": exc.error_code,
                            "cause": repr(exc.cause),
                        },
                    )
                    raise

                delay = self.delay_for(attempt)
                logger.warning(
                    f"Provider call failed, retrying in {delay}s: {operation_name}",
                    extra={
                        "operation": operation_name,
                        "attempt": attempt,
                        "max_attempts": self.max_attempts,
                        "error_code": exc.error_code,
                        "cause": repr(exc.cause),
                    },
                )
                self.sleep(delay)

        # Loop always returns or raises
        raise AssertionError("unreachable")


# =============================================================================
# HTTP Client
# =============================================================================


class ProviderHttpClient:
    """
    JSON-over-HTTPS client with bounded linear retry.

    Args:
        base_url: Provider API root, e.g. "https://api.paystack.co"
        headers: Headers sent with every request (credentials go here)
        timeout: Per-attempt timeout in seconds
        max_attempts: Retry ceiling
        sleep: Sleep primitive between attempts
        session: requests.Session to send through (one is created if omitted)
    """

    def __init__(
        self,
        base_url: str,
        headers: dict[str, str] | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        sleep: Callable[[float], None] = time.sleep,
        session: requests.Session | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.headers = {"Content-Type": "application/json", **(headers or {})}
        self.timeout = timeout
        self.retry = LinearRetry(max_attempts=max_attempts, sleep=sleep)
        self.session = session or requests.Session()

    def build_url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def request(
        self,
        method: str,
        path: str,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> ProviderResponse:
        """
        Send a request and parse its JSON body, retrying as configured.

        Args:
            method: HTTP method
            path: Path relative to base_url
            json: Request body
            params: Query string parameters
            headers: Extra headers for this request only

        Returns:
            ProviderResponse, whatever the HTTP status

        Raises:
            ProviderUnavailableError: Transport failure (after retries if retryable)
            ProviderResponseInvalidError: Body was not a JSON object on the last attempt
        """
        url = self.build_url(path)
        request_headers = {**self.headers, **(headers or {})}
        operation_name = f"{method.upper()} {path}"

        def attempt_call(attempt: int) -> ProviderResponse:
            start_time = time.time()
            try:
                response = self.session.request(
                    method.upper(),
                    url,
                    json=json,
                    params=params,
                    headers=request_headers,
                    timeout=self.timeout,
                )
            except (requests.exceptions.RequestException, OSError) as exc:
                raise ProviderUnavailableError(
                    classify_transport_error(exc), cause=exc, attempts=attempt
                ) from exc

            try:
                payload = response.json()
            except ValueError as exc:
                raise ProviderResponseInvalidError(cause=exc, attempts=attempt) from exc
            if not isinstance(payload, dict):
                raise ProviderResponseInvalidError(
                    cause=TypeError(f"Expected a JSON object, got {type(payload).__name__}"),
                    attempts=attempt,
                )

            logger.debug(
                "Provider call completed",
                extra={
                    "operation": operation_name,
                    "status_code": response.status_code,
                    "attempt": attempt,
                    "duration_ms": (time.time() - start_time) * 1000,
                },
            )
            return ProviderResponse(
                status_code=response.status_code,
                payload=payload,
                attempts=attempt,
            )

        result, _ = self.retry.run(attempt_call, operation_name=operation_name)
        return result

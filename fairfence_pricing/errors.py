"""Error types for Edge Function calls and pricing fetches.

Classification used by the retry loop:

- ``timeout``: the attempt exceeded its timeout. Retryable.
- ``transport``: connection reset/refused, DNS failure, protocol error. Retryable.
- ``http``: non-2xx response. Retryable for 5xx and 429, fatal otherwise.
- ``decode``: 2xx response whose body is not valid JSON. Fatal.
- ``request``: the request could not be built or read back (bad URL scheme,
  undecodable content encoding, redirect loop). Fatal.
"""

from __future__ import annotations

from enum import Enum


class ConfigurationError(RuntimeError):
    """Required configuration is missing. Never retried."""


class ErrorKind(str, Enum):
    TIMEOUT = "timeout"
    TRANSPORT = "transport"
    HTTP = "http"
    DECODE = "decode"
    REQUEST = "request"


class EdgeFunctionError(RuntimeError):
    """Failed Edge Function call with structured details."""

    def __init__(
        self,
        message: str,
        *,
        kind: ErrorKind,
        function: str | None = None,
        status: int | None = None,
        body: str | None = None,
        attempts: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.function = function
        self.status = status
        self.body = body
        self.attempts = attempts

    @property
    def retryable(self) -> bool:
        return is_retryable(self)

    def __str__(self) -> str:
        parts = [self.message]
        if self.status is not None:
            parts.append(f"status={self.status}")
        if self.body:
            parts.append(f"response={self.body[:200]}")
        return " | ".join(parts)


class PricingFetchError(RuntimeError):
    """Pricing source returned no usable data."""


def is_retryable(error: BaseException) -> bool:
    """Return True when ``error`` is a transient failure worth retrying."""
    if not isinstance(error, EdgeFunctionError):
        return False
    if error.kind in (ErrorKind.TIMEOUT, ErrorKind.TRANSPORT):
        return True
    if error.kind is ErrorKind.HTTP and error.status is not None:
        return 500 <= error.status < 600 or error.status == 429
    return False


__all__ = [
    "ConfigurationError",
    "EdgeFunctionError",
    "ErrorKind",
    "PricingFetchError",
    "is_retryable",
]

"""
airouter - Error Definitions

Error taxonomy for provider attempts:

    timeout           provider did not answer within its fixed timeout
    transport         connection refused / DNS / network failure
    rate_limited      provider returned 429
    credit_exhausted  remote billing credit is gone (sticky, see health tracker)
    unknown           anything else

Every provider failure surfaces as a ProviderError carrying its ErrorClass.
A request that could not be served by either provider surfaces as a
DualFailureError carrying both underlying messages.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx

from .models import ErrorClass, Provider


# Phrases providers use when billing credit has run out (matched lower-cased).
CREDIT_EXHAUSTION_PHRASES = (
    "credit balance is too low",
    "credit balance",
    "insufficient credits",
    "credits exhausted",
    "billing",
    "payment required",
    "quota exceeded",
)


@dataclass
class ErrorDetails:
    """Full error information for API responses and logs."""
    code: str
    message: str

    provider: Optional[str] = None
    error_class: Optional[ErrorClass] = None
    request_id: str = ""

    retryable: bool = False
    retry_after: Optional[int] = None
    fallback_attempted: Optional[bool] = None

    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "code": self.code,
            "message": self.message,
            "request_id": self.request_id,
            "retryable": self.retryable,
        }

        if self.provider:
            result["provider"] = self.provider
        if self.error_class is not None:
            result["error_class"] = self.error_class.value
        if self.retry_after is not None:
            result["retry_after"] = self.retry_after
        if self.fallback_attempted is not None:
            result["fallback_attempted"] = self.fallback_attempted
        if self.details:
            result["details"] = self.details

        return {"error": result}


class RouterException(Exception):
    """Base exception for all airouter errors."""

    def __init__(self, error: ErrorDetails, status_code: int = 500):
        self.error = error
        self.status_code = status_code
        super().__init__(error.message)


# ============================================================
# Provider errors (one attempt failed)
# ============================================================

class ProviderError(RouterException):
    """A single provider attempt failed."""

    error_class: ErrorClass = ErrorClass.UNKNOWN

    @property
    def provider(self) -> Optional[str]:
        return self.error.provider


class ProviderTimeoutError(ProviderError):
    """Provider did not respond within its timeout."""

    error_class = ErrorClass.TIMEOUT

    def __init__(self, provider: str, timeout: Optional[float] = None, request_id: str = ""):
        suffix = f" ({timeout:g}s)" if timeout else ""
        super().__init__(
            ErrorDetails(
                code="provider_timeout",
                message=f"{provider} did not respond within timeout{suffix}",
                provider=provider,
                error_class=self.error_class,
                request_id=request_id,
                retryable=True,
            ),
            status_code=504
        )


class ProviderTransportError(ProviderError):
    """Connection refused, DNS failure or other network error."""

    error_class = ErrorClass.TRANSPORT

    def __init__(self, provider: str, message: str = "", request_id: str = ""):
        super().__init__(
            ErrorDetails(
                code="provider_unreachable",
                message=message or f"Failed to connect to {provider}",
                provider=provider,
                error_class=self.error_class,
                request_id=request_id,
                retryable=True,
            ),
            status_code=503
        )


class RateLimitedError(ProviderError):
    """Provider rate limit exceeded."""

    error_class = ErrorClass.RATE_LIMITED

    def __init__(
        self,
        provider: str,
        message: str = "",
        retry_after: int = 60,
        request_id: str = ""
    ):
        super().__init__(
            ErrorDetails(
                code="rate_limited",
                message=message or f"{provider} rate limit exceeded. Retry after {retry_after} seconds.",
                provider=provider,
                error_class=self.error_class,
                request_id=request_id,
                retryable=True,
                retry_after=retry_after,
            ),
            status_code=429
        )


class CreditExhaustedError(ProviderError):
    """Provider billing credit is exhausted."""

    error_class = ErrorClass.CREDIT_EXHAUSTED

    def __init__(self, provider: str, message: str = "", request_id: str = ""):
        super().__init__(
            ErrorDetails(
                code="credit_exhausted",
                message=message or f"{provider} credit balance exhausted",
                provider=provider,
                error_class=self.error_class,
                request_id=request_id,
                retryable=False,
            ),
            status_code=402
        )


class UpstreamError(ProviderError):
    """Provider returned an error we do not classify further."""

    error_class = ErrorClass.UNKNOWN

    def __init__(
        self,
        provider: str,
        message: str = "",
        upstream_status: Optional[int] = None,
        request_id: str = ""
    ):
        details = {"upstream_status": upstream_status} if upstream_status else {}
        super().__init__(
            ErrorDetails(
                code="upstream_error",
                message=message or f"{provider} returned an error",
                provider=provider,
                error_class=self.error_class,
                request_id=request_id,
                retryable=True,
                details=details,
            ),
            status_code=502
        )


# ============================================================
# Request-level errors
# ============================================================

class DualFailureError(RouterException):
    """
    Neither provider could serve the request.

    Carries both causes verbatim. When the fallback was not attempted,
    ``fallback_error`` is None and ``fallback_skipped`` says why.
    """

    def __init__(
        self,
        primary: Provider,
        primary_error: str,
        fallback_error: Optional[str] = None,
        fallback_skipped: Optional[str] = None,
        request_id: str = ""
    ):
        self.primary = primary
        self.fallback = primary.other
        self.primary_error = primary_error
        self.fallback_error = fallback_error
        self.fallback_skipped = fallback_skipped

        second = fallback_error if fallback_error is not None else f"not attempted ({fallback_skipped})"
        message = (
            f"Both providers failed. {primary.value}: {primary_error}, "
            f"{self.fallback.value}: {second}"
        )
        super().__init__(
            ErrorDetails(
                code="all_providers_failed",
                message=message,
                request_id=request_id,
                retryable=False,
                fallback_attempted=fallback_error is not None,
                details={
                    "errors": {
                        primary.value: primary_error,
                        self.fallback.value: fallback_error,
                    },
                    "fallback_skipped": fallback_skipped,
                },
            ),
            status_code=503
        )


class RouterNotReadyError(RouterException):
    """The router has not been constructed yet (server starting up)."""

    def __init__(self, request_id: str = ""):
        super().__init__(
            ErrorDetails(
                code="service_unavailable",
                message="Router not initialized. Server may be starting up.",
                request_id=request_id,
                retryable=True,
                retry_after=5,
            ),
            status_code=503
        )


# ============================================================
# Error Factory
# ============================================================

def is_credit_exhausted_message(*texts: Optional[str]) -> bool:
    """Check whether any of the given texts mentions credit exhaustion."""
    return any(
        phrase in text.lower()
        for text in texts if text
        for phrase in CREDIT_EXHAUSTION_PHRASES
    )


def _extract_message(response: httpx.Response) -> str:
    """
    Pull a human-readable message out of an error body.

    Handles Anthropic (``{"error": {"message": ...}}``) and Ollama
    (``{"error": "..."}``) shapes, falling back to raw text.
    """
    try:
        data = response.json()
    except ValueError:
        return response.text or ""

    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict):
            return str(error.get("message", "") or error)
        if error:
            return str(error)
        if data.get("message"):
            return str(data["message"])
    return response.text or ""


def _retry_after(response: httpx.Response, default: int = 60) -> int:
    try:
        return int(response.headers.get("retry-after", default))
    except ValueError:
        return default


def handle_provider_error(
    error: BaseException,
    provider: Provider,
    request_id: str = "",
    timeout: Optional[float] = None,
) -> ProviderError:
    """
    Convert a transport / HTTP exception into a ProviderError.

    Credit exhaustion is checked before the status code: the remote API
    reports an empty balance as a 400 whose message mentions the credit
    balance, and some gateways use 429 with "quota exceeded".
    """
    name = provider.value

    if isinstance(error, ProviderError):
        return error

    if isinstance(error, (httpx.TimeoutException, asyncio.TimeoutError)):
        return ProviderTimeoutError(name, timeout, request_id)

    if isinstance(error, httpx.HTTPStatusError):
        response = error.response
        status_code = response.status_code
        message = _extract_message(response) or str(error)

        if status_code == 402 or is_credit_exhausted_message(message):
            return CreditExhaustedError(name, f"{name} credit exhausted: {message}", request_id)

        if status_code == 429:
            return RateLimitedError(name, f"{name} rate limited: {message}", _retry_after(response), request_id)

        return UpstreamError(name, f"{name} returned {status_code}: {message}", status_code, request_id)

    if isinstance(error, httpx.TransportError):
        return ProviderTransportError(name, f"{name} unreachable: {error!r}", request_id)

    message = str(error) or error.__class__.__name__
    if is_credit_exhausted_message(message):
        return CreditExhaustedError(name, message, request_id)
    return UpstreamError(name, message, None, request_id)



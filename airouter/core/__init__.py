"""
airouter - Core Module

Data model, error taxonomy and configuration shared by every layer.
"""

from .models import (
    Classification,
    ErrorClass,
    Message,
    Outcome,
    Provider,
    ProviderReply,
    ProviderState,
    RequestContext,
    Role,
    RouterResponse,
    RoutingDecision,
    RoutingReason,
    estimate_tokens,
)
from .errors import (
    CreditExhaustedError,
    DualFailureError,
    ErrorDetails,
    ProviderError,
    ProviderTimeoutError,
    ProviderTransportError,
    RateLimitedError,
    RouterException,
    RouterNotReadyError,
    UpstreamError,
    handle_provider_error,
    is_credit_exhausted_message,
)
from .config import RouterConfig

__all__ = [
    # Models
    "Classification",
    "ErrorClass",
    "Message",
    "Outcome",
    "Provider",
    "ProviderReply",
    "ProviderState",
    "RequestContext",
    "Role",
    "RouterResponse",
    "RoutingDecision",
    "RoutingReason",
    "estimate_tokens",
    # Errors
    "CreditExhaustedError",
    "DualFailureError",
    "ErrorDetails",
    "ProviderError",
    "ProviderTimeoutError",
    "ProviderTransportError",
    "RateLimitedError",
    "RouterException",
    "RouterNotReadyError",
    "UpstreamError",
    "handle_provider_error",
    "is_credit_exhausted_message",
    # Config
    "RouterConfig",
]

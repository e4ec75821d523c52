"""
airouter - API Layer

REST surface for routed completions and router administration.
"""

from .models import (
    # Request models
    MessageInput,
    MessagesRequest,
    # Response models
    MessagesResponse,
    MessageData,
    MessageMetadata,
    ActionResponse,
    LocalRefreshResponse,
    ModelListResponse,
    # Shared models
    ProviderEnum,
    RoleEnum,
)
from .dependencies import (
    get_request_id,
    get_router,
    set_router_getter,
)
from .routes import ai_router


__all__ = [
    # Routers
    "ai_router",
    # Request models
    "MessageInput",
    "MessagesRequest",
    # Response models
    "MessagesResponse",
    "MessageData",
    "MessageMetadata",
    "ActionResponse",
    "LocalRefreshResponse",
    "ModelListResponse",
    # Shared models
    "ProviderEnum",
    "RoleEnum",
    # Dependencies
    "get_request_id",
    "get_router",
    "set_router_getter",
]

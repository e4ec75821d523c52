"""
airouter - API Request/Response Models

Pydantic models for API validation and serialization.
These are the external-facing models that clients interact with.
"""

from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..core.models import RequestContext


# ============================================================
# Enums
# ============================================================

class RoleEnum(str, Enum):
    """Message roles."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class ProviderEnum(str, Enum):
    LOCAL = "local"
    REMOTE = "remote"


# ============================================================
# Message Models
# ============================================================

class TextContentPart(BaseModel):
    """Text content part."""
    type: Literal["text"] = "text"
    text: str

    model_config = ConfigDict(extra="allow")


class MessageInput(BaseModel):
    """A single role/content turn. Content is plain text or text parts."""
    role: RoleEnum
    content: Union[str, List[TextContentPart]] = ""


# ============================================================
# Messages Request/Response
# ============================================================

class MessagesRequest(BaseModel):
    """Request body for ``POST /v1/ai/messages``."""
    messages: List[MessageInput] = Field(
        ...,
        min_length=1,
        description="Conversation turns"
    )
    task_type: Optional[str] = Field(
        default=None,
        max_length=64,
        description="Task hint, e.g. 'code_review'"
    )
    force_remote: bool = Field(
        default=False,
        description="Prefer the remote provider regardless of content"
    )
    max_tokens: int = Field(
        default=1000,
        ge=1,
        le=128000,
        description="Maximum tokens to generate"
    )
    model: Optional[str] = Field(
        default=None,
        description="Remote model override"
    )

    @field_validator("messages")
    @classmethod
    def validate_messages(cls, v):
        """Validate messages are not empty."""
        if not v:
            raise ValueError("messages cannot be empty")
        return v

    def to_context(self, request_id: Optional[str] = None) -> RequestContext:
        """Convert to the router's immutable request context."""
        kwargs: Dict[str, Any] = {
            "task_hint": self.task_type,
            "force_remote": self.force_remote,
            "max_tokens": self.max_tokens,
            "model": self.model,
        }
        if request_id:
            kwargs["request_id"] = request_id
        return RequestContext.from_messages(
            [m.model_dump(mode="json") for m in self.messages],
            **kwargs,
        )


class MessageData(BaseModel):
    text: str
    model: str
    usage: Dict[str, int] = Field(default_factory=dict)


class MessageMetadata(BaseModel):
    """Routing metadata attached to every successful response."""
    provider: ProviderEnum
    routing_reason: str
    latency_ms: int
    fallback_used: bool = False
    original_provider: Optional[ProviderEnum] = None
    cost_saving_mode: bool = False


class MessagesResponse(BaseModel):
    """Response body for ``POST /v1/ai/messages``."""
    data: MessageData
    metadata: MessageMetadata


# ============================================================
# Admin Responses
# ============================================================

class ActionResponse(BaseModel):
    success: bool = True
    message: str


class LocalRefreshResponse(BaseModel):
    success: bool
    connected: bool
    models: List[str] = Field(default_factory=list)
    default_model: Optional[str] = None


class ModelListResponse(BaseModel):
    provider: ProviderEnum = ProviderEnum.LOCAL
    models: List[str]
    default_model: str

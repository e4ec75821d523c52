"""
airouter - Core Data Models

Normalized request/response types shared by the classifier, routing engine,
orchestrator and provider adapters.
"""

from __future__ import annotations

import time
import uuid
from datetime import datetime, timezone
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union


# ============================================================
# Enums
# ============================================================

class Provider(str, Enum):
    """The two backing providers."""
    LOCAL = "local"    # self-hosted, zero marginal cost
    REMOTE = "remote"  # metered, billed per token

    @property
    def other(self) -> "Provider":
        """The alternate provider."""
        return Provider.REMOTE if self is Provider.LOCAL else Provider.LOCAL


class Role(str, Enum):
    """Message roles."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class ErrorClass(str, Enum):
    """Failure classes for a single provider attempt."""
    TIMEOUT = "timeout"
    TRANSPORT = "transport"
    CREDIT_EXHAUSTED = "credit_exhausted"
    RATE_LIMITED = "rate_limited"
    UNKNOWN = "unknown"


class RoutingReason(str, Enum):
    """Fixed routing reason tags (some carry a ``:<detail>`` suffix)."""
    SPECIALIZED_TASK = "specialized_task"
    FORCE_OVERRIDE = "force_override"
    KEYWORD_TRIGGER = "keyword_trigger"
    HIGH_COMPLEXITY = "high_complexity"
    CODE_RELATED = "code_related_request"
    STANDARD = "standard_request"
    PRIMARY_PROVIDER = "primary_provider"
    FALLBACK_AVAILABLE = "fallback_available"
    PROVIDER_UNAVAILABLE_FALLBACK = "provider_unavailable_fallback"
    LAST_RESORT = "last_resort"

    def tag(self, detail: Optional[str] = None) -> str:
        """Render the reason string, e.g. ``keyword_trigger:code review``."""
        if detail is None:
            return self.value
        return f"{self.value}:{detail}"


# ============================================================
# Request
# ============================================================

ContentPart = Dict[str, Any]


@dataclass(frozen=True)
class Message:
    """A single role/content turn."""
    role: Role
    content: Union[str, Tuple[ContentPart, ...]] = ""

    @property
    def text(self) -> str:
        """Plain text of this turn (content parts joined by a space)."""
        if isinstance(self.content, str):
            return self.content
        return " ".join(
            str(part.get("text") or part.get("content") or "")
            for part in self.content
        )

    def to_dict(self) -> Dict[str, Any]:
        if isinstance(self.content, str):
            return {"role": self.role.value, "content": self.content}
        return {"role": self.role.value, "content": [dict(p) for p in self.content]}


@dataclass(frozen=True)
class RequestContext:
    """
    Caller-supplied request, immutable for one routing + execution cycle.

    Validation (non-empty messages etc.) is the caller's job.
    """
    messages: Tuple[Message, ...]
    task_hint: Optional[str] = None
    force_remote: bool = False
    max_tokens: int = 1000
    model: Optional[str] = None
    temperature: float = 0.7
    top_p: float = 0.9
    request_id: str = field(default_factory=lambda: f"req_{uuid.uuid4().hex[:24]}")

    @classmethod
    def from_messages(
        cls,
        messages: List[Dict[str, Any]],
        **kwargs: Any,
    ) -> "RequestContext":
        """Build a context from plain ``{role, content}`` dicts."""
        converted = []
        for msg in messages:
            content = msg.get("content", "")
            if isinstance(content, list):
                content = tuple(content)
            elif content is None:
                content = ""
            converted.append(Message(role=Role(msg.get("role", "user")), content=content))
        return cls(messages=tuple(converted), **kwargs)

    def text(self) -> str:
        """Concatenated text of every turn."""
        return " ".join(msg.text for msg in self.messages)


# ============================================================
# Classification / Routing
# ============================================================

@dataclass(frozen=True)
class Classification:
    """Classifier verdict."""
    specialized: bool
    reason: str


@dataclass(frozen=True)
class RoutingDecision:
    """Provider choice for one request. Created fresh, never mutated."""
    provider: Provider
    reason: str
    specialized: bool = False


# ============================================================
# Provider state / execution
# ============================================================

@dataclass(frozen=True)
class ProviderState:
    """Point-in-time view of one provider's health."""
    provider: Provider
    reachable: bool
    credit_exhausted: bool = False
    consecutive_failures: int = 0
    last_success_at: Optional[float] = None
    last_failure_at: Optional[float] = None
    average_latency_ms: float = 0.0
    last_error_class: Optional[ErrorClass] = None
    models: Tuple[str, ...] = ()
    default_model: Optional[str] = None

    @property
    def usable(self) -> bool:
        """Reachable and (for remote) still has billing credit."""
        return self.reachable and not self.credit_exhausted

    def to_dict(self) -> Dict[str, Any]:
        return {
            "provider": self.provider.value,
            "reachable": self.reachable,
            "credit_exhausted": self.credit_exhausted,
            "consecutive_failures": self.consecutive_failures,
            "last_success_at": _iso(self.last_success_at),
            "last_failure_at": _iso(self.last_failure_at),
            "average_latency_ms": round(self.average_latency_ms, 2),
            "last_error_class": self.last_error_class.value if self.last_error_class else None,
            "models": list(self.models),
            "default_model": self.default_model,
        }


@dataclass(frozen=True)
class Outcome:
    """Result of one execution attempt."""
    provider: Provider
    success: bool
    latency_ms: int
    error_class: Optional[ErrorClass] = None
    error: Optional[str] = None


@dataclass
class ProviderReply:
    """What an adapter returns for a successful call."""
    text: str
    model: str
    usage: Dict[str, int] = field(default_factory=dict)


@dataclass
class RouterResponse:
    """Normalized response returned to the caller."""
    text: str
    provider: Provider
    model: str
    routing_reason: str
    latency_ms: int
    fallback_used: bool = False
    original_provider: Optional[Provider] = None
    cost_saving_mode: bool = False
    usage: Dict[str, int] = field(default_factory=dict)
    created: int = field(default_factory=lambda: int(time.time()))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "provider": self.provider.value,
            "model": self.model,
            "routing_reason": self.routing_reason,
            "latency_ms": self.latency_ms,
            "fallback_used": self.fallback_used,
            "original_provider": self.original_provider.value if self.original_provider else None,
            "cost_saving_mode": self.cost_saving_mode,
            "usage": dict(self.usage),
            "created": self.created,
        }


def estimate_tokens(text: str) -> int:
    """Rough token estimate (chars / 4). Not billing-accurate."""
    return -(-len(text or "") // 4)


def _iso(ts: Optional[float]) -> Optional[str]:
    if ts is None:
        return None
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()

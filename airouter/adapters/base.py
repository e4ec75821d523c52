"""
airouter - Provider Adapter Base

Abstract base class for the two provider adapters.

The adapter is responsible for:
1. Converting the normalized RequestContext -> provider wire format
2. Making the HTTP call to the provider
3. Converting the provider reply -> ProviderReply
4. Mapping transport / HTTP failures to ProviderError subclasses
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from ..core.models import Provider, ProviderReply, RequestContext


@dataclass
class AdapterConfig:
    """Configuration for a provider adapter."""
    base_url: str
    default_model: str
    api_key: Optional[str] = None
    timeout: float = 30.0


@dataclass
class ProbeResult:
    """Connectivity probe result, as returned by ``AIRouter.test_providers``."""
    provider: Provider
    available: bool = False
    latency_ms: int = 0
    error: Optional[str] = None
    credit_exhausted: bool = False
    models: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "available": self.available,
            "latency_ms": self.latency_ms,
            "error": self.error,
            "credit_exhausted": self.credit_exhausted,
            "models": list(self.models),
        }


class BaseAdapter(ABC):
    """
    Abstract base class for provider adapters.

    Each adapter must implement:
    - generate: one non-streaming completion
    - probe: a cheap connectivity check
    """

    provider: Provider

    def __init__(
        self,
        config: AdapterConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.config = config
        self.default_model = config.default_model
        self.client = httpx.AsyncClient(
            base_url=config.base_url,
            headers=self._headers(),
            timeout=config.timeout,
            transport=transport,
        )

    def _headers(self) -> Dict[str, str]:
        return {"Content-Type": "application/json"}

    @property
    def timeout(self) -> float:
        return self.config.timeout

    @abstractmethod
    async def generate(
        self,
        ctx: RequestContext,
        request_id: str = ""
    ) -> ProviderReply:
        """
        Generate a completion for the request.

        Raises:
            ProviderError: On any failure, already classified.
        """

    @abstractmethod
    async def probe(self) -> ProbeResult:
        """Check connectivity. Never raises."""

    async def close(self):
        await self.client.aclose()

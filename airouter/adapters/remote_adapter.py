"""
airouter - Remote Provider Adapter

Adapter for the metered Anthropic Messages API.
"""

import time
from typing import Any, Dict, List, Optional, Tuple

from .base import BaseAdapter, ProbeResult
from ..core.models import (
    Message,
    Provider,
    ProviderReply,
    RequestContext,
    Role,
)
from ..core.errors import CreditExhaustedError, handle_provider_error


class RemoteAdapter(BaseAdapter):
    """
    Adapter for the remote (Anthropic) provider.

    Structured messages are passed through; system turns move to the
    top-level ``system`` field because the API rejects them in ``messages``.
    """

    provider = Provider.REMOTE
    API_VERSION = "2023-06-01"

    def _headers(self) -> Dict[str, str]:
        return {
            "x-api-key": self.config.api_key or "",
            "anthropic-version": self.API_VERSION,
            "Content-Type": "application/json",
        }

    async def generate(
        self,
        ctx: RequestContext,
        request_id: str = ""
    ) -> ProviderReply:
        """Generate a completion via /v1/messages."""
        payload = self._build_payload(ctx)

        try:
            response = await self.client.post("/v1/messages", json=payload)
            response.raise_for_status()
            data = response.json()
        except Exception as e:
            raise handle_provider_error(e, self.provider, request_id, self.timeout)

        # Some gateways answer 200 with an error envelope
        if data.get("type") == "error":
            message = (data.get("error") or {}).get("message", "Unknown error")
            raise handle_provider_error(RuntimeError(message), self.provider, request_id)

        text = "".join(
            block.get("text", "")
            for block in data.get("content") or []
            if block.get("type") == "text"
        )
        usage = data.get("usage") or {}
        return ProviderReply(
            text=text,
            model=data.get("model") or payload["model"],
            usage={
                "input_tokens": int(usage.get("input_tokens", 0)),
                "output_tokens": int(usage.get("output_tokens", 0)),
            },
        )

    async def probe(self) -> ProbeResult:
        """Send a 10-token message. Skipped when no API key is configured."""
        result = ProbeResult(provider=self.provider)
        if not self.config.api_key:
            result.error = "Remote API key not configured"
            return result

        start = time.monotonic()
        try:
            await self.generate(
                RequestContext.from_messages(
                    [{"role": "user", "content": "Hello, just testing connectivity."}],
                    max_tokens=10,
                )
            )
            result.available = True
        except CreditExhaustedError as e:
            result.error = str(e)
            result.credit_exhausted = True
        except Exception as e:
            result.error = str(e)
        finally:
            result.latency_ms = int((time.monotonic() - start) * 1000)
        return result

    def _build_payload(self, ctx: RequestContext) -> Dict[str, Any]:
        system, messages = self._split_system(ctx.messages)

        payload: Dict[str, Any] = {
            "model": ctx.model or self.default_model,
            "max_tokens": ctx.max_tokens,
            "messages": [msg.to_dict() for msg in messages],
        }
        if system:
            payload["system"] = system
        return payload

    @staticmethod
    def _split_system(messages) -> Tuple[Optional[str], List[Message]]:
        system_parts = []
        rest = []
        for msg in messages:
            if msg.role == Role.SYSTEM:
                system_parts.append(msg.text)
            else:
                rest.append(msg)
        return "\n\n".join(system_parts) or None, rest

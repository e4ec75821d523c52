"""
airouter - Local Provider Adapter

Adapter for a self-hosted Ollama-compatible server:

    GET  /api/tags      -> {"models": [{"name": "llama3.1:8b", ...}]}
    POST /api/generate  -> {"model": ..., "response": "...", "done": true}
"""

import time
from typing import Any, Dict, Iterable, List

from .base import BaseAdapter, ProbeResult
from ..core.models import (
    Message,
    Provider,
    ProviderReply,
    RequestContext,
    Role,
    estimate_tokens,
)
from ..core.errors import handle_provider_error


def messages_to_prompt(messages: Iterable[Message]) -> str:
    """
    Flatten role/content turns into a single prompt.

    Assistant turns become ``Assistant:``; every other role becomes ``Human:``.
    """
    lines = []
    for msg in messages:
        speaker = "Assistant" if msg.role == Role.ASSISTANT else "Human"
        lines.append(f"{speaker}: {msg.text}")
    return "\n\n".join(lines)


class LocalAdapter(BaseAdapter):
    """Adapter for the local (Ollama) provider. Zero marginal cost."""

    provider = Provider.LOCAL

    async def generate(
        self,
        ctx: RequestContext,
        request_id: str = ""
    ) -> ProviderReply:
        """Generate a completion with a single concatenated prompt."""
        payload = self._build_payload(ctx)

        try:
            response = await self.client.post("/api/generate", json=payload)
            response.raise_for_status()
            data = response.json()
        except Exception as e:
            raise handle_provider_error(e, self.provider, request_id, self.timeout)

        text = data.get("response") or ""
        return ProviderReply(
            text=text,
            model=data.get("model") or payload["model"],
            usage={
                "input_tokens": estimate_tokens(payload["prompt"]),
                "output_tokens": estimate_tokens(text),
            },
        )

    async def list_models(self) -> List[str]:
        """
        List model names installed on the local server.

        Raises:
            ProviderError: If the server cannot be reached.
        """
        try:
            response = await self.client.get("/api/tags")
            response.raise_for_status()
            data = response.json()
        except Exception as e:
            raise handle_provider_error(e, self.provider, timeout=self.timeout)

        return [m["name"] for m in data.get("models") or [] if m.get("name")]

    async def probe(self) -> ProbeResult:
        """List models, then run a tiny generation against the default model."""
        result = ProbeResult(provider=self.provider)
        start = time.monotonic()
        try:
            result.models = await self.list_models()
            if not result.models:
                result.error = "No models installed"
                return result
            await self.generate(
                RequestContext.from_messages(
                    [{"role": "user", "content": "Hello"}],
                    max_tokens=10,
                )
            )
            result.available = True
        except Exception as e:
            result.error = str(e)
        finally:
            result.latency_ms = int((time.monotonic() - start) * 1000)
        return result

    def _build_payload(self, ctx: RequestContext) -> Dict[str, Any]:
        return {
            "model": self.default_model,
            "prompt": messages_to_prompt(ctx.messages),
            "stream": False,
            "options": {
                "temperature": ctx.temperature,
                "max_tokens": ctx.max_tokens,
                "top_p": ctx.top_p,
            },
        }

"""
airouter - Provider Adapters

httpx clients for the local (Ollama) and remote (Anthropic) providers.
"""

from .base import AdapterConfig, BaseAdapter, ProbeResult
from .local_adapter import LocalAdapter, messages_to_prompt
from .remote_adapter import RemoteAdapter

__all__ = [
    "AdapterConfig",
    "BaseAdapter",
    "ProbeResult",
    "LocalAdapter",
    "RemoteAdapter",
    "messages_to_prompt",
]

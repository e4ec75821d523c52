"""
airouter - Configuration

Router settings, read from the environment at startup.
"""

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional, Tuple

from .models import Provider


DEFAULT_SPECIALIZED_TASKS: Tuple[str, ...] = (
    "code_review",
    "complex_analysis",
    "creative_writing",
    "detailed_explanation",
    "technical_documentation",
    "critical_thinking",
    "advanced_reasoning",
)

DEFAULT_TRIGGER_PHRASES: Tuple[str, ...] = (
    "analyze deeply",
    "complex analysis",
    "detailed review",
    "critical thinking",
    "advanced reasoning",
    "code review",
    "technical documentation",
    "creative writing",
    "explain in detail",
    "comprehensive analysis",
)


def _is_truthy(value: Optional[str]) -> bool:
    """Check if environment variable is truthy."""
    if value is None:
        return False
    return value.lower() in ("1", "true", "yes", "on")


def _parse_list(raw: Optional[str], default: Tuple[str, ...]) -> Tuple[str, ...]:
    """Parse a comma-separated list, keeping order and dropping blanks."""
    if raw is None or not raw.strip():
        return default
    return tuple(item.strip() for item in raw.split(",") if item.strip())


def _parse_number(env: Mapping[str, str], key: str, default, cast):
    raw = env.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        value = cast(raw)
    except ValueError:
        raise ValueError(f"Invalid {key}: {raw!r}") from None
    if value < 0:
        raise ValueError(f"{key} must be >= 0, got {raw!r}")
    return value


@dataclass
class RouterConfig:
    """Configuration for the router and its two provider adapters."""

    # Local (self-hosted) provider
    local_base_url: str = "http://localhost:11434"
    local_default_model: str = "llama3.1:8b"
    local_timeout: float = 60.0  # local inference is slower per token

    # Remote (metered) provider
    remote_api_key: Optional[str] = None
    remote_base_url: str = "https://api.anthropic.com"
    remote_default_model: str = "claude-3-haiku-20240307"
    remote_timeout: float = 30.0

    # Routing
    primary_provider: Provider = Provider.LOCAL
    enable_fallback: bool = True
    specialized_tasks: Tuple[str, ...] = field(default=DEFAULT_SPECIALIZED_TASKS)
    trigger_phrases: Tuple[str, ...] = field(default=DEFAULT_TRIGGER_PHRASES)

    # Health
    probe_timeout: float = 5.0
    unreachable_after_failures: int = 1
    recovery_seconds: float = 0.0  # 0 = only a success restores reachability

    # Statistics
    cost_per_1k_tokens: float = 0.003

    def __post_init__(self):
        if self.unreachable_after_failures < 1:
            raise ValueError("unreachable_after_failures must be >= 1")
        for name in ("local_timeout", "remote_timeout", "probe_timeout"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be > 0, got {getattr(self, name)!r}")
        if not isinstance(self.primary_provider, Provider):
            self.primary_provider = Provider(self.primary_provider)

    @property
    def remote_configured(self) -> bool:
        return bool(self.remote_api_key)

    def timeout_for(self, provider: Provider) -> float:
        return self.local_timeout if provider is Provider.LOCAL else self.remote_timeout

    def default_model_for(self, provider: Provider) -> str:
        return self.local_default_model if provider is Provider.LOCAL else self.remote_default_model

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "RouterConfig":
        """
        Build configuration from environment variables.

        Raises:
            ValueError: If a value cannot be parsed.
        """
        env = os.environ if env is None else env
        defaults = cls()

        primary = env.get("PRIMARY_PROVIDER", defaults.primary_provider.value).strip().lower()
        if primary not in {p.value for p in Provider}:
            raise ValueError("PRIMARY_PROVIDER must be one of: local, remote")

        enable_fallback = env.get("ENABLE_FALLBACK")

        return cls(
            local_base_url=env.get("LOCAL_BASE_URL", defaults.local_base_url).rstrip("/"),
            local_default_model=env.get("LOCAL_DEFAULT_MODEL", defaults.local_default_model),
            local_timeout=_parse_number(env, "LOCAL_TIMEOUT_SECONDS", defaults.local_timeout, float),
            remote_api_key=env.get("REMOTE_API_KEY") or env.get("ANTHROPIC_API_KEY") or None,
            remote_base_url=env.get("REMOTE_BASE_URL", defaults.remote_base_url).rstrip("/"),
            remote_default_model=env.get("REMOTE_DEFAULT_MODEL", defaults.remote_default_model),
            remote_timeout=_parse_number(env, "REMOTE_TIMEOUT_SECONDS", defaults.remote_timeout, float),
            primary_provider=Provider(primary),
            enable_fallback=True if enable_fallback is None else _is_truthy(enable_fallback),
            specialized_tasks=_parse_list(env.get("SPECIALIZED_TASKS"), DEFAULT_SPECIALIZED_TASKS),
            trigger_phrases=tuple(
                p.lower() for p in _parse_list(env.get("TRIGGER_PHRASES"), DEFAULT_TRIGGER_PHRASES)
            ),
            probe_timeout=_parse_number(env, "PROBE_TIMEOUT_SECONDS", defaults.probe_timeout, float),
            unreachable_after_failures=_parse_number(
                env, "UNREACHABLE_AFTER_FAILURES", defaults.unreachable_after_failures, int
            ),
            recovery_seconds=_parse_number(env, "RECOVERY_SECONDS", defaults.recovery_seconds, float),
            cost_per_1k_tokens=_parse_number(env, "COST_PER_1K_TOKENS", defaults.cost_per_1k_tokens, float),
        )

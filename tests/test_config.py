"""
airouter - Configuration Tests

Verifies RouterConfig defaults and environment parsing.
"""

import pytest

from airouter.core.config import (
    DEFAULT_SPECIALIZED_TASKS,
    DEFAULT_TRIGGER_PHRASES,
    RouterConfig,
)
from airouter.core.models import Provider


class TestDefaults:
    """Defaults without any environment."""

    def test_defaults(self):
        config = RouterConfig.from_env({})
        assert config.local_base_url == "http://localhost:11434"
        assert config.local_default_model == "llama3.1:8b"
        assert config.remote_base_url == "https://api.anthropic.com"
        assert config.remote_default_model == "claude-3-haiku-20240307"
        assert config.primary_provider == Provider.LOCAL
        assert config.enable_fallback is True
        assert config.local_timeout == 60.0
        assert config.remote_timeout == 30.0
        assert config.probe_timeout == 5.0
        assert config.unreachable_after_failures == 1
        assert config.recovery_seconds == 0.0
        assert config.cost_per_1k_tokens == 0.003
        assert config.specialized_tasks == DEFAULT_SPECIALIZED_TASKS
        assert config.trigger_phrases == DEFAULT_TRIGGER_PHRASES
        assert config.remote_configured is False

    def test_timeout_and_model_lookup(self):
        config = RouterConfig()
        assert config.timeout_for(Provider.LOCAL) == 60.0
        assert config.timeout_for(Provider.REMOTE) == 30.0
        assert config.default_model_for(Provider.REMOTE) == "claude-3-haiku-20240307"


class TestFromEnv:
    """Environment overrides."""

    def test_overrides(self):
        config = RouterConfig.from_env({
            "LOCAL_BASE_URL": "http://gpu-box:11434/",
            "REMOTE_API_KEY": "sk-test",
            "PRIMARY_PROVIDER": "Remote",
            "ENABLE_FALLBACK": "false",
            "LOCAL_TIMEOUT_SECONDS": "90",
            "UNREACHABLE_AFTER_FAILURES": "3",
            "RECOVERY_SECONDS": "30",
            "SPECIALIZED_TASKS": "code_review, legal_review,",
            "TRIGGER_PHRASES": "Deep Dive,Think Hard",
        })
        assert config.local_base_url == "http://gpu-box:11434"
        assert config.remote_api_key == "sk-test"
        assert config.remote_configured is True
        assert config.primary_provider == Provider.REMOTE
        assert config.enable_fallback is False
        assert config.local_timeout == 90.0
        assert config.unreachable_after_failures == 3
        assert config.recovery_seconds == 30.0
        assert config.specialized_tasks == ("code_review", "legal_review")
        assert config.trigger_phrases == ("deep dive", "think hard")

    def test_anthropic_key_alias(self):
        config = RouterConfig.from_env({"ANTHROPIC_API_KEY": "sk-alias"})
        assert config.remote_api_key == "sk-alias"

    @pytest.mark.parametrize("value,expected", [
        ("1", True), ("yes", True), ("ON", True), ("0", False), ("no", False),
    ])
    def test_fallback_flag(self, value, expected):
        assert RouterConfig.from_env({"ENABLE_FALLBACK": value}).enable_fallback is expected

    @pytest.mark.parametrize("env", [
        {"PRIMARY_PROVIDER": "openai"},
        {"LOCAL_TIMEOUT_SECONDS": "soon"},
        {"REMOTE_TIMEOUT_SECONDS": "-1"},
        {"LOCAL_TIMEOUT_SECONDS": "0"},
        {"REMOTE_TIMEOUT_SECONDS": "0"},
        {"PROBE_TIMEOUT_SECONDS": "0"},
        {"UNREACHABLE_AFTER_FAILURES": "0"},
        {"UNREACHABLE_AFTER_FAILURES": "1.5"},
    ])
    def test_invalid_values(self, env):
        with pytest.raises(ValueError):
            RouterConfig.from_env(env)

    def test_primary_provider_coerced(self):
        assert RouterConfig(primary_provider="remote").primary_provider == Provider.REMOTE

    @pytest.mark.parametrize("field_name", ["local_timeout", "remote_timeout", "probe_timeout"])
    def test_zero_timeout_rejected(self, field_name):
        with pytest.raises(ValueError, match=field_name):
            RouterConfig(**{field_name: 0})

"""
airouter - Routing Engine Tests

Verifies provider selection for specialized and standard requests under
every combination of provider health.
"""

import pytest

from airouter.core.models import Classification, ErrorClass, Provider
from airouter.routing.engine import RoutingEngine

from conftest import make_ctx


SPECIALIZED = Classification(True, "keyword_trigger:code review")
STANDARD = Classification(False, "standard_request")


def _take_down(health, provider, error_class=ErrorClass.TRANSPORT):
    health.record_failure(provider, error_class)


# ============================================================
# Specialized Requests
# ============================================================

class TestSpecializedRouting:
    """Specialized requests prefer the remote provider."""

    def test_remote_when_usable(self, healthy):
        decision = RoutingEngine(healthy).route(make_ctx(), SPECIALIZED)
        assert decision.provider == Provider.REMOTE
        assert decision.reason == "keyword_trigger:code review"
        assert decision.specialized is True

    def test_local_when_remote_credit_exhausted(self, healthy):
        _take_down(healthy, Provider.REMOTE, ErrorClass.CREDIT_EXHAUSTED)
        decision = RoutingEngine(healthy).route(make_ctx(), SPECIALIZED)
        assert decision.provider == Provider.LOCAL
        assert decision.reason == "provider_unavailable_fallback"

    def test_local_when_remote_unreachable(self, healthy):
        _take_down(healthy, Provider.REMOTE)
        decision = RoutingEngine(healthy).route(make_ctx(), SPECIALIZED)
        assert decision.provider == Provider.LOCAL
        assert decision.reason == "provider_unavailable_fallback"

    def test_credit_exhausted_even_if_reachable(self, healthy, clock):
        _take_down(healthy, Provider.REMOTE, ErrorClass.CREDIT_EXHAUSTED)
        clock.advance(1)
        healthy.record_success(Provider.REMOTE, 100)
        assert healthy.snapshot(Provider.REMOTE).reachable is True

        decision = RoutingEngine(healthy).route(make_ctx(), SPECIALIZED)
        assert decision.provider == Provider.LOCAL


# ============================================================
# Standard Requests
# ============================================================

class TestStandardRouting:
    """Standard requests go to the configured primary when usable."""

    def test_local_primary(self, healthy):
        decision = RoutingEngine(healthy, Provider.LOCAL).route(make_ctx(), STANDARD)
        assert decision.provider == Provider.LOCAL
        assert decision.reason == "primary_provider"
        assert decision.specialized is False

    def test_remote_primary(self, healthy):
        decision = RoutingEngine(healthy, Provider.REMOTE).route(make_ctx(), STANDARD)
        assert decision.provider == Provider.REMOTE
        assert decision.reason == "primary_provider"

    def test_remote_when_local_unreachable(self, health):
        # Local has never been probed
        decision = RoutingEngine(health, Provider.LOCAL).route(make_ctx(), STANDARD)
        assert decision.provider == Provider.REMOTE
        assert decision.reason == "fallback_available"

    def test_local_when_remote_primary_credit_exhausted(self, healthy):
        _take_down(healthy, Provider.REMOTE, ErrorClass.CREDIT_EXHAUSTED)
        decision = RoutingEngine(healthy, Provider.REMOTE).route(make_ctx(), STANDARD)
        assert decision.provider == Provider.LOCAL
        assert decision.reason == "fallback_available"

    def test_last_resort(self, health):
        _take_down(health, Provider.REMOTE)
        decision = RoutingEngine(health).route(make_ctx(), STANDARD)
        assert decision.provider == Provider.LOCAL
        assert decision.reason == "last_resort"

    def test_last_resort_with_remote_primary(self, health):
        _take_down(health, Provider.REMOTE)
        decision = RoutingEngine(health, Provider.REMOTE).route(make_ctx(), STANDARD)
        assert decision.provider == Provider.LOCAL
        assert decision.reason == "last_resort"


# ============================================================
# Engine Properties
# ============================================================

class TestEngineProperties:
    """Routing reads health but never changes it."""

    @pytest.mark.parametrize("classification", [SPECIALIZED, STANDARD])
    def test_does_not_mutate_health(self, healthy, classification):
        before = healthy.snapshots()
        RoutingEngine(healthy).route(make_ctx(), classification)
        assert healthy.snapshots() == before

    def test_fresh_decision_each_call(self, healthy):
        engine = RoutingEngine(healthy)
        first = engine.route(make_ctx(), STANDARD)
        second = engine.route(make_ctx(), STANDARD)
        assert first == second
        assert first is not second

    def test_accepts_primary_as_string(self, healthy):
        assert RoutingEngine(healthy, "remote").primary_provider == Provider.REMOTE

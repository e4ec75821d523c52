"""
airouter - Routing Engine

Maps a classification plus current provider health to a provider choice.

Specialized requests:
    remote if usable, else local (provider_unavailable_fallback)

Standard requests:
    configured primary if usable (primary_provider)
    else first usable of local, remote (fallback_available)
    else local (last_resort)

"Usable" means reachable and, for remote, not credit exhausted. The engine
only reads health snapshots; it never mutates them and never raises.
"""

from ..core.models import (
    Classification,
    Provider,
    RequestContext,
    RoutingDecision,
    RoutingReason,
)
from .health import HealthTracker


# Preference order when the primary is not usable
FALLBACK_ORDER = (Provider.LOCAL, Provider.REMOTE)


class RoutingEngine:
    """Chooses a provider for each request."""

    def __init__(self, health: HealthTracker, primary_provider: Provider = Provider.LOCAL):
        self.health = health
        self.primary_provider = Provider(primary_provider)

    def route(self, ctx: RequestContext, classification: Classification) -> RoutingDecision:
        """Produce a fresh routing decision. Total over all inputs."""
        if classification.specialized:
            if self.health.snapshot(Provider.REMOTE).usable:
                return RoutingDecision(Provider.REMOTE, classification.reason, specialized=True)
            return RoutingDecision(
                Provider.LOCAL,
                RoutingReason.PROVIDER_UNAVAILABLE_FALLBACK.tag(),
                specialized=True,
            )

        if self.health.snapshot(self.primary_provider).usable:
            return RoutingDecision(self.primary_provider, RoutingReason.PRIMARY_PROVIDER.tag())

        for provider in FALLBACK_ORDER:
            if self.health.snapshot(provider).usable:
                return RoutingDecision(provider, RoutingReason.FALLBACK_AVAILABLE.tag())

        # Nothing looks healthy: local costs nothing to try
        return RoutingDecision(Provider.LOCAL, RoutingReason.LAST_RESORT.tag())

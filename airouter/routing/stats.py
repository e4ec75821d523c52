"""
airouter - Request Statistics

Aggregates per-request outcomes into usage and savings statistics. The
aggregator is the only writer; ``report()`` hands out immutable snapshots.

Cost savings are a rough estimate: every request served locally is assumed
to have saved ``ceil(prompt_chars / 4) / 1000 * cost_per_1k_tokens`` dollars
of remote spend.
"""

import math
from dataclasses import dataclass, field
from threading import Lock
from typing import Any, Dict, Optional

from ..core.models import Outcome, Provider, RoutingDecision, RoutingReason


SPECIALIZED_REASONS = (
    RoutingReason.SPECIALIZED_TASK.value,
    RoutingReason.KEYWORD_TRIGGER.value,
    RoutingReason.HIGH_COMPLEXITY.value,
)


def _percent(part: int, whole: int) -> float:
    return round(part / whole * 100, 2) if whole else 0.0


@dataclass(frozen=True)
class Statistics:
    """Point-in-time statistics snapshot."""
    total_requests: int = 0
    local_requests: int = 0
    remote_requests: int = 0
    errors_by_provider: Dict[str, int] = field(default_factory=dict)
    fallback_triggers: int = 0
    specialized_requests: int = 0
    keyword_triggered_requests: int = 0
    local_cost_saving_requests: int = 0
    estimated_cost_saved: float = 0.0

    @property
    def local_usage_percent(self) -> float:
        return _percent(self.local_requests, self.total_requests)

    @property
    def remote_usage_percent(self) -> float:
        return _percent(self.remote_requests, self.total_requests)

    @property
    def specialization_rate(self) -> float:
        return _percent(self.specialized_requests, self.total_requests)

    @property
    def savings_rate(self) -> float:
        return _percent(self.local_cost_saving_requests, self.total_requests)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_requests": self.total_requests,
            "local_requests": self.local_requests,
            "remote_requests": self.remote_requests,
            "errors_by_provider": dict(self.errors_by_provider),
            "fallback_triggers": self.fallback_triggers,
            "specialized_requests": self.specialized_requests,
            "keyword_triggered_requests": self.keyword_triggered_requests,
            "local_usage_percent": self.local_usage_percent,
            "remote_usage_percent": self.remote_usage_percent,
            "specialization_rate": self.specialization_rate,
            "cost_savings": {
                "local_cost_saving_requests": self.local_cost_saving_requests,
                "estimated_cost_saved": round(self.estimated_cost_saved, 6),
                "savings_rate": self.savings_rate,
            },
        }


class StatisticsAggregator:
    """Thread-safe request statistics."""

    def __init__(self, cost_per_1k_tokens: float = 0.003):
        self.cost_per_1k_tokens = cost_per_1k_tokens
        self._lock = Lock()
        self._reset()

    def _reset(self):
        self._total = 0
        self._served = {provider: 0 for provider in Provider}
        self._errors = {provider: 0 for provider in Provider}
        self._fallbacks = 0
        self._specialized = 0
        self._keyword_triggered = 0
        self._cost_saving = 0
        self._cost_saved = 0.0

    def observe(
        self,
        decision: RoutingDecision,
        primary: Outcome,
        fallback: Optional[Outcome] = None,
        prompt_chars: int = 0,
    ):
        """
        Fold one completed request into the statistics.

        Signature matches ``ExecutionOrchestrator.add_listener``.
        """
        tag = decision.reason.split(":", 1)[0]
        served = next(
            (o.provider for o in (primary, fallback) if o is not None and o.success),
            None,
        )

        with self._lock:
            self._total += 1

            for outcome in (primary, fallback):
                if outcome is not None and not outcome.success:
                    self._errors[outcome.provider] += 1

            if fallback is not None:
                self._fallbacks += 1

            if tag in SPECIALIZED_REASONS:
                self._specialized += 1
            if tag == RoutingReason.KEYWORD_TRIGGER.value:
                self._keyword_triggered += 1

            if served is not None:
                self._served[served] += 1
                if served is Provider.LOCAL:
                    self._cost_saving += 1
                    self._cost_saved += math.ceil(prompt_chars / 4) / 1000 * self.cost_per_1k_tokens

    def report(self) -> Statistics:
        """Read-only snapshot."""
        with self._lock:
            return Statistics(
                total_requests=self._total,
                local_requests=self._served[Provider.LOCAL],
                remote_requests=self._served[Provider.REMOTE],
                errors_by_provider={p.value: n for p, n in self._errors.items()},
                fallback_triggers=self._fallbacks,
                specialized_requests=self._specialized,
                keyword_triggered_requests=self._keyword_triggered,
                local_cost_saving_requests=self._cost_saving,
                estimated_cost_saved=self._cost_saved,
            )

    def clear(self):
        """Reset every counter to zero."""
        with self._lock:
            self._reset()

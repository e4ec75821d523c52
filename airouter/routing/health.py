"""
airouter - Provider Health Tracking

Live status for the two providers:
- reachable / unreachable (immediate distrust after a failure streak)
- sticky remote credit exhaustion
- failure streaks and last success / failure timestamps
- EMA latency

Success vs failure races are resolved on attempt completion time, not on
the order the updates reach the tracker: a failure that completed before a
recorded success cannot re-open a streak the success already cleared, and a
success that completed before a recorded failure cannot clear that failure.
"""

import time
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Dict, Iterable, Optional, Tuple

from ..core.models import ErrorClass, Provider, ProviderState


# Weight of the newest latency sample in the moving average
LATENCY_EMA_WEIGHT = 0.2


@dataclass
class _ProviderRecord:
    """Mutable per-provider state. Only touched under the tracker lock."""
    down: bool
    credit_exhausted: bool = False
    consecutive_failures: int = 0
    last_success_at: Optional[float] = None
    last_failure_at: Optional[float] = None
    average_latency_ms: float = 0.0
    latency_samples: int = 0
    last_error_class: Optional[ErrorClass] = None
    models: Tuple[str, ...] = ()
    default_model: Optional[str] = None


class HealthTracker:
    """
    Tracks health for the local and remote providers.

    ``record_success`` / ``record_failure`` are the request-path mutators;
    ``snapshot`` is the only reader used by routing.
    """

    def __init__(
        self,
        unreachable_after_failures: int = 1,
        recovery_seconds: float = 0.0,
        remote_reachable: bool = True,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            unreachable_after_failures: Consecutive failures that mark a provider unreachable
            recovery_seconds: Time after the last failure when an unreachable
                provider may be tried again (0 = wait for a success)
            remote_reachable: Initial remote reachability (normally: API key configured)
            clock: Time source, injectable for tests
        """
        if unreachable_after_failures < 1:
            raise ValueError("unreachable_after_failures must be >= 1")

        self.unreachable_after_failures = unreachable_after_failures
        self.recovery_seconds = recovery_seconds
        self._clock = clock
        self._lock = Lock()

        # Local stays unreachable until a probe or request succeeds
        self._records: Dict[Provider, _ProviderRecord] = {
            Provider.LOCAL: _ProviderRecord(down=True),
            Provider.REMOTE: _ProviderRecord(down=not remote_reachable),
        }
        self.credit_reset_at: Optional[float] = None

    # ------------------------------------------------------------
    # Mutators
    # ------------------------------------------------------------

    def record_success(self, provider: Provider, latency_ms: float, at: Optional[float] = None):
        """Record a successful call that completed at ``at``."""
        at = self._clock() if at is None else at
        with self._lock:
            rec = self._records[provider]

            if rec.last_failure_at is None or at >= rec.last_failure_at:
                rec.consecutive_failures = 0
                rec.down = False

            if rec.last_success_at is None or at > rec.last_success_at:
                rec.last_success_at = at

            if rec.latency_samples == 0:
                rec.average_latency_ms = float(latency_ms)
            else:
                rec.average_latency_ms = (
                    rec.average_latency_ms * (1 - LATENCY_EMA_WEIGHT)
                    + latency_ms * LATENCY_EMA_WEIGHT
                )
            rec.latency_samples += 1

    def record_failure(self, provider: Provider, error_class: ErrorClass, at: Optional[float] = None):
        """Record a failed call that completed at ``at``."""
        at = self._clock() if at is None else at
        with self._lock:
            self._apply_failure(provider, error_class, at)

    def mark_probe(
        self,
        provider: Provider,
        reachable: bool,
        models: Optional[Iterable[str]] = None,
        default_model: Optional[str] = None,
        error_class: ErrorClass = ErrorClass.TRANSPORT,
    ):
        """
        Record the result of a start-up / refresh probe.

        Models and reachability change together, so a concurrent snapshot
        never sees the new model list next to the old reachability.
        """
        models = None if models is None else tuple(models)
        now = self._clock()
        with self._lock:
            rec = self._records[provider]
            if models is not None:
                rec.models = models
            if default_model is not None:
                rec.default_model = default_model

            if reachable:
                rec.down = False
                rec.consecutive_failures = 0
                if rec.last_success_at is None or now > rec.last_success_at:
                    rec.last_success_at = now
            else:
                self._apply_failure(provider, error_class, now)

    def _apply_failure(self, provider: Provider, error_class: ErrorClass, at: float):
        """Caller holds the lock."""
        rec = self._records[provider]

        # Sticky and set-once, whatever the ordering
        if error_class == ErrorClass.CREDIT_EXHAUSTED and provider is Provider.REMOTE:
            rec.credit_exhausted = True

        if rec.last_success_at is not None and at < rec.last_success_at:
            # Superseded by a success that completed later
            return

        rec.consecutive_failures += 1
        rec.last_error_class = error_class
        if rec.last_failure_at is None or at > rec.last_failure_at:
            rec.last_failure_at = at
        if rec.consecutive_failures >= self.unreachable_after_failures:
            rec.down = True

    def reset_credit_exhaustion(self):
        """
        Clear the sticky remote credit flag (after billing was restored).

        If billing was the last thing that went wrong, the provider is
        trusted again immediately.
        """
        with self._lock:
            rec = self._records[Provider.REMOTE]
            rec.credit_exhausted = False
            if rec.last_error_class == ErrorClass.CREDIT_EXHAUSTED:
                rec.down = False
                rec.consecutive_failures = 0
            self.credit_reset_at = self._clock()

    # ------------------------------------------------------------
    # Readers
    # ------------------------------------------------------------

    def snapshot(self, provider: Provider) -> ProviderState:
        """Point-in-time state of one provider."""
        with self._lock:
            rec = self._records[provider]
            return ProviderState(
                provider=provider,
                reachable=self._is_reachable(rec),
                credit_exhausted=rec.credit_exhausted,
                consecutive_failures=rec.consecutive_failures,
                last_success_at=rec.last_success_at,
                last_failure_at=rec.last_failure_at,
                average_latency_ms=rec.average_latency_ms,
                last_error_class=rec.last_error_class,
                models=rec.models,
                default_model=rec.default_model,
            )

    def snapshots(self) -> Dict[str, ProviderState]:
        return {provider.value: self.snapshot(provider) for provider in Provider}

    @property
    def credit_exhausted(self) -> bool:
        with self._lock:
            return self._records[Provider.REMOTE].credit_exhausted

    def _is_reachable(self, rec: _ProviderRecord) -> bool:
        if not rec.down:
            return True
        if self.recovery_seconds > 0 and rec.last_failure_at is not None:
            return self._clock() - rec.last_failure_at >= self.recovery_seconds
        return False

"""
airouter - Execution Orchestrator

Runs a routing decision against the chosen provider, with at most one
fallback to the alternate provider:

    Routed -> Executing(primary) -> Success
                                 -> Executing(fallback) -> Success | Failed

Fallback is permitted only when:
- fallback is enabled
- the alternate provider is reachable
- the alternate is not a credit-exhausted remote

Every attempt is recorded in the health tracker and metrics. Every completed
request (success or failure) is reported to the registered listeners. A
cancelled request records nothing for the abandoned attempt.
"""

import asyncio
import time
from typing import Callable, Dict, List, Optional, Tuple

from ..adapters.base import BaseAdapter
from ..core.errors import DualFailureError, handle_provider_error
from ..core.models import (
    Outcome,
    Provider,
    ProviderReply,
    RequestContext,
    RouterResponse,
    RoutingDecision,
)
from ..observability.logging import get_logger
from ..observability.metrics import MetricsCollector
from .health import HealthTracker

logger = get_logger(__name__)


# callback(decision, primary_outcome, fallback_outcome, prompt_chars)
Listener = Callable[[RoutingDecision, Outcome, Optional[Outcome], int], None]


class ExecutionOrchestrator:
    """Executes one request with a single optional fallback."""

    def __init__(
        self,
        adapters: Dict[Provider, BaseAdapter],
        health: HealthTracker,
        enable_fallback: bool = True,
        timeouts: Optional[Dict[Provider, float]] = None,
        metrics: Optional[MetricsCollector] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            adapters: One adapter per provider
            health: Shared health tracker
            enable_fallback: Allow a second attempt on the alternate provider
            timeouts: Per-provider timeout in seconds (default: adapter timeout)
            metrics: Optional Prometheus collector
            clock: Completion-time source for health updates
        """
        self.adapters = adapters
        self.health = health
        self.enable_fallback = enable_fallback
        self.timeouts = timeouts or {
            provider: adapter.timeout for provider, adapter in adapters.items()
        }
        self.metrics = metrics
        self._clock = clock
        self._listeners: List[Listener] = []

    def add_listener(self, callback: Listener):
        """Register a callback invoked once per completed request."""
        self._listeners.append(callback)

    async def execute(self, ctx: RequestContext, decision: RoutingDecision) -> RouterResponse:
        """
        Execute a routing decision.

        Returns:
            RouterResponse from whichever provider succeeded

        Raises:
            DualFailureError: If the request could not be served
        """
        start = time.monotonic()
        prompt_chars = len(ctx.text())

        reply, primary = await self._attempt(decision.provider, ctx)
        if reply is not None:
            self._notify(decision, primary, None, prompt_chars)
            return self._build_response(reply, decision, decision.provider, start)

        alternate = decision.provider.other
        skipped = self._fallback_skip_reason(alternate)
        if skipped is not None:
            logger.warning(
                "Fallback not attempted",
                failed_provider=decision.provider.value,
                fallback_provider=alternate.value,
                skip_reason=skipped,
            )
            self._notify(decision, primary, None, prompt_chars)
            raise DualFailureError(
                decision.provider,
                primary.error or "unknown error",
                fallback_skipped=skipped,
                request_id=ctx.request_id,
            )

        logger.info(
            "Falling back to alternate provider",
            failed_provider=decision.provider.value,
            fallback_provider=alternate.value,
            error_class=primary.error_class.value if primary.error_class else None,
        )
        if self.metrics:
            self.metrics.record_fallback(decision.provider.value, alternate.value)

        reply, fallback = await self._attempt(alternate, ctx)
        self._notify(decision, primary, fallback, prompt_chars)

        if reply is None:
            raise DualFailureError(
                decision.provider,
                primary.error or "unknown error",
                fallback_error=fallback.error or "unknown error",
                request_id=ctx.request_id,
            )

        return self._build_response(
            reply,
            decision,
            alternate,
            start,
            fallback_used=True,
            original_provider=decision.provider,
        )

    # ------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------

    async def _attempt(
        self,
        provider: Provider,
        ctx: RequestContext
    ) -> Tuple[Optional[ProviderReply], Outcome]:
        """Call one provider under its timeout and record the result."""
        adapter = self.adapters[provider]
        timeout = self.timeouts.get(provider, adapter.timeout)
        start = time.monotonic()

        try:
            reply = await asyncio.wait_for(adapter.generate(ctx, ctx.request_id), timeout=timeout)
        except Exception as e:
            error = handle_provider_error(e, provider, ctx.request_id, timeout)
            latency_ms = int((time.monotonic() - start) * 1000)

            self.health.record_failure(provider, error.error_class, at=self._clock())
            self._publish(provider, False, latency_ms, error.error_class.value)

            logger.warning(
                "Provider attempt failed",
                attempted_provider=provider.value,
                error_class=error.error_class.value,
                error=str(error),
                latency_ms=latency_ms,
            )
            return None, Outcome(provider, False, latency_ms, error.error_class, str(error))

        latency_ms = int((time.monotonic() - start) * 1000)
        self.health.record_success(provider, latency_ms, at=self._clock())
        self._publish(provider, True, latency_ms)

        logger.debug(
            "Provider attempt succeeded",
            attempted_provider=provider.value,
            latency_ms=latency_ms,
        )
        return reply, Outcome(provider, True, latency_ms)

    def _fallback_skip_reason(self, alternate: Provider) -> Optional[str]:
        """Why the alternate cannot be tried, or None when it can."""
        if not self.enable_fallback:
            return "fallback disabled"
        state = self.health.snapshot(alternate)
        if not state.reachable:
            return "unreachable"
        if state.credit_exhausted:
            return "credit exhausted"
        return None

    def _build_response(
        self,
        reply: ProviderReply,
        decision: RoutingDecision,
        served_by: Provider,
        start: float,
        fallback_used: bool = False,
        original_provider: Optional[Provider] = None,
    ) -> RouterResponse:
        return RouterResponse(
            text=reply.text,
            provider=served_by,
            model=reply.model,
            routing_reason=decision.reason,
            latency_ms=int((time.monotonic() - start) * 1000),
            fallback_used=fallback_used,
            original_provider=original_provider,
            cost_saving_mode=served_by is Provider.LOCAL,
            usage=dict(reply.usage),
        )

    def _publish(
        self,
        provider: Provider,
        success: bool,
        latency_ms: int,
        error_class: Optional[str] = None
    ):
        if not self.metrics:
            return
        self.metrics.record_attempt(provider.value, success, latency_ms, error_class)
        self.metrics.set_provider_reachable(provider.value, self.health.snapshot(provider).reachable)
        self.metrics.set_credit_exhausted(self.health.credit_exhausted)

    def _notify(
        self,
        decision: RoutingDecision,
        primary: Outcome,
        fallback: Optional[Outcome],
        prompt_chars: int
    ):
        for callback in self._listeners:
            try:
                callback(decision, primary, fallback, prompt_chars)
            except Exception:
                logger.exception("Request listener failed")

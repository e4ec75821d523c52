"""
airouter - Router Facade

Wires the classifier, routing engine, orchestrator, health tracker and
statistics together behind one object:

    ctx -> classify -> route -> execute -> RouterResponse

Also exposes the administrative operations (stats, credit reset, local
refresh, provider probes).
"""

import asyncio
from typing import Any, Dict, List, Optional

from ..adapters.base import AdapterConfig, BaseAdapter, ProbeResult
from ..adapters.local_adapter import LocalAdapter
from ..adapters.remote_adapter import RemoteAdapter
from ..core.config import RouterConfig
from ..core.errors import handle_provider_error
from ..core.models import ErrorClass, Provider, RequestContext, RouterResponse
from ..observability.logging import LogContext, get_logger
from ..observability.metrics import MetricsCollector
from .classifier import RequestClassifier
from .engine import RoutingEngine
from .health import HealthTracker
from .orchestrator import ExecutionOrchestrator
from .stats import StatisticsAggregator

logger = get_logger(__name__)


class AIRouter:
    """
    Cost-aware router between a local and a remote text-generation provider.

    Collaborators are injectable; anything not supplied is built from the
    configuration.
    """

    def __init__(
        self,
        config: Optional[RouterConfig] = None,
        local_adapter: Optional[LocalAdapter] = None,
        remote_adapter: Optional[RemoteAdapter] = None,
        health: Optional[HealthTracker] = None,
        stats: Optional[StatisticsAggregator] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.config = config or RouterConfig()
        cfg = self.config

        self.local_adapter = local_adapter or LocalAdapter(AdapterConfig(
            base_url=cfg.local_base_url,
            default_model=cfg.default_model_for(Provider.LOCAL),
            timeout=cfg.local_timeout,
        ))
        self.remote_adapter = remote_adapter or RemoteAdapter(AdapterConfig(
            base_url=cfg.remote_base_url,
            default_model=cfg.default_model_for(Provider.REMOTE),
            api_key=cfg.remote_api_key,
            timeout=cfg.remote_timeout,
        ))
        self.adapters: Dict[Provider, BaseAdapter] = {
            Provider.LOCAL: self.local_adapter,
            Provider.REMOTE: self.remote_adapter,
        }

        self.health = health or HealthTracker(
            unreachable_after_failures=cfg.unreachable_after_failures,
            recovery_seconds=cfg.recovery_seconds,
            remote_reachable=cfg.remote_configured,
        )
        self.stats = stats or StatisticsAggregator(cfg.cost_per_1k_tokens)
        self.metrics = metrics

        self.classifier = RequestClassifier(cfg.specialized_tasks, cfg.trigger_phrases)
        self.engine = RoutingEngine(self.health, cfg.primary_provider)
        self.orchestrator = ExecutionOrchestrator(
            self.adapters,
            self.health,
            enable_fallback=cfg.enable_fallback,
            timeouts={provider: cfg.timeout_for(provider) for provider in Provider},
            metrics=metrics,
        )
        self.orchestrator.add_listener(self.stats.observe)

    # ============================================================
    # Lifecycle
    # ============================================================

    async def start(self):
        """Probe the local provider. Never raises."""
        await self.refresh_local_connection()
        self._publish_health()

        remote = self.health.snapshot(Provider.REMOTE)
        logger.info(
            "Router started",
            primary_provider=self.config.primary_provider.value,
            local_reachable=self.health.snapshot(Provider.LOCAL).reachable,
            local_model=self.local_adapter.default_model,
            remote_reachable=remote.reachable,
            fallback_enabled=self.config.enable_fallback,
        )

    async def close(self):
        for adapter in self.adapters.values():
            await adapter.close()

    # ============================================================
    # Request path
    # ============================================================

    async def process_request(self, ctx: RequestContext) -> RouterResponse:
        """
        Classify, route and execute one request.

        Raises:
            DualFailureError: If neither provider could serve the request
        """
        log_ctx = LogContext(request_id=ctx.request_id)
        token = LogContext.set_current(log_ctx)
        try:
            classification = self.classifier.classify(ctx)
            decision = self.engine.route(ctx, classification)
            log_ctx.update(provider=decision.provider.value, routing_reason=decision.reason)

            logger.info(
                "Routing decision",
                specialized=decision.specialized,
                classification=classification.reason,
            )
            if self.metrics:
                self.metrics.record_routing_decision(decision.provider.value, decision.reason)

            response = await self.orchestrator.execute(ctx, decision)

            logger.info(
                "Request served",
                served_by=response.provider.value,
                model=response.model,
                latency_ms=response.latency_ms,
                fallback_used=response.fallback_used,
            )
            return response
        finally:
            LogContext.reset(token)

    # ============================================================
    # Administration
    # ============================================================

    def get_stats(self) -> Dict[str, Any]:
        """Statistics plus provider state and routing configuration."""
        report = self.stats.report().to_dict()
        report["providers"] = {
            name: state.to_dict() for name, state in self.health.snapshots().items()
        }
        report["primary_provider"] = self.config.primary_provider.value
        report["fallback_enabled"] = self.config.enable_fallback
        report["specialized_tasks"] = sorted(self.classifier.specialized_tasks)
        report["trigger_phrases"] = list(self.classifier.trigger_phrases)
        return report

    def clear_stats(self):
        self.stats.clear()
        logger.info("Statistics cleared")

    def reset_credit_exhaustion(self):
        """Clear the sticky remote credit flag after billing was restored."""
        self.health.reset_credit_exhaustion()
        self._publish_health()
        logger.info("Remote credit exhaustion reset")

    async def list_local_models(self) -> List[str]:
        """
        Model names installed on the local server.

        Raises:
            ProviderError: If the local server cannot be reached.
        """
        return await self.local_adapter.list_models()

    async def refresh_local_connection(self) -> bool:
        """
        Re-probe the local server's model list and update its health.

        If the configured default model is not installed but others are,
        the first listed model becomes the default.
        """
        try:
            models = await asyncio.wait_for(
                self.list_local_models(),
                timeout=self.config.probe_timeout,
            )
        except Exception as e:
            error = handle_provider_error(e, Provider.LOCAL, timeout=self.config.probe_timeout)
            self.health.mark_probe(Provider.LOCAL, False, error_class=error.error_class)
            self._publish_health()
            logger.warning(
                "Local provider not available",
                error_class=error.error_class.value,
                error=str(error),
            )
            return False

        if models and self.local_adapter.default_model not in models:
            logger.warning(
                "Configured local model not installed, using first available",
                configured_model=self.local_adapter.default_model,
                substitute_model=models[0],
            )
            self.local_adapter.default_model = models[0]

        self.health.mark_probe(
            Provider.LOCAL,
            True,
            models=models,
            default_model=self.local_adapter.default_model,
        )
        self._publish_health()
        logger.info("Local provider connected", model_count=len(models))
        return True

    async def test_providers(self) -> Dict[str, Dict[str, Any]]:
        """Probe both providers. Health and statistics are left untouched."""
        results = await asyncio.gather(
            self._probe(self.local_adapter),
            self._probe(self.remote_adapter),
        )
        return {result.provider.value: result.to_dict() for result in results}

    async def _probe(self, adapter: BaseAdapter) -> ProbeResult:
        try:
            return await asyncio.wait_for(adapter.probe(), timeout=self.config.probe_timeout)
        except asyncio.TimeoutError:
            return ProbeResult(
                provider=adapter.provider,
                latency_ms=int(self.config.probe_timeout * 1000),
                error=f"{ErrorClass.TIMEOUT.value}: no answer within {self.config.probe_timeout:g}s",
            )

    def _publish_health(self):
        if not self.metrics:
            return
        for provider in Provider:
            self.metrics.set_provider_reachable(provider.value, self.health.snapshot(provider).reachable)
        self.metrics.set_credit_exhausted(self.health.credit_exhausted)

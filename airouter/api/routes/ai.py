"""
airouter - AI Routing API

Endpoint for routed completions plus the router's administrative
operations.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ...routing.router import AIRouter

from ..models import (
    ActionResponse,
    LocalRefreshResponse,
    MessageData,
    MessageMetadata,
    MessagesRequest,
    MessagesResponse,
    ModelListResponse,
)
from ..dependencies import get_request_id, get_router


router = APIRouter(prefix="/v1/ai", tags=["ai"])


# ============================================================
# Messages Endpoint
# ============================================================

@router.post("/messages", response_model=MessagesResponse)
async def create_message(
    body: MessagesRequest,
    request_id: str = Depends(get_request_id),
    router_instance: AIRouter = Depends(get_router)
):
    """
    Route a completion request to the local or remote provider.

    **Routing:**
    - Specialized work (`task_type` such as `code_review`, trigger phrases,
      complex or code-related prompts, `force_remote`) prefers the remote provider
    - Everything else goes to the configured primary (local by default)
    - A failed attempt falls back once to the other provider
    """
    ctx = body.to_context(request_id)
    result = await router_instance.process_request(ctx)

    response = MessagesResponse(
        data=MessageData(text=result.text, model=result.model, usage=result.usage),
        metadata=MessageMetadata(
            provider=result.provider.value,
            routing_reason=result.routing_reason,
            latency_ms=result.latency_ms,
            fallback_used=result.fallback_used,
            original_provider=result.original_provider.value if result.original_provider else None,
            cost_saving_mode=result.cost_saving_mode,
        ),
    )

    return JSONResponse(
        content=response.model_dump(mode="json"),
        headers={
            "X-Request-Id": ctx.request_id,
            "X-Provider": result.provider.value,
        },
    )


# ============================================================
# Statistics
# ============================================================

@router.get("/stats")
async def get_stats(router_instance: AIRouter = Depends(get_router)):
    """Usage statistics, cost savings and provider health."""
    return router_instance.get_stats()


@router.post("/stats/clear", response_model=ActionResponse)
async def clear_stats(router_instance: AIRouter = Depends(get_router)):
    router_instance.clear_stats()
    return ActionResponse(message="Statistics cleared")


# ============================================================
# Provider Administration
# ============================================================

@router.post("/credits/reset", response_model=ActionResponse)
async def reset_credits(router_instance: AIRouter = Depends(get_router)):
    """Clear the remote credit-exhausted flag once billing is restored."""
    router_instance.reset_credit_exhaustion()
    return ActionResponse(message="Remote credit exhaustion reset")


@router.post("/local/refresh", response_model=LocalRefreshResponse)
async def refresh_local(router_instance: AIRouter = Depends(get_router)):
    """Re-probe the local model server."""
    connected = await router_instance.refresh_local_connection()
    state = router_instance.health.snapshot(router_instance.local_adapter.provider)
    return LocalRefreshResponse(
        success=connected,
        connected=connected,
        models=list(state.models),
        default_model=router_instance.local_adapter.default_model,
    )


@router.post("/providers/test")
async def test_providers(router_instance: AIRouter = Depends(get_router)):
    """Probe both providers without affecting health or statistics."""
    return await router_instance.test_providers()


@router.get("/models", response_model=ModelListResponse)
async def list_local_models(router_instance: AIRouter = Depends(get_router)):
    """Models installed on the local server."""
    models = await router_instance.list_local_models()
    return ModelListResponse(
        models=models,
        default_model=router_instance.local_adapter.default_model,
    )

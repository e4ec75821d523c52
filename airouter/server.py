"""
airouter - Main API Server

FastAPI application exposing the cost-aware router.

Features:
- Routed completions (local first, remote for specialized work)
- Single fallback between providers
- Usage statistics and cost-savings estimates
- Prometheus metrics and structured JSON logs
"""

import os
import uuid
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .core.config import RouterConfig
from .core.errors import RouterException
from .routing.router import AIRouter

# API imports
from .api import ai_router
from .api import dependencies as api_deps

# Observability imports
from .observability import (
    get_logger,
    get_metrics,
    metrics_endpoint,
    setup_logging,
)


# ============================================================
# Global state
# ============================================================

router_instance: Optional[AIRouter] = None


# ============================================================
# Lifespan management
# ============================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan - startup and shutdown."""
    global router_instance

    # Initialize logging first (for logging during startup)
    setup_logging(
        level=os.getenv("LOG_LEVEL", "INFO"),
        json_output=os.getenv("LOG_FORMAT", "json").lower() == "json",
    )
    logger = get_logger("airouter.server")

    config = RouterConfig.from_env()
    if not config.remote_configured:
        logger.warning("Remote provider not configured (set REMOTE_API_KEY or ANTHROPIC_API_KEY)")

    router_instance = AIRouter(config, metrics=get_metrics())
    await router_instance.start()

    logger.info(
        "airouter server ready",
        primary_provider=config.primary_provider.value,
        local_base_url=config.local_base_url,
        remote_configured=config.remote_configured,
    )

    yield

    # Shutdown: Close adapters
    await router_instance.close()
    router_instance = None

    logger.info("airouter server stopped")


# ============================================================
# FastAPI App
# ============================================================

app = FastAPI(
    title="airouter",
    description="Cost-aware routing between a local model server and a metered remote API",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(ai_router)


# ============================================================
# Router getter (for dependency injection)
# ============================================================

def get_router_instance() -> Optional[AIRouter]:
    """Get the router instance for dependency injection."""
    return router_instance


# Store in dependencies module for routes to access
api_deps.set_router_getter(get_router_instance)


# ============================================================
# Core Endpoints (not in routes)
# ============================================================

@app.get("/health")
async def health_check():
    """
    Health check endpoint.

    Reports the tracked provider state; does not probe the providers.
    """
    router = api_deps.get_router()
    states = router.health.snapshots()
    any_usable = any(state.usable for state in states.values())

    return {
        "status": "healthy" if any_usable else "degraded",
        "version": __version__,
        "primary_provider": router.config.primary_provider.value,
        "providers": {
            name: {
                "status": "healthy" if state.usable else "unhealthy",
                "reachable": state.reachable,
                "credit_exhausted": state.credit_exhausted,
                "latency_ms": round(state.average_latency_ms),
            }
            for name, state in states.items()
        },
        "local_model": router.local_adapter.default_model,
    }


@app.get("/metrics")
async def prometheus_metrics():
    """
    Prometheus metrics endpoint.

    Exposes all collected metrics in Prometheus text format.
    """
    return metrics_endpoint()


# ============================================================
# Error handlers
# ============================================================

@app.exception_handler(RouterException)
async def router_exception_handler(request: Request, exc: RouterException):
    """Handle all airouter errors."""
    headers = {
        "X-Request-Id": exc.error.request_id,
        "X-Error-Code": exc.error.code,
    }

    if exc.error.retry_after:
        headers["Retry-After"] = str(exc.error.retry_after)

    if exc.error.provider:
        headers["X-Provider"] = exc.error.provider

    return JSONResponse(
        status_code=exc.status_code,
        content=exc.error.to_dict(),
        headers=headers
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle standard HTTP exceptions."""
    request_id = f"req_{uuid.uuid4().hex[:24]}"

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": {
                "code": "http_error",
                "message": str(exc.detail),
                "request_id": request_id,
                "retryable": exc.status_code >= 500
            }
        },
        headers={"X-Request-Id": request_id}
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    request_id = f"req_{uuid.uuid4().hex[:24]}"
    get_logger("airouter.server").error(
        "Unhandled exception",
        exc_info=exc,
        path=request.url.path,
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "internal_error",
                "message": "An unexpected error occurred",
                "request_id": request_id,
                "retryable": True
            }
        },
        headers={"X-Request-Id": request_id}
    )


# ============================================================
# Run server
# ============================================================

def main():
    import uvicorn
    uvicorn.run(
        "airouter.server:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
    )


if __name__ == "__main__":
    main()

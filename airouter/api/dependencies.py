"""
airouter - API Dependencies

Shared dependencies for FastAPI routes.
"""

import uuid
from typing import Optional

from fastapi import Header

from ..core.errors import RouterNotReadyError
from ..routing.router import AIRouter


# Global router instance getter (set by server lifespan)
# This function is set by server.py to avoid circular imports
_router_instance_getter = None


def set_router_getter(getter):
    """Set the function that returns the router instance."""
    global _router_instance_getter
    _router_instance_getter = getter


def get_router() -> AIRouter:
    """
    Get the router instance.

    Raises RouterNotReadyError (503) until the server lifespan has built it.
    """
    router = _router_instance_getter() if _router_instance_getter else None
    if router is None:
        raise RouterNotReadyError()
    return router


def get_request_id(x_request_id: Optional[str] = Header(default=None)) -> str:
    """Use the caller's X-Request-Id when given, otherwise mint one."""
    return x_request_id or f"req_{uuid.uuid4().hex[:24]}"

"""Service endpoints for load balancers and monitoring: health, info, metrics."""

import logging
from enum import Enum

from fastapi import APIRouter, Request, Response

from streaming_agent_service.platform.observability.metrics import metrics as prom_metrics
from streaming_agent_service.platform.server.health import HealthCheck, service_info

logger = logging.getLogger(__name__)

base_router = APIRouter()
base_tags: list[Enum | str] = ["base"]


@base_router.get("/health", tags=base_tags)
async def health():
    """Readiness probe.

    Returns:
        200 with status OK while accepting chats, 404 once draining has begun
    """
    if HealthCheck.status():
        return {"status": "OK"}
    logger.info("health-check: fail, draining")
    return Response(status_code=404)


@base_router.get("/info", tags=base_tags)
async def info(request: Request):
    """Build, host and agent details, plus the number of turns in flight."""
    data = service_info.info()
    store = getattr(request.app.state, "store", None)
    if store is not None:
        data["active_turns"] = store.active_turns
    return data


@base_router.get("/metrics", tags=base_tags)
async def metrics():
    body, media_type = prom_metrics()
    return Response(body, media_type=media_type)

"""
TravelPlaces Backend — Health Check Route
===========================================

What:  Health check endpoint for monitoring and load balancer probes.
How:   HEAD on the dataset bucket, plus SELECT 1 on the credential store
       when login is enabled.
Who:   Docker health checks, load balancers, monitoring.

Status levels:
    - healthy:   every enabled dependency answers
    - degraded:  at least one dependency is down (still HTTP 200; the
                 dataset routes fail per request with 503 anyway)
"""

import logging
import time

from fastapi import APIRouter
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app import __version__
from app.config import settings
from app.database import engine
from app.schemas.attraction import HealthResponse
from app.services.object_store import object_store

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


async def _credential_store_status() -> str:
    if not settings.auth_enabled:
        return "disabled"
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return "connected"
    except (SQLAlchemyError, OSError) as e:
        logger.warning("Health check: credential store unreachable: %s", str(e))
        return "disconnected"


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description=(
        "Returns the health status of the service and its dependencies: the "
        "dataset bucket and, when login is enabled, the credential store."
    ),
)
async def health_check() -> HealthResponse:
    store_ok = await object_store.health_check(settings.s3_bucket)
    credential_status = await _credential_store_status()

    overall = "healthy"
    if not store_ok or credential_status == "disconnected":
        overall = "degraded"

    return HealthResponse(
        status=overall,
        version=__version__,
        object_store="available" if store_ok else "unavailable",
        credential_store=credential_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )

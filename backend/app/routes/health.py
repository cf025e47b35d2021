"""
IoT Tech Backend — Health Check Route
=======================================

What:  Health endpoint for monitoring and container probes.
How:   Reports the connection probe's last known state and which backend is
       currently serving case studies. It does not query the database itself;
       the background watchdog already does that on a fixed interval.

Status levels:
    - healthy:   case studies are served from the database
    - degraded:  case studies are served from the JSON fallback file
                 (no DATABASE_URL, or the database is unreachable)

    Both levels return HTTP 200; the service keeps answering requests either way.
"""

import time

from fastapi import APIRouter

from app import __version__
from app.database import db_connection
from app.schemas.case_study import HealthResponse
from app.services.case_study_repository import case_study_repository

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check() -> HealthResponse:
    storage = case_study_repository.adapter.backend_name()
    return HealthResponse(
        status="healthy" if storage == "database" else "degraded",
        version=__version__,
        database=db_connection.state.value,
        storage=storage,
        uptime_seconds=round(time.time() - _start_time, 2),
    )

"""
Health check router.

Provides a simple health endpoint for liveness/readiness probes.
Reports application version and whether the database answers.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError

from signalmarket.core.config import settings
from signalmarket.interfaces.marketplace.dependencies import UowFactory, get_uow_factory
from signalmarket.interfaces.marketplace.schemas import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Returns application health status, version and database state.",
)
def health_check(uow_factory: UowFactory = Depends(get_uow_factory)) -> HealthResponse:
    """Return current application health status."""
    database = "ok"
    try:
        with uow_factory() as uow:
            uow.ping()
    except SQLAlchemyError:
        logger.warning("Health check: database unreachable", exc_info=True)
        database = "unavailable"
    status = "ok" if database == "ok" else "degraded"
    return HealthResponse(status=status, version=settings.version, database=database)

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Response, status

from warbler.db import Database
from warbler.dependencies import get_database
from warbler.schemas.responses import HealthCheckResponseSchema, PingResponseSchema

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthCheckResponseSchema)
async def health_check(
    response: Response,
    database: Annotated[Database, Depends(get_database)],
) -> HealthCheckResponseSchema:
    """Report whether the relational store answers a trivial query."""
    try:
        await database.ping()
    except Exception:
        logger.warning("Health check could not reach the database", exc_info=True)
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return HealthCheckResponseSchema(ok=False, db="unavailable")
    return HealthCheckResponseSchema(ok=True, db="ok")


@router.get("/ping", response_model=PingResponseSchema)
async def ping() -> PingResponseSchema:
    return PingResponseSchema(pong=True)

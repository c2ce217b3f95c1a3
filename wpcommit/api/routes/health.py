"""Health check endpoint for application monitoring."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Literal

from fastapi import APIRouter, Request
from pydantic import BaseModel

from wpcommit.api.routes.messages import resolve_runtime

router = APIRouter()


class HealthResponse(BaseModel):
    """Stable response model for the health endpoint."""

    status: Literal["ok"]
    timestamp: datetime
    enabled: bool
    cache_entries: int


@router.get("/health", tags=["monitoring"], response_model=HealthResponse)
async def get_health(request: Request) -> HealthResponse:
    """Return health status, current timestamp and cache occupancy."""
    runtime = resolve_runtime(request)
    return HealthResponse(
        status="ok",
        timestamp=datetime.now(tz=UTC),
        enabled=runtime.settings.enabled,
        cache_entries=len(runtime.cache),
    )

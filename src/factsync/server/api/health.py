"""Liveness route of the log service."""

from __future__ import annotations

from fastapi import APIRouter

from factsync import __version__
from factsync.server.api.head import API_VERSION
from factsync.server.schemas import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
def health_check() -> HealthResponse:
    """Report that the service is up, with the protocol it speaks."""
    return HealthResponse(status="ok", version=__version__, api=API_VERSION)

"""Main API router that includes all sub-routers."""

from __future__ import annotations

from fastapi import APIRouter

from factsync.server.api import chunks, head, health, transactions

router = APIRouter()

# Health is reachable at the root and under the API prefix
router.include_router(health.router)
router.include_router(health.router, prefix=head.API_PREFIX)
router.include_router(head.router)
router.include_router(transactions.router)
router.include_router(chunks.router)

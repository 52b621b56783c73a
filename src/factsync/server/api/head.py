"""Head pointer API routes."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Response, status

from factsync.server.api.deps import get_db
from factsync.server.database import Database
from factsync.server.schemas import HeadBody

API_VERSION = "0.1"
API_PREFIX = f"/api/{API_VERSION}"

router = APIRouter(prefix=API_PREFIX + "/{namespace}/head", tags=["head"])


@router.get("", response_model=HeadBody)
def get_head(namespace: UUID, db: Database = Depends(get_db)) -> HeadBody:
    """Get the head of a namespace."""
    return HeadBody(head=db.get_head(namespace))


@router.put("", status_code=status.HTTP_204_NO_CONTENT)
def put_head(namespace: UUID, body: HeadBody, db: Database = Depends(get_db)) -> Response:
    """Overwrite the head of a namespace (last writer wins)."""
    db.set_head(namespace, body.head)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

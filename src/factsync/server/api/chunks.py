"""Chunk storage API routes."""

from __future__ import annotations

import json
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.responses import JSONResponse

from factsync.server.api.deps import get_db
from factsync.server.api.head import API_PREFIX
from factsync.server.database import ConflictError, Database

router = APIRouter(prefix=API_PREFIX + "/{namespace}/chunks", tags=["chunks"])


@router.put("/{chunk_uuid}", status_code=status.HTTP_201_CREATED)
async def upload_chunk(
    namespace: UUID,
    chunk_uuid: UUID,
    request: Request,
    db: Database = Depends(get_db),
) -> Response:
    """Store a chunk. Identical re-uploads are accepted."""
    data = await request.body()
    try:
        payload: Any = json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Chunk body is not JSON: {e}",
        ) from e
    try:
        db.put_chunk(namespace, chunk_uuid, payload)
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    return Response(status_code=status.HTTP_201_CREATED)


@router.get("/{chunk_uuid}")
def download_chunk(
    namespace: UUID,
    chunk_uuid: UUID,
    db: Database = Depends(get_db),
) -> JSONResponse:
    """Get a chunk payload."""
    payload = db.get_chunk(namespace, chunk_uuid)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Chunk not found: {chunk_uuid}",
        )
    return JSONResponse(content=payload)

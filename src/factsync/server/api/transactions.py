"""Transaction header API routes."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from factsync.core.types import EMPTY_UUID
from factsync.server.api.deps import get_db
from factsync.server.api.head import API_PREFIX
from factsync.server.database import ConflictError, Database, InvalidTransactionError
from factsync.server.schemas import (
    TransactionListResponse,
    TransactionPutRequest,
    TransactionResponse,
    transaction_to_response,
)

DEFAULT_LIST_LIMIT = 100
MAX_LIST_LIMIT = 1000

router = APIRouter(prefix=API_PREFIX + "/{namespace}/transactions", tags=["transactions"])


@router.get("", response_model=TransactionListResponse)
def list_transactions(
    namespace: UUID,
    from_uuid: UUID = Query(EMPTY_UUID, alias="from"),
    limit: int = Query(DEFAULT_LIST_LIMIT, ge=1, le=MAX_LIST_LIMIT),
    db: Database = Depends(get_db),
) -> TransactionListResponse:
    """List transactions accepted after ``from``, oldest first."""
    transactions = db.list_transactions(namespace, from_uuid, limit)
    if transactions is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown transaction: {from_uuid}",
        )
    return TransactionListResponse(limit=limit, from_=from_uuid, transactions=transactions)


@router.get("/{tx_uuid}", response_model=TransactionResponse)
def get_transaction(
    namespace: UUID,
    tx_uuid: UUID,
    db: Database = Depends(get_db),
) -> TransactionResponse:
    """Get a transaction header."""
    tx = db.get_transaction(namespace, tx_uuid)
    if tx is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Transaction not found: {tx_uuid}",
        )
    return transaction_to_response(tx)


@router.put("/{tx_uuid}", status_code=status.HTTP_201_CREATED)
def put_transaction(
    namespace: UUID,
    tx_uuid: UUID,
    body: TransactionPutRequest,
    db: Database = Depends(get_db),
) -> Response:
    """Record a transaction header."""
    try:
        db.put_transaction(namespace, tx_uuid, body.parent, body.chunks)
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    except InvalidTransactionError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    return Response(status_code=status.HTTP_201_CREATED)

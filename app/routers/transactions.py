from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.core.context import AppContext, get_context
from app.core.security import get_current_user_id
from app.models.transaction import (
    TransactionCreate,
    TransactionInDB,
    TransactionKind,
    TransactionPublic,
    TransactionUpdate,
)
from app.utils.ledger_stats import parse_timestamp

router = APIRouter()


def _check_date(value: Optional[str]) -> None:
    if value is None:
        return
    try:
        parse_timestamp(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid date: {value}")


@router.post("/", response_model=TransactionPublic, status_code=status.HTTP_201_CREATED)
def create_transaction(
    transaction: TransactionCreate,
    user_id: str = Depends(get_current_user_id),
    ctx: AppContext = Depends(get_context),
):
    _check_date(transaction.date)
    transaction_db = TransactionInDB(user_id=user_id, **transaction.model_dump())
    if not ctx.store.put_transaction(transaction_db.model_dump()):
        raise HTTPException(status_code=500, detail="Failed to save transaction")
    return TransactionPublic(**transaction_db.model_dump())


@router.get("/", response_model=List[TransactionPublic])
def list_transactions(
    kind: Optional[TransactionKind] = Query(None),
    user_id: str = Depends(get_current_user_id),
    ctx: AppContext = Depends(get_context),
):
    items = ctx.store.list_transactions(user_id, kind=kind)
    items.sort(key=lambda item: item.get("date", ""), reverse=True)
    return [TransactionPublic(**item) for item in items]


@router.get("/{transaction_id}", response_model=TransactionPublic)
def get_transaction(
    transaction_id: str,
    user_id: str = Depends(get_current_user_id),
    ctx: AppContext = Depends(get_context),
):
    item = ctx.store.get_transaction(user_id, transaction_id)
    if not item:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return TransactionPublic(**item)


@router.put("/{transaction_id}", response_model=TransactionPublic)
def update_transaction(
    transaction_id: str,
    transaction_update: TransactionUpdate,
    user_id: str = Depends(get_current_user_id),
    ctx: AppContext = Depends(get_context),
):
    mutable_fields = transaction_update.model_dump(exclude_unset=True)
    if not mutable_fields:
        raise HTTPException(status_code=400, detail="No fields to update")
    _check_date(mutable_fields.get("date"))

    updated = ctx.store.update_transaction(user_id, transaction_id, mutable_fields)
    if not updated:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return TransactionPublic(**updated)


@router.delete("/{transaction_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_transaction(
    transaction_id: str,
    user_id: str = Depends(get_current_user_id),
    ctx: AppContext = Depends(get_context),
):
    if not ctx.store.delete_transaction(user_id, transaction_id):
        raise HTTPException(status_code=404, detail="Transaction not found")
    return None

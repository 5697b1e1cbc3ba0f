# routes_transactions.py
"""
Routes for a user's transactions: create, list/filter, update, and the
single-transaction actions (duplicate, reconcile, tags, soft removal).

Every route is scoped by the owning user in the path; a transaction of
another user answers 404.
"""

from datetime import date
from typing import List

from fastapi import APIRouter, Depends, Query

import config
from app.deps import get_store
from app.schemas import MaterializeIn, TagIn, TransactionCreate, TransactionOut, TransactionUpdate
from app.services.import_helpers import get_month_range, serialize_transaction
from app.services.transaction_store import TransactionStore

router = APIRouter(tags=["transactions"])


# -------------------------------------------------------------------
# Create / list
# -------------------------------------------------------------------

@router.post("/users/{user_id}/transactions", response_model=TransactionOut, status_code=201)
def create_transaction(
    user_id: int,
    payload: TransactionCreate,
    store: TransactionStore = Depends(get_store),
):
    record = payload.model_dump(exclude_none=True)
    record["owner_id"] = user_id
    return serialize_transaction(store.create(record))


@router.get("/users/{user_id}/transactions", response_model=List[TransactionOut])
def list_transactions(
    user_id: int,
    month: str | None = Query(None),
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    category: str | None = Query(None),
    account_id: int | None = Query(None),
    limit: int = Query(config.DEFAULT_QUERY_LIMIT, ge=1, le=1000),
    store: TransactionStore = Depends(get_store),
):
    """
    List transactions, newest first.

    - ?category=Food       -> latest `limit` transactions of that primary category
    - ?account_id=3        -> latest `limit` transactions of that account
    - ?start_date&end_date -> everything in the (inclusive) range
    - ?month=YYYY-MM       -> everything in that month (default: previous month)
    """
    if category:
        transactions = store.find_by_category(user_id, category, limit=limit)
    elif account_id is not None:
        transactions = store.find_by_account(user_id, account_id, limit=limit)
    else:
        if start_date and end_date:
            range_start, range_end = start_date, end_date
        else:
            range_start, range_end, _ = get_month_range(month)
        transactions = store.find_by_user_and_date_range(user_id, range_start, range_end)

    return [serialize_transaction(t) for t in transactions]


# -------------------------------------------------------------------
# Single transaction
# -------------------------------------------------------------------

@router.get("/users/{user_id}/transactions/{transaction_id}", response_model=TransactionOut)
def get_transaction(user_id: int, transaction_id: int, store: TransactionStore = Depends(get_store)):
    return serialize_transaction(store.get(user_id, transaction_id))


@router.patch("/users/{user_id}/transactions/{transaction_id}", response_model=TransactionOut)
def update_transaction(
    user_id: int,
    transaction_id: int,
    payload: TransactionUpdate,
    store: TransactionStore = Depends(get_store),
):
    tx = store.get(user_id, transaction_id)
    return serialize_transaction(store.update(tx, payload.model_dump(exclude_unset=True)))


@router.post(
    "/users/{user_id}/transactions/{transaction_id}/duplicate",
    response_model=TransactionOut,
    status_code=201,
)
def duplicate_transaction(user_id: int, transaction_id: int, store: TransactionStore = Depends(get_store)):
    copy = store.duplicate(store.get(user_id, transaction_id))
    return serialize_transaction(store.save(copy))


@router.post("/users/{user_id}/transactions/{transaction_id}/reconcile", response_model=TransactionOut)
def reconcile_transaction(user_id: int, transaction_id: int, store: TransactionStore = Depends(get_store)):
    return serialize_transaction(store.mark_reconciled(store.get(user_id, transaction_id)))


@router.post("/users/{user_id}/transactions/{transaction_id}/archive", response_model=TransactionOut)
def archive_transaction(user_id: int, transaction_id: int, store: TransactionStore = Depends(get_store)):
    return serialize_transaction(store.archive(store.get(user_id, transaction_id)))


@router.post("/users/{user_id}/transactions/{transaction_id}/hide", response_model=TransactionOut)
def hide_transaction(user_id: int, transaction_id: int, store: TransactionStore = Depends(get_store)):
    return serialize_transaction(store.hide(store.get(user_id, transaction_id)))


@router.post("/users/{user_id}/transactions/{transaction_id}/restore", response_model=TransactionOut)
def restore_transaction(user_id: int, transaction_id: int, store: TransactionStore = Depends(get_store)):
    return serialize_transaction(store.restore(store.get(user_id, transaction_id)))


# -------------------------------------------------------------------
# Tags
# -------------------------------------------------------------------

@router.post("/users/{user_id}/transactions/{transaction_id}/tags", response_model=TransactionOut)
def add_tag(user_id: int, transaction_id: int, payload: TagIn, store: TransactionStore = Depends(get_store)):
    return serialize_transaction(store.add_tag(store.get(user_id, transaction_id), payload.tag))


@router.delete("/users/{user_id}/transactions/{transaction_id}/tags/{tag}", response_model=TransactionOut)
def remove_tag(user_id: int, transaction_id: int, tag: str, store: TransactionStore = Depends(get_store)):
    return serialize_transaction(store.remove_tag(store.get(user_id, transaction_id), tag))


# -------------------------------------------------------------------
# Recurring
# -------------------------------------------------------------------

@router.post("/users/{user_id}/recurring/materialize", response_model=List[TransactionOut])
def materialize_recurring(
    user_id: int,
    payload: MaterializeIn | None = None,
    store: TransactionStore = Depends(get_store),
):
    """Create the pending occurrences of every due recurring transaction."""
    as_of = payload.as_of if payload else None
    return [serialize_transaction(t) for t in store.materialize_recurring(user_id, as_of=as_of)]

"""Small helpers shared by the Firestore-backed services."""

from __future__ import annotations

import datetime
from typing import TYPE_CHECKING, Any, Callable, TypeVar

from firebase_admin import firestore
from google.cloud.firestore import FieldFilter

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.transaction import Transaction

T = TypeVar("T")


def utcnow() -> datetime.datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.datetime.now(datetime.timezone.utc)


def get_client(db: Client | None = None) -> Client:
    """Return the given client or the default Firestore client."""
    return db if db is not None else firestore.client()


def run_in_transaction(
    db: Client, func: Callable[..., T], *args: Any, **kwargs: Any
) -> T:
    """Run ``func(transaction, *args, **kwargs)`` inside a Firestore transaction.

    The function must do all of its reads before its first write. Firestore
    retries the whole function on contention, so it must not have side
    effects outside the transaction.
    """
    transaction = db.transaction()
    return firestore.transactional(func)(transaction, *args, **kwargs)


def doc_to_dict(snapshot: DocumentSnapshot | None) -> dict[str, Any] | None:
    """Convert a snapshot to a dict carrying its id, or None if missing."""
    if snapshot is None or not snapshot.exists:
        return None
    data = snapshot.to_dict() or {}
    data["id"] = snapshot.id
    return data


def where_equal(
    db: Client,
    collection: str,
    transaction: Transaction | None = None,
    **filters: Any,
) -> list[dict[str, Any]]:
    """Stream a collection filtered by field equality and return dicts."""
    query: Any = db.collection(collection)
    for field, value in filters.items():
        query = query.where(filter=FieldFilter(field, "==", value))
    if transaction is not None:
        docs = query.stream(transaction=transaction)
    else:
        docs = query.stream()
    results = []
    for doc in docs:
        data = doc_to_dict(doc)
        if data is not None:
            results.append(data)
    return results


def sort_timestamp(value: Any) -> datetime.datetime:
    """Map an optional timestamp to a sortable aware datetime."""
    if value is None:
        return datetime.datetime.max.replace(tzinfo=datetime.timezone.utc)
    if isinstance(value, datetime.datetime) and value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value

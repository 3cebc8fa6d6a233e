"""Common utilities for tests."""

import unittest.mock
from typing import Any, Optional

from mockfirestore import CollectionReference, MockFirestore, Query
from mockfirestore.document import DocumentReference


def patch_mockfirestore() -> None:
    """Apply monkeypatches to mockfirestore to support FieldFilter and transactions."""

    def collection_where(
        self: Any,
        field_path: Optional[str] = None,
        op_string: Optional[str] = None,
        value: Any = None,
        filter: Any = None,
    ) -> Any:  # noqa: E501
        if filter:
            return self._where(filter.field_path, filter.op_string, filter.value)
        return self._where(field_path, op_string, value)

    if not hasattr(CollectionReference, "_where"):
        CollectionReference._where = CollectionReference.where
        CollectionReference.where = collection_where

    def query_where(
        self: Any,
        field_path: Optional[str] = None,
        op_string: Optional[str] = None,
        value: Any = None,
        filter: Any = None,
    ) -> Any:
        if filter:
            return self._where(filter.field_path, filter.op_string, filter.value)
        return self._where(field_path, op_string, value)

    if not hasattr(Query, "_where"):
        Query._where = Query.where
        Query.where = query_where

    # Reads inside a transaction pass transaction=...; the mock reads directly.
    if not hasattr(DocumentReference, "_orig_get"):
        DocumentReference._orig_get = DocumentReference.get
        DocumentReference.get = lambda self, *args, transaction=None, **kwargs: (
            self._orig_get()
        )

    if not hasattr(CollectionReference, "_orig_stream"):
        CollectionReference._orig_stream = CollectionReference.stream
        CollectionReference.stream = lambda self, transaction=None: self._orig_stream()

    if not hasattr(Query, "_orig_stream"):
        Query._orig_stream = Query.stream
        Query.stream = lambda self, transaction=None: self._orig_stream()

    def doc_ref_eq(self: Any, other: Any) -> bool:
        if not isinstance(other, DocumentReference):
            return False
        return self._path == other._path

    if not hasattr(DocumentReference, "_orig_eq"):
        DocumentReference._orig_eq = DocumentReference.__eq__
        DocumentReference.__eq__ = doc_ref_eq
        DocumentReference.__hash__ = lambda self: hash(tuple(self._path))


class MockBatch:
    def __init__(self, db: Any) -> None:
        self.db = db
        self.updates: list[tuple[str, Any, Any]] = []
        self.commit = unittest.mock.MagicMock(side_effect=self._real_commit)

    def update(self, ref: Any, data: Any) -> None:
        self.updates.append(("update", ref, data))

    def set(self, ref: Any, data: Any, merge: bool = False) -> None:
        self.updates.append(("set", ref, data))

    def delete(self, ref: Any) -> None:
        self.updates.append(("delete", ref, None))

    def _real_commit(self) -> None:
        for op, ref, data in self.updates:
            if op == "delete":
                ref.delete()
            elif op == "set":
                ref.set(data)
            else:
                ref.update(data)
        self.updates = []


class MockTransaction:
    """Applies writes immediately; callers do all their reads first."""

    def __init__(self) -> None:
        self.writes: list[tuple[str, Any, Any]] = []

    def set(self, ref: Any, data: Any, merge: bool = False) -> None:
        self.writes.append(("set", ref, data))
        ref.set(data, merge=merge)

    def update(self, ref: Any, data: Any) -> None:
        self.writes.append(("update", ref, data))
        ref.update(data)

    def delete(self, ref: Any) -> None:
        self.writes.append(("delete", ref, None))
        ref.delete()


def make_mock_db() -> MockFirestore:
    """A MockFirestore whose batches and transactions write straight through."""
    patch_mockfirestore()
    db = MockFirestore()
    db.batch = unittest.mock.MagicMock(side_effect=lambda: MockBatch(db))
    db.transaction = unittest.mock.MagicMock(side_effect=MockTransaction)
    return db

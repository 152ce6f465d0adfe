"""Mock utilities for Firestore and Auth."""

import copy
import unittest.mock
from collections.abc import Callable
from typing import Any, Optional

from google.api_core.exceptions import AlreadyExists, NotFound
from mockfirestore import CollectionReference, MockFirestore, Query
from mockfirestore.document import DocumentReference


def apply_field_updates(document: dict[str, Any], updates: dict[str, Any]) -> None:
    """Apply Firestore-style updates, where dotted keys address nested maps."""
    for key, value in updates.items():
        parts = key.split(".")
        target = document
        for part in parts[:-1]:
            child = target.get(part)
            if not isinstance(child, dict):
                child = {}
                target[part] = child
            target = child
        target[parts[-1]] = copy.deepcopy(value)


class _QueuedWrites:
    """Shared write queue for MockBatch and MockTransaction."""

    def __init__(self) -> None:
        self.writes: list[tuple[str, Any, Any]] = []

    def update(self, ref: Any, data: dict[str, Any]) -> None:
        self.writes.append(("update", ref, data))

    def set(self, ref: Any, data: dict[str, Any], merge: bool = False) -> None:
        self.writes.append(("merge" if merge else "set", ref, data))

    def create(self, ref: Any, data: dict[str, Any]) -> None:
        self.writes.append(("create", ref, data))

    def delete(self, ref: Any) -> None:
        self.writes.append(("delete", ref, None))

    def _apply(self) -> None:
        for op, ref, data in self.writes:
            if op == "delete":
                ref.delete()
                continue
            try:
                current = ref.get().to_dict() or {}
            except KeyError:
                current = {}
            if op == "create" and current:
                raise AlreadyExists(f"Document already exists: {'/'.join(ref._path)}")
            if op in ("set", "create"):
                ref.set(copy.deepcopy(data))
                continue
            if op == "update" and not current:
                raise NotFound(f"No document to update: {'/'.join(ref._path)}")
            apply_field_updates(current, data)
            ref.set(current)
        self.writes = []


class MockBatch(_QueuedWrites):
    def __init__(self, db: Any) -> None:
        super().__init__()
        self.db = db
        self.commit = unittest.mock.MagicMock(side_effect=self._apply)


class MockTransaction(_QueuedWrites):
    """Buffers writes until commit, like a Firestore transaction."""

    def __init__(self) -> None:
        super().__init__()
        self.committed = False

    def commit(self) -> None:
        self._apply()
        self.committed = True


class FakeFirestore(MockFirestore):
    """MockFirestore whose transactions and batches apply dotted-path updates."""

    def __init__(self) -> None:
        super().__init__()
        self.transactions: list[MockTransaction] = []
        self.batches: list[MockBatch] = []

    def transaction(self, **kwargs: Any) -> MockTransaction:
        transaction = MockTransaction()
        self.transactions.append(transaction)
        return transaction

    def batch(self) -> MockBatch:
        batch = MockBatch(self)
        self.batches.append(batch)
        return batch


def fake_transactional(func: Callable[..., Any]) -> Callable[..., Any]:
    """Stand-in for ``firestore.transactional``: run once, commit on success."""

    def wrapper(transaction: MockTransaction, *args: Any, **kwargs: Any) -> Any:
        result = func(transaction, *args, **kwargs)
        transaction.commit()
        return result

    return wrapper


class MockFirestoreBuilder:
    """Builder to modularize mockfirestore and firebase_admin patching."""

    @staticmethod
    def patch_db_read() -> None:
        """Apply monkeypatches to mockfirestore to support FieldFilter and equality."""

        def collection_where(
            self: Any,
            field_path: Optional[str] = None,
            op_string: Optional[str] = None,
            value: Any = None,
            filter: Any = None,
        ) -> Any:
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

        # Documents created by document() without data have no fields at all.
        if hasattr(Query, "_compare_func") and not hasattr(
            Query, "_orig_compare_func"
        ):
            Query._orig_compare_func = Query._compare_func

            def compare_func(self: Any, op: str) -> Any:
                if op == "array_contains":
                    return lambda x, y: isinstance(x, list) and y in x
                return self._orig_compare_func(op)

            Query._compare_func = compare_func

        def doc_ref_eq(self: Any, other: Any) -> bool:
            if not isinstance(other, DocumentReference):
                return False
            return self._path == other._path

        if not hasattr(DocumentReference, "_orig_eq"):
            DocumentReference._orig_eq = DocumentReference.__eq__
            DocumentReference.__eq__ = doc_ref_eq
            DocumentReference.__hash__ = lambda self: hash(tuple(self._path))

        # Patch DocumentReference.get to handle the transaction argument and to
        # enforce that transactions read everything before writing.
        if not hasattr(DocumentReference, "_orig_get"):
            DocumentReference._orig_get = DocumentReference.get

            def doc_ref_get(self: Any, transaction: Any = None, **kwargs: Any) -> Any:
                if transaction is not None and getattr(transaction, "writes", None):
                    raise AssertionError("Transaction read after a write.")
                return self._orig_get()

            DocumentReference.get = doc_ref_get

    @staticmethod
    def patch_db_auth() -> unittest.mock.MagicMock:
        """Create an autospec'd mock for firebase_admin.auth."""
        from firebase_admin import auth

        return unittest.mock.create_autospec(auth, spec_set=True)


def patch_mockfirestore() -> None:
    """Apply monkeypatches to mockfirestore."""
    MockFirestoreBuilder.patch_db_read()


def start_firestore_patches(test_case: Any, db: FakeFirestore) -> None:
    """Route ``firestore.client()`` and ``firestore.transactional`` to the fakes."""
    patchers = [
        unittest.mock.patch("firebase_admin.firestore.client", return_value=db),
        unittest.mock.patch(
            "firebase_admin.firestore.transactional", new=fake_transactional
        ),
    ]
    for patcher in patchers:
        patcher.start()
        test_case.addCleanup(patcher.stop)


def stored(db: FakeFirestore, collection: str, doc_id: str) -> Optional[dict[str, Any]]:
    """Return a stored document's data, or None if it does not exist."""
    snapshot = db.collection(collection).document(doc_id).get()
    if not snapshot.exists:
        return None
    return snapshot.to_dict()

"""Helpers for running Firestore read-modify-write transactions."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, TypeVar

from firebase_admin import firestore

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client

T = TypeVar("T")


def run_in_transaction(
    db: Client, operation: Callable[..., T], *args: Any, **kwargs: Any
) -> T:
    """Run ``operation(transaction, *args, **kwargs)`` in a Firestore transaction.

    Firestore retries the operation on contention, so ``operation`` must make
    the same decision for the same committed state. Anything random (ids,
    timestamps) has to be built by the caller before this is invoked.
    """
    transaction = db.transaction()
    return firestore.transactional(operation)(transaction, *args, **kwargs)

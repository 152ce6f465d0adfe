"""Common utilities for tests."""

from tests.mock_utils import (
    FakeFirestore,
    MockBatch,
    MockFirestoreBuilder,
    MockTransaction,
    fake_transactional,
    patch_mockfirestore,
    start_firestore_patches,
    stored,
)

patch_mockfirestore()

__all__ = [
    "FakeFirestore",
    "MockBatch",
    "MockFirestoreBuilder",
    "MockTransaction",
    "fake_transactional",
    "patch_mockfirestore",
    "start_firestore_patches",
    "stored",
]

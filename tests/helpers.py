import unittest
from unittest.mock import patch

from volleyroster import create_app
from volleyroster.core.constants import USERS_COLLECTION
from volleyroster.user.models import empty_stats

from tests.mock_utils import FakeFirestore, patch_mockfirestore, start_firestore_patches

patch_mockfirestore()

SUPER_ADMIN_EMAIL = "boss@example.com"


class BaseTestCase(unittest.TestCase):
    """Flask test client wired to an in-memory Firestore."""

    extra_config: dict = {}

    def setUp(self):
        self.db = FakeFirestore()
        start_firestore_patches(self, self.db)

        patchers = {
            "init_app": patch("firebase_admin.initialize_app"),
            "verify_id_token": patch("firebase_admin.auth.verify_id_token"),
        }
        self.mocks = {name: p.start() for name, p in patchers.items()}
        for p in patchers.values():
            self.addCleanup(p.stop)

        self.app = create_app(
            {
                "TESTING": True,
                "WTF_CSRF_ENABLED": False,
                "SERVER_NAME": "localhost",
                "SUPER_ADMIN_EMAIL": SUPER_ADMIN_EMAIL,
                **self.extra_config,
            }
        )
        self.client = self.app.test_client()
        self.app_context = self.app.app_context()
        self.app_context.push()

    def tearDown(self):
        self.app_context.pop()

    def create_user(self, uid, role="user", email=None, **extra):
        data = {
            "email": email or f"{uid}@example.com",
            "displayName": uid.title(),
            "role": role,
            "stats": empty_stats(),
        }
        data.update(extra)
        self.db.collection(USERS_COLLECTION).document(uid).set(data)
        return data

    def login(self, uid):
        with self.client.session_transaction() as sess:
            sess["user_id"] = uid

    def logout(self):
        with self.client.session_transaction() as sess:
            sess.clear()

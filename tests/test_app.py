"""Tests for the app factory, error handlers and stats routes."""

import os
import unittest
from unittest.mock import patch

from volleyroster import create_app
from volleyroster.core.constants import SESSIONS_COLLECTION, USERS_COLLECTION
from volleyroster.match.models import Session, UserEntry

from tests.helpers import SUPER_ADMIN_EMAIL, BaseTestCase
from tests.mock_utils import stored


class AppFactoryTestCase(unittest.TestCase):
    @patch("firebase_admin.initialize_app")
    @patch("firebase_admin.firestore.client")
    def test_health_and_404(self, mock_firestore_client, mock_init_app):
        app = create_app({"TESTING": True, "WTF_CSRF_ENABLED": False})

        with app.test_client() as client:
            self.assertEqual(client.get("/health").data, b"OK")
            response = client.get("/non_existent_page")
            self.assertEqual(response.status_code, 404)
            self.assertEqual(response.get_json()["code"], "not_found")

    def test_roster_config_from_environment(self):
        env_vars = {
            "MAX_GUESTS_PER_USER": "2",
            "DEFAULT_MATCH_WEEKDAY": "3",
            "DEFAULT_MATCH_TIME": "19:00",
            "SUPER_ADMIN_EMAIL": "chief@example.com",
        }
        with patch.dict(os.environ, env_vars):
            app = create_app({"TESTING": True})

        self.assertEqual(app.config["MAX_GUESTS_PER_USER"], 2)
        self.assertEqual(app.config["DEFAULT_MATCH_WEEKDAY"], 3)
        self.assertEqual(app.config["DEFAULT_MATCH_TIME"], "19:00")
        self.assertEqual(app.config["SUPER_ADMIN_EMAIL"], "chief@example.com")
        self.assertEqual(app.config["MAX_PARTICIPANTS"], 14)


class StatsRoutesTestCase(BaseTestCase):
    def setUp(self):
        super().setUp()
        self.create_user("boss", role="super-admin", email=SUPER_ADMIN_EMAIL)
        self.create_user("admin", role="admin")
        self.create_user("alice")
        session = Session(
            id="s1",
            match_id="m1",
            date="2026-10-13T20:30:00+00:00",
            participants=[UserEntry(uid="alice", display_name="Alice")],
        )
        self.db.collection(SESSIONS_COLLECTION).document("s1").set(session.to_dict())

    def test_recalculate_is_super_admin_only(self):
        self.login("admin")
        self.assertEqual(self.client.post("/stats/recalculate").status_code, 403)

        self.login("boss")
        response = self.client.post("/stats/recalculate")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()["data"], {"users": 3, "sessions": 1})
        stats = stored(self.db, USERS_COLLECTION, "alice")["stats"]
        self.assertEqual(stats["totalSessions"], 1)

    def test_user_stats_and_leaderboard(self):
        self.login("boss")
        self.client.post("/stats/recalculate")

        self.login("alice")
        response = self.client.get("/stats/users/alice")
        self.assertEqual(response.get_json()["data"]["stats"]["asParticipant"], 1)
        self.assertEqual(self.client.get("/stats/users/nobody").status_code, 404)

        rows = self.client.get("/stats/leaderboard?limit=1").get_json()["data"]
        self.assertEqual([r["uid"] for r in rows], ["alice"])


if __name__ == "__main__":
    unittest.main()

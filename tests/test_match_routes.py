"""Tests for the match blueprint."""

from __future__ import annotations

from unittest.mock import patch

from google.api_core.exceptions import ServiceUnavailable

from volleyroster.core.constants import SESSIONS_COLLECTION, USERS_COLLECTION
from volleyroster.user.services import UserService

from tests.helpers import BaseTestCase
from tests.mock_utils import stored

MATCH_DATE = "2026-10-20T20:30"


class MatchRoutesTestCase(BaseTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.create_user("admin", role="admin")
        self.create_user("alice")
        self.create_user("bob")

    def _create_match(self) -> str:
        self.login("admin")
        response = self.client.post("/matches/", json={"date": MATCH_DATE})
        self.assertEqual(response.status_code, 201)
        return response.get_json()["data"]["id"]

    def _signup(self, uid: str, match_id: str, **body):
        self.login(uid)
        return self.client.post(f"/matches/{match_id}/signup", json=body)

    def test_requires_login(self) -> None:
        response = self.client.get("/matches/")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.get_json()["code"], "unauthenticated")

    def test_only_admins_create_matches(self) -> None:
        self.login("alice")
        response = self.client.post("/matches/", json={"date": MATCH_DATE})
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.get_json()["code"], "unauthorized")

    def test_create_and_duplicate(self) -> None:
        match_id = self._create_match()

        response = self.client.post("/matches/", json={"date": MATCH_DATE})

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.get_json()["code"], "duplicate_schedule")
        listed = self.client.get("/matches/").get_json()["data"]
        self.assertEqual([m["id"] for m in listed], [match_id])
        self.assertEqual(listed[0]["date"], "2026-10-20T20:30:00+00:00")

    def test_create_without_date_uses_default_slot(self) -> None:
        self.login("admin")
        response = self.client.post("/matches/", json={})

        self.assertEqual(response.status_code, 201)
        self.assertIn("T20:30:00", response.get_json()["data"]["date"])

    def test_signup_and_double_signup(self) -> None:
        match_id = self._create_match()

        response = self._signup("alice", match_id)
        self.assertEqual(response.status_code, 200)
        data = response.get_json()["data"]
        self.assertEqual(data["placement"], "participants")
        self.assertEqual(data["registeredCount"], 1)
        self.assertEqual(data["participants"][0]["displayName"], "Alice")

        response = self._signup("alice", match_id, asReserve=True)
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.get_json()["code"], "already_registered")

    def test_signup_uses_custom_display_name(self) -> None:
        match_id = self._create_match()
        self.db.collection(USERS_COLLECTION).document("bob").update(
            {"customDisplayName": "Bobby"}
        )

        data = self._signup("bob", match_id).get_json()["data"]

        self.assertEqual(data["participants"][0]["displayName"], "Bobby")

    def test_guest_limit_for_users_not_admins(self) -> None:
        match_id = self._create_match()
        names = ["G1", "G2", "G3", "G4"]

        response = self._signup("alice", match_id, guests=names)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()["code"], "guest_limit_exceeded")

        response = self._signup("admin", match_id, guests=names)
        self.assertEqual(response.status_code, 200)
        reserves = response.get_json()["data"]["reserves"]
        self.assertEqual([r["displayName"] for r in reserves], names)
        self.assertTrue(all(r["kind"] == "guest" for r in reserves))

    def test_blank_guest_name(self) -> None:
        match_id = self._create_match()
        response = self._signup("alice", match_id, guests=["  "])
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()["code"], "validation_error")

    def test_since_returns_304_when_unchanged(self) -> None:
        match_id = self._create_match()
        version = self.client.get(f"/matches/{match_id}").get_json()["data"]["version"]

        response = self.client.get(f"/matches/{match_id}?since={version}")
        self.assertEqual(response.status_code, 304)

        self._signup("alice", match_id)
        response = self.client.get(f"/matches/{match_id}?since={version}")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()["data"]["version"], version + 1)

    def test_unknown_match(self) -> None:
        self.login("alice")
        response = self.client.get("/matches/nope")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.get_json()["code"], "match_not_found")

    @patch("volleyroster.match.routes.send_email")
    def test_unsubscribe_promotes_and_notifies(self, mock_send_email) -> None:
        self.app.config["MAX_PARTICIPANTS"] = 1
        match_id = self._create_match()
        self._signup("alice", match_id)
        redirected = self._signup("bob", match_id).get_json()["data"]
        self.assertTrue(redirected["redirected"])

        self.login("alice")
        response = self.client.post(f"/matches/{match_id}/unsubscribe")

        self.assertEqual(response.status_code, 200)
        data = response.get_json()["data"]
        self.assertEqual(data["promoted"]["uid"], "bob")
        self.assertEqual([p["uid"] for p in data["participants"]], ["bob"])
        mock_send_email.assert_called_once()
        self.assertEqual(mock_send_email.call_args.kwargs["to"], "bob@example.com")

    @patch("volleyroster.match.routes.send_email")
    def test_unsubscribe_survives_failed_notice(self, mock_send_email) -> None:
        self.app.config["MAX_PARTICIPANTS"] = 1
        match_id = self._create_match()
        self._signup("alice", match_id)
        self._signup("bob", match_id)

        self.login("alice")
        with patch.object(
            UserService, "get_user_by_id", side_effect=ServiceUnavailable("down")
        ):
            response = self.client.post(f"/matches/{match_id}/unsubscribe")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()["data"]["promoted"]["uid"], "bob")
        mock_send_email.assert_not_called()

    def test_unsubscribe_when_not_registered(self) -> None:
        match_id = self._create_match()
        self.login("bob")
        response = self.client.post(f"/matches/{match_id}/unsubscribe")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.get_json()["code"], "not_registered")

    def test_guest_removal_permissions(self) -> None:
        match_id = self._create_match()
        data = self._signup("alice", match_id, guests=["Friend"]).get_json()["data"]
        guest_id = data["addedGuests"][0]["entryId"]

        self.login("bob")
        response = self.client.delete(f"/matches/{match_id}/guests/{guest_id}")
        self.assertEqual(response.status_code, 403)

        self.login("alice")
        response = self.client.delete(f"/matches/{match_id}/guests/{guest_id}")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()["data"]["reserves"], [])

    def test_admin_remove_and_promote(self) -> None:
        match_id = self._create_match()
        self._signup("alice", match_id)
        self._signup("bob", match_id, asReserve=True)

        self.login("alice")
        response = self.client.post(f"/matches/{match_id}/reserves/bob/promote")
        self.assertEqual(response.status_code, 403)

        self.login("admin")
        response = self.client.post(f"/matches/{match_id}/reserves/bob/promote")
        self.assertEqual(response.status_code, 200)
        response = self.client.post(
            f"/matches/{match_id}/entries/alice/remove", json={"fromReserves": False}
        )
        self.assertEqual(response.status_code, 200)
        data = response.get_json()["data"]
        self.assertEqual([p["uid"] for p in data["participants"]], ["bob"])

    def test_close_match(self) -> None:
        match_id = self._create_match()
        self._signup("alice", match_id)

        self.login("admin")
        response = self.client.post(f"/matches/{match_id}/close")

        self.assertEqual(response.status_code, 200)
        data = response.get_json()["data"]
        self.assertFalse(data["empty"])
        session = stored(self.db, SESSIONS_COLLECTION, data["sessionId"])
        self.assertEqual(session["participantUids"], ["alice"])
        stats = stored(self.db, USERS_COLLECTION, "alice")["stats"]
        self.assertEqual(stats["totalSessions"], 1)
        self.assertEqual(self.client.get(f"/matches/{match_id}").status_code, 404)

    def test_close_empty_match(self) -> None:
        match_id = self._create_match()
        response = self.client.post(f"/matches/{match_id}/close")
        self.assertTrue(response.get_json()["data"]["empty"])
        self.assertIsNone(response.get_json()["data"]["sessionId"])

"""Tests for the auth, family and activity blueprints."""

import os
import shutil
import tempfile
import unittest
from unittest.mock import MagicMock, patch

from google.api_core import exceptions as google_exceptions

# Pre-emptive imports to ensure patch targets exist.
from familybank import create_app
from tests.conftest import mock_db


def _decoded_token(id_token, check_revoked=False):
    # Tests use the stable id itself as the ID token.
    return {"uid": id_token, "email": f"{id_token}@example.com"}


class RoutesTestCase(unittest.TestCase):
    """Shared setup: the app over an in-memory Firestore with Firebase Auth mocked."""

    def setUp(self):
        self.db = mock_db()
        patchers = {
            "init_app": patch("firebase_admin.initialize_app"),
            "auth": patch("familybank.identity.provider.auth"),
        }
        self.mocks = {name: p.start() for name, p in patchers.items()}
        for p in patchers.values():
            self.addCleanup(p.stop)
        self.mocks["auth"].verify_id_token.side_effect = _decoded_token

        self.app = create_app(
            {
                "TESTING": True,
                "WTF_CSRF_ENABLED": False,
                "SECRET_KEY": "test-secret",
                "FIRESTORE_CLIENT": self.db,
                "IDENTITY_STORE_RETRY_DELAY": 0,
            }
        )
        self.client = self.app.test_client()

    def new_client(self):
        return self.app.test_client()

    def create_family(self, client=None, token="apple-dad"):
        client = client or self.client
        return client.post(
            "/auth/create-family", json={"idToken": token, "fullName": "Dad"}
        )

    def join_family(self, client, code, token="apple-kid"):
        return client.post(
            "/auth/join-family",
            json={"inviteCode": code, "idToken": token, "fullName": "Kid"},
        )


class AuthRoutesTestCase(RoutesTestCase):
    def test_health(self):
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json(), {"status": "ok"})

    def test_readiness_reads_firestore(self):
        response = self.client.get("/health/ready")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json(), {"status": "ok"})

    def test_readiness_fails_when_firestore_is_down(self):
        db = MagicMock()
        db.collection.return_value.limit.return_value.stream.side_effect = (
            google_exceptions.ServiceUnavailable("offline")
        )
        self.app.config["FIRESTORE_CLIENT"] = db

        response = self.client.get("/health/ready")
        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.get_json()["error"], "backend_unavailable")

    def test_fresh_session_is_silently_unauthenticated(self):
        response = self.client.get("/auth/session")
        data = response.get_json()
        self.assertEqual(response.status_code, 200)
        self.assertEqual(data["status"], "unauthenticated")
        self.assertNotIn("message", data)
        self.assertIn("csrfToken", data)

    def test_create_family_then_restore(self):
        response = self.create_family()
        data = response.get_json()
        self.assertEqual(response.status_code, 200)
        self.assertEqual(data["status"], "authenticated")
        self.assertEqual(data["role"], "creator")
        self.assertRegex(data["family"]["inviteCode"], r"^[A-Z]{3}-[0-9]{3}$")
        self.assertEqual(data["user"]["name"], "Dad")

        restored = self.client.get("/auth/session").get_json()
        self.assertEqual(restored["status"], "authenticated")
        self.assertEqual(restored["role"], "creator")
        self.assertEqual(restored["family"]["id"], data["family"]["id"])

    def test_join_family(self):
        code = self.create_family().get_json()["family"]["inviteCode"]
        kid = self.new_client()

        response = self.join_family(kid, code)
        data = response.get_json()
        self.assertEqual(response.status_code, 200)
        self.assertEqual(data["role"], "member")
        self.assertEqual(data["user"]["familyId"], data["family"]["id"])

        again = self.join_family(kid, code).get_json()
        self.assertEqual(again["user"]["id"], data["user"]["id"])

    def test_join_rejections(self):
        code = self.create_family().get_json()["family"]["inviteCode"]
        self.mocks["auth"].verify_id_token.reset_mock()

        missing = self.join_family(self.new_client(), "  ")
        self.assertEqual(missing.status_code, 409)
        self.assertEqual(missing.get_json()["reason"], "missing_invite_code")

        invalid = self.join_family(self.new_client(), "QQQ-000")
        self.assertEqual(invalid.status_code, 409)
        self.assertEqual(
            invalid.get_json()["message"],
            "Invalid invite code. Please check and try again.",
        )
        self.mocks["auth"].verify_id_token.assert_not_called()

        creator = self.join_family(self.new_client(), code, token="apple-dad")
        self.assertEqual(creator.status_code, 409)
        self.assertEqual(creator.get_json()["reason"], "already_creator")

    def test_cancelled_sign_in(self):
        response = self.client.post("/auth/create-family", json={})
        data = response.get_json()
        self.assertEqual(response.status_code, 401)
        self.assertEqual(data["status"], "failed")
        self.assertEqual(data["error"], "cancelled")

    def test_logout(self):
        self.create_family()
        response = self.client.post("/auth/logout")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()["status"], "unauthenticated")
        self.assertEqual(self.client.get("/family/").status_code, 401)

    def test_repository_failure_on_sign_in(self):
        db = MagicMock()
        db.collection.return_value.where.return_value.stream.side_effect = (
            google_exceptions.ServiceUnavailable("offline")
        )
        self.app.config["FIRESTORE_CLIENT"] = db

        response = self.create_family()
        data = response.get_json()
        self.assertEqual(response.status_code, 502)
        self.assertEqual(data["error"], "failed_to_find_user_profile")

    def test_restore_failure_keeps_identity(self):
        db = MagicMock()
        db.collection.return_value.where.return_value.stream.side_effect = (
            google_exceptions.ServiceUnavailable("offline")
        )
        self.app.config["FIRESTORE_CLIENT"] = db
        with self.client.session_transaction() as sess:
            sess["stable_user_id"] = "apple-dad"

        response = self.client.get("/auth/session")
        self.assertEqual(response.status_code, 502)
        self.assertEqual(response.get_json()["status"], "unauthenticated")
        with self.client.session_transaction() as sess:
            self.assertEqual(sess["stable_user_id"], "apple-dad")

    def test_unknown_stored_identity_is_forgotten(self):
        with self.client.session_transaction() as sess:
            sess["stable_user_id"] = "apple-ghost"

        response = self.client.get("/auth/session")
        self.assertEqual(response.status_code, 200)
        with self.client.session_transaction() as sess:
            self.assertNotIn("stable_user_id", sess)


class FileIdentityStoreRoutesTestCase(RoutesTestCase):
    def setUp(self):
        super().setUp()
        tmpdir = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, tmpdir)
        self.path = os.path.join(tmpdir, "identity")
        self.app.config.update(IDENTITY_STORE="file", IDENTITY_STORE_PATH=self.path)

    def test_identity_survives_across_clients(self):
        created = self.create_family().get_json()
        with open(self.path, encoding="utf-8") as f:
            self.assertEqual(f.read(), "apple-dad")

        restored = self.new_client().get("/auth/session").get_json()
        self.assertEqual(restored["status"], "authenticated")
        self.assertEqual(restored["family"]["id"], created["family"]["id"])

        self.new_client().post("/auth/logout")
        self.assertFalse(os.path.exists(self.path))


class CsrfTestCase(RoutesTestCase):
    def test_posts_need_token_from_session_endpoint(self):
        self.app.config["WTF_CSRF_ENABLED"] = True

        refused = self.client.post("/auth/logout")
        self.assertEqual(refused.status_code, 400)

        token = self.client.get("/auth/session").get_json()["csrfToken"]
        accepted = self.client.post("/auth/logout", headers={"X-CSRFToken": token})
        self.assertEqual(accepted.status_code, 200)


class FamilyAndActivityRoutesTestCase(RoutesTestCase):
    def setUp(self):
        super().setUp()
        self.family = self.create_family().get_json()["family"]
        self.kid = self.new_client()
        self.kid_id = self.join_family(self.kid, self.family["inviteCode"]).get_json()[
            "user"
        ]["id"]

    def _create_activity(self, **overrides):
        payload = {
            "title": "Bike",
            "money_goal": 100,
            "end_date": "2099-01-01",
            "assigned_to": [self.kid_id],
        }
        payload.update(overrides)
        return self.client.post("/activity/", json=payload)

    def test_family_view(self):
        data = self.client.get("/family/").get_json()
        self.assertEqual(data["id"], self.family["id"])
        self.assertTrue(data["isCreator"])

        kid_view = self.kid.get("/family/").get_json()
        self.assertEqual(kid_view["role"], "member")

        members = self.client.get("/family/members").get_json()["members"]
        self.assertEqual([m["id"] for m in members], [self.kid_id])

    def test_not_logged_in(self):
        self.assertEqual(self.new_client().get("/activity/").status_code, 401)

    def test_create_activity_and_log_savings(self):
        response = self._create_activity()
        self.assertEqual(response.status_code, 201)
        activity = response.get_json()
        self.assertEqual(activity["assignedTo"], [self.kid_id])
        self.assertEqual(activity["progress"], 0.0)

        saved = self.kid.post(
            f"/activity/{activity['id']}/savings",
            json={"amount_saved": 25, "notes": "birthday money"},
        )
        self.assertEqual(saved.status_code, 201)
        self.assertEqual(saved.get_json()["activity"]["totalSaved"], 25.0)

        mine = self.kid.get("/activity/").get_json()["activities"]
        self.assertEqual(len(mine), 1)
        self.assertAlmostEqual(mine[0]["progress"], 0.25)

        detail = self.client.get(f"/activity/{activity['id']}").get_json()
        self.assertEqual(len(detail["savings"]), 1)
        self.assertEqual(detail["savings"][0]["notes"], "birthday money")

    def test_activity_validation(self):
        response = self._create_activity(money_goal=0)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(
            response.get_json()["message"], "Please enter a valid money goal"
        )

        past = self._create_activity(end_date="2000-01-01")
        self.assertEqual(past.get_json()["message"], "Please select a future end date")

        nobody = self._create_activity(assigned_to=[])
        self.assertEqual(nobody.status_code, 400)

    def test_profile_view(self):
        data = self.kid.get("/profile/").get_json()
        self.assertEqual(data["user"]["id"], self.kid_id)
        self.assertEqual(data["family"]["id"], self.family["id"])
        self.assertEqual(data["role"], "member")
        self.assertIsNone(data["user"]["profileImageUrl"])

        self.assertEqual(self.new_client().get("/profile/").status_code, 401)

    def test_update_profile_picture(self):
        url = "https://img.example.com/kid.png"
        response = self.kid.post("/profile/picture", json={"picture_url": url})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()["user"]["profileImageUrl"], url)

        restored = self.kid.get("/profile/").get_json()
        self.assertEqual(restored["user"]["profileImageUrl"], url)
        self.assertEqual(restored["user"]["familyId"], self.family["id"])

        creator = self.client.get("/profile/").get_json()
        self.assertIsNone(creator["user"]["profileImageUrl"])

    def test_profile_picture_must_be_a_url(self):
        response = self.kid.post("/profile/picture", json={"picture_url": "not a url"})
        self.assertEqual(response.status_code, 400)

        missing = self.kid.post("/profile/picture", json={})
        self.assertEqual(missing.status_code, 400)

    def test_roles_are_enforced(self):
        self.assertEqual(self.kid.post("/activity/", json={}).status_code, 403)

        activity = self._create_activity().get_json()
        response = self.client.post(
            f"/activity/{activity['id']}/savings", json={"amount_saved": 5}
        )
        self.assertEqual(response.status_code, 403)

        bad_amount = self.kid.post(
            f"/activity/{activity['id']}/savings", json={"amount_saved": -1}
        )
        self.assertEqual(bad_amount.status_code, 400)


if __name__ == "__main__":
    unittest.main()

"""HTTP tests for the auth and users routers: envelope, status codes and end-to-end session flow."""

import unittest
from datetime import UTC, datetime, timedelta
from unittest.mock import patch

from app.core.config import get_settings
from app.repositories.user_repository import UserRepository
from tests.helpers import (
    API,
    bearer,
    clear_overrides,
    expired_token,
    make_client,
    make_mailer,
    make_session_factory,
)

PASSWORD = "secret1"


class ApiTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.mailer, self.transport = make_mailer()
        self.session_factory = make_session_factory()
        self.client = make_client(self.session_factory, self.mailer)

    def tearDown(self) -> None:
        clear_overrides()

    def register(self, email: str = "a@x.com", name: str = "A user", role: str = "user") -> dict:
        resp = self.client.post(
            f"{API}/auth/register",
            json={"name": name, "email": email, "password": PASSWORD, "role": role},
        )
        self.assertEqual(resp.status_code, 201, resp.text)
        return resp.json()["data"]

    def login(self, email: str = "a@x.com", password: str = PASSWORD):
        return self.client.post(f"{API}/auth/login", json={"email": email, "password": password})

    def update_user(self, user_id: str, **fields) -> None:
        session = self.session_factory()
        try:
            UserRepository(session).update(user_id, **fields)
        finally:
            session.close()


class TestEndToEndSession(ApiTestCase):
    """register -> login -> refresh -> logout -> refresh fails."""

    def test_session_lifecycle(self) -> None:
        resp = self.client.post(
            f"{API}/auth/register",
            json={"name": "A", "email": "a@x.com", "password": PASSWORD},
        )
        # "A" is below the 2-character minimum for names.
        self.assertEqual(resp.status_code, 400)

        registered = self.register(name="Ab")
        self.assertIn("accessToken", registered)
        self.assertIn("refreshToken", registered)

        resp = self.login()
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertTrue(body["success"])
        self.assertEqual(body["message"], "Login successful")
        refresh_token = body["data"]["refreshToken"]
        access_token = body["data"]["accessToken"]
        self.assertNotEqual(refresh_token, registered["refreshToken"])

        resp = self.client.post(f"{API}/auth/refresh", json={"refreshToken": refresh_token})
        self.assertEqual(resp.status_code, 200)
        self.assertIn("accessToken", resp.json()["data"])

        resp = self.client.post(f"{API}/auth/logout", headers=bearer(access_token))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["message"], "Logout successful")

        resp = self.client.post(f"{API}/auth/refresh", json={"refreshToken": refresh_token})
        self.assertEqual(resp.status_code, 401)
        self.assertFalse(resp.json()["success"])

    def test_stale_refresh_token_after_second_login(self) -> None:
        first = self.login_after_register()
        self.login()
        resp = self.client.post(f"{API}/auth/refresh", json={"refreshToken": first})
        self.assertEqual(resp.status_code, 401)

    def login_after_register(self) -> str:
        self.register()
        return self.login().json()["data"]["refreshToken"]


class TestRegisterAndLogin(ApiTestCase):
    def test_response_never_contains_credentials(self) -> None:
        data = self.register()
        user = data["user"]
        self.assertEqual(set(user), {"id", "name", "email", "role", "isActive", "createdAt", "updatedAt"})
        self.assertEqual(user["role"], "user")

    def test_duplicate_email_is_400(self) -> None:
        self.register(email="a@x.com")
        resp = self.client.post(
            f"{API}/auth/register",
            json={"name": "Other", "email": "A@X.COM", "password": PASSWORD},
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["message"], "User with this email already exists")

    def test_validation_errors_are_per_field(self) -> None:
        resp = self.client.post(
            f"{API}/auth/register",
            json={"name": "Ab", "email": "not-an-email", "password": "123"},
        )
        self.assertEqual(resp.status_code, 400)
        body = resp.json()
        self.assertFalse(body["success"])
        self.assertEqual(body["message"], "Validation failed")
        fields = {e["field"] for e in body["errors"]}
        self.assertEqual(fields, {"email", "password"})

    def test_invalid_role_is_rejected(self) -> None:
        resp = self.client.post(
            f"{API}/auth/register",
            json={"name": "Ab", "email": "a@x.com", "password": PASSWORD, "role": "root"},
        )
        self.assertEqual(resp.status_code, 400)

    def test_welcome_mail_failure_still_registers(self) -> None:
        self.transport.send.side_effect = RuntimeError("smtp down")
        self.register()

    def test_wrong_password_and_unknown_email_look_the_same(self) -> None:
        self.register()
        wrong = self.login(password="wrong-password")
        unknown = self.login(email="nobody@x.com")
        self.assertEqual(wrong.status_code, 401)
        self.assertEqual(unknown.status_code, 401)
        self.assertEqual(wrong.json()["message"], unknown.json()["message"])

    def test_disabled_account_login_is_401(self) -> None:
        data = self.register()
        self.update_user(data["user"]["id"], is_active=False)
        resp = self.login()
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json()["message"], "Account is deactivated. Please contact support.")

    def test_success_envelope_omits_empty_fields(self) -> None:
        resp = self.client.post(
            f"{API}/auth/register",
            json={"name": "Ab", "email": "a@x.com", "password": PASSWORD},
        )
        self.assertNotIn("errors", resp.json())
        resp = self.client.post(f"{API}/auth/forgot-password", json={"email": "a@x.com"})
        self.assertEqual(set(resp.json()), {"success", "message"})

    def test_refresh_without_token_is_400(self) -> None:
        resp = self.client.post(f"{API}/auth/refresh", json={})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["message"], "Refresh token is required")


class TestAccessGate(ApiTestCase):
    def test_logout_requires_token(self) -> None:
        resp = self.client.post(f"{API}/auth/logout")
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.headers.get("www-authenticate"), "Bearer")

    def test_expired_access_token_message(self) -> None:
        data = self.register()
        token = expired_token(
            get_settings().JWT_ACCESS_SECRET.get_secret_value(),
            "access",
            userId=data["user"]["id"],
            email="a@x.com",
            role="user",
        )
        resp = self.client.get(f"{API}/users/profile", headers=bearer(token))
        self.assertEqual(resp.status_code, 401)
        self.assertIn("expired", resp.json()["message"].lower())

    def test_refresh_token_is_not_an_access_token(self) -> None:
        data = self.register()
        resp = self.client.get(f"{API}/users/profile", headers=bearer(data["refreshToken"]))
        self.assertEqual(resp.status_code, 401)
        self.assertIn("invalid", resp.json()["message"].lower())

    def test_user_role_is_forbidden_on_admin_routes(self) -> None:
        data = self.register()
        resp = self.client.get(f"{API}/users", headers=bearer(data["accessToken"]))
        self.assertEqual(resp.status_code, 403)

    def test_admin_role_can_list_users(self) -> None:
        self.register(email="u@x.com")
        admin = self.register(email="admin@x.com", role="admin")
        resp = self.client.get(f"{API}/users", headers=bearer(admin["accessToken"]))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["data"]["count"], 2)


class TestPasswordResetFlow(ApiTestCase):
    def test_forgot_password_is_200_for_unknown_email(self) -> None:
        resp = self.client.post(f"{API}/auth/forgot-password", json={"email": "nobody@x.com"})
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(resp.json()["success"])
        self.transport.send.assert_not_called()

    def test_reset_via_emailed_token(self) -> None:
        data = self.register()
        self.transport.reset_mock()
        with patch.object(self.mailer, "send_password_reset_email", wraps=self.mailer.send_password_reset_email) as send:
            resp = self.client.post(f"{API}/auth/forgot-password", json={"email": "A@x.com"})
        self.assertEqual(resp.status_code, 200)
        send.assert_called_once()
        reset_token = send.call_args.args[1]
        text = self.transport.send.call_args.args[2]
        self.assertIn("http://frontend.test/reset-password?token=", text)

        resp = self.client.post(
            f"{API}/auth/reset-password",
            json={"token": reset_token, "password": "new-secret"},
        )
        self.assertEqual(resp.status_code, 200)

        # The pre-reset session is gone; the new password works.
        resp = self.client.post(f"{API}/auth/refresh", json={"refreshToken": data["refreshToken"]})
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(self.login(password="new-secret").status_code, 200)

    def test_forgot_password_mail_failure_is_still_200(self) -> None:
        self.register()
        self.transport.send.side_effect = RuntimeError("mail down")
        resp = self.client.post(f"{API}/auth/forgot-password", json={"email": "a@x.com"})
        self.assertEqual(resp.status_code, 200)

    def test_reset_after_stored_expiry_is_400(self) -> None:
        data = self.register()
        with patch.object(self.mailer, "send_password_reset_email", wraps=self.mailer.send_password_reset_email) as send:
            self.client.post(f"{API}/auth/forgot-password", json={"email": "a@x.com"})
        reset_token = send.call_args.args[1]
        self.update_user(
            data["user"]["id"],
            password_reset_expires=datetime.now(UTC) - timedelta(minutes=1),
        )

        resp = self.client.post(
            f"{API}/auth/reset-password",
            json={"token": reset_token, "password": "new-secret"},
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["message"], "Reset token has expired")

    def test_invalid_reset_token_is_400(self) -> None:
        resp = self.client.post(
            f"{API}/auth/reset-password",
            json={"token": "tampered.token.value", "password": "new-secret"},
        )
        self.assertEqual(resp.status_code, 400)
        self.assertFalse(resp.json()["success"])


class TestUsersRoutes(ApiTestCase):
    def test_get_and_update_profile(self) -> None:
        data = self.register()
        headers = bearer(data["accessToken"])
        resp = self.client.get(f"{API}/users/profile", headers=headers)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["data"]["user"]["email"], "a@x.com")

        resp = self.client.put(f"{API}/users/profile", json={"name": "New Name"}, headers=headers)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["data"]["user"]["name"], "New Name")

    def test_update_profile_email_taken(self) -> None:
        self.register(email="b@x.com")
        data = self.register(email="a@x.com")
        resp = self.client.put(
            f"{API}/users/profile",
            json={"email": "b@x.com"},
            headers=bearer(data["accessToken"]),
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["message"], "Email already in use")

    def test_change_password(self) -> None:
        data = self.register()
        headers = bearer(data["accessToken"])
        resp = self.client.put(
            f"{API}/users/change-password",
            json={"currentPassword": "wrong", "newPassword": "new-secret"},
            headers=headers,
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["errors"][0]["field"], "currentPassword")

        resp = self.client.put(
            f"{API}/users/change-password",
            json={"currentPassword": PASSWORD, "newPassword": "new-secret"},
            headers=headers,
        )
        self.assertEqual(resp.status_code, 200)
        tokens = resp.json()["data"]
        self.assertNotEqual(tokens["refreshToken"], data["refreshToken"])
        self.assertEqual(self.login(password="new-secret").status_code, 200)

    def test_admin_self_delete_and_delete_other(self) -> None:
        user = self.register(email="u@x.com")
        admin = self.register(email="admin@x.com", role="admin")
        headers = bearer(admin["accessToken"])

        resp = self.client.delete(f"{API}/users/{admin['user']['id']}", headers=headers)
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["message"], "You cannot delete your own account")

        resp = self.client.get(f"{API}/users/{user['user']['id']}", headers=headers)
        self.assertEqual(resp.status_code, 200)

        resp = self.client.delete(f"{API}/users/{user['user']['id']}", headers=headers)
        self.assertEqual(resp.status_code, 200)

        resp = self.client.get(f"{API}/users/{user['user']['id']}", headers=headers)
        self.assertEqual(resp.status_code, 404)

    def test_deleted_user_token_no_longer_authenticates(self) -> None:
        user = self.register(email="u@x.com")
        admin = self.register(email="admin@x.com", role="admin")
        self.client.delete(f"{API}/users/{user['user']['id']}", headers=bearer(admin["accessToken"]))
        resp = self.client.get(f"{API}/users/profile", headers=bearer(user["accessToken"]))
        self.assertEqual(resp.status_code, 401)


class TestHealthAndErrors(ApiTestCase):
    def test_health(self) -> None:
        resp = self.client.get(f"{API}/health")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["database"], "connected")
        self.assertEqual(resp.json()["environment"], "test")

    def test_routes_mount_under_versioned_prefix(self) -> None:
        self.assertEqual(API, "/api/v1")
        self.assertEqual(self.client.get("/api/v1/health").status_code, 200)
        self.assertEqual(self.client.post("/api/auth/login", json={}).status_code, 404)

    def test_unexpected_failure_is_generic_500(self) -> None:
        client = make_client(make_session_factory(), self.mailer, raise_server_exceptions=False)
        with patch(
            "app.services.auth_service.AuthService.request_password_reset",
            side_effect=RuntimeError("db exploded"),
        ):
            resp = client.post(f"{API}/auth/forgot-password", json={"email": "a@x.com"})
        self.assertEqual(resp.status_code, 500)
        self.assertFalse(resp.json()["success"])
        self.assertNotIn("exploded", resp.text)


if __name__ == "__main__":
    unittest.main()

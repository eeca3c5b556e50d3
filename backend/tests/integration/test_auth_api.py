"""
Integration tests for login, Bearer token enforcement and the health check.

Staff accounts are created through the ``flask create-user`` command so the
CLI wiring is covered too.
"""

import pytest

from odonto.core.security import create_access_token, create_user_token

pytestmark = [pytest.mark.api, pytest.mark.auth]

EMAIL = "reception@clinic.example"
PASSWORD = "molar-crown-42"


@pytest.fixture
def staff_account(secured_app):
    runner = secured_app.test_cli_runner()
    result = runner.invoke(args=["create-user", EMAIL, PASSWORD, "Reception Desk"])
    assert result.exit_code == 0, result.output
    assert "User created" in result.output


def _login(client, email=EMAIL, password=PASSWORD):
    return client.post("/api/auth/login", json={"email": email, "password": password})


class TestLogin:
    def test_login_and_me(self, secured_client, response_helper, staff_account):
        data = response_helper.data(_login(secured_client))

        assert data["token_type"] == "Bearer"
        assert data["user"]["email"] == EMAIL

        me = response_helper.data(
            secured_client.get(
                "/api/auth/me",
                headers={"Authorization": f"Bearer {data['access_token']}"},
            )
        )
        assert me["email"] == EMAIL
        assert me["name"] == "Reception Desk"

    def test_wrong_password(self, secured_client, response_helper, staff_account):
        body = response_helper.assert_json_response(
            _login(secured_client, password="wrong-password"), 401
        )
        assert body["message"] == "Invalid email or password"
        assert body["data"] == {"error": "unauthorized"}

    def test_login_validation(self, secured_client, response_helper):
        body = response_helper.assert_json_response(
            secured_client.post("/api/auth/login", json={}), 400
        )
        assert body["data"]["errors"] == ["email", "password"]

    def test_duplicate_account_from_cli(self, secured_app, staff_account):
        result = secured_app.test_cli_runner().invoke(
            args=["create-user", EMAIL, PASSWORD, "Again"]
        )
        assert result.exit_code != 0


class TestProtectedRoutes:
    def test_missing_header(self, secured_client, response_helper):
        body = response_helper.assert_json_response(
            secured_client.get("/api/Patient/"), 401
        )
        assert body["message"] == "Missing or invalid Authorization header"

    def test_garbage_token(self, secured_client, response_helper):
        body = response_helper.assert_json_response(
            secured_client.get(
                "/api/Patient/", headers={"Authorization": "Bearer not.a.token"}
            ),
            401,
        )
        assert body["message"] == "Invalid or expired token"

    def test_token_for_unknown_user(self, secured_client, response_helper):
        token = create_user_token("ghost", "ghost@clinic.example")
        body = response_helper.assert_json_response(
            secured_client.get("/api/Patient/", headers={"Authorization": f"Bearer {token}"}),
            401,
        )
        assert body["message"] == "User not found or inactive"

    def test_token_without_email_claim(self, secured_client, response_helper):
        token = create_access_token({"sub": "someone"})
        response_helper.assert_json_response(
            secured_client.get("/api/Doctors/", headers={"Authorization": f"Bearer {token}"}),
            401,
        )

    def test_valid_token_opens_the_api(self, secured_client, response_helper, staff_account):
        token = response_helper.data(_login(secured_client))["access_token"]

        data = response_helper.data(
            secured_client.get("/api/lesions/", headers={"Authorization": f"Bearer {token}"})
        )

        assert data == []


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.get_json() == {"status": "healthy", "database": "connected"}

    def test_request_id_is_echoed(self, client):
        response = client.get("/health", headers={"X-Request-ID": "req-123"})
        assert response.headers["X-Request-ID"] == "req-123"

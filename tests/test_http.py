"""
Integration Tests for the HTTP Layer
====================================
Full register/login/refresh/logout round trips through FastAPI.
"""

import pytest
from fastapi.testclient import TestClient

PREFIX = "/api/v1/seedkey"


@pytest.fixture
def client(auth_service, token_service):
    from seedkey_core.http import create_app

    return TestClient(create_app(auth_service, token_service))


def register(client, kp):
    challenge = client.post(
        f"{PREFIX}/challenge", json={"publicKey": kp.public_key, "action": "register"}
    ).json()
    return client.post(f"{PREFIX}/register", json={
        "publicKey": kp.public_key,
        "challenge": challenge["challenge"],
        "signature": kp.sign_challenge(challenge["challenge"]),
        "metadata": {"deviceName": "Test Browser"},
    })


def login(client, kp):
    challenge = client.post(
        f"{PREFIX}/challenge", json={"publicKey": kp.public_key, "action": "authenticate"}
    ).json()
    return client.post(f"{PREFIX}/verify", json={
        "challengeId": challenge["challengeId"],
        "challenge": challenge["challenge"],
        "signature": kp.sign_challenge(challenge["challenge"]),
        "publicKey": kp.public_key,
    })


class TestChallengeRoute:
    """Tests for POST /challenge."""

    def test_issue(self, client, keypair):
        response = client.post(
            f"{PREFIX}/challenge", json={"publicKey": keypair.public_key, "action": "register"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["challengeId"].startswith("ch_")
        assert set(body["challenge"]) == {"nonce", "timestamp", "domain", "action", "expiresAt"}

    def test_unknown_user_is_404(self, client, keypair):
        response = client.post(
            f"{PREFIX}/challenge", json={"publicKey": keypair.public_key, "action": "authenticate"}
        )

        assert response.status_code == 404
        assert response.json() == {
            "error": "USER_NOT_FOUND",
            "message": "USER_NOT_FOUND",
            "hint": "register",
        }

    def test_existing_user_is_409(self, client, keypair):
        register(client, keypair)

        response = client.post(
            f"{PREFIX}/challenge", json={"publicKey": keypair.public_key, "action": "register"}
        )

        assert response.status_code == 409
        assert response.json()["hint"] == "authenticate"

    def test_missing_fields_is_400(self, client):
        response = client.post(f"{PREFIX}/challenge", json={})

        assert response.status_code == 400

    def test_request_id_header(self, client, keypair):
        response = client.post(
            f"{PREFIX}/challenge",
            json={"publicKey": keypair.public_key, "action": "register"},
            headers={"X-Request-ID": "req-123"},
        )

        assert response.headers["x-request-id"] == "req-123"


class TestRegisterAndLogin:
    """Tests for POST /register and POST /verify."""

    def test_register(self, client, keypair):
        response = register(client, keypair)

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["action"] == "register"
        assert body["user"]["publicKey"] == keypair.public_key
        assert set(body["token"]) == {"accessToken", "refreshToken", "expiresIn"}

    def test_login(self, client, keypair):
        registered = register(client, keypair).json()

        response = login(client, keypair)

        assert response.status_code == 200
        body = response.json()
        assert body["action"] == "login"
        assert body["user"]["id"] == registered["user"]["id"]
        assert body["user"]["lastLogin"] is not None

    def test_bad_signature_is_401(self, client, keypair, other_keypair):
        challenge = client.post(
            f"{PREFIX}/challenge", json={"publicKey": keypair.public_key, "action": "register"}
        ).json()

        response = client.post(f"{PREFIX}/register", json={
            "publicKey": keypair.public_key,
            "challenge": challenge["challenge"],
            "signature": other_keypair.sign_challenge(challenge["challenge"]),
        })

        assert response.status_code == 401
        assert response.json() == {
            "error": "INVALID_SIGNATURE",
            "message": "Signature verification failed",
        }

    def test_replayed_login_is_400(self, client, keypair):
        register(client, keypair)
        challenge = client.post(
            f"{PREFIX}/challenge", json={"publicKey": keypair.public_key, "action": "authenticate"}
        ).json()
        body = {
            "challengeId": challenge["challengeId"],
            "challenge": challenge["challenge"],
            "signature": keypair.sign_challenge(challenge["challenge"]),
            "publicKey": keypair.public_key,
        }

        assert client.post(f"{PREFIX}/verify", json=body).status_code == 200
        replay = client.post(f"{PREFIX}/verify", json=body)

        assert replay.status_code == 400
        assert replay.json()["error"] == "NONCE_REUSED"

    def test_malformed_challenge_is_validation_error(self, client, keypair):
        response = client.post(f"{PREFIX}/register", json={
            "publicKey": keypair.public_key,
            "challenge": {"nonce": "only"},
            "signature": "sig",
        })

        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"

    def test_wrong_body_type_is_validation_error(self, client):
        response = client.post(f"{PREFIX}/verify", json={"publicKey": 42})

        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"


class TestTokenRoutes:
    """Tests for /user, /refresh and /logout."""

    def test_get_user(self, client, keypair):
        tokens = register(client, keypair).json()["token"]

        response = client.get(
            f"{PREFIX}/user", headers={"Authorization": f"Bearer {tokens['accessToken']}"}
        )

        assert response.status_code == 200
        user = response.json()["user"]
        assert user["publicKey"]["publicKey"] == keypair.public_key
        assert user["publicKey"]["deviceName"] == "Test Browser"

    def test_get_user_requires_auth(self, client):
        response = client.get(f"{PREFIX}/user")

        assert response.status_code == 401
        assert response.json()["error"] == "UNAUTHORIZED"

    def test_refresh(self, client, keypair):
        tokens = register(client, keypair).json()["token"]

        response = client.post(f"{PREFIX}/refresh", json={"refreshToken": tokens["refreshToken"]})

        assert response.status_code == 200
        assert set(response.json()) == {"accessToken", "refreshToken", "expiresIn"}

    def test_refresh_requires_token(self, client):
        response = client.post(f"{PREFIX}/refresh", json={})

        assert response.status_code == 400
        assert response.json() == {
            "error": "VALIDATION_ERROR",
            "message": "refreshToken is required",
        }

    def test_logout(self, client, keypair):
        tokens = register(client, keypair).json()["token"]
        headers = {"Authorization": f"Bearer {tokens['accessToken']}"}

        response = client.post(f"{PREFIX}/logout", headers=headers)

        assert response.json() == {"success": True, "message": "Logged out successfully"}
        after = client.get(f"{PREFIX}/user", headers=headers)
        assert after.status_code == 401
        assert after.json()["error"] == "INVALID_TOKEN"


class TestAppErrors:
    """Tests for app-level error handling."""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_store_failure_is_internal_error(self, auth_service, token_service, keypair):
        """Unexpected exceptions become a generic 500 body."""
        from seedkey_core.http import create_app

        async def broken(*args, **kwargs):
            raise RuntimeError("database is down")

        auth_service.users.public_key_exists = broken
        client = TestClient(create_app(auth_service, token_service), raise_server_exceptions=False)

        response = client.post(
            f"{PREFIX}/challenge", json={"publicKey": keypair.public_key, "action": "register"}
        )

        assert response.status_code == 500
        assert response.json() == {
            "error": "INTERNAL_ERROR",
            "message": "An internal error occurred",
        }

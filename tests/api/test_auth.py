from datetime import datetime, timedelta, timezone

from fastapi import status
from fastapi.testclient import TestClient

from tests.helpers.sign_message import sign_text


def _request_wallet(client: TestClient, address: str) -> dict:
    response = client.post("/auth/wallet", json={"address": address})
    assert response.status_code == status.HTTP_200_OK
    return response.json()


def _login(client: TestClient, account) -> dict:
    wallet = _request_wallet(client, account.address)
    signature = sign_text(account, wallet["message"])
    response = client.post("/auth/login", json={"address": account.address, "signature": signature})
    assert response.status_code == status.HTTP_200_OK
    return response.json()


class TestWalletAPI:
    """Test cases for the /auth/wallet endpoint"""

    def test_register_wallet(self, client: TestClient, alice):
        data = _request_wallet(client, alice.address.lower())

        assert data["address"] == alice.address
        assert data["nonce"]
        assert alice.address in data["message"]
        assert data["message"].endswith(data["nonce"])

    def test_same_wallet_twice(self, client: TestClient, alice):
        first = _request_wallet(client, alice.address)
        second = _request_wallet(client, alice.address.lower())

        assert first["id"] == second["id"]
        assert first["nonce"] == second["nonce"]

    def test_invalid_address(self, client: TestClient):
        response = client.post("/auth/wallet", json={"address": "0x1234"})
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_missing_address(self, client: TestClient):
        response = client.post("/auth/wallet", json={})
        assert response.status_code == 422


class TestLoginAPI:
    """Test cases for the /auth/login endpoint"""

    def test_login_success(self, client: TestClient, alice):
        data = _login(client, alice)

        assert data["token_type"] == "bearer"
        assert data["access_token"]
        assert data["wallet"]["address"] == alice.address
        assert "nonce" not in data["wallet"]

    def test_login_rotates_nonce(self, client: TestClient, alice):
        before = _request_wallet(client, alice.address)
        _login(client, alice)
        after = _request_wallet(client, alice.address)

        assert after["id"] == before["id"]
        assert after["nonce"] != before["nonce"]

    def test_replay_rejected(self, client: TestClient, alice):
        wallet = _request_wallet(client, alice.address)
        body = {"address": alice.address, "signature": sign_text(alice, wallet["message"])}

        assert client.post("/auth/login", json=body).status_code == status.HTTP_200_OK
        replay = client.post("/auth/login", json=body)
        assert replay.status_code == status.HTTP_401_UNAUTHORIZED

    def test_unknown_wallet(self, client: TestClient, alice):
        response = client.post(
            "/auth/login",
            json={"address": alice.address, "signature": "0x" + "00" * 65},
        )
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_wrong_signer(self, client: TestClient, alice, bob):
        wallet = _request_wallet(client, alice.address)
        response = client.post(
            "/auth/login",
            json={"address": alice.address, "signature": sign_text(bob, wallet["message"])},
        )
        assert response.status_code == status.HTTP_401_UNAUTHORIZED


class TestSessionAPI:
    """Test cases for the bearer-protected /auth/session endpoint"""

    def test_session_with_bearer(self, client: TestClient, alice):
        token = _login(client, alice)["access_token"]
        response = client.get("/auth/session", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["address"] == alice.address

    def test_session_with_plain_token(self, client: TestClient, alice):
        token = _login(client, alice)["access_token"]
        response = client.get("/auth/session", headers={"Authorization": token})
        assert response.status_code == status.HTTP_200_OK

    def test_missing_header(self, client: TestClient):
        response = client.get("/auth/session")
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["detail"] == "Unauthenticated"

    def test_failures_look_the_same(self, client: TestClient, auth_service, alice):
        """Expired, tampered and garbage tokens all answer the same 401"""
        wallet = auth_service.get_or_create_wallet(alice.address)
        expired = auth_service.codec.issue(
            wallet, now=datetime.now(timezone.utc) - timedelta(days=2)
        )
        valid = auth_service.codec.issue(wallet)
        tampered = valid[:-4] + ("AAAA" if not valid.endswith("AAAA") else "BBBB")

        details = set()
        for token in [expired, tampered, "garbage"]:
            response = client.get("/auth/session", headers={"Authorization": f"Bearer {token}"})
            assert response.status_code == status.HTTP_401_UNAUTHORIZED
            details.add(response.json()["detail"])
        assert details == {"Unauthenticated"}

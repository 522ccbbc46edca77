import pytest
from fastapi import status
from fastapi.testclient import TestClient

from walletgate.core.challenge import build_challenge
from walletgate.core.jwt_utils import verify_token
from walletgate.services.credential_store import CredentialStore
from tests.helpers import add_profile, sign_in, sign_text, signed_challenge


class TestNonceAPI:
    """Test cases for the /api/auth/nonce endpoint"""

    def test_request_nonce_success(self, client: TestClient):
        response = client.get("/api/auth/nonce")

        assert response.status_code == status.HTTP_200_OK
        nonce = response.json()["nonce"]
        assert isinstance(nonce, str)
        assert len(nonce) == 32

    def test_request_nonce_is_unique(self, client: TestClient):
        nonces = {client.get("/api/auth/nonce").json()["nonce"] for _ in range(5)}
        assert len(nonces) == 5


class TestCheckUserAPI:
    """Test cases for the /api/auth/check-user endpoint"""

    def test_check_user_without_profile(self, client: TestClient, alice):
        response = client.get("/api/auth/check-user", params={"address": alice.address})

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {
            "exists": False,
            "canSignIn": False,
            "needsSetup": True,
            "address": alice.address.lower(),
        }

    def test_check_user_with_profile(self, client: TestClient, db_session, alice):
        add_profile(db_session, alice.address)

        data = client.get("/api/auth/check-user", params={"address": alice.address}).json()

        assert data["exists"] is True
        assert data["needsSetup"] is False

    @pytest.mark.parametrize("address", ["", "0x123", "not-an-address", "0x" + "g" * 40])
    def test_check_user_invalid_address(self, client: TestClient, address):
        response = client.get("/api/auth/check-user", params={"address": address})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "error" in response.json()


class TestSignInAPI:
    """Test cases for the /api/auth/signin endpoint"""

    def test_sign_in_success(self, client: TestClient, db_session, alice):
        add_profile(db_session, alice.address)

        response = client.post("/api/auth/signin", json=signed_challenge(client, alice))

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["address"] == alice.address.lower()
        assert data["tokenType"] == "bearer"
        payload = verify_token(data["token"])
        assert payload["wallet_address"] == alice.address.lower()
        assert payload["exp"] == data["expiresAt"]
        assert CredentialStore(db_session).exists(data["token"], alice.address)

    def test_sign_in_without_profile_needs_setup(self, client: TestClient, db_session, alice):
        response = client.post("/api/auth/signin", json=signed_challenge(client, alice))

        assert response.status_code == status.HTTP_403_FORBIDDEN
        data = response.json()
        assert data["needsSetup"] is True
        assert data["address"] == alice.address.lower()
        assert "token" not in data
        assert CredentialStore(db_session).delete_expired(now=2**40) == 0

    def test_sign_in_without_profile_ignores_signature(self, client: TestClient, alice):
        body = signed_challenge(client, alice)
        body["signature"] = "0x" + "00" * 65

        response = client.post("/api/auth/signin", json=body)

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["needsSetup"] is True

    def test_sign_in_signature_from_other_wallet(self, client: TestClient, db_session, alice, bob):
        add_profile(db_session, alice.address)
        body = signed_challenge(client, alice)
        body["signature"] = sign_text(bob, body["message"])

        response = client.post("/api/auth/signin", json=body)

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["authenticated"] is False
        assert response.headers["www-authenticate"] == "Bearer"

    def test_sign_in_malformed_signature(self, client: TestClient, db_session, alice):
        add_profile(db_session, alice.address)
        body = signed_challenge(client, alice)
        body["signature"] = "0xnot-hex"

        response = client.post("/api/auth/signin", json=body)

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_sign_in_replayed_nonce_rejected(self, client: TestClient, db_session, alice):
        add_profile(db_session, alice.address)
        body = signed_challenge(client, alice)

        first = client.post("/api/auth/signin", json=body)
        second = client.post("/api/auth/signin", json=body)

        assert first.status_code == status.HTTP_201_CREATED
        assert second.status_code == status.HTTP_401_UNAUTHORIZED
        assert "Nonce" in second.json()["error"]

    def test_sign_in_unknown_nonce_rejected(self, client: TestClient, db_session, alice):
        add_profile(db_session, alice.address)
        challenge = build_challenge(alice.address, alice.chain_id, "deadbeefdeadbeef")

        response = client.post(
            "/api/auth/signin",
            json={"message": challenge.text, "signature": sign_text(alice, challenge.text)},
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_sign_in_wrong_chain(self, client: TestClient, db_session, alice):
        add_profile(db_session, alice.address)
        nonce = client.get("/api/auth/nonce").json()["nonce"]
        challenge = build_challenge(alice.address, 137, nonce)

        response = client.post(
            "/api/auth/signin",
            json={"message": challenge.text, "signature": sign_text(alice, challenge.text)},
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    @pytest.mark.parametrize(
        "message",
        [
            "hello",
            "Sign this message to authenticate with Cheshire.\n\nAddress: 0x123\nChain ID: 1\nNonce: abcdefgh",
        ],
    )
    def test_sign_in_invalid_message_format(self, client: TestClient, message):
        response = client.post("/api/auth/signin", json={"message": message, "signature": "0x00"})

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_sign_in_missing_fields(self, client: TestClient):
        response = client.post("/api/auth/signin", json={"message": "only a message"})

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


class TestSessionAPI:
    """Test cases for /api/auth/me and /api/auth/signout"""

    def test_me_with_credential(self, client: TestClient, db_session, alice):
        add_profile(db_session, alice.address)
        token = sign_in(client, alice)

        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["authenticated"] is True
        assert response.json()["address"] == alice.address.lower()

    def test_me_alias(self, client: TestClient, db_session, alice):
        add_profile(db_session, alice.address)
        token = sign_in(client, alice)

        response = client.get("/api/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == status.HTTP_200_OK

    def test_me_without_credential(self, client: TestClient):
        response = client.get("/api/auth/me")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["authenticated"] is False

    def test_me_with_forged_credential(self, client: TestClient, db_session, alice):
        add_profile(db_session, alice.address)
        token = sign_in(client, alice)
        header, payload, signature = token.split(".")
        forged = ".".join([header, payload, signature[::-1]])

        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {forged}"})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_sign_out_revokes_credential(self, client: TestClient, db_session, alice):
        add_profile(db_session, alice.address)
        token = sign_in(client, alice)
        headers = {"Authorization": f"Bearer {token}"}

        response = client.post("/api/auth/signout", headers=headers)

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["success"] is True
        assert not CredentialStore(db_session).exists(token, alice.address)
        assert client.get("/api/auth/me", headers=headers).status_code == status.HTTP_401_UNAUTHORIZED

    def test_sign_out_twice(self, client: TestClient, db_session, alice):
        add_profile(db_session, alice.address)
        token = sign_in(client, alice)
        headers = {"Authorization": f"Bearer {token}"}

        client.post("/api/auth/signout", headers=headers)
        response = client.post("/api/auth/signout", headers=headers)

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_sign_out_without_credential(self, client: TestClient):
        response = client.post("/api/auth/signout")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_sign_out_keeps_other_sessions(self, client: TestClient, db_session, alice):
        add_profile(db_session, alice.address)
        first = sign_in(client, alice)
        second = sign_in(client, alice)

        client.post("/api/auth/signout", headers={"Authorization": f"Bearer {first}"})

        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {second}"})
        assert response.status_code == status.HTTP_200_OK

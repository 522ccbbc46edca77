"""
Credential issuance and verification.

CredentialIssuer mints a JWT for a wallet that already has a profile and records
it in the credential store; the token is only returned once the row is written.

CredentialVerifier runs on every protected request:
1. structural check of the token (signature, issuer, expiry) via jwt_utils
2. the token must still be recorded in the store for the same wallet

Either failing makes the credential untrusted.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from walletgate.core.config import settings
from walletgate.core.errors import Unauthenticated
from walletgate.core.jwt_utils import create_access_token, verify_token
from walletgate.services.credential_store import CredentialRecord, CredentialStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Credential:
    value: str
    subject_address: str
    issued_at: int
    expires_at: int
    issuer: str


@dataclass(frozen=True)
class VerifiedIdentity:
    address: str
    credential: str
    expires_at: int


class CredentialIssuer:
    def __init__(self, store: CredentialStore):
        self.store = store

    def issue(self, address: str, now: Optional[datetime] = None) -> Credential:
        """
        Mint and record a session credential for address.

        The caller is responsible for checking that the profile exists.

        Raises:
            PersistenceError: the store write failed; no credential is returned
        """
        address = address.lower()
        now = now or datetime.now(timezone.utc)
        minted = create_access_token(address, now=now)
        claims = minted["claims"]

        self.store.insert(
            CredentialRecord(
                credential=minted["token"],
                address=address,
                expires_at=claims["exp"],
                created_at=claims["iat"],
            )
        )
        logger.info("session created for %s", address)

        return Credential(
            value=minted["token"],
            subject_address=address,
            issued_at=claims["iat"],
            expires_at=claims["exp"],
            issuer=claims.get("iss", settings.TOKEN_ISSUER),
        )


class CredentialVerifier:
    def __init__(self, store: CredentialStore):
        self.store = store

    def authenticate(self, token: Optional[str]) -> VerifiedIdentity:
        """
        Raises:
            Unauthenticated: reason "missing", "expired", "forged" or "revoked"
        """
        if not token:
            raise Unauthenticated("missing", "Authentication required - Bearer token missing")

        # structural check first, the store is not touched for expired or forged tokens
        payload = verify_token(token)
        address = payload["wallet_address"]

        if not self.store.exists(token, address):
            raise Unauthenticated("revoked", "Session has been revoked")

        return VerifiedIdentity(address=address, credential=token, expires_at=payload["exp"])

    def revoke(self, token: str) -> str:
        """Delete the credential's row (sign out) and return its wallet address."""
        identity = self.authenticate(token)
        self.store.delete(token)
        logger.info("session invalidated for %s", identity.address)
        return identity.address

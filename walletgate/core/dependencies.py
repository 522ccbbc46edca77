"""
FastAPI Authentication Dependencies
This module provides FastAPI dependency functions that can be injected into route handlers
to automatically extract and validate session credentials from the Authorization header.
Usage in endpoints:
    @router.get("/protected")
    def protected_route(identity: VerifiedIdentity = Depends(get_current_user)):
        # identity.address is the verified wallet address
        return {"user": identity.address}
Flow:
1. Client sends request with Authorization: Bearer <token> header
2. FastAPI calls get_current_user() dependency
3. extract_bearer_token() extracts token from header
4. CredentialVerifier checks the JWT (jwt_utils.py) and the session table
5. Returns the verified identity to the route handler
"""

from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from walletgate.core.errors import Unauthenticated
from walletgate.db.session import get_db
from walletgate.services.credential_store import CredentialStore
from walletgate.services.credentials import CredentialIssuer, CredentialVerifier, VerifiedIdentity
from walletgate.services.nonce_registry import NonceRegistry
from walletgate.services.profiles import ProfileDirectory


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """
    Extract the credential from an Authorization header.
    Only the "Bearer <token>" form is accepted.
    Returns None when the header is absent or not a bearer header.
    """
    if not authorization:
        return None

    authorization = authorization.strip()
    if not authorization.lower().startswith("bearer "):
        return None
    token = authorization[7:].strip()
    return token or None


def get_credential_store(db: Session = Depends(get_db)) -> CredentialStore:
    return CredentialStore(db)


def get_credential_issuer(store: CredentialStore = Depends(get_credential_store)) -> CredentialIssuer:
    return CredentialIssuer(store)


def get_credential_verifier(store: CredentialStore = Depends(get_credential_store)) -> CredentialVerifier:
    return CredentialVerifier(store)


def get_nonce_registry(db: Session = Depends(get_db)) -> NonceRegistry:
    return NonceRegistry(db)


def get_profile_directory(db: Session = Depends(get_db)) -> ProfileDirectory:
    return ProfileDirectory(db)


def get_current_user(
    authorization: Optional[str] = Header(None, alias="Authorization"),
    verifier: CredentialVerifier = Depends(get_credential_verifier),
) -> VerifiedIdentity:
    """Resolve the bearer credential to a verified identity, 401 otherwise."""
    return verifier.authenticate(extract_bearer_token(authorization))


def get_optional_user(
    authorization: Optional[str] = Header(None, alias="Authorization"),
    verifier: CredentialVerifier = Depends(get_credential_verifier),
) -> Optional[VerifiedIdentity]:
    """
    Same checks as get_current_user, but an anonymous or untrusted caller
    gets None instead of a 401.
    """
    token = extract_bearer_token(authorization)
    if token is None:
        return None
    try:
        return verifier.authenticate(token)
    except Unauthenticated:
        return None

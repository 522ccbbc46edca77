"""
JWT Token Utilities

This module handles JSON Web Token (JWT) creation and structural verification of
session credentials. After a wallet signs in, the credential issuer creates a JWT
that is used for subsequent authenticated API requests.

Flow:
1. User signs in -> create_access_token() generates JWT
2. User makes API request with JWT in Authorization header -> verify_token() validates it
3. The credential verifier then checks the token is still recorded in the session table

The JWT contains:
- wallet_address / sub: The authenticated wallet address (lower-cased)
- iat: Issued at timestamp
- exp: Expiration timestamp (configurable via SESSION_DURATION_SECONDS)
- iss: Issuer tag (TOKEN_ISSUER)
"""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt

from walletgate.core.config import settings
from walletgate.core.errors import Unauthenticated


if not settings.ENCODE_KEY:
    raise RuntimeError("ENCODE_KEY is not configured")


def create_access_token(
    wallet_address: str,
    now: Optional[datetime] = None,
    extra_claims: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Create a JWT access token for an authenticated wallet address.

    Args:
        wallet_address: The wallet address that signed in
        now: Issue time, defaults to the current UTC time
        extra_claims: Optional additional claims to include in the JWT payload

    Returns:
        The encoded token under "token" and the claims it carries under "claims"

    Raises:
        ValueError: If wallet_address is empty
    """
    if not wallet_address:
        raise ValueError("wallet_address is required")

    wallet_address = wallet_address.lower()
    now = now or datetime.now(timezone.utc)
    payload: Dict[str, Any] = {
        "wallet_address": wallet_address,
        "sub": wallet_address,
        "iss": settings.TOKEN_ISSUER,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(seconds=settings.SESSION_DURATION_SECONDS)).timestamp()),
        # unique per issuance so two sign-ins in the same second get distinct credentials
        "jti": secrets.token_urlsafe(12),
    }
    if extra_claims:
        payload.update(extra_claims)

    token = jwt.encode(payload, settings.ENCODE_KEY, algorithm=settings.ENCODE_ALGORITHM)
    return {"token": token, "claims": payload}


def verify_token(token: str) -> Dict[str, Any]:
    """
    Verify and decode a JWT token.

    Checks token signature, expiration, issuer and required payload fields.
    This is the structural half of credential verification; it never touches
    the session table.

    Args:
        token: The JWT token string from Authorization header

    Returns:
        Decoded JWT payload dictionary containing wallet_address and other claims

    Raises:
        Unauthenticated: missing, expired or forged token
    """
    if not token:
        raise Unauthenticated("missing", "Missing token")

    try:
        payload = jwt.decode(
            token,
            settings.ENCODE_KEY,
            algorithms=[settings.ENCODE_ALGORITHM],
            issuer=settings.TOKEN_ISSUER,
            options={"require": ["exp", "iat"]},
        )
    except jwt.ExpiredSignatureError:
        raise Unauthenticated("expired", "Token expired")
    except jwt.InvalidTokenError:
        raise Unauthenticated("forged", "Invalid token")

    if not payload.get("wallet_address"):
        raise Unauthenticated("forged", "Invalid token payload")

    return payload


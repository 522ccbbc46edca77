"""
Wallet Authentication Errors

Every failure the authentication core can report derives from WalletAuthError.
Each error knows the HTTP status it maps to and the message shown to the client,
so routers raise them directly and main.py renders them with one handler.

Taxonomy:
- InvalidInputError: malformed address / nonce / challenge text (400)
- Unauthenticated: missing, expired, forged or revoked credential (401)
- ProfileRequiredError: valid wallet without a completed profile (403, needsSetup)
- PersistenceError: credential store unavailable (503)
- NetworkError: client-side timeout or transport failure
"""

from typing import Any, Dict, Optional

from fastapi import status


class WalletAuthError(Exception):
    """Base class for authentication errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Authentication error"

    def __init__(self, message: Optional[str] = None, **extra: Any) -> None:
        self.message = message or self.default_message
        self.extra: Dict[str, Any] = extra
        super().__init__(self.message)

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.message}
        payload.update(self.extra)
        return payload


class InvalidInputError(WalletAuthError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid input"


class Unauthenticated(WalletAuthError):
    """Raised when a request does not carry a trusted credential.

    reason is one of: missing, expired, forged, revoked, signature, nonce
    """

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication required"

    def __init__(self, reason: str = "missing", message: Optional[str] = None) -> None:
        self.reason = reason
        super().__init__(message, authenticated=False)


class ProfileRequiredError(WalletAuthError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Profile setup required"

    def __init__(self, address: str, message: Optional[str] = None) -> None:
        self.address = address
        super().__init__(message, needsSetup=True, address=address)


class PersistenceError(WalletAuthError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Session store unavailable"


class ConflictError(WalletAuthError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Resource already exists"


class NotFoundError(WalletAuthError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class NetworkError(WalletAuthError):
    """Client side: the server could not be reached or answered unexpectedly."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Service unavailable"

    def __init__(self, message: Optional[str] = None, *, response_status: Optional[int] = None) -> None:
        self.response_status = response_status
        super().__init__(message)

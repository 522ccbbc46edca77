"""
Client session cache.

SessionCache keeps a short-lived snapshot of {authenticated, address,
profile_exists} so the client can skip a verification round-trip. Every read
enforces the TTL: an entry older than the TTL, or one that cannot be parsed,
is deleted and reported as a miss.

CredentialKeeper holds the bearer token itself. It has no TTL of its own; the
token's exp claim decides, read locally without checking the signature (the
server does that).
"""

import json
import logging
import time
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, Optional

import jwt

from walletgate.client.storage import KeyValueStorage
from walletgate.core.config import settings

logger = logging.getLogger(__name__)

CACHE_KEY = "cheshire_auth_cache"
TOKEN_KEY = "cheshire_jwt_token"


@dataclass(frozen=True)
class SessionCacheEntry:
    authenticated: bool
    address: Optional[str]
    profile_exists: bool
    cached_at: float


class SessionCache:
    def __init__(
        self,
        storage: KeyValueStorage,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.time,
        key: str = CACHE_KEY,
    ):
        self.storage = storage
        self.ttl_seconds = settings.CLIENT_CACHE_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        self.clock = clock
        self.key = key

    def read(self) -> Optional[SessionCacheEntry]:
        raw = self.storage.get(self.key)
        if raw is None:
            return None

        try:
            data = json.loads(raw)
            entry = SessionCacheEntry(
                authenticated=bool(data["authenticated"]),
                address=data.get("address"),
                profile_exists=bool(data.get("profile_exists", False)),
                cached_at=float(data["cached_at"]),
            )
        except (ValueError, TypeError, KeyError) as e:
            logger.warning("discarding unreadable auth cache: %s", e)
            self.clear()
            return None

        if self.clock() - entry.cached_at >= self.ttl_seconds:
            logger.debug("auth cache expired")
            self.clear()
            return None

        return entry

    def write(self, authenticated: bool, address: Optional[str], profile_exists: bool = False) -> SessionCacheEntry:
        entry = SessionCacheEntry(
            authenticated=authenticated,
            address=address.lower() if address else None,
            profile_exists=profile_exists,
            cached_at=self.clock(),
        )
        self.storage.set(self.key, json.dumps(asdict(entry)))
        return entry

    def clear(self) -> None:
        self.storage.remove(self.key)


class CredentialKeeper:
    def __init__(
        self,
        storage: KeyValueStorage,
        clock: Callable[[], float] = time.time,
        key: str = TOKEN_KEY,
    ):
        self.storage = storage
        self.clock = clock
        self.key = key

    @staticmethod
    def claims(token: str) -> Optional[Dict[str, Any]]:
        try:
            return jwt.decode(token, options={"verify_signature": False, "verify_exp": False})
        except jwt.InvalidTokenError:
            return None

    def is_expired(self, token: str) -> bool:
        claims = self.claims(token)
        if not claims or not claims.get("exp"):
            return True
        return claims["exp"] <= self.clock()

    def load(self) -> Optional[str]:
        """Stored token, or None (and the record dropped) if it is expired or malformed."""
        token = self.storage.get(self.key)
        if not token:
            return None
        if self.is_expired(token):
            logger.debug("stored credential expired")
            self.clear()
            return None
        return token

    def address_of(self, token: str) -> Optional[str]:
        claims = self.claims(token)
        if not claims:
            return None
        return claims.get("wallet_address")

    def peek(self) -> Optional[str]:
        """Stored token as is, expired or not."""
        return self.storage.get(self.key)

    def store(self, token: str) -> None:
        self.storage.set(self.key, token)

    def clear(self) -> None:
        self.storage.remove(self.key)

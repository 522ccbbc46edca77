"""
Nonce Registry

Every nonce handed out by GET /auth/nonce is recorded with a short expiry.
Sign-in consumes it: the row is deleted, so a second attempt with the same
signed challenge finds nothing and is rejected.
"""

import logging
import time
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from walletgate.core.config import settings
from walletgate.core.errors import PersistenceError
from walletgate.core.evm_auth import generate_nonce
from walletgate.models.auth import AuthNonce

logger = logging.getLogger(__name__)


class NonceRegistry:
    def __init__(self, db: Session, expiry_seconds: Optional[int] = None):
        self.db = db
        self.expiry_seconds = expiry_seconds or settings.NONCE_EXPIRY_SECONDS

    def issue(self, now: Optional[int] = None) -> str:
        """Generate a fresh nonce and record it."""
        nonce = generate_nonce()
        self.record(nonce, now)
        return nonce

    def record(self, nonce: str, now: Optional[int] = None) -> None:
        now = int(time.time()) if now is None else int(now)
        try:
            self.db.add(AuthNonce(nonce=nonce, created_at=now, expires_at=now + self.expiry_seconds))
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError("Failed to generate nonce") from e

    def consume(self, nonce: str, now: Optional[int] = None) -> bool:
        """
        Use up a nonce.

        Returns:
            True if the nonce was issued here, not yet used and not expired.
            The record is removed in every case where it existed.
        """
        now = int(time.time()) if now is None else int(now)
        try:
            record = self.db.query(AuthNonce).filter(AuthNonce.nonce == nonce).first()
            if record is None:
                return False
            valid = record.expires_at > now
            self.db.delete(record)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError("Failed to verify nonce") from e

        if not valid:
            logger.info("rejected expired nonce")
        return valid

    def delete_expired(self, now: Optional[int] = None) -> int:
        now = int(time.time()) if now is None else int(now)
        try:
            deleted = (
                self.db.query(AuthNonce)
                .filter(AuthNonce.expires_at <= now)
                .delete(synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError("Failed to clean up nonces") from e
        return deleted

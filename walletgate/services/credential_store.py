"""
Credential Store

Durable table of outstanding session credentials (user_sessions). It is the
source of truth for "still valid": a credential whose row is gone is revoked
no matter what its own claims say.

Rows are never updated. A refreshed session is a new row plus the deletion of
the old one.
"""

import logging
import time
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from walletgate.core.errors import PersistenceError
from walletgate.models.auth import UserSession

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CredentialRecord:
    credential: str
    address: str
    expires_at: int
    created_at: int = 0


class CredentialStore:
    """Create/read/delete access to user_sessions on one database session."""

    def __init__(self, db: Session):
        self.db = db

    def insert(self, record: CredentialRecord) -> None:
        row = UserSession(
            credential=record.credential,
            wallet_address=record.address.lower(),
            expires_at=record.expires_at,
            created_at=record.created_at or int(time.time()),
        )
        try:
            self.db.add(row)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("failed to store session for %s: %s", record.address, e)
            raise PersistenceError("Failed to store session") from e

    def exists(self, credential: str, address: str) -> bool:
        try:
            row = (
                self.db.query(UserSession.credential)
                .filter(
                    UserSession.credential == credential,
                    UserSession.wallet_address == address.lower(),
                )
                .first()
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError("Failed to look up session") from e
        return row is not None

    def get(self, credential: str) -> Optional[CredentialRecord]:
        try:
            row = self.db.query(UserSession).filter(UserSession.credential == credential).first()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError("Failed to look up session") from e
        if row is None:
            return None
        return CredentialRecord(
            credential=row.credential,
            address=row.wallet_address,
            expires_at=row.expires_at,
            created_at=row.created_at,
        )

    def delete(self, credential: str) -> bool:
        """Delete one credential. Deleting an unknown credential is a no-op."""
        try:
            deleted = (
                self.db.query(UserSession)
                .filter(UserSession.credential == credential)
                .delete(synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError("Failed to delete session") from e
        return deleted > 0

    def delete_expired(self, now: Optional[int] = None) -> int:
        """Delete every credential with expires_at <= now and return how many went."""
        now = int(time.time()) if now is None else int(now)
        try:
            deleted = (
                self.db.query(UserSession)
                .filter(UserSession.expires_at <= now)
                .delete(synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError("Failed to clean up sessions") from e
        return deleted

"""
Profile directory: the users/organizations tables as seen by the auth core.

The authentication core only needs exists(address); the rest backs the
profile setup endpoints. Profiles are created once and never edited.
"""

import logging
import re
from typing import List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from walletgate.core.errors import ConflictError, InvalidInputError, PersistenceError
from walletgate.core.evm_auth import normalize_address
from walletgate.models.users import Organization, User

logger = logging.getLogger(__name__)

UNIQUE_ID_PATTERN = re.compile(r"^[a-zA-Z0-9_]{1,16}$")


def validate_unique_id(unique_id: str) -> str:
    if not unique_id or not UNIQUE_ID_PATTERN.match(unique_id):
        raise InvalidInputError(
            "Invalid unique_id format. Use only letters, numbers, and underscores (max 16 characters)"
        )
    return unique_id.lower()


class ProfileDirectory:
    def __init__(self, db: Session):
        self.db = db

    def exists(self, address: str) -> bool:
        address = normalize_address(address)
        try:
            row = self.db.query(User.wallet_address).filter(User.wallet_address == address).first()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError("Failed to check user status") from e
        return row is not None

    def get(self, address: str) -> Optional[User]:
        address = normalize_address(address)
        return self.db.query(User).filter(User.wallet_address == address).first()

    def is_unique_id_available(self, unique_id: str) -> bool:
        unique_id = validate_unique_id(unique_id)
        return self.db.query(User.unique_id).filter(User.unique_id == unique_id).first() is None

    def organization_exists(self, organization_id: str) -> bool:
        organization_id = (organization_id or "").strip().lower()
        if not organization_id:
            raise InvalidInputError("Organization ID is required")
        row = (
            self.db.query(Organization.organization_id)
            .filter(Organization.organization_id == organization_id)
            .first()
        )
        return row is not None

    def list_organizations(self) -> List[Organization]:
        return self.db.query(Organization).order_by(Organization.organization_name).all()

    def create(
        self,
        address: str,
        unique_id: str,
        first_name: str,
        last_name: str,
        organization_id: Optional[str] = None,
    ) -> User:
        address = normalize_address(address)
        unique_id = validate_unique_id(unique_id)
        first_name = (first_name or "").strip()
        last_name = (last_name or "").strip()
        if not first_name or not last_name:
            raise InvalidInputError("Missing required fields: unique_id, first_name, last_name")

        if self.exists(address):
            raise ConflictError("User profile already exists for this wallet address")
        if not self.is_unique_id_available(unique_id):
            raise ConflictError("Unique ID is already taken")
        if organization_id:
            organization_id = organization_id.strip().lower()
            if not self.organization_exists(organization_id):
                raise InvalidInputError("Organization does not exist")

        user = User(
            wallet_address=address,
            unique_id=unique_id,
            first_name=first_name,
            last_name=last_name,
            organization_id=organization_id or None,
        )
        try:
            self.db.add(user)
            self.db.commit()
        except IntegrityError as e:
            # lost a race against a concurrent create
            self.db.rollback()
            raise ConflictError("User profile already exists") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError("Failed to create user profile") from e

        self.db.refresh(user)
        logger.info("user created: %s (%s)", user.unique_id, user.wallet_address)
        return user

from sqlalchemy import Column, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from walletgate.db.base import Base


class Organization(Base):
    """Model for organizations table
    Example:
    {
        "organization_id": "bilgi_university",
        "organization_name": "Bilgi University"
    }
    """

    __tablename__ = "organizations"

    organization_id = Column(String(64), primary_key=True)
    organization_name = Column(Text, nullable=False)


class User(Base):
    """Model for users table, one immutable profile per wallet
    Example:
    {
        "wallet_address": "0x5aaeb6053f3e94c9b9a09f33669435e7ef1beaed",
        "unique_id": "alice123",
        "first_name": "Alice",
        "last_name": "Liddell",
        "organization_id": "bilgi_university",
        "created_at": "2024-01-01T12:00:00"
    }
    """

    __tablename__ = "users"

    wallet_address = Column(String(42), primary_key=True)
    unique_id = Column(String(16), nullable=False, unique=True)
    first_name = Column(Text, nullable=False)
    last_name = Column(Text, nullable=False)
    organization_id = Column(
        String(64), ForeignKey("organizations.organization_id"), nullable=True
    )
    created_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    organization = relationship("Organization", lazy="joined")

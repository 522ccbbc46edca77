from sqlalchemy import BigInteger, Column, ForeignKey, String, Text

from walletgate.db.base import Base


class AuthNonce(Base):
    """Model for issued wallet authentication nonces, deleted once consumed."""

    __tablename__ = "auth_nonce"

    nonce = Column(String(128), primary_key=True)
    created_at = Column(BigInteger, nullable=False)
    expires_at = Column(BigInteger, nullable=False, index=True)


class UserSession(Base):
    """Model for outstanding session credentials.

    A credential is only trusted while its row exists; deleting the row revokes it.
    """

    __tablename__ = "user_sessions"

    credential = Column(Text, primary_key=True)
    wallet_address = Column(
        String(42),
        ForeignKey("users.wallet_address", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    expires_at = Column(BigInteger, nullable=False, index=True)
    created_at = Column(BigInteger, nullable=False)

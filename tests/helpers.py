import asyncio
import os

# settings are read at import time, point them at the test database first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENCODE_KEY"] = "walletgate-test-encode-key-0123456789abcdef"

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from typing import Generator

from walletgate.client.wallet import LocalAccountWallet
from walletgate.core.challenge import build_challenge
from walletgate.db.session import enable_sqlite_foreign_keys
from walletgate.models.users import Organization, User
from walletgate.services.session_sweeper import SessionCleanupSweeper


# Create in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite://"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
enable_sqlite_foreign_keys(engine)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

ALICE_KEY = "0x" + "11" * 32
BOB_KEY = "0x" + "22" * 32


class InlineSweeper(SessionCleanupSweeper):
    """Sweeps once, synchronously, instead of scheduling a background task"""

    def start(self) -> None:
        self.run_once()


def override_get_db() -> Generator:
    """Override database dependency for testing"""
    db = TestingSessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def add_profile(db: Session, address: str, unique_id: str = "alice", organization_id: str | None = None) -> User:
    user = User(
        wallet_address=address.lower(),
        unique_id=unique_id,
        first_name="Test",
        last_name="User",
        organization_id=organization_id,
    )
    db.add(user)
    db.commit()
    return user


def add_organization(db: Session, organization_id: str = "bilgi_university", name: str = "Bilgi University") -> Organization:
    org = Organization(organization_id=organization_id, organization_name=name)
    db.add(org)
    db.commit()
    return org


def sign_text(wallet: LocalAccountWallet, text: str) -> str:
    return asyncio.run(wallet.sign_message(text))


def signed_challenge(client: TestClient, wallet: LocalAccountWallet) -> dict:
    """Fetch a nonce and return the sign-in body for wallet"""
    nonce = client.get("/api/auth/nonce").json()["nonce"]
    challenge = build_challenge(wallet.address, wallet.chain_id, nonce)
    return {"message": challenge.text, "signature": sign_text(wallet, challenge.text)}


def sign_in(client: TestClient, wallet: LocalAccountWallet) -> str:
    response = client.post("/api/auth/signin", json=signed_challenge(client, wallet))
    assert response.status_code == 201, response.text
    return response.json()["token"]

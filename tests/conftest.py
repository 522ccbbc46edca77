import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session
from typing import Generator

from tests.helpers import (
    ALICE_KEY,
    BOB_KEY,
    InlineSweeper,
    TestingSessionLocal,
    engine,
    override_get_db,
)

import main
from main import app
from walletgate.client.wallet import LocalAccountWallet
from walletgate.db.base import Base
from walletgate.db.session import get_db


@pytest.fixture(autouse=True)
def reset_database():
    """Fresh tables for every test"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db_session() -> Generator[Session, None, None]:
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def override_db():
    """Route the app's database dependency to the test engine"""
    app.dependency_overrides[get_db] = override_get_db
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def client(override_db, monkeypatch) -> TestClient:
    """Create a test client for the FastAPI application"""
    # the lifespan creates tables and starts the sweeper on the module engine
    monkeypatch.setattr(main, "engine", engine)
    monkeypatch.setattr(main, "SessionLocal", TestingSessionLocal)
    monkeypatch.setattr(main, "SessionCleanupSweeper", InlineSweeper)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def alice() -> LocalAccountWallet:
    return LocalAccountWallet(private_key=ALICE_KEY)


@pytest.fixture
def bob() -> LocalAccountWallet:
    return LocalAccountWallet(private_key=BOB_KEY)

import asyncio
from unittest.mock import Mock

from sqlalchemy.orm import Session

from walletgate.services.credential_store import CredentialRecord, CredentialStore
from walletgate.services.nonce_registry import NonceRegistry
from walletgate.services.session_sweeper import SessionCleanupSweeper, SweepResult
from tests.helpers import TestingSessionLocal, add_profile


class TestSessionCleanupSweeper:
    """Test cases for the periodic cleanup of sessions and nonces"""

    def test_run_once(self, db_session, alice):
        add_profile(db_session, alice.address)
        store = CredentialStore(db_session)
        store.insert(CredentialRecord("expired", alice.address, expires_at=1000))
        store.insert(CredentialRecord("live", alice.address, expires_at=5000))
        NonceRegistry(db_session, expiry_seconds=300).record("stalenonce", now=100)

        sweeper = SessionCleanupSweeper(TestingSessionLocal, interval_seconds=60, clock=lambda: 2000)

        assert sweeper.run_once() == SweepResult(sessions=1, nonces=1)
        assert sweeper.run_once() == SweepResult(sessions=0, nonces=0)
        assert store.get("live") is not None

    def test_failure_is_logged_not_raised(self, caplog):
        broken = Mock(spec=Session)
        broken.query.side_effect = RuntimeError("database is gone")

        sweeper = SessionCleanupSweeper(lambda: broken, interval_seconds=60)

        assert sweeper.run_once() is None
        broken.close.assert_called_once()
        assert "session cleanup failed" in caplog.text

    def test_start_and_stop(self):
        calls = []

        class CountingSweeper(SessionCleanupSweeper):
            def run_once(self):
                calls.append(1)
                return SweepResult()

        async def scenario():
            sweeper = CountingSweeper(TestingSessionLocal, interval_seconds=0.01)
            sweeper.start()
            assert sweeper.running
            await asyncio.sleep(0.1)
            await sweeper.stop()
            return sweeper

        sweeper = asyncio.run(scenario())

        assert not sweeper.running
        assert len(calls) >= 2

"""
Session cleanup sweeper.

Runs once when the API starts and then every SESSION_CLEANUP_INTERVAL_SECONDS,
deleting expired credentials and nonces. Expired credentials are already
rejected by the verifier, so a missed sweep only costs table space; failures
are logged and retried on the next tick.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from sqlalchemy.orm import Session

from walletgate.core.config import settings
from walletgate.services.credential_store import CredentialStore
from walletgate.services.nonce_registry import NonceRegistry

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    sessions: int = 0
    nonces: int = 0


class SessionCleanupSweeper:
    def __init__(
        self,
        session_factory: Callable[[], Session],
        interval_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.session_factory = session_factory
        self.interval_seconds = interval_seconds or settings.SESSION_CLEANUP_INTERVAL_SECONDS
        self.clock = clock
        self._task: Optional[asyncio.Task] = None

    def run_once(self) -> Optional[SweepResult]:
        """One sweep. Returns None when it failed."""
        now = int(self.clock())
        db = self.session_factory()
        try:
            result = SweepResult(
                sessions=CredentialStore(db).delete_expired(now),
                nonces=NonceRegistry(db).delete_expired(now),
            )
        except Exception:
            logger.exception("session cleanup failed, retrying next interval")
            return None
        finally:
            db.close()

        logger.info("session cleanup removed %d sessions, %d nonces", result.sessions, result.nonces)
        return result

    async def _loop(self) -> None:
        loop = asyncio.get_running_loop()
        while True:
            await loop.run_in_executor(None, self.run_once)
            await asyncio.sleep(self.interval_seconds)

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._loop())
            logger.info("session cleanup sweeper started (every %ss)", self.interval_seconds)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

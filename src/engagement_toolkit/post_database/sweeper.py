"""
Optional background expiry sweep.

Lazy resolution in the Post Store already guarantees that no caller ever sees
an expired post as Live. 'ExpirySweeper' only persists the Expired status in
bulk so that stored records match what readers would resolve anyway.
"""

import asyncio
import contextlib

from loguru import logger

from engagement_toolkit.errors import StorageFailureError
from engagement_toolkit.post_database.data_models.post import PostDatabase
from engagement_toolkit.settings import SWEEP_INTERVAL_SECONDS
from engagement_toolkit.utils.time import Clock, SystemClock


class ExpirySweeper:
    def __init__(
        self,
        post_db: PostDatabase,
        clock: Clock | None = None,
        interval_seconds: float = SWEEP_INTERVAL_SECONDS,
    ) -> None:
        self.post_db = post_db
        self.clock = clock or SystemClock()
        self.interval_seconds = interval_seconds
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> int:
        expired = await self.post_db.expire_posts(self.clock.now())
        if expired:
            logger.info(f"Expiry sweep marked {expired} posts as expired")
        return expired

    async def _run(self) -> None:
        while True:
            try:
                await self.run_once()
            except StorageFailureError as exc:
                logger.warning(f"Expiry sweep failed, retrying in {self.interval_seconds}s: {exc}")
            except Exception:
                logger.exception(f"Unexpected error in expiry sweep, retrying in {self.interval_seconds}s")
            await asyncio.sleep(self.interval_seconds)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run())
        logger.info(f"Expiry sweeper started (every {self.interval_seconds}s)")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("Expiry sweeper stopped")

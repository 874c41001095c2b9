"""
Per-post exclusive sections.

'PostLocks' hands out one 'asyncio.Lock' per post id and forgets it once no
coroutine holds or waits for it, so the registry only grows with the number
of posts under contention. Waiting is bounded: a caller that cannot enter the
section within 'timeout' seconds gets a 'ConflictError' and may retry.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from loguru import logger

from engagement_toolkit.errors import ConflictError
from engagement_toolkit.settings import LOCK_TIMEOUT_SECONDS


class PostLocks:
    def __init__(self, timeout: float = LOCK_TIMEOUT_SECONDS) -> None:
        self.timeout = timeout
        self._locks: dict[str, asyncio.Lock] = {}
        self._holders: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, post_id: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(post_id, asyncio.Lock())
        self._holders[post_id] = self._holders.get(post_id, 0) + 1
        try:
            try:
                async with asyncio.timeout(self.timeout):
                    await lock.acquire()
            except TimeoutError:
                logger.warning(f"Timed out after {self.timeout}s waiting for post {post_id}")
                raise ConflictError(f"Post {post_id} is busy, retry later") from None
            try:
                yield
            finally:
                lock.release()
        finally:
            self._holders[post_id] -= 1
            if not self._holders[post_id]:
                del self._holders[post_id]
                del self._locks[post_id]

import asyncio
import unittest

from loguru import logger

from engagement_toolkit.errors import StorageFailureError
from engagement_toolkit.post_database.data_models.post import Post, PostStatus, Topic
from engagement_toolkit.post_database.in_memory.post import InMemoryPostDatabase
from engagement_toolkit.post_database.sweeper import ExpirySweeper
from engagement_toolkit.utils.time import FakeClock, minutes_to_milliseconds

START = 1_700_000_000_000


class _UnavailablePostDatabase(InMemoryPostDatabase):
    def __init__(self, clock: FakeClock, error: Exception) -> None:
        super().__init__(clock)
        self.error = error
        self.calls = 0

    async def expire_posts(self, now: int) -> int:
        self.calls += 1
        raise self.error


class ExpirySweeperTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.clock = FakeClock(START)
        self.posts = InMemoryPostDatabase(self.clock)
        for post_id, minutes in (("a", 1), ("b", 2), ("c", 60)):
            await self.posts.create_post(
                Post(
                    id=post_id,
                    title=f"Post {post_id}",
                    topics=[Topic.HEALTH],
                    message="Drink more water every day.",
                    owner_id="owner",
                    create_timestamp=START,
                    update_timestamp=START,
                    expiration_timestamp=START + minutes_to_milliseconds(minutes),
                )
            )

    async def test_run_once_marks_expired_posts(self):
        sweeper = ExpirySweeper(self.posts, self.clock, interval_seconds=60)
        self.assertEqual(await sweeper.run_once(), 0)

        self.clock.advance(minutes=3)
        self.assertEqual(await sweeper.run_once(), 2)
        self.assertEqual(await sweeper.run_once(), 0)
        statuses = {p.id: p.status for p in await self.posts.get_posts()}
        self.assertEqual(statuses, {"a": PostStatus.EXPIRED, "b": PostStatus.EXPIRED, "c": PostStatus.LIVE})

    async def test_start_and_stop(self):
        sweeper = ExpirySweeper(self.posts, self.clock, interval_seconds=0.01)
        self.clock.advance(minutes=3)
        sweeper.start()
        sweeper.start()
        self.assertTrue(sweeper.running)
        await asyncio.sleep(0.03)
        await sweeper.stop()
        self.assertFalse(sweeper.running)
        self.assertEqual(await self.posts.expire_posts(self.clock.now()), 0)

    async def test_storage_failures_do_not_stop_the_loop(self):
        posts = _UnavailablePostDatabase(self.clock, StorageFailureError("store offline"))
        sweeper = ExpirySweeper(posts, self.clock, interval_seconds=0.01)
        sweeper.start()
        await asyncio.sleep(0.05)
        self.assertTrue(sweeper.running)
        await sweeper.stop()
        self.assertGreater(posts.calls, 1)

    async def test_unexpected_errors_are_logged_and_do_not_stop_the_loop(self):
        posts = _UnavailablePostDatabase(self.clock, RuntimeError("backend hiccup"))
        messages: list[str] = []
        sink_id = logger.add(messages.append, level="ERROR")
        try:
            sweeper = ExpirySweeper(posts, self.clock, interval_seconds=0.01)
            sweeper.start()
            await asyncio.sleep(0.05)
            self.assertTrue(sweeper.running)
            await sweeper.stop()
        finally:
            logger.remove(sink_id)
        self.assertGreater(posts.calls, 1)
        self.assertTrue(any("backend hiccup" in message for message in messages))


if __name__ == "__main__":  # pragma: no cover
    unittest.main()

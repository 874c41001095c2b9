import asyncio
import unittest

from engagement_toolkit.errors import ConflictError
from engagement_toolkit.post_database.locks import PostLocks
from engagement_toolkit.utils.time import FakeClock, MILLISECONDS_PER_MINUTE


class PostLocksTests(unittest.IsolatedAsyncioTestCase):
    async def test_same_post_is_serialized(self):
        locks = PostLocks(timeout=1.0)
        events: list[str] = []

        async def worker(name: str) -> None:
            async with locks.hold("p1"):
                events.append(f"{name}-in")
                await asyncio.sleep(0.01)
                events.append(f"{name}-out")

        await asyncio.gather(worker("a"), worker("b"))
        self.assertEqual(events, ["a-in", "a-out", "b-in", "b-out"])

    async def test_different_posts_do_not_block(self):
        locks = PostLocks(timeout=0.05)
        async with locks.hold("p1"):
            async with locks.hold("p2"):
                self.assertEqual(len(locks), 2)
        self.assertEqual(len(locks), 0)

    async def test_timeout_raises_conflict_and_cleans_up(self):
        locks = PostLocks(timeout=0.01)
        async with locks.hold("p1"):
            with self.assertRaises(ConflictError):
                async with locks.hold("p1"):
                    pass
            self.assertEqual(len(locks), 1)
        self.assertEqual(len(locks), 0)


class FakeClockTests(unittest.TestCase):
    def test_advance_and_set(self):
        clock = FakeClock(1_000)
        self.assertEqual(clock.now(), 1_000)
        self.assertEqual(clock.advance(milliseconds=5, minutes=1), 1_005 + MILLISECONDS_PER_MINUTE)
        clock.set(42)
        self.assertEqual(clock.now(), 42)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()

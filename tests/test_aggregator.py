import unittest

from engagement_toolkit.errors import NotFoundError
from engagement_toolkit.post_database.aggregator import Aggregator
from engagement_toolkit.post_database.data_models.post import Post, PostStatus, ReactionDelta, Topic
from engagement_toolkit.post_database.in_memory.post import InMemoryPostDatabase
from engagement_toolkit.utils.time import FakeClock, minutes_to_milliseconds

START = 1_700_000_000_000


class AggregatorTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.clock = FakeClock(START)
        self.posts = InMemoryPostDatabase(self.clock)
        self.aggregator = Aggregator(self.posts)

    async def _create(self, post_id: str, topics: list[Topic], minutes: int = 60, likes: int = 0) -> Post:
        now = self.clock.now()
        await self.posts.create_post(
            Post(
                id=post_id,
                title=f"Post {post_id}",
                topics=topics,
                message="Some message body for the post.",
                owner_id="owner",
                create_timestamp=now,
                update_timestamp=now,
                expiration_timestamp=now + minutes_to_milliseconds(minutes),
            )
        )
        for i in range(likes):
            user = f"{post_id}-fan{i}"
            await self.posts.apply_reaction_delta(post_id, user, ReactionDelta(add_likes=frozenset({user})))
        self.clock.advance(milliseconds=1)
        return await self.posts.get_post_by_id(post_id)

    async def test_most_active_picks_highest_total(self):
        await self._create("a", [Topic.TECH], likes=2)
        await self._create("b", [Topic.TECH, Topic.HEALTH], likes=5)
        await self._create("c", [Topic.TECH], likes=5)

        post, count = await self.aggregator.most_active(Topic.TECH)
        self.assertEqual(count, 5)
        self.assertIn(post.id, {"b", "c"})

    async def test_most_active_counts_dislikes(self):
        await self._create("a", [Topic.HEALTH], likes=1)
        await self._create("b", [Topic.HEALTH])
        for user in ("x", "y"):
            await self.posts.apply_reaction_delta("b", user, ReactionDelta(add_dislikes=frozenset({user})))

        post, count = await self.aggregator.most_active(Topic.HEALTH)
        self.assertEqual((post.id, count), ("b", 2))

    async def test_most_active_ignores_expired_posts(self):
        await self._create("old", [Topic.POLITICS], minutes=1, likes=9)
        await self._create("new", [Topic.POLITICS], minutes=60, likes=1)
        self.clock.advance(minutes=2)

        post, count = await self.aggregator.most_active(Topic.POLITICS)
        self.assertEqual((post.id, count), ("new", 1))

    async def test_most_active_without_live_posts_raises(self):
        await self._create("a", [Topic.SPORT], minutes=1)
        self.clock.advance(minutes=2)
        with self.assertRaises(NotFoundError):
            await self.aggregator.most_active(Topic.SPORT)
        with self.assertRaises(NotFoundError):
            await self.aggregator.most_active(Topic.TECH)

    async def test_expired_filters_by_topic_most_recent_first(self):
        await self._create("s1", [Topic.SPORT], minutes=1)
        await self._create("s3", [Topic.SPORT], minutes=3)
        await self._create("s2", [Topic.SPORT, Topic.TECH], minutes=2)
        await self._create("t1", [Topic.TECH], minutes=1)
        await self._create("live", [Topic.SPORT], minutes=60)
        self.clock.advance(minutes=5)

        expired = await self.aggregator.expired(Topic.SPORT)
        self.assertEqual([p.id for p in expired], ["s3", "s2", "s1"])
        self.assertTrue(all(p.status == PostStatus.EXPIRED for p in expired))

        every_topic = await self.aggregator.expired()
        self.assertEqual({p.id for p in every_topic}, {"s1", "s2", "s3", "t1"})


if __name__ == "__main__":  # pragma: no cover
    unittest.main()

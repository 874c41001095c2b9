"""
Read-only engagement queries over Post Store snapshots.

'most_active' breaks ties on 'total_interactions' by creation order: the
earliest-created post wins, then the smallest id. The order does not depend
on how the store happens to enumerate posts.
"""

from engagement_toolkit.errors import NotFoundError
from engagement_toolkit.post_database.data_models.post import Post, PostDatabase, PostStatus, Topic


class Aggregator:
    def __init__(self, post_db: PostDatabase) -> None:
        self.post_db = post_db

    async def most_active(self, topic: Topic) -> tuple[Post, int]:
        posts = await self.post_db.get_posts(topic=topic, status=PostStatus.LIVE)
        if not posts:
            raise NotFoundError(f"No active posts found for topic: {topic}")
        # max() keeps the first maximal element, so sort by the tie-break first.
        candidates = sorted(posts, key=lambda p: (p.create_timestamp, p.id))
        winner = max(candidates, key=lambda p: p.total_interactions)
        return winner, winner.total_interactions

    async def expired(self, topic: Topic | None = None) -> list[Post]:
        posts = await self.post_db.get_posts(topic=topic, status=PostStatus.EXPIRED)
        return sorted(posts, key=lambda p: p.expiration_timestamp, reverse=True)

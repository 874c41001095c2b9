"""
In-memory 'PostDatabase'.

Posts live in a dict keyed by id. No method awaits between reading and
writing a post, so each call is atomic with respect to other coroutines on
the event loop; 'expected_version' still guards callers that read a post in
one call and write it in a later one.
"""

from loguru import logger

from engagement_toolkit.errors import ConflictError, ExpiredError, ForbiddenError, NotFoundError, ValidationError
from engagement_toolkit.post_database.data_models.post import (
    Comment,
    Post,
    PostDatabase,
    PostStatus,
    ReactionDelta,
    Topic,
    resolve_status,
)
from engagement_toolkit.utils.time import Clock, SystemClock


class InMemoryPostDatabase(PostDatabase):
    def __init__(self, clock: Clock | None = None) -> None:
        self.clock = clock or SystemClock()
        self._posts: dict[str, Post] = {}

    def _resolve(self, post: Post, now: int) -> Post:
        """Persist the resolved status of a stored post and return the stored instance."""
        status = resolve_status(post, now)
        if status != post.status:
            post = post.model_copy(update={"status": status, "update_timestamp": now})
            self._posts[post.id] = post
            logger.debug(f"Post {post.id} expired at {post.expiration_timestamp}")
        return post

    def _get(self, post_id: str, now: int) -> Post:
        post = self._posts.get(post_id)
        if post is None:
            raise NotFoundError(f"Post with id {post_id} not found")
        return self._resolve(post, now)

    def _commit(self, post: Post, now: int, **updates: object) -> Post:
        updated = post.model_copy(update={**updates, "update_timestamp": now, "version": post.version + 1})
        self._posts[updated.id] = updated
        return updated.model_copy(deep=True)

    async def create_post(self, post: Post) -> Post:
        if post.id in self._posts:
            raise ConflictError(f"Post with id {post.id} already exists")
        self._posts[post.id] = post.model_copy(deep=True)
        return post.model_copy(deep=True)

    async def get_post_by_id(self, post_id: str) -> Post:
        return self._get(post_id, self.clock.now()).model_copy(deep=True)

    async def get_posts(self, topic: Topic | None = None, status: PostStatus | None = None) -> list[Post]:
        now = self.clock.now()
        posts = [self._resolve(post, now) for post in list(self._posts.values())]
        if topic is not None:
            posts = [post for post in posts if topic in post.topics]
        if status is not None:
            posts = [post for post in posts if post.status == status]
        return [post.model_copy(deep=True) for post in sorted(posts, key=lambda p: p.create_timestamp, reverse=True)]

    async def apply_reaction_delta(
        self,
        post_id: str,
        actor_id: str,
        delta: ReactionDelta,
        expected_version: int | None = None,
        enforce_live: bool = True,
    ) -> Post:
        now = self.clock.now()
        post = self._get(post_id, now)
        if enforce_live and post.status == PostStatus.EXPIRED:
            raise ExpiredError(f"Post {post_id} has expired")
        if post.owner_id == actor_id:
            raise ForbiddenError("Cannot react to your own post")
        if delta.actors() - {actor_id}:
            raise ValidationError(f"Reaction delta for {actor_id} touches other users")
        if expected_version is not None and post.version != expected_version:
            logger.warning(f"Stale write on post {post_id}: expected version {expected_version}, found {post.version}")
            raise ConflictError(f"Post {post_id} was modified concurrently")

        likes = (post.likes - delta.remove_likes) | delta.add_likes
        dislikes = (post.dislikes - delta.remove_dislikes) | delta.add_dislikes
        if likes & dislikes:
            raise ValidationError(f"Reaction delta for {actor_id} would both like and dislike post {post_id}")
        return self._commit(post, now, likes=likes, dislikes=dislikes)

    async def append_comment(self, post_id: str, comment: Comment) -> Post:
        now = self.clock.now()
        post = self._get(post_id, now)
        if post.status == PostStatus.EXPIRED:
            raise ExpiredError(f"Post {post_id} has expired")
        return self._commit(post, now, comments=[*post.comments, comment])

    async def remove_comment(self, post_id: str, comment_id: str) -> Post:
        now = self.clock.now()
        post = self._get(post_id, now)
        comments = [comment for comment in post.comments if comment.id != comment_id]
        if len(comments) == len(post.comments):
            raise NotFoundError(f"Comment with id {comment_id} not found on post {post_id}")
        return self._commit(post, now, comments=comments)

    async def expire_posts(self, now: int) -> int:
        expired = 0
        for post in list(self._posts.values()):
            if post.status == PostStatus.LIVE and self._resolve(post, now).status == PostStatus.EXPIRED:
                expired += 1
        return expired

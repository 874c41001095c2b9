"""
Post data model and storage interface.

A post is live until its expiration instant and expired forever after. The
status is never trusted as stored: 'resolve_status' derives it from the
expiration instant and the current time, and every 'PostDatabase'
implementation runs it before returning or mutating a post. Persisting the
resolved value is an optimisation, not a source of truth.

Like and dislike membership is changed only through 'ReactionDelta', a set of
explicit additions and removals applied at the store boundary, so the store
can check 'likes ∩ dislikes = ∅' and the owner exclusion on every write.

Concrete implementations: 'InMemoryPostDatabase'.
"""

from abc import ABC, abstractmethod
from enum import StrEnum
from typing import Annotated

from pydantic import BaseModel, Field, StringConstraints, computed_field, field_validator, model_validator


class Topic(StrEnum):
    POLITICS = "Politics"
    HEALTH = "Health"
    SPORT = "Sport"
    TECH = "Tech"


class PostStatus(StrEnum):
    LIVE = "Live"
    EXPIRED = "Expired"


class ReactionState(StrEnum):
    """A single user's reaction to a post."""

    NONE = "none"
    LIKED = "liked"
    DISLIKED = "disliked"


Title = Annotated[str, StringConstraints(strip_whitespace=True, min_length=3, max_length=200)]
Body = Annotated[str, StringConstraints(strip_whitespace=True, min_length=10, max_length=5000)]
CommentText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=1000)]


class Comment(BaseModel):
    id: str
    user_id: str
    text: CommentText
    create_timestamp: int


class Post(BaseModel):
    """
    A time-bounded post and its engagement state.

    'version' is bumped by the store on every committed mutation; writers pass
    the version they read as 'expected_version' to detect a concurrent change.
    """

    id: str
    title: Title
    topics: list[Topic] = Field(min_length=1)
    message: Body
    owner_id: str
    create_timestamp: int
    update_timestamp: int
    expiration_timestamp: int
    status: PostStatus = PostStatus.LIVE
    likes: set[str] = Field(default_factory=set)
    dislikes: set[str] = Field(default_factory=set)
    comments: list[Comment] = Field(default_factory=list)
    version: int = 0

    @field_validator("topics")
    @classmethod
    def _unique_topics(cls, topics: list[Topic]) -> list[Topic]:
        return list(dict.fromkeys(topics))

    @model_validator(mode="after")
    def _check_membership(self) -> "Post":
        if self.likes & self.dislikes:
            raise ValueError("a user cannot both like and dislike a post")
        if self.owner_id in self.likes or self.owner_id in self.dislikes:
            raise ValueError("the owner cannot react to their own post")
        return self

    @computed_field  # type: ignore[prop-decorator]
    @property
    def likes_count(self) -> int:
        return len(self.likes)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def dislikes_count(self) -> int:
        return len(self.dislikes)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def comments_count(self) -> int:
        return len(self.comments)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_interactions(self) -> int:
        return self.likes_count + self.dislikes_count

    def time_left_at(self, now: int) -> int:
        return max(0, self.expiration_timestamp - now)

    def reaction_of(self, user_id: str) -> ReactionState:
        if user_id in self.likes:
            return ReactionState.LIKED
        if user_id in self.dislikes:
            return ReactionState.DISLIKED
        return ReactionState.NONE


def resolve_status(post: Post, now: int) -> PostStatus:
    """Return the lifecycle status of 'post' at 'now'. Expired never reverts to Live."""
    if post.status == PostStatus.EXPIRED or now > post.expiration_timestamp:
        return PostStatus.EXPIRED
    return PostStatus.LIVE


class ReactionDelta(BaseModel):
    """Membership changes for a single actor, applied removals first."""

    add_likes: frozenset[str] = frozenset()
    remove_likes: frozenset[str] = frozenset()
    add_dislikes: frozenset[str] = frozenset()
    remove_dislikes: frozenset[str] = frozenset()

    def inverted(self) -> "ReactionDelta":
        return ReactionDelta(
            add_likes=self.remove_likes,
            remove_likes=self.add_likes,
            add_dislikes=self.remove_dislikes,
            remove_dislikes=self.add_dislikes,
        )

    def actors(self) -> frozenset[str]:
        return self.add_likes | self.remove_likes | self.add_dislikes | self.remove_dislikes


class PostDatabase(ABC):
    """
    Abstract repository for 'Post' records.

    Implementations own a 'Clock' and resolve the status of every post they
    return or mutate. Reads return copies; callers never hold a reference to
    stored state.
    """

    @abstractmethod
    async def create_post(self, post: Post) -> Post:
        pass

    @abstractmethod
    async def get_post_by_id(self, post_id: str) -> Post:
        """Raise 'NotFoundError' if no post has 'post_id'."""
        pass

    @abstractmethod
    async def get_posts(self, topic: Topic | None = None, status: PostStatus | None = None) -> list[Post]:
        """Return matching posts, newest first. 'status' is compared after resolution."""
        pass

    @abstractmethod
    async def apply_reaction_delta(
        self,
        post_id: str,
        actor_id: str,
        delta: ReactionDelta,
        expected_version: int | None = None,
        enforce_live: bool = True,
    ) -> Post:
        """Apply 'delta' atomically and return the updated post.

        Raises 'ForbiddenError' if 'actor_id' owns the post, 'ExpiredError' if the
        post has expired and 'enforce_live' is set, and 'ConflictError' if
        'expected_version' no longer matches. Raises 'ValidationError' if 'delta'
        touches users other than 'actor_id' or would leave a user in both sets.
        """
        pass

    @abstractmethod
    async def append_comment(self, post_id: str, comment: Comment) -> Post:
        """Append 'comment'. Raises 'ExpiredError' if the post has expired."""
        pass

    @abstractmethod
    async def remove_comment(self, post_id: str, comment_id: str) -> Post:
        pass

    @abstractmethod
    async def expire_posts(self, now: int) -> int:
        """Persist 'Expired' on every live post past its expiration and return how many changed."""
        pass

"""
Engagement toolkit controller (Facade).

'EngagementController' is the single entry point for the request layer. It
validates raw input, then delegates to three collaborators built on the same
pair of pluggable repositories:

    'ReactionEngine' - likes, dislikes and comments (Post Store + Ledger writes)
    'Aggregator'     - most-active and expired listings (read-only)
    the repositories themselves for plain reads and post creation

Input validation failures surface as the toolkit's 'ValidationError' with one
'{field, message}' entry per offending field; every other failure is one of
the errors in 'engagement_toolkit.errors' and propagates unchanged.

'ClientPost' extends 'Post' with 'time_left', which depends on the current time
and is therefore not stored on the post record.
"""

from typing import Any, TypeVar

from loguru import logger
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from engagement_toolkit.errors import ValidationError
from engagement_toolkit.post_database.aggregator import Aggregator
from engagement_toolkit.post_database.data_models.interaction import (
    Interaction,
    InteractionDatabase,
    InteractionMetadata,
)
from engagement_toolkit.post_database.data_models.post import (
    Body,
    Comment,
    CommentText,
    Post,
    PostDatabase,
    PostStatus,
    ReactionState,
    Title,
    Topic,
)
from engagement_toolkit.post_database.locks import PostLocks
from engagement_toolkit.post_database.reaction_engine import ReactionEngine, ReactionOutcome
from engagement_toolkit.settings import HISTORY_LIMIT, LOCK_TIMEOUT_SECONDS
from engagement_toolkit.utils.database import generate_uid
from engagement_toolkit.utils.time import Clock, SystemClock, minutes_to_milliseconds


class PostInput(BaseModel):
    title: Title
    topics: list[Topic] = Field(min_length=1)
    message: Body
    expiration_minutes: int = Field(ge=1)


class CommentInput(BaseModel):
    text: CommentText


class PostFilter(BaseModel):
    topic: Topic | None = None
    status: PostStatus | None = None


class TopicQuery(BaseModel):
    topic: Topic


class HistoryQuery(BaseModel):
    limit: int = Field(ge=1)


class ClientPost(Post):
    time_left: int


class ReactionResult(BaseModel):
    post: ClientPost
    state: ReactionState
    message: str


class CommentResult(BaseModel):
    post: ClientPost
    comment: Comment
    message: str = "Comment added successfully"


class MostActiveResult(BaseModel):
    post: ClientPost
    total_interactions: int


_REACTION_MESSAGES = {
    (ReactionState.NONE, ReactionState.LIKED): "Post liked",
    (ReactionState.DISLIKED, ReactionState.LIKED): "Post liked",
    (ReactionState.LIKED, ReactionState.NONE): "Like removed",
    (ReactionState.NONE, ReactionState.DISLIKED): "Post disliked",
    (ReactionState.LIKED, ReactionState.DISLIKED): "Post disliked",
    (ReactionState.DISLIKED, ReactionState.NONE): "Dislike removed",
}

InputT = TypeVar("InputT", bound=BaseModel)


def validate_input(model: type[InputT], **data: Any) -> InputT:
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        errors = [
            {"field": ".".join(str(part) for part in error["loc"]), "message": error["msg"]} for error in exc.errors()
        ]
        raise ValidationError("Validation failed", errors) from exc


class EngagementController:
    def __init__(
        self,
        post_db: PostDatabase,
        interaction_db: InteractionDatabase,
        clock: Clock | None = None,
        lock_timeout: float = LOCK_TIMEOUT_SECONDS,
    ):
        self.post_db = post_db
        self.interaction_db = interaction_db
        self.clock = clock or SystemClock()
        self.reaction_engine = ReactionEngine(post_db, interaction_db, self.clock, PostLocks(lock_timeout))
        self.aggregator = Aggregator(post_db)

    def _to_client_post(self, post: Post) -> ClientPost:
        return ClientPost(**dict(post), time_left=post.time_left_at(self.clock.now()))

    def _to_reaction_result(self, outcome: ReactionOutcome) -> ReactionResult:
        return ReactionResult(
            post=self._to_client_post(outcome.post),
            state=outcome.state,
            message=_REACTION_MESSAGES[(outcome.previous_state, outcome.state)],
        )

    async def create_post(
        self, owner_id: str, title: str, topics: list[str], message: str, expiration_minutes: int
    ) -> ClientPost:
        post_input = validate_input(
            PostInput, title=title, topics=topics, message=message, expiration_minutes=expiration_minutes
        )
        create_time = self.clock.now()
        post = await self.post_db.create_post(
            Post(
                id=generate_uid(),
                title=post_input.title,
                topics=post_input.topics,
                message=post_input.message,
                owner_id=owner_id,
                create_timestamp=create_time,
                update_timestamp=create_time,
                expiration_timestamp=create_time + minutes_to_milliseconds(post_input.expiration_minutes),
            )
        )
        logger.info(f"Post {post.id} created by {owner_id}, expires in {post_input.expiration_minutes} min")
        return self._to_client_post(post)

    async def list_posts(self, topic: str | None = None, status: str | None = None) -> list[ClientPost]:
        post_filter = validate_input(PostFilter, topic=topic, status=status)
        posts = await self.post_db.get_posts(topic=post_filter.topic, status=post_filter.status)
        return [self._to_client_post(post) for post in posts]

    async def get_post(self, post_id: str) -> ClientPost:
        return self._to_client_post(await self.post_db.get_post_by_id(post_id))

    async def toggle_like(
        self, post_id: str, user_id: str, metadata: InteractionMetadata | None = None
    ) -> ReactionResult:
        return self._to_reaction_result(await self.reaction_engine.toggle_like(post_id, user_id, metadata))

    async def toggle_dislike(
        self, post_id: str, user_id: str, metadata: InteractionMetadata | None = None
    ) -> ReactionResult:
        return self._to_reaction_result(await self.reaction_engine.toggle_dislike(post_id, user_id, metadata))

    async def add_comment(
        self, post_id: str, user_id: str, text: str, metadata: InteractionMetadata | None = None
    ) -> CommentResult:
        comment_input = validate_input(CommentInput, text=text)
        outcome = await self.reaction_engine.add_comment(post_id, user_id, comment_input.text, metadata)
        return CommentResult(post=self._to_client_post(outcome.post), comment=outcome.comment)

    async def most_active_post(self, topic: str) -> MostActiveResult:
        query = validate_input(TopicQuery, topic=topic)
        post, total_interactions = await self.aggregator.most_active(query.topic)
        return MostActiveResult(post=self._to_client_post(post), total_interactions=total_interactions)

    async def expired_posts(self, topic: str | None = None) -> list[ClientPost]:
        post_filter = validate_input(PostFilter, topic=topic)
        return [self._to_client_post(post) for post in await self.aggregator.expired(post_filter.topic)]

    async def user_history(self, user_id: str, limit: int = HISTORY_LIMIT) -> list[Interaction]:
        query = validate_input(HistoryQuery, limit=limit)
        return await self.interaction_db.get_interactions_by_user_id(user_id, query.limit)

    async def post_history(self, post_id: str) -> list[Interaction]:
        await self.post_db.get_post_by_id(post_id)
        return await self.interaction_db.get_interactions_by_post_id(post_id)

"""
Reaction engine.

'ReactionEngine' coordinates the Post Store and the Interaction Ledger for
likes, dislikes and comments. From one user's point of view a post is in one
of three reaction states, and each toggle moves it along '_TRANSITIONS':

    none     --like-->     liked       none     --dislike-->  disliked
    liked    --like-->     none        liked    --dislike-->  disliked
    disliked --dislike-->  none        disliked --like-->     liked

Every action runs as one unit of work inside the post's exclusive section:

    1. read the post (status resolved) and check Live and ownership
    2. apply the membership delta, conditioned on the version just read
    3. retract the previous ledger record and/or record the new one, with a
       snapshot of the post as committed in step 2

If step 3 fails, the ledger steps already taken are undone in reverse order,
the membership delta is reverted, and 'ConsistencyError' is raised. The unit
of work is shielded from cancellation: once started it runs to the end even
if the caller goes away.
"""

import asyncio
from collections.abc import Awaitable, Callable, Coroutine
from functools import partial
from typing import Any, NoReturn, TypeVar

from loguru import logger
from pydantic import BaseModel

from engagement_toolkit.errors import ConsistencyError, ExpiredError, ForbiddenError
from engagement_toolkit.post_database.data_models.interaction import (
    Interaction,
    InteractionDatabase,
    InteractionMetadata,
    InteractionType,
)
from engagement_toolkit.post_database.data_models.post import (
    Comment,
    Post,
    PostDatabase,
    PostStatus,
    ReactionDelta,
    ReactionState,
)
from engagement_toolkit.post_database.locks import PostLocks
from engagement_toolkit.utils.database import generate_uid
from engagement_toolkit.utils.time import Clock, SystemClock

T = TypeVar("T")

_TRANSITIONS: dict[tuple[ReactionState, InteractionType], ReactionState] = {
    (ReactionState.NONE, InteractionType.LIKE): ReactionState.LIKED,
    (ReactionState.NONE, InteractionType.DISLIKE): ReactionState.DISLIKED,
    (ReactionState.LIKED, InteractionType.LIKE): ReactionState.NONE,
    (ReactionState.LIKED, InteractionType.DISLIKE): ReactionState.DISLIKED,
    (ReactionState.DISLIKED, InteractionType.DISLIKE): ReactionState.NONE,
    (ReactionState.DISLIKED, InteractionType.LIKE): ReactionState.LIKED,
}

_LEDGER_TYPE = {
    ReactionState.LIKED: InteractionType.LIKE,
    ReactionState.DISLIKED: InteractionType.DISLIKE,
}


class ReactionOutcome(BaseModel):
    post: Post
    previous_state: ReactionState
    state: ReactionState
    interaction: Interaction | None = None


class CommentOutcome(BaseModel):
    post: Post
    comment: Comment
    interaction: Interaction


def reaction_delta(actor_id: str, current: ReactionState, target: ReactionState) -> ReactionDelta:
    """Membership changes that move 'actor_id' from 'current' to 'target'."""
    actor = frozenset({actor_id})
    empty: frozenset[str] = frozenset()
    return ReactionDelta(
        remove_likes=actor if current == ReactionState.LIKED else empty,
        remove_dislikes=actor if current == ReactionState.DISLIKED else empty,
        add_likes=actor if target == ReactionState.LIKED else empty,
        add_dislikes=actor if target == ReactionState.DISLIKED else empty,
    )


class ReactionEngine:
    def __init__(
        self,
        post_db: PostDatabase,
        interaction_db: InteractionDatabase,
        clock: Clock | None = None,
        locks: PostLocks | None = None,
    ) -> None:
        self.post_db = post_db
        self.interaction_db = interaction_db
        self.clock = clock or SystemClock()
        self.locks = locks or PostLocks()
        self._inflight: set[asyncio.Task[Any]] = set()

    async def toggle_like(
        self, post_id: str, actor_id: str, metadata: InteractionMetadata | None = None
    ) -> ReactionOutcome:
        return await self._run_to_completion(self._toggle(post_id, actor_id, InteractionType.LIKE, metadata))

    async def toggle_dislike(
        self, post_id: str, actor_id: str, metadata: InteractionMetadata | None = None
    ) -> ReactionOutcome:
        return await self._run_to_completion(self._toggle(post_id, actor_id, InteractionType.DISLIKE, metadata))

    async def add_comment(
        self, post_id: str, actor_id: str, text: str, metadata: InteractionMetadata | None = None
    ) -> CommentOutcome:
        return await self._run_to_completion(self._comment(post_id, actor_id, text, metadata))

    async def _run_to_completion(self, coro: Coroutine[Any, Any, T]) -> T:
        task = asyncio.create_task(coro)
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            if not task.done():
                logger.debug("Caller cancelled, letting the reaction finish in the background")
                task.add_done_callback(_log_orphaned_failure)
            raise

    async def _load_live(self, post_id: str, action: str) -> Post:
        post = await self.post_db.get_post_by_id(post_id)
        if post.status == PostStatus.EXPIRED:
            raise ExpiredError(f"Cannot {action} an expired post")
        return post

    def _record(
        self,
        post: Post,
        actor_id: str,
        type: InteractionType,
        metadata: InteractionMetadata | None,
        comment_text: str | None = None,
    ) -> Interaction:
        now = self.clock.now()
        return Interaction(
            id=generate_uid(),
            user_id=actor_id,
            post_id=post.id,
            type=type,
            comment_text=comment_text,
            time_left_at_interaction=post.time_left_at(now),
            post_status_at_interaction=post.status,
            post_topics_at_interaction=post.topics,
            create_timestamp=now,
            metadata=metadata,
        )

    async def _toggle(
        self, post_id: str, actor_id: str, action: InteractionType, metadata: InteractionMetadata | None
    ) -> ReactionOutcome:
        async with self.locks.hold(post_id):
            post = await self._load_live(post_id, action)
            if post.owner_id == actor_id:
                raise ForbiddenError(f"Cannot {action} your own post")

            current = post.reaction_of(actor_id)
            target = _TRANSITIONS[(current, action)]
            delta = reaction_delta(actor_id, current, target)
            updated = await self.post_db.apply_reaction_delta(post_id, actor_id, delta, expected_version=post.version)

            undo: list[Callable[[], Awaitable[object]]] = []
            recorded: Interaction | None = None
            try:
                if current != ReactionState.NONE:
                    retracted = await self.interaction_db.retract_active(actor_id, post_id, _LEDGER_TYPE[current])
                    if retracted is not None:
                        undo.append(partial(self.interaction_db.create_interaction, retracted))
                if target != ReactionState.NONE:
                    recorded = await self.interaction_db.create_interaction(
                        self._record(updated, actor_id, _LEDGER_TYPE[target], metadata)
                    )
                    undo.append(partial(self.interaction_db.delete_interaction, recorded.id))
            except Exception as exc:
                revert = partial(
                    self.post_db.apply_reaction_delta,
                    post_id,
                    actor_id,
                    delta.inverted(),
                    expected_version=updated.version,
                    enforce_live=False,
                )
                await self._compensate(post_id, actor_id, undo, revert, exc)

            logger.debug(f"User {actor_id} on post {post_id}: {current} -> {target}")
            return ReactionOutcome(post=updated, previous_state=current, state=target, interaction=recorded)

    async def _comment(
        self, post_id: str, actor_id: str, text: str, metadata: InteractionMetadata | None
    ) -> CommentOutcome:
        async with self.locks.hold(post_id):
            await self._load_live(post_id, "comment on")
            comment = Comment(id=generate_uid(), user_id=actor_id, text=text, create_timestamp=self.clock.now())
            updated = await self.post_db.append_comment(post_id, comment)
            try:
                interaction = await self.interaction_db.create_interaction(
                    self._record(updated, actor_id, InteractionType.COMMENT, metadata, comment_text=comment.text)
                )
            except Exception as exc:
                await self._compensate(post_id, actor_id, [], partial(self.post_db.remove_comment, post_id, comment.id), exc)

            logger.debug(f"User {actor_id} commented on post {post_id}")
            return CommentOutcome(post=updated, comment=comment, interaction=interaction)

    async def _compensate(
        self,
        post_id: str,
        actor_id: str,
        undo: list[Callable[[], Awaitable[object]]],
        revert_post: Callable[[], Awaitable[object]],
        cause: Exception,
    ) -> NoReturn:
        reconciled = True
        for step in reversed([revert_post, *undo]):
            try:
                await step()
            except Exception:
                reconciled = False
                logger.exception(f"Compensation step failed for post {post_id}, user {actor_id}")

        if reconciled:
            logger.error(f"Ledger write failed for post {post_id}, user {actor_id}; changes rolled back: {cause!r}")
        else:
            logger.error(
                f"Ledger write failed for post {post_id}, user {actor_id} and rollback was incomplete; "
                f"post store is authoritative, ledger needs reconciliation: {cause!r}"
            )
        raise ConsistencyError(
            f"Interaction ledger write failed for post {post_id}",
            post_id=post_id,
            user_id=actor_id,
            reconciled=reconciled,
        ) from cause


def _log_orphaned_failure(task: asyncio.Task[Any]) -> None:
    if not task.cancelled() and task.exception() is not None:
        logger.opt(exception=task.exception()).error("Reaction failed after its caller was cancelled")

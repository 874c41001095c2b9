"""
Post engagement storage and coordination.

Most callers only need the controller and a pair of repositories:

    from engagement_toolkit.post_database import (
        EngagementController, InMemoryPostDatabase, InMemoryInteractionDatabase,
    )

The reaction engine, aggregator and expiry sweeper can also be used directly
when a request layer wants finer control.
"""

from engagement_toolkit.post_database.aggregator import Aggregator
from engagement_toolkit.post_database.controller import (
    ClientPost,
    CommentResult,
    EngagementController,
    MostActiveResult,
    ReactionResult,
)
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
    ReactionState,
    Topic,
    resolve_status,
)
from engagement_toolkit.post_database.in_memory.interaction import InMemoryInteractionDatabase
from engagement_toolkit.post_database.in_memory.post import InMemoryPostDatabase
from engagement_toolkit.post_database.reaction_engine import ReactionEngine
from engagement_toolkit.post_database.sweeper import ExpirySweeper

__all__ = [
    "Aggregator",
    "ClientPost",
    "Comment",
    "CommentResult",
    "EngagementController",
    "ExpirySweeper",
    "InMemoryInteractionDatabase",
    "InMemoryPostDatabase",
    "Interaction",
    "InteractionDatabase",
    "InteractionMetadata",
    "InteractionType",
    "MostActiveResult",
    "Post",
    "PostDatabase",
    "PostStatus",
    "ReactionEngine",
    "ReactionResult",
    "ReactionState",
    "Topic",
    "resolve_status",
]

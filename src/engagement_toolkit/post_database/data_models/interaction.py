"""
Interaction data model and storage interface.

Interactions are the audit trail of likes, dislikes and comments. Each record
snapshots the post as it was right after the interaction was committed: time
left before expiry, lifecycle status and topics.

Like and dislike records are "active" while the matching membership exists on
the post. Toggling a reaction off deletes its record instead of flagging it,
so at most one like and one dislike record exist per user and post. Comment
records are never deleted.

Concrete implementations: 'InMemoryInteractionDatabase'.
"""

from abc import ABC, abstractmethod
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from engagement_toolkit.post_database.data_models.post import CommentText, PostStatus, Topic


class InteractionType(StrEnum):
    LIKE = "like"
    DISLIKE = "dislike"
    COMMENT = "comment"


class InteractionMetadata(BaseModel):
    """Request details captured alongside an interaction."""

    user_agent: str | None = None
    ip_address: str | None = None


class Interaction(BaseModel):
    """An immutable audit record. 'comment_text' is set if and only if 'type' is 'comment'."""

    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    post_id: str
    type: InteractionType
    comment_text: CommentText | None = None
    time_left_at_interaction: int = Field(ge=0)
    post_status_at_interaction: PostStatus
    post_topics_at_interaction: list[Topic]
    create_timestamp: int
    metadata: InteractionMetadata | None = None

    @model_validator(mode="after")
    def _check_comment_text(self) -> "Interaction":
        if self.type == InteractionType.COMMENT and self.comment_text is None:
            raise ValueError("comment interactions require comment_text")
        if self.type != InteractionType.COMMENT and self.comment_text is not None:
            raise ValueError(f"{self.type} interactions cannot carry comment_text")
        return self

    def to_display(self) -> dict[str, Any]:
        display = self.model_dump(exclude={"comment_text", "metadata"})
        if self.type == InteractionType.COMMENT:
            display["comment_text"] = self.comment_text
        return display


class InteractionDatabase(ABC):
    """
    Abstract repository for 'Interaction' records.

    Histories are returned newest first. Records written within the same
    millisecond keep their write order, latest first.
    """

    @abstractmethod
    async def create_interaction(self, interaction: Interaction) -> Interaction:
        """Append 'interaction'.

        Raises 'ConflictError' if a like or dislike record of the same type is
        already active for the user and post.
        """
        pass

    @abstractmethod
    async def retract_active(self, user_id: str, post_id: str, type: InteractionType) -> Interaction | None:
        """Delete the active like or dislike record and return it, or return None if there is none."""
        pass

    @abstractmethod
    async def get_active(self, user_id: str, post_id: str, type: InteractionType) -> Interaction | None:
        pass

    @abstractmethod
    async def get_interactions_by_user_id(self, user_id: str, limit: int) -> list[Interaction]:
        pass

    @abstractmethod
    async def get_interactions_by_post_id(self, post_id: str) -> list[Interaction]:
        pass

    @abstractmethod
    async def delete_interaction(self, interaction_id: str) -> bool:
        pass

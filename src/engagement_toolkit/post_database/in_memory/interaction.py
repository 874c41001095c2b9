"""
In-memory 'InteractionDatabase'.

Records are kept in write order. A secondary index maps each
'(user_id, post_id, type)' triple to its active like or dislike record and
plays the role of a unique compound index: a second active record for the
same triple is rejected with 'ConflictError'.
"""

from engagement_toolkit.errors import ConflictError
from engagement_toolkit.post_database.data_models.interaction import Interaction, InteractionDatabase, InteractionType

_REACTION_TYPES = (InteractionType.LIKE, InteractionType.DISLIKE)


class InMemoryInteractionDatabase(InteractionDatabase):
    def __init__(self) -> None:
        self._interactions: dict[str, Interaction] = {}
        self._active: dict[tuple[str, str, InteractionType], str] = {}

    @staticmethod
    def _newest_first(interactions: list[Interaction]) -> list[Interaction]:
        # Sorting is stable, so reversing first keeps later writes ahead on equal timestamps.
        return sorted(reversed(interactions), key=lambda i: i.create_timestamp, reverse=True)

    async def create_interaction(self, interaction: Interaction) -> Interaction:
        if interaction.id in self._interactions:
            raise ConflictError(f"Interaction with id {interaction.id} already exists")
        if interaction.type in _REACTION_TYPES:
            key = (interaction.user_id, interaction.post_id, interaction.type)
            if key in self._active:
                raise ConflictError(
                    f"User {interaction.user_id} already has an active {interaction.type} on post {interaction.post_id}"
                )
            self._active[key] = interaction.id
        self._interactions[interaction.id] = interaction
        return interaction

    async def retract_active(self, user_id: str, post_id: str, type: InteractionType) -> Interaction | None:
        interaction_id = self._active.pop((user_id, post_id, type), None)
        if interaction_id is None:
            return None
        return self._interactions.pop(interaction_id)

    async def get_active(self, user_id: str, post_id: str, type: InteractionType) -> Interaction | None:
        interaction_id = self._active.get((user_id, post_id, type))
        return self._interactions[interaction_id] if interaction_id else None

    async def get_interactions_by_user_id(self, user_id: str, limit: int) -> list[Interaction]:
        matching = [i for i in self._interactions.values() if i.user_id == user_id]
        return self._newest_first(matching)[:limit]

    async def get_interactions_by_post_id(self, post_id: str) -> list[Interaction]:
        return self._newest_first([i for i in self._interactions.values() if i.post_id == post_id])

    async def delete_interaction(self, interaction_id: str) -> bool:
        interaction = self._interactions.pop(interaction_id, None)
        if interaction is None:
            return False
        key = (interaction.user_id, interaction.post_id, interaction.type)
        if self._active.get(key) == interaction_id:
            del self._active[key]
        return True

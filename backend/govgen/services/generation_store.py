"""
Keyed persistence for generations.

Every write commits on its own: a stage's status change survives even when
the model call that follows it fails.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from govgen.errors import NotFound, require_text
from govgen.models import Generation, GenerationStatus
from govgen.services.generation_state import Transition


class GenerationStore:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        owner_id: str,
        *,
        title: str,
        context_query: str,
        description: str | None = None,
    ) -> Generation:
        require_text(title, "title")
        require_text(context_query, "context_query")

        generation = Generation(
            owner_id=owner_id,
            title=title,
            description=description,
            context_query=context_query,
            status=GenerationStatus.PENDING.value,
        )
        self.session.add(generation)
        await self.session.commit()
        await self.session.refresh(generation)
        return generation

    async def get(self, generation_id: int, owner_id: str | None = None) -> Generation:
        """Fetch one generation; foreign-owned records read as missing."""
        generation = await self.session.get(Generation, generation_id, populate_existing=True)
        if generation is None or (owner_id is not None and generation.owner_id != owner_id):
            raise NotFound(f"Generation {generation_id} not found")
        return generation

    async def list_by_owner(self, owner_id: str) -> list[Generation]:
        result = await self.session.execute(
            select(Generation)
            .where(Generation.owner_id == owner_id)
            .order_by(Generation.created_at.asc(), Generation.id.asc())
        )
        return list(result.scalars())

    async def apply(self, generation: Generation, transition: Transition) -> Generation:
        """Write a transition's updates and status as one commit."""
        for attr, value in transition.values().items():
            setattr(generation, attr, value)
        await self.session.commit()
        await self.session.refresh(generation)
        return generation

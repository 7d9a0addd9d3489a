"""Agent repository."""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.models import Agent


class AsyncAgentRepository:
    """Async repository for agent configuration."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, agent_id: str) -> Agent | None:
        return await self.session.get(Agent, agent_id)

    async def get_for_user(self, user_id: str, agent_id: str) -> Agent | None:
        """Fetch an agent only if it belongs to the given user."""
        query = select(Agent).where(
            Agent.id == agent_id,  # type: ignore[arg-type]
            Agent.user_id == user_id,  # type: ignore[arg-type]
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def list_for_user(self, user_id: str) -> list[Agent]:
        query = select(Agent).where(Agent.user_id == user_id).order_by(Agent.name)  # type: ignore[arg-type]
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def create(self, **fields) -> Agent:
        agent = Agent(**fields)
        self.session.add(agent)
        await self.session.flush()
        return agent

    async def update(self, agent_id: str, **fields) -> Agent | None:
        agent = await self.get_by_id(agent_id)
        if not agent:
            return None
        for key, value in fields.items():
            setattr(agent, key, value)
        agent.updated_at = datetime.now(UTC)
        self.session.add(agent)
        return agent

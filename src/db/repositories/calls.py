"""Call log repository."""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.models import CallLog, CallStatus


class AsyncCallLogRepository:
    """Async repository for call logging."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, call_id: str) -> CallLog | None:
        return await self.session.get(CallLog, call_id)

    async def start_call(
        self,
        *,
        user_id: str,
        agent_id: str | None,
        call_sid: str,
        started_at: datetime | None = None,
    ) -> CallLog:
        """Insert an in-progress call row."""
        call_log = CallLog(
            user_id=user_id,
            agent_id=agent_id,
            call_sid=call_sid,
            started_at=started_at or datetime.now(UTC),
        )
        self.session.add(call_log)
        await self.session.flush()
        return call_log

    async def end_call(
        self,
        call_id: str,
        *,
        duration_seconds: int,
        ended_at: datetime | None = None,
    ) -> CallLog | None:
        """Mark a call completed. Returns None for unknown ids."""
        call_log = await self.get_by_id(call_id)
        if not call_log:
            return None
        call_log.status = CallStatus.completed
        call_log.ended_at = ended_at or datetime.now(UTC)
        call_log.duration_seconds = duration_seconds
        self.session.add(call_log)
        return call_log

    async def list_for_user(
        self,
        user_id: str,
        *,
        status: CallStatus | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[CallLog]:
        query = select(CallLog).where(CallLog.user_id == user_id)  # type: ignore[arg-type]
        if status:
            query = query.where(CallLog.status == status)  # type: ignore[arg-type]
        query = query.order_by(desc(CallLog.created_at)).offset(offset).limit(limit)  # type: ignore[arg-type]
        result = await self.session.execute(query)
        return list(result.scalars().all())

"""Call logging to the calls table."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

from src.db.repositories.calls import AsyncCallLogRepository
from src.db.session import get_session_context
from src.logging_config import get_logger

if TYPE_CHECKING:
    from src.core.session import VoiceSession

logger: Any = get_logger(__name__)


class CallLedger(Protocol):
    async def start(self, session: VoiceSession) -> str | None:
        """Record the call start and return the call log id."""
        ...

    async def end(self, call_log_id: str, duration_seconds: int) -> bool:
        """Mark the call completed."""
        ...


class DatabaseCallLedger:
    """CallLedger backed by the calls table."""

    async def start(self, session: VoiceSession) -> str | None:
        if not session.user_id:
            logger.info("Skipping call logging (no user id)")
            return None

        async with get_session_context() as db_session:
            call_log = await AsyncCallLogRepository(db_session).start_call(
                user_id=session.user_id,
                agent_id=session.agent_id,
                call_sid=session.connection_id,
                started_at=session.start_time,
            )
            call_id = call_log.id

        logger.info(f"Call logged: {call_id}")
        return call_id

    async def end(self, call_log_id: str, duration_seconds: int) -> bool:
        async with get_session_context() as db_session:
            call_log = await AsyncCallLogRepository(db_session).end_call(
                call_log_id, duration_seconds=duration_seconds
            )
        if call_log is None:
            logger.warning(f"Call log {call_log_id} not found at call end")
            return False
        logger.info(f"Call ended: {call_log_id}, duration: {duration_seconds}s")
        return True

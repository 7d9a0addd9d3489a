"""Registry of live voice sessions."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

from src.config import Settings, get_settings
from src.core.accounting import CallAccountant
from src.core.agent_config import AgentConfig
from src.core.pipeline import EventSender, VoicePipeline
from src.core.session import VoiceSession
from src.logging_config import get_logger
from src.observability.metrics import ACTIVE_SESSIONS, record_call_metrics
from src.services.billing.costs import CostCalculator

logger: Any = get_logger(__name__)

PipelineFactory = Callable[[VoiceSession, EventSender], VoicePipeline]


class SessionExistsError(Exception):
    """A session is already registered for this connection id."""


class SessionCapacityError(Exception):
    """The server is at its concurrent session limit."""


class SessionRegistry:
    """Owns every live session keyed by connection id.

    Mutations of the table happen under a lock; each session's own state is
    touched only by its pipeline.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        accountant: CallAccountant | None = None,
        pipeline_factory: PipelineFactory | None = None,
    ) -> None:
        self._settings = settings
        self._accountant = accountant
        self._pipeline_factory = pipeline_factory or self._default_pipeline
        self._entries: dict[str, tuple[VoiceSession, VoicePipeline]] = {}
        self._ending: set[str] = set()
        self._lock = asyncio.Lock()

    def _default_pipeline(self, session: VoiceSession, sender: EventSender) -> VoicePipeline:
        return VoicePipeline(session, sender, settings=self.settings)

    @property
    def settings(self) -> Settings:
        if self._settings is None:
            self._settings = get_settings()
        return self._settings

    @property
    def accountant(self) -> CallAccountant:
        if self._accountant is None:
            self._accountant = CallAccountant(cost_ledger=CostCalculator(self.settings))
        return self._accountant

    async def create(
        self,
        connection_id: str,
        config: AgentConfig,
        sender: EventSender,
    ) -> tuple[VoiceSession, VoicePipeline]:
        """Register a new session and build its pipeline.

        Raises:
            SessionExistsError: If the connection id is already registered.
            SessionCapacityError: If `max_concurrent_sessions` is reached.
        """
        async with self._lock:
            if connection_id in self._entries:
                raise SessionExistsError(connection_id)
            if len(self._entries) >= self.settings.max_concurrent_sessions:
                raise SessionCapacityError(
                    f"{len(self._entries)} sessions active, limit reached"
                )

            session = VoiceSession(
                connection_id=connection_id,
                config=config,
                max_history_turns=self.settings.max_history_turns,
            )
            pipeline = self._pipeline_factory(session, sender)
            self._entries[connection_id] = (session, pipeline)
            ACTIVE_SESSIONS.set(len(self._entries))

        logger.info(f"Session created: {connection_id} (agent={config.agent_id})")
        return session, pipeline

    def get(self, connection_id: str) -> tuple[VoiceSession, VoicePipeline] | None:
        return self._entries.get(connection_id)

    def active_count(self) -> int:
        return len(self._entries)

    async def end(self, connection_id: str) -> dict[str, Any] | None:
        """Tear down a session. Unknown or already-ending ids are a no-op.

        The entry stays registered until accounting has finished.
        """
        async with self._lock:
            entry = self._entries.get(connection_id)
            if entry is None or connection_id in self._ending:
                return None
            self._ending.add(connection_id)

        session, pipeline = entry
        logger.info(f"Ending session {connection_id}")

        try:
            metrics = await pipeline.finalize()
            try:
                await pipeline.run_after_call_tools()
            except Exception as e:
                logger.error(f"After-call tools failed for {connection_id}: {e}")

            await self.accountant.finalize(session)
        finally:
            async with self._lock:
                self._entries.pop(connection_id, None)
                self._ending.discard(connection_id)
                ACTIVE_SESSIONS.set(len(self._entries))

        await pipeline.close()

        record_call_metrics(
            outcome="completed" if session.total_turns else "dropped",
            duration_seconds=session.duration_seconds(),
            barge_in_count=session.barge_in_count,
        )
        return metrics

    async def close_all(self) -> None:
        """End every session (application shutdown)."""
        for connection_id in list(self._entries):
            await self.end(connection_id)

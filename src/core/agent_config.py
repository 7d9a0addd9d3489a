"""Agent configuration loading.

Resolves the prompt, voice, model, tools and greeting for a new session from
the connection parameters and the stored agent, falling back to defaults when
the agent cannot be loaded.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol

from sqlalchemy.exc import SQLAlchemyError

from src.config import Settings, get_settings
from src.db.repositories.agents import AsyncAgentRepository
from src.db.session import get_session_context
from src.logging_config import get_logger
from src.prompts.agent import build_system_instruction
from src.services.tools.models import Tool, parse_tools

logger: Any = get_logger(__name__)


class ConfigLoadError(Exception):
    """The agent lookup failed (storage unavailable or malformed record)."""


@dataclass(frozen=True)
class AgentRecord:
    """Stored agent fields used to configure a session."""

    agent_id: str
    name: str = ""
    identity: str | None = None
    voice_id: str | None = None
    model: str | None = None
    settings: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class AgentConfig:
    """Everything a session needs from its agent."""

    agent_id: str | None
    user_id: str | None
    identity: str
    system_instruction: str
    voice_id: str
    model: str
    greeting: str
    tools: tuple[Tool, ...] = ()
    settings: dict[str, Any] = field(default_factory=dict)


class AgentConfigProvider(Protocol):
    """Looks up an agent by id for its owner."""

    async def get_agent(self, user_id: str, agent_id: str) -> AgentRecord | None:
        """Return the agent, None if unknown.

        Raises:
            ConfigLoadError: If the lookup itself fails.
        """
        ...


class DatabaseAgentConfigProvider:
    """AgentConfigProvider backed by the agents table."""

    async def get_agent(self, user_id: str, agent_id: str) -> AgentRecord | None:
        try:
            async with get_session_context() as db_session:
                agent = await AsyncAgentRepository(db_session).get_for_user(user_id, agent_id)
                if not agent:
                    return None
                return AgentRecord(
                    agent_id=agent.id,
                    name=agent.name,
                    identity=agent.identity,
                    voice_id=agent.voice_id,
                    model=agent.model,
                    settings=agent.settings,
                )
        except (SQLAlchemyError, ValueError) as e:
            raise ConfigLoadError(f"Failed to load agent {agent_id}: {e}") from e


class AgentConfigLoader:
    """Builds an AgentConfig from connection parameters and the stored agent."""

    def __init__(
        self,
        provider: AgentConfigProvider | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._provider = provider or DatabaseAgentConfigProvider()
        self._settings = settings or get_settings()

    async def load(
        self,
        *,
        agent_id: str | None = None,
        user_id: str | None = None,
        voice_id: str | None = None,
        identity: str | None = None,
    ) -> AgentConfig:
        """Resolve the session configuration.

        Connection parameters seed the defaults; a stored agent overrides
        them field by field. Lookup failures leave the defaults in place.
        """
        prompt = identity or self._settings.default_agent_prompt
        voice = voice_id or self._settings.default_voice_id
        model = self._settings.default_llm_model
        greeting = self._settings.greeting_text
        tools: tuple[Tool, ...] = ()
        agent_settings: dict[str, Any] = {}

        record: AgentRecord | None = None
        if agent_id and user_id:
            try:
                record = await self._provider.get_agent(user_id, agent_id)
            except ConfigLoadError as e:
                logger.warning(f"Agent config unavailable, using defaults: {e}")

        if record:
            prompt = record.identity or prompt
            voice = record.voice_id or voice
            model = record.model or model
            agent_settings = record.settings or {}
            tools = parse_tools(agent_settings.get("tools"))
            greeting = agent_settings.get("greetingLine") or greeting
            logger.info(f"Loaded agent {record.name or record.agent_id} with {len(tools)} tools")
        elif agent_id:
            logger.warning(f"Agent {agent_id} not found for user {user_id}, using defaults")

        return AgentConfig(
            agent_id=agent_id,
            user_id=user_id,
            identity=prompt,
            system_instruction=build_system_instruction(prompt, tools),
            voice_id=voice,
            model=model,
            greeting=greeting,
            tools=tools,
            settings=agent_settings,
        )

    def defaults(
        self,
        *,
        user_id: str | None = None,
        voice_id: str | None = None,
        identity: str | None = None,
    ) -> AgentConfig:
        """Configuration with no stored agent."""
        prompt = identity or self._settings.default_agent_prompt
        return AgentConfig(
            agent_id=None,
            user_id=user_id,
            identity=prompt,
            system_instruction=build_system_instruction(prompt),
            voice_id=voice_id or self._settings.default_voice_id,
            model=self._settings.default_llm_model,
            greeting=self._settings.greeting_text,
        )

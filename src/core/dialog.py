"""Dialog orchestration: LLM turn generation with inline tool calls.

One user turn runs as a bounded loop:

    AWAITING_USER_TURN -> AWAITING_MODEL -> (EXECUTING_TOOL -> AWAITING_FOLLOWUP
    -> AWAITING_MODEL)* -> RESPONDING

A model reply that is a bare `{"tool": ..., "data": {...}}` object naming one
of the session's tools is executed and the model is asked to continue. The
loop stops after `max_tool_iterations` executions and answers with a fixed
fallback (FALLBACK). Any LLM failure yields a fixed apology instead of an
exception, so a turn always produces speakable text.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any

from src.config import Settings, get_settings
from src.core.session import VoiceSession
from src.logging_config import get_logger, truncate_for_log
from src.observability.metrics import record_pipeline_error, record_stage_latency
from src.services.llm.protocol import LLMService
from src.services.tools.executor import ToolExecutor

logger: Any = get_logger(__name__)

LLM_APOLOGY = "I apologize, but I'm having trouble processing your request right now."
TOOL_LOOP_FALLBACK = (
    "I'm sorry, I wasn't able to finish that request. Could you tell me again what you need?"
)
TOOL_CONTINUATION_PROMPT = "Tool executed successfully. Please continue."
TOOL_SUCCESS_MESSAGE = "Data processing initiated"
TOOL_FAILURE_MESSAGE = "Tool execution failed"


class DialogState(Enum):
    """State machine for a single dialog turn."""

    AWAITING_USER_TURN = auto()
    AWAITING_MODEL = auto()
    EXECUTING_TOOL = auto()
    AWAITING_FOLLOWUP = auto()
    RESPONDING = auto()
    FALLBACK = auto()  # Terminal: LLM failure or tool loop cap reached


@dataclass(frozen=True)
class ToolCall:
    """A tool invocation requested by the model."""

    tool: str
    data: dict[str, Any]


@dataclass
class DialogResult:
    """Final text of a dialog turn plus what happened along the way."""

    text: str
    state: DialogState
    llm_calls: int = 0
    tool_calls: list[ToolCall] = field(default_factory=list)
    tool_results: list[bool] = field(default_factory=list)

    @property
    def is_fallback(self) -> bool:
        return self.state is DialogState.FALLBACK


def strip_code_fences(text: str) -> str:
    return text.replace("```json", "").replace("```", "").strip()


def parse_tool_call(text: str) -> ToolCall | None:
    """Detect a bare JSON tool call in a model reply.

    Returns None for ordinary replies: text outside braces, invalid JSON, or an
    object without a string `tool` and an object `data`.
    """
    clean = strip_code_fences(text)
    if not (clean.startswith("{") and clean.endswith("}")):
        return None

    try:
        parsed = json.loads(clean)
    except json.JSONDecodeError:
        return None

    if not isinstance(parsed, dict):
        return None
    tool = parsed.get("tool")
    data = parsed.get("data")
    if not isinstance(tool, str) or not tool or not isinstance(data, dict):
        return None
    return ToolCall(tool=tool, data=data)


class DialogOrchestrator:
    """Produces the agent's reply to one user utterance."""

    def __init__(
        self,
        llm: LLMService,
        tool_executor: ToolExecutor,
        settings: Settings | None = None,
    ) -> None:
        self._llm = llm
        self._tools = tool_executor
        self._settings = settings or get_settings()

    async def respond(self, session: VoiceSession, utterance: str) -> DialogResult:
        """Generate the reply to `utterance`.

        Appends the utterance (and any tool status turns) to the session
        history. The caller appends the returned text as the assistant turn.
        """
        max_iterations = self._settings.max_tool_iterations
        state = DialogState.AWAITING_USER_TURN
        prompt = utterance
        result = DialogResult(text="", state=state)
        executions = 0

        while True:
            session.history.add_user(prompt)
            state = DialogState.AWAITING_MODEL

            try:
                text = await self._generate(session)
            except Exception as e:
                logger.error(f"LLM call failed for {session.connection_id}: {e}")
                record_pipeline_error("llm")
                result.text = LLM_APOLOGY
                result.state = DialogState.FALLBACK
                return result
            result.llm_calls += 1

            call = parse_tool_call(text)
            if call is None:
                result.text = text
                result.state = DialogState.RESPONDING
                return result

            tool = session.find_tool(call.tool)
            if tool is None:
                logger.warning(f"Model requested unknown tool {call.tool}, returning reply as-is")
                result.text = text
                result.state = DialogState.RESPONDING
                return result

            if executions >= max_iterations:
                logger.warning(
                    f"Tool loop cap ({max_iterations}) reached for {session.connection_id}"
                )
                result.text = TOOL_LOOP_FALLBACK
                result.state = DialogState.FALLBACK
                return result

            state = DialogState.EXECUTING_TOOL
            logger.info(f"Tool call detected: {call.tool}")
            success = await self._tools.execute(tool, call.data)
            executions += 1
            result.tool_calls.append(call)
            result.tool_results.append(success)

            session.history.add_user(
                json.dumps(
                    {
                        "tool": call.tool,
                        "status": "success" if success else "failed",
                        "message": TOOL_SUCCESS_MESSAGE if success else TOOL_FAILURE_MESSAGE,
                    }
                )
            )
            state = DialogState.AWAITING_FOLLOWUP
            logger.debug(f"Dialog state {state.name}, iteration {executions}")
            prompt = TOOL_CONTINUATION_PROMPT

    async def _generate(self, session: VoiceSession) -> str:
        config = session.config
        generation = await asyncio.wait_for(
            self._llm.generate_content(
                model=config.model,
                turns=session.history.turns,
                system_instruction=config.system_instruction,
            ),
            timeout=self._settings.llm_timeout_seconds,
        )
        session.add_token_usage(generation.input_tokens, generation.output_tokens)
        if generation.latency_ms:
            record_stage_latency("llm", generation.latency_ms)
        logger.info(f"LLM response: {truncate_for_log(generation.text, 100)}")
        return generation.text

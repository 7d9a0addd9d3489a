"""Extract tool parameters from a conversation with a second LLM pass.

The dialog model decides when to call inline tools itself. Tools that run
after the call never see a tool-call JSON, so their parameters are pulled
out of the transcript here instead.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from src.config import Settings, get_settings
from src.logging_config import get_logger, truncate_for_log
from src.prompts.extraction import build_extraction_prompt
from src.services.llm.protocol import LLMService, Message
from src.services.tools.models import Tool

logger: Any = get_logger(__name__)


@dataclass
class ExtractionResult:
    """Extracted parameter values for one tool."""

    success: bool
    data: dict[str, Any] = field(default_factory=dict)
    missing_fields: list[str] = field(default_factory=list)
    error: str | None = None


def find_json_object(raw: str) -> dict[str, Any]:
    """Parse the first brace-delimited JSON object in a model response.

    Returns an empty dict when there is none or it does not parse.
    """
    start = raw.find("{")
    if start == -1:
        return {}
    try:
        parsed, _ = json.JSONDecoder().raw_decode(raw[start:])
    except json.JSONDecodeError:
        return {}
    return parsed if isinstance(parsed, dict) else {}


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class ToolDataExtractor:
    """Asks the LLM for a strict JSON object of a tool's parameters."""

    def __init__(self, llm: LLMService, settings: Settings | None = None) -> None:
        self._llm = llm
        self._settings = settings or get_settings()

    async def extract_from_conversation(
        self,
        history: Sequence[Message],
        tool: Tool,
    ) -> ExtractionResult:
        """Extract parameter values for `tool` from the conversation.

        Success requires every required parameter to have a non-null value.
        """
        try:
            prompt = build_extraction_prompt(tool, history)
            response = await self._llm.chat(self._settings.extraction_model, prompt)
        except Exception as e:
            logger.error(f"Extraction for tool {tool.name} failed: {e}")
            return ExtractionResult(success=False, error=str(e))

        data = find_json_object(response)
        if not data:
            logger.warning(f"No JSON found in extraction response: {truncate_for_log(response)}")

        missing = [name for name in tool.required_parameters if _is_missing(data.get(name))]
        if missing:
            logger.warning(f"Tool {tool.name} is missing required fields: {', '.join(missing)}")

        return ExtractionResult(success=not missing, data=data, missing_fields=missing)

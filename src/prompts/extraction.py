"""Prompts for extracting tool parameters from a finished conversation.

Used in the second-pass extraction that feeds after-call tools.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.services.llm.protocol import Message
    from src.services.tools.models import Tool

EXTRACTION_PREAMBLE = (
    "You are a data extraction assistant. "
    "Extract the following information from the conversation:"
)

EXTRACTION_INSTRUCTIONS = """Return ONLY a valid JSON object with the extracted values. Use null for values not found.
Example format: {"field1": "value1", "field2": "value2"}

JSON:"""


def format_parameter_lines(tool: Tool) -> str:
    """One line per parameter, marking the required ones."""
    return "\n".join(
        f"- {p.name} ({p.type}){' [REQUIRED]' if p.required else ''}: "
        "Extract this value from the conversation"
        for p in tool.parameters
    )


def format_conversation(history: Sequence[Message]) -> str:
    return "\n".join(f"{msg.role.value}: {msg.content}" for msg in history)


def build_extraction_prompt(tool: Tool, history: Sequence[Message]) -> str:
    """Build the single-message prompt sent to the extraction model.

    Args:
        tool: Tool whose parameters should be extracted
        history: Conversation turns, oldest first

    Returns:
        Prompt text
    """
    return f"""{EXTRACTION_PREAMBLE}

{format_parameter_lines(tool)}

Conversation:
{format_conversation(history)}

{EXTRACTION_INSTRUCTIONS}"""

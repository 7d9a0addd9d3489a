"""System instruction for the voice agent, including the tool catalog."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.services.tools.models import Tool

TOOL_INVOCATION_INSTRUCTIONS = (
    "When you need to collect information from the user, ask for the required parameters. "
    "When all required information is collected, respond with a JSON object in the format: "
    '{"tool": "tool_name", "data": {"param1": "value1", "param2": "value2"}}. '
    "Do NOT add any other text before or after the JSON."
)


def describe_tool(tool: Tool) -> str:
    """Render one catalog line: `- name: description (Parameters: ...)`."""
    params = ", ".join(
        f"{p.name} ({p.type}){' [required]' if p.required else ''}" for p in tool.parameters
    )
    return f"- {tool.name}: {tool.description} (Parameters: {params or 'None'})"


def build_system_instruction(identity: str, tools: Sequence[Tool] = ()) -> str:
    """Combine the agent identity with the catalog of tools it may call.

    Without tools the identity is returned unchanged.
    """
    if not tools:
        return identity

    catalog = "\n".join(describe_tool(tool) for tool in tools)
    return f"{identity}\n\nAvailable Tools:\n{catalog}\n\n{TOOL_INVOCATION_INSTRUCTIONS}"

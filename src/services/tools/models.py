"""Tool definitions attached to an agent."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from src.logging_config import get_logger

logger: Any = get_logger(__name__)

DEFAULT_SHEET_NAME = "Data Collection"


class ToolType(str, Enum):
    """Supported tool integrations."""

    GOOGLE_SHEETS = "GoogleSheets"
    WEBHOOK = "Webhook"


class ToolParameter(BaseModel):
    """A value the agent must collect before invoking a tool."""

    model_config = ConfigDict(frozen=True)

    name: str
    type: str = "string"
    required: bool = False
    description: str | None = None


class Tool(BaseModel):
    """A side-effecting action an agent may invoke.

    Field aliases match the JSON stored in agent settings.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    description: str = ""
    type: str
    parameters: tuple[ToolParameter, ...] = ()
    url: str | None = Field(default=None, alias="webhookUrl")
    method: str = "POST"
    headers: dict[str, str] = Field(default_factory=dict)
    run_after_call: bool = Field(default=False, alias="runAfterCall")

    @field_validator("headers", mode="before")
    @classmethod
    def _normalize_headers(cls, value: Any) -> dict[str, str]:
        """Accept both the stored [{key, value}] form and a plain mapping."""
        if not value:
            return {}
        if isinstance(value, dict):
            return {str(k): str(v) for k, v in value.items()}
        headers: dict[str, str] = {}
        for entry in value:
            if isinstance(entry, dict) and entry.get("key"):
                headers[str(entry["key"])] = str(entry.get("value", ""))
        return headers

    @field_validator("method", mode="before")
    @classmethod
    def _normalize_method(cls, value: Any) -> str:
        return str(value or "POST").upper()

    @field_validator("parameters", mode="before")
    @classmethod
    def _default_parameters(cls, value: Any) -> Any:
        return value or ()

    @property
    def tool_type(self) -> ToolType | None:
        try:
            return ToolType(self.type)
        except ValueError:
            return None

    @property
    def sheet_name(self) -> str:
        return self.name or DEFAULT_SHEET_NAME

    @property
    def required_parameters(self) -> list[str]:
        return [p.name for p in self.parameters if p.required]


def parse_tools(raw_tools: Any) -> tuple[Tool, ...]:
    """Parse tool entries from agent settings, skipping malformed ones."""
    if not isinstance(raw_tools, list):
        return ()

    tools: list[Tool] = []
    for entry in raw_tools:
        try:
            tools.append(Tool.model_validate(entry))
        except ValidationError as e:
            logger.warning(f"Skipping malformed tool definition: {e.error_count()} error(s)")
    return tuple(tools)

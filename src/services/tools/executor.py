"""Executes agent tools (Google Sheets append, outbound webhook)."""

from __future__ import annotations

import asyncio
import json
from typing import Any

import aiohttp

from src.config import Settings, get_settings
from src.logging_config import describe_payload, get_logger
from src.observability.metrics import record_tool_execution
from src.services.tools.exceptions import ToolExecutionError
from src.services.tools.models import Tool, ToolType
from src.services.tools.sheets import (
    GoogleSheetsClient,
    SpreadsheetProvider,
    extract_spreadsheet_id,
)

logger: Any = get_logger(__name__)


class ToolExecutor:
    """Runs a single tool with collected data.

    `execute` never raises: every failure is logged and reported as False.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        sheets: SpreadsheetProvider | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._sheets = sheets or GoogleSheetsClient(settings=self._settings)

    async def execute(self, tool: Tool, data: dict[str, Any]) -> bool:
        """Execute a tool.

        Args:
            tool: Tool definition from the session's tool list
            data: Field values keyed by parameter name

        Returns:
            True if the side effect succeeded
        """
        logger.info(f"Executing tool {tool.name} ({tool.type}) with fields: {describe_payload(data)}")

        try:
            match tool.tool_type:
                case ToolType.GOOGLE_SHEETS:
                    await self._execute_sheets(tool, data)
                case ToolType.WEBHOOK:
                    await self._execute_webhook(tool, data)
                case _:
                    raise ToolExecutionError(tool.name, f"unsupported tool type {tool.type}")
            success = True
        except ToolExecutionError as e:
            logger.error(f"Tool execution failed: {e}")
            success = False
        except Exception as e:
            logger.error(f"Unexpected error executing tool {tool.name}: {e}")
            success = False

        record_tool_execution(tool.type, success)
        return success

    async def _execute_sheets(self, tool: Tool, data: dict[str, Any]) -> None:
        spreadsheet_id = extract_spreadsheet_id(tool.url)
        if not spreadsheet_id:
            raise ToolExecutionError(tool.name, "invalid or missing Google Sheets URL")

        result = await self._sheets.append_generic_row(spreadsheet_id, data, tool.sheet_name)
        if not result.success:
            raise ToolExecutionError(tool.name, f"Google Sheets append failed: {result.error}")

        logger.info(f"Tool {tool.name}: row appended to sheet '{tool.sheet_name}'")

    async def _execute_webhook(self, tool: Tool, data: dict[str, Any]) -> None:
        if not tool.url:
            raise ToolExecutionError(tool.name, "webhook URL is missing")

        method = tool.method or "POST"
        headers = {"Content-Type": "application/json", **tool.headers}
        body = json.dumps(data) if method != "GET" else None
        timeout = aiohttp.ClientTimeout(total=self._settings.tool_timeout_seconds)

        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.request(method, tool.url, headers=headers, data=body) as resp:
                    if not 200 <= resp.status < 300:
                        raise ToolExecutionError(tool.name, f"webhook returned {resp.status}")
                    logger.info(f"Tool {tool.name}: webhook returned {resp.status}")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ToolExecutionError(tool.name, f"webhook request failed: {e}") from e

    async def close(self) -> None:
        close = getattr(self._sheets, "close", None)
        if close is not None:
            await close()

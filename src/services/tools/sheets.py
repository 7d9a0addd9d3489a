"""Google Sheets client for the spreadsheet-append tool."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Protocol
from urllib.parse import quote

import httpx

from src.config import Settings, get_settings
from src.logging_config import get_logger

logger: Any = get_logger(__name__)

SHEETS_API_BASE = "https://sheets.googleapis.com/v4/spreadsheets"
SPREADSHEET_URL_RE = re.compile(r"/spreadsheets/d/([a-zA-Z0-9-_]+)")
BARE_SPREADSHEET_ID_RE = re.compile(r"^[a-zA-Z0-9-_]{25,}$")


def extract_spreadsheet_id(url: str | None) -> str | None:
    """Pull the spreadsheet id out of a sharing URL (or accept a bare id)."""
    if not url:
        return None
    match = SPREADSHEET_URL_RE.search(url)
    if match:
        return match.group(1)
    if BARE_SPREADSHEET_ID_RE.match(url.strip()):
        return url.strip()
    return None


@dataclass(slots=True)
class SheetsAppendResult:
    """Outcome of appending one row."""

    success: bool
    error: str | None = None
    updated_range: str | None = None


class SpreadsheetProvider(Protocol):
    """Appends a row of named values to a sheet."""

    async def append_generic_row(
        self,
        spreadsheet_id: str,
        row_data: dict[str, Any],
        sheet_name: str,
    ) -> SheetsAppendResult:
        ...


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    return str(value)


class GoogleSheetsClient:
    """Sheets v4 REST client.

    The first row of the target sheet is treated as the header. Rows are
    written in header order; unseen fields extend the header.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
        *,
        base_url: str = SHEETS_API_BASE,
    ) -> None:
        self._settings = settings or get_settings()
        self._client = client
        self._base_url = base_url

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._settings.tool_timeout_seconds)
        return self._client

    def _headers(self) -> dict[str, str]:
        token = self._settings.google_sheets_access_token
        return {"Authorization": f"Bearer {token.get_secret_value()}"} if token else {}

    def _values_url(self, spreadsheet_id: str, cell_range: str, suffix: str = "") -> str:
        return f"{self._base_url}/{spreadsheet_id}/values/{quote(cell_range, safe='')}{suffix}"

    async def append_generic_row(
        self,
        spreadsheet_id: str,
        row_data: dict[str, Any],
        sheet_name: str,
    ) -> SheetsAppendResult:
        """Append one row keyed by field name."""
        if not self._settings.google_sheets_access_token:
            return SheetsAppendResult(success=False, error="Google Sheets token is not configured")

        try:
            header = await self._ensure_header(spreadsheet_id, sheet_name, list(row_data))
            row = [_cell(row_data.get(column)) for column in header]

            response = await self.client.post(
                self._values_url(spreadsheet_id, f"{sheet_name}!A1", ":append"),
                params={"valueInputOption": "USER_ENTERED", "insertDataOption": "INSERT_ROWS"},
                headers=self._headers(),
                json={"values": [row]},
            )
            if response.status_code >= 400:
                return SheetsAppendResult(
                    success=False,
                    error=f"Sheets append failed: {response.status_code}",
                )

            updates = response.json().get("updates", {})
            return SheetsAppendResult(success=True, updated_range=updates.get("updatedRange"))

        except httpx.HTTPError as e:
            logger.error(f"Google Sheets transport error: {e}")
            return SheetsAppendResult(success=False, error=str(e))

    async def _ensure_header(
        self,
        spreadsheet_id: str,
        sheet_name: str,
        fields: list[str],
    ) -> list[str]:
        """Return the sheet header, creating the sheet or extending the header as needed."""
        response = await self.client.get(
            self._values_url(spreadsheet_id, f"{sheet_name}!1:1"),
            headers=self._headers(),
        )

        if response.status_code == 400:
            # Range parse errors mean the tab does not exist yet.
            await self._add_sheet(spreadsheet_id, sheet_name)
            existing: list[str] = []
        elif response.status_code >= 400:
            response.raise_for_status()
            existing = []
        else:
            values = response.json().get("values") or [[]]
            existing = [str(v) for v in values[0]]

        header = existing + [f for f in fields if f not in existing]
        if header != existing:
            update = await self.client.put(
                self._values_url(spreadsheet_id, f"{sheet_name}!1:1"),
                params={"valueInputOption": "RAW"},
                headers=self._headers(),
                json={"values": [header]},
            )
            update.raise_for_status()
        return header

    async def _add_sheet(self, spreadsheet_id: str, sheet_name: str) -> None:
        response = await self.client.post(
            f"{self._base_url}/{spreadsheet_id}:batchUpdate",
            headers=self._headers(),
            json={"requests": [{"addSheet": {"properties": {"title": sheet_name}}}]},
        )
        response.raise_for_status()
        logger.info(f"Created sheet tab '{sheet_name}'")

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

"""Agent tools: definitions, execution and parameter extraction."""

from src.services.tools.exceptions import ToolExecutionError
from src.services.tools.executor import ToolExecutor
from src.services.tools.extractor import ExtractionResult, ToolDataExtractor, find_json_object
from src.services.tools.models import Tool, ToolParameter, ToolType, parse_tools
from src.services.tools.phases import (
    ToolRunOutcome,
    process_tools_after_call,
    process_tools_during_call,
    run_tools_for_phase,
)
from src.services.tools.sheets import (
    GoogleSheetsClient,
    SheetsAppendResult,
    SpreadsheetProvider,
    extract_spreadsheet_id,
)

__all__ = [
    # Models
    "Tool",
    "ToolParameter",
    "ToolType",
    "parse_tools",
    # Execution
    "ToolExecutor",
    "ToolExecutionError",
    # Extraction
    "ToolDataExtractor",
    "ExtractionResult",
    "find_json_object",
    # Phases
    "ToolRunOutcome",
    "run_tools_for_phase",
    "process_tools_during_call",
    "process_tools_after_call",
    # Google Sheets
    "GoogleSheetsClient",
    "SheetsAppendResult",
    "SpreadsheetProvider",
    "extract_spreadsheet_id",
]

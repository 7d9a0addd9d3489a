"""Run tools for a call phase (during or after the call)."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from src.logging_config import get_logger
from src.services.llm.protocol import Message
from src.services.tools.executor import ToolExecutor
from src.services.tools.extractor import ToolDataExtractor
from src.services.tools.models import Tool

logger: Any = get_logger(__name__)


@dataclass(slots=True)
class ToolRunOutcome:
    tool_name: str
    executed: bool
    success: bool
    missing_fields: tuple[str, ...] = ()


async def run_tools_for_phase(
    tools: Sequence[Tool],
    history: Sequence[Message],
    *,
    after_call: bool,
    extractor: ToolDataExtractor,
    executor: ToolExecutor,
) -> list[ToolRunOutcome]:
    """Extract and execute every tool belonging to a phase.

    Tools whose required parameters cannot be found are skipped. Failures of
    one tool never stop the others.
    """
    phase_tools = [tool for tool in tools if tool.run_after_call == after_call]
    if not phase_tools:
        return []

    phase = "after call" if after_call else "during call"
    logger.info(f"Processing {len(phase_tools)} tool(s) {phase}")

    outcomes: list[ToolRunOutcome] = []
    for tool in phase_tools:
        extraction = await extractor.extract_from_conversation(history, tool)
        if not extraction.success:
            reason = extraction.error or f"missing {extraction.missing_fields}"
            logger.info(f"Skipping tool {tool.name}: {reason}")
            outcomes.append(
                ToolRunOutcome(
                    tool_name=tool.name,
                    executed=False,
                    success=False,
                    missing_fields=tuple(extraction.missing_fields),
                )
            )
            continue

        success = await executor.execute(tool, extraction.data)
        if success:
            logger.info(f"Tool {tool.name} executed successfully {phase}")
        else:
            logger.error(f"Tool {tool.name} failed to execute {phase}")
        outcomes.append(ToolRunOutcome(tool_name=tool.name, executed=True, success=success))

    return outcomes


async def process_tools_during_call(
    tools: Sequence[Tool],
    history: Sequence[Message],
    *,
    extractor: ToolDataExtractor,
    executor: ToolExecutor,
) -> list[ToolRunOutcome]:
    """Run the extraction pass for tools that are not flagged `runAfterCall`.

    Library entry point for callers that batch inline tools. The live call path
    does not use it: the dialog model invokes inline tools itself.
    """
    return await run_tools_for_phase(
        tools, history, after_call=False, extractor=extractor, executor=executor
    )


async def process_tools_after_call(
    tools: Sequence[Tool],
    history: Sequence[Message],
    *,
    extractor: ToolDataExtractor,
    executor: ToolExecutor,
) -> list[ToolRunOutcome]:
    return await run_tools_for_phase(
        tools, history, after_call=True, extractor=extractor, executor=executor
    )

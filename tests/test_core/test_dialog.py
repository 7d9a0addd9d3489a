"""Tests for DialogOrchestrator and tool-call detection."""

import asyncio
import json

import pytest

from src.core.dialog import (
    LLM_APOLOGY,
    TOOL_CONTINUATION_PROMPT,
    TOOL_LOOP_FALLBACK,
    DialogOrchestrator,
    DialogState,
    parse_tool_call,
)
from src.core.session import VoiceSession
from src.services.llm.protocol import Role
from src.services.tools.executor import ToolExecutor
from src.services.tools.models import Tool
from tests.fakes import FakeLLM, FakeSheets, llm_failure, make_config

SHEET_URL = "https://docs.google.com/spreadsheets/d/1AbCdEfGhIjKlMnOpQrStUvWxYz/edit"


@pytest.fixture
def sheets_tool() -> Tool:
    return Tool.model_validate(
        {
            "name": "X",
            "description": "Save data",
            "type": "GoogleSheets",
            "webhookUrl": SHEET_URL,
            "parameters": [{"name": "a", "type": "string", "required": True}],
        }
    )


def build(settings, llm, tools=(), sheets=None):
    sheets = sheets or FakeSheets()
    executor = ToolExecutor(settings=settings, sheets=sheets)
    session = VoiceSession(connection_id="c1", config=make_config(tools=tools))
    return DialogOrchestrator(llm, executor, settings=settings), session, sheets


class TestParseToolCall:
    def test_plain_json(self) -> None:
        call = parse_tool_call('{"tool":"X","data":{"a":"1"}}')
        assert call is not None
        assert call.tool == "X"
        assert call.data == {"a": "1"}

    def test_fenced_json(self) -> None:
        call = parse_tool_call('```json\n{"tool": "X", "data": {}}\n```')
        assert call is not None
        assert call.tool == "X"

    @pytest.mark.parametrize(
        "text",
        [
            "Sure, I can help with that.",
            'Here you go: {"tool":"X","data":{}}',
            '{"tool":"X"}',
            '{"tool":"X","data":"not-an-object"}',
            '{"tool":5,"data":{}}',
            "{not json}",
            "[1, 2]",
        ],
    )
    def test_ordinary_replies(self, text: str) -> None:
        assert parse_tool_call(text) is None


class TestDialogOrchestrator:
    @pytest.mark.asyncio
    async def test_plain_reply(self, settings) -> None:
        llm = FakeLLM(["Hi! What can I do for you?"])
        dialog, session, _ = build(settings, llm)

        result = await dialog.respond(session, "hello")

        assert result.text == "Hi! What can I do for you?"
        assert result.state is DialogState.RESPONDING
        assert [t.content for t in session.history.turns] == ["hello"]
        assert session.input_tokens == 12
        assert session.output_tokens == 7

    @pytest.mark.asyncio
    async def test_tool_call_executes_once_and_follows_up_once(self, settings, sheets_tool) -> None:
        llm = FakeLLM(['{"tool":"X","data":{"a":"1"}}', "All saved!"])
        dialog, session, sheets = build(settings, llm, tools=[sheets_tool])

        result = await dialog.respond(session, "save it")

        assert result.text == "All saved!"
        assert len(sheets.rows) == 1
        assert sheets.rows[0] == ("1AbCdEfGhIjKlMnOpQrStUvWxYz", {"a": "1"}, "X")
        assert len(llm.generate_calls) == 2
        assert result.tool_results == [True]

        contents = [t.content for t in session.history.turns]
        assert contents[0] == "save it"
        assert json.loads(contents[1]) == {
            "tool": "X",
            "status": "success",
            "message": "Data processing initiated",
        }
        assert contents[2] == TOOL_CONTINUATION_PROMPT
        assert all(t.role is Role.USER for t in session.history.turns)
        assert session.input_tokens == 24

    @pytest.mark.asyncio
    async def test_failed_tool_reports_failed_status(self, settings, sheets_tool) -> None:
        llm = FakeLLM(['{"tool":"X","data":{"a":"1"}}', "Sorry, that did not work."])
        dialog, session, _ = build(settings, llm, tools=[sheets_tool], sheets=FakeSheets(success=False))

        result = await dialog.respond(session, "save it")

        assert result.tool_results == [False]
        status = json.loads(session.history.turns[1].content)
        assert status["status"] == "failed"

    @pytest.mark.asyncio
    async def test_unknown_tool_returns_raw_text(self, settings, sheets_tool) -> None:
        raw = '{"tool":"Nope","data":{"a":"1"}}'
        llm = FakeLLM([raw])
        dialog, session, sheets = build(settings, llm, tools=[sheets_tool])

        result = await dialog.respond(session, "save it")

        assert result.text == raw
        assert sheets.rows == []
        assert len(llm.generate_calls) == 1

    @pytest.mark.asyncio
    async def test_tool_loop_is_capped(self, settings_factory, sheets_tool) -> None:
        settings = settings_factory(max_tool_iterations=3)
        llm = FakeLLM(default_reply='{"tool":"X","data":{"a":"1"}}')
        dialog, session, sheets = build(settings, llm, tools=[sheets_tool])

        result = await dialog.respond(session, "loop forever")

        assert result.text == TOOL_LOOP_FALLBACK
        assert result.state is DialogState.FALLBACK
        assert len(sheets.rows) == 3
        assert len(llm.generate_calls) == 4

    @pytest.mark.asyncio
    async def test_llm_failure_returns_apology(self, settings) -> None:
        llm = FakeLLM([llm_failure()])
        dialog, session, _ = build(settings, llm)

        result = await dialog.respond(session, "hello")

        assert result.text == LLM_APOLOGY
        assert result.is_fallback

    @pytest.mark.asyncio
    async def test_unexpected_llm_error_returns_apology(self, settings) -> None:
        llm = FakeLLM([RuntimeError("response did not match schema")])
        dialog, session, _ = build(settings, llm)

        result = await dialog.respond(session, "hello")

        assert result.text == LLM_APOLOGY
        assert result.state is DialogState.FALLBACK

    @pytest.mark.asyncio
    async def test_llm_timeout_returns_apology(self, settings_factory) -> None:
        settings = settings_factory(llm_timeout_seconds=0.01)
        llm = FakeLLM(["too late"], delay=0.2)
        dialog, session, _ = build(settings, llm)

        result = await asyncio.wait_for(dialog.respond(session, "hello"), timeout=1.0)

        assert result.text == LLM_APOLOGY

    @pytest.mark.asyncio
    async def test_history_sent_to_model(self, settings) -> None:
        llm = FakeLLM(["first", "second"])
        dialog, session, _ = build(settings, llm)

        first = await dialog.respond(session, "one")
        session.history.add_assistant(first.text)
        await dialog.respond(session, "two")

        assert [t.content for t in llm.generate_calls[1]] == ["one", "first", "two"]

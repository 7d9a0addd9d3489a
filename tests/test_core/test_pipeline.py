"""Tests for VoicePipeline orchestrator."""

import asyncio
import json

import pytest

from src.core.pipeline import STT_ERROR_MESSAGE, TTS_ERROR_MESSAGE, VoicePipeline
from src.core.session import VoiceSession
from src.services.tools.executor import ToolExecutor
from src.services.tools.models import Tool
from tests.fakes import (
    FakeLLM,
    FakeSender,
    FakeSheets,
    FakeSTT,
    FakeTTS,
    make_config,
    silence_chunk,
    speech_chunk,
    stt_failure,
    wait_until,
)


def build_pipeline(
    settings,
    *,
    llm=None,
    stt=None,
    tts=None,
    tools=(),
    sheets=None,
):
    session = VoiceSession(connection_id="browser-1-test", config=make_config(tools=tools))
    sender = FakeSender()
    pipeline = VoicePipeline(
        session,
        sender,
        settings=settings,
        llm=llm or FakeLLM(),
        stt=stt or FakeSTT(),
        tts=tts or FakeTTS(),
        tool_executor=ToolExecutor(settings=settings, sheets=sheets or FakeSheets()),
    )
    return pipeline, session, sender


def say_something(pipeline: VoicePipeline) -> None:
    """Feed enough speech plus one silent chunk to close an utterance."""
    for _ in range(6):
        pipeline.ingest_audio(speech_chunk())
    pipeline.ingest_audio(silence_chunk())


class TestTurn:
    @pytest.mark.asyncio
    async def test_turn_emits_transcript_reply_and_audio(self, settings) -> None:
        llm = FakeLLM(["Hi there!"])
        pipeline, session, sender = build_pipeline(settings, llm=llm, stt=FakeSTT(["hello"]))

        say_something(pipeline)
        await wait_until(lambda: "audio" in sender.names())
        await wait_until(lambda: not session.is_processing)

        assert sender.names() == ["transcript", "agent-response", "audio"]
        assert sender.events[0] == {"event": "transcript", "text": "hello", "isFinal": True}
        assert sender.events[1] == {"event": "agent-response", "text": "Hi there!"}
        assert sender.events[2]["format"] == "mp3"
        assert [t.content for t in session.history.turns] == ["hello", "Hi there!"]
        assert session.characters_synthesized == len("Hi there!")
        assert session.audio_seconds_transcribed > 0

        await pipeline.finalize()

    @pytest.mark.asyncio
    async def test_transcription_receives_wav(self, settings) -> None:
        stt = FakeSTT(["hello"])
        pipeline, session, _ = build_pipeline(settings, stt=stt)

        say_something(pipeline)
        await wait_until(lambda: stt.calls)

        wav = stt.calls[0]
        assert wav[:4] == b"RIFF"
        assert len(wav) == 44 + 7 * 640

        await pipeline.finalize()

    @pytest.mark.asyncio
    async def test_empty_transcript_starts_no_turn(self, settings) -> None:
        llm = FakeLLM()
        stt = FakeSTT(["   "])
        pipeline, session, sender = build_pipeline(settings, llm=llm, stt=stt)

        say_something(pipeline)
        await wait_until(lambda: stt.calls)
        await wait_until(lambda: not session.is_processing)

        assert sender.events == []
        assert llm.generate_calls == []

        await pipeline.finalize()

    @pytest.mark.asyncio
    async def test_stt_failure_sends_error(self, settings) -> None:
        llm = FakeLLM()
        pipeline, session, sender = build_pipeline(settings, llm=llm, stt=FakeSTT([stt_failure()]))

        say_something(pipeline)
        await wait_until(lambda: sender.events)
        await wait_until(lambda: not session.is_processing)

        assert sender.events == [{"event": "error", "message": STT_ERROR_MESSAGE}]
        assert llm.generate_calls == []

        await pipeline.finalize()

    @pytest.mark.asyncio
    async def test_slow_transcription_times_out(self, settings_factory) -> None:
        llm = FakeLLM()
        pipeline, session, sender = build_pipeline(
            settings_factory(stt_timeout_seconds=0.05),
            llm=llm,
            stt=FakeSTT(["hello"], delay=1.0),
        )

        say_something(pipeline)
        await wait_until(lambda: sender.events)
        await wait_until(lambda: not session.is_processing)

        assert sender.events == [{"event": "error", "message": STT_ERROR_MESSAGE}]
        assert llm.generate_calls == []

        await pipeline.finalize()

    @pytest.mark.asyncio
    async def test_tts_failure_keeps_reply(self, settings) -> None:
        pipeline, session, sender = build_pipeline(settings, tts=FakeTTS(fail=True))

        say_something(pipeline)
        await wait_until(lambda: "error" in sender.names())

        assert sender.names() == ["transcript", "agent-response", "error"]
        assert sender.events[-1]["message"] == TTS_ERROR_MESSAGE
        await wait_until(lambda: not session.is_processing)

        await pipeline.finalize()

    @pytest.mark.asyncio
    async def test_short_noise_never_transcribed(self, settings) -> None:
        stt = FakeSTT()
        pipeline, _, _ = build_pipeline(settings, stt=stt)

        pipeline.ingest_audio(speech_chunk(n_bytes=640))
        pipeline.ingest_audio(silence_chunk(n_bytes=640))
        await asyncio.sleep(0.15)

        assert stt.calls == []

        await pipeline.finalize()


class TestInterruption:
    @pytest.mark.asyncio
    async def test_stop_speaking_clears_processing_and_emits_stop_audio(self, settings) -> None:
        llm = FakeLLM(["a long answer"], delay=0.2)
        pipeline, session, sender = build_pipeline(settings, llm=llm)

        say_something(pipeline)
        await wait_until(lambda: "transcript" in sender.names())
        assert session.is_processing is True

        await pipeline.handle_interruption()

        assert session.is_processing is False
        assert session.is_interrupted is True
        assert session.barge_in_count == 1
        assert sender.names()[-1] == "stop-audio"

        await pipeline.finalize()

    @pytest.mark.asyncio
    async def test_stale_turn_output_is_suppressed(self, settings) -> None:
        llm = FakeLLM(["a long answer"], delay=0.1)
        pipeline, session, sender = build_pipeline(settings, llm=llm)

        say_something(pipeline)
        await wait_until(lambda: "transcript" in sender.names())
        await pipeline.handle_interruption()
        await wait_until(lambda: session.history.last is not None and session.history.last.content == "a long answer")
        await asyncio.sleep(0.05)

        assert sender.names() == ["transcript", "stop-audio"]

        await pipeline.finalize()

    @pytest.mark.asyncio
    async def test_stale_transcription_error_is_suppressed(self, settings) -> None:
        stt = FakeSTT([stt_failure()], delay=0.1)
        pipeline, session, sender = build_pipeline(settings, stt=stt)

        say_something(pipeline)
        await wait_until(lambda: stt.calls)
        await pipeline.handle_interruption()
        await asyncio.sleep(0.2)

        assert sender.names() == ["stop-audio"]

        await pipeline.finalize()

    @pytest.mark.asyncio
    async def test_stale_synthesis_error_is_suppressed(self, settings) -> None:
        tts = FakeTTS(fail=True, delay=0.1)
        pipeline, session, sender = build_pipeline(settings, tts=tts)

        say_something(pipeline)
        await wait_until(lambda: tts.calls)
        await pipeline.handle_interruption()
        await asyncio.sleep(0.2)

        assert sender.names() == ["transcript", "agent-response", "stop-audio"]

        await pipeline.finalize()

    @pytest.mark.asyncio
    async def test_new_utterance_after_interruption_is_accepted(self, settings) -> None:
        llm = FakeLLM(["first answer", "second answer"], delay=0.1)
        stt = FakeSTT(["first", "second"])
        pipeline, session, sender = build_pipeline(settings, llm=llm, stt=stt)

        say_something(pipeline)
        await wait_until(lambda: "transcript" in sender.names())
        await pipeline.handle_interruption()

        say_something(pipeline)
        await wait_until(lambda: len(stt.calls) == 2)
        assert session.is_interrupted is False

        await wait_until(lambda: "agent-response" in sender.names())
        responses = [e["text"] for e in sender.of_type("agent-response")]
        assert responses == ["second answer"]

        await pipeline.finalize()


class TestBusyPolicy:
    @pytest.mark.asyncio
    async def test_drop_policy_discards_overlapping_utterance(self, settings_factory) -> None:
        settings = settings_factory(busy_policy="drop")
        stt = FakeSTT(["first", "second"])
        llm = FakeLLM(["answer"], delay=0.25)
        pipeline, session, _ = build_pipeline(settings, llm=llm, stt=stt)

        say_something(pipeline)
        await wait_until(lambda: session.is_processing)
        say_something(pipeline)
        await asyncio.sleep(0.1)
        await wait_until(lambda: not session.is_processing)
        await asyncio.sleep(0.1)

        assert len(stt.calls) == 1

        await pipeline.finalize()

    @pytest.mark.asyncio
    async def test_queue_policy_runs_newest_pending_utterance(self, settings_factory) -> None:
        settings = settings_factory(busy_policy="queue")
        stt = FakeSTT(["first", "second", "third"])
        llm = FakeLLM(["one", "two"], delay=0.3)
        pipeline, session, sender = build_pipeline(settings, llm=llm, stt=stt)

        say_something(pipeline)
        await wait_until(lambda: session.is_processing)
        say_something(pipeline)
        await asyncio.sleep(0.08)
        say_something(pipeline)
        await asyncio.sleep(0.08)

        assert len(stt.calls) == 1
        assert pipeline.pending_utterance is not None

        await wait_until(lambda: len(sender.of_type("agent-response")) == 2, timeout=3.0)
        assert len(stt.calls) == 2
        assert pipeline.pending_utterance is None

        await pipeline.finalize()


class TestGreeting:
    @pytest.mark.asyncio
    async def test_greeting_sent_and_recorded(self, settings) -> None:
        tts = FakeTTS()
        pipeline, session, sender = build_pipeline(settings, tts=tts)

        pipeline.schedule_greeting()
        await wait_until(lambda: "audio" in sender.names())

        assert sender.events[0] == {
            "event": "agent-response",
            "text": "Hello! How can I help you today?",
        }
        assert session.history.turns[0].content == "Hello! How can I help you today?"
        assert tts.calls[0][1] == "Hello! How can I help you today?"

        await pipeline.finalize()

    @pytest.mark.asyncio
    async def test_finalize_cancels_pending_greeting(self, settings_factory) -> None:
        settings = settings_factory(greeting_delay_ms=200)
        pipeline, _, sender = build_pipeline(settings)

        pipeline.schedule_greeting()
        await pipeline.finalize()
        await asyncio.sleep(0.25)

        assert sender.events == []


class TestTeardown:
    @pytest.mark.asyncio
    async def test_finalize_cancels_in_flight_turn(self, settings) -> None:
        llm = FakeLLM(["never delivered"], delay=1.0)
        pipeline, session, sender = build_pipeline(settings, llm=llm)

        say_something(pipeline)
        await wait_until(lambda: session.is_processing)

        metrics = await pipeline.finalize()

        assert session.is_processing is False
        assert "agent-response" not in sender.names()
        assert metrics["connection_id"] == "browser-1-test"

    @pytest.mark.asyncio
    async def test_finalize_is_idempotent_and_close_releases_providers(self, settings) -> None:
        llm, stt, tts, sheets = FakeLLM(), FakeSTT(), FakeTTS(), FakeSheets()
        pipeline, _, _ = build_pipeline(settings, llm=llm, stt=stt, tts=tts, sheets=sheets)

        await pipeline.finalize()
        await pipeline.finalize()
        await pipeline.close()
        await pipeline.close()

        assert llm.closed and stt.closed and tts.closed and sheets.closed

    @pytest.mark.asyncio
    async def test_audio_after_finalize_is_ignored(self, settings) -> None:
        stt = FakeSTT()
        pipeline, _, _ = build_pipeline(settings, stt=stt)

        await pipeline.finalize()
        say_something(pipeline)
        await asyncio.sleep(0.1)

        assert stt.calls == []


class TestEndToEnd:
    @pytest.mark.asyncio
    async def test_inline_sheet_tool_and_after_call_webhook(self, settings, webhook_server) -> None:
        inline_tool = Tool.model_validate(
            {
                "name": "save_lead",
                "description": "Save the caller's contact details",
                "type": "GoogleSheets",
                "webhookUrl": "https://docs.google.com/spreadsheets/d/1AbCdEfGhIjKlMnOpQrStUvWxYz/edit",
                "parameters": [
                    {"name": "name", "type": "string", "required": True},
                    {"name": "email", "type": "string", "required": True},
                ],
            }
        )
        after_call_tool = Tool.model_validate(
            {
                "name": "notify_crm",
                "description": "Send the lead to the CRM",
                "type": "Webhook",
                "webhookUrl": webhook_server.url,
                "runAfterCall": True,
                "parameters": [
                    {"name": "name", "type": "string", "required": True},
                    {"name": "email", "type": "string", "required": True},
                ],
            }
        )
        llm = FakeLLM(
            [
                '{"tool": "save_lead", "data": {"name": "Alex", "email": "a@b.com"}}',
                "Thanks Alex, you're all set!",
            ],
            chat_replies=['{"name": "Alex", "email": "a@b.com"}'],
        )
        sheets = FakeSheets()
        pipeline, session, sender = build_pipeline(
            settings,
            llm=llm,
            stt=FakeSTT(["I'm Alex, my email is a@b.com"]),
            tools=[inline_tool, after_call_tool],
            sheets=sheets,
        )

        say_something(pipeline)
        await wait_until(lambda: "audio" in sender.names())

        assert sender.names() == ["transcript", "agent-response", "audio"]
        reply = sender.of_type("agent-response")[0]["text"]
        assert reply == "Thanks Alex, you're all set!"
        with pytest.raises(json.JSONDecodeError):
            json.loads(reply)

        assert len(sheets.rows) == 1
        assert sheets.rows[0][1] == {"name": "Alex", "email": "a@b.com"}
        assert webhook_server.received == []

        await pipeline.finalize()
        outcomes = await pipeline.run_after_call_tools()

        assert [(o.tool_name, o.success) for o in outcomes] == [("notify_crm", True)]
        assert len(webhook_server.received) == 1
        request = webhook_server.received[0]
        assert request["method"] == "POST"
        assert json.loads(request["body"]) == {"name": "Alex", "email": "a@b.com"}

        await pipeline.close()

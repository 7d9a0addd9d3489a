"""Voice pipeline for a browser call.

Orchestrates one session's turn pipeline:
- PCM chunks → AudioSegmenter → utterance
- utterance → WAV → STT → DialogOrchestrator → TTS → audio event
- Supports barge-in: a stop-speaking event suppresses the in-flight turn
- Tracks metrics for monitoring
"""

from __future__ import annotations

import asyncio
import contextlib
import time
from typing import Any, Protocol

from src.config import Settings, get_settings
from src.core.dialog import DialogOrchestrator
from src.core.segmenter import AudioSegmenter, DelayedTask
from src.core.session import VoiceSession
from src.logging_config import get_logger, truncate_for_log
from src.observability.metrics import (
    DROPPED_UTTERANCES,
    record_pipeline_error,
    record_stage_latency,
)
from src.services.llm.groq import GroqService
from src.services.llm.protocol import LLMService
from src.services.stt.exceptions import TranscriptionError
from src.services.stt.protocol import STTService
from src.services.stt.sarvam import SarvamSTTService
from src.services.stt.wav import pcm16_to_wav, pcm_duration_seconds
from src.services.tools.executor import ToolExecutor
from src.services.tools.extractor import ToolDataExtractor
from src.services.tools.phases import ToolRunOutcome, process_tools_after_call
from src.services.tts.exceptions import TTSServiceError
from src.services.tts.router import TTSRouter

logger: Any = get_logger(__name__)

STT_ERROR_MESSAGE = "Speech recognition failed"
TTS_ERROR_MESSAGE = "Failed to generate speech"


class EventSender(Protocol):
    """Protocol for sending JSON events back to the client."""

    async def send_event(self, event: dict[str, Any]) -> None:
        """Send one event. Must not raise once the client is gone."""
        ...


class VoicePipeline:
    """Runs the segment → transcribe → respond → speak loop for one session.

    Turns run as tracked tasks so socket reads never block on providers.
    Only one turn owns `is_processing` at a time; utterances arriving while
    a turn is in flight are dropped or parked according to `busy_policy`.
    """

    def __init__(
        self,
        session: VoiceSession,
        sender: EventSender,
        settings: Settings | None = None,
        *,
        llm: LLMService | None = None,
        stt: STTService | None = None,
        tts: TTSRouter | None = None,
        tool_executor: ToolExecutor | None = None,
    ) -> None:
        self._session = session
        self._sender = sender
        self._settings = settings or get_settings()

        # Providers are per session and closed with it
        self._llm = llm or GroqService(settings=self._settings)
        self._stt = stt or SarvamSTTService(settings=self._settings)
        self._tts = tts or TTSRouter(settings=self._settings)
        self._tools = tool_executor or ToolExecutor(settings=self._settings)

        self._dialog = DialogOrchestrator(self._llm, self._tools, settings=self._settings)
        self._extractor = ToolDataExtractor(self._llm, settings=self._settings)
        self._segmenter = AudioSegmenter(
            self._on_utterance,
            settings=self._settings,
            name=session.connection_id,
        )

        self._turn_counter = 0
        self._turn_tasks: set[asyncio.Task[None]] = set()
        self._pending_utterance: bytes | None = None
        self._greeting_timer: DelayedTask | None = None
        self._finalized = False
        self._closed = False

    @property
    def session(self) -> VoiceSession:
        return self._session

    @property
    def segmenter(self) -> AudioSegmenter:
        return self._segmenter

    @property
    def pending_utterance(self) -> bytes | None:
        return self._pending_utterance

    # =========================================================================
    # Input
    # =========================================================================

    def ingest_audio(self, chunk: bytes) -> None:
        """Feed one decoded PCM chunk from the client."""
        if self._finalized:
            return
        self._segmenter.ingest(chunk)

    async def _on_utterance(self, pcm: bytes) -> None:
        if self._finalized:
            return

        if self._session.is_processing:
            if self._settings.busy_policy == "queue":
                if self._pending_utterance is not None:
                    logger.info("Replacing queued utterance with a newer one")
                self._pending_utterance = pcm
            else:
                logger.info(
                    f"Dropping utterance ({len(pcm)} bytes), turn already in flight "
                    f"for {self._session.connection_id}"
                )
                DROPPED_UTTERANCES.inc()
            return

        self._start_turn(pcm)

    def _start_turn(self, pcm: bytes) -> None:
        self._turn_counter += 1
        turn_id = self._turn_counter

        self._session.is_processing = True
        self._session.is_interrupted = False
        self._session.active_turn_id = turn_id
        epoch = self._session.interruption_epoch

        task = asyncio.create_task(
            self._run_turn(pcm, turn_id, epoch),
            name=f"turn-{self._session.connection_id}-{turn_id}",
        )
        self._turn_tasks.add(task)
        task.add_done_callback(self._turn_tasks.discard)

    def _is_stale(self, epoch: int) -> bool:
        return epoch != self._session.interruption_epoch

    # =========================================================================
    # Turn
    # =========================================================================

    async def _run_turn(self, pcm: bytes, turn_id: int, epoch: int) -> None:
        turn_start = time.perf_counter()
        try:
            text = await self._transcribe(pcm, epoch)
            if not text:
                return

            self._session.total_turns += 1
            if not self._is_stale(epoch):
                await self._sender.send_event({"event": "transcript", "text": text, "isFinal": True})

            result = await self._dialog.respond(self._session, text)
            self._session.history.add_assistant(result.text)

            if self._is_stale(epoch):
                logger.info(f"Turn {turn_id} interrupted, suppressing reply")
                return

            await self._sender.send_event({"event": "agent-response", "text": result.text})
            if await self._speak(result.text, epoch):
                record_stage_latency("turn", (time.perf_counter() - turn_start) * 1000)

        except Exception as e:
            logger.error(f"Turn {turn_id} failed for {self._session.connection_id}: {e}")
            record_pipeline_error("turn")
        finally:
            self._release_turn(turn_id)

    def _release_turn(self, turn_id: int) -> None:
        if self._session.active_turn_id != turn_id:
            return
        self._session.is_processing = False
        self._session.active_turn_id = None
        self._start_pending()

    def _start_pending(self) -> None:
        if self._pending_utterance is None or self._finalized or self._session.is_processing:
            return
        pcm, self._pending_utterance = self._pending_utterance, None
        self._start_turn(pcm)

    async def _transcribe(self, pcm: bytes, epoch: int) -> str:
        """Transcribe an utterance. Returns "" when nothing usable was heard."""
        wav = pcm16_to_wav(pcm, sample_rate=self._settings.input_sample_rate)
        try:
            transcript = await asyncio.wait_for(
                self._stt.transcribe(wav),
                timeout=self._settings.stt_timeout_seconds,
            )
        except (TranscriptionError, asyncio.TimeoutError) as e:
            logger.error(f"Transcription failed for {self._session.connection_id}: {e}")
            record_pipeline_error("stt")
            if not self._is_stale(epoch):
                await self._sender.send_event({"event": "error", "message": STT_ERROR_MESSAGE})
            return ""

        self._session.audio_seconds_transcribed += pcm_duration_seconds(
            pcm, sample_rate=self._settings.input_sample_rate
        )
        if transcript.latency_ms:
            record_stage_latency("stt", transcript.latency_ms)

        text = transcript.text.strip()
        if not text:
            logger.debug("Empty transcript, no turn started")
            return ""

        logger.info(f"Transcript: {truncate_for_log(text)}")
        return text

    async def _speak(self, text: str, epoch: int) -> bool:
        """Synthesize text and send one audio event. Returns True if sent."""
        try:
            audio = await asyncio.wait_for(
                self._tts.synthesize(self._session.config.voice_id, text),
                timeout=self._settings.tts_timeout_seconds,
            )
        except (TTSServiceError, asyncio.TimeoutError) as e:
            logger.error(f"TTS failed for {self._session.connection_id}: {e}")
            record_pipeline_error("tts")
            if not self._is_stale(epoch):
                await self._sender.send_event({"event": "error", "message": TTS_ERROR_MESSAGE})
            return False

        self._session.characters_synthesized += len(text)
        if self._is_stale(epoch):
            logger.debug("Dropping synthesized audio after interruption")
            return False

        await self._sender.send_event(audio.to_event())
        return True

    # =========================================================================
    # Control
    # =========================================================================

    async def handle_interruption(self) -> None:
        """Stop agent playback after the user starts talking over it."""
        session = self._session
        session.is_interrupted = True
        session.interruption_epoch += 1
        session.is_processing = False
        session.active_turn_id = None
        session.barge_in_count += 1

        logger.info(f"Interruption for {session.connection_id}")
        await self._sender.send_event({"event": "stop-audio"})
        self._start_pending()

    def schedule_greeting(self) -> None:
        """Send the agent greeting after a short delay."""
        self._greeting_timer = DelayedTask(
            self._settings.greeting_delay_ms / 1000,
            self._send_greeting,
            name=f"greeting-{self._session.connection_id}",
        )

    async def _send_greeting(self) -> None:
        if self._finalized:
            return
        greeting = self._session.config.greeting
        epoch = self._session.interruption_epoch
        await self._sender.send_event({"event": "agent-response", "text": greeting})
        self._session.history.add_assistant(greeting)
        await self._speak(greeting, epoch)

    # =========================================================================
    # Teardown
    # =========================================================================

    async def finalize(self) -> dict[str, Any]:
        """Stop all timers and turn tasks. Safe to call more than once.

        Providers stay open so after-call tools can still use the LLM;
        `close()` releases them.
        """
        if not self._finalized:
            self._finalized = True
            logger.info(f"Finalizing pipeline for {self._session.connection_id}")

            self._segmenter.close()
            self._pending_utterance = None
            if self._greeting_timer is not None:
                self._greeting_timer.cancel()
                await self._greeting_timer.wait()
                self._greeting_timer = None

            tasks = list(self._turn_tasks)
            for task in tasks:
                task.cancel()
            for task in tasks:
                with contextlib.suppress(asyncio.CancelledError):
                    await task

            self._session.is_processing = False

        return self._session.get_metrics()

    async def run_after_call_tools(self) -> list[ToolRunOutcome]:
        """Extract and execute the tools flagged to run once the call ends."""
        return await process_tools_after_call(
            self._session.tools,
            self._session.history.turns,
            extractor=self._extractor,
            executor=self._tools,
        )

    async def close(self) -> None:
        """Release provider clients."""
        if self._closed:
            return
        self._closed = True
        for name, resource in (
            ("llm", self._llm),
            ("stt", self._stt),
            ("tts", self._tts),
            ("tools", self._tools),
        ):
            try:
                await resource.close()
            except Exception as e:
                logger.warning(f"Failed to close {name} provider: {e}")

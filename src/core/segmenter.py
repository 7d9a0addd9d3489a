"""Energy-based utterance segmentation for incoming PCM audio.

Chunks of 16-bit little-endian mono PCM are buffered; a silence window after
speech closes the utterance and hands the joined bytes to a callback.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Awaitable, Callable
from typing import Any

import numpy as np

from src.config import Settings, get_settings
from src.logging_config import get_logger

logger: Any = get_logger(__name__)

UtteranceCallback = Callable[[bytes], Awaitable[None]]


def compute_rms(chunk: bytes) -> float:
    """Root-mean-square amplitude over complete 16-bit samples.

    A trailing odd byte is ignored; empty input has zero energy.
    """
    usable = len(chunk) - (len(chunk) % 2)
    if usable == 0:
        return 0.0
    samples = np.frombuffer(chunk[:usable], dtype="<i2").astype(np.float64)
    return float(np.sqrt(np.mean(samples * samples)))


class DelayedTask:
    """One-shot cancelable timer that runs a coroutine function after a delay."""

    def __init__(
        self,
        delay: float,
        callback: Callable[[], Awaitable[None]],
        *,
        name: str | None = None,
    ) -> None:
        self._task = asyncio.create_task(self._run(delay, callback), name=name)

    @staticmethod
    async def _run(delay: float, callback: Callable[[], Awaitable[None]]) -> None:
        await asyncio.sleep(delay)
        await callback()

    @property
    def pending(self) -> bool:
        return not self._task.done()

    def cancel(self) -> None:
        if not self._task.done():
            self._task.cancel()

    async def wait(self) -> None:
        with contextlib.suppress(asyncio.CancelledError):
            await self._task


class AudioSegmenter:
    """Groups audio chunks into utterances separated by silence.

    Speech cancels the pending silence timer. Silence with buffered audio arms
    the timer if none is pending. When it fires, the buffer is taken and
    cleared, and utterances shorter than the minimum are discarded.
    """

    def __init__(
        self,
        on_utterance: UtteranceCallback,
        settings: Settings | None = None,
        *,
        threshold: float | None = None,
        silence_window_ms: int | None = None,
        min_utterance_bytes: int | None = None,
        name: str = "segmenter",
    ) -> None:
        s = settings or get_settings()
        self._on_utterance = on_utterance
        self.threshold = threshold if threshold is not None else s.vad_silence_threshold
        self.silence_window_ms = (
            silence_window_ms if silence_window_ms is not None else s.vad_silence_window_ms
        )
        self.min_utterance_bytes = (
            min_utterance_bytes if min_utterance_bytes is not None else s.vad_min_utterance_bytes
        )
        self._name = name

        self._chunks: list[bytes] = []
        self._timer: DelayedTask | None = None
        self._last_speech: float | None = None
        self._closed = False

    @property
    def buffered_bytes(self) -> int:
        return sum(len(c) for c in self._chunks)

    @property
    def timer_pending(self) -> bool:
        return self._timer is not None and self._timer.pending

    @property
    def last_speech_at(self) -> float | None:
        """Loop time of the last chunk above threshold."""
        return self._last_speech

    def is_speech(self, chunk: bytes) -> bool:
        return compute_rms(chunk) > self.threshold

    def ingest(self, chunk: bytes) -> None:
        """Append a chunk and update the silence timer."""
        if self._closed:
            return

        self._chunks.append(chunk)

        if self.is_speech(chunk):
            self._last_speech = asyncio.get_running_loop().time()
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
        elif self._timer is None:
            self._timer = DelayedTask(
                self.silence_window_ms / 1000,
                self._on_silence,
                name=f"{self._name}-silence",
            )

    async def _on_silence(self) -> None:
        # Detach first so speech arriving during dispatch cannot cancel this task.
        self._timer = None
        audio = b"".join(self._chunks)
        self._chunks.clear()

        if len(audio) < self.min_utterance_bytes:
            logger.debug(f"Discarding short utterance ({len(audio)} bytes)")
            return

        logger.debug(f"Utterance complete ({len(audio)} bytes)")
        await self._on_utterance(audio)

    def close(self) -> None:
        """Cancel the timer and drop buffered audio. Nothing fires afterwards."""
        self._closed = True
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._chunks.clear()

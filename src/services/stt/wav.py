"""WAV container framing for raw PCM utterances."""

from __future__ import annotations

import struct

WAV_HEADER_SIZE = 44
PCM_FORMAT_CODE = 1


def pcm16_to_wav(
    pcm_bytes: bytes,
    *,
    sample_rate: int = 16000,
    channels: int = 1,
    bits_per_sample: int = 16,
) -> bytes:
    """Wrap raw little-endian PCM in a canonical 44-byte RIFF/WAVE header.

    Args:
        pcm_bytes: Raw signed 16-bit little-endian samples
        sample_rate: Samples per second
        channels: Channel count (1 for the browser microphone stream)
        bits_per_sample: Sample width in bits

    Returns:
        Header followed by the unmodified samples (44 + len(pcm_bytes) bytes)
    """
    data_size = len(pcm_bytes)
    block_align = channels * bits_per_sample // 8
    byte_rate = sample_rate * block_align

    header = struct.pack(
        "<4sI4s4sIHHIIHH4sI",
        b"RIFF",
        36 + data_size,
        b"WAVE",
        b"fmt ",
        16,
        PCM_FORMAT_CODE,
        channels,
        sample_rate,
        byte_rate,
        block_align,
        bits_per_sample,
        b"data",
        data_size,
    )
    return header + pcm_bytes


def pcm_duration_seconds(
    pcm_bytes: bytes | int,
    *,
    sample_rate: int = 16000,
    channels: int = 1,
    bits_per_sample: int = 16,
) -> float:
    """Duration of a PCM buffer (or a byte count) in seconds."""
    size = pcm_bytes if isinstance(pcm_bytes, int) else len(pcm_bytes)
    bytes_per_second = sample_rate * channels * bits_per_sample // 8
    return size / bytes_per_second if bytes_per_second else 0.0

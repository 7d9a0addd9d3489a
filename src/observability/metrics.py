"""Prometheus metrics for the voice agent server.

Provides metrics for monitoring sessions, turn latency, tools and billing.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram, generate_latest
from prometheus_client.exposition import CONTENT_TYPE_LATEST

# =============================================================================
# Counters
# =============================================================================

CALL_TOTAL = Counter(
    "voicedesk_call_total",
    "Total browser voice calls handled",
    ["outcome"],
)

BARGE_IN_TOTAL = Counter(
    "voicedesk_barge_in_total",
    "Total user interruptions of agent speech",
)

TOOL_EXECUTIONS = Counter(
    "voicedesk_tool_executions_total",
    "Tool executions by tool type and result",
    ["tool_type", "status"],
)

PIPELINE_ERRORS = Counter(
    "voicedesk_pipeline_errors_total",
    "Failures per pipeline stage",
    ["stage"],
)

DROPPED_UTTERANCES = Counter(
    "voicedesk_dropped_utterances_total",
    "Utterances discarded because a turn was already in flight",
)

CALL_REJECTIONS = Counter(
    "voicedesk_call_rejections_total",
    "Calls refused before a session was created",
    ["reason"],
)

# =============================================================================
# Gauges
# =============================================================================

ACTIVE_SESSIONS = Gauge(
    "voicedesk_active_sessions",
    "Currently registered voice sessions",
)

# =============================================================================
# Histograms
# =============================================================================

CALL_DURATION = Histogram(
    "voicedesk_call_duration_seconds",
    "Call duration in seconds",
    buckets=[10, 30, 60, 120, 300, 600, 900, 1800],
)

STT_LATENCY = Histogram(
    "voicedesk_stt_latency_seconds",
    "Speech-to-text latency per utterance",
    buckets=[0.1, 0.25, 0.5, 0.75, 1.0, 1.5, 2.0, 3.0, 5.0],
)

LLM_LATENCY = Histogram(
    "voicedesk_llm_latency_seconds",
    "LLM generation latency per request",
    buckets=[0.1, 0.25, 0.5, 0.75, 1.0, 1.5, 2.0, 3.0, 5.0, 10.0],
)

TTS_LATENCY = Histogram(
    "voicedesk_tts_latency_seconds",
    "Text-to-speech synthesis latency per response",
    buckets=[0.05, 0.1, 0.25, 0.5, 0.75, 1.0, 1.5, 2.0, 5.0],
)

TURN_LATENCY = Histogram(
    "voicedesk_turn_latency_seconds",
    "End of utterance to agent audio sent",
    buckets=[0.5, 1.0, 1.5, 2.0, 3.0, 5.0, 8.0, 13.0],
)

# =============================================================================
# Helper Functions
# =============================================================================


def record_call_metrics(
    outcome: str,
    duration_seconds: float,
    *,
    barge_in_count: int = 0,
) -> None:
    """Record metrics for a completed call.

    Args:
        outcome: Call outcome (completed, dropped, error)
        duration_seconds: Total call duration
        barge_in_count: Number of user interruptions
    """
    CALL_TOTAL.labels(outcome=outcome).inc()
    CALL_DURATION.observe(duration_seconds)

    if barge_in_count > 0:
        BARGE_IN_TOTAL.inc(barge_in_count)


def record_stage_latency(stage: str, latency_ms: float) -> None:
    """Record the latency of a pipeline stage (stt, llm, tts, turn)."""
    histogram = {
        "stt": STT_LATENCY,
        "llm": LLM_LATENCY,
        "tts": TTS_LATENCY,
        "turn": TURN_LATENCY,
    }.get(stage)
    if histogram is not None and latency_ms > 0:
        histogram.observe(latency_ms / 1000)


def record_pipeline_error(stage: str) -> None:
    PIPELINE_ERRORS.labels(stage=stage).inc()


def record_tool_execution(tool_type: str, success: bool) -> None:
    TOOL_EXECUTIONS.labels(tool_type=tool_type, status="success" if success else "failed").inc()


def get_metrics() -> bytes:
    """Generate Prometheus metrics output.

    Returns:
        Metrics in Prometheus text exposition format.
    """
    return generate_latest()


def get_content_type() -> str:
    """Get the content type for Prometheus metrics.

    Returns:
        Content-Type header value for Prometheus metrics.
    """
    return CONTENT_TYPE_LATEST

"""Observability module for metrics."""

from src.observability.metrics import (
    ACTIVE_SESSIONS,
    BARGE_IN_TOTAL,
    CALL_DURATION,
    CALL_REJECTIONS,
    CALL_TOTAL,
    DROPPED_UTTERANCES,
    LLM_LATENCY,
    PIPELINE_ERRORS,
    STT_LATENCY,
    TOOL_EXECUTIONS,
    TTS_LATENCY,
    TURN_LATENCY,
    record_call_metrics,
    record_pipeline_error,
    record_stage_latency,
    record_tool_execution,
)

__all__ = [
    # Counters
    "CALL_TOTAL",
    "BARGE_IN_TOTAL",
    "TOOL_EXECUTIONS",
    "PIPELINE_ERRORS",
    "DROPPED_UTTERANCES",
    "CALL_REJECTIONS",
    # Gauges
    "ACTIVE_SESSIONS",
    # Histograms
    "CALL_DURATION",
    "STT_LATENCY",
    "LLM_LATENCY",
    "TTS_LATENCY",
    "TURN_LATENCY",
    # Helpers
    "record_call_metrics",
    "record_stage_latency",
    "record_pipeline_error",
    "record_tool_execution",
]

"""Core voice pipeline components.

This module provides the core orchestration for browser voice calls:
- VoiceSession: Per-connection state and usage counters
- AudioSegmenter: Splits incoming PCM into utterances on silence
- DialogOrchestrator: LLM turns with inline tool calls
- VoicePipeline: Segment → STT → dialog → TTS for one session
- SessionRegistry: Owns live sessions and their teardown
"""

from src.core.accounting import CallAccountant
from src.core.agent_config import (
    AgentConfig,
    AgentConfigLoader,
    AgentConfigProvider,
    AgentRecord,
    ConfigLoadError,
    DatabaseAgentConfigProvider,
)
from src.core.context import ConversationHistory
from src.core.dialog import (
    LLM_APOLOGY,
    TOOL_LOOP_FALLBACK,
    DialogOrchestrator,
    DialogResult,
    DialogState,
    ToolCall,
    parse_tool_call,
)
from src.core.pipeline import EventSender, VoicePipeline
from src.core.registry import SessionCapacityError, SessionExistsError, SessionRegistry
from src.core.segmenter import AudioSegmenter, DelayedTask, compute_rms
from src.core.session import VoiceSession, new_connection_id

__all__ = [
    # Session management
    "VoiceSession",
    "ConversationHistory",
    "new_connection_id",
    "SessionRegistry",
    "SessionExistsError",
    "SessionCapacityError",
    "CallAccountant",
    # Agent configuration
    "AgentConfig",
    "AgentConfigLoader",
    "AgentConfigProvider",
    "AgentRecord",
    "ConfigLoadError",
    "DatabaseAgentConfigProvider",
    # Audio
    "AudioSegmenter",
    "DelayedTask",
    "compute_rms",
    # Dialog
    "DialogOrchestrator",
    "DialogResult",
    "DialogState",
    "ToolCall",
    "parse_tool_call",
    "LLM_APOLOGY",
    "TOOL_LOOP_FALLBACK",
    # Pipeline
    "VoicePipeline",
    "EventSender",
]

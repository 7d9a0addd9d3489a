"""WebSocket handlers for browser voice calls.

This module provides the WebSocket endpoint for the browser client:
- voice_stream_endpoint: Main WebSocket handler
- session_registry: Global session registry
"""

from src.api.websocket.voice_stream import (
    WebSocketEventSender,
    handle_client_message,
    session_registry,
    voice_stream_endpoint,
)

__all__ = [
    "voice_stream_endpoint",
    "session_registry",
    "WebSocketEventSender",
    "handle_client_message",
]

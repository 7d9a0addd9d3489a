"""WebSocket handler for browser voice calls.

Handles the browser JSON event protocol:
- Receives base64 PCM audio, pings and stop-speaking signals
- Sends transcripts, agent replies, synthesized audio and errors
- Manages the session lifecycle through the session registry
"""

from __future__ import annotations

import base64
import binascii
import json
from typing import Any

from fastapi import WebSocket, WebSocketDisconnect

from src.config import Settings, get_settings
from src.core.agent_config import AgentConfigLoader
from src.core.pipeline import VoicePipeline
from src.core.registry import SessionCapacityError, SessionExistsError, SessionRegistry
from src.core.session import new_connection_id
from src.logging_config import get_logger
from src.observability.metrics import CALL_REJECTIONS
from src.services.billing.wallet import BalanceProvider, WalletService

logger: Any = get_logger(__name__)

INVALID_MESSAGE_ERROR = "Failed to process message"

# Global registry instance
session_registry = SessionRegistry()


class WebSocketEventSender:
    """Sends JSON events to the browser.

    Implements the EventSender protocol for VoicePipeline.
    """

    def __init__(self, websocket: WebSocket) -> None:
        self._websocket = websocket
        self._closed = False

    def mark_closed(self) -> None:
        self._closed = True

    async def send_event(self, event: dict[str, Any]) -> None:
        """Send one event; failures after disconnect are logged."""
        if self._closed:
            return
        try:
            await self._websocket.send_json(event)
        except Exception as e:
            logger.error(f"Failed to send {event.get('event')} event: {e}")


async def handle_client_message(
    raw: str,
    pipeline: VoicePipeline,
    sender: WebSocketEventSender,
) -> None:
    """Dispatch one inbound client event."""
    try:
        message = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Invalid JSON received from client")
        await sender.send_event({"event": "error", "message": INVALID_MESSAGE_ERROR})
        return

    if not isinstance(message, dict):
        await sender.send_event({"event": "error", "message": INVALID_MESSAGE_ERROR})
        return

    event = message.get("event", "")

    if event == "audio":
        payload = message.get("data") or ""
        if not payload:
            return
        try:
            audio_bytes = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError):
            logger.warning("Failed to decode audio payload")
            await sender.send_event({"event": "error", "message": INVALID_MESSAGE_ERROR})
            return
        pipeline.ingest_audio(audio_bytes)

    elif event == "ping":
        await sender.send_event({"event": "pong"})

    elif event == "stop-speaking":
        await pipeline.handle_interruption()

    else:
        logger.warning(f"Unknown event type: {event}")


async def voice_stream_endpoint(
    websocket: WebSocket,
    *,
    registry: SessionRegistry | None = None,
    config_loader: AgentConfigLoader | None = None,
    balance_provider: BalanceProvider | None = None,
    settings: Settings | None = None,
) -> None:
    """Handle a browser voice WebSocket connection.

    Query parameters: voiceId, agentId, userId, identity.

    A user whose balance does not cover the call start minimum gets an
    error event and the socket is closed before any session exists.
    """
    await websocket.accept()

    settings = settings or get_settings()
    registry = registry or session_registry
    config_loader = config_loader or AgentConfigLoader(settings=settings)
    balance_provider = balance_provider or WalletService()

    params = websocket.query_params
    voice_id = params.get("voiceId")
    agent_id = params.get("agentId")
    user_id = params.get("userId")
    identity = params.get("identity")

    connection_id = new_connection_id()
    sender = WebSocketEventSender(websocket)
    logger.info(f"Browser client connected: {connection_id} (agent={agent_id}, user={user_id})")

    try:
        config = await config_loader.load(
            agent_id=agent_id,
            user_id=user_id,
            voice_id=voice_id,
            identity=identity,
        )
    except Exception as e:
        logger.error(f"Error loading agent details, using defaults: {e}")
        config = config_loader.defaults(user_id=user_id, voice_id=voice_id, identity=identity)

    if user_id:
        check = None
        try:
            check = await balance_provider.check_balance_for_call(
                user_id, settings.call_start_min_balance
            )
        except Exception as e:
            logger.error(f"Balance check failed for {user_id}, allowing call: {e}")

        if check is not None and not check.allowed:
            logger.warning(f"Insufficient balance for user {user_id}: {check.balance}")
            CALL_REJECTIONS.labels(reason="insufficient_balance").inc()
            await sender.send_event(
                {"event": "error", "message": check.message, "balance": check.balance}
            )
            sender.mark_closed()
            await websocket.close()
            return

    try:
        session, pipeline = await registry.create(connection_id, config, sender)
    except (SessionExistsError, SessionCapacityError) as e:
        logger.warning(f"Rejecting connection {connection_id}: {e}")
        CALL_REJECTIONS.labels(reason="capacity").inc()
        await sender.send_event({"event": "error", "message": "Server is busy, please try again"})
        sender.mark_closed()
        await websocket.close()
        return

    try:
        pipeline.schedule_greeting()
        await registry.accountant.start(session)

        while True:
            raw = await websocket.receive_text()
            await handle_client_message(raw, pipeline, sender)

    except WebSocketDisconnect:
        logger.info(f"Browser client disconnected: {connection_id}")

    except Exception as e:
        logger.error(f"WebSocket error for {connection_id}: {e}")

    finally:
        sender.mark_closed()
        try:
            await registry.end(connection_id)
        except Exception as e:
            logger.error(f"Error ending session {connection_id}: {e}")

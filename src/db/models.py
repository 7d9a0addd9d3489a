"""SQLModel database models.

Tables backing agent configuration, call logging and usage billing:
- agents: identity, voice, model and settings JSON (tools, greeting)
- calls: one row per browser call
- wallets: prepaid balance per user
- usage_charges: per-service charge lines written at call end

JSON field validation is added for data integrity.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import field_validator
from sqlmodel import Field, SQLModel

# =============================================================================
# Enums (shared across models)
# =============================================================================


class CallStatus(str, Enum):
    """Lifecycle status of a call row."""

    in_progress = "in_progress"
    completed = "completed"


class CallType(str, Enum):
    """Channel the call arrived on."""

    web_call = "web_call"


class CallDirection(str, Enum):
    inbound = "inbound"
    outbound = "outbound"


class UsageService(str, Enum):
    """Billable usage categories."""

    stt = "stt"
    tts = "tts"
    llm_input = "llm_input"
    llm_output = "llm_output"


# =============================================================================
# Agents
# =============================================================================


class Agent(SQLModel, table=True):
    """A configured voice agent owned by a user."""

    __tablename__ = "agents"

    id: str = Field(
        default_factory=lambda: str(uuid4()),
        primary_key=True,
        max_length=36,
    )
    user_id: str = Field(index=True, max_length=64, description="Owner of the agent")
    name: str = Field(max_length=200, description="Display name")
    identity: str | None = Field(default=None, description="System prompt / persona")
    voice_id: str | None = Field(default=None, max_length=100)
    model: str | None = Field(default=None, max_length=100)
    settings_json: str | None = Field(
        default=None,
        description="JSON object with tools and greetingLine",
    )
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_validator("settings_json", mode="before")
    @classmethod
    def validate_settings(cls, v: Any) -> str | None:
        """Validate settings_json is an object whose tools entry is a list."""
        if v is None:
            return None
        if isinstance(v, str):
            try:
                data = json.loads(v)
            except json.JSONDecodeError as e:
                raise ValueError(f"Invalid JSON: {e}") from e
        else:
            data = v
            v = json.dumps(v)

        if not isinstance(data, dict):
            raise ValueError("settings must be an object")
        if "tools" in data and not isinstance(data["tools"], list):
            raise ValueError("tools must be an array")
        return v

    @property
    def settings(self) -> dict[str, Any]:
        if not self.settings_json:
            return {}
        return json.loads(self.settings_json)


# =============================================================================
# Calls
# =============================================================================


class CallLog(SQLModel, table=True):
    """Record of a single browser voice call."""

    __tablename__ = "calls"

    id: str = Field(
        default_factory=lambda: str(uuid4()),
        primary_key=True,
        max_length=36,
    )
    user_id: str = Field(index=True, max_length=64)
    agent_id: str | None = Field(default=None, index=True, max_length=36)
    call_sid: str = Field(description="Connection id for browser calls", max_length=100)
    from_number: str = Field(default="browser-client", max_length=50)
    to_number: str = Field(default="voice-agent", max_length=50)
    direction: CallDirection = Field(default=CallDirection.inbound)
    status: CallStatus = Field(default=CallStatus.in_progress, index=True)
    call_type: CallType = Field(default=CallType.web_call)
    started_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    ended_at: datetime | None = Field(default=None)
    duration_seconds: int | None = Field(default=None, ge=0)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC), index=True)


# =============================================================================
# Billing
# =============================================================================


class Wallet(SQLModel, table=True):
    """Prepaid balance used to gate and pay for calls."""

    __tablename__ = "wallets"

    user_id: str = Field(primary_key=True, max_length=64)
    balance: float = Field(default=0.0)
    currency: str = Field(default="USD", max_length=3)
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class UsageCharge(SQLModel, table=True):
    """One billed usage line for a call."""

    __tablename__ = "usage_charges"

    id: str = Field(
        default_factory=lambda: str(uuid4()),
        primary_key=True,
        max_length=36,
    )
    user_id: str = Field(index=True, max_length=64)
    call_log_id: str | None = Field(default=None, foreign_key="calls.id", index=True)
    service: UsageService
    quantity: float = Field(ge=0, description="Seconds, characters or tokens")
    unit_cost: float = Field(ge=0)
    amount: float = Field(ge=0)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

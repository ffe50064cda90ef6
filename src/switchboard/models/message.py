"""Inbound message and per-invocation context models."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal, Optional, Union

from pydantic import BaseModel, Field

from .inbox import InboxRef


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ConversationTurn(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class InboundMessage(BaseModel):
    """The envelope handed to the pipeline by the webhook layer."""

    content: str
    message_id: Optional[Union[int, str]] = None
    conversation_id: Optional[int] = None
    account_id: Optional[int] = None
    sender: Optional[dict] = None
    event_type: str = "message_created"
    timestamp: datetime = Field(default_factory=_utcnow)
    conversation_history: list[ConversationTurn] = []


class InvocationContext(BaseModel):
    message: str
    message_id: Optional[Union[int, str]] = None
    conversation_id: Optional[int] = None
    account_id: Optional[int] = None
    sender: Optional[dict] = None
    agent_config: dict = {}
    conversation_history: list[ConversationTurn] = []
    event_type: str = "message_created"
    timestamp: datetime = Field(default_factory=_utcnow)
    inbox: Optional[InboxRef] = None

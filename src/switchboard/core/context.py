"""Per-invocation context assembly.

Builds the context object handed to each agent invocation, pulling recent
conversation history from the messaging platform when the message belongs to
a conversation.
"""

from __future__ import annotations

import logging
from typing import Optional, Union

from ..messaging.base import MessagingPlatform
from ..models.inbox import Agent, Inbox, InboxRef
from ..models.message import ConversationTurn, InboundMessage, InvocationContext
from ..utils.sanitize import sanitize_error

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 10


def resolve_credential(config: Optional[dict], agent: Optional[Agent], inbox: Optional[Inbox]) -> Optional[str]:
    """Pick the messaging credential: assignment config, then agent, then inbox default."""
    if config and config.get("chatwoot_api_key"):
        return config["chatwoot_api_key"]
    if agent is not None and agent.settings.chatwoot_api_key:
        return agent.settings.chatwoot_api_key
    if inbox is not None:
        return inbox.default_credential
    return None


def _is_incoming(msg: dict) -> bool:
    return (
        msg.get("message_type") in (0, "incoming")
        or msg.get("sender_type") == "Contact"
    )


def normalize_history(
    messages: list,
    current_content: str,
    current_id: Optional[Union[int, str]] = None,
    limit: int = DEFAULT_HISTORY_LIMIT,
) -> list[ConversationTurn]:
    """Turn raw platform messages into the most recent ``limit`` turns.

    The current inbound message is excluded both by id and by content.
    """
    current = (current_content or "").strip()
    current_key = str(current_id) if current_id is not None else None

    kept = []
    for msg in messages or []:
        if not isinstance(msg, dict):
            continue
        content = (msg.get("content") or "").strip()
        if not content or content == current:
            continue
        if current_key is not None and str(msg.get("id")) == current_key:
            continue
        kept.append(ConversationTurn(role="user" if _is_incoming(msg) else "assistant", content=content))

    if limit <= 0:
        return []
    return kept[-limit:]


class ConversationContextBuilder:
    """Assembles InvocationContext objects for one inbound message."""

    def __init__(self, messaging: Optional[MessagingPlatform] = None, history_limit: int = DEFAULT_HISTORY_LIMIT):
        self.messaging = messaging
        self.history_limit = history_limit

    async def fetch_history(
        self,
        message: InboundMessage,
        account_id: Optional[int],
        credential: Optional[str] = None,
    ) -> list[ConversationTurn]:
        """Fetch prior turns; failures degrade to an empty history."""
        if self.messaging is None or message.conversation_id is None or account_id is None:
            return []
        try:
            raw = await self.messaging.fetch_history(account_id, message.conversation_id, credential)
        except Exception as e:
            logger.warning(
                "Failed to get conversation history for conversation %s: %s",
                message.conversation_id,
                sanitize_error(str(e), secrets=(credential,)),
            )
            return []

        history = normalize_history(raw, message.content, message.message_id, self.history_limit)
        logger.debug("Retrieved %d previous messages for context", len(history))
        return history

    async def build(
        self,
        message: InboundMessage,
        inbox: Optional[InboxRef] = None,
        agent_config: Optional[dict] = None,
        credential: Optional[str] = None,
    ) -> InvocationContext:
        account_id = message.account_id
        if account_id is None and inbox is not None:
            account_id = inbox.account_id

        if message.conversation_history:
            history = message.conversation_history[-self.history_limit:] if self.history_limit > 0 else []
        else:
            history = await self.fetch_history(message, account_id, credential)

        return InvocationContext(
            message=message.content.strip(),
            message_id=message.message_id,
            conversation_id=message.conversation_id,
            account_id=account_id,
            sender=message.sender,
            agent_config=dict(agent_config or {}),
            conversation_history=history,
            event_type=message.event_type,
            timestamp=message.timestamp,
            inbox=inbox,
        )

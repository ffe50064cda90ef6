"""Response agent execution and reply delivery.

Generation and delivery are tracked separately: a reply that was generated
but could not be sent stays ``success=True`` with ``message_sent=False`` and
a ``send_error``.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..messaging.base import MessagingPlatform
from ..models.inbox import Inbox
from ..models.message import InboundMessage
from ..models.result import AgentResult
from ..models.stage import Stage
from ..utils.sanitize import sanitize_error
from .background import BackgroundTasks
from .context import ConversationContextBuilder, resolve_credential
from .invoker import AgentInvoker

logger = logging.getLogger(__name__)


class ResponseDispatcher:
    def __init__(
        self,
        invoker: AgentInvoker,
        context_builder: ConversationContextBuilder,
        messaging: Optional[MessagingPlatform] = None,
        background: Optional[BackgroundTasks] = None,
        status_after_reply: Optional[str] = None,
    ):
        self.invoker = invoker
        self.context_builder = context_builder
        self.messaging = messaging
        self.background = background
        self.status_after_reply = status_after_reply

    async def run(self, inbox: Inbox, message: InboundMessage) -> Optional[AgentResult]:
        assignment = inbox.response_agent
        if assignment is None or assignment.agent is None:
            logger.info("No response agent configured for inbox %s", inbox.id)
            return None

        agent = assignment.agent
        credential = resolve_credential(assignment.config, agent, inbox)
        context = await self.context_builder.build(message, inbox.ref(), assignment.config, credential)

        logger.info("Processing response agent: %s", agent.name)
        result = await self.invoker.invoke(agent, context, assignment.config, Stage.RESPONSE)

        if not result.success or not result.response:
            return result
        if self.messaging is None or context.conversation_id is None or context.account_id is None:
            logger.debug("No conversation to deliver to; reply kept on the result only")
            return result

        try:
            await self.messaging.send_message(
                context.account_id,
                context.conversation_id,
                result.response,
                credential,
            )
        except Exception as e:
            result.message_sent = False
            result.send_error = sanitize_error(str(e), secrets=(credential,)) or type(e).__name__
            logger.error("Failed to send response for conversation %s: %s", context.conversation_id, result.send_error)
            return result

        result.message_sent = True
        logger.info("Response sent for conversation %s", context.conversation_id)

        status = assignment.config.get("status_after_reply") or self.status_after_reply
        if status and self.background is not None:
            self.background.spawn(
                self.messaging.update_conversation_status(
                    context.account_id,
                    context.conversation_id,
                    status,
                    credential,
                ),
                f"set conversation {context.conversation_id} to {status}",
            )

        return result

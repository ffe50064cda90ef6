"""Inbox and agent configuration models."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict


class ContextDocument(BaseModel):
    filename: Optional[str] = None
    url: Optional[str] = None
    content: str = ""


class AgentSettings(BaseModel):
    model_config = ConfigDict(extra="allow", protected_namespaces=())

    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    response_delay: Optional[float] = None
    connection_id: Optional[str] = None
    model_id: Optional[str] = None
    chatwoot_api_key: Optional[str] = None


class Agent(BaseModel):
    id: str
    name: str
    prompt: str = ""
    agent_type: str = "response"
    settings: AgentSettings = AgentSettings()
    context_documents: list[ContextDocument] = []


class AgentAssignment(BaseModel):
    """One entry of an inbox's pipeline array.

    ``agent`` is the resolved reference; it is None when the referenced
    agent no longer exists.
    """

    agent_id: Optional[str] = None
    agent: Optional[Agent] = None
    name: str = ""
    agent_type: Optional[str] = None
    priority: int = 100
    is_active: bool = True
    config: dict = {}

    @property
    def resolved_id(self) -> Optional[str]:
        if self.agent is not None:
            return self.agent.id
        return self.agent_id


class ResponseAssignment(BaseModel):
    agent_id: Optional[str] = None
    agent: Optional[Agent] = None
    config: dict = {}


class ChatwootSettings(BaseModel):
    api_key: Optional[str] = None
    bot_id: Optional[int] = None
    bot_name: Optional[str] = None


class InboxRef(BaseModel):
    """Identifying subset of an inbox carried on contexts and results."""

    id: str
    name: str = ""
    channel_type: str = "api"
    account_id: Optional[int] = None
    inbox_id: Optional[int] = None


class Inbox(BaseModel):
    id: str
    name: str = ""
    channel_type: str = "api"
    account_id: Optional[int] = None
    inbox_id: Optional[int] = None
    is_active: bool = True
    chatwoot: ChatwootSettings = ChatwootSettings()
    response_agent: Optional[ResponseAssignment] = None
    agents: list[AgentAssignment] = []

    @property
    def default_credential(self) -> Optional[str]:
        return self.chatwoot.api_key

    def ref(self) -> InboxRef:
        return InboxRef(
            id=self.id,
            name=self.name,
            channel_type=self.channel_type,
            account_id=self.account_id,
            inbox_id=self.inbox_id,
        )

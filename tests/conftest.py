"""Shared fixtures for Switchboard tests."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import pytest

from switchboard.core.sources import InMemoryConfigSource
from switchboard.models.inbox import Agent, AgentAssignment, AgentSettings, ChatwootSettings, Inbox, ResponseAssignment
from switchboard.models.message import InboundMessage


class FakeGenerator:
    """Generator double that records calls and can hold them in flight."""

    def __init__(self) -> None:
        self.replies: dict[str, str] = {}
        self.failures: dict[str, Exception] = {}
        self.calls: list[tuple] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.gate: Optional[asyncio.Event] = None

    @property
    def prompts(self) -> list[str]:
        return [call[0] for call in self.calls]

    async def generate(self, prompt, context, options) -> str:
        self.calls.append((prompt, context, options))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.gate is not None:
                await self.gate.wait()
            if prompt in self.failures:
                raise self.failures[prompt]
            return self.replies.get(prompt, f"{prompt} says hi")
        finally:
            self.in_flight -= 1


class FakeMessaging:
    def __init__(self) -> None:
        self.history: list[dict] = []
        self.history_error: Optional[Exception] = None
        self.send_error: Optional[Exception] = None
        self.status_error: Optional[Exception] = None
        self.history_calls: list[tuple] = []
        self.sent: list[tuple] = []
        self.status_updates: list[tuple] = []

    async def fetch_history(self, account_id, conversation_id, credential=None):
        self.history_calls.append((account_id, conversation_id, credential))
        if self.history_error:
            raise self.history_error
        return list(self.history)

    async def send_message(self, account_id, conversation_id, content, credential=None):
        self.sent.append((account_id, conversation_id, content, credential))
        if self.send_error:
            raise self.send_error
        return {"id": 99, "content": content}

    async def update_conversation_status(self, account_id, conversation_id, status, credential=None):
        self.status_updates.append((account_id, conversation_id, status, credential))
        if self.status_error:
            raise self.status_error
        return {"status": status}


def build_agent(agent_id: str, agent_type: str = "analytics", **settings) -> Agent:
    return Agent(
        id=agent_id,
        name=agent_id.title(),
        prompt=f"prompt-{agent_id}",
        agent_type=agent_type,
        settings=AgentSettings(**settings),
    )


def build_inbox(
    entries: list[tuple] = (),
    response: Optional[str] = None,
    response_config: Optional[dict] = None,
    inbox_id: str = "support",
    is_active: bool = True,
    api_key: Optional[str] = "inbox-key",
) -> Inbox:
    """Entries are (agent_id, priority) or (agent_id, priority, is_active)."""
    assignments = []
    for entry in entries:
        agent_id, priority = entry[0], entry[1]
        active = entry[2] if len(entry) > 2 else True
        assignments.append(
            AgentAssignment(
                agent_id=agent_id,
                agent=build_agent(agent_id),
                priority=priority,
                is_active=active,
            )
        )
    response_agent = None
    if response:
        response_agent = ResponseAssignment(
            agent_id=response,
            agent=build_agent(response, agent_type="response"),
            config=response_config or {},
        )
    return Inbox(
        id=inbox_id,
        name="Support",
        channel_type="web_widget",
        account_id=1,
        inbox_id=7,
        is_active=is_active,
        chatwoot=ChatwootSettings(api_key=api_key),
        response_agent=response_agent,
        agents=assignments,
    )


@pytest.fixture
def fake_generator() -> FakeGenerator:
    return FakeGenerator()


@pytest.fixture
def fake_messaging() -> FakeMessaging:
    return FakeMessaging()


@pytest.fixture
def make_agent():
    return build_agent


@pytest.fixture
def make_inbox():
    return build_inbox


@pytest.fixture
def make_source():
    def _make(*inboxes: Inbox) -> InMemoryConfigSource:
        return InMemoryConfigSource(inboxes)

    return _make


@pytest.fixture
def inbound_message() -> InboundMessage:
    return InboundMessage(
        content="Where is my order?",
        message_id=501,
        conversation_id=42,
        account_id=1,
        sender={"id": 3, "name": "Dana"},
    )


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """Write a switchboard.yaml with two inboxes and four agents."""
    path = tmp_path / "switchboard.yaml"
    path.write_text(
        """
pipeline:
  history_limit: 5

ai:
  provider: openai

agents:
  - id: greeter
    name: Greeter
    agent_type: response
    prompt: Answer the customer.
  - id: language
    name: Language Detector
    agent_type: pre-process
    prompt: Detect the language.
  - id: sentiment
    name: Sentiment
    prompt: Classify sentiment.
  - id: summary
    name: Summarizer
    agent_type: post-process
    prompt: Summarize.

inboxes:
  - id: support
    name: Support
    account_id: 1
    response_agent:
      agent_id: greeter
    agents:
      - {agent_id: summary, priority: 250}
      - {agent_id: sentiment, priority: 150, agent_type: analytics}
      - {agent_id: language, priority: 10}
      - {agent_id: deleted-agent, priority: 20}
  - id: paused
    name: Paused
    is_active: false
    agents:
      - {agent_id: sentiment, priority: 150}
""",
        encoding="utf-8",
    )
    return path

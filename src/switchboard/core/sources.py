"""Pipeline configuration sources.

A config source returns an Inbox with its agent references resolved, or None
when the inbox does not exist.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional, Protocol, runtime_checkable

from pydantic import ValidationError

from ..models.inbox import Agent, Inbox
from .config import load_config_file
from .errors import ConfigurationFault


@runtime_checkable
class ConfigSource(Protocol):
    async def load_pipeline_config(self, inbox_id: str) -> Optional[Inbox]: ...


class InMemoryConfigSource:
    def __init__(self, inboxes: Iterable[Inbox] = ()):
        self._inboxes: dict[str, Inbox] = {inbox.id: inbox for inbox in inboxes}

    def add(self, inbox: Inbox) -> None:
        self._inboxes[inbox.id] = inbox

    async def load_pipeline_config(self, inbox_id: str) -> Optional[Inbox]:
        inbox = self._inboxes.get(inbox_id)
        return inbox.model_copy(deep=True) if inbox is not None else None


class YamlConfigSource:
    """Reads ``agents:`` and ``inboxes:`` records from a config dict.

    Example::

        agents:
          - id: greeter
            name: Greeter
            prompt: You answer customer questions.
            agent_type: response
        inboxes:
          - id: support
            account_id: 1
            response_agent: {agent_id: greeter}
            agents:
              - {agent_id: tagger, priority: 50}
    """

    def __init__(self, config: dict):
        self._agents: dict[str, dict] = {
            str(a["id"]): a for a in config.get("agents") or [] if isinstance(a, dict) and "id" in a
        }
        self._inboxes: dict[str, dict] = {
            str(i["id"]): i for i in config.get("inboxes") or [] if isinstance(i, dict) and "id" in i
        }

    @classmethod
    def from_file(cls, path: Path) -> "YamlConfigSource":
        return cls(load_config_file(path))

    @property
    def inbox_ids(self) -> list[str]:
        return list(self._inboxes)

    def _resolve_agent(self, agent_id: Optional[str]) -> Optional[Agent]:
        raw = self._agents.get(str(agent_id)) if agent_id is not None else None
        return Agent.model_validate(raw) if raw is not None else None

    def _resolve_assignment(self, raw: Optional[dict]) -> Optional[dict]:
        if not raw:
            return None
        resolved = dict(raw)
        resolved["agent_id"] = str(raw["agent_id"]) if raw.get("agent_id") is not None else None
        resolved["agent"] = self._resolve_agent(resolved["agent_id"])
        resolved["config"] = dict(raw.get("config") or {})
        return resolved

    async def load_pipeline_config(self, inbox_id: str) -> Optional[Inbox]:
        raw = self._inboxes.get(str(inbox_id))
        if raw is None:
            return None

        data = {k: v for k, v in raw.items() if k not in ("agents", "response_agent")}
        data["id"] = str(raw["id"])
        try:
            # Agent records are validated while references resolve
            data["response_agent"] = self._resolve_assignment(raw.get("response_agent"))
            data["agents"] = [self._resolve_assignment(a) for a in raw.get("agents") or [] if a]
            return Inbox.model_validate(data)
        except ValidationError as e:
            raise ConfigurationFault(str(inbox_id), f"invalid configuration: {e.error_count()} error(s)") from e

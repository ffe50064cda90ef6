"""Exception types.

Only ConfigurationFault escapes a pipeline run. The collaborator errors are
raised by the provider and messaging adapters and recorded as data on
AgentResult by the pipeline.
"""

from __future__ import annotations

from typing import Optional


class SwitchboardError(Exception):
    """Base class for all Switchboard errors."""


class ConfigurationFault(SwitchboardError):
    """The inbox is missing or not eligible to run."""

    def __init__(self, inbox_id: str, reason: str):
        self.inbox_id = inbox_id
        self.reason = reason
        super().__init__(f"Inbox {inbox_id}: {reason}")


class GenerationError(SwitchboardError):
    """The AI provider failed to produce a reply."""


class MessagingError(SwitchboardError):
    """A messaging-platform request failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)

"""Messaging-platform collaborator protocol."""

from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class MessagingPlatform(Protocol):
    """Protocol that messaging-platform clients must implement."""

    async def fetch_history(
        self,
        account_id: int,
        conversation_id: int,
        credential: Optional[str] = None,
    ) -> list[dict]: ...

    async def send_message(
        self,
        account_id: int,
        conversation_id: int,
        content: str,
        credential: Optional[str] = None,
    ) -> dict: ...

    async def update_conversation_status(
        self,
        account_id: int,
        conversation_id: int,
        status: str,
        credential: Optional[str] = None,
    ) -> dict: ...

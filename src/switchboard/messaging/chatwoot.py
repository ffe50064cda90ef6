"""Chatwoot API client.

Sends replies, reads conversation history and toggles conversation status.
A per-call credential (agent or inbox API key) overrides the configured
token.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

import httpx

from ..core.errors import MessagingError

logger = logging.getLogger(__name__)

ALLOWED_STATUSES = ("open", "resolved", "pending", "snoozed")


class ChatwootClient:
    name = "chatwoot"

    def __init__(
        self,
        url: str = "",
        api_token: str = "",
        timeout: float = 30,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = (url or "").rstrip("/")
        self.api_token = api_token or ""
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_config(cls, config: dict) -> "ChatwootClient":
        cw = config.get("chatwoot", {})
        url = cw.get("url") or os.environ.get(cw.get("url_env", "CHATWOOT_URL"), "")
        token = cw.get("api_token") or os.environ.get(cw.get("api_token_env", "CHATWOOT_API_TOKEN"), "")
        return cls(url=url, api_token=token, timeout=cw.get("timeout_seconds", 30))

    def _conversation_url(self, account_id: int, conversation_id: int) -> str:
        return f"{self.url}/api/v1/accounts/{account_id}/conversations/{conversation_id}"

    def _headers(self, api_key: str) -> dict:
        return {
            "api_access_token": api_key,
            "Content-Type": "application/json",
        }

    async def _request(self, method: str, url: str, api_key: str, body: Optional[dict] = None):
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.request(method, url, json=body, headers=self._headers(api_key))
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as e:
            logger.error("Chatwoot API error: %s %s", e.response.status_code, e.response.text[:200])
            raise MessagingError(
                f"Chatwoot API error: {e.response.status_code} {e.response.reason_phrase}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise MessagingError(f"Chatwoot request failed: {e}") from e

    async def fetch_history(
        self,
        account_id: int,
        conversation_id: int,
        credential: Optional[str] = None,
    ) -> list[dict]:
        api_key = credential or self.api_token
        if not self.url or not api_key:
            logger.warning("Chatwoot URL or API token not configured - skipping conversation history")
            return []

        data = await self._request("GET", self._conversation_url(account_id, conversation_id) + "/messages", api_key)
        # Chatwoot wraps the messages in a 'payload' array
        messages = data.get("payload", []) if isinstance(data, dict) else data
        logger.debug("Retrieved %d messages from conversation %s", len(messages or []), conversation_id)
        return list(messages or [])

    async def send_message(
        self,
        account_id: int,
        conversation_id: int,
        content: str,
        credential: Optional[str] = None,
    ) -> dict:
        api_key = credential or self.api_token
        if not self.url or not api_key:
            raise MessagingError("Chatwoot URL or API token not configured")

        body = {"content": content, "message_type": "outgoing"}
        data = await self._request("POST", self._conversation_url(account_id, conversation_id) + "/messages", api_key, body)
        logger.info("Message sent to Chatwoot conversation %s", conversation_id)
        return data if isinstance(data, dict) else {"data": data}

    async def update_conversation_status(
        self,
        account_id: int,
        conversation_id: int,
        status: str,
        credential: Optional[str] = None,
    ) -> dict:
        if status not in ALLOWED_STATUSES:
            raise ValueError(f"Invalid conversation status: {status}")

        api_key = credential or self.api_token
        if not self.url or not api_key:
            raise MessagingError("Chatwoot URL or API token not configured")

        data = await self._request(
            "POST",
            self._conversation_url(account_id, conversation_id) + "/toggle_status",
            api_key,
            {"status": status},
        )
        logger.info("Conversation %s status updated to %s", conversation_id, status)
        return data if isinstance(data, dict) else {"data": data}

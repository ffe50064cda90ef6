"""Anthropic Claude API provider."""

from __future__ import annotations

import os
from typing import Optional

import httpx

from ..models.provider import CompletionResult
from .base import BaseProvider


class AnthropicProvider(BaseProvider):
    name = "anthropic"
    API_URL = "https://api.anthropic.com/v1/messages"

    def __init__(self, provider_config: dict, common_config: dict, transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(provider_config, common_config)
        self._transport = transport

    def _get_api_key(self) -> Optional[str]:
        if self.config.get("api_key"):
            return self.config["api_key"]
        env_var = self.config.get("api_key_env", "ANTHROPIC_API_KEY")
        return os.environ.get(env_var)

    async def complete(
        self,
        system_prompt: str,
        messages: list[dict],
        options: Optional[dict] = None,
    ) -> CompletionResult:
        api_key = self._get_api_key()
        if not api_key:
            env_var = self.config.get("api_key_env", "ANTHROPIC_API_KEY")
            return CompletionResult(
                success=False,
                error=f"API key not found in environment variable: {env_var}",
            )

        body = {
            "model": self._resolve_model(options, "claude-sonnet-4-5-20250929"),
            "max_tokens": self._option(options, "max_tokens", 500),
            "temperature": self._option(options, "temperature", 0.7),
            "system": system_prompt,
            "messages": messages,
        }

        headers = {
            "x-api-key": api_key,
            "anthropic-version": "2023-06-01",
            "content-type": "application/json",
        }
        timeout = self.common.get("timeout_seconds", 60)

        try:
            async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
                response = await client.post(self.API_URL, json=body, headers=headers)
                response.raise_for_status()
                data = response.json()

            content = None
            for block in data.get("content", []):
                if block.get("type") == "text":
                    content = block.get("text")
                    break

            usage = data.get("usage", {})
            tokens = {
                "input": usage.get("input_tokens", 0),
                "output": usage.get("output_tokens", 0),
            }

            return CompletionResult(
                success=True, content=content, tokens_used=tokens
            )
        except httpx.HTTPStatusError as e:
            error_body = ""
            try:
                error_body = e.response.text
            except Exception:
                pass
            return CompletionResult(
                success=False,
                error=f"{e.response.status_code} | {error_body}",
            )
        except Exception as e:
            return CompletionResult(success=False, error=str(e))

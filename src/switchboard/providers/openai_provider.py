"""OpenAI-compatible chat completions provider.

Works against any endpoint that speaks the /chat/completions dialect
(OpenAI, Prediction Guard, self-hosted gateways).
"""

from __future__ import annotations

import os
from typing import Optional

import httpx

from ..models.provider import CompletionResult
from .base import BaseProvider


class OpenAIProvider(BaseProvider):
    name = "openai"
    DEFAULT_ENDPOINT = "https://api.openai.com/v1"

    def __init__(self, provider_config: dict, common_config: dict, transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(provider_config, common_config)
        self._transport = transport

    def _get_api_key(self) -> Optional[str]:
        if self.config.get("api_key"):
            return self.config["api_key"]
        env_var = self.config.get("api_key_env", "OPENAI_API_KEY")
        return os.environ.get(env_var)

    @property
    def url(self) -> str:
        endpoint = self.config.get("endpoint") or self.DEFAULT_ENDPOINT
        return f"{endpoint.rstrip('/')}/chat/completions"

    async def complete(
        self,
        system_prompt: str,
        messages: list[dict],
        options: Optional[dict] = None,
    ) -> CompletionResult:
        api_key = self._get_api_key()
        if not api_key:
            env_var = self.config.get("api_key_env", "OPENAI_API_KEY")
            return CompletionResult(
                success=False,
                error=f"API key not found in environment variable: {env_var}",
            )

        body = {
            "model": self._resolve_model(options, "gpt-4o-mini"),
            "max_tokens": self._option(options, "max_tokens", 500),
            "temperature": self._option(options, "temperature", 0.7),
            "messages": [{"role": "system", "content": system_prompt}, *messages],
        }

        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        timeout = self.common.get("timeout_seconds", 60)

        try:
            async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
                response = await client.post(self.url, json=body, headers=headers)
                response.raise_for_status()
                data = response.json()

            choices = data.get("choices") or []
            if not choices or not choices[0].get("message"):
                return CompletionResult(
                    success=False,
                    error="Invalid response format - missing choices or message",
                )

            usage = data.get("usage", {})
            tokens = {
                "input": usage.get("prompt_tokens", 0),
                "output": usage.get("completion_tokens", 0),
            }

            return CompletionResult(
                success=True, content=choices[0]["message"].get("content"), tokens_used=tokens
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

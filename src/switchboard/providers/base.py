"""AI provider abstraction with retry logic."""

from __future__ import annotations

import asyncio
from typing import Optional, Protocol, runtime_checkable

from ..core.errors import GenerationError
from ..models.message import InvocationContext
from ..models.provider import CompletionResult
from ..utils.sanitize import sanitize_error


@runtime_checkable
class Generator(Protocol):
    """The single call the pipeline makes into the AI layer."""

    async def generate(self, prompt: str, context: InvocationContext, options: dict) -> str: ...


@runtime_checkable
class AIProvider(Protocol):
    """Protocol that all AI providers must implement."""

    name: str

    async def complete(
        self,
        system_prompt: str,
        messages: list[dict],
        options: Optional[dict] = None,
    ) -> CompletionResult: ...


def build_system_prompt(prompt: str, documents: Optional[list[dict]] = None) -> str:
    """Append attached context documents to an agent prompt."""
    system_prompt = prompt or ""
    if not documents:
        return system_prompt

    parts = [system_prompt, "\n\nAdditional Context:\n"]
    for index, doc in enumerate(documents, start=1):
        parts.append(f"\n--- Context Document {index} ---\n")
        if doc.get("filename"):
            parts.append(f"Source: {doc['filename']}\n")
        if doc.get("url"):
            parts.append(f"URL: {doc['url']}\n")
        parts.append(f"{doc.get('content', '')}\n")
    parts.append("\n--- End of Context Documents ---\n")
    return "".join(parts)


def build_messages(context: InvocationContext) -> list[dict]:
    """Conversation history followed by the current user message."""
    messages = [{"role": turn.role, "content": turn.content} for turn in context.conversation_history]
    messages.append({"role": "user", "content": context.message})
    return messages


class BaseProvider:
    """Base class with shared retry logic and config handling."""

    name: str = "base"

    def __init__(self, provider_config: dict, common_config: dict):
        self.config = provider_config
        self.common = common_config
        self.max_attempts = common_config.get("retry_attempts", 3)
        self.retry_delay = common_config.get("retry_delay_seconds", 5)

    def _option(self, options: Optional[dict], key: str, default):
        if options and options.get(key) is not None:
            return options[key]
        if self.config.get(key) is not None:
            return self.config[key]
        return self.common.get(key, default)

    def _resolve_model(self, options: Optional[dict], default: str) -> str:
        if options and options.get("model_id"):
            return options["model_id"]
        return self.config.get("model", default)

    async def complete(
        self,
        system_prompt: str,
        messages: list[dict],
        options: Optional[dict] = None,
    ) -> CompletionResult:
        raise NotImplementedError

    async def complete_with_retry(
        self,
        system_prompt: str,
        messages: list[dict],
        options: Optional[dict] = None,
    ) -> CompletionResult:
        """Wrap complete() with retry logic including rate-limit handling."""
        rate_limit_max = max(self.max_attempts, 5)
        last_result: Optional[CompletionResult] = None

        for attempt in range(1, rate_limit_max + 1):
            result = await self.complete(system_prompt, messages, options)
            last_result = result

            if result.success:
                return result

            error_msg = result.error or ""
            is_rate_limit = "429" in error_msg
            is_retryable = (
                is_rate_limit
                or any(
                    code in error_msg
                    for code in ("500", "502", "503", "504", "timeout", "timed out")
                )
            ) and not any(
                code in error_msg
                for code in ("400", "401", "403", "404")
            )

            effective_max = rate_limit_max if is_rate_limit else self.max_attempts
            if not is_retryable or attempt >= effective_max:
                result.error = sanitize_error(error_msg)
                return result

            # Rate limits: 30s base. Others: standard backoff.
            base_delay = 30 if is_rate_limit else self.retry_delay
            wait_time = base_delay * min(attempt, 3)
            await asyncio.sleep(wait_time)

        return last_result or CompletionResult(success=False, error="Max retries exceeded")

    async def generate(self, prompt: str, context: InvocationContext, options: dict) -> str:
        """Generate a reply for an agent prompt and invocation context.

        Raises GenerationError when the provider fails or returns nothing.
        """
        system_prompt = build_system_prompt(prompt, options.get("context_documents"))
        result = await self.complete_with_retry(system_prompt, build_messages(context), options)

        if not result.success:
            raise GenerationError(f"Failed to generate AI response: {result.error}")

        content = (result.content or "").strip()
        if not content:
            raise GenerationError(f"Empty response content from {self.name}")
        return content


def get_ai_provider(
    config: dict,
    provider_override: Optional[str] = None,
    model_override: Optional[str] = None,
    endpoint_override: Optional[str] = None,
) -> BaseProvider:
    """Factory function to create the configured AI provider."""
    ai_config = config.get("ai", {})
    provider_name = provider_override or ai_config.get("provider", "openai")

    provider_config = dict(ai_config.get(provider_name, {}))

    if model_override:
        provider_config["model"] = model_override
    if endpoint_override:
        provider_config["endpoint"] = endpoint_override

    # Common config is the ai section minus provider sub-configs
    common_config = {
        k: v
        for k, v in ai_config.items()
        if k not in ("anthropic", "openai")
    }

    if provider_name == "openai":
        from .openai_provider import OpenAIProvider
        return OpenAIProvider(provider_config, common_config)
    elif provider_name == "anthropic":
        from .anthropic import AnthropicProvider
        return AnthropicProvider(provider_config, common_config)
    else:
        raise ValueError(f"Unknown AI provider: {provider_name}")

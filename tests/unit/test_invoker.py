"""Tests for core/invoker.py."""

from __future__ import annotations

import asyncio

import pytest

from switchboard.core.errors import GenerationError
from switchboard.core.invoker import AgentInvoker, merge_options, response_delay_seconds
from switchboard.models.inbox import ContextDocument
from switchboard.models.message import InvocationContext
from switchboard.models.stage import Stage


@pytest.fixture
def context() -> InvocationContext:
    return InvocationContext(message="Where is my order?", conversation_id=42, account_id=1)


class TestMergeOptions:
    def test_stage_config_wins(self, make_agent):
        agent = make_agent("a", temperature=0.2, max_tokens=100)
        options = merge_options(agent, {"temperature": 0.9})
        assert options["temperature"] == 0.9
        assert options["max_tokens"] == 100

    def test_none_values_do_not_erase(self, make_agent):
        agent = make_agent("a", temperature=0.2)
        assert merge_options(agent, {"temperature": None})["temperature"] == 0.2

    def test_context_documents_attached(self, make_agent):
        agent = make_agent("a")
        agent.context_documents = [ContextDocument(filename="faq.md", content="Returns take 30 days")]
        options = merge_options(agent)
        assert options["context_documents"] == [{"filename": "faq.md", "content": "Returns take 30 days"}]

    def test_unset_settings_omitted(self, make_agent):
        options = merge_options(make_agent("a"))
        assert "temperature" not in options


class TestResponseDelaySeconds:
    def test_values(self):
        assert response_delay_seconds({}) == 0
        assert response_delay_seconds({"response_delay": 2}) == 2.0
        assert response_delay_seconds({"response_delay": "1.5"}) == 1.5
        assert response_delay_seconds({"response_delay": -3}) == 0
        assert response_delay_seconds({"response_delay": "soon"}) == 0


class TestAgentInvoker:
    @pytest.mark.asyncio
    async def test_success(self, fake_generator, make_agent, context):
        agent = make_agent("tagger")
        fake_generator.replies["prompt-tagger"] = "billing"

        result = await AgentInvoker(fake_generator).invoke(agent, context, {"temperature": 0.1}, Stage.PRE_PROCESS)

        assert result.success
        assert result.response == "billing"
        assert result.error is None
        assert result.agent_id == "tagger"
        assert result.agent_name == "Tagger"
        assert result.agent_type == "analytics"
        assert result.stage == Stage.PRE_PROCESS
        assert result.duration_ms >= 0
        assert result.processed_at >= result.started_at

    @pytest.mark.asyncio
    async def test_passes_prompt_context_and_merged_options(self, fake_generator, make_agent, context):
        agent = make_agent("tagger", temperature=0.3, max_tokens=50)
        await AgentInvoker(fake_generator).invoke(agent, context, {"max_tokens": 200})

        prompt, passed_context, options = fake_generator.calls[0]
        assert prompt == "prompt-tagger"
        assert passed_context is context
        assert options["temperature"] == 0.3
        assert options["max_tokens"] == 200

    @pytest.mark.asyncio
    async def test_failure_is_data(self, fake_generator, make_agent, context):
        fake_generator.failures["prompt-tagger"] = GenerationError("Rate limit exceeded")

        result = await AgentInvoker(fake_generator).invoke(make_agent("tagger"), context)

        assert result.success is False
        assert result.error == "Rate limit exceeded"
        assert result.response is None
        assert result.duration_ms >= 0

    @pytest.mark.asyncio
    async def test_unexpected_exception_captured(self, fake_generator, make_agent, context):
        fake_generator.failures["prompt-tagger"] = KeyError("choices")
        result = await AgentInvoker(fake_generator).invoke(make_agent("tagger"), context)
        assert result.success is False
        assert "choices" in result.error

    @pytest.mark.asyncio
    async def test_error_message_sanitized(self, fake_generator, make_agent, context):
        fake_generator.failures["prompt-tagger"] = RuntimeError("401 Bearer sk-abcdefghijklmnopqrstuvwxyz")
        result = await AgentInvoker(fake_generator).invoke(make_agent("tagger"), context)
        assert "sk-abcdefghijklmnopqrstuvwxyz" not in result.error

    @pytest.mark.asyncio
    async def test_response_delay_is_measured(self, fake_generator, make_agent, context):
        agent = make_agent("slow", response_delay=2)
        result = await AgentInvoker(fake_generator).invoke(agent, context)
        assert result.success
        assert result.duration_ms >= 2000

    @pytest.mark.asyncio
    async def test_stage_config_delay_overrides_agent(self, fake_generator, make_agent, context):
        agent = make_agent("slow", response_delay=5)
        result = await AgentInvoker(fake_generator).invoke(agent, context, {"response_delay": 0.2})
        assert 200 <= result.duration_ms < 5000

    @pytest.mark.asyncio
    async def test_delay_applies_on_failure(self, fake_generator, make_agent, context):
        fake_generator.failures["prompt-slow"] = RuntimeError("boom")
        agent = make_agent("slow", response_delay=0.2)
        result = await AgentInvoker(fake_generator).invoke(agent, context)
        assert result.success is False
        assert result.duration_ms >= 200

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self, fake_generator, make_agent, context):
        fake_generator.gate = asyncio.Event()
        task = asyncio.ensure_future(AgentInvoker(fake_generator).invoke(make_agent("a"), context))
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

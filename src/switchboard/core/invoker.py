"""Single-agent invocation.

An invocation always yields exactly one AgentResult. Generation failures are
recorded on the result and never raised, so callers can isolate faults per
agent. Only cancellation propagates.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Optional

from ..models.inbox import Agent
from ..models.message import InvocationContext
from ..models.result import AgentResult
from ..models.stage import Stage
from ..providers.base import Generator
from ..utils.sanitize import sanitize_error

logger = logging.getLogger(__name__)


def merge_options(agent: Agent, stage_config: Optional[dict] = None) -> dict:
    """Agent settings overlaid with per-assignment config. Assignment wins."""
    options = agent.settings.model_dump(exclude_none=True)
    for key, value in (stage_config or {}).items():
        if value is not None:
            options[key] = value
    options["context_documents"] = [doc.model_dump(exclude_none=True) for doc in agent.context_documents]
    return options


def response_delay_seconds(options: dict) -> float:
    try:
        delay = float(options.get("response_delay") or 0)
    except (TypeError, ValueError):
        return 0.0
    return max(delay, 0.0)


async def pace(start: float, delay: float) -> None:
    """Sleep until at least ``delay`` seconds have elapsed since ``start``."""
    remaining = delay - (time.monotonic() - start)
    while remaining > 0:
        await asyncio.sleep(remaining)
        remaining = delay - (time.monotonic() - start)


class AgentInvoker:
    def __init__(self, generator: Generator):
        self.generator = generator

    async def invoke(
        self,
        agent: Agent,
        context: InvocationContext,
        stage_config: Optional[dict] = None,
        stage: Stage = Stage.MAIN,
    ) -> AgentResult:
        started_at = datetime.now(timezone.utc)
        start = time.monotonic()

        options = merge_options(agent, stage_config)
        delay = response_delay_seconds(options)
        logger.info("Processing with agent: %s (%s)", agent.name, agent.agent_type)

        response: Optional[str] = None
        error: Optional[str] = None
        try:
            response = await self.generator.generate(agent.prompt, context, options)
        except Exception as e:
            error = sanitize_error(str(e)) or type(e).__name__
            logger.error("Error processing with agent %s: %s", agent.name, error)

        if delay > 0:
            logger.debug("Pacing agent %s to at least %.1fs", agent.name, delay)
            await pace(start, delay)

        return AgentResult(
            agent_id=agent.id,
            agent_name=agent.name,
            agent_type=agent.agent_type,
            stage=stage,
            success=error is None,
            response=response,
            error=error,
            started_at=started_at,
            processed_at=datetime.now(timezone.utc),
            duration_ms=round((time.monotonic() - start) * 1000),
        )

"""Main pipeline orchestrator.

Runs an inbox's agents for one inbound message in a fixed stage order:

1. pre-process  - sequential, ascending priority
2. response     - the single response agent, then reply delivery
3. main         - all agents concurrently, waiting for every one to settle
4. post-process - sequential, ascending priority

A missing or inactive inbox raises ConfigurationFault before any agent runs.
Every other failure is recorded on the returned PipelineResult.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Optional

from ..messaging.base import MessagingPlatform
from ..models.inbox import AgentAssignment, Inbox, InboxRef
from ..models.message import InboundMessage
from ..models.result import AgentResult, ExecutionPlan, PipelineResult, PipelineSummary
from ..models.stage import Stage
from ..providers.base import Generator
from ..utils.sanitize import sanitize_error
from .background import BackgroundTasks
from .context import DEFAULT_HISTORY_LIMIT, ConversationContextBuilder, resolve_credential
from .dispatcher import ResponseDispatcher
from .errors import ConfigurationFault
from .invoker import AgentInvoker
from .preview import build_execution_plan
from .sources import ConfigSource
from .stages import route_agents

logger = logging.getLogger(__name__)


def aggregate_results(
    inbox: InboxRef,
    pre_process: list[AgentResult],
    response: Optional[AgentResult],
    main: list[AgentResult],
    post_process: list[AgentResult],
    duration_ms: int = 0,
) -> PipelineResult:
    """Combine per-stage results into one PipelineResult, in stage order."""
    results = [*pre_process, *([response] if response else []), *main, *post_process]
    successful = sum(1 for r in results if r.success)

    summary = PipelineSummary(
        pre_process_agents=len(pre_process),
        response_agent=1 if response else 0,
        main_process_agents=len(main),
        post_process_agents=len(post_process),
        response_generated=bool(response and response.success and response.response),
        message_sent=bool(response and response.message_sent),
    )

    return PipelineResult(
        inbox=inbox,
        results=results,
        total_agents=len(results),
        successful_agents=successful,
        failed_agents=len(results) - successful,
        duration_ms=duration_ms,
        summary=summary,
        processed_at=datetime.now(timezone.utc),
    )


def _failed_result(assignment: AgentAssignment, stage: Stage, error: BaseException) -> AgentResult:
    now = datetime.now(timezone.utc)
    agent = assignment.agent
    return AgentResult(
        agent_id=agent.id,
        agent_name=agent.name,
        agent_type=agent.agent_type,
        stage=stage,
        success=False,
        error=sanitize_error(str(error)) or type(error).__name__,
        started_at=now,
        processed_at=now,
    )


class PipelineOrchestrator:
    def __init__(
        self,
        source: ConfigSource,
        generator: Generator,
        messaging: Optional[MessagingPlatform] = None,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        max_concurrency: Optional[int] = None,
        status_after_reply: Optional[str] = None,
    ):
        self.source = source
        self.max_concurrency = max_concurrency
        self.context_builder = ConversationContextBuilder(messaging, history_limit)
        self.invoker = AgentInvoker(generator)
        self.background = BackgroundTasks()
        self.dispatcher = ResponseDispatcher(
            self.invoker,
            self.context_builder,
            messaging,
            self.background,
            status_after_reply,
        )

    @classmethod
    def from_config(
        cls,
        config: dict,
        source: ConfigSource,
        generator: Generator,
        messaging: Optional[MessagingPlatform] = None,
    ) -> "PipelineOrchestrator":
        pipeline = config.get("pipeline", {})
        return cls(
            source,
            generator,
            messaging,
            history_limit=pipeline.get("history_limit", DEFAULT_HISTORY_LIMIT),
            max_concurrency=pipeline.get("max_concurrency"),
            status_after_reply=pipeline.get("status_after_reply"),
        )

    async def _load(self, inbox_id: str, require_active: bool = True) -> Inbox:
        inbox = await self.source.load_pipeline_config(inbox_id)
        if inbox is None:
            raise ConfigurationFault(inbox_id, "inbox not found")
        if require_active and not inbox.is_active:
            raise ConfigurationFault(inbox_id, "inbox is inactive")
        return inbox

    async def _invoke_assignment(
        self,
        inbox: Inbox,
        assignment: AgentAssignment,
        message: InboundMessage,
        stage: Stage,
    ) -> AgentResult:
        credential = resolve_credential(assignment.config, assignment.agent, inbox)
        context = await self.context_builder.build(message, inbox.ref(), assignment.config, credential)
        return await self.invoker.invoke(assignment.agent, context, assignment.config, stage)

    async def _run_sequential(
        self,
        inbox: Inbox,
        assignments: list[AgentAssignment],
        message: InboundMessage,
        stage: Stage,
    ) -> list[AgentResult]:
        logger.info("Processing %d %s agents sequentially", len(assignments), stage.value)
        results: list[AgentResult] = []
        for assignment in assignments:
            result = await self._invoke_assignment(inbox, assignment, message, stage)
            results.append(result)
            if not result.success:
                logger.warning("%s agent %s failed, continuing pipeline", stage.value, result.agent_name)
        return results

    async def _run_concurrent(
        self,
        inbox: Inbox,
        assignments: list[AgentAssignment],
        message: InboundMessage,
    ) -> list[AgentResult]:
        logger.info("Processing %d main agents in parallel", len(assignments))
        if not assignments:
            return []

        semaphore = asyncio.Semaphore(self.max_concurrency) if self.max_concurrency else None

        async def run_one(assignment: AgentAssignment) -> AgentResult:
            if semaphore is None:
                return await self._invoke_assignment(inbox, assignment, message, Stage.MAIN)
            async with semaphore:
                return await self._invoke_assignment(inbox, assignment, message, Stage.MAIN)

        outcomes = await asyncio.gather(*(run_one(a) for a in assignments), return_exceptions=True)

        results: list[AgentResult] = []
        for assignment, outcome in zip(assignments, outcomes):
            if isinstance(outcome, AgentResult):
                results.append(outcome)
            elif isinstance(outcome, Exception):
                logger.error("Main agent %s failed: %s", assignment.agent.name, sanitize_error(str(outcome)))
                results.append(_failed_result(assignment, Stage.MAIN, outcome))
            else:
                raise outcome
        return results

    async def run(self, inbox_id: str, message: InboundMessage) -> PipelineResult:
        """Execute the complete pipeline for an inbox."""
        inbox = await self._load(inbox_id)
        plan = route_agents(inbox)

        logger.info("Executing pipeline for inbox %s (%s) with %d agents", inbox.name, inbox.id, plan.agent_count)
        start = time.monotonic()

        pre_process = await self._run_sequential(inbox, plan.pre_process, message, Stage.PRE_PROCESS)
        response = await self.dispatcher.run(inbox, message)
        main = await self._run_concurrent(inbox, plan.main, message)
        post_process = await self._run_sequential(inbox, plan.post_process, message, Stage.POST_PROCESS)

        result = aggregate_results(
            inbox.ref(),
            pre_process,
            response,
            main,
            post_process,
            duration_ms=round((time.monotonic() - start) * 1000),
        )
        logger.info(
            "Pipeline finished for inbox %s: %d/%d agents succeeded",
            inbox.id,
            result.successful_agents,
            result.total_agents,
        )
        return result

    async def preview(self, inbox_id: str) -> ExecutionPlan:
        """Return the execution plan for an inbox without running anything."""
        inbox = await self._load(inbox_id, require_active=False)
        return build_execution_plan(inbox)

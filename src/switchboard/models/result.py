"""Pipeline result data models."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from .inbox import InboxRef
from .stage import Stage


class AgentResult(BaseModel):
    agent_id: str
    agent_name: str
    agent_type: str
    stage: Stage
    success: bool
    response: Optional[str] = None
    error: Optional[str] = None
    started_at: datetime
    processed_at: datetime
    duration_ms: int = 0
    message_sent: Optional[bool] = None
    send_error: Optional[str] = None


class PipelineSummary(BaseModel):
    pre_process_agents: int = 0
    response_agent: int = 0
    main_process_agents: int = 0
    post_process_agents: int = 0
    response_generated: bool = False
    message_sent: bool = False


class PipelineResult(BaseModel):
    inbox: InboxRef
    results: list[AgentResult] = []
    total_agents: int = 0
    successful_agents: int = 0
    failed_agents: int = 0
    duration_ms: int = 0
    summary: PipelineSummary = PipelineSummary()
    processed_at: datetime

    def by_stage(self, stage: Stage) -> list[AgentResult]:
        return [r for r in self.results if r.stage == stage]


class PlannedAgent(BaseModel):
    agent_id: str
    name: str
    agent_type: str
    priority: Optional[int] = None


class ExecutionPlan(BaseModel):
    inbox: InboxRef
    is_active: bool = True
    response_agent: Optional[PlannedAgent] = None
    pre_process: list[PlannedAgent] = []
    main_process: list[PlannedAgent] = []
    post_process: list[PlannedAgent] = []

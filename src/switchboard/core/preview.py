"""Execution plan preview.

Shows which agents a run would execute, and in which stage, without invoking
anything. Uses the same routing as a live run.
"""

from __future__ import annotations

from ..models.inbox import AgentAssignment, Inbox
from ..models.result import ExecutionPlan, PlannedAgent
from .stages import route_agents


def _planned(assignment: AgentAssignment) -> PlannedAgent:
    agent = assignment.agent
    return PlannedAgent(
        agent_id=agent.id,
        name=assignment.name or agent.name,
        agent_type=assignment.agent_type or agent.agent_type,
        priority=assignment.priority,
    )


def build_execution_plan(inbox: Inbox) -> ExecutionPlan:
    plan = route_agents(inbox)

    response = None
    if plan.response_agent is not None:
        agent = plan.response_agent.agent
        response = PlannedAgent(agent_id=agent.id, name=agent.name, agent_type=agent.agent_type)

    return ExecutionPlan(
        inbox=inbox.ref(),
        is_active=inbox.is_active,
        response_agent=response,
        pre_process=[_planned(a) for a in plan.pre_process],
        # Main runs as one concurrent batch; priority order is for display only
        main_process=[_planned(a) for a in sorted(plan.main, key=lambda a: a.priority)],
        post_process=[_planned(a) for a in plan.post_process],
    )

"""Priority bucket classification.

Every active pipeline-array entry falls into exactly one bucket:

    priority < 100          -> pre-process  (sequential, ascending priority)
    100 <= priority < 200   -> main         (one concurrent batch)
    priority >= 200         -> post-process (sequential, ascending priority)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from ..models.inbox import AgentAssignment, Inbox, ResponseAssignment
from ..models.stage import Stage

MAIN_PRIORITY_FLOOR = 100
POST_PROCESS_PRIORITY_FLOOR = 200


def bucket_for_priority(priority: int) -> Stage:
    """Map an assignment priority to its bucket."""
    if priority < MAIN_PRIORITY_FLOOR:
        return Stage.PRE_PROCESS
    if priority < POST_PROCESS_PRIORITY_FLOOR:
        return Stage.MAIN
    return Stage.POST_PROCESS


@dataclass
class StagePlan:
    response_agent: Optional[ResponseAssignment] = None
    pre_process: list[AgentAssignment] = field(default_factory=list)
    main: list[AgentAssignment] = field(default_factory=list)
    post_process: list[AgentAssignment] = field(default_factory=list)

    @property
    def agent_count(self) -> int:
        count = len(self.pre_process) + len(self.main) + len(self.post_process)
        return count + (1 if self.response_agent else 0)


def _response_agent_id(inbox: Inbox) -> Optional[str]:
    ra = inbox.response_agent
    if ra is None:
        return None
    if ra.agent is not None:
        return ra.agent.id
    return ra.agent_id


def route_agents(inbox: Inbox) -> StagePlan:
    """Classify an inbox's configured agents into stage buckets.

    Inactive entries, entries whose agent did not resolve, and entries that
    point at the response agent are dropped. Pre- and post-process lists are
    stably sorted by priority; main keeps array order.
    """
    response_id = _response_agent_id(inbox)
    response = inbox.response_agent if inbox.response_agent and inbox.response_agent.agent else None

    buckets: dict[Stage, list[AgentAssignment]] = {
        Stage.PRE_PROCESS: [],
        Stage.MAIN: [],
        Stage.POST_PROCESS: [],
    }
    for assignment in inbox.agents:
        if not assignment.is_active or assignment.agent is None:
            continue
        if response_id is not None and assignment.agent.id == response_id:
            continue
        buckets[bucket_for_priority(assignment.priority)].append(assignment)

    # sorted() is stable, so equal priorities keep array order
    return StagePlan(
        response_agent=response,
        pre_process=sorted(buckets[Stage.PRE_PROCESS], key=lambda a: a.priority),
        main=buckets[Stage.MAIN],
        post_process=sorted(buckets[Stage.POST_PROCESS], key=lambda a: a.priority),
    )

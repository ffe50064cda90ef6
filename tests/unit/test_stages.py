"""Tests for core/stages.py."""

from __future__ import annotations

import pytest

from switchboard.core.stages import bucket_for_priority, route_agents
from switchboard.models.inbox import AgentAssignment
from switchboard.models.stage import Stage


class TestBucketForPriority:
    @pytest.mark.parametrize(
        "priority,expected",
        [
            (1, Stage.PRE_PROCESS),
            (99, Stage.PRE_PROCESS),
            (100, Stage.MAIN),
            (199, Stage.MAIN),
            (200, Stage.POST_PROCESS),
            (999, Stage.POST_PROCESS),
        ],
    )
    def test_boundaries(self, priority, expected):
        assert bucket_for_priority(priority) == expected

    def test_never_returns_response(self):
        assert all(bucket_for_priority(p) != Stage.RESPONSE for p in range(0, 1000, 7))


def _ids(assignments):
    return [a.agent.id for a in assignments]


class TestRouteAgents:
    def test_pre_process_sorted_ascending(self, make_inbox):
        inbox = make_inbox([("thirty", 30), ("ten", 10), ("hundred", 100), ("late", 250)])
        plan = route_agents(inbox)
        assert _ids(plan.pre_process) == ["ten", "thirty"]
        assert _ids(plan.main) == ["hundred"]
        assert _ids(plan.post_process) == ["late"]

    def test_main_bucket_membership(self, make_inbox):
        inbox = make_inbox([("a", 150), ("b", 120), ("c", 50), ("d", 250)])
        plan = route_agents(inbox)
        assert set(_ids(plan.main)) == {"a", "b"}

    def test_main_keeps_array_order(self, make_inbox):
        inbox = make_inbox([("a", 150), ("b", 120), ("c", 100)])
        assert _ids(route_agents(inbox).main) == ["a", "b", "c"]

    def test_inactive_entries_dropped_everywhere(self, make_inbox):
        inbox = make_inbox([
            ("pre", 10, False),
            ("main", 150, False),
            ("post", 300, False),
            ("kept", 150),
        ])
        plan = route_agents(inbox)
        assert plan.pre_process == []
        assert _ids(plan.main) == ["kept"]
        assert plan.post_process == []

    def test_ties_keep_original_order(self, make_inbox):
        inbox = make_inbox([("x", 50), ("y", 20), ("z", 50), ("w", 20), ("p2", 210), ("p1", 210)])
        plan = route_agents(inbox)
        assert _ids(plan.pre_process) == ["y", "w", "x", "z"]
        assert _ids(plan.post_process) == ["p2", "p1"]

    def test_unresolved_agents_dropped(self, make_inbox):
        inbox = make_inbox([("ok", 10)])
        inbox.agents.append(AgentAssignment(agent_id="gone", agent=None, priority=10))
        assert _ids(route_agents(inbox).pre_process) == ["ok"]

    def test_response_agent_not_duplicated(self, make_inbox):
        inbox = make_inbox([("greeter", 150), ("other", 150)], response="greeter")
        plan = route_agents(inbox)
        assert plan.response_agent.agent.id == "greeter"
        assert _ids(plan.main) == ["other"]

    def test_no_response_agent(self, make_inbox):
        plan = route_agents(make_inbox([("a", 10)]))
        assert plan.response_agent is None
        assert plan.agent_count == 1

    def test_agent_count_includes_response(self, make_inbox):
        plan = route_agents(make_inbox([("a", 10), ("b", 150), ("c", 200)], response="r"))
        assert plan.agent_count == 4

    def test_does_not_mutate_inbox(self, make_inbox):
        inbox = make_inbox([("b", 50), ("a", 10)])
        route_agents(inbox)
        assert [a.agent.id for a in inbox.agents] == ["b", "a"]

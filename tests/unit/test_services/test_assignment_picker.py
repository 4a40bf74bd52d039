"""Tests for batch agent selection."""

import pytest
from datetime import datetime, timezone
from agencyops.models.agent import AgentLoad
from agencyops.models.distribution import DistributionStrategy
from agencyops.models.task import Task
from agencyops.services.assignment_picker import (
    order_tasks_for_assignment,
    pick_assignments,
    rank_agents,
)


def _task(task_id, priority="medium", due=None):
    return Task(id=task_id, name=task_id, priority=priority, due_date=due)


def _idle(*agent_ids):
    return {agent_id: AgentLoad() for agent_id in agent_ids}


@pytest.mark.unit
def test_order_tasks_priority_then_due_date():
    """Urgent first, then earliest due date, undated last."""
    tasks = [
        _task("low", "low", datetime(2024, 12, 10, tzinfo=timezone.utc)),
        _task("medium_undated", "medium"),
        _task("medium_late", "medium", datetime(2024, 12, 20, tzinfo=timezone.utc)),
        _task("medium_soon", "medium", datetime(2024, 12, 11, tzinfo=timezone.utc)),
        _task("urgent", "urgent"),
    ]

    ordered = [t.id for t in order_tasks_for_assignment(tasks)]

    assert ordered == ["urgent", "medium_soon", "medium_late", "medium_undated", "low"]


@pytest.mark.unit
def test_order_tasks_naive_due_dates():
    """Naive and aware due dates sort together."""
    tasks = [
        _task("aware", due=datetime(2024, 12, 12, tzinfo=timezone.utc)),
        _task("naive", due=datetime(2024, 12, 11)),
    ]
    assert [t.id for t in order_tasks_for_assignment(tasks)] == ["naive", "aware"]


@pytest.mark.unit
def test_least_load_urgent_medium_low_over_two_idle_agents():
    """The urgent task goes to one agent and the other two to the other."""
    tasks = [_task("u", "urgent"), _task("m", "medium"), _task("l", "low")]
    load = _idle("a1", "a2")

    picks = pick_assignments(tasks, ["a1", "a2"], load, DistributionStrategy.LEAST_LOAD)

    assert [(p.task_id, p.agent_id) for p in picks] == [("u", "a1"), ("m", "a2"), ("l", "a2")]
    assert sorted(bucket.weighted_score for bucket in load.values()) == [2, 3]
    assert sorted(bucket.weighted_score for bucket in load.values()) != [0, 5]


@pytest.mark.unit
def test_least_load_each_pick_is_lightest():
    """Each pick goes to an agent with the minimal load at that moment."""
    tasks = [_task(f"t{i}", p) for i, p in enumerate(["urgent", "high", "low", "urgent", "medium", "high"])]
    agents = ["a1", "a2", "a3"]
    load = {"a1": AgentLoad(active_count=1, weighted_score=2), "a2": AgentLoad(), "a3": AgentLoad()}

    before = {}
    for task in tasks:
        before = {a: (load[a].weighted_score, load[a].active_count) for a in agents}
        pick = pick_assignments([task], agents, load, DistributionStrategy.LEAST_LOAD)[0]
        assert before[pick.agent_id] == min(before.values())


@pytest.mark.unit
def test_round_robin_least_stays_in_bottom_window():
    """Each pick is among the K lightest agents and rotates inside them."""
    agents = ["a1", "a2", "a3", "a4", "a5"]
    load = {
        "a1": AgentLoad(),
        "a2": AgentLoad(active_count=1, weighted_score=1),
        "a3": AgentLoad(active_count=1, weighted_score=2),
        "a4": AgentLoad(active_count=3, weighted_score=9),
        "a5": AgentLoad(active_count=4, weighted_score=12),
    }
    tasks = [_task(f"t{i}") for i in range(3)]

    picks = pick_assignments(tasks, agents, load, DistributionStrategy.ROUND_ROBIN_LEAST)

    # rotation index 0, 1, 2 over the bottom three, re-ranked after each pick
    assert [p.agent_id for p in picks] == ["a1", "a2", "a2"]
    assert all(p.agent_id not in ("a4", "a5") for p in picks)


@pytest.mark.unit
def test_round_robin_least_small_pool():
    """With fewer agents than the window the whole pool rotates."""
    picks = pick_assignments(
        [_task("t1"), _task("t2"), _task("t3")],
        ["a1", "a2"],
        _idle("a1", "a2"),
        DistributionStrategy.ROUND_ROBIN_LEAST,
    )
    assert {p.agent_id for p in picks} == {"a1", "a2"}


@pytest.mark.unit
def test_pure_round_robin_ignores_load():
    """Pure rotation cycles through the pool in order."""
    load = {"a1": AgentLoad(active_count=10, weighted_score=30), "a2": AgentLoad(), "a3": AgentLoad()}
    tasks = [_task(f"t{i}") for i in range(5)]

    picks = pick_assignments(tasks, ["a1", "a2", "a3"], load, DistributionStrategy.PURE_ROUND_ROBIN)

    assert [p.agent_id for p in picks] == ["a1", "a2", "a3", "a1", "a2"]


@pytest.mark.unit
def test_pick_mutates_load_and_snapshots():
    """Each pick bumps the chosen agent and records the post-pick load."""
    load = _idle("a1")
    picks = pick_assignments(
        [_task("t1", "high"), _task("t2", "urgent")], ["a1"], load, DistributionStrategy.LEAST_LOAD
    )

    assert load["a1"].active_count == 2
    assert load["a1"].weighted_score == 5
    assert picks[0].load_snapshot == {"active": 1, "weighted": 2}
    assert picks[1].load_snapshot == {"active": 2, "weighted": 5}


@pytest.mark.unit
def test_pick_adds_missing_agents_to_load():
    """Agents without a load entry start idle."""
    load = {}
    picks = pick_assignments([_task("t1")], ["a1"], load, DistributionStrategy.LEAST_LOAD)
    assert picks[0].agent_id == "a1"
    assert load["a1"].active_count == 1


@pytest.mark.unit
def test_pick_empty_pool():
    """Test an empty pool is an error."""
    with pytest.raises(ValueError):
        pick_assignments([_task("t1")], [], {}, DistributionStrategy.LEAST_LOAD)


@pytest.mark.unit
def test_rank_agents():
    """Test ranking by load key."""
    load = {"b": AgentLoad(weighted_score=1, active_count=1), "a": AgentLoad(weighted_score=1, active_count=1),
            "c": AgentLoad()}
    assert rank_agents(["b", "a", "c"], load) == ["c", "a", "b"]

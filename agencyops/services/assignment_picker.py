"""Agent selection for batch distribution.

Each strategy is a pure function of the agent pool, the current load map and
a rotation index. ``pick_assignments`` walks the ordered tasks, asks the
strategy for an agent, and bumps that agent's load before the next pick so
every decision sees the work already handed out in the same batch.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Sequence

from agencyops.models.agent import AgentLoad
from agencyops.models.distribution import DistributionStrategy
from agencyops.models.task import PRIORITY_RANK, Task
from agencyops.services.load_calculator import load_sort_key
from agencyops.utils.config import AppConfig

_FAR_FUTURE = datetime.max.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class Pick:
    task_id: str
    agent_id: str
    load_snapshot: dict


def _due_key(task: Task) -> datetime:
    due = task.due_date
    if due is None:
        return _FAR_FUTURE
    if due.tzinfo is None:
        due = due.replace(tzinfo=timezone.utc)
    return due


def order_tasks_for_assignment(tasks: Sequence[Task]) -> list[Task]:
    """Urgent first, then earliest due date; tasks without a due date go last."""
    return sorted(tasks, key=lambda t: (-PRIORITY_RANK[t.priority], _due_key(t)))


def rank_agents(agent_ids: Sequence[str], load: dict[str, AgentLoad]) -> list[str]:
    return sorted(agent_ids, key=lambda agent_id: load_sort_key(agent_id, load))


def pick_least_load(agent_ids: Sequence[str], load: dict[str, AgentLoad], rr_index: int) -> str:
    return rank_agents(agent_ids, load)[0]


def pick_round_robin_least(agent_ids: Sequence[str], load: dict[str, AgentLoad], rr_index: int) -> str:
    window = max(1, min(AppConfig.ROUND_ROBIN_WINDOW, len(agent_ids)))
    bottom = rank_agents(agent_ids, load)[:window]
    return bottom[rr_index % len(bottom)]


def pick_pure_round_robin(agent_ids: Sequence[str], load: dict[str, AgentLoad], rr_index: int) -> str:
    return agent_ids[rr_index % len(agent_ids)]


StrategyFn = Callable[[Sequence[str], dict[str, AgentLoad], int], str]

STRATEGIES: dict[DistributionStrategy, StrategyFn] = {
    DistributionStrategy.LEAST_LOAD: pick_least_load,
    DistributionStrategy.ROUND_ROBIN_LEAST: pick_round_robin_least,
    DistributionStrategy.PURE_ROUND_ROBIN: pick_pure_round_robin,
}

# Strategies that advance the rotation index after each pick
_ROTATING = {DistributionStrategy.ROUND_ROBIN_LEAST, DistributionStrategy.PURE_ROUND_ROBIN}


def pick_assignments(
    tasks: Sequence[Task],
    agent_ids: Sequence[str],
    load: dict[str, AgentLoad],
    strategy: DistributionStrategy,
) -> list[Pick]:
    """
    Choose an agent for each task, in the given task order.

    ``load`` is mutated: after each pick the chosen agent's active count grows
    by one and its weighted score by the task's weight.
    """
    if not agent_ids:
        raise ValueError("agent pool is empty")

    choose = STRATEGIES[strategy]
    for agent_id in agent_ids:
        load.setdefault(agent_id, AgentLoad())

    picks: list[Pick] = []
    rr_index = 0

    for task in tasks:
        chosen = choose(agent_ids, load, rr_index)
        if strategy in _ROTATING:
            rr_index += 1

        bucket = load[chosen]
        bucket.active_count += 1
        bucket.weighted_score += task.weight

        picks.append(Pick(task_id=task.id, agent_id=chosen, load_snapshot=bucket.snapshot()))

    return picks

"""Agent workload - active task counts and priority-weighted scores."""

from typing import Iterable, Optional

from agencyops.models.agent import Agent, AgentLoad
from agencyops.models.task import ACTIVE_STATUSES, PRIORITY_WEIGHT, TaskPriority, TaskStatus
from agencyops.services.supabase_client import get_active_agents, get_tasks_for_agents
from agencyops.utils.logging import get_structured_logger, timed

logger = get_structured_logger(__name__)

ACTIVE_STATUS_VALUES = sorted(status.value for status in ACTIVE_STATUSES)


def priority_weight(priority: str) -> int:
    """Weight of a priority value; unknown priorities weigh like medium."""
    try:
        return PRIORITY_WEIGHT[TaskPriority(priority)]
    except ValueError:
        return PRIORITY_WEIGHT[TaskPriority.MEDIUM]


def build_load_map(agent_ids: Iterable[str], tasks: Iterable[dict]) -> dict[str, AgentLoad]:
    """
    Compute per-agent load from task rows.

    Every agent in the pool gets an entry, even with no tasks. Tasks outside
    the active statuses or assigned to someone outside the pool are ignored.
    """
    load = {agent_id: AgentLoad() for agent_id in agent_ids}

    for task in tasks:
        bucket = load.get(task.get("assigned_to_id"))
        if bucket is None:
            continue
        status = task.get("status")
        try:
            if TaskStatus(status) not in ACTIVE_STATUSES:
                continue
        except ValueError:
            continue
        bucket.active_count += 1
        bucket.weighted_score += priority_weight(task.get("priority"))
        bucket.by_status[status] = bucket.by_status.get(status, 0) + 1

    return load


def load_sort_key(agent_id: str, load: dict[str, AgentLoad]) -> tuple:
    """Lightest first: weighted score, then active count, then id."""
    bucket = load[agent_id]
    return (bucket.weighted_score, bucket.active_count, agent_id)


async def fetch_active_agents(
    category: Optional[str] = None,
    allowed_ids: Optional[list[str]] = None
) -> list[Agent]:
    rows = await get_active_agents(category=category, allowed_ids=allowed_ids)
    return [Agent.model_validate(row) for row in rows]


async def load_for_agents(
    agent_ids: list[str],
    client_id: Optional[str] = None
) -> dict[str, AgentLoad]:
    """Read the current load of the given agents."""
    tasks = await get_tasks_for_agents(agent_ids, ACTIVE_STATUS_VALUES, client_id=client_id)
    return build_load_map(agent_ids, tasks)


@timed("compute_agent_loads", logger=logger)
async def compute_agent_loads(
    category: Optional[str] = None,
    client_id: Optional[str] = None
) -> list[dict]:
    """Agents with their load, lightest first."""
    agents = await fetch_active_agents(category=category)
    if not agents:
        return []

    load = await load_for_agents([a.id for a in agents], client_id=client_id)

    ordered = sorted(agents, key=lambda a: load_sort_key(a.id, load))

    logger.info(
        "Computed agent load",
        agents=len(agents),
        category=category,
        client_id=client_id,
    )

    return [
        {
            "agent": {
                "id": a.id,
                "name": a.display_name,
                "email": a.email,
                "category": a.category,
                "image": a.image,
            },
            "load": {
                "activeCount": load[a.id].active_count,
                "weightedScore": load[a.id].weighted_score,
                "byStatus": load[a.id].by_status,
            },
        }
        for a in ordered
    ]

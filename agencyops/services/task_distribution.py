"""Task distribution and reassignment operations.

Every operation follows the same sequence: read the current task rows,
build an assignment plan, commit it in one database transaction, and only
then dispatch the notifications the plan collected.
"""

from typing import Iterable, Optional

from agencyops.models.distribution import (
    BulkReassignRequest,
    DistributeRequest,
    SingleReassignRequest,
    SmartDistributeRequest,
    TaskReassignRequest,
)
from agencyops.models.session import AuthUser
from agencyops.models.task import Task
from agencyops.services.assignment_picker import order_tasks_for_assignment, pick_assignments
from agencyops.services.assignment_writer import (
    AssignmentPlan,
    PlanItem,
    PlanKind,
    build_assignment_plan,
    commit_assignment_plan,
)
from agencyops.services.load_calculator import fetch_active_agents, load_for_agents
from agencyops.services.notification_dispatcher import dispatch_notifications
from agencyops.services.supabase_client import find_user, get_tasks_by_ids, get_users_by_ids
from agencyops.utils.errors import NotFoundError
from agencyops.utils.logging import get_structured_logger, mask_user_id, sanitize_text

logger = get_structured_logger(__name__)

SYSTEM_ACTOR = "system"


def _unique(values: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(values))


async def resolve_actor(
    by_id: Optional[str] = None,
    by_email: Optional[str] = None,
    session_user: Optional[AuthUser] = None,
) -> str:
    """ID (or email) of whoever performs the change; ``"system"`` when unknown."""
    if by_id or by_email:
        user = await find_user(user_id=by_id) if by_id else await find_user(email=by_email)
        if user:
            return user.get("id") or user.get("email")
        return SYSTEM_ACTOR
    if session_user:
        return session_user.id
    return SYSTEM_ACTOR


async def _load_tasks(task_ids: list[str]) -> dict[str, dict]:
    rows = await get_tasks_by_ids(_unique(task_ids))
    current = {row["id"]: row for row in rows}
    missing = [task_id for task_id in task_ids if task_id not in current]
    if missing:
        raise NotFoundError("Task not found", f"unknown task ids: {', '.join(sorted(set(missing)))}")
    return current


async def _ensure_agents_exist(agent_ids: list[str]) -> None:
    wanted = _unique(agent_ids)
    found = {row["id"] for row in await get_users_by_ids(wanted)}
    missing = [agent_id for agent_id in wanted if agent_id not in found]
    if missing:
        raise NotFoundError("Agent not found", f"unknown agent ids: {', '.join(sorted(missing))}")


async def _execute(plan: AssignmentPlan) -> int:
    updated = await commit_assignment_plan(plan)
    # Committed; notification failures cannot undo the assignment
    await dispatch_notifications(plan.notifications)
    return updated


async def distribute_tasks(request: DistributeRequest, actor: str) -> dict:
    """Assign each task to the agent picked by the caller."""
    current = await _load_tasks([a.task_id for a in request.assignments])
    await _ensure_agents_exist([a.agent_id for a in request.assignments])

    items = [
        PlanItem(task_id=a.task_id, agent_id=a.agent_id, note=a.note, due_date=a.due_date)
        for a in request.assignments
    ]
    plan = build_assignment_plan(
        PlanKind.ASSIGN, items, current, actor, client_id=request.client_id
    )
    updated = await _execute(plan)

    logger.info(
        "Tasks distributed",
        client_id=request.client_id,
        tasks=updated,
        actor=mask_user_id(actor),
    )

    return {
        "message": "Tasks distributed successfully",
        "assignedTasks": updated,
        "assignments": [
            a.model_dump(by_alias=True, exclude_none=True) for a in request.assignments
        ],
    }


async def reassign_task(request: SingleReassignRequest, actor: str) -> dict:
    """Move one task to another agent."""
    current = await _load_tasks([request.task_id])
    await _ensure_agents_exist([request.new_agent_id])

    item = PlanItem(
        task_id=request.task_id,
        agent_id=request.new_agent_id,
        reassign_notes=request.reassign_notes,
    )
    plan = build_assignment_plan(PlanKind.REASSIGN, [item], current, actor)
    await _execute(plan)

    move = plan.moves[0]
    logger.info(
        "Task reassigned",
        task_id=request.task_id,
        reassigned_from=mask_user_id(move["from"]),
        reassigned_to=mask_user_id(move["to"]),
        reassign_notes=sanitize_text(request.reassign_notes),
    )
    return {
        "message": "Task reassigned",
        "taskId": request.task_id,
        "reassignedFrom": move["from"],
        "reassignedTo": move["to"],
    }


async def reassign_tasks(request: BulkReassignRequest, actor: str) -> dict:
    """Move several tasks of one client in a single transaction."""
    current = await _load_tasks([r.task_id for r in request.reassignments])
    await _ensure_agents_exist([r.to_agent_id for r in request.reassignments])

    items = [
        PlanItem(task_id=r.task_id, agent_id=r.to_agent_id, reassign_notes=r.reassign_notes)
        for r in request.reassignments
    ]
    plan = build_assignment_plan(
        PlanKind.REASSIGN, items, current, actor, client_id=request.client_id
    )
    updated = await _execute(plan)

    logger.info("Tasks re-distributed", client_id=request.client_id, tasks=updated)
    return {
        "message": "Tasks re-distributed",
        "summary": {"updatedTasks": updated},
    }


async def smart_distribute(request: SmartDistributeRequest, actor: str) -> dict:
    """Pick agents by load for a batch of tasks, then assign them."""
    agents = await fetch_active_agents(allowed_ids=request.allowed_agent_ids)
    if not agents:
        raise NotFoundError("No agents found")
    agent_ids = [a.id for a in agents]

    load = await load_for_agents(agent_ids)

    rows = await get_tasks_by_ids(_unique(request.task_ids))
    if not rows:
        raise NotFoundError("No tasks found to assign")
    tasks = order_tasks_for_assignment([Task.model_validate(row) for row in rows])

    picks = pick_assignments(tasks, agent_ids, load, request.strategy)

    items = [
        PlanItem(
            task_id=p.task_id,
            agent_id=p.agent_id,
            note=request.put_notes.get(p.task_id),
            load_snapshot=p.load_snapshot,
        )
        for p in picks
    ]
    plan = build_assignment_plan(
        PlanKind.SMART,
        items,
        {row["id"]: row for row in rows},
        actor,
        client_id=request.client_id,
        strategy=request.strategy.value,
    )
    updated = await _execute(plan)

    logger.info(
        "Smart distribution complete",
        client_id=request.client_id,
        strategy=request.strategy.value,
        agents=len(agent_ids),
        tasks=updated,
    )
    return {
        "message": "Smart distribution complete",
        "assignedTasks": updated,
        "picks": [{"taskId": p.task_id, "agentId": p.agent_id} for p in picks],
    }


async def penalize_and_reassign(task_id: str, request: TaskReassignRequest, actor: str) -> dict:
    """
    Send a task back for rework, rating the current attempt Poor.

    Without ``to_agent_id`` the task stays with its current agent.
    """
    current = await _load_tasks([task_id])
    if request.to_agent_id:
        await _ensure_agents_exist([request.to_agent_id])

    item = PlanItem(
        task_id=task_id,
        agent_id=request.to_agent_id,
        reassign_notes=request.reassign_notes,
    )
    plan = build_assignment_plan(PlanKind.PENALIZE, [item], current, actor)
    await _execute(plan)

    move = plan.moves[0]
    logger.info(
        "Task sent back for rework",
        task_id=task_id,
        reassigned_from=mask_user_id(move["from"]),
        reassigned_to=mask_user_id(move["to"]),
        reassign_notes=sanitize_text(request.reassign_notes),
    )
    return {
        "message": "Task reassigned",
        "taskId": task_id,
        "reassignedFrom": move["from"],
        "reassignedTo": move["to"],
    }

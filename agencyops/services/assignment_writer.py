"""Assignment writer - turns picks into one atomic database write.

``build_assignment_plan`` is pure: given the current task rows it works out
every row change the assignment needs (task fields, audit entries, counter
adjustments) plus the notifications to send once the write has committed.
``commit_assignment_plan`` ships the plan to the ``apply_task_assignments``
database function, which applies it in a single transaction.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field
from ulid import ULID

from agencyops.models.activity import ActivityAction, NotificationType
from agencyops.models.task import PerformanceRating, TaskStatus
from agencyops.services.supabase_client import apply_task_assignments
from agencyops.utils.errors import NotFoundError, RequestValidationError
from agencyops.utils.logging import get_structured_logger, log_timing

logger = get_structured_logger(__name__)

MSG_ASSIGNED = "You have been assigned a new task"
MSG_SMART_ASSIGNED = "You have been assigned a new task (smart distribution)."
MSG_REASSIGNED_TO = "A task has been reassigned to you."
MSG_REASSIGNED_FROM = "A task previously assigned to you has been reassigned."

# Fields wiped when work moves to another agent
COMPLETION_RESET = {
    "actual_duration_minutes": None,
    "completion_link": None,
    "completed_at": None,
}


class PlanKind(str, Enum):
    ASSIGN = "assign"
    SMART = "smart"
    REASSIGN = "reassign"
    PENALIZE = "penalize"


class PlanItem(BaseModel):
    """One task move requested by the caller."""
    task_id: str
    agent_id: Optional[str] = None
    note: Optional[str] = None
    due_date: Optional[str] = None
    reassign_notes: Optional[str] = None
    load_snapshot: Optional[dict] = None


class TaskUpdate(BaseModel):
    id: str
    fields: dict[str, Any]


class CounterAdjustment(BaseModel):
    client_id: str
    agent_id: str
    delta: int


class PendingNotification(BaseModel):
    user_id: str
    task_id: str
    type: NotificationType = NotificationType.GENERAL
    message: str


class AssignmentPlan(BaseModel):
    kind: PlanKind
    task_updates: list[TaskUpdate] = Field(default_factory=list)
    activity_logs: list[dict] = Field(default_factory=list)
    counter_adjustments: list[CounterAdjustment] = Field(default_factory=list)
    notifications: list[PendingNotification] = Field(default_factory=list)
    moves: list[dict] = Field(default_factory=list)

    def to_payload(self) -> dict:
        """Body of the transactional database call (notifications excluded)."""
        return {
            "task_updates": [u.model_dump() for u in self.task_updates],
            "activity_logs": self.activity_logs,
            "counter_adjustments": [c.model_dump() for c in self.counter_adjustments],
        }


def parse_due_date(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO date/datetime; anything unparseable is treated as absent."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.strip())
    except (ValueError, AttributeError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def new_log_id() -> str:
    return f"log_{ULID()}"


def _task_fields(kind: PlanKind, item: PlanItem, target: str, now_iso: str) -> dict[str, Any]:
    fields: dict[str, Any] = {"assigned_to_id": target, "updated_at": now_iso}

    if kind is PlanKind.ASSIGN:
        fields["status"] = TaskStatus.PENDING.value
        fields["notes"] = item.note or ""
        due = parse_due_date(item.due_date)
        if due:
            fields["due_date"] = due.isoformat()
    elif kind is PlanKind.SMART:
        fields["status"] = TaskStatus.PENDING.value
        fields["notes"] = (item.note or "").strip()
        fields.update(COMPLETION_RESET)
    elif kind is PlanKind.REASSIGN:
        fields["status"] = TaskStatus.PENDING.value
        fields["reassign_notes"] = item.reassign_notes or ""
        fields.update(COMPLETION_RESET)
    else:
        fields["status"] = TaskStatus.REASSIGNED.value
        fields["reassign_notes"] = item.reassign_notes or ""
        fields["performance_rating"] = PerformanceRating.POOR.value
        fields.update(COMPLETION_RESET)

    return fields


def _log_details(
    kind: PlanKind,
    item: PlanItem,
    row: dict,
    client_id: Optional[str],
    prior: Optional[str],
    target: str,
    actor: str,
    now_iso: str,
    strategy: Optional[str],
) -> dict[str, Any]:
    if kind is PlanKind.ASSIGN:
        details = {"clientId": client_id, "assignedAt": now_iso, "assignedBy": actor}
        if item.due_date:
            details["dueDate"] = item.due_date
        return details

    if kind is PlanKind.SMART:
        return {
            "clientId": client_id,
            "assignedAt": now_iso,
            "assignedBy": actor,
            "strategy": strategy,
            "loadSnapshot": item.load_snapshot,
            "note": item.note,
        }

    details = {
        "clientId": client_id,
        "reassignedAt": now_iso,
        "reassignedTo": target,
        "reassignedFrom": prior,
        "reassignedBy": actor,
        "reassignNotes": item.reassign_notes,
        "status": TaskStatus.REASSIGNED.value,
    }
    if kind is PlanKind.PENALIZE:
        details["previousPerformance"] = row.get("performance_rating")
        details["newPerformance"] = PerformanceRating.POOR.value
    return details


def _assignment_message(kind: PlanKind, item: PlanItem) -> str:
    if kind is PlanKind.SMART:
        return MSG_SMART_ASSIGNED
    if kind is PlanKind.ASSIGN:
        due = parse_due_date(item.due_date)
        suffix = f" (due {due.strftime('%b %d, %Y')})" if due else ""
        return f"{MSG_ASSIGNED}{suffix}."
    return MSG_REASSIGNED_TO


def build_assignment_plan(
    kind: PlanKind,
    items: list[PlanItem],
    current_tasks: dict[str, dict],
    actor: str,
    client_id: Optional[str] = None,
    strategy: Optional[str] = None,
    now: Optional[datetime] = None,
) -> AssignmentPlan:
    """
    Work out every row change for a batch of task moves.

    Counter adjustments are ordered per task: the previous assignee loses one
    (only when there was one and it differs from the new agent), then the new
    assignee gains one. Penalizing a task without changing its agent leaves
    the counters alone. Nothing here deduplicates against earlier requests,
    so submitting the same batch twice counts it twice. A task listed more
    than once is moved in order, each entry starting from the assignee the
    previous entry left it with.
    """
    now_iso = (now or datetime.now(timezone.utc)).isoformat()
    action = (
        ActivityAction.TASK_ASSIGNED
        if kind in (PlanKind.ASSIGN, PlanKind.SMART)
        else ActivityAction.TASK_REASSIGNED
    )
    plan = AssignmentPlan(kind=kind)
    assignees: dict[str, Optional[str]] = {}

    for item in items:
        row = current_tasks.get(item.task_id)
        if row is None:
            raise NotFoundError("Task not found", f"task {item.task_id} does not exist")

        prior = assignees.get(item.task_id, row.get("assigned_to_id"))
        target = item.agent_id or prior
        if not target:
            raise RequestValidationError(
                "Invalid request data",
                f"task {item.task_id} has no assignee and no target agent was given",
            )
        task_client = client_id or row.get("client_id")

        plan.task_updates.append(
            TaskUpdate(id=item.task_id, fields=_task_fields(kind, item, target, now_iso))
        )

        plan.activity_logs.append({
            "id": new_log_id(),
            "entity_type": "Task",
            "entity_id": item.task_id,
            "user_id": target,
            "action": action.value,
            "timestamp": now_iso,
            "details": _log_details(
                kind, item, row, task_client, prior, target, actor, now_iso, strategy
            ),
        })

        moved = bool(prior) and prior != target
        if task_client and (moved or kind is not PlanKind.PENALIZE):
            if moved:
                plan.counter_adjustments.append(
                    CounterAdjustment(client_id=task_client, agent_id=prior, delta=-1)
                )
            plan.counter_adjustments.append(
                CounterAdjustment(client_id=task_client, agent_id=target, delta=1)
            )

        plan.notifications.append(PendingNotification(
            user_id=target,
            task_id=item.task_id,
            message=_assignment_message(kind, item),
        ))
        if moved:
            plan.notifications.append(PendingNotification(
                user_id=prior,
                task_id=item.task_id,
                message=MSG_REASSIGNED_FROM,
            ))

        plan.moves.append({"taskId": item.task_id, "from": prior, "to": target})
        assignees[item.task_id] = target

    return plan


async def commit_assignment_plan(plan: AssignmentPlan) -> int:
    """Apply the plan atomically; returns the number of tasks updated."""
    if not plan.task_updates:
        return 0

    with log_timing(
        "apply_task_assignments",
        logger=logger,
        kind=plan.kind.value,
        tasks=len(plan.task_updates),
        counter_adjustments=len(plan.counter_adjustments),
    ):
        updated = await apply_task_assignments(plan.to_payload())

    logger.info(
        "Assignment plan committed",
        kind=plan.kind.value,
        tasks_updated=updated,
        activity_logs=len(plan.activity_logs),
    )
    return updated

"""QC review of completed tasks."""

from datetime import datetime, timezone

from agencyops.models.distribution import TaskApproveRequest
from agencyops.models.task import TaskStatus
from agencyops.services.supabase_client import update_task
from agencyops.utils.errors import NotFoundError
from agencyops.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)


async def approve_task(task_id: str, request: TaskApproveRequest) -> dict:
    """
    Mark a task as QC approved with the reviewer's rating.

    Only the status, rating and update time change. Assignee, counters and
    completion fields are left exactly as the agent delivered them.
    """
    row = await update_task(task_id, {
        "status": TaskStatus.QC_APPROVED.value,
        "performance_rating": request.performance_rating.value,
        "updated_at": datetime.now(timezone.utc).isoformat(),
    })
    if row is None:
        raise NotFoundError("Task not found", f"unknown task id: {task_id}")

    logger.info(
        "Task approved",
        task_id=task_id,
        performance_rating=request.performance_rating.value,
    )
    return row

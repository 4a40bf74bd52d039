"""Read side of the audit trail: activity feed and reassignment history."""

import math
import re
from datetime import datetime
from typing import Optional

from agencyops.models.activity import ActivityAction
from agencyops.models.agent import Agent
from agencyops.services.supabase_client import (
    SupabaseClient,
    get_task_ids_for_client,
    get_tasks_by_ids,
    get_users_by_ids,
)
from agencyops.utils.errors import DatabaseError, RequestValidationError
from agencyops.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)

MAX_LIMIT = 100
# Characters with meaning inside a PostgREST or=() filter
_FILTER_META = re.compile(r"[,()*%]")


def parse_paging(params: dict, default_limit: int = 20) -> tuple[int, int]:
    try:
        page = int(params.get("page") or 1)
        limit = int(params.get("limit") or default_limit)
    except ValueError:
        raise RequestValidationError("Invalid pagination parameters")
    return max(page, 1), min(max(limit, 1), MAX_LIMIT)


def _parse_instant(value: Optional[str], name: str) -> Optional[str]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value).isoformat()
    except ValueError:
        raise RequestValidationError("Invalid date filter", f"cannot parse {name}={value!r}")


def _user_summary(row: dict) -> dict:
    agent = Agent.model_validate(row)
    return {"id": agent.id, "name": agent.display_name, "email": agent.email}


async def _user_map(user_ids: set[str]) -> dict[str, dict]:
    rows = await get_users_by_ids(sorted(user_ids))
    return {row["id"]: _user_summary(row) for row in rows}


async def list_activity(params: dict) -> dict:
    """Paginated activity feed, newest first, optionally filtered by action and text."""
    page, limit = parse_paging(params)
    action = params.get("action") or ""
    search = _FILTER_META.sub("", (params.get("q") or "").strip())
    offset = (page - 1) * limit

    async with SupabaseClient() as client:
        try:
            query = client.table("activity_logs").select("*", count="exact")

            if action and action != "all":
                query = query.eq("action", action)

            if search:
                clauses = [
                    f"entity_type.ilike.*{search}*",
                    f"entity_id.ilike.*{search}*",
                    f"action.ilike.*{search}*",
                ]
                users = (
                    client.table("users")
                    .select("id")
                    .or_(f"name.ilike.*{search}*,email.ilike.*{search}*")
                    .execute()
                )
                matching = [row["id"] for row in (users.data or [])]
                if matching:
                    clauses.append(f"user_id.in.({','.join(matching)})")
                query = query.or_(",".join(clauses))

            result = (
                query.order("timestamp", desc=True)
                .range(offset, offset + limit - 1)
                .execute()
            )
        except Exception as e:
            raise DatabaseError(f"Failed to fetch activity logs: {e}")

    logs = result.data or []
    total = result.count or 0
    users = await _user_map({log["user_id"] for log in logs if log.get("user_id")})
    for log in logs:
        log["user"] = users.get(log.get("user_id"))

    total_pages = math.ceil(total / limit) if total else 0
    return {
        "success": True,
        "logs": logs,
        "pagination": {
            "currentPage": page,
            "totalPages": total_pages,
            "totalCount": total,
            "hasNextPage": page < total_pages,
            "hasPrevPage": page > 1,
            "limit": limit,
        },
    }


async def list_reassignments(params: dict) -> dict:
    """
    Reassignment history with task and user details.

    Filters: ``from``/``to`` timestamps, ``agentId`` (reassigned to),
    ``taskId`` and ``clientId``.
    """
    page, limit = parse_paging(params)
    date_from = _parse_instant(params.get("from"), "from")
    date_to = _parse_instant(params.get("to"), "to")
    agent_id = params.get("agentId")
    task_id = params.get("taskId")
    client_id = params.get("clientId")

    empty = {"page": page, "limit": limit, "total": 0, "items": []}

    client_task_ids: Optional[list[str]] = None
    if client_id:
        client_task_ids = await get_task_ids_for_client(client_id)
        if not client_task_ids:
            return empty
        if task_id and task_id not in client_task_ids:
            return empty

    offset = (page - 1) * limit
    async with SupabaseClient() as client:
        try:
            query = (
                client.table("activity_logs")
                .select("id,entity_id,user_id,timestamp,details", count="exact")
                .eq("entity_type", "Task")
                .eq("action", ActivityAction.TASK_REASSIGNED.value)
            )
            if date_from:
                query = query.gte("timestamp", date_from)
            if date_to:
                query = query.lte("timestamp", date_to)
            if agent_id:
                query = query.eq("user_id", agent_id)
            if task_id:
                query = query.eq("entity_id", task_id)
            elif client_task_ids is not None:
                query = query.in_("entity_id", client_task_ids)

            result = (
                query.order("timestamp", desc=True)
                .range(offset, offset + limit - 1)
                .execute()
            )
        except Exception as e:
            raise DatabaseError(f"Failed to fetch reassign logs: {e}")

    logs = result.data or []

    task_rows = await get_tasks_by_ids(sorted({log["entity_id"] for log in logs}))
    tasks = {row["id"]: row for row in task_rows}

    user_ids: set[str] = set()
    for log in logs:
        details = log.get("details") or {}
        if log.get("user_id"):
            user_ids.add(log["user_id"])
        for key in ("reassignedFrom", "reassignedBy"):
            if isinstance(details.get(key), str):
                user_ids.add(details[key])
    users = await _user_map(user_ids)

    items = []
    for log in logs:
        details = log.get("details") or {}
        task = tasks.get(log["entity_id"])
        reassigned_to = details.get("reassignedTo") or log.get("user_id")
        reassigned_from = details.get("reassignedFrom")
        reassigned_by = details.get("reassignedBy")

        items.append({
            "logId": log["id"],
            "timestamp": log.get("timestamp"),
            "task": {
                "id": log["entity_id"],
                "name": task.get("name") if task else None,
                "clientId": task.get("client_id") if task else details.get("clientId"),
                "currentAssignedToId": task.get("assigned_to_id") if task else None,
            },
            "reassignedFrom": reassigned_from,
            "reassignedTo": reassigned_to,
            "reassignedBy": reassigned_by,
            "reassignNotes": details.get("reassignNotes"),
            "toUser": users.get(reassigned_to) if reassigned_to else None,
            "fromUser": users.get(reassigned_from) if reassigned_from else None,
            "byUser": users.get(reassigned_by) if reassigned_by else None,
        })

    return {"page": page, "limit": limit, "total": result.count or 0, "items": items}

"""Supabase client wrapper with async context manager support."""

import os
from typing import Optional
from supabase import create_client, Client
from supabase.client import ClientOptions
from agencyops.models.agent import AGENT_ROLE_NAMES
from agencyops.utils.errors import DatabaseError
import logging

logger = logging.getLogger(__name__)

# Global client instance (singleton pattern)
_client: Optional[Client] = None

TASK_COLUMNS = "id,name,client_id,assigned_to_id,status,priority,due_date,performance_rating"
USER_COLUMNS = "id,name,first_name,last_name,email,category,role,status,image"


def get_supabase_client() -> Client:
    """Get or create Supabase client singleton."""
    global _client

    if _client is None:
        url = os.environ.get("SUPABASE_URL")
        key = os.environ.get("SUPABASE_SERVICE_ROLE_KEY")

        if not url or not key:
            raise DatabaseError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")

        options = ClientOptions(
            auto_refresh_token=False,
            persist_session=False,
        )

        _client = create_client(url, key, options)
        logger.info("Supabase client initialized", extra={"url": url})

    return _client


class SupabaseClient:
    """Async context manager for Supabase client."""

    def __init__(self):
        self.client: Optional[Client] = None

    async def __aenter__(self) -> Client:
        self.client = get_supabase_client()
        return self.client

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            logger.error(
                "Supabase operation error",
                extra={"error": str(exc_val), "type": exc_type.__name__}
            )
        return False


# Tasks
async def get_tasks_by_ids(task_ids: list[str]) -> list[dict]:
    """Get task rows by ID."""
    if not task_ids:
        return []
    async with SupabaseClient() as client:
        try:
            result = client.table("tasks").select(TASK_COLUMNS).in_("id", list(task_ids)).execute()
            return result.data if result.data else []
        except Exception as e:
            raise DatabaseError(f"Failed to get tasks: {e}")


async def update_task(task_id: str, fields: dict) -> Optional[dict]:
    """Update one task row; returns None when the task does not exist."""
    async with SupabaseClient() as client:
        try:
            result = client.table("tasks").update(fields).eq("id", task_id).execute()
        except Exception as e:
            raise DatabaseError(f"Failed to update task: {e}")
        return result.data[0] if result.data else None


async def get_tasks_for_agents(
    agent_ids: list[str],
    statuses: list[str],
    client_id: Optional[str] = None
) -> list[dict]:
    """Get tasks assigned to any of the agents in the given statuses."""
    if not agent_ids:
        return []
    async with SupabaseClient() as client:
        try:
            query = (
                client.table("tasks")
                .select("id,assigned_to_id,priority,status")
                .in_("assigned_to_id", list(agent_ids))
                .in_("status", list(statuses))
            )
            if client_id:
                query = query.eq("client_id", client_id)
            result = query.execute()
            return result.data if result.data else []
        except Exception as e:
            raise DatabaseError(f"Failed to get agent tasks: {e}")


async def get_task_ids_for_client(client_id: str) -> list[str]:
    """Get the IDs of every task belonging to a client."""
    async with SupabaseClient() as client:
        try:
            result = client.table("tasks").select("id").eq("client_id", client_id).execute()
            return [row["id"] for row in (result.data or [])]
        except Exception as e:
            raise DatabaseError(f"Failed to get client tasks: {e}")


async def apply_task_assignments(payload: dict) -> int:
    """
    Apply task updates, activity logs and counter adjustments in one transaction.

    Runs the ``apply_task_assignments`` database function; a failure anywhere
    rolls the whole payload back.
    """
    async with SupabaseClient() as client:
        try:
            result = client.rpc("apply_task_assignments", {"payload": payload}).execute()
        except Exception as e:
            raise DatabaseError(f"Failed to apply task assignments: {e}")
        if result.data is None:
            raise DatabaseError("Failed to apply task assignments: no result returned")
        return int(result.data)


# Users
async def get_users_by_ids(user_ids: list[str]) -> list[dict]:
    """Get user rows by ID."""
    if not user_ids:
        return []
    async with SupabaseClient() as client:
        try:
            result = client.table("users").select(USER_COLUMNS).in_("id", list(user_ids)).execute()
            return result.data if result.data else []
        except Exception as e:
            raise DatabaseError(f"Failed to get users: {e}")


async def find_user(user_id: Optional[str] = None, email: Optional[str] = None) -> Optional[dict]:
    """Find a user by ID, or by email when no ID is given."""
    if not user_id and not email:
        return None
    async with SupabaseClient() as client:
        try:
            query = client.table("users").select(USER_COLUMNS)
            query = query.eq("id", user_id) if user_id else query.eq("email", email)
            result = query.execute()
            return result.data[0] if result.data and len(result.data) > 0 else None
        except Exception as e:
            raise DatabaseError(f"Failed to find user: {e}")


async def get_active_agents(
    category: Optional[str] = None,
    allowed_ids: Optional[list[str]] = None
) -> list[dict]:
    """Get active users with the agent role, ordered by name."""
    async with SupabaseClient() as client:
        try:
            query = (
                client.table("users")
                .select(USER_COLUMNS)
                .in_("role", list(AGENT_ROLE_NAMES))
                .eq("status", "active")
            )
            if category:
                query = query.eq("category", category)
            if allowed_ids:
                query = query.in_("id", list(allowed_ids))
            result = query.order("name").execute()
            return result.data if result.data else []
        except Exception as e:
            raise DatabaseError(f"Failed to get agents: {e}")


async def get_role_permissions(role: str) -> list[str]:
    """Get permission names granted to a role."""
    async with SupabaseClient() as client:
        try:
            result = client.table("role_permissions").select("permission").eq("role", role).execute()
            return [row["permission"] for row in (result.data or [])]
        except Exception as e:
            raise DatabaseError(f"Failed to get role permissions: {e}")


# Activity logs
async def create_activity_log(log_data: dict) -> dict:
    """Append an activity log entry outside of an assignment transaction."""
    async with SupabaseClient() as client:
        try:
            result = client.table("activity_logs").insert(log_data).execute()
            if result.data and len(result.data) > 0:
                return result.data[0]
            raise DatabaseError("Failed to create activity log: no data returned")
        except Exception as e:
            raise DatabaseError(f"Failed to create activity log: {e}")


# Notifications
async def insert_notification(notification_data: dict) -> dict:
    """Insert a single notification row."""
    async with SupabaseClient() as client:
        try:
            result = client.table("notifications").insert(notification_data).execute()
            if result.data and len(result.data) > 0:
                return result.data[0]
            raise DatabaseError("Failed to insert notification: no data returned")
        except Exception as e:
            raise DatabaseError(f"Failed to insert notification: {e}")


# Sessions
async def get_session_row(token: str) -> Optional[dict]:
    """Get a session by token."""
    async with SupabaseClient() as client:
        try:
            result = client.table("sessions").select("*").eq("token", token).execute()
            return result.data[0] if result.data and len(result.data) > 0 else None
        except Exception as e:
            raise DatabaseError(f"Failed to get session: {e}")


async def create_session_row(session_data: dict) -> dict:
    """Create a session."""
    async with SupabaseClient() as client:
        try:
            result = client.table("sessions").insert(session_data).execute()
            if result.data and len(result.data) > 0:
                return result.data[0]
            raise DatabaseError("Failed to create session: no data returned")
        except Exception as e:
            raise DatabaseError(f"Failed to create session: {e}")


async def delete_session_row(token: str) -> None:
    """Delete a session by token."""
    async with SupabaseClient() as client:
        try:
            client.table("sessions").delete().eq("token", token).execute()
        except Exception as e:
            raise DatabaseError(f"Failed to delete session: {e}")

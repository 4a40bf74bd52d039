"""Activity log, team counter and notification rows."""

from enum import Enum
from typing import Optional, Any
from pydantic import BaseModel, Field


class ActivityAction(str, Enum):
    """Audited actions."""
    TASK_ASSIGNED = "task_assigned"
    TASK_REASSIGNED = "task_reassigned"
    IMPERSONATE_START = "impersonate_start"
    IMPERSONATE_STOP = "impersonate_stop"


class ActivityLog(BaseModel):
    """Append-only audit record."""
    id: str = Field(..., description="Log ID (text)")
    entity_type: str = Field(..., description="Entity type: Task, auth")
    entity_id: str = Field(..., description="Entity ID")
    user_id: Optional[str] = Field(None, description="User the entry is filed under")
    action: str = Field(..., description="Action name")
    timestamp: Optional[str] = None
    details: dict[str, Any] = Field(default_factory=dict)


class ClientTeamMember(BaseModel):
    """Per client/agent assigned task counter."""
    client_id: str = Field(..., description="Client ID (text FK)")
    agent_id: str = Field(..., description="Agent ID (users FK)")
    assigned_tasks: int = Field(default=0, ge=0, description="Denormalized task count, never negative")
    assigned_date: Optional[str] = None


class NotificationType(str, Enum):
    GENERAL = "general"
    PERFORMANCE = "performance"
    FREQUENCY_MISSED = "frequency_missed"


class Notification(BaseModel):
    """Mailbox row polled by the dashboard."""
    id: Optional[int] = None
    user_id: str = Field(..., description="Recipient user ID")
    task_id: Optional[str] = None
    type: NotificationType = Field(default=NotificationType.GENERAL)
    message: str = Field(..., description="Human-readable message")
    is_read: bool = False
    created_at: Optional[str] = None

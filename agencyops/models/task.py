"""Task model - client work items assigned to agents."""

from enum import Enum
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field


class TaskStatus(str, Enum):
    """Task lifecycle status."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"
    REASSIGNED = "reassigned"
    QC_APPROVED = "qc_approved"


class TaskPriority(str, Enum):
    """Task priority, lowest first."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class PerformanceRating(str, Enum):
    """QC rating of completed work."""
    EXCELLENT = "Excellent"
    GOOD = "Good"
    AVERAGE = "Average"
    POOR = "Poor"
    LACKING = "Lacking"
    LAZY = "Lazy"


# Ratings a QC reviewer can give when approving; Poor is reserved for rework
QC_RATINGS = frozenset({
    PerformanceRating.EXCELLENT,
    PerformanceRating.GOOD,
    PerformanceRating.AVERAGE,
    PerformanceRating.LAZY,
})

# Statuses that count toward an agent's workload
ACTIVE_STATUSES = frozenset({
    TaskStatus.PENDING,
    TaskStatus.IN_PROGRESS,
    TaskStatus.REASSIGNED,
    TaskStatus.OVERDUE,
})

PRIORITY_WEIGHT = {
    TaskPriority.URGENT: 3,
    TaskPriority.HIGH: 2,
    TaskPriority.MEDIUM: 1,
    TaskPriority.LOW: 1,
}

PRIORITY_RANK = {
    TaskPriority.LOW: 0,
    TaskPriority.MEDIUM: 1,
    TaskPriority.HIGH: 2,
    TaskPriority.URGENT: 3,
}


class Task(BaseModel):
    """Task row."""
    id: str = Field(..., description="Task ID (text)")
    name: str = Field(..., description="Task name")
    client_id: Optional[str] = Field(None, description="Client ID (text FK)")
    assigned_to_id: Optional[str] = Field(None, description="Assigned agent ID (users FK)")
    status: TaskStatus = Field(default=TaskStatus.PENDING, description="Task status")
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM, description="Task priority")
    due_date: Optional[datetime] = Field(None, description="Due date")
    ideal_duration_minutes: Optional[int] = Field(None, ge=0)
    actual_duration_minutes: Optional[int] = Field(None, ge=0)
    performance_rating: Optional[PerformanceRating] = None
    completion_link: Optional[str] = None
    username: Optional[str] = Field(None, description="Completion credential: username")
    email: Optional[str] = Field(None, description="Completion credential: email")
    password: Optional[str] = Field(None, description="Completion credential: password")
    notes: Optional[str] = None
    reassign_notes: Optional[str] = None
    completed_at: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def weight(self) -> int:
        return PRIORITY_WEIGHT[self.priority]

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

"""Request payloads for the distribution and reassignment endpoints."""

from enum import Enum
from typing import Optional, Type, TypeVar
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from agencyops.models.task import PerformanceRating, QC_RATINGS
from agencyops.utils.config import AppConfig
from agencyops.utils.errors import RequestValidationError


class DistributionStrategy(str, Enum):
    """Agent selection policy for smart distribution."""
    LEAST_LOAD = "least_load"
    ROUND_ROBIN_LEAST = "round_robin_least"
    PURE_ROUND_ROBIN = "pure_round_robin"


def default_strategy() -> DistributionStrategy:
    return DistributionStrategy(AppConfig.DEFAULT_DISTRIBUTION_STRATEGY)


class CamelModel(BaseModel):
    """Accepts the dashboard's camelCase keys as well as field names."""
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)


class ActorFields(CamelModel):
    """Optional identification of who is performing the change."""
    reassigned_by_id: Optional[str] = Field(None, alias="reassignedById")
    reassigned_by_email: Optional[str] = Field(None, alias="reassignedByEmail")


class AssignmentEntry(CamelModel):
    task_id: str = Field(..., alias="taskId", min_length=1)
    agent_id: str = Field(..., alias="agentId", min_length=1)
    note: Optional[str] = None
    due_date: Optional[str] = Field(None, alias="dueDate", description="ISO date; unparseable values are ignored")


class DistributeRequest(ActorFields):
    """POST /api/tasks/distribute."""
    client_id: str = Field(..., alias="clientId", min_length=1)
    assignments: list[AssignmentEntry] = Field(..., min_length=1)


class SingleReassignRequest(ActorFields):
    """PUT /api/tasks/distribute, single-task shape."""
    task_id: str = Field(..., alias="taskId", min_length=1)
    new_agent_id: str = Field(..., alias="newAgentId", min_length=1)
    reassign_notes: Optional[str] = Field(None, alias="reassignNotes")


class ReassignmentEntry(CamelModel):
    task_id: str = Field(..., alias="taskId", min_length=1)
    to_agent_id: str = Field(..., alias="toAgentId", min_length=1)
    reassign_notes: Optional[str] = Field(None, alias="reassignNotes")


class BulkReassignRequest(ActorFields):
    """PUT /api/tasks/distribute, bulk shape."""
    client_id: str = Field(..., alias="clientId", min_length=1)
    reassignments: list[ReassignmentEntry] = Field(..., min_length=1)


class SmartDistributeRequest(ActorFields):
    """POST /api/tasks/distribute_smart."""
    client_id: str = Field(..., alias="clientId", min_length=1)
    task_ids: list[str] = Field(..., alias="taskIds", min_length=1)
    allowed_agent_ids: Optional[list[str]] = Field(None, alias="allowedAgentIds")
    strategy: DistributionStrategy = Field(default_factory=default_strategy)
    put_notes: dict[str, str] = Field(default_factory=dict, alias="putNotes")


class TaskReassignRequest(ActorFields):
    """PUT /api/tasks/reassign_task?id=... (rating is forced to Poor)."""
    to_agent_id: Optional[str] = Field(None, alias="toAgentId")
    reassign_notes: Optional[str] = Field(None, alias="reassignNotes")


class TaskApproveRequest(CamelModel):
    """PUT /api/tasks/approve?id=..."""
    performance_rating: PerformanceRating = Field(..., alias="performanceRating")

    @field_validator("performance_rating")
    @classmethod
    def rating_is_a_qc_rating(cls, v: PerformanceRating) -> PerformanceRating:
        if v not in QC_RATINGS:
            raise ValueError(f"{v.value} is not a QC rating")
        return v


M = TypeVar("M", bound=BaseModel)


def parse_payload(model: Type[M], data: dict, message: str = "Invalid request data") -> M:
    """Validate a JSON body, mapping pydantic errors to a 400."""
    try:
        return model.model_validate(data)
    except ValidationError as e:
        fields = sorted({".".join(str(part) for part in err["loc"]) for err in e.errors()})
        raise RequestValidationError(message, f"invalid fields: {', '.join(fields)}")

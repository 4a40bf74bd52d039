"""Agent model - users with the agent role, plus their computed workload."""

from typing import Optional
from pydantic import BaseModel, Field


AGENT_ROLE_NAMES = ("agent", "Agent", "AGENT")


class Agent(BaseModel):
    """User row with role agent."""
    id: str = Field(..., description="User ID (text)")
    email: str = Field(..., description="Email address")
    name: Optional[str] = Field(None, description="Display name")
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    category: Optional[str] = Field(None, description="Agent category, e.g. Social, Posting")
    role: str = Field(default="agent", description="Role name")
    status: str = Field(default="active", description="Status: active, inactive")
    image: Optional[str] = None

    @property
    def display_name(self) -> str:
        if self.name:
            return self.name
        full = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return full or self.email


class AgentLoad(BaseModel):
    """Active workload of one agent."""
    active_count: int = Field(default=0, ge=0)
    weighted_score: int = Field(default=0, ge=0)
    by_status: dict[str, int] = Field(default_factory=dict)

    def snapshot(self) -> dict:
        return {"active": self.active_count, "weighted": self.weighted_score}

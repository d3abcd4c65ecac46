"""Data models for the triage recommendation engine."""

from enum import Enum, IntEnum
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from triage.config import AUTOPILOT_ENABLED, DECLARED_FIELD_KEY, OVERLOAD_THRESHOLD


# --- Agents and expertise ---


class KnowledgeLevel(IntEnum):
    """Discrete knowledge level an agent declares for a system."""

    BASIC = 1
    INTERMEDIATE = 2
    ADVANCED = 3


class SystemExpertise(BaseModel):
    """One (system, level) entry of an agent's expertise index."""

    system_name: str = Field(..., min_length=1, description="System/topic name (case-insensitive)")
    level: KnowledgeLevel = Field(default=KnowledgeLevel.BASIC)

    @field_validator("system_name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("system_name must not be blank")
        return v


class Agent(BaseModel):
    """A support agent with capacity, workload and declared expertise."""

    id: int = Field(..., description="Numeric agent identifier")
    name: str = Field(default="", description="Display name")
    email: str = Field(default="")
    max_capacity: int = Field(default=8, gt=0, description="Tickets the agent can hold")
    current_workload: int = Field(default=0, ge=0, description="May exceed max_capacity")
    is_active: bool = Field(default=True, description="Inactive agents are never ranked")
    expertise: list[SystemExpertise] = Field(default_factory=list)
    avatar_url: Optional[str] = None
    group_ids: list[str] = Field(default_factory=list)

    @field_validator("expertise")
    @classmethod
    def _unique_systems(cls, v: list[SystemExpertise]) -> list[SystemExpertise]:
        seen = set()
        for exp in v:
            key = exp.system_name.lower()
            if key in seen:
                raise ValueError(f"duplicate expertise for system {exp.system_name!r}")
            seen.add(key)
        return v

    def expertise_for(self, system_name: str) -> Optional[SystemExpertise]:
        """Case-insensitive expertise lookup; None if the agent has no entry."""
        key = system_name.strip().lower()
        for exp in self.expertise:
            if exp.system_name.lower() == key:
                return exp
        return None


# --- Tickets ---


class TicketPriority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class Ticket(BaseModel):
    """An incoming support ticket. Immutable once received."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Ticket identifier")
    subject: str = Field(default="")
    description: str = Field(default="")
    priority: TicketPriority = Field(default=TicketPriority.NORMAL)
    tags: list[str] = Field(default_factory=list, description="Order irrelevant for matching")
    status: str = Field(default="open")
    custom_fields: dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[float] = Field(None, description="Unix timestamp the ticket was opened")

    def declared_field(self, key: Optional[str]) -> Optional[str]:
        """
        Return the custom field `key` as a stripped string, or None when the key
        is unset, missing, null or blank.
        """
        if not key:
            return None
        value = self.custom_fields.get(key)
        if value is None:
            return None
        text = str(value).strip()
        return text or None


# --- Scoring ---


class ScoringConfig(BaseModel):
    """Settings that influence ranking and how assignments are logged."""

    declared_field_key: Optional[str] = Field(default=DECLARED_FIELD_KEY)
    overload_threshold: float = Field(default=OVERLOAD_THRESHOLD, ge=0, description="Percent; display only")
    autopilot_enabled: bool = Field(default=AUTOPILOT_ENABLED)


class EvidenceSource(str, Enum):
    DECLARED_FIELD = "declared_field"
    CONTENT = "content"
    TAG = "tag"


class EvidenceItem(BaseModel):
    """A single attributable reason contributing to a candidate's technical score."""

    source: EvidenceSource
    matched_system: str
    level: KnowledgeLevel
    points: float


class Recommendation(BaseModel):
    """Ranked recommendation for one ticket, with full evidence for audit."""

    ticket_id: str
    agent: Agent
    score: float = Field(..., description="Load contribution + technical score, nominally 0..100")
    tech_score: float
    load_score: float
    occupancy_rate: float
    evidence: list[EvidenceItem] = Field(default_factory=list)


# --- Outcome memory and assignment log ---


class OutcomeRecord(BaseModel):
    """Success tally for a (tag, agent) pair."""

    tag: str
    agent_id: int
    success_count: int = Field(default=1, ge=1)


class AssignmentLogEntry(BaseModel):
    """Append-only record of a confirmed assignment."""

    id: str
    ticket_id: str
    agent_id: int
    agent_name: str
    timestamp: float
    reason: str
    type: Literal["autopilot", "manual"]
    score: int


class AssignmentResult(BaseModel):
    """Outcome of confirming a recommendation."""

    agents: list[Agent]
    log_entry: AssignmentLogEntry
    memory_updates: list[OutcomeRecord] = Field(default_factory=list)

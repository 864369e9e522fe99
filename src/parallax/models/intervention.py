"""Intervention models for in-conversation mediator interjections.

Four intervention types:
- Escalation: temperature spiked well above the recent baseline
- Dominance: one person has taken the last three human turns
- Breakthrough: a hot exchange visibly cooled
- Resolution: a long conversation has settled into sustained calm
"""

from enum import Enum

from pydantic import BaseModel, Field

from parallax.models.message import AnalysisResult, Message


class InterventionType(str, Enum):
    """Reasons the mediator may interrupt a free-flowing conversation."""

    ESCALATION = "escalation"
    DOMINANCE = "dominance"
    BREAKTHROUGH = "breakthrough"
    RESOLUTION = "resolution"


class InterventionDecision(BaseModel):
    """Outcome of the intervention heuristics for one analyzed message."""

    should_intervene: bool = False
    type: InterventionType | None = None

    @classmethod
    def none(cls) -> "InterventionDecision":
        return cls(should_intervene=False, type=None)

    @classmethod
    def of(cls, intervention_type: InterventionType) -> "InterventionDecision":
        return cls(should_intervene=True, type=intervention_type)


class InterventionCheckRequest(BaseModel):
    """Request body for a stateless intervention check."""

    history: list[Message] = Field(default_factory=list)
    latest: AnalysisResult

"""Conductor trigger and result models."""

from enum import Enum

from pydantic import BaseModel

from parallax.models.intervention import InterventionType
from parallax.models.session import ConductorPhase


class ConductorTrigger(str, Enum):
    """External events that can move the onboarding state machine."""

    SESSION_ACTIVE = "session_active"
    MESSAGE_SENT = "message_sent"
    CHECK_INTERVENTION = "check_intervention"


class ConductorRequest(BaseModel):
    """Body of a conductor call. Required fields are checked by the conductor."""

    session_id: str | None = None
    trigger: str | None = None
    message_id: str | None = None


class ConductorResult(BaseModel):
    """What a trigger did: the phase it left the session in plus any output.

    ``noop`` marks a trigger that found the session in a phase it could not
    act on (another request got there first). ``error`` marks a generation
    failure; the phase still advanced.
    """

    phase: ConductorPhase
    message: str | None = None
    goals: list[str] | None = None
    context_summary: str | None = None
    name: str | None = None
    intervened: bool = False
    intervention_type: InterventionType | None = None
    noop: bool = False
    error: str | None = None

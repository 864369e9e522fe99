"""Pydantic models for Parallax - the contracts."""

from parallax.models.conductor import (
    ConductorRequest,
    ConductorResult,
    ConductorTrigger,
)
from parallax.models.intervention import (
    InterventionCheckRequest,
    InterventionDecision,
    InterventionType,
)
from parallax.models.message import (
    AnalysisResult,
    Message,
    MessageSender,
    ResolutionDirection,
)
from parallax.models.session import (
    ConductorPhase,
    ContextMode,
    OnboardingContext,
    Session,
)

__all__ = [
    "AnalysisResult",
    "ConductorPhase",
    "ConductorRequest",
    "ConductorResult",
    "ConductorTrigger",
    "ContextMode",
    "InterventionCheckRequest",
    "InterventionDecision",
    "InterventionType",
    "Message",
    "MessageSender",
    "OnboardingContext",
    "ResolutionDirection",
    "Session",
]

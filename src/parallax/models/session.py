"""Session, onboarding phase and onboarding context models."""

import logging
from enum import Enum
from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

logger = logging.getLogger(__name__)


class ConductorPhase(str, Enum):
    """Onboarding phases, in the only order a session may visit them.

    GREETING and SYNTHESIZE are intermediate phases written before a slow
    generation call so a concurrent trigger observes the move.
    """

    UNINITIALIZED = "uninitialized"
    GREETING = "greeting"
    GATHER_FIRST = "gather_first"
    GATHER_SECOND = "gather_second"
    SYNTHESIZE = "synthesize"
    STEADY_STATE = "steady_state"

    @property
    def ordinal(self) -> int:
        return list(type(self)).index(self)

    def is_past(self, other: "ConductorPhase") -> bool:
        """True if this phase comes strictly after ``other``."""
        return self.ordinal > other.ordinal


# Phase names written by earlier versions of the onboarding flow. The
# in-person flow's "onboarding" phase has no counterpart here; those sessions
# are already talking, so they are treated as past onboarding.
LEGACY_PHASES: dict[str, ConductorPhase] = {
    "gather_a": ConductorPhase.GATHER_FIRST,
    "waiting_for_b": ConductorPhase.GATHER_SECOND,
    "gather_b": ConductorPhase.GATHER_SECOND,
    "active": ConductorPhase.STEADY_STATE,
    "onboarding": ConductorPhase.STEADY_STATE,
}


def parse_phase(value: Any) -> ConductorPhase:
    """Read a stored phase value, mapping legacy names and blanks.

    An unrecognized value is logged and read as STEADY_STATE, so every
    onboarding trigger becomes a no-op instead of re-running onboarding
    over an existing conversation.
    """
    if isinstance(value, ConductorPhase):
        return value
    if not value:
        return ConductorPhase.UNINITIALIZED
    if value in LEGACY_PHASES:
        return LEGACY_PHASES[value]
    try:
        return ConductorPhase(value)
    except ValueError:
        logger.warning(f"Unknown stored conductor phase {value!r}; treating as steady_state")
        return ConductorPhase.STEADY_STATE


def stored_phase_values(phase: ConductorPhase) -> list[str]:
    """Every stored spelling that reads back as ``phase``."""
    return [phase.value] + [
        legacy for legacy, mapped in LEGACY_PHASES.items() if mapped is phase
    ]


class ContextMode(str, Enum):
    """Relationship type of the two parties. Shapes prompts only."""

    INTIMATE = "intimate"
    FAMILY = "family"
    PROFESSIONAL_PEER = "professional_peer"
    PROFESSIONAL_HIERARCHICAL = "professional_hierarchical"
    TRANSACTIONAL = "transactional"
    CIVIL_STRUCTURAL = "civil_structural"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ")


class OnboardingContext(BaseModel):
    """Context accumulated across onboarding phases.

    Each field is written once, by the phase responsible for it, and never
    erased afterwards. Unknown keys in the stored blob are preserved.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    person_a_statement: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "person_a_statement", "personAStatement", "personAContext"
        ),
    )
    person_b_statement: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "person_b_statement", "personBStatement", "personBContext"
        ),
    )
    session_goals: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("session_goals", "sessionGoals"),
    )
    context_summary: str | None = Field(
        default=None,
        validation_alias=AliasChoices("context_summary", "contextSummary"),
    )

    @field_validator("session_goals", mode="before")
    @classmethod
    def _coerce_goals(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [str(goal) for goal in value if goal]
        return []

    @classmethod
    def from_storage(cls, raw: dict[str, Any] | None) -> "OnboardingContext":
        """Validate a stored onboarding blob, tolerating legacy key names."""
        data = dict(raw or {})
        data.pop("conductorPhase", None)
        data.pop("conductor_phase", None)
        return cls.model_validate(data)

    def to_storage(self) -> dict[str, Any]:
        """Serialize for the session's onboarding_context column."""
        return self.model_dump(mode="json", exclude_none=True)

    def merged(self, **fields: Any) -> "OnboardingContext":
        """Return a copy with unset fields filled in.

        Fields that already hold a value are left alone and ``None`` values
        are ignored, so nothing written by an earlier phase is lost.

        Raises:
            ValueError: If a field name is not part of the context
        """
        update: dict[str, Any] = {}
        for name, value in fields.items():
            if name not in type(self).model_fields:
                raise ValueError(f"Unknown onboarding field: {name}")
            if value is None:
                continue
            current = getattr(self, name)
            if current is None or current == []:
                update[name] = value
            elif current != value:
                logger.debug(f"Keeping previously written onboarding field {name}")
        return self.model_copy(update=update)


class Session(BaseModel):
    """A mediation session as seen by the conductor.

    ``phase`` lives in its own column so writes can be conditioned on it.
    Rows written before that column existed keep the phase inside the
    onboarding blob; it is lifted out here.
    """

    model_config = ConfigDict(extra="ignore")

    id: str
    room_code: str | None = None
    person_a_name: str | None = None
    person_b_name: str | None = None
    context_mode: ContextMode = ContextMode.INTIMATE
    phase: ConductorPhase = Field(
        default=ConductorPhase.UNINITIALIZED,
        validation_alias=AliasChoices("phase", "conductor_phase"),
    )
    onboarding_context: OnboardingContext = Field(default_factory=OnboardingContext)

    @model_validator(mode="before")
    @classmethod
    def _lift_legacy_phase(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        if data.get("phase") or data.get("conductor_phase"):
            return data
        blob = data.get("onboarding_context") or {}
        if isinstance(blob, dict):
            legacy = blob.get("conductor_phase") or blob.get("conductorPhase")
            if legacy:
                return {**data, "conductor_phase": legacy}
        return data

    @field_validator("phase", mode="before")
    @classmethod
    def _parse_phase(cls, value: Any) -> ConductorPhase:
        return parse_phase(value)

    @field_validator("context_mode", mode="before")
    @classmethod
    def _default_context_mode(cls, value: Any) -> Any:
        return value or ContextMode.INTIMATE

    @field_validator("onboarding_context", mode="before")
    @classmethod
    def _parse_onboarding(cls, value: Any) -> Any:
        if value is None:
            return OnboardingContext()
        if isinstance(value, dict):
            return OnboardingContext.from_storage(value)
        return value

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Session":
        """Build a session from a ``sessions`` table row."""
        return cls.model_validate(row)

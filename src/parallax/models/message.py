"""Message and per-message analysis models."""

import logging
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)


class MessageSender(str, Enum):
    """Who wrote a message."""

    PERSON_A = "person_a"
    PERSON_B = "person_b"
    MEDIATOR = "mediator"

    @property
    def is_human(self) -> bool:
        return self is not MessageSender.MEDIATOR


class ResolutionDirection(str, Enum):
    """Short-term trajectory attached to a message's analysis."""

    ESCALATING = "escalating"
    DE_ESCALATING = "de-escalating"
    STABLE = "stable"


class AnalysisResult(BaseModel):
    """The slice of a message's analysis that drives interventions."""

    temperature: float = Field(ge=0.0, le=1.0)
    resolution_direction: ResolutionDirection = ResolutionDirection.STABLE

    @classmethod
    def from_storage(cls, raw: dict[str, Any] | None) -> "AnalysisResult | None":
        """Extract temperature and direction from a stored analysis blob.

        Accepts both the nested shape (``emotionalTemperature`` plus
        ``meta.resolutionDirection``) and flat keys. Returns None when the
        blob carries no usable temperature, so the message counts as
        unanalyzed.
        """
        if not raw or not isinstance(raw, dict):
            return None

        temperature = raw.get("emotionalTemperature", raw.get("temperature"))
        if temperature is None:
            return None

        meta = raw.get("meta")
        if not isinstance(meta, dict):
            meta = {}
        direction = (
            meta.get("resolutionDirection")
            or raw.get("resolutionDirection")
            or raw.get("resolution_direction")
            or ResolutionDirection.STABLE
        )

        try:
            return cls(temperature=temperature, resolution_direction=direction)
        except ValidationError as e:
            logger.warning(f"Ignoring malformed message analysis: {e}")
            return None


class Message(BaseModel):
    """A single message in a session's ordered log."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    session_id: str = ""
    sender: MessageSender
    content: str = ""
    analysis: AnalysisResult | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def is_human(self) -> bool:
        return self.sender.is_human

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Message":
        """Build a message from a ``messages`` table row."""
        data = {
            "id": row["id"],
            "session_id": row.get("session_id", ""),
            "sender": row["sender"],
            "content": row.get("content") or "",
            "analysis": AnalysisResult.from_storage(row.get("nvc_analysis")),
        }
        if row.get("created_at"):
            data["created_at"] = row["created_at"]
        return cls(**data)

"""Store protocols the conductor depends on."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from parallax.models.message import Message, MessageSender
from parallax.models.session import ConductorPhase, Session


@runtime_checkable
class SessionStore(Protocol):
    """Session reads and conditional partial updates."""

    async def get_session(self, session_id: str) -> Session | None: ...

    async def update_session(
        self,
        session_id: str,
        fields: dict[str, Any],
        expected_phase: ConductorPhase | None = None,
    ) -> bool: ...


@runtime_checkable
class MessageStore(Protocol):
    """The ordered per-session message log."""

    async def get_message(self, message_id: str) -> Message | None: ...

    async def append_message(
        self,
        session_id: str,
        sender: MessageSender,
        content: str,
    ) -> Message: ...

    async def list_messages(self, session_id: str) -> list[Message]: ...


@runtime_checkable
class ConductorStore(SessionStore, MessageStore, Protocol):
    """Everything the conductor reads and writes."""

"""Supabase database client for sessions and messages."""

import logging
import time
from typing import Any

from supabase import create_client, Client

from parallax.config import get_settings
from parallax.models.message import Message, MessageSender
from parallax.models.session import ConductorPhase, Session, stored_phase_values

logger = logging.getLogger(__name__)


class DatabaseClient:
    """Client for Supabase database operations."""

    def __init__(self) -> None:
        settings = get_settings()
        self.client: Client = create_client(
            settings.supabase_url,
            settings.supabase_key,
        )

    async def get_session(self, session_id: str) -> Session | None:
        """Get session by ID.

        Args:
            session_id: The session ID

        Returns:
            The validated session or None if not found
        """
        result = (
            self.client.table("sessions")
            .select("*")
            .eq("id", session_id)
            .execute()
        )

        if result.data:
            return Session.from_row(result.data[0])
        return None

    async def update_session(
        self,
        session_id: str,
        fields: dict[str, Any],
        expected_phase: ConductorPhase | None = None,
    ) -> bool:
        """Apply a partial update to a session.

        When ``expected_phase`` is given the update only lands if the
        stored phase still reads as it (current or legacy spelling), which
        makes phase transitions a compare-and-set. A NULL ``conductor_phase``
        also matches: such rows were never written by the conductor, their
        phase was derived on read (uninitialized, or lifted from the legacy
        blob key), and the first successful write sets the column so a
        second writer no longer matches.

        Args:
            session_id: The session ID
            fields: Columns to write; phase writes must include
                ``conductor_phase``
            expected_phase: Phase the caller read the row in

        Returns:
            True if a row was updated
        """
        query = self.client.table("sessions").update(fields).eq("id", session_id)
        if expected_phase is not None:
            spellings = ",".join(stored_phase_values(expected_phase))
            query = query.or_(
                f"conductor_phase.in.({spellings}),conductor_phase.is.null"
            )

        result = query.execute()
        updated = bool(result.data)
        logger.debug(
            f"Updated session {session_id} "
            f"(expected_phase={expected_phase.value if expected_phase else None}): "
            f"{'ok' if updated else 'no match'}"
        )
        return updated

    async def get_message(self, message_id: str) -> Message | None:
        """Get message by ID.

        Args:
            message_id: The message ID

        Returns:
            The message or None if not found
        """
        result = (
            self.client.table("messages")
            .select("*")
            .eq("id", message_id)
            .execute()
        )

        if result.data:
            return Message.from_row(result.data[0])
        return None

    async def append_message(
        self,
        session_id: str,
        sender: MessageSender,
        content: str,
    ) -> Message:
        """Append a message to a session's log.

        Args:
            session_id: The session ID
            sender: Who the message is from
            content: Message text

        Returns:
            The stored message
        """
        data = {
            "session_id": session_id,
            "sender": sender.value,
            "content": content,
        }

        result = self.client.table("messages").insert(data).execute()
        logger.debug(f"Appended {sender.value} message to session {session_id}")
        return Message.from_row(result.data[0])

    async def list_messages(self, session_id: str) -> list[Message]:
        """List a session's messages, oldest first.

        Args:
            session_id: The session ID

        Returns:
            Messages ordered by creation time
        """
        result = (
            self.client.table("messages")
            .select("*")
            .eq("session_id", session_id)
            .order("created_at")
            .execute()
        )

        return [Message.from_row(row) for row in result.data or []]

    async def health_check(self) -> dict[str, Any]:
        """Check database connectivity and return health status.

        Returns:
            Dict with:
                - healthy: bool - whether the database is reachable
                - latency_ms: float - query latency in milliseconds
                - error: str | None - error message if unhealthy
        """
        start = time.perf_counter()
        try:
            self.client.table("sessions").select("id").limit(1).execute()
            latency_ms = (time.perf_counter() - start) * 1000

            return {
                "healthy": True,
                "latency_ms": round(latency_ms, 2),
                "error": None,
            }
        except Exception as e:
            latency_ms = (time.perf_counter() - start) * 1000
            logger.error(f"Database health check failed: {e}")

            return {
                "healthy": False,
                "latency_ms": round(latency_ms, 2),
                "error": str(e),
            }

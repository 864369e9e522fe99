"""Conductor - onboarding state machine and mediator interjections.

Each trigger is handled as one short request: load the session, dispatch on
(phase, trigger), maybe generate mediator text, persist the new phase.

Every phase write is conditioned on the phase the transition starts from.
A request that loses that compare-and-set to a concurrent request becomes a
no-op and appends nothing. No lock is held while generation runs; instead
the intermediate phases (GREETING, SYNTHESIZE) are written before the slow
call so a racing trigger sees the session has moved.

Generation failures never block phase progress: the transition completes
and the result carries an ``error`` marker.
"""

import asyncio
import logging
import random
from typing import Any

from parallax.config import get_settings
from parallax.exceptions import (
    GenerationError,
    MessageNotFoundError,
    SessionNotFoundError,
    TriggerValidationError,
)
from parallax.manager.intervention_engine import decide
from parallax.manager.ports import ConductorStore
from parallax.models.conductor import ConductorResult, ConductorTrigger
from parallax.models.message import Message, MessageSender
from parallax.models.session import ConductorPhase, OnboardingContext, Session
from parallax.prompts.conductor import (
    MEDIATOR_NAME,
    Prompt,
    build_acknowledge_a_prompt,
    build_greeting_prompt,
    build_intervention_prompt,
    build_synthesis_prompt,
    build_waiting_chat_prompt,
    choose_greeting_style,
)
from parallax.tools.base import GenerationService
from parallax.tools.claude import ClaudeClient

logger = logging.getLogger(__name__)

DEFAULT_PERSON_A_NAME = "Person A"
DEFAULT_PERSON_B_NAME = "Person B"

SYNTHESIS_MAX_TOKENS = 1024

# Trailing messages shown to the intervention and waiting-chat prompts
INTERVENTION_HISTORY_SIZE = 6
WAITING_CHAT_HISTORY_SIZE = 10


def _latest_analyzed_index(history: list[Message]) -> int | None:
    for index in range(len(history) - 1, -1, -1):
        if history[index].analysis is not None:
            return index
    return None


def _extracted_name(parsed: dict) -> str | None:
    name = parsed.get("name")
    if isinstance(name, str) and name.strip():
        return name.strip()
    return None


class Conductor:
    """Drives a session through onboarding and decides when Parallax speaks.

    Phases move strictly forward:
    uninitialized -> greeting -> gather_first -> gather_second
    -> synthesize -> steady_state
    """

    def __init__(
        self,
        db: ConductorStore,
        generator: GenerationService,
        *,
        rng: random.Random | None = None,
        timeout: float | None = None,
        max_tokens: int | None = None,
    ) -> None:
        settings = get_settings()
        self.db = db
        self.generator = generator
        self.rng = rng or random.Random()
        self.timeout = timeout if timeout is not None else settings.generation_timeout_seconds
        self.max_tokens = max_tokens or settings.conductor_max_tokens

    async def advance(
        self,
        session_id: str | None,
        trigger: str | ConductorTrigger | None,
        message_id: str | None = None,
    ) -> ConductorResult:
        """Handle one trigger for one session.

        Args:
            session_id: The session to act on
            trigger: One of the ConductorTrigger values
            message_id: The message that was sent (message_sent only)

        Returns:
            The phase the session is in afterwards plus any mediator output

        Raises:
            TriggerValidationError: If required arguments are missing or
                the trigger is unknown
            SessionNotFoundError: If the session does not exist
            MessageNotFoundError: If the message does not exist in the session
        """
        if not session_id:
            raise TriggerValidationError("session_id is required")
        if not trigger:
            raise TriggerValidationError("trigger is required")
        try:
            trigger = ConductorTrigger(trigger)
        except ValueError:
            raise TriggerValidationError(f"Unknown trigger: {trigger}") from None
        if trigger is ConductorTrigger.MESSAGE_SENT and not message_id:
            raise TriggerValidationError("message_id is required for message_sent")

        session = await self.db.get_session(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)

        logger.info(
            f"Conductor trigger {trigger.value} for session {session_id} "
            f"in phase {session.phase.value}"
        )

        if trigger is ConductorTrigger.SESSION_ACTIVE:
            return await self._on_session_active(session)

        if trigger is ConductorTrigger.MESSAGE_SENT:
            message = await self.db.get_message(message_id)
            if message is None or message.session_id != session.id:
                raise MessageNotFoundError(message_id)
            return await self._on_message_sent(session, message)

        return await self._check_intervention(session)

    # ------------------------------------------------------------------
    # Onboarding transitions
    # ------------------------------------------------------------------

    async def _on_session_active(self, session: Session) -> ConductorResult:
        if session.phase is not ConductorPhase.UNINITIALIZED:
            return self._noop(session)

        if not await self._transition(
            session, ConductorPhase.UNINITIALIZED, ConductorPhase.GREETING
        ):
            return await self._lost_race(session.id, ConductorPhase.UNINITIALIZED)

        style = choose_greeting_style(self.rng)
        prompt = build_greeting_prompt(
            session.person_a_name or DEFAULT_PERSON_A_NAME,
            session.person_b_name or DEFAULT_PERSON_B_NAME,
            session.context_mode,
            style,
        )

        greeting: str | None = None
        error: str | None = None
        try:
            greeting = await self._generate("greeting", prompt)
        except GenerationError as e:
            error = str(e)

        if greeting:
            await self.db.append_message(session.id, MessageSender.MEDIATOR, greeting)

        if not await self._transition(
            session, ConductorPhase.GREETING, ConductorPhase.GATHER_FIRST
        ):
            return await self._lost_race(session.id, ConductorPhase.GREETING)

        return ConductorResult(
            phase=ConductorPhase.GATHER_FIRST,
            message=greeting,
            error=error,
        )

    async def _on_message_sent(
        self, session: Session, message: Message
    ) -> ConductorResult:
        if (
            session.phase is ConductorPhase.GATHER_FIRST
            and message.sender is MessageSender.PERSON_A
        ):
            return await self._gather_first(session, message)

        if (
            session.phase is ConductorPhase.GATHER_SECOND
            and message.sender is MessageSender.PERSON_B
        ):
            return await self._gather_second(session, message)

        if (
            session.phase is ConductorPhase.GATHER_SECOND
            and message.sender is MessageSender.PERSON_A
        ):
            return await self._waiting_chat(session, message)

        # Steady-state messages are mediated elsewhere
        return self._noop(session)

    async def _gather_first(
        self, session: Session, message: Message
    ) -> ConductorResult:
        statement = message.content
        prompt = build_acknowledge_a_prompt(
            session.person_a_name or DEFAULT_PERSON_A_NAME,
            session.person_b_name or DEFAULT_PERSON_B_NAME,
            statement,
        )

        acknowledgement: str | None = None
        name: str | None = None
        error: str | None = None
        try:
            raw = await self._generate("acknowledgement", prompt)
        except GenerationError as e:
            error = str(e)
        else:
            acknowledgement, name = self._parse_acknowledgement(raw)

        columns: dict[str, Any] = {}
        if name and not session.person_a_name:
            columns["person_a_name"] = name

        context = session.onboarding_context.merged(person_a_statement=statement)
        if not await self._transition(
            session,
            ConductorPhase.GATHER_FIRST,
            ConductorPhase.GATHER_SECOND,
            context=context,
            **columns,
        ):
            return await self._lost_race(session.id, ConductorPhase.GATHER_FIRST)

        if acknowledgement:
            await self.db.append_message(
                session.id, MessageSender.MEDIATOR, acknowledgement
            )

        return ConductorResult(
            phase=ConductorPhase.GATHER_SECOND,
            message=acknowledgement,
            name=name,
            error=error,
        )

    async def _waiting_chat(
        self, session: Session, message: Message
    ) -> ConductorResult:
        """Reply to the first party while the second has yet to share.

        The phase stays GATHER_SECOND. The reply is dropped if the second
        party's statement moved the session on while it was generated.
        """
        history = await self.db.list_messages(session.id)
        earlier = [m for m in history if m.id != message.id]
        prompt = build_waiting_chat_prompt(
            session.person_a_name or DEFAULT_PERSON_A_NAME,
            session.person_b_name or DEFAULT_PERSON_B_NAME,
            session.onboarding_context.person_a_statement or "",
            self._named_lines(session, earlier[-WAITING_CHAT_HISTORY_SIZE:]),
            message.content,
        )

        try:
            reply = await self._generate("waiting reply", prompt)
        except GenerationError as e:
            return ConductorResult(phase=ConductorPhase.GATHER_SECOND, error=str(e))

        if not reply:
            return ConductorResult(phase=ConductorPhase.GATHER_SECOND)

        current = await self.db.get_session(session.id)
        if current is None:
            raise SessionNotFoundError(session.id)
        if current.phase is not ConductorPhase.GATHER_SECOND:
            logger.warning(
                f"Dropping waiting reply for session {session.id}: "
                f"now {current.phase.value}"
            )
            return ConductorResult(phase=current.phase, noop=True)

        await self.db.append_message(session.id, MessageSender.MEDIATOR, reply)
        return ConductorResult(phase=ConductorPhase.GATHER_SECOND, message=reply)

    async def _gather_second(
        self, session: Session, message: Message
    ) -> ConductorResult:
        statement = message.content

        # Claim the transition before the slow call so clients can show a
        # waiting state and a duplicate submit becomes a no-op
        context = session.onboarding_context.merged(person_b_statement=statement)
        if not await self._transition(
            session,
            ConductorPhase.GATHER_SECOND,
            ConductorPhase.SYNTHESIZE,
            context=context,
        ):
            return await self._lost_race(session.id, ConductorPhase.GATHER_SECOND)

        prompt = build_synthesis_prompt(
            session.person_a_name or DEFAULT_PERSON_A_NAME,
            session.person_b_name or DEFAULT_PERSON_B_NAME,
            context.person_a_statement or "",
            statement,
            session.context_mode,
        )

        synthesis: dict[str, Any] | None = None
        error: str | None = None
        try:
            raw = await self._generate("synthesis", prompt, SYNTHESIS_MAX_TOKENS)
        except GenerationError as e:
            error = str(e)
        else:
            synthesis = self._parse_synthesis(raw)

        columns: dict[str, Any] = {}
        if synthesis is not None:
            if synthesis["message"]:
                await self.db.append_message(
                    session.id, MessageSender.MEDIATOR, synthesis["message"]
                )
            context = context.merged(
                session_goals=synthesis["goals"],
                context_summary=synthesis["context_summary"],
            )
            if synthesis["name"] and not session.person_b_name:
                columns["person_b_name"] = synthesis["name"]

        if not await self._transition(
            session,
            ConductorPhase.SYNTHESIZE,
            ConductorPhase.STEADY_STATE,
            context=context,
            **columns,
        ):
            return await self._lost_race(session.id, ConductorPhase.SYNTHESIZE)

        if synthesis is None:
            return ConductorResult(phase=ConductorPhase.STEADY_STATE, error=error)

        return ConductorResult(
            phase=ConductorPhase.STEADY_STATE,
            message=synthesis["message"],
            goals=synthesis["goals"],
            context_summary=synthesis["context_summary"],
            name=synthesis["name"],
        )

    # ------------------------------------------------------------------
    # Steady state
    # ------------------------------------------------------------------

    async def _check_intervention(self, session: Session) -> ConductorResult:
        if session.phase is not ConductorPhase.STEADY_STATE:
            return self._noop(session)

        history = await self.db.list_messages(session.id)
        evaluated_index = _latest_analyzed_index(history)
        if evaluated_index is None:
            return ConductorResult(phase=ConductorPhase.STEADY_STATE)

        latest = history[evaluated_index].analysis
        decision = decide(history, latest, evaluated_index=evaluated_index)
        if not decision.should_intervene:
            return ConductorResult(phase=ConductorPhase.STEADY_STATE)

        intervention_type = decision.type
        logger.info(
            f"Intervening in session {session.id}: {intervention_type.value}"
        )

        prompt = build_intervention_prompt(
            session.person_a_name or DEFAULT_PERSON_A_NAME,
            session.person_b_name or DEFAULT_PERSON_B_NAME,
            self._named_lines(session, history[-INTERVENTION_HISTORY_SIZE:]),
            intervention_type,
            session.onboarding_context.session_goals,
            session.context_mode,
        )

        try:
            text = await self._generate(f"{intervention_type.value} intervention", prompt)
        except GenerationError as e:
            return ConductorResult(
                phase=ConductorPhase.STEADY_STATE,
                intervention_type=intervention_type,
                error=str(e),
            )

        if not text:
            return ConductorResult(phase=ConductorPhase.STEADY_STATE)

        if await self._mediator_spoke_since(session.id, history):
            logger.warning(
                f"Dropping {intervention_type.value} intervention for session "
                f"{session.id}: mediator already spoke"
            )
            return ConductorResult(phase=ConductorPhase.STEADY_STATE, noop=True)

        await self.db.append_message(session.id, MessageSender.MEDIATOR, text)

        return ConductorResult(
            phase=ConductorPhase.STEADY_STATE,
            message=text,
            intervened=True,
            intervention_type=intervention_type,
        )

    async def _mediator_spoke_since(
        self, session_id: str, history: list[Message]
    ) -> bool:
        """True if a mediator message was appended after ``history`` was read."""
        seen = {m.id for m in history}
        current = await self.db.list_messages(session_id)
        return any(
            m.sender is MessageSender.MEDIATOR and m.id not in seen for m in current
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _generate(
        self, step: str, prompt: Prompt, max_tokens: int | None = None
    ) -> str:
        """Call the generation service within the configured timeout.

        Raises:
            GenerationError: On any failure, timeouts included
        """
        try:
            text = await asyncio.wait_for(
                self.generator.complete(
                    prompt.user,
                    system=prompt.system,
                    max_tokens=max_tokens or self.max_tokens,
                ),
                timeout=self.timeout,
            )
        except Exception as e:
            logger.warning(f"Generation failed during {step}: {e!r}")
            raise GenerationError(step, e) from e
        return (text or "").strip()

    async def _transition(
        self,
        session: Session,
        expected: ConductorPhase,
        target: ConductorPhase,
        *,
        context: OnboardingContext | None = None,
        **columns: Any,
    ) -> bool:
        """Compare-and-set the session's phase from ``expected`` to ``target``.

        Returns:
            True if this request made the move
        """
        if not target.is_past(expected):
            raise ValueError(f"Phase cannot move from {expected.value} to {target.value}")

        fields: dict[str, Any] = {"conductor_phase": target.value, **columns}
        if context is not None:
            fields["onboarding_context"] = context.to_storage()

        if not await self.db.update_session(session.id, fields, expected_phase=expected):
            return False

        session.phase = target
        if context is not None:
            session.onboarding_context = context
        for column, value in columns.items():
            setattr(session, column, value)
        logger.info(f"Session {session.id}: {expected.value} -> {target.value}")
        return True

    async def _lost_race(
        self, session_id: str, expected: ConductorPhase
    ) -> ConductorResult:
        current = await self.db.get_session(session_id)
        if current is None:
            raise SessionNotFoundError(session_id)
        logger.warning(
            f"Session {session_id} already left {expected.value} "
            f"(now {current.phase.value}); skipping"
        )
        return ConductorResult(phase=current.phase, noop=True)

    @staticmethod
    def _noop(session: Session) -> ConductorResult:
        return ConductorResult(phase=session.phase, noop=True)

    @staticmethod
    def _named_lines(
        session: Session, messages: list[Message]
    ) -> list[tuple[str, str]]:
        names = {
            MessageSender.PERSON_A: session.person_a_name or DEFAULT_PERSON_A_NAME,
            MessageSender.PERSON_B: session.person_b_name or DEFAULT_PERSON_B_NAME,
            MessageSender.MEDIATOR: MEDIATOR_NAME,
        }
        return [(names[m.sender], m.content) for m in messages]

    @staticmethod
    def _parse_acknowledgement(raw: str) -> tuple[str, str | None]:
        """Split an acknowledgement payload into (message, extracted name).

        Falls back to the raw text when no JSON payload is found.
        """
        parsed = ClaudeClient._parse_json_response(raw)
        if not parsed:
            return raw, None
        message = parsed.get("message")
        if not isinstance(message, str) or not message.strip():
            message = raw
        return message.strip(), _extracted_name(parsed)

    @staticmethod
    def _parse_synthesis(raw: str) -> dict[str, Any]:
        """Parse the synthesis payload.

        Returns:
            Dict with keys: message, goals, context_summary, name. When the
            payload cannot be parsed the raw text becomes the message and
            the structured fields are empty.
        """
        parsed = ClaudeClient._parse_json_response(raw)
        if not parsed:
            logger.warning("Synthesis payload was not JSON; using raw text")
            return {"message": raw, "goals": [], "context_summary": "", "name": None}

        message = parsed.get("message")
        if not isinstance(message, str) or not message.strip():
            message = raw

        goals = parsed.get("goals")
        if not isinstance(goals, list):
            goals = []

        summary = parsed.get("contextSummary", parsed.get("context_summary"))
        if not isinstance(summary, str):
            summary = ""

        return {
            "message": message.strip(),
            "goals": [str(goal) for goal in goals if goal],
            "context_summary": summary,
            "name": _extracted_name(parsed),
        }

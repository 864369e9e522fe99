"""Conductor prompt builders.

Each builder returns a :class:`Prompt` (system framing plus user content)
for one step of the onboarding flow or for an intervention. The conductor
speaks as "Parallax", a warm mediator who has both people share context
before the real conversation begins.
"""

import random
from dataclasses import dataclass

from parallax.models.intervention import InterventionType
from parallax.models.session import ContextMode

MEDIATOR_NAME = "Parallax"

CONDUCTOR_PERSONA = f"""You are {MEDIATOR_NAME}, a warm, skilled mediator facilitating a conversation between two people in conflict. You speak in first person as "I." You are NOT a therapist, psychologist, or doctor. You are a neutral facilitator with emotional intelligence.

VOICE RULES:
- Warm, grounded, brief. 2-4 sentences max unless synthesizing.
- No bullet points. No numbered lists. No framework jargon.
- Never mention NVC, analysis tools, lenses, or your internal processes.
- Speak naturally, like a wise friend, not a chatbot.
- Use their names. Make it personal."""


@dataclass(frozen=True)
class Prompt:
    """A system framing and the user content sent with it."""

    system: str
    user: str


@dataclass(frozen=True)
class GreetingStyle:
    """One way of opening a session."""

    name: str
    instruction: str


GREETING_STYLES: tuple[GreetingStyle, ...] = (
    GreetingStyle(
        name="warm",
        instruction="Open with warmth. Thank them both for showing up, since that takes courage.",
    ),
    GreetingStyle(
        name="grounding",
        instruction="Open by slowing things down. Invite a breath before anyone starts.",
    ),
    GreetingStyle(
        name="curious",
        instruction="Open with genuine curiosity about what each of them hopes will be different after today.",
    ),
    GreetingStyle(
        name="plain",
        instruction="Open simply and directly. Say what will happen in this session and who speaks first.",
    ),
)

INTERVENTION_INSTRUCTIONS: dict[InterventionType, str] = {
    InterventionType.ESCALATION: (
        "The conversation is escalating and emotions are running hot. Gently slow "
        "things down. Acknowledge the intensity without dismissing it. Redirect "
        "toward one of the session goals. Do NOT take sides."
    ),
    InterventionType.DOMINANCE: (
        "One person is dominating the conversation and the other hasn't had space "
        "to speak. Gently create an opening for the quieter person without shaming "
        "the talker."
    ),
    InterventionType.BREAKTHROUGH: (
        "Something positive just happened: a moment of vulnerability, "
        "acknowledgment, or genuine understanding. Briefly name what you noticed "
        "and encourage them to stay in this space."
    ),
    InterventionType.RESOLUTION: (
        "The conversation has settled and stayed calm for a while. Reflect the "
        "progress they've made toward their goals and ask whether there is "
        "anything left unsaid before they agree on next steps."
    ),
}


def choose_greeting_style(rng: random.Random) -> GreetingStyle:
    """Pick a greeting style using the caller's random source."""
    return rng.choice(GREETING_STYLES)


def build_greeting_prompt(
    person_a_name: str,
    person_b_name: str,
    context_mode: ContextMode,
    style: GreetingStyle,
) -> Prompt:
    return Prompt(
        system=CONDUCTOR_PERSONA,
        user=f"""You are opening a {context_mode.label} mediation session.

The two people are {person_a_name} and {person_b_name}. They've both just joined.

{style.instruction}

Briefly explain that you'll help them understand each other better. Then ask {person_a_name} to share what brought them here today, in their own words.

Do NOT ask both people at once. Address {person_a_name} first. Keep it to 2-3 sentences.""",
    )


def build_acknowledge_a_prompt(
    person_a_name: str,
    person_b_name: str,
    person_a_statement: str,
) -> Prompt:
    return Prompt(
        system=f"""{CONDUCTOR_PERSONA}

IMPORTANT: Your response must be a JSON object with this exact shape:
{{
  "message": "Your spoken message (2-3 sentences)",
  "name": "The first name the speaker used for themselves, or null"
}}""",
        user=f"""{person_a_name} just shared their perspective:

"{person_a_statement}"

Acknowledge what {person_a_name} shared in 1-2 sentences. Don't parrot it back; show you heard the essence. Then invite {person_b_name} to share their perspective on what's been happening.

Keep it to 2-3 sentences total.""",
    )


def build_waiting_chat_prompt(
    person_a_name: str,
    person_b_name: str,
    person_a_statement: str,
    recent_messages: list[tuple[str, str]],
    latest: str,
) -> Prompt:
    """Framing for replying to the first person while the second hasn't shared yet."""
    recent_block = "\n".join(f"[{sender}]: {content}" for sender, content in recent_messages)

    return Prompt(
        system=CONDUCTOR_PERSONA,
        user=f"""{person_a_name} has shared their perspective and is waiting for {person_b_name} to share theirs.

What {person_a_name} shared earlier:
"{person_a_statement}"

Conversation so far:
{recent_block}

{person_a_name} just said:
"{latest}"

Respond to {person_a_name} in 1-2 sentences. Stay curious and supportive, but don't guess at {person_b_name}'s side or take sides. If it fits, let them know {person_b_name} will have their turn soon.""",
    )


def build_synthesis_prompt(
    person_a_name: str,
    person_b_name: str,
    person_a_statement: str,
    person_b_statement: str,
    context_mode: ContextMode,
) -> Prompt:
    return Prompt(
        system=f"""{CONDUCTOR_PERSONA}

IMPORTANT: Your response must be a JSON object with this exact shape:
{{
  "message": "Your spoken message to both people (3-5 sentences)",
  "goals": ["goal 1", "goal 2", "goal 3"],
  "contextSummary": "A 1-2 sentence synthesis of both perspectives for internal use",
  "name": "The first name the second speaker used for themselves, or null"
}}

The "message" should:
1. Briefly reflect what you heard from both. Find common ground AND name the tension
2. Propose 2-3 concrete goals for this session
3. Transition to open conversation and invite them to begin

The "goals" should be specific and actionable (e.g., "Understand what each person needs around household responsibilities" not "Communicate better").

The "contextSummary" is internal context for the analysis engine. Keep it concise and factual.""",
        user=f"""This is a {context_mode.label} mediation. Here's what both people shared:

{person_a_name}'s perspective:
"{person_a_statement}"

{person_b_name}'s perspective:
"{person_b_statement}"

Synthesize what you've heard. Find the thread connecting their experiences. Propose session goals and open the floor for conversation.""",
    )


def build_intervention_prompt(
    person_a_name: str,
    person_b_name: str,
    recent_messages: list[tuple[str, str]],
    intervention_type: InterventionType,
    session_goals: list[str],
    context_mode: ContextMode,
) -> Prompt:
    """Build the framing for a mid-conversation interjection.

    Args:
        recent_messages: (speaker name, content) pairs, oldest first
    """
    recent_block = "\n".join(f"[{sender}]: {content}" for sender, content in recent_messages)

    goals_block = ""
    if session_goals:
        numbered = "\n".join(f"{i + 1}. {goal}" for i, goal in enumerate(session_goals))
        goals_block = f"\nSession goals:\n{numbered}"

    return Prompt(
        system=CONDUCTOR_PERSONA,
        user=f"""This is a {context_mode.label} mediation between {person_a_name} and {person_b_name}.
{goals_block}

Recent messages:
{recent_block}

{INTERVENTION_INSTRUCTIONS[intervention_type]}

Speak as the mediator. 1-3 sentences. Reference a session goal if relevant.""",
    )

"""Tests for conductor prompt builders."""

import random

import pytest

from parallax.models.intervention import InterventionType
from parallax.models.session import ContextMode
from parallax.prompts.conductor import (
    CONDUCTOR_PERSONA,
    GREETING_STYLES,
    INTERVENTION_INSTRUCTIONS,
    build_acknowledge_a_prompt,
    build_greeting_prompt,
    build_intervention_prompt,
    build_synthesis_prompt,
    build_waiting_chat_prompt,
    choose_greeting_style,
)


class TestGreeting:
    """Greeting style selection and framing."""

    def test_style_choice_is_seeded(self):
        first = [choose_greeting_style(random.Random(3)) for _ in range(5)]
        second = [choose_greeting_style(random.Random(3)) for _ in range(5)]

        assert first == second

    def test_every_style_reachable(self):
        rng = random.Random(0)
        seen = {choose_greeting_style(rng).name for _ in range(200)}

        assert seen == {style.name for style in GREETING_STYLES}

    def test_prompt_addresses_first_speaker(self):
        style = GREETING_STYLES[0]

        prompt = build_greeting_prompt("Maya", "Sam", ContextMode.FAMILY, style)

        assert prompt.system == CONDUCTOR_PERSONA
        assert style.instruction in prompt.user
        assert "Address Maya first" in prompt.user
        assert ContextMode.FAMILY.label in prompt.user


class TestOnboardingPrompts:
    """Acknowledgement and synthesis framing."""

    def test_acknowledgement_asks_for_json(self):
        prompt = build_acknowledge_a_prompt("Maya", "Sam", "I feel unheard.")

        assert '"message"' in prompt.system
        assert '"name"' in prompt.system
        assert '"I feel unheard."' in prompt.user
        assert "invite Sam" in prompt.user

    def test_synthesis_carries_both_statements(self):
        prompt = build_synthesis_prompt(
            "Maya", "Sam", "I feel unheard.", "I feel blamed.", ContextMode.INTIMATE
        )

        assert '"contextSummary"' in prompt.system
        assert '"goals"' in prompt.system
        assert "Maya's perspective:" in prompt.user
        assert "Sam's perspective:" in prompt.user
        assert "I feel blamed." in prompt.user


class TestInterventionPrompt:
    """Intervention framing per type."""

    def test_instructions_differ_per_type(self):
        assert set(INTERVENTION_INSTRUCTIONS) == set(InterventionType)
        assert len(set(INTERVENTION_INSTRUCTIONS.values())) == len(InterventionType)

    @pytest.mark.parametrize("intervention_type", list(InterventionType))
    def test_includes_type_instruction(self, intervention_type):
        prompt = build_intervention_prompt(
            "Maya", "Sam", [("Maya", "Hi")], intervention_type, [], ContextMode.INTIMATE
        )

        assert INTERVENTION_INSTRUCTIONS[intervention_type] in prompt.user

    def test_recent_messages_and_goals(self):
        prompt = build_intervention_prompt(
            "Maya",
            "Sam",
            [("Maya", "You never help."), ("Sam", "That's not fair.")],
            InterventionType.ESCALATION,
            ["Share the chores", "Plan weekends"],
            ContextMode.INTIMATE,
        )

        assert "[Maya]: You never help.\n[Sam]: That's not fair." in prompt.user
        assert "1. Share the chores" in prompt.user
        assert "2. Plan weekends" in prompt.user

    def test_no_goals_block_without_goals(self):
        prompt = build_intervention_prompt(
            "Maya", "Sam", [], InterventionType.DOMINANCE, [], ContextMode.INTIMATE
        )

        assert "Session goals" not in prompt.user


class TestWaitingChatPrompt:
    """Framing for the first person while the second hasn't shared yet."""

    def test_carries_statement_history_and_latest(self):
        prompt = build_waiting_chat_prompt(
            "Maya",
            "Sam",
            "I do all the dishes.",
            [("Parallax", "Thank you, Maya.")],
            "How long will this take?",
        )

        assert prompt.system == CONDUCTOR_PERSONA
        assert '"I do all the dishes."' in prompt.user
        assert "[Parallax]: Thank you, Maya." in prompt.user
        assert '"How long will this take?"' in prompt.user
        assert "waiting for Sam" in prompt.user

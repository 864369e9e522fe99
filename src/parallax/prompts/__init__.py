"""Prompt builders for the mediator voice."""

from parallax.prompts.conductor import (
    CONDUCTOR_PERSONA,
    GREETING_STYLES,
    MEDIATOR_NAME,
    GreetingStyle,
    Prompt,
    build_acknowledge_a_prompt,
    build_greeting_prompt,
    build_intervention_prompt,
    build_synthesis_prompt,
    build_waiting_chat_prompt,
    choose_greeting_style,
)

__all__ = [
    "CONDUCTOR_PERSONA",
    "GREETING_STYLES",
    "MEDIATOR_NAME",
    "GreetingStyle",
    "Prompt",
    "build_acknowledge_a_prompt",
    "build_greeting_prompt",
    "build_intervention_prompt",
    "build_synthesis_prompt",
    "build_waiting_chat_prompt",
    "choose_greeting_style",
]

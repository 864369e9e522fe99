"""Parallax - conversational mediation conductor."""

__version__ = "0.1.0"

from parallax.exceptions import (
    GenerationError,
    MessageNotFoundError,
    NotFoundError,
    ParallaxError,
    SessionNotFoundError,
    TriggerValidationError,
)

__all__ = [
    "__version__",
    "GenerationError",
    "MessageNotFoundError",
    "NotFoundError",
    "ParallaxError",
    "SessionNotFoundError",
    "TriggerValidationError",
]

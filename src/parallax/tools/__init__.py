"""External integrations and API wrappers."""

from parallax.tools.base import GenerationService
from parallax.tools.claude import ClaudeClient

__all__ = ["ClaudeClient", "GenerationService"]

"""Anthropic Claude API wrapper with retry logic."""

import asyncio
import json
import logging
import re
from typing import Any

from anthropic import AsyncAnthropic, APIError, RateLimitError

from parallax.config import get_settings

logger = logging.getLogger(__name__)

_CODE_BLOCK = re.compile(r"```(?:json)?\s*\n?(.*?)\n?\s*```", re.DOTALL)
_BRACED = re.compile(r"\{.*\}", re.DOTALL)


class ClaudeClient:
    """Wrapper for Anthropic Claude API with retry logic."""

    name: str = "claude"

    def __init__(self) -> None:
        settings = get_settings()
        self.client = AsyncAnthropic(api_key=settings.anthropic_api_key)
        self.model = settings.claude_model
        self.max_tokens = settings.claude_max_tokens
        self.max_retries = settings.generation_max_retries
        self.base_delay = 1.0

    async def complete(
        self,
        prompt: str,
        system: str | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """Generate a completion from Claude.

        Args:
            prompt: The user prompt
            system: Optional system prompt
            max_tokens: Override default max tokens

        Returns:
            The generated text response

        Raises:
            APIError: If the API request fails after retries
        """
        messages = [{"role": "user", "content": prompt}]

        for attempt in range(self.max_retries):
            try:
                response = await self.client.messages.create(
                    model=self.model,
                    max_tokens=max_tokens or self.max_tokens,
                    system=system or "",
                    messages=messages,
                )
                return self._extract_text(response)

            except RateLimitError as e:
                if attempt == self.max_retries - 1:
                    raise
                delay = self.base_delay * (2**attempt)
                logger.warning(f"Rate limited, retrying in {delay}s: {e}")
                await asyncio.sleep(delay)

            except APIError as e:
                if attempt == self.max_retries - 1:
                    raise
                status_code = getattr(e, "status_code", None)
                if status_code and status_code >= 500:
                    delay = self.base_delay * (2**attempt)
                    logger.warning(f"Server error, retrying in {delay}s: {e}")
                    await asyncio.sleep(delay)
                else:
                    raise

        raise RuntimeError("Max retries exceeded")

    @staticmethod
    def _extract_text(response: Any) -> str:
        """Join the text blocks of a Messages API response."""
        return "".join(
            block.text
            for block in response.content
            if getattr(block, "type", "text") == "text"
        )

    @staticmethod
    def _parse_json_response(text: str) -> dict | None:
        """Extract and parse a JSON object from a Claude response.

        Handles JSON wrapped in markdown code blocks, returned as plain
        text, or embedded in surrounding prose. Returns None if no JSON
        object can be extracted.
        """
        # Try parsing the raw text directly
        try:
            parsed = json.loads(text.strip())
            return parsed if isinstance(parsed, dict) else None
        except (json.JSONDecodeError, ValueError):
            pass

        # Try extracting from markdown code blocks (```json ... ``` or ``` ... ```)
        candidates = []
        code_block_match = _CODE_BLOCK.search(text)
        if code_block_match:
            candidates.append(code_block_match.group(1))
        braced_match = _BRACED.search(text)
        if braced_match:
            candidates.append(braced_match.group(0))

        for candidate in candidates:
            try:
                parsed = json.loads(candidate.strip())
            except (json.JSONDecodeError, ValueError):
                continue
            if isinstance(parsed, dict):
                return parsed

        return None

"""Generation service protocol."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class GenerationService(Protocol):
    """Anything that turns a framed prompt into mediator text.

    Implementations may fail for any reason (timeout, transport, rate
    limit); callers treat every failure the same way.
    """

    async def complete(
        self,
        prompt: str,
        system: str | None = None,
        max_tokens: int | None = None,
    ) -> str: ...

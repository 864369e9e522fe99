"""Custom exceptions for Parallax."""


class ParallaxError(Exception):
    """Base class for conductor errors."""


class TriggerValidationError(ParallaxError):
    """Raised when a conductor request is missing required fields."""


class NotFoundError(ParallaxError):
    """Raised when a referenced record does not exist."""


class SessionNotFoundError(NotFoundError):
    """Raised when a session id does not resolve to a session."""

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__(f"Session not found: {session_id}")


class MessageNotFoundError(NotFoundError):
    """Raised when a message id does not resolve to a message."""

    def __init__(self, message_id: str) -> None:
        self.message_id = message_id
        super().__init__(f"Message not found: {message_id}")


class GenerationError(ParallaxError):
    """Raised when the generation service fails or times out."""

    def __init__(self, step: str, cause: BaseException | None = None) -> None:
        self.step = step
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"Generation failed during {step}{detail}")

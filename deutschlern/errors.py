"""
Error taxonomy for DeutschLern.

Every failure a generation or speech call can produce is one of these.
The orchestrator converts them into user-facing text with user_message(),
so the quiz and speaking state machines never see an exception.
"""

from typing import Optional

SETTINGS_HINT = "Set OPENROUTER_API_KEY in your .env file and restart the app."
INVALID_JSON_MESSAGE = "The AI returned a response that was not valid structured data."
GENERIC_GENERATION_MESSAGE = "Could not generate content."


class DeutschLernError(Exception):
    """Base class for all expected, user-reportable failures."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ApiKeyNotSetError(DeutschLernError):
    """No credential configured; every generation attempt fails until fixed."""

    def __init__(self, message: str = "OpenRouter API key not set."):
        super().__init__(message)


class GatewayError(DeutschLernError):
    """A chat completion call failed after it was attempted."""


class TransportError(GatewayError):
    """Network-level failure (connection refused, DNS, timeout)."""


class ApiError(GatewayError):
    """The remote service answered with a non-2xx status or a malformed body."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class InvalidJsonError(DeutschLernError):
    """No parseable JSON object/array could be extracted from a model response."""

    def __init__(self, raw_text: str, reason: str = "no JSON object or array found"):
        super().__init__(f"Invalid JSON in model response: {reason}")
        self.raw_text = raw_text
        self.reason = reason


class InvalidContentError(InvalidJsonError):
    """Parsed JSON does not have the shape the requested content needs."""

    def __init__(self, reason: str, raw_text: str = ""):
        super().__init__(raw_text, reason)


class RecognitionError(DeutschLernError):
    """The speech recognition collaborator reported an error."""


class SynthesisError(DeutschLernError):
    """The speech synthesis collaborator reported an error."""


def user_message(error: BaseException) -> str:
    """Text shown to the learner for a failed operation."""
    if isinstance(error, ApiKeyNotSetError):
        return f"{error.message}\n\n{SETTINGS_HINT}"
    if isinstance(error, InvalidJsonError):
        # raw model output is for the debug log only
        return INVALID_JSON_MESSAGE
    if isinstance(error, DeutschLernError):
        return error.message or GENERIC_GENERATION_MESSAGE
    return GENERIC_GENERATION_MESSAGE

"""
Chat completion gateway (OpenRouter, OpenAI-compatible API).

One call in, one string out. All transport and API failures leave this
module as TransportError / ApiError carrying a human-readable message
chosen by parse_error().
"""

from typing import Any, Iterable, Mapping, Optional

from openai import APIConnectionError, APIError, APIStatusError, AsyncOpenAI

from .config import Settings
from .errors import ApiError, ApiKeyNotSetError, TransportError
from .logger import Timer, logger
from .prompts import Message

GENERIC_ERROR_MESSAGE = "An unknown API error occurred. Check the debug log for details."
CHAT_ENDPOINT = "chat.completions.create"


def parse_error(error: Any) -> str:
    """
    Pick the most useful message out of an error, first match wins:

    1. body is an object whose "error" object has a string "message"
    2. body is an object with a string "message"
    3. body is itself a (non-empty) string
    4. the error's own top-level message
    5. a fixed generic message

    error may be an exception (body in .body, as openai errors carry it)
    or a plain mapping shaped like {"error": body, "message": ...}.
    """
    if isinstance(error, Mapping):
        body = error.get("error")
        message = error.get("message")
    else:
        body = getattr(error, "body", None)
        message = getattr(error, "message", None)
        if not (isinstance(message, str) and message) and isinstance(error, BaseException):
            message = str(error)

    if isinstance(body, Mapping):
        nested = body.get("error")
        if isinstance(nested, Mapping) and isinstance(nested.get("message"), str):
            return nested["message"]
        if isinstance(body.get("message"), str):
            return body["message"]
    elif isinstance(body, str) and body:
        return body

    if isinstance(message, str) and message:
        return message
    return GENERIC_ERROR_MESSAGE


class ChatGateway:
    """Sends chat completion requests with the configured model and credential."""

    def __init__(self, settings: Settings, client: Optional[Any] = None):
        self.settings = settings
        self._client = client

    def update_settings(self, settings: Settings) -> None:
        """Apply new settings; the HTTP client is rebuilt on the next call."""
        self.settings = settings
        self._client = None

    def _get_client(self) -> Any:
        if self._client is None:
            logger.api("Initializing OpenRouter client...")
            self._client = AsyncOpenAI(
                api_key=self.settings.api_key,
                base_url=self.settings.api_url,
                default_headers={
                    "HTTP-Referer": self.settings.referer,
                    "X-Title": self.settings.app_title,
                },
                # failed or superseded requests are dropped, never retried
                max_retries=0,
            )
        return self._client

    async def complete(self, messages: Iterable[Message]) -> str:
        """Send messages and return choices[0].message.content."""
        if not self.settings.has_api_key:
            logger.api_error("Refusing chat completion: API key not set")
            raise ApiKeyNotSetError("OpenRouter API key not set. Please set it in the AI settings.")

        client = self._get_client()
        logger.api_call(CHAT_ENDPOINT, model=self.settings.model_id)
        try:
            with Timer() as timer:
                completion = await client.chat.completions.create(
                    model=self.settings.model_id,
                    messages=list(messages),
                    temperature=self.settings.temperature,
                )
        except APIConnectionError as e:
            # also covers APITimeoutError
            message = parse_error(e)
            logger.api_error(f"Transport failure: {message}")
            raise TransportError(message) from e
        except APIStatusError as e:
            message = parse_error(e)
            logger.api_error(f"HTTP {e.status_code}: {message}")
            raise ApiError(message, status_code=e.status_code) from e
        except APIError as e:
            message = parse_error(e)
            logger.api_error(f"API error: {message}")
            raise ApiError(message) from e

        logger.api_response(CHAT_ENDPOINT, duration_ms=timer.duration_ms)
        return _message_content(completion)


def _message_content(completion: Any) -> str:
    choices = getattr(completion, "choices", None)
    if choices:
        message = getattr(choices[0], "message", None)
        content = getattr(message, "content", None)
        if isinstance(content, str):
            return content

    # OpenRouter sometimes answers 200 with {"error": {...}} instead of choices
    extra = getattr(completion, "model_extra", None) or {}
    if isinstance(extra, Mapping) and extra.get("error") is not None:
        message = parse_error({"error": extra})
        logger.api_error(f"Error object in success response: {message}")
        raise ApiError(message)

    logger.api_error("Malformed completion: no choices[0].message.content")
    raise ApiError("The AI service returned a malformed response.")

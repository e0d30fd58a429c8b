"""
Pull a JSON payload out of a free-form model response.

Models are asked for bare JSON but often wrap it in prose or ``` fences.
We take the first '{' or '[' through the LAST matching closer in the text
(greedy), then parse. If the model emits two independent JSON blocks the
span covers both and parsing fails; that tolerant-but-risky behavior is
intentional and pinned by the tests.
"""

import json
import re
from typing import Any, Callable, TypeVar

from .errors import InvalidJsonError
from .logger import logger

T = TypeVar("T")

_JSON_SPAN = re.compile(r"\{.*\}|\[.*\]", re.DOTALL)


def extract_json(raw_text: str) -> Any:
    """Return the parsed JSON object/array embedded in raw_text."""
    match = _JSON_SPAN.search(raw_text or "")
    if not match:
        logger.debug(f"No JSON span in model response: {(raw_text or '')[:300]!r}")
        raise InvalidJsonError(raw_text or "", "no JSON object or array found")

    candidate = match.group(0)
    try:
        return json.loads(candidate)
    except json.JSONDecodeError as e:
        logger.debug(f"Failed to parse JSON from AI response: {raw_text[:500]!r}")
        raise InvalidJsonError(raw_text, f"parse error at char {e.pos}: {e.msg}") from e


def parse_content(raw_text: str, factory: Callable[[Any], T]) -> T:
    """Extract JSON and build a typed value from it with factory (usually a from_dict)."""
    data = extract_json(raw_text)
    try:
        return factory(data)
    except InvalidJsonError as e:
        e.raw_text = raw_text
        logger.debug(f"JSON did not match expected shape ({e.reason}): {raw_text[:500]!r}")
        raise

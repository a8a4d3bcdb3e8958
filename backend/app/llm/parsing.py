"""Locate and parse structured payloads embedded in free-form model output.

Models routinely wrap JSON in prose or code fences despite instructions, so
the payload is never assumed to be the whole response body.
"""

import json
from typing import Any

from backend.app.llm.errors import StructuredPayloadError

NO_PAYLOAD_MESSAGE = "no structured payload found"


def find_structured_span(text: str) -> str:
    """Return the first balanced ``{...}`` span in ``text``.

    Braces inside JSON string literals (including escaped quotes) do not
    count towards balance.

    Raises:
        StructuredPayloadError: If there is no opening brace or it is never closed
    """
    start = text.find("{")
    if start == -1:
        raise StructuredPayloadError(NO_PAYLOAD_MESSAGE)

    depth = 0
    in_string = False
    escaped = False

    for index in range(start, len(text)):
        char = text[index]

        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start : index + 1]

    raise StructuredPayloadError(NO_PAYLOAD_MESSAGE)


def parse_structured_payload(text: str) -> dict[str, Any]:
    """Parse the first balanced structured span of ``text`` as a JSON object.

    Raises:
        StructuredPayloadError: If no span exists or the span is not valid JSON
    """
    span = find_structured_span(text)
    try:
        value: dict[str, Any] = json.loads(span)
    except json.JSONDecodeError as e:
        raise StructuredPayloadError(f"structured payload is not valid JSON: {e.msg}") from e

    return value

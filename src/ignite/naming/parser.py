"""Parse naming collaborator responses.

Models like to wrap JSON in prose or markdown fences, so the first balanced
``[...]`` or ``{...}`` span is located and only that span is parsed.
"""

import json
import logging
import re

from pydantic import ValidationError

from ..models import ConceptNamingResult
from .errors import NamingResponseError
from .schema import NamingResultPayload

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\s*\n?(.*?)\n?\s*```", re.DOTALL)
_CLOSERS = {"[": "]", "{": "}"}


def extract_json(text: str) -> str:
    """Return the first balanced JSON array/object span in ``text``.

    Content of a fenced code block is preferred when present. Brackets inside
    string literals are ignored.
    """
    cleaned = text.strip()
    match = _FENCE_RE.search(cleaned)
    if match:
        cleaned = match.group(1).strip()

    starts = [i for i in (cleaned.find("["), cleaned.find("{")) if i != -1]
    if not starts:
        raise NamingResponseError("No JSON found in response", raw=text)
    start = min(starts)

    stack: list[str] = []
    in_string = False
    escaped = False
    for i in range(start, len(cleaned)):
        char = cleaned[i]
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
        elif char in _CLOSERS:
            stack.append(_CLOSERS[char])
        elif char in ("]", "}"):
            if not stack or stack.pop() != char:
                raise NamingResponseError("Mismatched brackets in response JSON", raw=text)
            if not stack:
                return cleaned[start:i + 1]

    raise NamingResponseError("Unterminated JSON in response", raw=text)


def parse_naming_response(text: str) -> list[ConceptNamingResult]:
    """Parse and validate a naming response into results.

    Raises NamingResponseError when the payload is not a JSON array or any
    element lacks a string ``clusterId``/``canonicalName``.
    """
    span = extract_json(text)
    try:
        parsed = json.loads(span)
    except json.JSONDecodeError as e:
        raise NamingResponseError(f"Invalid JSON in response: {e}", raw=text) from e

    if not isinstance(parsed, list):
        raise NamingResponseError("Expected a JSON array of naming results", raw=text)

    results = []
    for index, item in enumerate(parsed):
        if not isinstance(item, dict):
            raise NamingResponseError(f"Naming result {index} is not an object", raw=text)
        try:
            payload = NamingResultPayload.model_validate(item)
        except ValidationError as e:
            fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
            raise NamingResponseError(f"Naming result {index} is invalid ({fields})", raw=text) from e
        results.append(payload.to_result())

    logger.debug("Parsed %d naming result(s)", len(results))
    return results

"""Strict parsing of JSON objects returned by the language model."""

import json
import re
from typing import Any

# A single fenced block, optionally tagged ``json``
_FENCE = re.compile(r"^```(?:json)?\s*\n?(.*?)\n?```$", re.S | re.I)


class JSONObjectError(ValueError):
    """Model output is not a single JSON object."""


def parse_json_object(raw: str) -> dict[str, Any]:
    """Parse model output that must be exactly one JSON object.

    Surrounding whitespace and one Markdown code fence are tolerated; any
    other text around the object is not.

    Raises:
        JSONObjectError: If the text is not a JSON object.
    """
    if not isinstance(raw, str):
        raise JSONObjectError(f"Expected text, got {type(raw).__name__}")
    text = raw.strip()
    fenced = _FENCE.match(text)
    if fenced:
        text = fenced.group(1).strip()
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise JSONObjectError(f"Invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise JSONObjectError(f"Expected a JSON object, got {type(data).__name__}")
    return data

"""Helpers for reading JSON that a model was asked to emit."""

import json
from typing import Any


def strip_code_fences(text: str) -> str:
    """Remove a surrounding markdown fence (```json ... ```) if present."""
    text = text.strip()
    if text.startswith("```"):
        lines = text.split("\n")
        text = "\n".join(lines[1:-1] if len(lines) > 2 else lines[1:])
        text = text.strip()
    return text


def loads_model_json(text: str) -> Any:
    """Parse model output as JSON, tolerating fences and leading chatter.

    Raises:
        ValueError: If no JSON value can be recovered.
    """
    text = strip_code_fences(text)
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    # Models sometimes wrap the payload in prose; extract the outermost
    # object or array.
    for opener, closer in (("{", "}"), ("[", "]")):
        start = text.find(opener)
        end = text.rfind(closer)
        if start != -1 and end > start:
            try:
                return json.loads(text[start : end + 1])
            except json.JSONDecodeError:
                continue
    raise ValueError(f"Model output is not valid JSON: {text[:200]!r}")


def loads_string_list(text: str) -> list[str]:
    """Parse a JSON array of strings.

    Raises:
        ValueError: If the payload is not a JSON array. Non-string items
            are dropped rather than rejected.
    """
    data = loads_model_json(text)
    if not isinstance(data, list):
        raise ValueError("Invalid response format: expected a JSON array")
    return [item.strip() for item in data if isinstance(item, str) and item.strip()]

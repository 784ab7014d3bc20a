"""Extract JSON objects from free-form generative responses."""

import json
from typing import Any

_DECODER = json.JSONDecoder()


def strip_code_fences(content: str) -> str:
    """Remove a surrounding ```json ... ``` or ``` ... ``` block if present."""
    content = content.strip()
    if "```json" in content:
        start = content.find("```json") + 7
        end = content.find("```", start)
        if end > start:
            return content[start:end].strip()
    elif "```" in content:
        start = content.find("```") + 3
        end = content.find("```", start)
        if end > start:
            return content[start:end].strip()
    return content


def extract_json_object(content: str) -> dict[str, Any] | None:
    """Return the first complete JSON object found in the text.

    Nested objects and arrays are handled by decoding from each opening
    brace in turn. Returns None when no object can be decoded.
    """
    text = strip_code_fences(content)
    start = text.find("{")
    while start != -1:
        try:
            value, _ = _DECODER.raw_decode(text, start)
        except json.JSONDecodeError:
            start = text.find("{", start + 1)
            continue
        if isinstance(value, dict):
            return value
        start = text.find("{", start + 1)
    return None

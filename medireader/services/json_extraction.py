"""
Locate and parse the JSON array inside a model reply.

Vision models often wrap their JSON in prose or markdown fences, so the
reply is scanned for the first balanced ``[...]`` that parses.
"""

from __future__ import annotations

import json
from typing import Any, Iterator


class JSONArrayNotFound(ValueError):
    """No balanced ``[...]`` block exists in the text."""


def _balanced_arrays(text: str) -> Iterator[str]:
    """Yield every balanced bracket block, in order of its opening bracket."""
    start = text.find("[")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for pos in range(start, len(text)):
            char = text[pos]
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
            elif char == "[":
                depth += 1
            elif char == "]":
                depth -= 1
                if depth == 0:
                    yield text[start:pos + 1]
                    break
        start = text.find("[", start + 1)


def extract_json_array(text: str) -> list[Any]:
    """
    Return the first balanced JSON array in ``text``.

    Raises:
        JSONArrayNotFound: no balanced ``[...]`` block exists.
        json.JSONDecodeError: blocks exist but none of them parse as an array.
    """
    last_error: json.JSONDecodeError | None = None
    found = False

    for candidate in _balanced_arrays(text or ""):
        found = True
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError as e:
            last_error = e
            continue
        if isinstance(parsed, list):
            return parsed

    if not found:
        raise JSONArrayNotFound("no JSON array found in text")
    if last_error is None:
        last_error = json.JSONDecodeError("bracket block is not a JSON array", text, 0)
    raise last_error

"""Parsing of JSON objects embedded in free-form model replies."""
from __future__ import annotations
import json
import re

from learnpath.domain.common.result import Result

_FENCED_JSON = re.compile(r"```(?:json)?\s*(.*?)\s*```", re.DOTALL)


def parse_structured_response(text: str) -> Result[dict]:
    """
    Extract a JSON object from a model reply.

    A single strategy: prefer the first fenced ```json block, otherwise the
    span from the first '{' to the last '}'. Anything that does not decode to
    a JSON object is a failure.
    """
    if not text or not text.strip():
        return Result.fail("Empty response.")

    fenced = _FENCED_JSON.search(text)
    if fenced:
        candidate = fenced.group(1)
    else:
        start, end = text.find("{"), text.rfind("}")
        if start == -1 or end <= start:
            return Result.fail("No JSON object found in response.")
        candidate = text[start:end + 1]

    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError as e:
        return Result.fail(f"Invalid JSON: {e}")

    if not isinstance(parsed, dict):
        return Result.fail(f"Expected a JSON object, got {type(parsed).__name__}.")
    return Result.ok(parsed)

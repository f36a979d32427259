"""Pull the JSON object out of free-form model output."""

from __future__ import annotations

import json
import re
from typing import Any

from src.migration_orchestrator.exceptions import MalformedResponseError

# Greedy: first "{" through last "}".  Prose or code fences around the
# object are dropped; nothing inside the span is repaired.
_JSON_SPAN = re.compile(r"\{[\s\S]*\}")


def extract_json_object(text: str) -> dict[str, Any]:
    """Return the JSON object embedded in *text*.

    Raises:
        MalformedResponseError: If no brace-delimited span exists, it does
            not parse, or it is not an object.
    """
    match = _JSON_SPAN.search(text or "")
    if match is None:
        raise MalformedResponseError("No JSON object found in model response", raw=text)
    try:
        data = json.loads(match.group(0))
    except (json.JSONDecodeError, RecursionError) as exc:
        raise MalformedResponseError(
            f"Model response JSON does not parse: {exc}", raw=text
        ) from exc
    if not isinstance(data, dict):
        raise MalformedResponseError("Model response JSON is not an object", raw=text)
    return data

"""Helpers for pulling JSON payloads out of free-form model responses."""

import json
import re
from typing import Any, Dict, Optional

from folio.core.exceptions import MalformedResponse

_FENCED_JSON = re.compile(r"```json\s*([\s\S]*?)```", re.IGNORECASE)

_decoder = json.JSONDecoder()


def extract_json_object(text: str) -> Dict[str, Any]:
    """
    Return the first decodable top-level JSON object embedded in `text`.

    Surrounding prose and ```json fences are tolerated, including stray
    braces in the prose; anything after the object's closing brace is ignored.
    """
    text = text or ""
    start = text.find("{")
    if start == -1:
        raise MalformedResponse("No valid JSON found in response")

    first_error = None
    while start != -1:
        try:
            obj, _ = _decoder.raw_decode(text, start)
            return obj
        except json.JSONDecodeError as e:
            if first_error is None:
                first_error = e
        start = text.find("{", start + 1)

    raise MalformedResponse(f"Failed to parse JSON from response: {first_error.msg}") from first_error


def extract_fenced_json(text: str) -> Optional[Dict[str, Any]]:
    """Decode the first ```json fenced block, or None when there is none."""
    match = _FENCED_JSON.search(text or "")
    if not match:
        return None
    data = json.loads(match.group(1).strip())
    if not isinstance(data, dict):
        raise MalformedResponse("Fenced JSON block is not an object")
    return data

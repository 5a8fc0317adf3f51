import json
import re
from typing import Any, Dict, Union

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")
_OBJECT_RE = re.compile(r"\{[\s\S]*\}")
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")


def clean_and_parse_json(text: str) -> Union[Dict[str, Any], list]:
    """Parse JSON out of a model reply, raising ValueError when nothing usable is found."""
    if not text or not text.strip():
        raise ValueError("Empty model response")

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    for block in _FENCE_RE.findall(text):
        try:
            return _loads_lenient(block)
        except ValueError:
            continue

    match = _OBJECT_RE.search(text)
    if match:
        return _loads_lenient(match.group(0))

    raise ValueError("Failed to parse JSON from text")


def extract_json(text: str) -> Dict[str, Any]:
    """Greedy ``{...}`` extraction. Returns an empty dict instead of raising."""
    try:
        parsed = clean_and_parse_json(text)
    except ValueError:
        return {}
    return parsed if isinstance(parsed, dict) else {}


def _loads_lenient(candidate: str) -> Any:
    candidate = candidate.strip()
    if not candidate or candidate[-1] not in ("}", "]"):
        raise ValueError("Truncated JSON payload")
    candidate = _TRAILING_COMMA_RE.sub(r"\1", candidate)
    try:
        return json.loads(candidate, strict=False)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Could not repair JSON: {exc}") from exc

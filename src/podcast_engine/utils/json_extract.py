"""Two-phase extraction of JSON payloads from LLM output.

Models frequently wrap JSON in Markdown fences, add prose around it or emit
unescaped newlines inside strings. Parsing first tries a strict decode of the
cleaned text and then falls back to pulling individual fields out with
regular expressions.
"""

import json
import re
from typing import Any

from podcast_engine.domain.errors import ProviderParseError

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)


def strip_code_fences(text: str) -> str:
    """Return the body of the first fenced block, or the text itself."""
    match = _FENCE_RE.search(text)
    if match:
        return match.group(1).strip()
    return text.strip()


def _outermost(text: str, open_char: str, close_char: str) -> str | None:
    start = text.find(open_char)
    end = text.rfind(close_char)
    if start == -1 or end <= start:
        return None
    return text[start : end + 1]


def loads_lenient(text: str) -> Any:
    """Decode JSON after removing fences and surrounding prose.

    Raises:
        ValueError: If no JSON value can be decoded.
    """
    cleaned = strip_code_fences(text)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        pass

    for open_char, close_char in (("{", "}"), ("[", "]")):
        candidate = _outermost(cleaned, open_char, close_char)
        if candidate is None:
            continue
        try:
            return json.loads(candidate)
        except json.JSONDecodeError:
            continue
    raise ValueError("No JSON value found in response")


def _unescape(value: str) -> str:
    return value.replace("\\n", "\n").replace('\\"', '"').replace("\\t", "\t")


def extract_fields(text: str, fields: list[str]) -> dict[str, str]:
    """Pull string fields out of malformed JSON with regular expressions.

    The last requested field is matched greedily up to the closing quote of
    the object so that long bodies with stray quotes survive.
    """
    result: dict[str, str] = {}
    for index, name in enumerate(fields):
        if index == len(fields) - 1:
            pattern = rf'"{re.escape(name)}"\s*:\s*"([\s\S]+?)(?:"\s*}}|"\s*,\s*")'
        else:
            pattern = rf'"{re.escape(name)}"\s*:\s*"((?:[^"\\]|\\.)+)"'
        match = re.search(pattern, text)
        if match:
            result[name] = _unescape(match.group(1))
    return result


def parse_json_response(
    text: str,
    required_fields: list[str] | None = None,
) -> Any:
    """Parse an LLM response that should contain JSON.

    Args:
        text: Raw model output.
        required_fields: String fields to recover with regex if strict
            parsing fails. Without them only the strict phase runs.

    Returns:
        The decoded JSON value, or a dict of recovered fields.

    Raises:
        ProviderParseError: If neither phase produces a usable value.
    """
    try:
        return loads_lenient(text)
    except ValueError:
        pass

    if required_fields:
        recovered = extract_fields(text, required_fields)
        if all(name in recovered for name in required_fields):
            return recovered

    raise ProviderParseError("Could not parse JSON from provider response", raw=text[:500])

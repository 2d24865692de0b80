"""
Tolerant JSON extraction for LLM responses.

The model is asked for "only the JSON object" but routinely wraps it in
markdown fences, adds prose around it, leaves trailing commas, or writes
multi-line free text with raw newlines and unescaped quotes. This module
recovers the object under a bounded contract:

1. Strip a surrounding ```json / ``` fence
2. Locate the first top-level balanced {...} span (greedy span as fallback)
3. Parse as-is; if that fails, re-escape the string values of known
   free-text fields only, drop trailing commas, and parse again

Anything beyond that is the caller's problem (see LLMOutputParseError).
"""

import json
import re
from typing import Any, Dict, List, Optional, Sequence

from cardquery.services.errors import LLMOutputParseError

_FENCE_JSON_PREFIX = re.compile(r"^```json\s*", re.IGNORECASE)
_FENCE_PREFIX = re.compile(r"^```\s*")
_FENCE_SUFFIX = re.compile(r"\s*```$")

# Remove trailing commas before } or ] (common LLM mistake)
_TRAILING_COMMA = re.compile(r",(\s*[}\]])")

# End of a free-text string value: an unescaped quote followed by the next
# key or the closing brace of the object
_VALUE_END = re.compile(r'(?<!\\)"(?=\s*(?:,\s*"[^"\n]+"\s*:|\}))')

_VALID_ESCAPES = set('"\\/bfnrt')
_HEX_DIGITS = set("0123456789abcdefABCDEF")


def strip_code_fences(text: str) -> str:
    """Remove a leading ```json (or ```) fence and its closing ```."""
    stripped = text.strip()
    if stripped.lower().startswith("```json"):
        stripped = _FENCE_SUFFIX.sub("", _FENCE_JSON_PREFIX.sub("", stripped))
    elif stripped.startswith("```"):
        stripped = _FENCE_SUFFIX.sub("", _FENCE_PREFIX.sub("", stripped))
    return stripped


def _greedy_object_span(text: str) -> Optional[str]:
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        return None
    return text[start:end + 1]


def find_json_object(text: str) -> Optional[str]:
    """
    Return the first top-level balanced {...} span in text.

    Braces inside JSON strings are ignored. If the first object never
    balances (truncated output, or a stray quote confusing the string
    tracking) the greedy span from the first '{' to the last '}' is
    returned instead. None if there is no '{' ... '}' at all.
    """
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False

    for idx in range(start, len(text)):
        ch = text[idx]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start:idx + 1]

    return _greedy_object_span(text)


def _escape_string_body(value: str) -> str:
    """Escape a raw string body so it is a valid JSON string body."""
    out: List[str] = []
    idx = 0
    length = len(value)

    while idx < length:
        ch = value[idx]
        if ch == "\\":
            nxt = value[idx + 1] if idx + 1 < length else ""
            if nxt and nxt in _VALID_ESCAPES:
                out.append(ch + nxt)
                idx += 2
                continue
            hex_part = value[idx + 2:idx + 6]
            if nxt == "u" and len(hex_part) == 4 and all(c in _HEX_DIGITS for c in hex_part):
                out.append(value[idx:idx + 6])
                idx += 6
                continue
            out.append("\\\\")
        elif ch == '"':
            out.append('\\"')
        elif ch == "\n":
            out.append("\\n")
        elif ch == "\r":
            out.append("\\r")
        elif ch == "\t":
            out.append("\\t")
        elif ord(ch) < 0x20:
            out.append(f"\\u{ord(ch):04x}")
        else:
            out.append(ch)
        idx += 1

    return "".join(out)


def escape_free_text_field(text: str, field: str) -> str:
    """
    Re-escape the string value of one free-text field inside a JSON text.

    Only the value of `field` is touched. Already-valid escapes are kept,
    so applying this to well-formed JSON is a no-op.
    """
    opener = re.search(r'"%s"\s*:\s*"' % re.escape(field), text)
    if not opener:
        return text

    value_start = opener.end()
    closer = _VALUE_END.search(text, value_start)
    if not closer:
        return text

    raw_value = text[value_start:closer.start()]
    return text[:value_start] + _escape_string_body(raw_value) + text[closer.start():]


def _repair(json_text: str, free_text_fields: Sequence[str]) -> str:
    repaired = json_text
    for field in free_text_fields:
        repaired = escape_free_text_field(repaired, field)
    return _TRAILING_COMMA.sub(r"\1", repaired)


def parse_llm_json(text: str, free_text_fields: Sequence[str] = ()) -> Dict[str, Any]:
    """
    Parse the JSON object embedded in an LLM response.

    Args:
        text: Raw accumulated LLM output
        free_text_fields: Keys whose string values may contain raw newlines,
                          tabs or quotes and should be re-escaped on retry

    Returns:
        The parsed JSON object

    Raises:
        LLMOutputParseError: If no JSON object can be recovered
    """
    if not text or not text.strip():
        raise LLMOutputParseError("Empty response from model", raw_text=text)

    cleaned = strip_code_fences(text)
    balanced = find_json_object(cleaned)
    if balanced is None:
        raise LLMOutputParseError("No valid JSON structure found", raw_text=text)

    candidates = [balanced]
    greedy = _greedy_object_span(cleaned)
    if greedy and greedy != balanced:
        candidates.append(greedy)

    last_error: Optional[json.JSONDecodeError] = None
    for candidate in candidates:
        for attempt in (candidate, _repair(candidate, free_text_fields)):
            try:
                return json.loads(attempt)
            except json.JSONDecodeError as e:
                last_error = e

    raise LLMOutputParseError(f"Could not parse JSON object: {last_error}", raw_text=text)


def extract_quoted_values(text: str, key: str) -> List[str]:
    """Scan raw text for every `"key": "value"` pair and return the values."""
    return re.findall(r'"%s"\s*:\s*"([^"]+)"' % re.escape(key), text)

"""Tolerant JSON parsing for language model replies.

Models often wrap JSON in markdown fences, add prose around it, or leave
trailing commas. ``parse_llm_json`` strips fences, isolates the first
balanced ``{...}`` span and retries once without trailing commas.
"""

import json
import re
from typing import Any, Dict, Optional

from search_libs.common.errors import LLMResponseParseError

FENCE_PATTERN = re.compile(r"```(?:json)?\s*|\s*```", re.IGNORECASE)


def strip_code_fences(text: str) -> str:
    return FENCE_PATTERN.sub("", text.strip())


def extract_json_object(text: str) -> Optional[str]:
    """Return the first balanced ``{...}`` span in ``text``, if any.

    Braces inside JSON strings are ignored. An unterminated object yields
    everything from its opening brace so the parser can report it.
    """
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
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
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start:index + 1]

    return text[start:]


def strip_trailing_commas(text: str) -> str:
    """Drop commas that directly precede a closing brace or bracket.

    Commas inside string literals are kept.
    """
    kept = []
    in_string = False
    escaped = False
    for index, char in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
        elif char == '"':
            in_string = True
        elif char == ",":
            following = text[index + 1:].lstrip()
            if following[:1] in ("}", "]"):
                continue
        kept.append(char)
    return "".join(kept)


def parse_llm_json(text: str) -> Dict[str, Any]:
    """Parse a model reply into a JSON object.

    Raises
    - ``LLMResponseParseError`` if no JSON object can be recovered.
    """
    if not text or not text.strip():
        raise LLMResponseParseError("Empty response")

    candidate = extract_json_object(strip_code_fences(text))
    if candidate is None:
        raise LLMResponseParseError("No JSON object found in response")

    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError:
        try:
            parsed = json.loads(strip_trailing_commas(candidate))
        except json.JSONDecodeError as e:
            raise LLMResponseParseError(f"Malformed JSON in response: {e}") from e

    if not isinstance(parsed, dict):
        raise LLMResponseParseError(f"Expected a JSON object, got {type(parsed).__name__}")
    return parsed

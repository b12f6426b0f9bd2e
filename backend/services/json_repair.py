"""
JSON Repair Utility

Extracts, repairs, and parses the JSON object an LLM returns in JSON mode.
Even with response_format=json_object, compatible servers and smaller models
occasionally wrap the object in prose or fences, truncate it, or use Python
literals; this module handles those cases deterministically.

Used by: ResponseComposer (LLM-backed composition)
"""

import json
import logging
import re
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

_FENCE = re.compile(r"```(?:json)?\s*(.*?)\s*```", re.DOTALL)


def extract_json_from_response(text: str) -> Optional[str]:
    """
    Extract a JSON object string from an LLM response.

    Tries (in order):
    1. ``` / ```json fenced code blocks
    2. Outermost { ... } span (also an unterminated trailing "{...")

    Returns:
        Extracted JSON string, or None if no object was found
    """
    if not text:
        return None

    fenced = _FENCE.search(text)
    if fenced and fenced.group(1).lstrip().startswith("{"):
        return fenced.group(1).strip()

    start = text.find("{")
    if start < 0:
        return None
    end = text.rfind("}")
    if end > start:
        return text[start : end + 1].strip()
    return text[start:].strip()


def _close_truncated(json_str: str) -> str:
    """Close an unterminated string and any open brackets, innermost first."""
    stack = []
    in_string = False
    escaped = False
    for c in json_str:
        if in_string:
            if escaped:
                escaped = False
            elif c == "\\":
                escaped = True
            elif c == '"':
                in_string = False
            continue
        if c == '"':
            in_string = True
        elif c in "{[":
            stack.append("}" if c == "{" else "]")
        elif c in "}]" and stack:
            stack.pop()

    if in_string:
        json_str += '"'
    if stack:
        logger.debug(f"Closed {len(stack)} open bracket(s) in truncated JSON")
        json_str = re.sub(r",\s*$", "", json_str) + "".join(reversed(stack))
    return json_str


def repair_json(json_str: str) -> str:
    """
    Attempt to repair malformed JSON from LLM output.

    Handles common failure modes:
    1. Trailing prose after the closing brace
    2. Python literals (None, True, False)
    3. Single-quoted keys and values
    4. Trailing commas before } or ]
    5. Empty values after a colon
    6. Truncated output (unterminated string, unclosed braces/brackets)

    Returns:
        Repaired JSON string (may still be invalid in edge cases)
    """
    original = json_str

    # Step 1: cut trailing content after the first balanced top-level object
    depth = 0
    for i, c in enumerate(json_str):
        if c == "{":
            depth += 1
        elif c == "}":
            depth -= 1
            if depth == 0:
                json_str = json_str[: i + 1]
                break

    # Step 2: Python-style values outside of strings are the common case
    json_str = re.sub(r"(?<=[:\[,\s])None\b", "null", json_str)
    json_str = re.sub(r"(?<=[:\[,\s])True\b", "true", json_str)
    json_str = re.sub(r"(?<=[:\[,\s])False\b", "false", json_str)

    # Step 3: single quotes used as delimiters
    json_str = re.sub(r"(?<=[{,:\[])\s*'([^']*?)'\s*(?=[},:\]])", r'"\1"', json_str)
    json_str = re.sub(r"'(\w+)':", r'"\1":', json_str)

    # Step 4: trailing commas
    json_str = re.sub(r",\s*}", "}", json_str)
    json_str = re.sub(r",\s*]", "]", json_str)

    # Step 5: empty values
    json_str = re.sub(r":\s*,", ": null,", json_str)
    json_str = re.sub(r":\s*}", ": null}", json_str)

    # Step 6: truncation
    json_str = _close_truncated(json_str)

    if json_str != original:
        logger.info("Applied JSON repairs")

    return json_str


def parse_json_response(text: str) -> Optional[Any]:
    """
    Full pipeline: extract JSON from an LLM response, repair, and parse.

    Returns:
        Parsed Python object, or None if extraction/parsing fails
    """
    json_str = extract_json_from_response(text)
    if json_str is None:
        logger.warning("No JSON found in response")
        return None

    try:
        return json.loads(json_str)
    except json.JSONDecodeError:
        pass

    repaired = repair_json(json_str)
    try:
        return json.loads(repaired)
    except json.JSONDecodeError as e:
        logger.error(f"JSON parse failed after all repairs: {e}")
        return None


def parse_json_object(text: str) -> Optional[Dict[str, Any]]:
    """parse_json_response restricted to objects (lists and scalars yield None)."""
    parsed = parse_json_response(text)
    return parsed if isinstance(parsed, dict) else None

# ideaforge/pipeline/parsing.py
"""
JSON extraction from model output.

Models wrap JSON in prose or code fences, leave trailing commas, or stop
mid-object when they hit a token limit. extract_json recovers a dict or
list from all of those, or raises ValueError.
"""

import json
import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\s*\n?(.*?)\n?```", re.DOTALL | re.IGNORECASE)
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")
_LINE_COMMENT_RE = re.compile(r"^\s*//.*$", re.MULTILINE)


def _scan_open_delimiters(text: str) -> tuple[list[str], bool]:
    """
    Walk text as JSON and return the stack of unclosed openers.

    Returns (stack, ended_in_string) where stack holds '{' / '[' in order.
    """
    stack: list[str] = []
    in_string = False
    escape = False
    for ch in text:
        if escape:
            escape = False
            continue
        if in_string:
            if ch == "\\":
                escape = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in "{[":
            stack.append(ch)
        elif ch in "}]" and stack:
            stack.pop()
    return stack, in_string


def _clean(candidate: str) -> str:
    """Drop // comment lines and trailing commas before closers."""
    candidate = _LINE_COMMENT_RE.sub("", candidate)
    return _TRAILING_COMMA_RE.sub(r"\1", candidate)


def _close_truncated(candidate: str) -> Any | None:
    """
    Repair JSON cut off mid-output by trimming back and closing delimiters.

    Tries progressively shorter prefixes: each attempt closes an open string,
    drops a dangling comma/colon, then appends the missing closers.
    """
    text = candidate.rstrip()
    for _ in range(200):
        if not text:
            return None

        stack, in_string = _scan_open_delimiters(text)
        attempt = text + ('"' if in_string else "")
        attempt = attempt.rstrip().rstrip(",:").rstrip()
        closers = "".join("}" if opener == "{" else "]" for opener in reversed(stack))
        try:
            return json.loads(_clean(attempt + closers))
        except json.JSONDecodeError:
            pass

        # Cut back to the previous structural boundary
        cut = max(text.rfind(","), text.rfind("{"), text.rfind("["))
        if cut <= 0:
            return None
        text = text[:cut] if text[cut] == "," else text[: cut + 1]

    return None


def extract_json(raw_output: str) -> Any:
    """
    Extract JSON from LLM output, handling common formatting variations.

    Strategies, in order:
    1. Direct parse
    2. Code fence (```json ... ```)
    3. Outermost {...} or [...] span, with trailing commas removed
    4. Truncation repair (close unclosed strings/arrays/objects)

    Args:
        raw_output: Raw text from LLM

    Returns:
        Parsed JSON value (dict or list)

    Raises:
        ValueError: If no valid JSON found
    """
    if not raw_output or not raw_output.strip():
        raise ValueError("Model returned empty output")

    try:
        return json.loads(raw_output.strip())
    except json.JSONDecodeError:
        pass

    fence_match = _FENCE_RE.search(raw_output)
    if fence_match:
        try:
            return json.loads(_clean(fence_match.group(1).strip()))
        except json.JSONDecodeError:
            pass

    span_match = re.search(r"(\{.*\}|\[.*\])", raw_output, re.DOTALL)
    if span_match:
        try:
            return json.loads(_clean(span_match.group(1)))
        except json.JSONDecodeError:
            pass

    starts = [i for i in (raw_output.find("{"), raw_output.find("[")) if i != -1]
    if starts:
        repaired = _close_truncated(raw_output[min(starts):])
        if repaired is not None:
            logger.warning("Recovered JSON from truncated model output")
            return repaired

    preview = raw_output[:300].replace("\n", "\\n")
    raise ValueError(
        f"Could not extract valid JSON from output ({len(raw_output)} chars). "
        f"Preview: {preview}"
    )

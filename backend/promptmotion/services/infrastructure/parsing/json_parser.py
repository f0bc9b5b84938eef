"""
JSON parsing for LLM responses, with error recovery.

Structured-output calls normally return clean JSON; these helpers cover the
cases where the model wraps it in fences or adds prose around it.
"""

import json
import re
from typing import Any, List, Optional

from .code_parser import remove_markdown_wrappers

_ESCAPE_SEQUENCE = re.compile(r"\\(.?)", re.DOTALL)
_VALID_ESCAPES = set('"\\/bfnrtu')


def extract_largest_balanced_json(text: str) -> Optional[str]:
    """Largest balanced {...} or [...] substring, respecting string literals."""
    if not text:
        return None

    in_string = False
    escape = False
    stack: List[str] = []
    start_idx: Optional[int] = None
    best: Optional[str] = None

    for i, ch in enumerate(text):
        if in_string:
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
        elif ch in "{[":
            if not stack:
                start_idx = i
            stack.append(ch)
        elif ch in "}]" and stack:
            if (stack[-1], ch) in (("{", "}"), ("[", "]")):
                stack.pop()
                if not stack and start_idx is not None:
                    candidate = text[start_idx:i + 1]
                    if best is None or len(candidate) > len(best):
                        best = candidate
                    start_idx = None
            else:
                stack.clear()
                start_idx = None

    return best


def looks_truncated_json(text: str) -> bool:
    """True when the text ends inside a string or an open object/array."""
    in_string = False
    escape = False
    depth = 0
    for ch in text or "":
        if in_string:
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in "{[":
            depth += 1
        elif ch in "}]":
            depth -= 1
    return in_string or depth > 0


def fix_json_escapes(text: str) -> str:
    """Double any backslash that does not start a valid JSON escape."""
    def _repair(match: "re.Match[str]") -> str:
        if match.group(1) and match.group(1) in _VALID_ESCAPES:
            return match.group(0)
        return "\\\\" + match.group(1)

    return _ESCAPE_SEQUENCE.sub(_repair, text)


def parse_json_response(text: str, default: Any = None) -> Any:
    """Parse JSON from an LLM response.

    Tries, in order: the text as-is (fences removed), with invalid escapes
    fixed, and the largest balanced JSON fragment.

    Returns:
        The parsed value, or `default` when nothing parses
    """
    if not text:
        return default

    text = remove_markdown_wrappers(text)
    candidates = [text, fix_json_escapes(text)]
    fragment = extract_largest_balanced_json(text)
    if fragment and fragment != text:
        candidates.extend([fragment, fix_json_escapes(fragment)])

    for candidate in candidates:
        try:
            return json.loads(candidate)
        except json.JSONDecodeError:
            continue
    return default

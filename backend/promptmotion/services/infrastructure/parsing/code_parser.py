"""
Code Parsing Utilities

Extracts fenced code blocks from LLM responses. Handles backtick and tilde
fences, with or without a language tag, and a final fence left open by a
truncated response.
"""

import re
from dataclasses import dataclass
from typing import List, Optional

_FENCE_OPEN = re.compile(r"^(?P<fence>`{3,}|~{3,})[ \t]*(?P<lang>[\w+#.-]*)")


@dataclass(frozen=True)
class CodeBlock:
    """One fenced block. `closed` is False when the response ended inside it."""
    language: str
    body: str
    closed: bool = True


def _is_closing_fence(stripped: str, fence: str) -> bool:
    return stripped.startswith(fence) and not stripped.strip(fence[0])


def extract_fenced_blocks(text: str) -> List[CodeBlock]:
    """Extract every fenced block in order of appearance.

    Args:
        text: Markdown-ish text, e.g. a raw model response

    Returns:
        List of CodeBlock; empty when the text has no fences
    """
    blocks: List[CodeBlock] = []
    current: Optional[List[str]] = None
    fence = ""
    language = ""

    for line in text.splitlines():
        stripped = line.strip()
        if current is None:
            match = _FENCE_OPEN.match(stripped)
            if match:
                fence = match.group("fence")
                language = match.group("lang").lower()
                current = []
            continue
        if _is_closing_fence(stripped, fence):
            blocks.append(CodeBlock(language=language, body="\n".join(current)))
            current = None
            continue
        current.append(line)

    if current is not None:
        blocks.append(CodeBlock(language=language, body="\n".join(current), closed=False))
    return blocks


def remove_markdown_wrappers(text: str) -> str:
    """Remove a fence wrapping the whole text, if any."""
    text = text.strip()
    if not _FENCE_OPEN.match(text):
        return text
    lines = text.split("\n")
    lines.pop(0)
    if lines and _FENCE_OPEN.match(lines[-1].strip()):
        lines.pop()
    return "\n".join(lines).strip()

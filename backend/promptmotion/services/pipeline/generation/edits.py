"""
Edit Reconciler

Applies the structured edits of a follow-up response to the current source.
A search text must identify exactly one span; anything else is reported as
EditInapplicable and handed to the correction loop, never guessed.
"""

from dataclasses import dataclass
from typing import List, Sequence, Tuple

from promptmotion.core import EditInapplicable, get_logger
from promptmotion.models import EditOperation, FullReplaceEdit, SearchReplaceEdit

logger = get_logger(__name__, component="edit_reconciler")


@dataclass(frozen=True)
class _Match:
    start: int
    end: int
    replacement: str


def find_all(haystack: str, needle: str) -> List[int]:
    """Start offsets of every occurrence, overlapping ones included."""
    positions: List[int] = []
    start = haystack.find(needle)
    while start != -1:
        positions.append(start)
        start = haystack.find(needle, start + 1)
    return positions


_INLINE_WHITESPACE = " \t"


def _boundary_whitespace(text: str) -> Tuple[str, str]:
    core = text.strip()
    if not core:
        return text, ""
    lead = text[: len(text) - len(text.lstrip())]
    trail = text[len(text.rstrip()):]
    return lead, trail


def _expand_over_whitespace(source: str, start: int, end: int, lead: str, trail: str) -> Tuple[int, int]:
    """
    Grow [start, end) over the source whitespace the search text's boundary
    whitespace stood for: spaces and tabs, plus one line break when the
    search text had one on that side.
    """
    if lead:
        while start > 0 and source[start - 1] in _INLINE_WHITESPACE:
            start -= 1
        if "\n" in lead and start > 0 and source[start - 1] == "\n":
            start -= 1
    if trail:
        while end < len(source) and source[end] in _INLINE_WHITESPACE:
            end += 1
        if "\n" in trail and end < len(source) and source[end] == "\n":
            end += 1
    return start, end


def _locate(source: str, edit: SearchReplaceEdit, index: int) -> _Match:
    """Find the unique span for `edit.search`, exact first then whitespace-tolerant."""
    search = edit.search
    exact = find_all(source, search)
    if len(exact) == 1:
        return _Match(exact[0], exact[0] + len(search), edit.replace)
    if len(exact) > 1:
        raise EditInapplicable(
            index,
            f"search text matches {len(exact)} locations; it must match exactly one",
            edit,
        )

    core = search.strip()
    if core and core != search:
        relaxed = find_all(source, core)
        if len(relaxed) == 1:
            lead, trail = _boundary_whitespace(search)
            core_start, core_end = relaxed[0], relaxed[0] + len(core)
            start, end = _expand_over_whitespace(source, core_start, core_end, lead, trail)
            replacement = edit.replace
            # No whitespace to absorb on a side: the replacement's own padding there goes too.
            if lead and start == core_start:
                replacement = replacement.lstrip()
            if trail and end == core_end:
                replacement = replacement.rstrip()
            return _Match(start, end, replacement)
        if len(relaxed) > 1:
            raise EditInapplicable(
                index,
                f"search text matches {len(relaxed)} locations after trimming whitespace; "
                "it must match exactly one",
                edit,
            )

    raise EditInapplicable(index, "search text not found in current source", edit)


def apply_edits(current_source: str, operations: Sequence[EditOperation]) -> str:
    """
    Apply edit operations in order, each against the result of the previous.

    Args:
        current_source: Source the edits were generated against
        operations: Search/replace operations, or a single full replace

    Returns:
        The updated source

    Raises:
        EditInapplicable: no/multiple matches, empty search text, overlapping
            edits, or a full replace mixed with other operations
    """
    if not operations:
        raise EditInapplicable(0, "the response contained no edit operations")

    for index, operation in enumerate(operations):
        if isinstance(operation, FullReplaceEdit) and len(operations) > 1:
            raise EditInapplicable(index, "a full replacement must be the only operation", operation)

    if isinstance(operations[0], FullReplaceEdit):
        logger.debug("Applying full replacement", extra={"new_length": len(operations[0].source)})
        return operations[0].source

    source = current_source
    # Spans of text inserted by earlier operations, in current-source offsets.
    inserted: List[Tuple[int, int]] = []

    for index, operation in enumerate(operations):
        if not operation.search:
            raise EditInapplicable(index, "search text is empty", operation)

        match = _locate(source, operation, index)
        for start, end in inserted:
            # A deletion leaves an empty region; a match spanning it still overlaps.
            if start == end:
                overlaps = match.start < start < match.end
            else:
                overlaps = match.start < end and match.end > start
            if overlaps:
                raise EditInapplicable(
                    index,
                    "search text overlaps text inserted by an earlier edit in the same response",
                    operation,
                )

        delta = len(match.replacement) - (match.end - match.start)
        source = source[: match.start] + match.replacement + source[match.end:]
        inserted = [
            (start + delta, end + delta) if start >= match.end else (start, end)
            for start, end in inserted
        ]
        inserted.append((match.start, match.start + len(match.replacement)))

    logger.debug(
        f"Applied {len(operations)} edit(s)",
        extra={"edit_count": len(operations), "old_length": len(current_source), "new_length": len(source)},
    )
    return source

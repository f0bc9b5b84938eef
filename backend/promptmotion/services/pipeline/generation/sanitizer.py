"""
Sanitizer

Normalizes raw model output into a component body the compiler accepts:
picks the right fenced block (or drops leading prose), trims a truncated
tail, and strips import statements since the capability scope supplies
every binding.
"""

import ast
import re
from typing import List, Optional

import libcst as cst
import libcst.matchers as m

from promptmotion.core import NoComponentFound, get_logger
from promptmotion.services.infrastructure.parsing import extract_fenced_blocks

from .compiler.transpiler import component_names

logger = get_logger(__name__, component="sanitizer")

_COMPONENT_DEF = re.compile(r"^def\s+[A-Z][A-Za-z0-9]*\s*\(", re.MULTILINE)

# First line that looks like Python rather than prose.
_CODE_START = re.compile(
    r"^(?:def\s|async\s+def\s|class\s|import\s|from\s+\S+\s+import\s|@|#|"
    r"[A-Za-z_]\w*\s*(?::[^=\n]+)?=(?!=))"
)

_IMPORT_LINE = re.compile(r"^\s*(?:import\s|from\s+\S+\s+import\s)")


def _has_component(text: str) -> bool:
    return bool(_COMPONENT_DEF.search(text))


def _try_parse(text: str) -> Optional[ast.Module]:
    try:
        return ast.parse(text)
    except SyntaxError:
        return None


def _select_body(raw: str) -> str:
    blocks = [b for b in extract_fenced_blocks(raw) if _has_component(b.body)]
    if blocks:
        return blocks[-1].body
    lines = raw.splitlines()
    for index, line in enumerate(lines):
        if _CODE_START.match(line):
            return "\n".join(lines[index:])
    return raw


def _trim_truncated_tail(body: str) -> str:
    """Drop trailing lines until the body parses with a component intact."""
    if _try_parse(body) is not None:
        return body
    lines = body.splitlines()
    for end in range(len(lines) - 1, 0, -1):
        tree = _try_parse("\n".join(lines[:end]))
        if tree is not None and component_names(tree):
            logger.info(
                "Trimmed truncated output",
                extra={"dropped_lines": len(lines) - end, "kept_lines": end},
            )
            return "\n".join(lines[:end])
    return body


class _ImportStripper(cst.CSTTransformer):
    """Removes import statements anywhere in the module."""

    def __init__(self) -> None:
        self.removed = 0

    def leave_SimpleStatementLine(
        self, original_node: cst.SimpleStatementLine, updated_node: cst.SimpleStatementLine
    ):
        kept = [s for s in updated_node.body if not m.matches(s, m.Import() | m.ImportFrom())]
        if len(kept) == len(updated_node.body):
            return updated_node
        self.removed += len(updated_node.body) - len(kept)
        if not kept:
            return cst.RemoveFromParent()
        kept[-1] = kept[-1].with_changes(semicolon=cst.MaybeSentinel.DEFAULT)
        return updated_node.with_changes(body=kept)

    def leave_IndentedBlock(self, original_node: cst.IndentedBlock, updated_node: cst.IndentedBlock):
        if updated_node.body:
            return updated_node
        return updated_node.with_changes(body=[cst.SimpleStatementLine(body=[cst.Pass()])])


def _strip_import_lines(body: str) -> str:
    """Line-based fallback for bodies that do not parse."""
    kept: List[str] = []
    in_parenthesized_import = False
    for line in body.splitlines():
        if in_parenthesized_import:
            in_parenthesized_import = ")" not in line
            continue
        if _IMPORT_LINE.match(line):
            in_parenthesized_import = "(" in line and ")" not in line
            continue
        kept.append(line)
    return "\n".join(kept)


def strip_imports(body: str) -> str:
    try:
        module = cst.parse_module(body)
    except cst.ParserSyntaxError:
        return _strip_import_lines(body)
    stripper = _ImportStripper()
    stripped = module.visit(stripper)
    if stripper.removed:
        logger.debug(f"Stripped {stripper.removed} import(s)")
    return stripped.code


def sanitize(raw_source: str) -> str:
    """
    Extract the component body from raw generator output.

    Raises:
        NoComponentFound: no top-level CapWords function in the output
    """
    body = _select_body(raw_source or "")
    body = _trim_truncated_tail(body)
    body = strip_imports(body).strip("\n")

    if not _has_component(body):
        raise NoComponentFound(
            "No component found in generated output: expected a top-level function "
            "with a CapWords name, e.g. def MyAnimation(ctx):"
        )
    return body + "\n"

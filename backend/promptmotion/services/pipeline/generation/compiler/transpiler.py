"""
Transpile pass for generated component source.

Parses the source, rejects constructs that could escape the capability
scope, checks that every free name is a declared capability or safe builtin,
and rewrites capability references into explicit lookups on the scope
mapping handed to the compiler. The result is a code object.
"""

import ast
import re
from dataclasses import dataclass
from typing import FrozenSet, Iterable, List, Optional, Set, Tuple

from promptmotion.core import CompileError, ComponentRuntimeError, NoComponentFound

from .scope import SAFE_BUILTIN_NAMES

GENERATED_FILENAME = "<generated>"

# Global name the rewritten code reads capabilities from. Generated code
# cannot spell it: names starting with "__" are rejected.
SCOPE_NAME = "__capabilities__"

FORBIDDEN_NAMES: FrozenSet[str] = frozenset({
    "eval", "exec", "compile", "open", "input", "breakpoint", "help", "exit", "quit",
    "globals", "locals", "vars", "dir", "getattr", "setattr", "delattr", "hasattr",
    "type", "object", "super", "memoryview", "classmethod", "staticmethod", "property",
})

_CAPWORDS = re.compile(r"^[A-Z][A-Za-z0-9]*$")


@dataclass(frozen=True)
class TranspileResult:
    code: object
    component_name: str
    capabilities_used: Tuple[str, ...]


def is_component_name(name: str) -> bool:
    return bool(_CAPWORDS.match(name))


def component_names(tree: ast.Module) -> List[str]:
    """Top-level CapWords function names, in source order."""
    return [
        node.name
        for node in tree.body
        if isinstance(node, ast.FunctionDef) and is_component_name(node.name)
    ]


def _position(node: ast.AST) -> Tuple[Optional[int], Optional[int]]:
    line = getattr(node, "lineno", None)
    col = getattr(node, "col_offset", None)
    return line, (col + 1 if col is not None else None)


class _ForbiddenConstructs(ast.NodeVisitor):
    """Raises CompileError on the first construct outside the dialect."""

    def _reject(self, node: ast.AST, message: str) -> None:
        line, column = _position(node)
        raise CompileError(message, line=line, column=column)

    def visit_Import(self, node: ast.Import) -> None:
        self._reject(node, "Imports are not allowed; capabilities are provided by the runtime")

    def visit_ImportFrom(self, node: ast.ImportFrom) -> None:
        self._reject(node, "Imports are not allowed; capabilities are provided by the runtime")

    def visit_Global(self, node: ast.Global) -> None:
        self._reject(node, "'global' statements are not allowed")

    def visit_Nonlocal(self, node: ast.Nonlocal) -> None:
        self._reject(node, "'nonlocal' statements are not allowed")

    def visit_Attribute(self, node: ast.Attribute) -> None:
        if node.attr.startswith("__"):
            self._reject(node, f"Access to dunder attribute '{node.attr}' is not allowed")
        self.generic_visit(node)

    def visit_Name(self, node: ast.Name) -> None:
        if node.id.startswith("__"):
            self._reject(node, f"Name '{node.id}' is reserved")
        if node.id in FORBIDDEN_NAMES:
            self._reject(node, f"Builtin '{node.id}' is not available to components")


def _write_root(target: ast.AST) -> Optional[ast.Name]:
    """Name at the base of `a.b[c].d`, if any."""
    while isinstance(target, (ast.Attribute, ast.Subscript)):
        target = target.value
    return target if isinstance(target, ast.Name) else None


def _reject_capability_writes(tree: ast.Module, capabilities: FrozenSet[str]) -> None:
    """Capabilities are shared template values; assigning into them is a CompileError."""
    for node in ast.walk(tree):
        if not isinstance(node, (ast.Attribute, ast.Subscript)) or isinstance(node.ctx, ast.Load):
            continue
        root = _write_root(node)
        if root is not None and root.id in capabilities:
            line, column = _position(node)
            raise CompileError(f"Capability '{root.id}' is read-only and cannot be modified", line=line, column=column)


def _bound_names(tree: ast.Module) -> Set[str]:
    """Every name the source binds anywhere (flow-insensitive)."""
    bound: Set[str] = set()
    for node in ast.walk(tree):
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef)):
            bound.add(node.name)
        elif isinstance(node, ast.Name) and isinstance(node.ctx, (ast.Store, ast.Del)):
            bound.add(node.id)
        elif isinstance(node, ast.arg):
            bound.add(node.arg)
        elif isinstance(node, ast.ExceptHandler) and node.name:
            bound.add(node.name)
        elif isinstance(node, (ast.MatchAs, ast.MatchStar)) and node.name:
            bound.add(node.name)
        elif isinstance(node, ast.MatchMapping) and node.rest:
            bound.add(node.rest)
    return bound


class _CapabilityRewriter(ast.NodeTransformer):
    """Turns `Circle(...)` into `__capabilities__["Circle"](...)`."""

    def __init__(self, capabilities: FrozenSet[str]):
        self.capabilities = capabilities
        self.used: List[str] = []

    def visit_Name(self, node: ast.Name) -> ast.AST:
        if not isinstance(node.ctx, ast.Load) or node.id not in self.capabilities:
            return node
        if node.id not in self.used:
            self.used.append(node.id)
        lookup = ast.Subscript(
            value=ast.Name(id=SCOPE_NAME, ctx=ast.Load()),
            slice=ast.Constant(value=node.id),
            ctx=ast.Load(),
        )
        return ast.copy_location(lookup, node)


def parse_source(source: str) -> ast.Module:
    """Parse generated source, converting syntax errors to CompileError."""
    try:
        return ast.parse(source, filename=GENERATED_FILENAME)
    except SyntaxError as e:
        raise CompileError(f"SyntaxError: {e.msg}", line=e.lineno, column=e.offset) from None


def transpile(source: str, capabilities: Iterable[str]) -> TranspileResult:
    """Lower component source into a code object bound to a capability scope.

    Raises:
        CompileError: syntax errors and forbidden constructs
        NoComponentFound: no top-level CapWords function
        ComponentRuntimeError: a free name is neither a capability nor a safe builtin
    """
    tree = parse_source(source)
    _ForbiddenConstructs().visit(tree)

    names = component_names(tree)
    if not names:
        raise NoComponentFound(
            "No component found: define a top-level function with a CapWords name, e.g. def MyAnimation(ctx):",
            stage="compile",
        )

    declared = frozenset(capabilities)
    bound = _bound_names(tree)
    # Locally bound names shadow capabilities of the same name.
    rewritable = declared - bound
    _reject_capability_writes(tree, rewritable)
    allowed = bound | declared | set(SAFE_BUILTIN_NAMES)
    undeclared = [
        node for node in ast.walk(tree)
        if isinstance(node, ast.Name) and isinstance(node.ctx, ast.Load) and node.id not in allowed
    ]
    if undeclared:
        first = min(undeclared, key=lambda n: (n.lineno, n.col_offset))
        line, column = _position(first)
        raise ComponentRuntimeError(f"'{first.id}' is not defined: undeclared capability", line=line, column=column)

    rewriter = _CapabilityRewriter(rewritable)
    tree = ast.fix_missing_locations(rewriter.visit(tree))
    try:
        code = compile(tree, GENERATED_FILENAME, "exec")
    except SyntaxError as e:
        raise CompileError(f"SyntaxError: {e.msg}", line=e.lineno, column=e.offset) from None

    return TranspileResult(code=code, component_name=names[-1], capabilities_used=tuple(rewriter.used))

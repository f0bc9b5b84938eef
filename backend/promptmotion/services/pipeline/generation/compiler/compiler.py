"""
Dynamic Compiler

Turns sanitized component source into a CompiledArtifact: transpile, execute
the module body in a private namespace with restricted builtins, locate the
component, and render frame 0 once to prove it works.
"""

import traceback
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional

from promptmotion.core import ComponentRuntimeError, CorrectableError, get_logger

from .primitives import Node, RenderContext
from .scope import DEFAULT_REGISTRY, SAFE_BUILTINS, CapabilityRegistry
from .transpiler import GENERATED_FILENAME, SCOPE_NAME, transpile

logger = get_logger(__name__, component="dynamic_compiler")


def _generated_line(error: BaseException) -> Optional[int]:
    """Line of the innermost traceback frame that belongs to generated code."""
    line = None
    for frame in traceback.extract_tb(error.__traceback__):
        if frame.filename == GENERATED_FILENAME:
            line = frame.lineno
    return line


def _runtime_error(error: Exception, during: str) -> ComponentRuntimeError:
    message = f"{type(error).__name__}: {error} (while {during})"
    return ComponentRuntimeError(message, line=_generated_line(error))


def _as_scene(result: Any) -> Node:
    if isinstance(result, Node):
        return result
    if isinstance(result, (list, tuple)) and result and all(isinstance(n, Node) for n in result):
        return Node("fragment", {}, tuple(result))
    raise TypeError(f"Component must return scene nodes, got {type(result).__name__}")


@dataclass(frozen=True)
class CompiledArtifact:
    """Executable result of one successful compilation. Never mutated."""
    component: Callable[[RenderContext], Any]
    component_name: str
    source: str
    scope: Mapping[str, Any]
    capability_version: str
    compiled_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def render(
        self,
        frame: int = 0,
        params: Optional[Mapping[str, Any]] = None,
        fps: int = 30,
        duration_in_frames: int = 150,
        width: int = 1920,
        height: int = 1080,
    ) -> Node:
        """Scene tree for one frame. Failures raise ComponentRuntimeError."""
        ctx = RenderContext(
            frame=frame,
            fps=fps,
            duration_in_frames=duration_in_frames,
            width=width,
            height=height,
            params=MappingProxyType(dict(params or {})),
        )
        try:
            return _as_scene(self.component(ctx))
        except CorrectableError:
            raise
        except Exception as e:
            raise _runtime_error(e, f"rendering frame {frame}") from None


class DynamicCompiler:
    """Compiles generated source against a capability registry."""

    def __init__(self, registry: Optional[CapabilityRegistry] = None):
        self.registry = registry or DEFAULT_REGISTRY

    def compile(self, source: str, scope: Optional[Mapping[str, Any]] = None) -> CompiledArtifact:
        """
        Compile component source.

        Args:
            source: Sanitized component body
            scope: Capability scope from `build_scope`; a fresh one is built when omitted

        Raises:
            CompileError, NoComponentFound, ComponentRuntimeError
        """
        if scope is None:
            scope = self.registry.build_scope()

        result = transpile(source, scope.keys())

        namespace = {
            "__builtins__": dict(SAFE_BUILTINS),
            "__name__": "generated",
            SCOPE_NAME: scope,
        }
        try:
            exec(result.code, namespace)
        except Exception as e:
            raise _runtime_error(e, "executing module body") from None

        component = namespace.get(result.component_name)
        if not callable(component):
            raise ComponentRuntimeError(f"Component '{result.component_name}' is not callable")

        artifact = CompiledArtifact(
            component=component,
            component_name=result.component_name,
            source=source,
            scope=scope,
            capability_version=self.registry.version,
        )
        artifact.render(0)

        logger.info(
            f"Compiled component {result.component_name}",
            extra={
                "component_name": result.component_name,
                "capabilities_used": list(result.capabilities_used),
                "source_lines": source.count("\n") + 1,
            },
        )
        return artifact

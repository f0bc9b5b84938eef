"""
Dynamic compiler for generated components.

    registry -> build_scope(assets) -> DynamicCompiler.compile(source, scope) -> CompiledArtifact
"""

from .compiler import CompiledArtifact, DynamicCompiler
from .primitives import Node, RenderContext
from .scope import (
    CAPABILITY_VERSION,
    DEFAULT_REGISTRY,
    Capability,
    CapabilityRegistry,
    build_scope,
)
from .transpiler import (
    GENERATED_FILENAME,
    TranspileResult,
    component_names,
    is_component_name,
    parse_source,
    transpile,
)

__all__ = [
    "CompiledArtifact",
    "DynamicCompiler",
    "Node",
    "RenderContext",
    "CAPABILITY_VERSION",
    "DEFAULT_REGISTRY",
    "Capability",
    "CapabilityRegistry",
    "build_scope",
    "GENERATED_FILENAME",
    "TranspileResult",
    "component_names",
    "is_component_name",
    "parse_source",
    "transpile",
]

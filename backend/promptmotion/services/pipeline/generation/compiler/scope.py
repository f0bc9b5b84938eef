"""
Capability registry and per-compilation scope.

The registry is the only thing generated source may reference. It is fixed
template data; every compilation gets its own read-only snapshot from
`build_scope`, so nothing one component does can leak into another.
"""

import builtins
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Tuple

from . import primitives

CAPABILITY_VERSION = "1.0"

CAPABILITY_GROUPS: Tuple[str, ...] = ("ui", "timing", "scene3d", "media")


@dataclass(frozen=True)
class Capability:
    """A named binding generated code may use."""
    name: str
    group: str
    target: Any
    summary: str = ""


_UI = [
    Capability("Fill", "ui", primitives.Fill, "Fill(*children, background=None) full-frame layer"),
    Capability("Box", "ui", primitives.Box, "Box(*children, x, y, width, height, background, opacity, rotation, scale)"),
    Capability("Text", "ui", primitives.Text, "Text(content, x, y, size=48, color, weight, opacity)"),
    Capability("Circle", "ui", primitives.Circle, "Circle(radius, x, y, fill, stroke, stroke_width, opacity)"),
    Capability("Rect", "ui", primitives.Rect, "Rect(width, height, x, y, fill, corner_radius, stroke, opacity, rotation)"),
    Capability("Img", "ui", primitives.Img, "Img(src, x, y, width, height, opacity); src from asset()"),
    Capability("Video", "ui", primitives.Video, "Video(src, start_from, volume, muted, x, y, width, height)"),
    Capability("Audio", "ui", primitives.Audio, "Audio(src, start_from, volume)"),
    Capability("Sequence", "ui", primitives.Sequence, "Sequence(*children, start, duration) time window; use ctx.shifted(start)"),
]

_TIMING = [
    Capability("interpolate", "timing", primitives.interpolate,
               "interpolate(value, input_range, output_range, easing=None, extrapolate_left/right='extend'|'clamp'|'identity')"),
    Capability("interpolate_colors", "timing", primitives.interpolate_colors,
               "interpolate_colors(value, input_range, ['#rrggbb', ...])"),
    Capability("spring", "timing", primitives.spring,
               "spring(frame, fps=30, stiffness=100, damping=10, mass=1, from_value=0, to_value=1)"),
    Capability("Easing", "timing", primitives.Easing,
               "Easing.linear/quad/cubic/sin/exp/bounce, Easing.bezier(x1, y1, x2, y2), Easing.ease_in/ease_out/ease_in_out(fn)"),
]

_SCENE3D = [
    Capability("Scene3D", "scene3d", primitives.Scene3D, "Scene3D(*children, camera=None, background=None)"),
    Capability("Mesh", "scene3d", primitives.Mesh, "Mesh(geometry, color, position, rotation, scale, opacity, wireframe)"),
    Capability("Sphere", "scene3d", primitives.Sphere, "Sphere(radius=1, segments=32)"),
    Capability("Cube", "scene3d", primitives.Cube, "Cube(size=1)"),
    Capability("Plane", "scene3d", primitives.Plane, "Plane(width=1, height=1)"),
    Capability("PerspectiveCamera", "scene3d", primitives.PerspectiveCamera, "PerspectiveCamera(position, look_at, fov=50)"),
    Capability("AmbientLight", "scene3d", primitives.AmbientLight, "AmbientLight(color, intensity=0.5)"),
    Capability("DirectionalLight", "scene3d", primitives.DirectionalLight, "DirectionalLight(color, intensity=1, position)"),
    Capability("vec3", "scene3d", primitives.vec3, "vec3(x, y, z) numpy vector"),
]

# Media bindings are resolved per compilation from the asset store.
_MEDIA = [
    Capability("asset", "media", None, "asset(filename) -> locator of an uploaded file"),
    Capability("ASSETS", "media", None, "ASSETS read-only mapping filename -> locator"),
]

# Builtins generated code may call. Everything else is absent from its namespace.
SAFE_BUILTIN_NAMES: Tuple[str, ...] = (
    "abs", "all", "any", "bool", "dict", "enumerate", "filter", "float", "int",
    "isinstance", "len", "list", "map", "max", "min", "pow", "range", "reversed",
    "round", "set", "sorted", "str", "sum", "tuple", "zip",
    "ValueError", "TypeError", "KeyError", "IndexError", "ZeroDivisionError", "Exception",
)

SAFE_BUILTINS: Mapping[str, Any] = MappingProxyType({name: getattr(builtins, name) for name in SAFE_BUILTIN_NAMES})


class CapabilityRegistry:
    """Immutable name -> Capability mapping, versioned."""

    def __init__(self, capabilities: Optional[List[Capability]] = None, version: str = CAPABILITY_VERSION):
        entries = capabilities if capabilities is not None else _UI + _TIMING + _SCENE3D + _MEDIA
        self._capabilities: Mapping[str, Capability] = MappingProxyType({c.name: c for c in entries})
        self.version = version

    def __contains__(self, name: object) -> bool:
        return name in self._capabilities

    def __iter__(self) -> Iterator[str]:
        return iter(self._capabilities)

    def __len__(self) -> int:
        return len(self._capabilities)

    def get(self, name: str) -> Optional[Capability]:
        return self._capabilities.get(name)

    def names(self) -> List[str]:
        return list(self._capabilities)

    def by_group(self, group: str) -> List[Capability]:
        return [c for c in self._capabilities.values() if c.group == group]

    def describe(self) -> str:
        """Capability surface as prompt text, grouped."""
        lines = [f"Capability surface v{self.version}:"]
        for group in CAPABILITY_GROUPS:
            entries = self.by_group(group)
            if not entries:
                continue
            lines.append(f"\n[{group}]")
            lines.extend(f"- {c.summary or c.name}" for c in entries)
        return "\n".join(lines)

    def build_scope(self, assets: Optional[Mapping[str, str]] = None) -> Mapping[str, Any]:
        """Fresh read-only scope for one compilation.

        Args:
            assets: filename -> locator map from the media asset store
        """
        locators = MappingProxyType(dict(assets or {}))
        bindings: Dict[str, Any] = {}
        for name, capability in self._capabilities.items():
            if capability.group == "media":
                continue
            # Classes are shared across compilations; bind a fresh read-only view instead.
            if isinstance(capability.target, type):
                bindings[name] = primitives.ReadOnlyNamespace.of(capability.target)
            else:
                bindings[name] = capability.target
        if "asset" in self._capabilities:
            bindings["asset"] = _asset_resolver(locators)
        if "ASSETS" in self._capabilities:
            bindings["ASSETS"] = locators
        return MappingProxyType(bindings)


def _asset_resolver(locators: Mapping[str, str]) -> Callable[[str], str]:
    def asset(name: str) -> str:
        try:
            return locators[name]
        except KeyError:
            available = ", ".join(sorted(locators)) or "none"
            raise KeyError(f"Unknown asset '{name}'. Available: {available}") from None

    return asset


DEFAULT_REGISTRY = CapabilityRegistry()


def build_scope(assets: Optional[Mapping[str, str]] = None) -> Mapping[str, Any]:
    """Scope from the default registry."""
    return DEFAULT_REGISTRY.build_scope(assets)

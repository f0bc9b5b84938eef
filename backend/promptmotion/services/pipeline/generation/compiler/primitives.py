"""
Scene primitives exposed to generated components.

A component is a plain function of a RenderContext that returns a tree of
Node values. Nothing here draws pixels: the rendering host walks the tree.
"""

import math
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence as SequenceT, Tuple, Union

import numpy as np


# =============================================================================
# SCENE TREE
# =============================================================================

@dataclass(frozen=True, eq=False)
class Node:
    """One element of the scene tree."""
    type: str
    props: Dict[str, Any] = field(default_factory=dict)
    children: Tuple["Node", ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "props": {k: _plain(v) for k, v in self.props.items()},
            "children": [child.to_dict() for child in self.children],
        }

    def walk(self) -> Iterable["Node"]:
        yield self
        for child in self.children:
            yield from child.walk()


def _plain(value: Any) -> Any:
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


def _collect_children(children: Iterable[Any]) -> Tuple[Node, ...]:
    """Flatten nested lists/tuples of nodes; None and False are skipped."""
    collected: List[Node] = []
    for child in children:
        if child is None or child is False:
            continue
        if isinstance(child, (list, tuple)):
            collected.extend(_collect_children(child))
        elif isinstance(child, Node):
            collected.append(child)
        elif isinstance(child, (str, int, float)):
            collected.append(Node("text", {"content": str(child)}))
        else:
            raise TypeError(f"Expected a scene node, got {type(child).__name__}")
    return tuple(collected)


def _node(node_type: str, children: Iterable[Any] = (), **props: Any) -> Node:
    return Node(node_type, {k: v for k, v in props.items() if v is not None}, _collect_children(children))


@dataclass(frozen=True)
class RenderContext:
    """What a component sees on each render."""
    frame: int = 0
    fps: int = 30
    duration_in_frames: int = 150
    width: int = 1920
    height: int = 1080
    params: Mapping[str, Any] = field(default_factory=dict)

    @property
    def time(self) -> float:
        """Seconds since the start of the composition."""
        return self.frame / self.fps

    @property
    def progress(self) -> float:
        """0.0 at the first frame, 1.0 at the last."""
        if self.duration_in_frames <= 1:
            return 1.0
        return min(max(self.frame / (self.duration_in_frames - 1), 0.0), 1.0)

    def param(self, name: str, default: Any = None) -> Any:
        return self.params.get(name, default)

    def shifted(self, start: int) -> "RenderContext":
        """Context local to a sequence starting at `start`."""
        return replace(self, frame=self.frame - start)


# =============================================================================
# UI
# =============================================================================

def Fill(*children: Any, background: Optional[str] = None, **style: Any) -> Node:
    """Full-frame container; children are layered in order."""
    return _node("fill", children, background=background, **style)


def Box(
    *children: Any,
    x: float = 0,
    y: float = 0,
    width: Optional[float] = None,
    height: Optional[float] = None,
    background: Optional[str] = None,
    opacity: float = 1.0,
    rotation: float = 0,
    scale: float = 1.0,
    **style: Any,
) -> Node:
    """Positioned container."""
    return _node(
        "box", children, x=x, y=y, width=width, height=height, background=background,
        opacity=opacity, rotation=rotation, scale=scale, **style,
    )


def Text(
    content: Any,
    x: float = 0,
    y: float = 0,
    size: float = 48,
    color: str = "#ffffff",
    weight: str = "normal",
    opacity: float = 1.0,
    **style: Any,
) -> Node:
    return _node(
        "text", (), content=str(content), x=x, y=y, size=size, color=color,
        weight=weight, opacity=opacity, **style,
    )


def Circle(
    radius: float = 50,
    x: float = 0,
    y: float = 0,
    fill: Optional[str] = "#ffffff",
    stroke: Optional[str] = None,
    stroke_width: float = 0,
    opacity: float = 1.0,
    **style: Any,
) -> Node:
    if radius < 0:
        raise ValueError("Circle radius must be non-negative")
    return _node(
        "circle", (), radius=radius, x=x, y=y, fill=fill, stroke=stroke,
        stroke_width=stroke_width, opacity=opacity, **style,
    )


def Rect(
    width: float = 100,
    height: float = 100,
    x: float = 0,
    y: float = 0,
    fill: Optional[str] = "#ffffff",
    corner_radius: float = 0,
    stroke: Optional[str] = None,
    stroke_width: float = 0,
    opacity: float = 1.0,
    rotation: float = 0,
    **style: Any,
) -> Node:
    return _node(
        "rect", (), width=width, height=height, x=x, y=y, fill=fill,
        corner_radius=corner_radius, stroke=stroke, stroke_width=stroke_width,
        opacity=opacity, rotation=rotation, **style,
    )


def Img(src: str, x: float = 0, y: float = 0, width: Optional[float] = None,
        height: Optional[float] = None, opacity: float = 1.0, **style: Any) -> Node:
    return _node("img", (), src=src, x=x, y=y, width=width, height=height, opacity=opacity, **style)


def Video(src: str, start_from: int = 0, volume: float = 1.0, muted: bool = False,
          x: float = 0, y: float = 0, width: Optional[float] = None,
          height: Optional[float] = None, **style: Any) -> Node:
    return _node(
        "video", (), src=src, start_from=start_from, volume=volume, muted=muted,
        x=x, y=y, width=width, height=height, **style,
    )


def Audio(src: str, start_from: int = 0, volume: float = 1.0) -> Node:
    return _node("audio", (), src=src, start_from=start_from, volume=volume)


def Sequence(*children: Any, start: int = 0, duration: Optional[int] = None, name: Optional[str] = None) -> Node:
    """Show children only from frame `start` for `duration` frames.

    Use `ctx.shifted(start)` to compute timing local to the sequence.
    """
    if duration is not None and duration <= 0:
        raise ValueError("Sequence duration must be positive")
    return _node("sequence", children, start=start, duration=duration, name=name)


# =============================================================================
# TIMING
# =============================================================================

def _extrapolate(value: float, edge_out: float, mode: str) -> Optional[float]:
    if mode == "clamp":
        return edge_out
    if mode == "identity":
        return value
    if mode == "extend":
        return None
    raise ValueError(f"Unknown extrapolation mode: {mode!r}")


def interpolate(
    value: float,
    input_range: SequenceT[float],
    output_range: SequenceT[float],
    easing: Optional[Callable[[float], float]] = None,
    extrapolate_left: str = "extend",
    extrapolate_right: str = "extend",
) -> float:
    """Map `value` through a piecewise-linear function of the two ranges.

    `input_range` must be strictly increasing and the same length as
    `output_range` (at least 2). Outside the range the result is extended
    linearly ("extend"), held at the edge ("clamp") or passed through
    ("identity").
    """
    xs = np.asarray(input_range, dtype=float)
    ys = np.asarray(output_range, dtype=float)
    if xs.ndim != 1 or len(xs) < 2:
        raise ValueError("input_range must have at least 2 values")
    if len(xs) != len(ys):
        raise ValueError("input_range and output_range must have the same length")
    if np.any(np.diff(xs) <= 0):
        raise ValueError("input_range must be strictly increasing")

    value = float(value)
    if value < xs[0]:
        edge = _extrapolate(value, ys[0], extrapolate_left)
        if edge is not None:
            return float(edge)
        segment = 0
    elif value > xs[-1]:
        edge = _extrapolate(value, ys[-1], extrapolate_right)
        if edge is not None:
            return float(edge)
        segment = len(xs) - 2
    else:
        segment = int(min(np.searchsorted(xs, value, side="right") - 1, len(xs) - 2))

    x0, x1 = xs[segment], xs[segment + 1]
    y0, y1 = ys[segment], ys[segment + 1]
    t = (value - x0) / (x1 - x0)
    if easing is not None:
        t = easing(t)
    return float(y0 + (y1 - y0) * t)


def _parse_color(color: str) -> np.ndarray:
    text = color.strip().lstrip("#")
    if len(text) == 3:
        text = "".join(ch * 2 for ch in text)
    if len(text) not in (6, 8):
        raise ValueError(f"Unsupported color: {color!r}")
    channels = [int(text[i:i + 2], 16) for i in range(0, len(text), 2)]
    if len(channels) == 3:
        channels.append(255)
    return np.asarray(channels, dtype=float)


def interpolate_colors(value: float, input_range: SequenceT[float], colors: SequenceT[str]) -> str:
    """Blend hex colors along `input_range` (clamped at both ends)."""
    if len(input_range) != len(colors):
        raise ValueError("input_range and colors must have the same length")
    rgba = np.stack([_parse_color(c) for c in colors])
    channels = [
        interpolate(value, input_range, rgba[:, i], extrapolate_left="clamp", extrapolate_right="clamp")
        for i in range(4)
    ]
    r, g, b, a = (int(round(c)) for c in channels)
    if a == 255:
        return f"#{r:02x}{g:02x}{b:02x}"
    return f"#{r:02x}{g:02x}{b:02x}{a:02x}"


def spring(
    frame: float,
    fps: int = 30,
    stiffness: float = 100.0,
    damping: float = 10.0,
    mass: float = 1.0,
    from_value: float = 0.0,
    to_value: float = 1.0,
) -> float:
    """Damped harmonic motion from `from_value` toward `to_value`.

    Closed-form solution of m*x'' + c*x' + k*x = 0 starting at rest.
    """
    if frame <= 0:
        return float(from_value)
    if mass <= 0 or stiffness <= 0:
        raise ValueError("spring mass and stiffness must be positive")

    t = frame / fps
    omega = math.sqrt(stiffness / mass)
    zeta = damping / (2 * math.sqrt(stiffness * mass))

    if zeta < 1:
        omega_d = omega * math.sqrt(1 - zeta ** 2)
        envelope = math.exp(-zeta * omega * t)
        remaining = envelope * (math.cos(omega_d * t) + (zeta * omega / omega_d) * math.sin(omega_d * t))
    elif zeta == 1:
        remaining = math.exp(-omega * t) * (1 + omega * t)
    else:
        root = math.sqrt(zeta ** 2 - 1)
        r1 = -omega * (zeta - root)
        r2 = -omega * (zeta + root)
        remaining = (r2 * math.exp(r1 * t) - r1 * math.exp(r2 * t)) / (r2 - r1)

    progress = 1 - remaining
    return float(from_value + (to_value - from_value) * progress)


def _bezier(x1: float, y1: float, x2: float, y2: float) -> Callable[[float], float]:
    def component(t: float, p1: float, p2: float) -> float:
        return 3 * (1 - t) ** 2 * t * p1 + 3 * (1 - t) * t ** 2 * p2 + t ** 3

    def curve(x: float) -> float:
        if x <= 0:
            return 0.0
        if x >= 1:
            return 1.0
        lo, hi = 0.0, 1.0
        for _ in range(40):
            mid = (lo + hi) / 2
            if component(mid, x1, x2) < x:
                lo = mid
            else:
                hi = mid
        return component((lo + hi) / 2, y1, y2)

    return curve


class Easing:
    """Easing curves for `interpolate(..., easing=...)`."""

    @staticmethod
    def linear(t: float) -> float:
        return t

    @staticmethod
    def quad(t: float) -> float:
        return t * t

    @staticmethod
    def cubic(t: float) -> float:
        return t * t * t

    @staticmethod
    def sin(t: float) -> float:
        return 1 - math.cos(t * math.pi / 2)

    @staticmethod
    def exp(t: float) -> float:
        return 0.0 if t == 0 else 2 ** (10 * (t - 1))

    @staticmethod
    def bounce(t: float) -> float:
        if t < 1 / 2.75:
            return 7.5625 * t * t
        if t < 2 / 2.75:
            t -= 1.5 / 2.75
            return 7.5625 * t * t + 0.75
        if t < 2.5 / 2.75:
            t -= 2.25 / 2.75
            return 7.5625 * t * t + 0.9375
        t -= 2.625 / 2.75
        return 7.5625 * t * t + 0.984375

    @staticmethod
    def bezier(x1: float, y1: float, x2: float, y2: float) -> Callable[[float], float]:
        return _bezier(x1, y1, x2, y2)

    @staticmethod
    def ease_in(fn: Callable[[float], float]) -> Callable[[float], float]:
        return fn

    @staticmethod
    def ease_out(fn: Callable[[float], float]) -> Callable[[float], float]:
        return lambda t: 1 - fn(1 - t)

    @staticmethod
    def ease_in_out(fn: Callable[[float], float]) -> Callable[[float], float]:
        return lambda t: fn(2 * t) / 2 if t < 0.5 else 1 - fn(2 * (1 - t)) / 2


class ReadOnlyNamespace:
    """Attribute view over a fixed set of members. Assignment raises AttributeError."""

    __slots__ = ("_members",)

    def __init__(self, members: Mapping[str, Any]):
        object.__setattr__(self, "_members", MappingProxyType(dict(members)))

    @classmethod
    def of(cls, source: type) -> "ReadOnlyNamespace":
        """Public attributes of `source`, e.g. the Easing curves."""
        return cls({name: getattr(source, name) for name in vars(source) if not name.startswith("_")})

    def __getattr__(self, name: str) -> Any:
        try:
            return self._members[name]
        except KeyError:
            raise AttributeError(name) from None

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"'{name}' is read-only")

    def __delattr__(self, name: str) -> None:
        raise AttributeError(f"'{name}' is read-only")

    def __dir__(self) -> List[str]:
        return list(self._members)


# =============================================================================
# 3D
# =============================================================================

Vec3Like = Union[SequenceT[float], np.ndarray]


def vec3(x: float = 0.0, y: float = 0.0, z: float = 0.0) -> np.ndarray:
    return np.array([x, y, z], dtype=float)


def _as_vec3(value: Optional[Vec3Like], default: Tuple[float, float, float]) -> Tuple[float, float, float]:
    array = np.asarray(default if value is None else value, dtype=float)
    if array.shape != (3,):
        raise ValueError(f"Expected a 3-component vector, got shape {array.shape}")
    return tuple(float(v) for v in array)


def Scene3D(*children: Any, camera: Optional[Node] = None, background: Optional[str] = None) -> Node:
    """3D viewport. Holds meshes, lights and at most one camera."""
    nodes = _collect_children(children)
    cameras = [n for n in nodes if n.type == "perspective_camera"]
    if camera is not None:
        cameras.append(camera)
    if len(cameras) > 1:
        raise ValueError("Scene3D accepts a single camera")
    others = tuple(n for n in nodes if n.type != "perspective_camera")
    return Node("scene3d", {"background": background} if background else {}, tuple(cameras) + others)


def Mesh(geometry: Node, color: str = "#ffffff", position: Optional[Vec3Like] = None,
         rotation: Optional[Vec3Like] = None, scale: Optional[Vec3Like] = None,
         opacity: float = 1.0, wireframe: bool = False) -> Node:
    if not isinstance(geometry, Node) or geometry.type not in ("sphere", "cube", "plane"):
        raise TypeError("Mesh geometry must be Sphere(), Cube() or Plane()")
    return Node("mesh", {
        "color": color,
        "position": _as_vec3(position, (0, 0, 0)),
        "rotation": _as_vec3(rotation, (0, 0, 0)),
        "scale": _as_vec3(scale, (1, 1, 1)),
        "opacity": opacity,
        "wireframe": wireframe,
    }, (geometry,))


def Sphere(radius: float = 1.0, segments: int = 32) -> Node:
    return Node("sphere", {"radius": radius, "segments": segments})


def Cube(size: float = 1.0) -> Node:
    return Node("cube", {"size": size})


def Plane(width: float = 1.0, height: float = 1.0) -> Node:
    return Node("plane", {"width": width, "height": height})


def PerspectiveCamera(position: Optional[Vec3Like] = None, look_at: Optional[Vec3Like] = None,
                      fov: float = 50.0) -> Node:
    return Node("perspective_camera", {
        "position": _as_vec3(position, (0, 0, 5)),
        "look_at": _as_vec3(look_at, (0, 0, 0)),
        "fov": fov,
    })


def AmbientLight(color: str = "#ffffff", intensity: float = 0.5) -> Node:
    return Node("ambient_light", {"color": color, "intensity": intensity})


def DirectionalLight(color: str = "#ffffff", intensity: float = 1.0,
                     position: Optional[Vec3Like] = None) -> Node:
    return Node("directional_light", {
        "color": color,
        "intensity": intensity,
        "position": _as_vec3(position, (5, 5, 5)),
    })

"""
Tests for promptmotion.services.pipeline.generation.compiler.primitives
"""

import numpy as np
import pytest

from promptmotion.services.pipeline.generation.compiler.primitives import (
    Box,
    Circle,
    Easing,
    Fill,
    Mesh,
    PerspectiveCamera,
    RenderContext,
    Scene3D,
    Sequence,
    Sphere,
    Text,
    interpolate,
    interpolate_colors,
    spring,
    vec3,
)


class TestInterpolate:

    def test_linear_mapping(self):
        assert interpolate(15, [0, 30], [0, 1]) == pytest.approx(0.5)

    def test_multi_segment(self):
        assert interpolate(15, [0, 10, 20], [0, 100, 0]) == pytest.approx(50.0)

    def test_extends_by_default(self):
        assert interpolate(40, [0, 20], [0, 1]) == pytest.approx(2.0)
        assert interpolate(-20, [0, 20], [0, 1]) == pytest.approx(-1.0)

    def test_clamp(self):
        assert interpolate(40, [0, 20], [0, 1], extrapolate_right="clamp") == 1.0
        assert interpolate(-5, [0, 20], [0, 1], extrapolate_left="clamp") == 0.0

    def test_identity(self):
        assert interpolate(40, [0, 20], [0, 1], extrapolate_right="identity") == 40.0

    def test_easing_applied_within_segment(self):
        assert interpolate(5, [0, 10], [0, 100], easing=Easing.quad) == pytest.approx(25.0)

    @pytest.mark.parametrize("input_range, output_range", [
        ([0], [0]),
        ([0, 1], [0, 1, 2]),
        ([0, 0], [0, 1]),
        ([10, 0], [0, 1]),
    ])
    def test_invalid_ranges(self, input_range, output_range):
        with pytest.raises(ValueError):
            interpolate(0, input_range, output_range)

    def test_unknown_extrapolation(self):
        with pytest.raises(ValueError):
            interpolate(5, [0, 1], [0, 1], extrapolate_right="wrap")


class TestColorsAndSpring:

    def test_interpolate_colors_midpoint(self):
        assert interpolate_colors(5, [0, 10], ["#000000", "#ffffff"]) == "#808080"

    def test_interpolate_colors_clamps(self):
        assert interpolate_colors(50, [0, 10], ["#ff0000", "#0000ff"]) == "#0000ff"

    def test_interpolate_colors_alpha(self):
        assert interpolate_colors(0, [0, 1], ["#ff000080", "#ff0000ff"]) == "#ff000080"

    def test_spring_starts_at_rest_and_settles(self):
        assert spring(0) == 0.0
        assert spring(300, fps=30) == pytest.approx(1.0, abs=1e-3)

    def test_spring_custom_range(self):
        assert spring(0, from_value=10, to_value=20) == 10.0
        assert spring(600, from_value=10, to_value=20, damping=30) == pytest.approx(20.0, abs=1e-3)

    def test_spring_overshoots_when_underdamped(self):
        values = [spring(f, damping=5) for f in range(0, 60)]
        assert max(values) > 1.0

    def test_easing_endpoints(self):
        for fn in (Easing.linear, Easing.quad, Easing.cubic, Easing.sin, Easing.bounce, Easing.bezier(0.25, 0.1, 0.25, 1)):
            assert fn(0) == pytest.approx(0.0, abs=1e-6)
            assert fn(1) == pytest.approx(1.0, abs=1e-6)


class TestNodes:

    def test_children_are_flattened_and_falsy_skipped(self):
        node = Fill([Circle(), None, [Box(), False]], "label")
        assert [c.type for c in node.children] == ["circle", "box", "text"]

    def test_unset_props_are_dropped(self):
        node = Box(x=10)
        assert "width" not in node.props
        assert node.props["x"] == 10

    def test_invalid_child(self):
        with pytest.raises(TypeError):
            Fill(object())

    def test_negative_circle_radius(self):
        with pytest.raises(ValueError):
            Circle(radius=-1)

    def test_sequence_duration_must_be_positive(self):
        with pytest.raises(ValueError):
            Sequence(Text("x"), duration=0)

    def test_to_dict_is_json_friendly(self):
        mesh = Mesh(Sphere(), position=vec3(1, 2, 3))
        data = Scene3D(mesh).to_dict()
        assert data["children"][0]["props"]["position"] == [1.0, 2.0, 3.0]

    def test_walk_visits_every_node(self):
        tree = Fill(Box(Text("a"), Text("b")), Circle())
        assert [n.type for n in tree.walk()] == ["fill", "box", "text", "text", "circle"]


class TestScene3D:

    def test_camera_goes_first(self):
        scene = Scene3D(Mesh(Sphere()), camera=PerspectiveCamera())
        assert scene.children[0].type == "perspective_camera"

    def test_single_camera(self):
        with pytest.raises(ValueError):
            Scene3D(PerspectiveCamera(), camera=PerspectiveCamera())

    def test_mesh_geometry_checked(self):
        with pytest.raises(TypeError):
            Mesh(Text("no"))

    def test_vec3_is_numpy(self):
        v = vec3(1, 2, 3)
        assert isinstance(v, np.ndarray)
        assert v.tolist() == [1.0, 2.0, 3.0]


class TestRenderContext:

    def test_time_and_progress(self):
        ctx = RenderContext(frame=15, fps=30, duration_in_frames=31)
        assert ctx.time == pytest.approx(0.5)
        assert ctx.progress == pytest.approx(0.5)

    def test_shifted(self):
        ctx = RenderContext(frame=40)
        assert ctx.shifted(30).frame == 10
        assert ctx.frame == 40

    def test_param_default(self):
        ctx = RenderContext(params={"color": "red"})
        assert ctx.param("color") == "red"
        assert ctx.param("size", 3) == 3

"""
Tests for promptmotion.services.pipeline.generation.compiler
"""

import dataclasses

import pytest

from promptmotion.core import CompileError, ComponentRuntimeError, NoComponentFound
from promptmotion.services.pipeline.generation.compiler import (
    CAPABILITY_VERSION,
    DynamicCompiler,
    Node,
    build_scope,
)


BALL = '''def Ball(ctx):
    x = interpolate(ctx.frame, [0, 60], [0, 800], extrapolate_right="clamp")
    return Fill(Circle(radius=40, x=x, fill="red"), background="white")
'''


@pytest.fixture
def compiler():
    return DynamicCompiler()


class TestCompile:

    def test_compiles_and_renders(self, compiler):
        artifact = compiler.compile(BALL, build_scope())
        assert artifact.component_name == "Ball"
        assert artifact.capability_version == CAPABILITY_VERSION
        assert artifact.source == BALL

        scene = artifact.render(30)
        assert isinstance(scene, Node)
        circle = scene.children[0]
        assert circle.type == "circle"
        assert circle.props["x"] == pytest.approx(400.0)
        assert artifact.render(200).children[0].props["x"] == pytest.approx(800.0)

    def test_render_is_pure(self, compiler):
        artifact = compiler.compile(BALL)
        assert artifact.render(12).to_dict() == artifact.render(12).to_dict()

    def test_artifact_is_frozen(self, compiler):
        artifact = compiler.compile(BALL)
        with pytest.raises(dataclasses.FrozenInstanceError):
            artifact.source = "x"

    def test_scope_is_read_only(self, compiler):
        artifact = compiler.compile(BALL)
        with pytest.raises(TypeError):
            artifact.scope["Circle"] = None

    def test_helper_functions_and_params(self, compiler):
        source = '''def offset(ctx):
    return ctx.param("offset", 10)

def Shifted(ctx):
    return Fill(Rect(x=offset(ctx)))
'''
        artifact = compiler.compile(source)
        assert artifact.component_name == "Shifted"
        assert artifact.render(0).children[0].props["x"] == 10
        assert artifact.render(0, params={"offset": 25}).children[0].props["x"] == 25

    def test_local_binding_shadows_capability(self, compiler):
        source = '''def Shadow(ctx):
    Text = "hello"
    return Fill(Box(Text))
'''
        scene = compiler.compile(source).render(0)
        assert scene.children[0].children[0].props["content"] == "hello"

    def test_list_of_nodes_is_a_fragment(self, compiler):
        source = "def Many(ctx):\n    return [Circle(), Rect()]\n"
        scene = compiler.compile(source).render(0)
        assert scene.type == "fragment"
        assert [c.type for c in scene.children] == ["circle", "rect"]

    def test_sequence_with_shifted_context(self, compiler):
        source = '''def Intro(ctx):
    local = ctx.shifted(30)
    opacity = interpolate(local.frame, [0, 10], [0, 1], extrapolate_left="clamp", extrapolate_right="clamp")
    return Fill(Sequence(Text("Hi", opacity=opacity), start=30, duration=60))
'''
        artifact = compiler.compile(source)
        text = artifact.render(35).children[0].children[0]
        assert text.props["opacity"] == pytest.approx(0.5)

    def test_3d_scene(self, compiler):
        source = '''def Orbit(ctx):
    camera = PerspectiveCamera(position=vec3(0, 0, 5))
    return Scene3D(
        AmbientLight(),
        Mesh(Sphere(radius=1), color="#ff0000", position=vec3(ctx.progress, 0, 0)),
        camera=camera,
    )
'''
        scene = compiler.compile(source).render(0)
        assert scene.type == "scene3d"
        assert scene.children[0].type == "perspective_camera"


class TestCompileErrors:

    def test_syntax_error_has_position(self, compiler):
        with pytest.raises(CompileError) as exc_info:
            compiler.compile("def Ball(ctx)\n    return Fill()\n")
        assert exc_info.value.stage == "compile"
        assert exc_info.value.line == 1
        assert "SyntaxError" in str(exc_info.value)

    def test_import_is_rejected(self, compiler):
        with pytest.raises(CompileError) as exc_info:
            compiler.compile("import os\n\ndef Ball(ctx):\n    return Fill()\n")
        assert exc_info.value.line == 1

    @pytest.mark.parametrize("body", [
        "return Fill().__class__",
        "return open('x')",
        "return eval('1')",
        "return getattr(ctx, 'frame')",
        "return __capabilities__",
    ])
    def test_escape_hatches_are_rejected(self, compiler, body):
        with pytest.raises(CompileError):
            compiler.compile(f"def Ball(ctx):\n    {body}\n")

    def test_no_component(self, compiler):
        with pytest.raises(NoComponentFound) as exc_info:
            compiler.compile("def helper(ctx):\n    return Fill()\n")
        assert exc_info.value.stage == "compile"

    @pytest.mark.parametrize("statement, line", [
        ("Easing.linear = lambda t: 0.5", 1),
        ("Circle.radius = 10", 1),
        ("del Easing.quad", 1),
        ("ASSETS['logo.png'] = 'x'", 1),
    ])
    def test_writes_into_capabilities_are_rejected(self, compiler, statement, line):
        with pytest.raises(CompileError) as exc_info:
            compiler.compile(f"{statement}\n\ndef Ball(ctx):\n    return Fill()\n")
        assert "read-only" in str(exc_info.value)
        assert exc_info.value.line == line

    def test_undeclared_capability(self, compiler):
        with pytest.raises(ComponentRuntimeError) as exc_info:
            compiler.compile("def Ball(ctx):\n    return Fill(Triangle())\n")
        assert "'Triangle' is not defined" in str(exc_info.value)
        assert "undeclared capability" in str(exc_info.value)
        assert exc_info.value.line == 2

    def test_first_render_failure_reports_generated_line(self, compiler):
        source = "def Ball(ctx):\n    radius = -5\n    return Fill(Circle(radius=radius))\n"
        with pytest.raises(ComponentRuntimeError) as exc_info:
            compiler.compile(source)
        assert exc_info.value.stage == "runtime"
        assert exc_info.value.line == 3
        assert "ValueError" in str(exc_info.value)

    def test_module_body_failure(self, compiler):
        source = "SIZE = 1 / 0\n\ndef Ball(ctx):\n    return Fill()\n"
        with pytest.raises(ComponentRuntimeError) as exc_info:
            compiler.compile(source)
        assert "ZeroDivisionError" in str(exc_info.value)
        assert exc_info.value.line == 1

    def test_component_must_return_nodes(self, compiler):
        with pytest.raises(ComponentRuntimeError) as exc_info:
            compiler.compile("def Ball(ctx):\n    return 42\n")
        assert "scene nodes" in str(exc_info.value)

    def test_later_render_failure_is_runtime_error(self, compiler):
        source = "def Ball(ctx):\n    return Fill(Circle(radius=30 - ctx.frame))\n"
        artifact = compiler.compile(source)
        with pytest.raises(ComponentRuntimeError):
            artifact.render(60)


class TestAssets:

    def test_asset_resolves_locator(self, compiler):
        scope = build_scope({"logo.png": "/assets/logo.png"})
        source = 'def Logo(ctx):\n    return Fill(Img(asset("logo.png")))\n'
        scene = compiler.compile(source, scope).render(0)
        assert scene.children[0].props["src"] == "/assets/logo.png"

    def test_unknown_asset_fails_first_render(self, compiler):
        source = 'def Logo(ctx):\n    return Fill(Img(asset("missing.png")))\n'
        with pytest.raises(ComponentRuntimeError) as exc_info:
            compiler.compile(source, build_scope({}))
        assert "missing.png" in str(exc_info.value)

    def test_assets_mapping(self, compiler):
        scope = build_scope({"a.png": "/assets/a.png", "b.png": "/assets/b.png"})
        source = "def Gallery(ctx):\n    return Fill([Img(src) for src in sorted(ASSETS.values())])\n"
        scene = compiler.compile(source, scope).render(0)
        assert [c.props["src"] for c in scene.children] == ["/assets/a.png", "/assets/b.png"]


class TestIsolation:

    def test_aliased_write_does_not_leak_into_later_compiles(self, compiler):
        poison = "curves = Easing\ncurves.linear = lambda t: 0.5\n\ndef Poison(ctx):\n    return Fill()\n"
        with pytest.raises(ComponentRuntimeError) as exc_info:
            compiler.compile(poison, build_scope())
        assert "read-only" in str(exc_info.value)

        clean = "def Clean(ctx):\n    return Fill(Text(str(Easing.linear(0.0))))\n"
        scene = compiler.compile(clean, build_scope()).render(0)
        assert scene.children[0].props["content"] == "0.0"

    def test_each_scope_gets_its_own_easing(self):
        first, second = build_scope()["Easing"], build_scope()["Easing"]
        assert first is not second
        assert first.quad(0.5) == 0.25
        with pytest.raises(AttributeError):
            first.linear = abs

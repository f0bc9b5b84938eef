"""
Tests for promptmotion.services.pipeline.generation.compiler.scope and transpiler
"""

import pytest

from promptmotion.services.pipeline.generation.compiler.scope import (
    CAPABILITY_GROUPS,
    DEFAULT_REGISTRY,
    SAFE_BUILTINS,
    Capability,
    CapabilityRegistry,
    build_scope,
)
from promptmotion.services.pipeline.generation.compiler.transpiler import (
    SCOPE_NAME,
    is_component_name,
    transpile,
)


class TestCapabilityRegistry:

    def test_default_surface(self):
        expected = {
            "Fill", "Box", "Text", "Circle", "Rect", "Img", "Video", "Audio", "Sequence",
            "interpolate", "interpolate_colors", "spring", "Easing",
            "Scene3D", "Mesh", "Sphere", "Cube", "Plane", "PerspectiveCamera",
            "AmbientLight", "DirectionalLight", "vec3",
            "asset", "ASSETS",
        }
        assert set(DEFAULT_REGISTRY.names()) == expected
        assert DEFAULT_REGISTRY.version == "1.0"

    def test_groups(self):
        assert [c.name for c in DEFAULT_REGISTRY.by_group("media")] == ["asset", "ASSETS"]
        for group in CAPABILITY_GROUPS:
            assert DEFAULT_REGISTRY.by_group(group)

    def test_describe_lists_every_group(self):
        text = DEFAULT_REGISTRY.describe()
        assert "v1.0" in text
        for group in CAPABILITY_GROUPS:
            assert f"[{group}]" in text

    def test_build_scope_is_fresh_and_read_only(self):
        first = build_scope({"a.png": "/assets/a.png"})
        second = build_scope()
        assert first is not second
        assert dict(first["ASSETS"]) == {"a.png": "/assets/a.png"}
        assert dict(second["ASSETS"]) == {}
        with pytest.raises(TypeError):
            first["Circle"] = None
        with pytest.raises(TypeError):
            first["ASSETS"]["b.png"] = "/x"

    def test_asset_snapshot_does_not_follow_later_changes(self):
        locators = {"a.png": "/assets/a.png"}
        scope = build_scope(locators)
        locators["b.png"] = "/assets/b.png"
        assert "b.png" not in scope["ASSETS"]

    def test_unknown_asset_lists_available(self):
        scope = build_scope({"a.png": "/assets/a.png"})
        with pytest.raises(KeyError) as exc_info:
            scope["asset"]("zzz.png")
        assert "a.png" in str(exc_info.value)

    def test_custom_registry(self):
        registry = CapabilityRegistry([Capability("Dot", "ui", lambda: None)], version="2.0")
        assert "Dot" in registry
        assert len(registry) == 1
        assert "Dot" in registry.build_scope()

    def test_safe_builtins_exclude_escape_hatches(self):
        for name in ("open", "eval", "exec", "__import__", "getattr"):
            assert name not in SAFE_BUILTINS
        assert SAFE_BUILTINS["range"] is range


class TestTranspile:

    def test_capability_references_are_rewritten(self):
        result = transpile("def Ball(ctx):\n    return Fill(Circle())\n", DEFAULT_REGISTRY.names())
        assert result.component_name == "Ball"
        assert result.capabilities_used == ("Fill", "Circle")
        assert SCOPE_NAME in result.code.co_names or any(
            SCOPE_NAME in getattr(const, "co_names", ()) for const in result.code.co_consts
        )

    def test_last_component_wins(self):
        source = "def First(ctx):\n    return Fill()\n\ndef Second(ctx):\n    return Fill()\n"
        assert transpile(source, DEFAULT_REGISTRY.names()).component_name == "Second"

    @pytest.mark.parametrize("name, expected", [
        ("Ball", True),
        ("MyAnimation2", True),
        ("ball", False),
        ("_Ball", False),
        ("My_Animation", False),
    ])
    def test_is_component_name(self, name, expected):
        assert is_component_name(name) is expected

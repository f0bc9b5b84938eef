"""
Tests for the pipeline error taxonomy
"""

import pytest

from promptmotion.core import (
    CompileError,
    ComponentRuntimeError,
    CorrectableError,
    EditInapplicable,
    GenerationCancelled,
    GenerationError,
    InfrastructureError,
    NoComponentFound,
    PipelineError,
    PromptMotionError,
    ProviderError,
)


@pytest.mark.parametrize("error, stage", [
    (EditInapplicable(0, "search text is empty"), "edit"),
    (CompileError("bad"), "compile"),
    (NoComponentFound("none"), "sanitize"),
    (ComponentRuntimeError("boom"), "runtime"),
])
def test_correctable_stages(error, stage):
    assert isinstance(error, CorrectableError)
    assert error.stage == stage


def test_describe_includes_position():
    assert CompileError("SyntaxError: invalid syntax").describe() == "SyntaxError: invalid syntax"
    assert CompileError("x", line=3).describe() == "x (line 3)"
    assert ComponentRuntimeError("y", line=3, column=7).describe() == "y (line 3, column 7)"


def test_edit_inapplicable_numbers_edits_from_one():
    error = EditInapplicable(1, "search text not found in current source", operation="op")
    assert str(error) == "Edit 2 could not be applied: search text not found in current source"
    assert error.index == 1
    assert error.operation == "op"


def test_provider_and_generation_errors_do_not_spend_corrections():
    for error in (ProviderError("503", stage="validation"), GenerationError("bad"), GenerationCancelled()):
        assert not isinstance(error, CorrectableError)
        assert isinstance(error, PromptMotionError)
    assert isinstance(ProviderError("x"), InfrastructureError)
    assert isinstance(GenerationCancelled(), PipelineError)


def test_generation_error_keeps_prompt():
    error = GenerationError("Edit generation failed", prompt="a ball", mode="edit")
    assert error.prompt == "a ball"
    assert error.mode == "edit"

"""
Tests for SourceGenerator (prompt assembly, edit plans, frame images)
"""

import base64
import io

import pytest
from PIL import Image

from promptmotion.core import GenerationError
from promptmotion.models import (
    AssetInfo,
    ConversationContextMessage,
    ErrorCorrectionContext,
    FullReplaceEdit,
    GenerationRequest,
    SearchReplaceEdit,
)
from promptmotion.services.infrastructure.llm.prompting_engine.prompts import MANUAL_EDIT_NOTICE
from promptmotion.services.pipeline.generation.config import CORRECTION_TEMPERATURE, EDIT_TEMPERATURE
from promptmotion.services.pipeline.generation.generator import SourceGenerator, decode_frame_image
from promptmotion.services.pipeline.generation.skills import load_skill_catalog
from promptmotion.services.pipeline.generation.streaming import GenerationStream


SOURCE = 'def Ball(ctx):\n    return Fill(Circle(radius=40, fill="red"))\n'


def png_data_url(width=64, height=32, color="red"):
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode()


def make_generator(helpers, edits=(), streams=None):
    edit_engine = helpers.make_engine(results=list(edits))
    stream_engine = helpers.make_engine(streams=streams)
    generator = SourceGenerator(load_skill_catalog(), stream_engine=stream_engine, edit_engine=edit_engine)
    return generator, edit_engine, stream_engine


class TestEdit:

    @pytest.mark.asyncio
    async def test_returns_edit_plan(self, helpers):
        generator, engine, _ = make_generator(helpers, edits=[helpers.json_result({
            "operations": [
                {"kind": "search_replace", "search": 'fill="red"', "replace": 'fill="blue"'},
                {"kind": "search_replace", "search": "radius=40", "replace": "radius=60"},
            ],
            "summary": "Bigger and blue.",
        })])

        plan = await generator.edit(GenerationRequest(prompt="bigger, blue", current_source=SOURCE), [])

        assert plan.edit_type == "search_replace"
        assert plan.summary == "Bigger and blue."
        assert plan.operations[0] == SearchReplaceEdit(search='fill="red"', replace='fill="blue"')
        config = engine.generate.call_args.kwargs["config"]
        assert config.response_format == "json"
        assert config.temperature == EDIT_TEMPERATURE

    @pytest.mark.asyncio
    async def test_full_replace(self, helpers):
        generator, _, _ = make_generator(helpers, edits=[helpers.json_result({
            "operations": [{"kind": "full_replace", "source": SOURCE}],
        })])
        plan = await generator.edit(GenerationRequest(prompt="start over", current_source="x"), [])
        assert plan.edit_type == "full_replace"
        assert plan.operations == [FullReplaceEdit(source=SOURCE)]

    @pytest.mark.asyncio
    async def test_prompt_carries_turn_context(self, helpers):
        generator, engine, _ = make_generator(helpers, edits=[helpers.json_result({
            "operations": [{"kind": "full_replace", "source": SOURCE}],
        })])
        request = GenerationRequest(
            prompt="add my logo",
            current_source=SOURCE,
            conversation_history=[
                ConversationContextMessage(role="user", text="a red ball"),
                ConversationContextMessage(role="assistant", text="Created Ball."),
            ],
            available_assets=[AssetInfo(name="logo.png", type="image")],
            has_manual_edits=True,
        )

        await generator.edit(request, ["media-assets"])

        prompt = engine.generate.call_args.kwargs["prompt"]
        assert "add my logo" in prompt
        assert SOURCE in prompt
        assert "### Guidance: media-assets" in prompt
        assert "- logo.png (image)" in prompt
        assert "assistant: Created Ball." in prompt
        assert MANUAL_EDIT_NOTICE in prompt
        assert "FIX REQUIRED" not in prompt
        system = engine.generate.call_args.kwargs["system_instruction"]
        assert "interpolate" in system

    @pytest.mark.asyncio
    async def test_correction_context_in_prompt(self, helpers):
        generator, engine, _ = make_generator(helpers, edits=[helpers.json_result({
            "operations": [{"kind": "full_replace", "source": SOURCE}],
        })])
        request = GenerationRequest(
            prompt="a ball",
            current_source="def Ball(ctx)\n",
            error_correction=ErrorCorrectionContext(
                error="Edit 1 could not be applied: search text not found in current source",
                failing_source="def Ball(ctx)\n",
                stage="edit",
                attempt=2,
                failed_edit=SearchReplaceEdit(search="radius=99", replace="radius=1"),
                line=4,
                column=2,
            ),
        )

        await generator.edit(request, [])

        kwargs = engine.generate.call_args.kwargs
        assert "FIX REQUIRED (attempt 2 of 3)" in kwargs["prompt"]
        assert "failed at the edit stage" in kwargs["prompt"]
        assert "Location: line 4, column 2" in kwargs["prompt"]
        assert "radius=99" in kwargs["prompt"]
        assert kwargs["config"].temperature == CORRECTION_TEMPERATURE

    @pytest.mark.asyncio
    async def test_requires_current_source(self, helpers):
        generator, engine, _ = make_generator(helpers)
        with pytest.raises(GenerationError) as exc_info:
            await generator.edit(GenerationRequest(prompt="bigger"), [])
        assert exc_info.value.mode == "edit"
        engine.generate.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("result", [
        {"success": False, "error": "500 Internal"},
        {"success": True, "response": "not json", "parsed_json": None},
        {"success": True, "response": "{}", "parsed_json": {"operations": [{"kind": "rename"}]}},
        {"success": True, "response": "{}", "parsed_json": {"summary": "nothing"}},
        {"success": True, "response": "{}", "parsed_json": {"operations": []}},
    ])
    async def test_unusable_response(self, helpers, result):
        generator, _, _ = make_generator(helpers, edits=[result])
        with pytest.raises(GenerationError) as exc_info:
            await generator.edit(GenerationRequest(prompt="bigger", current_source=SOURCE), [])
        assert exc_info.value.prompt == "bigger"

    @pytest.mark.asyncio
    async def test_unknown_model_is_a_generation_error(self, helpers):
        generator, _, _ = make_generator(helpers, edits=[ValueError("Unknown model suffix 'ultra'")])
        with pytest.raises(GenerationError) as exc_info:
            await generator.edit(GenerationRequest(prompt="bigger", current_source=SOURCE, model="ultra"), [])
        assert "ultra" in str(exc_info.value)


class TestStream:

    @pytest.mark.asyncio
    async def test_stream_builds_cold_start_prompt(self, helpers):
        generator, _, engine = make_generator(helpers, streams=[helpers.stream_of(SOURCE)])
        request = GenerationRequest(prompt="a red ball", model="pro")

        stream = generator.stream(request, ["spring-motion"])

        assert isinstance(stream, GenerationStream)
        assert await stream.result() == SOURCE
        args, kwargs = engine.stream.call_args
        assert "a red ball" in args[0]
        assert "### Guidance: spring-motion" in args[0]
        assert kwargs["model"] == "pro"
        assert kwargs["config"].enable_thinking is True
        assert kwargs["contents"] == args[0]

    @pytest.mark.asyncio
    async def test_frame_images_are_attached(self, helpers):
        generator, _, engine = make_generator(helpers, streams=[helpers.stream_of(SOURCE)])
        request = GenerationRequest(prompt="like this frame", frame_images=[png_data_url(), "not-an-image"])

        await generator.stream(request, []).result()

        contents = engine.stream.call_args.kwargs["contents"]
        assert isinstance(contents, list)
        assert len(contents) == 2
        engine.types.Part.from_bytes.assert_called_once()
        assert engine.types.Part.from_bytes.call_args.kwargs["mime_type"] == "image/png"


class TestDecodeFrameImage:

    def test_downscales_to_max_edge(self):
        data = decode_frame_image(png_data_url(2048, 1024), max_edge=512)
        with Image.open(io.BytesIO(data)) as image:
            assert image.size == (512, 256)
            assert image.format == "PNG"

    def test_plain_base64_is_accepted(self):
        payload = png_data_url().split(",", 1)[1]
        assert decode_frame_image(payload) is not None

    @pytest.mark.parametrize("value", ["", "data:image/png;base64,!!!", base64.b64encode(b"not an image").decode()])
    def test_unreadable_returns_none(self, value):
        assert decode_frame_image(value) is None

"""
Source Generator

Two modes:
- cold start: streams a complete component (GenerationStream)
- follow-up:  returns a schema-constrained EditPlan against the current source

Both build their prompt from the same pieces: capability surface, selected
skill bodies, asset names, conversation history, and (on retries) the
error-correction block.
"""

import base64
import binascii
import io
from typing import Any, List, Optional, Sequence, Union

from PIL import Image, UnidentifiedImageError
from pydantic import ValidationError

from promptmotion.core import GenerationError, get_logger
from promptmotion.models import EditPlan, ErrorCorrectionContext, GenerationRequest, SearchReplaceEdit
from promptmotion.services.infrastructure.llm import PromptConfig, PromptingEngine
from promptmotion.services.infrastructure.llm.prompting_engine.prompts import (
    EDIT_RESPONSE_SCHEMA,
    MANUAL_EDIT_NOTICE,
    format_prompt,
)

from .compiler import DEFAULT_REGISTRY, CapabilityRegistry
from .config import (
    CORRECTION_TEMPERATURE,
    EDIT_MAX_OUTPUT_TOKENS,
    EDIT_TEMPERATURE,
    EDIT_TIMEOUT,
    FRAME_IMAGE_MAX_EDGE,
    GENERATION_MAX_OUTPUT_TOKENS,
    GENERATION_TEMPERATURE,
    HISTORY_LIMIT,
    MAX_FRAME_IMAGES,
    PROVIDER_MAX_RETRIES,
)
from .skills import SkillCatalog
from .streaming import GenerationStream, PhaseListener

logger = get_logger(__name__, component="source_generator")

FRAME_WIDTH = 1920
FRAME_HEIGHT = 1080


def decode_frame_image(data_url: str, max_edge: int = FRAME_IMAGE_MAX_EDGE) -> Optional[bytes]:
    """
    Decode a base64 image (optionally a data: URL) into PNG bytes, downscaled
    so the longest edge is at most `max_edge`. Returns None if unreadable.
    """
    payload = data_url.split(",", 1)[1] if data_url.startswith("data:") else data_url
    try:
        raw = base64.b64decode(payload, validate=True)
        with Image.open(io.BytesIO(raw)) as image:
            image = image.convert("RGB")
            image.thumbnail((max_edge, max_edge))
            out = io.BytesIO()
            image.save(out, format="PNG")
            return out.getvalue()
    except (binascii.Error, ValueError, UnidentifiedImageError, OSError) as e:
        logger.warning(f"Skipping unreadable frame image: {e}")
        return None


def _correction_section(correction: Optional[ErrorCorrectionContext]) -> str:
    if correction is None:
        return ""
    location = ""
    if correction.line is not None:
        location = f"Location: line {correction.line}"
        if correction.column is not None:
            location += f", column {correction.column}"
        location += "\n"
    failed_edit = ""
    if isinstance(correction.failed_edit, SearchReplaceEdit):
        failed_edit = (
            "The edit that could not be applied searched for:\n"
            f"```\n{correction.failed_edit.search}\n```\n"
        )
    return format_prompt(
        "CORRECTION_SECTION",
        attempt=correction.attempt,
        max_attempts=correction.max_attempts,
        stage=correction.stage,
        error=correction.error,
        location=location,
        failed_edit=failed_edit,
        failing_source=correction.failing_source,
    )


class SourceGenerator:
    """Produces component source from the text-generation provider."""

    def __init__(
        self,
        catalog: SkillCatalog,
        registry: Optional[CapabilityRegistry] = None,
        stream_engine: Optional[PromptingEngine] = None,
        edit_engine: Optional[PromptingEngine] = None,
    ):
        self.catalog = catalog
        self.registry = registry or DEFAULT_REGISTRY
        self.stream_engine = stream_engine or PromptingEngine("code_generation")
        self.edit_engine = edit_engine or PromptingEngine("code_edit")

    # -------------------------------------------------------------------------
    # Prompt assembly
    # -------------------------------------------------------------------------

    def system_instruction(self) -> str:
        return format_prompt(
            "COMPONENT_SYSTEM",
            capability_surface=self.registry.describe(),
            width=FRAME_WIDTH,
            height=FRAME_HEIGHT,
        )

    def _sections(self, request: GenerationRequest, skill_ids: Sequence[str]) -> dict:
        skills_context = self.catalog.render_context(skill_ids)
        skills_section = f"\n## SKILLS\n{skills_context}\n" if skills_context else ""

        assets_section = ""
        if request.available_assets:
            listing = "\n".join(f"- {a.name} ({a.type})" for a in request.available_assets)
            assets_section = f"\n## AVAILABLE ASSETS (use asset(\"filename\"))\n{listing}\n"

        history_section = ""
        history = request.conversation_history[-HISTORY_LIMIT:]
        if history:
            lines = "\n".join(f"{m.role}: {m.text}" for m in history)
            history_section = f"\n## CONVERSATION SO FAR\n{lines}\n"

        return {
            "skills_section": skills_section,
            "assets_section": assets_section,
            "history_section": history_section,
            "manual_edit_section": MANUAL_EDIT_NOTICE if request.has_manual_edits else "",
        }

    def _contents(self, engine: PromptingEngine, prompt_text: str, frame_images: Sequence[str]) -> Union[str, List[Any]]:
        images = [decode_frame_image(url) for url in list(frame_images)[-MAX_FRAME_IMAGES:]]
        images = [data for data in images if data]
        if not images:
            return prompt_text
        parts: List[Any] = [prompt_text]
        parts.extend(engine.types.Part.from_bytes(data=data, mime_type="image/png") for data in images)
        logger.debug(f"Attaching {len(images)} frame image(s)")
        return parts

    # -------------------------------------------------------------------------
    # Modes
    # -------------------------------------------------------------------------

    def stream(
        self,
        request: GenerationRequest,
        skill_ids: Sequence[str],
        on_phase: Optional[PhaseListener] = None,
    ) -> GenerationStream:
        """Cold start: stream a complete component."""
        prompt_text = format_prompt("COLD_START", prompt=request.prompt, **self._sections(request, skill_ids))
        chunks = self.stream_engine.stream(
            prompt_text,
            config=PromptConfig(
                temperature=GENERATION_TEMPERATURE,
                max_output_tokens=GENERATION_MAX_OUTPUT_TOKENS,
                enable_thinking=True,
            ),
            system_instruction=self.system_instruction(),
            model=request.model,
            contents=self._contents(self.stream_engine, prompt_text, request.frame_images),
        )
        logger.info("Starting cold-start stream", extra={"skills": list(skill_ids)})
        return GenerationStream(chunks, prompt=request.prompt, on_phase=on_phase)

    async def edit(self, request: GenerationRequest, skill_ids: Sequence[str]) -> EditPlan:
        """
        Follow-up: structured edits against `request.current_source`.

        Raises:
            GenerationError: provider failure or a response of the wrong shape
        """
        if request.current_source is None:
            raise GenerationError("A follow-up edit needs the current source", prompt=request.prompt, mode="edit")

        prompt_text = format_prompt(
            "FOLLOW_UP_EDIT",
            prompt=request.prompt,
            current_source=request.current_source,
            correction_section=_correction_section(request.error_correction),
            **self._sections(request, skill_ids),
        )
        try:
            result = await self.edit_engine.generate(
                prompt=prompt_text,
                config=PromptConfig(
                    temperature=CORRECTION_TEMPERATURE if request.is_correction else EDIT_TEMPERATURE,
                    max_output_tokens=EDIT_MAX_OUTPUT_TOKENS,
                    timeout=EDIT_TIMEOUT,
                    max_retries=PROVIDER_MAX_RETRIES,
                    enable_thinking=True,
                    response_format="json",
                ),
                system_instruction=self.system_instruction(),
                response_schema=EDIT_RESPONSE_SCHEMA,
                model=request.model,
                contents=self._contents(self.edit_engine, prompt_text, request.frame_images),
                context={"stage": "edit", "correction": request.is_correction},
            )
        except ValueError as e:
            raise GenerationError(str(e), prompt=request.prompt, mode="edit") from e

        if not result.get("success"):
            raise GenerationError(
                f"Edit generation failed: {result.get('error', 'unknown error')}",
                prompt=request.prompt,
                mode="edit",
            )

        parsed = result.get("parsed_json")
        if parsed is None:
            raise GenerationError("Edit response was not valid JSON", prompt=request.prompt, mode="edit")
        try:
            plan = EditPlan.model_validate(parsed)
        except ValidationError as e:
            raise GenerationError(
                f"Edit response had an unexpected shape: {e.errors()[0].get('msg', e)}",
                prompt=request.prompt,
                mode="edit",
            ) from e
        if not plan.operations:
            raise GenerationError("Edit response contained no operations", prompt=request.prompt, mode="edit")

        logger.info(
            f"Received {len(plan.operations)} edit operation(s)",
            extra={"edit_type": plan.edit_type, "correction": request.is_correction},
        )
        return plan

"""
Prompt Validator

Gate in front of the pipeline: one cheap classification call decides whether
a user prompt is something an animation can answer. Runs once per user turn,
never on self-healing retries.
"""

from typing import Optional

from promptmotion.core import ProviderError, ValidationRejected, get_logger
from promptmotion.models import ValidationVerdict
from promptmotion.services.infrastructure.llm import PromptConfig, PromptingEngine
from promptmotion.services.infrastructure.llm.prompting_engine.prompts import (
    VALIDATION_SCHEMA,
    format_prompt,
)

from .config import (
    PROVIDER_MAX_RETRIES,
    VALIDATION_MAX_OUTPUT_TOKENS,
    VALIDATION_TEMPERATURE,
    VALIDATION_TIMEOUT,
)

logger = get_logger(__name__, component="prompt_validator")

DEFAULT_REJECTION = "This request can't be turned into an animation. Try describing something to show or animate."


class PromptValidator:
    """Classifies prompts as answerable (valid) or not."""

    def __init__(self, engine: Optional[PromptingEngine] = None):
        self.engine = engine or PromptingEngine("prompt_validation")

    async def validate(self, prompt: str) -> ValidationVerdict:
        """
        Classify one prompt.

        Raises:
            ProviderError: the call failed or returned no usable verdict
        """
        result = await self.engine.generate(
            prompt=format_prompt("VALIDATE_PROMPT", prompt=prompt),
            config=PromptConfig(
                temperature=VALIDATION_TEMPERATURE,
                max_output_tokens=VALIDATION_MAX_OUTPUT_TOKENS,
                timeout=VALIDATION_TIMEOUT,
                max_retries=PROVIDER_MAX_RETRIES,
                response_format="json",
            ),
            system_instruction=format_prompt("VALIDATE_PROMPT_SYSTEM"),
            response_schema=VALIDATION_SCHEMA,
            context={"stage": "validation"},
        )
        if not result.get("success"):
            raise ProviderError(
                result.get("error", "unknown error"),
                stage="validation",
            )

        parsed = result.get("parsed_json")
        if not isinstance(parsed, dict) or not isinstance(parsed.get("valid"), bool):
            # An unreadable verdict must not open the gate.
            raise ProviderError("Prompt validation returned an unreadable verdict", stage="validation")

        reason = parsed.get("reason") or None
        if not parsed["valid"] and not reason:
            reason = DEFAULT_REJECTION
        verdict = ValidationVerdict(valid=parsed["valid"], reason=reason)
        logger.info(
            "Prompt validated" if verdict.valid else "Prompt rejected",
            extra={"valid": verdict.valid, "reason": verdict.reason},
        )
        return verdict

    async def ensure_valid(self, prompt: str) -> None:
        """Raise ValidationRejected carrying the reason when the prompt is declined."""
        verdict = await self.validate(prompt)
        if not verdict.valid:
            raise ValidationRejected(verdict.reason or DEFAULT_REJECTION)

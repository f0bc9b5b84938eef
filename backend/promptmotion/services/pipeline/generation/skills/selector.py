"""
Skill Selector

Picks the catalog skills relevant to a turn with one small JSON call.
Skills already used in the conversation are never offered again.
"""

from typing import Iterable, List, Optional

from promptmotion.core import ProviderError, get_logger
from promptmotion.services.infrastructure.llm import PromptConfig, PromptingEngine
from promptmotion.services.infrastructure.llm.prompting_engine.prompts import (
    SKILL_SELECTION_SCHEMA,
    format_prompt,
)
from ..config import (
    PROVIDER_MAX_RETRIES,
    SKILL_SELECTION_MAX_OUTPUT_TOKENS,
    SKILL_SELECTION_TEMPERATURE,
    SKILL_SELECTION_TIMEOUT,
)

from .catalog import SkillCatalog

logger = get_logger(__name__, component="skill_selector")


class SkillSelector:
    """Selects skill ids for a prompt from an immutable catalog."""

    def __init__(self, catalog: SkillCatalog, engine: Optional[PromptingEngine] = None):
        self.catalog = catalog
        self.engine = engine or PromptingEngine("skill_selection")

    async def select_skills(
        self,
        prompt: str,
        conversation_summary: str = "",
        exclude_ids: Iterable[str] = (),
    ) -> List[str]:
        """
        Return catalog ids relevant to the prompt, most relevant first.

        Ids the model invents, repeats, or that were excluded are dropped.
        No call is made when every skill is excluded.

        Raises:
            ProviderError: the selection call failed
        """
        candidates = self.catalog.candidates(exclude_ids)
        if not candidates:
            logger.debug("No skill candidates left, skipping selection")
            return []

        catalog_text = "\n".join(f"- {skill.id}: {skill.trigger}" for skill in candidates)
        result = await self.engine.generate(
            prompt=format_prompt(
                "SELECT_SKILLS",
                prompt=prompt,
                conversation_summary=conversation_summary or "(new conversation)",
                catalog=catalog_text,
            ),
            config=PromptConfig(
                temperature=SKILL_SELECTION_TEMPERATURE,
                max_output_tokens=SKILL_SELECTION_MAX_OUTPUT_TOKENS,
                timeout=SKILL_SELECTION_TIMEOUT,
                max_retries=PROVIDER_MAX_RETRIES,
                response_format="json",
            ),
            system_instruction=format_prompt("SELECT_SKILLS_SYSTEM"),
            response_schema=SKILL_SELECTION_SCHEMA,
            context={"stage": "skill_selection"},
        )
        if not result.get("success"):
            raise ProviderError(
                result.get("error", "unknown error"),
                stage="skill_selection",
            )

        parsed = result.get("parsed_json")
        raw_ids = parsed.get("skills") if isinstance(parsed, dict) else parsed
        if not isinstance(raw_ids, list):
            logger.warning("Skill selection returned no usable list, continuing without skills")
            return []

        allowed = {skill.id for skill in candidates}
        selected: List[str] = []
        for skill_id in raw_ids:
            if isinstance(skill_id, str) and skill_id in allowed and skill_id not in selected:
                selected.append(skill_id)

        dropped = [s for s in raw_ids if s not in selected]
        logger.info(
            f"Selected {len(selected)} skill(s)",
            extra={"skills": selected, "dropped_skills": dropped},
        )
        return selected

"""
Skill selection prompts.

Used by: pipeline/generation/skills/selector.py
"""

from typing import Any, Dict

from .base import PromptTemplate


SKILL_SELECTION_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "skills": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Ids of relevant skills, most relevant first",
        },
    },
    "required": ["skills"],
}


SELECT_SKILLS_SYSTEM = PromptTemplate(
    template="""You choose which reference notes ("skills") a code generator should read before writing an animation.
Pick only skills whose trigger clearly applies to the request. Picking none is fine.
Respond with ONLY JSON: {"skills": ["skill-id", ...]} using ids from the catalog exactly as written.""",
    description="System instruction for skill selection",
)


SELECT_SKILLS = PromptTemplate(
    template="""## REQUEST
{prompt}

## CONVERSATION SO FAR
{conversation_summary}

## SKILL CATALOG (id: when to use)
{catalog}

Which skills apply?""",
    description="Pick skills for one turn",
)

"""
Prompt Registry - Clean exports and registry pattern.

Structure:
    prompts/
    ├── __init__.py      # This file - exports and registry
    ├── base.py          # PromptTemplate class
    ├── validation.py    # Prompt validation
    ├── skills.py        # Skill selection
    └── generation.py    # Component generation, edits, corrections

Usage:
    from promptmotion.services.infrastructure.llm.prompting_engine.prompts import format_prompt

    prompt = format_prompt("VALIDATE_PROMPT", prompt="a red circle bouncing")
"""

from typing import Dict, List

from .base import PromptTemplate

from .validation import (
    VALIDATION_SCHEMA,
    VALIDATE_PROMPT_SYSTEM,
    VALIDATE_PROMPT,
)

from .skills import (
    SKILL_SELECTION_SCHEMA,
    SELECT_SKILLS_SYSTEM,
    SELECT_SKILLS,
)

from .generation import (
    EDIT_RESPONSE_SCHEMA,
    COMPONENT_SYSTEM,
    COLD_START,
    FOLLOW_UP_EDIT,
    CORRECTION_SECTION,
    MANUAL_EDIT_NOTICE,
)


# =============================================================================
# REGISTRY - Maps string names to prompt templates
# =============================================================================

_REGISTRY: Dict[str, PromptTemplate] = {
    # Validation
    "VALIDATE_PROMPT_SYSTEM": VALIDATE_PROMPT_SYSTEM,
    "VALIDATE_PROMPT": VALIDATE_PROMPT,

    # Skills
    "SELECT_SKILLS_SYSTEM": SELECT_SKILLS_SYSTEM,
    "SELECT_SKILLS": SELECT_SKILLS,

    # Generation
    "COMPONENT_SYSTEM": COMPONENT_SYSTEM,
    "COLD_START": COLD_START,
    "FOLLOW_UP_EDIT": FOLLOW_UP_EDIT,
    "CORRECTION_SECTION": CORRECTION_SECTION,
}


# =============================================================================
# PUBLIC API
# =============================================================================

def get_prompt(name: str) -> PromptTemplate:
    """Get a prompt template by name."""
    if name not in _REGISTRY:
        available = ", ".join(sorted(_REGISTRY.keys()))
        raise KeyError(f"Unknown prompt: '{name}'. Available: {available}")
    return _REGISTRY[name]


def format_prompt(name: str, **kwargs) -> str:
    """Get and format a prompt in one call."""
    return get_prompt(name).format(**kwargs)


def list_prompts() -> List[str]:
    """List all available prompt names."""
    return sorted(_REGISTRY.keys())


__all__ = [
    "PromptTemplate",
    "get_prompt",
    "format_prompt",
    "list_prompts",
    "VALIDATION_SCHEMA",
    "VALIDATE_PROMPT_SYSTEM",
    "VALIDATE_PROMPT",
    "SKILL_SELECTION_SCHEMA",
    "SELECT_SKILLS_SYSTEM",
    "SELECT_SKILLS",
    "EDIT_RESPONSE_SCHEMA",
    "COMPONENT_SYSTEM",
    "COLD_START",
    "FOLLOW_UP_EDIT",
    "CORRECTION_SECTION",
    "MANUAL_EDIT_NOTICE",
]

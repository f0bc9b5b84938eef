"""Skill catalog and selection."""

from .catalog import SKILL_CATEGORIES, SkillCatalog, SkillDescriptor, load_skill_catalog
from .selector import SkillSelector

__all__ = [
    "SKILL_CATEGORIES",
    "SkillCatalog",
    "SkillDescriptor",
    "load_skill_catalog",
    "SkillSelector",
]

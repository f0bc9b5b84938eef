"""
Skill catalog

Skills are short reference notes injected into generation prompts. The
catalog is loaded once at process start and never changes afterwards;
editing the catalog file requires a restart.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Iterator, List, Mapping, Optional, Union

from promptmotion.core import get_logger

logger = get_logger(__name__, component="skill_catalog")

SKILL_CATEGORIES = ("guidance", "example")


@dataclass(frozen=True)
class SkillDescriptor:
    id: str
    category: str
    trigger: str
    body: str

    def __post_init__(self):
        if not self.id:
            raise ValueError("Skill id must not be empty")
        if self.category not in SKILL_CATEGORIES:
            raise ValueError(f"Skill '{self.id}' has unknown category '{self.category}'")


class SkillCatalog:
    """Immutable, ordered collection of skills keyed by id."""

    def __init__(self, skills: Iterable[SkillDescriptor]):
        entries = {}
        for skill in skills:
            if skill.id in entries:
                raise ValueError(f"Duplicate skill id: {skill.id}")
            entries[skill.id] = skill
        self._skills: Mapping[str, SkillDescriptor] = MappingProxyType(entries)

    def __contains__(self, skill_id: object) -> bool:
        return skill_id in self._skills

    def __iter__(self) -> Iterator[SkillDescriptor]:
        return iter(self._skills.values())

    def __len__(self) -> int:
        return len(self._skills)

    def get(self, skill_id: str) -> Optional[SkillDescriptor]:
        return self._skills.get(skill_id)

    def ids(self) -> List[str]:
        return list(self._skills)

    def candidates(self, exclude_ids: Iterable[str] = ()) -> List[SkillDescriptor]:
        excluded = set(exclude_ids)
        return [s for s in self._skills.values() if s.id not in excluded]

    def render_context(self, skill_ids: Iterable[str]) -> str:
        """Bodies of the given skills, in the given order, as prompt context."""
        sections = []
        for skill_id in skill_ids:
            skill = self._skills.get(skill_id)
            if skill is None:
                continue
            heading = "Example" if skill.category == "example" else "Guidance"
            sections.append(f"### {heading}: {skill.id}\n{skill.body.strip()}")
        return "\n\n".join(sections)


def load_skill_catalog(path: Optional[Union[str, Path]] = None) -> SkillCatalog:
    """
    Load the skill catalog.

    Args:
        path: JSON file with a list of {id, category, trigger, body} objects.
            The built-in library is used when omitted.

    Raises:
        ValueError: malformed catalog file
    """
    if path is None:
        from .library import BUILTIN_SKILLS

        return SkillCatalog(BUILTIN_SKILLS)

    path = Path(path)
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError(f"Skill catalog {path} must contain a JSON list")

    skills = []
    for index, item in enumerate(data):
        try:
            skills.append(SkillDescriptor(
                id=str(item["id"]),
                category=str(item.get("category", "guidance")),
                trigger=str(item["trigger"]),
                body=str(item["body"]),
            ))
        except (KeyError, TypeError, AttributeError) as e:
            raise ValueError(f"Skill catalog {path}: entry {index} is malformed ({e})") from e

    catalog = SkillCatalog(skills)
    logger.info(f"Loaded {len(catalog)} skills from {path}", extra={"skill_count": len(catalog)})
    return catalog

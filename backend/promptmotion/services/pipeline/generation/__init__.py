"""
Animation generation pipeline.

Stages:
1. Prompt validation - is the request answerable by an animation
2. Skill selection - domain knowledge injected into generation
3. Source generation - streamed cold start or structured follow-up edits
4. Edit reconciliation - apply search/replace edits to the current source
5. Sanitization - extract the component body from model output
6. Compilation - transpile and execute against the capability scope
7. Correction - feed failures back into generation (bounded)
"""

from .compiler import CompiledArtifact, DynamicCompiler, build_scope
from .correction import CorrectionAttemptCounter, CorrectionState, CorrectionSupervisor
from .edits import apply_edits
from .generator import SourceGenerator
from .orchestrator import GenerationOrchestrator
from .sanitizer import sanitize
from .session import ConversationSession, create_session
from .skills import SkillCatalog, SkillSelector, load_skill_catalog
from .streaming import GenerationStream
from .validator import PromptValidator

__all__ = [
    "CompiledArtifact",
    "DynamicCompiler",
    "build_scope",
    "CorrectionAttemptCounter",
    "CorrectionState",
    "CorrectionSupervisor",
    "apply_edits",
    "SourceGenerator",
    "GenerationOrchestrator",
    "sanitize",
    "ConversationSession",
    "create_session",
    "SkillCatalog",
    "SkillSelector",
    "load_skill_catalog",
    "GenerationStream",
    "PromptValidator",
]

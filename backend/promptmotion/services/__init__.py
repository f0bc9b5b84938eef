"""
Services package - Core business logic and integrations

Pipeline (Core Generation Flow):
    - pipeline/generation: validation, skills, generation, edits,
      sanitization, compilation, correction, orchestration

Infrastructure (Technical Concerns):
    - infrastructure/llm: LLM integration (Gemini, prompting, cost tracking)
    - infrastructure/parsing: JSON/code parsing utilities

Assets:
    - assets: Media asset store for user attachments
"""

from .assets import MediaAssetStore
from .pipeline import ConversationSession, GenerationOrchestrator

__all__ = [
    "MediaAssetStore",
    "ConversationSession",
    "GenerationOrchestrator",
]

"""
Pipeline services - conversational animation generation flow.

See generation/ for the stages.
"""

from .generation import ConversationSession, GenerationOrchestrator

__all__ = [
    "ConversationSession",
    "GenerationOrchestrator",
]

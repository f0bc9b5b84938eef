"""
Pydantic models for conversation turns and API schemas
"""

from .conversation import (
    AssistantMetadata,
    ConversationMessage,
    ConversationContextMessage,
    ConversationLog,
)
from .generation import (
    SearchReplaceEdit,
    FullReplaceEdit,
    EditOperation,
    EditPlan,
    AssetInfo,
    ErrorCorrectionContext,
    GenerationRequest,
    ValidationVerdict,
    StreamPhase,
    OutcomeKind,
    TurnOutcome,
    TurnEvent,
)

__all__ = [
    "AssistantMetadata",
    "ConversationMessage",
    "ConversationContextMessage",
    "ConversationLog",
    "SearchReplaceEdit",
    "FullReplaceEdit",
    "EditOperation",
    "EditPlan",
    "AssetInfo",
    "ErrorCorrectionContext",
    "GenerationRequest",
    "ValidationVerdict",
    "StreamPhase",
    "OutcomeKind",
    "TurnOutcome",
    "TurnEvent",
]

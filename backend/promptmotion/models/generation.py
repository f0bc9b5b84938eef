"""
Schemas for generation turns

Request/response models shared by the pipeline and the HTTP adapter.
"""

from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .conversation import AssistantMetadata, ConversationContextMessage


class SearchReplaceEdit(BaseModel):
    """Replace the single span equal to `search` with `replace`"""
    model_config = ConfigDict(frozen=True)

    kind: Literal["search_replace"] = "search_replace"
    search: str
    replace: str


class FullReplaceEdit(BaseModel):
    """Replace the whole source"""
    model_config = ConfigDict(frozen=True)

    kind: Literal["full_replace"] = "full_replace"
    source: str


EditOperation = Annotated[Union[SearchReplaceEdit, FullReplaceEdit], Field(discriminator="kind")]


class EditPlan(BaseModel):
    """Structured result of a follow-up generation"""
    operations: List[EditOperation]
    summary: Optional[str] = None

    @property
    def edit_type(self) -> str:
        if any(isinstance(op, FullReplaceEdit) for op in self.operations):
            return "full_replace"
        return "search_replace"


class AssetInfo(BaseModel):
    """Asset metadata the generator may reference by filename"""
    name: str
    type: Literal["image", "video", "audio"]


class ErrorCorrectionContext(BaseModel):
    """Failure fed back into generation by the correction supervisor"""
    error: str
    failing_source: str
    stage: Literal["edit", "sanitize", "compile", "runtime"]
    attempt: int = 1
    max_attempts: int = 3
    failed_edit: Optional[EditOperation] = None
    line: Optional[int] = None
    column: Optional[int] = None


class GenerationRequest(BaseModel):
    """One turn's input. Built per turn, discarded after."""
    prompt: str = Field(min_length=1)
    current_source: Optional[str] = None
    conversation_history: List[ConversationContextMessage] = Field(default_factory=list)
    previously_used_skills: List[str] = Field(default_factory=list)
    frame_images: List[str] = Field(default_factory=list)
    available_assets: List[AssetInfo] = Field(default_factory=list)
    has_manual_edits: bool = False
    error_correction: Optional[ErrorCorrectionContext] = None
    model: Optional[str] = None

    @property
    def is_follow_up(self) -> bool:
        return self.current_source is not None

    @property
    def is_correction(self) -> bool:
        return self.error_correction is not None


class ValidationVerdict(BaseModel):
    """Prompt validator result"""
    valid: bool
    reason: Optional[str] = None


class StreamPhase(str, Enum):
    IDLE = "idle"
    REASONING = "reasoning"
    GENERATING = "generating"


class OutcomeKind(str, Enum):
    ASSISTANT = "assistant"
    REJECTED = "rejected"
    ERROR = "error"
    CANCELLED = "cancelled"


class TurnOutcome(BaseModel):
    """User-facing result of one turn"""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    kind: OutcomeKind
    message: str
    source: Optional[str] = None
    metadata: Optional[AssistantMetadata] = None
    failed_stage: Optional[str] = None
    error_type: Optional[str] = None
    artifact: Optional[Any] = Field(default=None, exclude=True)


class TurnEvent(BaseModel):
    """Progress event streamed to the transport while a turn runs"""
    type: Literal["phase", "delta", "skills", "correction", "outcome"]
    phase: Optional[StreamPhase] = None
    text: Optional[str] = None
    skills: Optional[List[str]] = None
    correction: Optional[Dict[str, Any]] = None
    outcome: Optional[TurnOutcome] = None

"""
Conversation models

Messages are immutable once appended; the log only grows.
"""

import uuid
from datetime import datetime, timezone
from typing import List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


Role = Literal["user", "assistant", "system"]


class AssistantMetadata(BaseModel):
    """What an assistant turn did, for display and for later turns"""
    model_config = ConfigDict(frozen=True)

    skills: List[str] = Field(default_factory=list)
    edit_type: Literal["full_replace", "search_replace", "none"] = "none"
    edits_applied: int = 0
    summary: Optional[str] = None
    correction_attempts: int = 0
    error_context: Optional[str] = None
    failed_stage: Optional[str] = None


class ConversationMessage(BaseModel):
    """A single chat message"""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    role: Role
    text: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: Optional[AssistantMetadata] = None
    attached_image_count: int = 0


class ConversationContextMessage(BaseModel):
    """Compact history item sent to the generator"""
    role: Role
    text: str


class ConversationLog:
    """Append-only, ordered sequence of conversation messages."""

    def __init__(self):
        self._messages: List[ConversationMessage] = []

    def append(self, message: ConversationMessage) -> ConversationMessage:
        self._messages.append(message)
        return message

    def add(self, role: Role, text: str, **kwargs) -> ConversationMessage:
        return self.append(ConversationMessage(role=role, text=text, **kwargs))

    @property
    def messages(self) -> Tuple[ConversationMessage, ...]:
        return tuple(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def context(self, limit: Optional[int] = None) -> List[ConversationContextMessage]:
        """History in the compact form the generator consumes (system notes excluded)."""
        items = [
            ConversationContextMessage(role=m.role, text=m.text)
            for m in self._messages
            if m.role != "system"
        ]
        if limit is not None:
            items = items[-limit:] if limit > 0 else []
        return items

    def used_skills(self) -> List[str]:
        """Skill ids used by earlier assistant turns, first use order."""
        seen: List[str] = []
        for message in self._messages:
            if message.metadata is None:
                continue
            for skill_id in message.metadata.skills:
                if skill_id not in seen:
                    seen.append(skill_id)
        return seen

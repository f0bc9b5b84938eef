"""
Conversation Session

Owns the state that outlives a turn: the conversation log, the installed
artifact and its source, skills already used, and the manual-edit flag.
Turns are serialized; a prompt submitted while one is in flight waits for it.
"""

import asyncio
import uuid
from typing import List, Optional, Sequence, Tuple

from promptmotion.core import get_logger, set_conversation_id
from promptmotion.models import (
    AssistantMetadata,
    ConversationLog,
    ConversationMessage,
    GenerationRequest,
    OutcomeKind,
    TurnOutcome,
)

from .compiler import CompiledArtifact
from .config import HISTORY_LIMIT
from .orchestrator import EventListener, GenerationOrchestrator
from .sanitizer import sanitize

logger = get_logger(__name__, component="conversation_session")

MANUAL_EDIT_NOTE = "Code was edited manually."


class ConversationSession:
    """One conversation: at most one generation in flight at a time."""

    def __init__(
        self,
        orchestrator: GenerationOrchestrator,
        asset_store=None,
        conversation_id: Optional[str] = None,
    ):
        self.orchestrator = orchestrator
        self.asset_store = asset_store if asset_store is not None else orchestrator.asset_store
        self.conversation_id = conversation_id or uuid.uuid4().hex
        self.log = ConversationLog()
        self._artifact: Optional[CompiledArtifact] = None
        self._source: Optional[str] = None
        self._used_skills: List[str] = []
        self._manual_edits = False
        self._lock = asyncio.Lock()
        self._cancel_event: Optional[asyncio.Event] = None

    @property
    def artifact(self) -> Optional[CompiledArtifact]:
        return self._artifact

    @property
    def source(self) -> Optional[str]:
        return self._source

    @property
    def messages(self) -> Tuple[ConversationMessage, ...]:
        return self.log.messages

    @property
    def used_skills(self) -> List[str]:
        return list(self._used_skills)

    @property
    def has_manual_edits(self) -> bool:
        return self._manual_edits

    @property
    def is_busy(self) -> bool:
        return self._lock.locked()

    def _install(self, artifact: CompiledArtifact, source: str) -> None:
        # Single swap; the previous artifact stays installed until this point.
        self._artifact, self._source = artifact, source

    def _build_request(self, prompt: str, frame_images: Sequence[str], model: Optional[str]) -> GenerationRequest:
        return GenerationRequest(
            prompt=prompt,
            current_source=self._source,
            conversation_history=self.log.context(HISTORY_LIMIT),
            previously_used_skills=list(self._used_skills),
            frame_images=list(frame_images),
            available_assets=self.asset_store.asset_info() if self.asset_store is not None else [],
            has_manual_edits=self._manual_edits,
            model=model,
        )

    async def submit(
        self,
        prompt: str,
        frame_images: Sequence[str] = (),
        model: Optional[str] = None,
        on_event: Optional[EventListener] = None,
    ) -> TurnOutcome:
        """
        Run one user turn and record it in the conversation.

        Raises:
            pydantic.ValidationError: empty prompt
        """
        async with self._lock:
            set_conversation_id(self.conversation_id)
            # History sent with the request excludes the prompt itself.
            request = self._build_request(prompt, frame_images, model)
            self.log.add("user", prompt, attached_image_count=len(frame_images))

            self._cancel_event = asyncio.Event()
            try:
                outcome = await self.orchestrator.run_turn(
                    request, on_event=on_event, cancel_event=self._cancel_event
                )
            finally:
                self._cancel_event = None

            self._record(outcome)
            return outcome

    def _record(self, outcome: TurnOutcome) -> None:
        if outcome.kind == OutcomeKind.ASSISTANT:
            self._install(outcome.artifact, outcome.source)
            for skill_id in outcome.metadata.skills if outcome.metadata else []:
                if skill_id not in self._used_skills:
                    self._used_skills.append(skill_id)
            self._manual_edits = False
            self.log.add("assistant", outcome.message, metadata=outcome.metadata)
        elif outcome.kind == OutcomeKind.CANCELLED:
            self.log.add("system", outcome.message)
        else:
            metadata = outcome.metadata or AssistantMetadata(
                error_context=outcome.message, failed_stage=outcome.failed_stage
            )
            self.log.add("assistant", outcome.message, metadata=metadata)

    def cancel(self) -> bool:
        """Cancel the in-flight generation. Returns False when nothing is running."""
        if self._cancel_event is None or self._cancel_event.is_set():
            return False
        self._cancel_event.set()
        logger.info("Cancellation requested", extra={"conversation_id": self.conversation_id})
        return True

    async def apply_manual_edit(self, source: str) -> CompiledArtifact:
        """
        Compile source edited by the user and install it.

        Raises:
            CorrectableError: the edited source does not compile or run;
                the installed artifact is left unchanged
        """
        async with self._lock:
            body = sanitize(source)
            artifact = self.orchestrator.compile(body)
            self._install(artifact, body)
            self._manual_edits = True
            self.log.add("system", MANUAL_EDIT_NOTE)
            logger.info("Installed manual edit", extra={"component_name": artifact.component_name})
            return artifact

    async def reset(self) -> None:
        """Clear the conversation and release every asset."""
        self.cancel()
        async with self._lock:
            self.log = ConversationLog()
            self._artifact = None
            self._source = None
            self._used_skills = []
            self._manual_edits = False
            if self.asset_store is not None:
                self.asset_store.clear_all()
            logger.info("Session reset", extra={"conversation_id": self.conversation_id})


def create_session(asset_store=None) -> ConversationSession:
    """Wire a session from configuration (skill catalog path, model settings)."""
    from promptmotion.config import SKILL_CATALOG_PATH
    from promptmotion.services.infrastructure.llm import CostTracker, PromptingEngine

    from .generator import SourceGenerator
    from .skills import SkillSelector, load_skill_catalog
    from .validator import PromptValidator

    catalog = load_skill_catalog(SKILL_CATALOG_PATH)
    # One tracker across all engines so the per-turn summary covers every call.
    cost_tracker = CostTracker()
    orchestrator = GenerationOrchestrator(
        validator=PromptValidator(PromptingEngine("prompt_validation", cost_tracker=cost_tracker)),
        selector=SkillSelector(catalog, PromptingEngine("skill_selection", cost_tracker=cost_tracker)),
        generator=SourceGenerator(
            catalog,
            stream_engine=PromptingEngine("code_generation", cost_tracker=cost_tracker),
            edit_engine=PromptingEngine("code_edit", cost_tracker=cost_tracker),
        ),
        asset_store=asset_store,
        cost_tracker=cost_tracker,
    )
    logger.info("Created conversation session", extra={"skill_count": len(catalog)})
    return ConversationSession(orchestrator, asset_store=asset_store)

"""
Turn Orchestrator

Runs one user turn end to end:

    validate -> select skills -> generate (stream | edit) -> reconcile edits
             -> sanitize -> compile -> TurnOutcome

Correctable failures loop back into generation through the Correction
Supervisor. Progress is reported through a synchronous `on_event` callback
as TurnEvents; the final outcome is always the last event.
"""

import asyncio
import uuid
from pathlib import Path
from typing import Any, Awaitable, Callable, Mapping, Optional, Sequence, TypeVar

from promptmotion.config import TURN_LOG_DIR
from promptmotion.core import (
    CorrectableError,
    GenerationCancelled,
    GenerationError,
    LogTimer,
    ProviderError,
    ValidationRejected,
    get_logger,
    set_turn_id,
)
from promptmotion.core.llm_logger import llm_turn_log
from promptmotion.models import (
    AssistantMetadata,
    EditPlan,
    GenerationRequest,
    OutcomeKind,
    StreamPhase,
    TurnEvent,
    TurnOutcome,
)
from promptmotion.services.infrastructure.llm import CostTracker

from .compiler import CompiledArtifact, DynamicCompiler
from .config import MAX_CORRECTION_ATTEMPTS, SKILL_SUMMARY_CHARS
from .correction import CorrectionAttemptCounter, CorrectionSupervisor
from .edits import apply_edits
from .generator import SourceGenerator
from .sanitizer import sanitize
from .skills import SkillSelector
from .validator import PromptValidator

logger = get_logger(__name__, component="turn_orchestrator")

EventListener = Callable[[TurnEvent], Any]

T = TypeVar("T")

STAGE_LABELS = {
    "validation": "Prompt validation",
    "skill_selection": "Skill selection",
    "generation": "Code generation",
    "edit": "Applying edits",
    "sanitize": "Extracting the component",
    "compile": "Compilation",
    "runtime": "Running the component",
}

CANCELLED_MESSAGE = "Generation cancelled."


def _noop(_event: TurnEvent) -> None:
    return None


class GenerationOrchestrator:
    """Wires the pipeline stages together for one turn at a time."""

    def __init__(
        self,
        validator: PromptValidator,
        selector: SkillSelector,
        generator: SourceGenerator,
        compiler: Optional[DynamicCompiler] = None,
        asset_store: Optional[Any] = None,
        max_attempts: int = MAX_CORRECTION_ATTEMPTS,
        turn_log_dir: Optional[Path] = TURN_LOG_DIR,
        cost_tracker: Optional[CostTracker] = None,
    ):
        self.validator = validator
        self.selector = selector
        self.generator = generator
        self.compiler = compiler or DynamicCompiler(generator.registry)
        self.asset_store = asset_store
        self.max_attempts = max_attempts
        self.turn_log_dir = Path(turn_log_dir) if turn_log_dir else None
        self.cost_tracker = cost_tracker

    def build_scope(self) -> Mapping[str, Any]:
        """Fresh capability scope bound to the current asset locators."""
        locators = self.asset_store.locators() if self.asset_store is not None else None
        return self.compiler.registry.build_scope(locators)

    def compile(self, body: str) -> CompiledArtifact:
        return self.compiler.compile(body, self.build_scope())

    async def run_turn(
        self,
        request: GenerationRequest,
        on_event: Optional[EventListener] = None,
        cancel_event: Optional[asyncio.Event] = None,
        validate: bool = True,
    ) -> TurnOutcome:
        """
        Run one turn and return its outcome.

        Args:
            request: The user-initiated request for this turn
            on_event: Synchronous listener for progress events
            cancel_event: Set to cancel the in-flight generation
            validate: Run the prompt validator first
        """
        emit = on_event or _noop
        turn_id = uuid.uuid4().hex[:12]
        set_turn_id(turn_id)
        try:
            with LogTimer(logger, "generation turn"):
                if self.turn_log_dir is not None:
                    context = {"turn_id": turn_id, "follow_up": request.is_follow_up}
                    with llm_turn_log(self.turn_log_dir / f"turn_{turn_id}.jsonl", context):
                        outcome = await self._run(request, emit, cancel_event, validate)
                else:
                    outcome = await self._run(request, emit, cancel_event, validate)
            logger.info(
                f"Turn finished: {outcome.kind.value}",
                extra={"outcome": outcome.kind.value, "failed_stage": outcome.failed_stage},
            )
            if self.cost_tracker is not None:
                self.cost_tracker.log_summary()
            emit(TurnEvent(type="outcome", outcome=outcome))
            return outcome
        finally:
            set_turn_id(None)

    # -------------------------------------------------------------------------
    # Turn body
    # -------------------------------------------------------------------------

    async def _run(
        self,
        request: GenerationRequest,
        emit: EventListener,
        cancel_event: Optional[asyncio.Event],
        validate: bool,
    ) -> TurnOutcome:
        if validate:
            try:
                await self.validator.ensure_valid(request.prompt)
            except ValidationRejected as e:
                return TurnOutcome(
                    kind=OutcomeKind.REJECTED,
                    message=e.reason,
                    failed_stage="validation",
                )
            except ProviderError as e:
                return self._error_outcome(e, "validation")

        try:
            skills = await self.selector.select_skills(
                request.prompt,
                conversation_summary=self._summarize(request),
                exclude_ids=request.previously_used_skills,
            )
        except ProviderError as e:
            return self._error_outcome(e, "skill_selection")
        emit(TurnEvent(type="skills", skills=list(skills)))

        supervisor = CorrectionSupervisor(CorrectionAttemptCounter(self.max_attempts))
        current = request

        while True:
            if cancel_event is not None and cancel_event.is_set():
                return self._cancelled_outcome()

            supervisor.begin_attempt()
            plan: Optional[EditPlan] = None
            failing_source = current.current_source or ""
            try:
                if current.is_follow_up:
                    plan = await self._generate_edit(current, skills, emit, cancel_event)
                    candidate = apply_edits(current.current_source, plan.operations)
                else:
                    candidate = await self._generate_stream(current, skills, emit, cancel_event)
                failing_source = candidate

                if cancel_event is not None and cancel_event.is_set():
                    return self._cancelled_outcome()

                body = sanitize(candidate)
                failing_source = body
                artifact = self.compile(body)
            except CorrectableError as e:
                retry = supervisor.on_failure(e, failing_source, current)
                if retry is None:
                    return self._give_up_outcome(e, skills, supervisor.attempts)
                correction = retry.error_correction
                emit(TurnEvent(
                    type="correction",
                    correction={
                        "attempt": correction.attempt,
                        "max_attempts": correction.max_attempts,
                        "stage": correction.stage,
                        "error": correction.error,
                    },
                ))
                current = retry
                continue
            except GenerationCancelled:
                return self._cancelled_outcome()
            except ProviderError as e:
                return self._error_outcome(e, e.stage or "generation", skills)
            except GenerationError as e:
                return self._error_outcome(e, "generation", skills)

            supervisor.succeed()
            return self._success_outcome(body, artifact, plan, skills, supervisor.attempts)

    @staticmethod
    def _summarize(request: GenerationRequest) -> str:
        recent = request.conversation_history[-4:]
        return "\n".join(f"{m.role}: {m.text}" for m in recent)[-SKILL_SUMMARY_CHARS:]

    async def _generate_stream(
        self,
        request: GenerationRequest,
        skills: Sequence[str],
        emit: EventListener,
        cancel_event: Optional[asyncio.Event],
    ) -> str:
        stream = self.generator.stream(
            request,
            skills,
            on_phase=lambda phase: emit(TurnEvent(type="phase", phase=phase)),
        )
        watcher = None
        if cancel_event is not None:
            watcher = asyncio.create_task(self._cancel_when_set(cancel_event, stream.cancel))
        try:
            async for delta in stream.deltas():
                emit(TurnEvent(type="delta", text=delta))
            return await stream.result()
        finally:
            if watcher is not None:
                watcher.cancel()

    async def _generate_edit(
        self,
        request: GenerationRequest,
        skills: Sequence[str],
        emit: EventListener,
        cancel_event: Optional[asyncio.Event],
    ) -> EditPlan:
        emit(TurnEvent(type="phase", phase=StreamPhase.GENERATING))
        try:
            return await self._cancellable(self.generator.edit(request, skills), cancel_event)
        finally:
            emit(TurnEvent(type="phase", phase=StreamPhase.IDLE))

    @staticmethod
    async def _cancel_when_set(cancel_event: asyncio.Event, cancel: Callable[[], None]) -> None:
        await cancel_event.wait()
        cancel()

    @staticmethod
    async def _cancellable(work: Awaitable[T], cancel_event: Optional[asyncio.Event]) -> T:
        """Await `work`, abandoning it if `cancel_event` is set first."""
        if cancel_event is None:
            return await work
        task = asyncio.ensure_future(work)
        waiter = asyncio.ensure_future(cancel_event.wait())
        try:
            await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()
        if task.done():
            return task.result()
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        raise GenerationCancelled("Generation was cancelled")

    # -------------------------------------------------------------------------
    # Outcomes
    # -------------------------------------------------------------------------

    @staticmethod
    def _success_outcome(
        source: str,
        artifact: CompiledArtifact,
        plan: Optional[EditPlan],
        skills: Sequence[str],
        attempts: int,
    ) -> TurnOutcome:
        if plan is None:
            edit_type, edits_applied, summary = "none", 0, None
            message = f"Created {artifact.component_name}."
        else:
            edit_type, edits_applied, summary = plan.edit_type, len(plan.operations), plan.summary
            message = summary or f"Updated {artifact.component_name}."

        return TurnOutcome(
            kind=OutcomeKind.ASSISTANT,
            message=message,
            source=source,
            artifact=artifact,
            metadata=AssistantMetadata(
                skills=list(skills),
                edit_type=edit_type,
                edits_applied=edits_applied,
                summary=summary,
                correction_attempts=attempts,
            ),
        )

    @staticmethod
    def _error_outcome(error: Exception, stage: str, skills: Sequence[str] = ()) -> TurnOutcome:
        label = STAGE_LABELS.get(stage, stage)
        logger.warning(
            f"{label} failed: {error}",
            extra={"failed_stage": stage, "error_type": type(error).__name__},
        )
        return TurnOutcome(
            kind=OutcomeKind.ERROR,
            message=f"{label} failed: {error}",
            failed_stage=stage,
            error_type=type(error).__name__,
            metadata=AssistantMetadata(
                skills=list(skills),
                error_context=str(error),
                failed_stage=stage,
            ),
        )

    @staticmethod
    def _give_up_outcome(error: CorrectableError, skills: Sequence[str], attempts: int) -> TurnOutcome:
        label = STAGE_LABELS.get(error.stage, error.stage)
        return TurnOutcome(
            kind=OutcomeKind.ERROR,
            message=(
                f"{label} failed after {attempts} correction attempt(s). "
                f"Last error: {error.describe()}"
            ),
            failed_stage=error.stage,
            error_type=type(error).__name__,
            metadata=AssistantMetadata(
                skills=list(skills),
                correction_attempts=attempts,
                error_context=error.describe(),
                failed_stage=error.stage,
            ),
        )

    @staticmethod
    def _cancelled_outcome() -> TurnOutcome:
        logger.info("Turn cancelled")
        return TurnOutcome(kind=OutcomeKind.CANCELLED, message=CANCELLED_MESSAGE)

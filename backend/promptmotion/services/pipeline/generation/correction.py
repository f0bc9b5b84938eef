"""
Correction Supervisor

Feeds correctable failures (edit, sanitize, compile, runtime) back into
generation as error context, up to a fixed budget per user turn. Provider
failures and cancellations never reach here and never spend the budget.

States:
    IDLE -> ATTEMPTING -> SUCCESS
                       -> RETRYING -> ATTEMPTING ...
                       -> GIVING_UP (budget exhausted)
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel

from promptmotion.core import CorrectableError, EditInapplicable, get_logger
from promptmotion.models import ErrorCorrectionContext, GenerationRequest

from .config import MAX_CORRECTION_ATTEMPTS

logger = get_logger(__name__, component="correction_supervisor")


class CorrectionState(str, Enum):
    IDLE = "idle"
    ATTEMPTING = "attempting"
    SUCCESS = "success"
    RETRYING = "retrying"
    GIVING_UP = "giving_up"


class CorrectionAttemptCounter:
    """Retries left for one user turn. Created per turn, never reset."""

    def __init__(self, max_attempts: int = MAX_CORRECTION_ATTEMPTS):
        if max_attempts < 0:
            raise ValueError("max_attempts must be >= 0")
        self.max_attempts = max_attempts
        self._used = 0

    @property
    def used(self) -> int:
        return self._used

    @property
    def remaining(self) -> int:
        return self.max_attempts - self._used

    @property
    def exhausted(self) -> bool:
        return self._used >= self.max_attempts

    def consume(self) -> int:
        """Spend one retry and return the attempt number (1-based)."""
        if self.exhausted:
            raise RuntimeError("Correction budget exhausted")
        self._used += 1
        return self._used


class CorrectionSupervisor:
    """Decides, per failure, whether to retry and with what context."""

    def __init__(self, counter: Optional[CorrectionAttemptCounter] = None):
        self.counter = counter or CorrectionAttemptCounter()
        self.state = CorrectionState.IDLE
        self.last_error: Optional[CorrectableError] = None

    @property
    def attempts(self) -> int:
        return self.counter.used

    def begin_attempt(self) -> None:
        self.state = CorrectionState.ATTEMPTING

    def succeed(self) -> None:
        self.state = CorrectionState.SUCCESS
        if self.counter.used:
            logger.info(f"Recovered after {self.counter.used} correction attempt(s)")

    def on_failure(
        self,
        error: CorrectableError,
        failing_source: str,
        request: GenerationRequest,
    ) -> Optional[GenerationRequest]:
        """
        Record a correctable failure.

        Returns:
            The retry request (follow-up mode against the failing source, with
            error context attached), or None when the budget is exhausted.
        """
        self.last_error = error
        if self.counter.exhausted:
            self.state = CorrectionState.GIVING_UP
            logger.warning(
                f"Giving up after {self.counter.used} correction attempt(s)",
                extra={"failed_stage": error.stage, "error": error.describe()},
            )
            return None

        attempt = self.counter.consume()
        self.state = CorrectionState.RETRYING

        failed_edit = None
        if isinstance(error, EditInapplicable) and isinstance(error.operation, BaseModel):
            failed_edit = error.operation

        context = ErrorCorrectionContext(
            error=error.describe(),
            failing_source=failing_source,
            stage=error.stage,
            attempt=attempt,
            max_attempts=self.counter.max_attempts,
            failed_edit=failed_edit,
            line=error.line,
            column=error.column,
        )
        logger.info(
            f"Correction attempt {attempt}/{self.counter.max_attempts}",
            extra={"failed_stage": error.stage, "error": error.describe()},
        )
        return request.model_copy(
            update={"current_source": failing_source, "error_correction": context}
        )

"""
Core Exceptions
Standardized error taxonomy for the generation pipeline.

Every stage converts its own failures into one of these types at its
boundary, so the orchestrator never handles a raw exception from a stage.
"""

from typing import Any, Optional


class PromptMotionError(Exception):
    """Base exception for all application errors."""
    pass


class PipelineError(PromptMotionError):
    """Base exception for generation pipeline errors."""
    pass


class InfrastructureError(PromptMotionError):
    """Base exception for infrastructure errors (LLM, storage, etc)."""
    pass


class ValidationRejected(PipelineError):
    """The prompt validator declined the request. Ends the turn early."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class ProviderError(InfrastructureError):
    """The text-generation provider failed (outage, network, quota).

    Never consumes the self-healing budget.
    """

    def __init__(self, message: str, stage: Optional[str] = None):
        super().__init__(message)
        self.stage = stage


class GenerationError(PipelineError):
    """Source generation failed. Keeps the prompt for display."""

    def __init__(self, message: str, prompt: str = "", mode: Optional[str] = None):
        super().__init__(message)
        self.prompt = prompt
        self.mode = mode


class GenerationCancelled(PipelineError):
    """A streaming generation was cancelled before completion."""
    pass


class CorrectableError(PipelineError):
    """Failure plausibly caused by the generator's own output.

    Subclasses are the only errors that spend the correction budget.
    """

    stage: str = "compile"

    def __init__(self, message: str, line: Optional[int] = None, column: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.line = line
        self.column = column

    def describe(self) -> str:
        """Message with source position where available."""
        if self.line is None:
            return self.message
        position = f"line {self.line}"
        if self.column is not None:
            position += f", column {self.column}"
        return f"{self.message} ({position})"


class EditInapplicable(CorrectableError):
    """A structured edit could not be applied to the current source."""

    stage = "edit"

    def __init__(self, index: int, reason: str, operation: Any = None):
        super().__init__(f"Edit {index + 1} could not be applied: {reason}")
        self.index = index
        self.reason = reason
        self.operation = operation


class CompileError(CorrectableError):
    """Generated source could not be transpiled (syntax, forbidden construct)."""

    stage = "compile"


class NoComponentFound(CompileError):
    """Generator output contains no recognizable component definition."""

    stage = "sanitize"

    def __init__(self, message: str, stage: Optional[str] = None):
        super().__init__(message)
        if stage is not None:
            self.stage = stage


class ComponentRuntimeError(CorrectableError):
    """Generated source failed while being instantiated or first rendered."""

    stage = "runtime"

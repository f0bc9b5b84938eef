"""
Core Module - Cross-cutting concerns and shared infrastructure

Organization:
    - logging.py: Structured logging configuration and utilities
    - llm_logger.py: LLM request/response logging
    - exceptions.py: Pipeline error taxonomy

Usage:
    from promptmotion.core import get_logger, CompileError
"""

from .logging import (
    setup_logging,
    get_logger,
    set_request_id,
    set_conversation_id,
    set_turn_id,
    clear_context,
    LogTimer,
)

from .security import sanitize_filename

from .exceptions import (
    PromptMotionError,
    PipelineError,
    InfrastructureError,
    ValidationRejected,
    ProviderError,
    GenerationError,
    GenerationCancelled,
    CorrectableError,
    EditInapplicable,
    CompileError,
    NoComponentFound,
    ComponentRuntimeError,
)


def parse_bool_env(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


__all__ = [
    # Logging
    "setup_logging",
    "get_logger",
    "set_request_id",
    "set_conversation_id",
    "set_turn_id",
    "clear_context",
    "LogTimer",
    # Exceptions
    "PromptMotionError",
    "PipelineError",
    "InfrastructureError",
    "ValidationRejected",
    "ProviderError",
    "GenerationError",
    "GenerationCancelled",
    "CorrectableError",
    "EditInapplicable",
    "CompileError",
    "NoComponentFound",
    "ComponentRuntimeError",
    # Security
    "sanitize_filename",
    # Env helpers
    "parse_bool_env",
]

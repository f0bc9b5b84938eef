"""
Model Configuration for Pipeline Steps

Each step of the generation pipeline has its own model configuration so
that cheap, fast models gate the pipeline while stronger models write
code.

Pipeline steps:
    - prompt_validation: single-shot classification of the user prompt
    - skill_selection:   single-shot pick from the skill catalog
    - code_generation:   streaming cold-start generation of a full component
    - code_edit:         structured follow-up edits (and self-healing retries)

Model ids accepted from clients may carry a reasoning suffix, e.g.
"gemini-3-flash-preview:low". The suffix overrides the step's thinking level.

Thinking Levels (for gemini-3-flash-preview and gemini-3-pro-preview):
    - LOW: Minimal reasoning, fastest responses
    - MEDIUM: Balanced reasoning and speed
    - HIGH: Deep reasoning, slower but more accurate
"""

import os
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, List, Optional, Tuple


class ThinkingLevel(str, Enum):
    """Thinking budget levels for Gemini 3 models"""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


# Models that support thinking configuration
THINKING_CAPABLE_MODELS = [
    "gemini-3-flash-preview",
    "gemini-3-pro-preview",
]

# Models selectable by clients. The suffix picks the reasoning effort.
AVAILABLE_MODELS: List[Dict[str, str]] = [
    {"id": "gemini-3-flash-preview:none", "name": "Gemini 3 Flash (No Reasoning)"},
    {"id": "gemini-3-flash-preview:low", "name": "Gemini 3 Flash (Low Reasoning)"},
    {"id": "gemini-3-flash-preview:medium", "name": "Gemini 3 Flash (Medium Reasoning)"},
    {"id": "gemini-3-flash-preview:high", "name": "Gemini 3 Flash (High Reasoning)"},
    {"id": "gemini-3-pro-preview:low", "name": "Gemini 3 Pro (Low Reasoning)"},
    {"id": "gemini-3-pro-preview:high", "name": "Gemini 3 Pro (High Reasoning)"},
    {"id": "gemini-2.5-flash", "name": "Gemini 2.5 Flash"},
]

DEFAULT_MODEL_ID = os.getenv("DEFAULT_MODEL_ID", "gemini-3-flash-preview:low")

_REASONING_SUFFIXES = {
    "none": None,
    "low": ThinkingLevel.LOW,
    "medium": ThinkingLevel.MEDIUM,
    "high": ThinkingLevel.HIGH,
}


@dataclass(frozen=True)
class ModelConfig:
    """Configuration for a single model"""
    model_name: str
    thinking_level: Optional[ThinkingLevel] = None
    description: str = ""

    @property
    def supports_thinking(self) -> bool:
        """Check if this model supports thinking configuration"""
        return self.model_name in THINKING_CAPABLE_MODELS


@dataclass
class PipelineModels:
    """Model configuration for each step of the generation pipeline."""

    prompt_validation: ModelConfig = field(default_factory=lambda: ModelConfig(
        model_name="gemini-flash-lite-latest",
        description="Fast classification of user prompts"
    ))

    skill_selection: ModelConfig = field(default_factory=lambda: ModelConfig(
        model_name="gemini-flash-lite-latest",
        description="Pick relevant skills from the catalog"
    ))

    code_generation: ModelConfig = field(default_factory=lambda: ModelConfig(
        model_name="gemini-3-flash-preview",
        thinking_level=ThinkingLevel.LOW,
        description="Stream a complete animation component"
    ))

    code_edit: ModelConfig = field(default_factory=lambda: ModelConfig(
        model_name="gemini-3-flash-preview",
        thinking_level=ThinkingLevel.LOW,
        description="Structured follow-up edits and self-healing fixes"
    ))


DEFAULT_PIPELINE_MODELS = PipelineModels()

# Current active configuration
ACTIVE_PIPELINE = DEFAULT_PIPELINE_MODELS


def list_pipeline_steps() -> List[str]:
    """List all available pipeline step names"""
    return ["prompt_validation", "skill_selection", "code_generation", "code_edit"]


def get_model_config(step: str) -> ModelConfig:
    """
    Get the model configuration for a specific pipeline step.

    Raises:
        ValueError: If the step is unknown
    """
    if step in list_pipeline_steps():
        return getattr(ACTIVE_PIPELINE, step)
    raise ValueError(f"Unknown pipeline step: {step}")


def get_thinking_config(model_config: ModelConfig) -> Optional[Dict[str, str]]:
    """
    Get the thinking configuration for Gemini API calls.

    Returns:
        ThinkingConfig dict or None if thinking is not supported
    """
    if model_config.thinking_level and model_config.supports_thinking:
        return {"thinking_level": model_config.thinking_level.value}
    return None


def parse_model_id(model_id: str) -> Tuple[str, Optional[ThinkingLevel], bool]:
    """
    Split a client model id into (model name, thinking level, has_suffix).

    "gemini-3-flash-preview:high" -> ("gemini-3-flash-preview", HIGH, True)
    "gemini-2.5-flash"            -> ("gemini-2.5-flash", None, False)

    Raises:
        ValueError: If the reasoning suffix is not recognised
    """
    name, sep, suffix = model_id.strip().partition(":")
    if not name:
        raise ValueError(f"Invalid model id: {model_id!r}")
    if not sep:
        return name, None, False
    if suffix.lower() not in _REASONING_SUFFIXES:
        raise ValueError(f"Unknown reasoning effort '{suffix}' in model id {model_id!r}")
    return name, _REASONING_SUFFIXES[suffix.lower()], True


def resolve_model_config(step: str, model_id: Optional[str] = None) -> ModelConfig:
    """Step config, overridden by a client-selected model id when given."""
    base = get_model_config(step)
    if not model_id:
        return base
    name, thinking, has_suffix = parse_model_id(model_id)
    return replace(
        base,
        model_name=name,
        thinking_level=thinking if has_suffix else base.thinking_level,
    )

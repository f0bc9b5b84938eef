"""Prompting engine - centralized LLM interaction."""

from .base_engine import PromptingEngine, PromptConfig, StreamChunk
from .prompts import format_prompt, get_prompt

__all__ = ["PromptingEngine", "PromptConfig", "StreamChunk", "format_prompt", "get_prompt"]

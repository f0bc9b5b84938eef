"""LLM infrastructure: Gemini client, prompting engine, cost tracking."""

from .cost_tracker import CostTracker
from .prompting_engine import PromptingEngine, PromptConfig, StreamChunk

__all__ = ["CostTracker", "PromptingEngine", "PromptConfig", "StreamChunk"]

"""Gemini client (Gemini API or Vertex AI through google-genai)."""

from .client import UnifiedGeminiClient, GeminiModels, GenerationConfig, create_client

__all__ = ["UnifiedGeminiClient", "GeminiModels", "GenerationConfig", "create_client"]

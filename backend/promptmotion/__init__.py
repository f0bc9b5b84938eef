"""PromptMotion - conversational animation generation."""

__version__ = "1.0.0"

"""
Parsing Module

Utilities for pulling JSON and code out of LLM responses.

Usage:
    from promptmotion.services.infrastructure.parsing import parse_json_response, extract_fenced_blocks
"""

from .code_parser import (
    CodeBlock,
    extract_fenced_blocks,
    remove_markdown_wrappers,
)
from .json_parser import (
    parse_json_response,
    extract_largest_balanced_json,
    looks_truncated_json,
    fix_json_escapes,
)

__all__ = [
    "CodeBlock",
    "extract_fenced_blocks",
    "remove_markdown_wrappers",
    "parse_json_response",
    "extract_largest_balanced_json",
    "looks_truncated_json",
    "fix_json_escapes",
]

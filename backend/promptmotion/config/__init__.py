"""
Application configuration and settings
"""

import os
from pathlib import Path

# Load environment variables from .env file
from dotenv import load_dotenv
load_dotenv()

from .models import (
    ModelConfig,
    ThinkingLevel,
    PipelineModels,
    ACTIVE_PIPELINE,
    DEFAULT_PIPELINE_MODELS,
    AVAILABLE_MODELS,
    DEFAULT_MODEL_ID,
    THINKING_CAPABLE_MODELS,
    get_model_config,
    get_thinking_config,
    list_pipeline_steps,
    parse_model_id,
    resolve_model_config,
)

# Base directories
APP_DIR = Path(__file__).parent.parent
BACKEND_DIR = APP_DIR.parent

# API settings
API_TITLE = "PromptMotion API"
API_DESCRIPTION = "Generate and revise parameterized animations through conversation"
API_VERSION = "1.0.0"

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
    if origin.strip()
]

# Skill catalog: JSON file with a list of skills; built-in library when unset
SKILL_CATALOG_PATH = os.getenv("SKILL_CATALOG_PATH") or None

# Uploaded media assets
ASSET_DIR = Path(os.getenv("ASSET_DIR", str(BACKEND_DIR / "assets")))

# Directory for per-turn JSONL logs of full LLM prompts/responses (disabled when unset)
TURN_LOG_DIR = Path(os.environ["TURN_LOG_DIR"]) if os.getenv("TURN_LOG_DIR") else None

__all__ = [
    "ModelConfig",
    "ThinkingLevel",
    "PipelineModels",
    "ACTIVE_PIPELINE",
    "DEFAULT_PIPELINE_MODELS",
    "AVAILABLE_MODELS",
    "DEFAULT_MODEL_ID",
    "THINKING_CAPABLE_MODELS",
    "get_model_config",
    "get_thinking_config",
    "list_pipeline_steps",
    "parse_model_id",
    "resolve_model_config",
    "APP_DIR",
    "BACKEND_DIR",
    "API_TITLE",
    "API_DESCRIPTION",
    "API_VERSION",
    "CORS_ORIGINS",
    "SKILL_CATALOG_PATH",
    "ASSET_DIR",
    "TURN_LOG_DIR",
]

"""
Generation Pipeline Configuration

Centralized constants for the conversational generation pipeline.
"""

# =============================================================================
# SELF-HEALING
# =============================================================================

# Correction retries per user turn (the first attempt is not counted)
MAX_CORRECTION_ATTEMPTS = 3

# =============================================================================
# PROVIDER CALLS
# =============================================================================

# Prompt validation / skill selection (non-streaming, small)
VALIDATION_TIMEOUT = 30.0
SKILL_SELECTION_TIMEOUT = 30.0

# Follow-up structured edits
EDIT_TIMEOUT = 120.0

# Provider retries with exponential backoff (inside the prompting engine)
PROVIDER_MAX_RETRIES = 3

# Temperatures
VALIDATION_TEMPERATURE = 0.0
SKILL_SELECTION_TEMPERATURE = 0.0
GENERATION_TEMPERATURE = 0.7
EDIT_TEMPERATURE = 0.4
CORRECTION_TEMPERATURE = 0.3

# Output token budgets
VALIDATION_MAX_OUTPUT_TOKENS = 512
SKILL_SELECTION_MAX_OUTPUT_TOKENS = 512
GENERATION_MAX_OUTPUT_TOKENS = 16384
EDIT_MAX_OUTPUT_TOKENS = 16384

# =============================================================================
# CONTEXT
# =============================================================================

# Most recent conversation messages sent with each request
HISTORY_LIMIT = 12

# Characters of conversation used to summarize it for skill selection
SKILL_SUMMARY_CHARS = 2000

# Frame captures sent as visual context
MAX_FRAME_IMAGES = 4
FRAME_IMAGE_MAX_EDGE = 1024

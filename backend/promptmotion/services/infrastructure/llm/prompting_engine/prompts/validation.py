"""
Prompt validation prompts.

Used by: pipeline/generation/validator.py
"""

from typing import Any, Dict

from .base import PromptTemplate


VALIDATION_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "valid": {
            "type": "boolean",
            "description": "True if the request can be answered with an animation",
        },
        "reason": {
            "type": "string",
            "description": "Short, user-facing explanation when valid is false",
        },
    },
    "required": ["valid"],
}


VALIDATE_PROMPT_SYSTEM = PromptTemplate(
    template="""You are a gatekeeper for an animation generator.
Decide whether a user request can be answered by generating a short, programmatic motion-graphics animation
(shapes, text, charts, transitions, simple 3D scenes, uploaded images/video/audio).

Answer valid=true for anything that describes something to show, animate, visualize or change in an animation,
including vague or playful requests.
Answer valid=false only for requests that cannot be satisfied by an animation at all
(e.g. general questions, requests for essays, code in other frameworks, harmful content).
When valid=false, give a one-sentence reason addressed to the user.

Respond with ONLY JSON matching: {"valid": boolean, "reason": string}""",
    description="System instruction for prompt validation",
)


VALIDATE_PROMPT = PromptTemplate(
    template="""User request:
\"\"\"
{prompt}
\"\"\"

Is this a request for an animation (new, or a change to the current one)?""",
    description="Classify one user prompt",
)

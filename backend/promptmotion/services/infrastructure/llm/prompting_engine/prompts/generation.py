"""
Component generation prompts.

Used by: pipeline/generation/generator.py

The capability surface is rendered from the capability registry at call
time, so the prompt never drifts from what the compiler accepts.
"""

from typing import Any, Dict

from .base import PromptTemplate


EDIT_RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "summary": {
            "type": "string",
            "description": "One or two sentences for the user describing the change",
        },
        "operations": {
            "type": "array",
            "description": "Search/replace operations applied in order, or a single full_replace",
            "items": {
                "type": "object",
                "properties": {
                    "kind": {"type": "string", "enum": ["search_replace", "full_replace"]},
                    "search": {
                        "type": "string",
                        "description": "Exact text from the current source; must occur exactly once",
                    },
                    "replace": {"type": "string", "description": "Text that replaces `search`"},
                    "source": {
                        "type": "string",
                        "description": "Complete new source (full_replace only)",
                    },
                },
                "required": ["kind"],
            },
        },
    },
    "required": ["operations"],
}


COMPONENT_SYSTEM = PromptTemplate(
    template="""You write animation components in a small Python dialect.

## THE DIALECT
- A component is a top-level function with a CapWords name taking one argument:
    def BouncingBall(ctx):
        ...
        return Fill(...)
- `ctx` has: frame, fps, duration_in_frames, width, height, time (seconds), progress (0..1),
  params (read-only mapping), param(name, default), shifted(start).
- The function is called once per frame and must return scene nodes (a node or a list of nodes).
  It must be a pure function of ctx: no state kept between frames.
- Everything you can use is listed below. It is already in scope.
- DO NOT import anything. DO NOT use names starting with "__", eval/exec/open/getattr/type.
- Helper functions and constants at module level are fine. Expose tunable values through ctx.param(...).
- Coordinates are pixels from the top-left corner of a {width}x{height} frame.

## CAPABILITIES
{capability_surface}

## STYLE
- Smooth motion: derive every animated value from ctx.frame with interpolate/spring.
- Use clamp extrapolation for values that must stop at their target.
- Keep text readable (size >= 32) and inside the frame.""",
    description="System instruction for component generation and edits",
)


COLD_START = PromptTemplate(
    template="""Create a new animation.

## REQUEST
{prompt}
{skills_section}{assets_section}{history_section}
## OUTPUT
Reply with the complete component in one ```python code block. No explanation after the code.""",
    description="Stream a complete component for a new animation",
)


FOLLOW_UP_EDIT = PromptTemplate(
    template="""Update the existing animation.

## REQUEST
{prompt}
{manual_edit_section}{skills_section}{assets_section}{history_section}
## CURRENT SOURCE
```python
{current_source}
```
{correction_section}
## OUTPUT
Return JSON with `operations` and a short `summary`.
- Prefer search_replace operations: `search` must be copied EXACTLY from CURRENT SOURCE
  (whitespace matters) and must occur exactly once; include enough surrounding lines to be unique.
- Operations are applied in order; later operations must not touch text produced by earlier ones.
- Use a single full_replace with the complete new `source` only for rewrites of most of the file.""",
    description="Structured edits for a follow-up request",
)


CORRECTION_SECTION = PromptTemplate(
    template="""
## FIX REQUIRED (attempt {attempt} of {max_attempts})
The previous result failed at the {stage} stage:
{error}
{location}{failed_edit}
The failing source is:
```python
{failing_source}
```
Fix the cause of this error. The CURRENT SOURCE above is the exact text your edits apply to.
""",
    description="Error feedback for self-healing retries",
)


MANUAL_EDIT_NOTICE = """
## NOTE
The user edited the source by hand since the last generation. Keep their changes unless the request says otherwise.
"""

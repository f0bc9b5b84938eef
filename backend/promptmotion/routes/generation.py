"""
Generation routes

Thin transport over ConversationSession: one conversation per process.
Turn progress is streamed as NDJSON TurnEvents, ending with the outcome.
"""

import asyncio
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from ..core import CorrectableError, get_logger
from ..models import OutcomeKind, TurnEvent, TurnOutcome
from ..services.assets import MediaAssetStore
from ..services.pipeline.generation import ConversationSession, create_session

logger = get_logger(__name__, component="generation_routes")

router = APIRouter(tags=["generation"])


class GenerateBody(BaseModel):
    prompt: str = Field(min_length=1)
    frame_images: List[str] = Field(default_factory=list)
    model: Optional[str] = None


class ManualEditBody(BaseModel):
    source: str = Field(min_length=1)


def get_session(request: Request) -> ConversationSession:
    """Process-wide session, created on first use."""
    session = getattr(request.app.state, "session", None)
    if session is None:
        session = create_session(asset_store=MediaAssetStore())
        request.app.state.session = session
    return session


@router.post("/generate")
async def generate(body: GenerateBody, session: ConversationSession = Depends(get_session)):
    """Run one turn, streaming TurnEvents as NDJSON."""
    queue: "asyncio.Queue[Optional[TurnEvent]]" = asyncio.Queue()

    async def run_turn() -> None:
        try:
            await session.submit(
                body.prompt,
                frame_images=body.frame_images,
                model=body.model,
                on_event=queue.put_nowait,
            )
        except Exception as e:
            logger.error("Turn failed unexpectedly", extra={"error": str(e)}, exc_info=True)
            queue.put_nowait(TurnEvent(
                type="outcome",
                outcome=TurnOutcome(
                    kind=OutcomeKind.ERROR,
                    message=f"Generation failed: {e}",
                    error_type=type(e).__name__,
                ),
            ))
        finally:
            queue.put_nowait(None)

    async def events():
        task = asyncio.create_task(run_turn())
        try:
            while True:
                event = await queue.get()
                if event is None:
                    break
                yield event.model_dump_json(exclude_none=True) + "\n"
        finally:
            # Client went away mid-turn.
            if not task.done():
                session.cancel()

    return StreamingResponse(events(), media_type="application/x-ndjson")


@router.post("/cancel")
async def cancel_generation(session: ConversationSession = Depends(get_session)):
    """Cancel the in-flight turn, if any."""
    return {"cancelled": session.cancel()}


@router.post("/reset")
async def reset_session(session: ConversationSession = Depends(get_session)):
    """Clear the conversation, the installed animation, and every asset."""
    await session.reset()
    return {"status": "reset"}


@router.get("/conversation")
async def get_conversation(session: ConversationSession = Depends(get_session)):
    return {
        "conversation_id": session.conversation_id,
        "messages": [m.model_dump(mode="json", exclude_none=True) for m in session.messages],
        "source": session.source,
        "used_skills": session.used_skills,
        "has_manual_edits": session.has_manual_edits,
        "busy": session.is_busy,
    }


@router.put("/source")
async def apply_manual_edit(body: ManualEditBody, session: ConversationSession = Depends(get_session)):
    """Compile and install source edited by the user."""
    try:
        artifact = await session.apply_manual_edit(body.source)
    except CorrectableError as e:
        logger.info("Manual edit rejected", extra={"failed_stage": e.stage, "error": e.describe()})
        raise HTTPException(status_code=422, detail={"stage": e.stage, "error": e.describe()})
    return {"component_name": artifact.component_name, "source": artifact.source}


@router.get("/render")
async def render_frame(
    frame: int = Query(0, ge=0),
    fps: int = Query(30, gt=0),
    duration_in_frames: int = Query(150, gt=0),
    session: ConversationSession = Depends(get_session),
):
    """Scene tree of the installed animation at one frame."""
    artifact = session.artifact
    if artifact is None:
        raise HTTPException(status_code=404, detail="No animation has been generated yet")
    try:
        scene = artifact.render(frame, fps=fps, duration_in_frames=duration_in_frames)
    except CorrectableError as e:
        raise HTTPException(status_code=422, detail={"stage": e.stage, "error": e.describe()})
    return {"component_name": artifact.component_name, "frame": frame, "scene": scene.to_dict()}

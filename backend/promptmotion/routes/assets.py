"""
Asset routes

Upload and serve media attached to the conversation. Generated components
reference assets by filename; the locator returned here is what `asset()`
resolves to.
"""

from typing import List

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.responses import FileResponse

from ..core import get_logger
from ..services.assets import MAX_FILES_PER_BATCH, AssetUpload
from ..services.pipeline.generation import ConversationSession
from .generation import get_session

logger = get_logger(__name__, component="asset_routes")

router = APIRouter(tags=["assets"])


def _asset_store(session: ConversationSession):
    if session.asset_store is None:
        raise HTTPException(status_code=503, detail="Asset storage is not configured")
    return session.asset_store


def _describe(asset) -> dict:
    return {
        "name": asset.name,
        "original_name": asset.original_name,
        "type": asset.type,
        "mime_type": asset.mime_type,
        "locator": asset.locator,
        "size": asset.size,
    }


@router.post("/assets")
async def upload_assets(
    files: List[UploadFile] = File(...),
    session: ConversationSession = Depends(get_session),
):
    """
    Attach media files.

    Non-media files are skipped; oversize files are rejected with a reason.
    """
    store = _asset_store(session)
    if len(files) > MAX_FILES_PER_BATCH:
        raise HTTPException(
            status_code=400,
            detail=f"Too many files. Maximum {MAX_FILES_PER_BATCH} per upload",
        )

    uploads = []
    for file in files:
        data = await file.read()
        uploads.append(AssetUpload(
            filename=file.filename or "upload",
            mime_type=file.content_type or "",
            data=data,
        ))

    result = store.add_files(uploads)
    if result.rejected:
        logger.warning("Some uploads were rejected", extra={"rejected": result.rejected})

    return {
        "added": [_describe(a) for a in result.added],
        "rejected": result.rejected,
        "skipped": result.skipped,
        "error": result.error,
    }


@router.get("/assets")
async def list_assets(session: ConversationSession = Depends(get_session)):
    store = _asset_store(session)
    return {"assets": [_describe(a) for a in store.assets]}


@router.get("/assets/{name}")
async def get_asset(name: str, session: ConversationSession = Depends(get_session)):
    """Serve a stored asset by its (collision-resolved) filename."""
    store = _asset_store(session)
    asset = store.get(name)
    path = store.path_for(name)
    if asset is None or path is None or not path.exists():
        raise HTTPException(status_code=404, detail="Asset not found")
    return FileResponse(path, media_type=asset.mime_type, filename=asset.name)

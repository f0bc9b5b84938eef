"""
Media Asset Store

Holds files the user attached to the conversation. Generated components
reach them only by filename, through the `asset()` / `ASSETS` capabilities
whose bindings come from `locators()`.

Handles are owned by the store for the life of the process and are released
only by `clear_all()` (a user-initiated reset).
"""

import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Set
from urllib.parse import quote

from promptmotion.core import get_logger, sanitize_filename
from promptmotion.models import AssetInfo

logger = get_logger(__name__, component="asset_store")

MEDIA_SIZE_LIMITS = {
    "image": 10 * 1024 * 1024,   # 10MB
    "video": 200 * 1024 * 1024,  # 200MB
    "audio": 50 * 1024 * 1024,   # 50MB
}

MAX_FILES_PER_BATCH = 10


@dataclass(frozen=True)
class MediaAsset:
    name: str
    original_name: str
    type: str
    mime_type: str
    locator: str
    size: int


@dataclass(frozen=True)
class AssetUpload:
    """A file as received from the client."""
    filename: str
    mime_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class AddResult:
    added: List[MediaAsset] = field(default_factory=list)
    rejected: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)

    @property
    def error(self) -> Optional[str]:
        """User-facing message for rejected files, if any."""
        if not self.rejected:
            return None
        noun = "File" if len(self.rejected) == 1 else "Files"
        return f"{noun} rejected: {', '.join(self.rejected)}"


def classify_media_type(mime_type: str) -> Optional[str]:
    for prefix in ("image", "video", "audio"):
        if mime_type.startswith(f"{prefix}/"):
            return prefix
    return None


def resolve_filename(name: str, existing: Set[str]) -> str:
    """`name` if free, otherwise name_2.ext, name_3.ext, ..."""
    if name not in existing:
        return name
    dot = name.rfind(".")
    base, ext = (name[:dot], name[dot:]) if dot > 0 else (name, "")
    counter = 2
    while f"{base}_{counter}{ext}" in existing:
        counter += 1
    return f"{base}_{counter}{ext}"


def format_size(num_bytes: int) -> str:
    if num_bytes >= 1024 * 1024:
        return f"{round(num_bytes / (1024 * 1024))}MB"
    return f"{round(num_bytes / 1024)}KB"


class MediaAssetStore:
    """Filename-addressed store of uploaded media."""

    def __init__(self, storage_dir: Optional[Path] = None, url_prefix: str = "/assets"):
        if storage_dir is None:
            from promptmotion.config import ASSET_DIR

            storage_dir = ASSET_DIR
        self.storage_dir = Path(storage_dir)
        self.url_prefix = url_prefix.rstrip("/")
        self._assets: List[MediaAsset] = []

    @property
    def assets(self) -> tuple:
        return tuple(self._assets)

    def __len__(self) -> int:
        return len(self._assets)

    def add_files(self, uploads: Sequence[AssetUpload]) -> AddResult:
        """
        Store media files under collision-free names.

        Non-media files are skipped; oversize files and files beyond the
        per-batch limit are rejected with a reason.
        """
        result = AddResult()
        existing = {asset.name for asset in self._assets}
        accepted = 0

        for upload in uploads:
            media_type = classify_media_type(upload.mime_type or "")
            if media_type is None:
                result.skipped.append(upload.filename)
                continue

            limit = MEDIA_SIZE_LIMITS[media_type]
            if upload.size > limit:
                result.rejected.append(f"{upload.filename} (max {format_size(limit)})")
                continue
            if accepted >= MAX_FILES_PER_BATCH:
                result.rejected.append(f"{upload.filename} (max {MAX_FILES_PER_BATCH} files at once)")
                continue

            try:
                safe_name = sanitize_filename(upload.filename)
            except ValueError:
                result.rejected.append(f"{upload.filename!r} (invalid name)")
                continue

            name = resolve_filename(safe_name, existing)
            existing.add(name)
            self.storage_dir.mkdir(parents=True, exist_ok=True)
            (self.storage_dir / name).write_bytes(upload.data)

            asset = MediaAsset(
                name=name,
                original_name=upload.filename,
                type=media_type,
                mime_type=upload.mime_type,
                locator=f"{self.url_prefix}/{quote(name)}",
                size=upload.size,
            )
            self._assets.append(asset)
            result.added.append(asset)
            accepted += 1

        if result.added or result.rejected:
            logger.info(
                f"Stored {len(result.added)} asset(s)",
                extra={
                    "added": [a.name for a in result.added],
                    "rejected": result.rejected,
                    "skipped": result.skipped,
                },
            )
        return result

    def get(self, name: str) -> Optional[MediaAsset]:
        for asset in self._assets:
            if asset.name == name:
                return asset
        return None

    def path_for(self, name: str) -> Optional[Path]:
        """Stored file for a known asset name."""
        if self.get(name) is None:
            return None
        return self.storage_dir / name

    def locators(self) -> Dict[str, str]:
        """filename -> locator, as consumed by the capability-scope builder."""
        return {asset.name: asset.locator for asset in self._assets}

    def asset_info(self) -> List[AssetInfo]:
        """Name and type metadata for generation prompts."""
        return [AssetInfo(name=a.name, type=a.type) for a in self._assets]

    def clear_all(self) -> None:
        """Release every asset and its stored file."""
        for asset in self._assets:
            path = self.storage_dir / asset.name
            if path.exists():
                path.unlink()
        count = len(self._assets)
        self._assets = []
        if self.storage_dir.exists() and not any(self.storage_dir.iterdir()):
            shutil.rmtree(self.storage_dir, ignore_errors=True)
        logger.info(f"Released {count} asset(s)")

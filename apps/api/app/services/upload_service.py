from __future__ import annotations

import logging
import uuid
from pathlib import Path

from fastapi import HTTPException, UploadFile

from app.core.config import settings
from app.core.paths import asset

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_EXTENSIONS = {"png", "jpg", "jpeg", "gif", "webp"}
UPLOADS_URL_PREFIX = "/uploads"


class UploadService:
    def _extension(self, filename: str | None) -> str:
        if not filename or "." not in filename:
            return ""
        return filename.rsplit(".", 1)[1].lower()

    async def store_image(self, lesson_id: int, upload: UploadFile, script_name: str = "") -> str:
        """Save an editor image under the lesson's folder and return its public URL."""
        ext = self._extension(upload.filename)
        content_type = (upload.content_type or "").lower()
        if ext not in ALLOWED_IMAGE_EXTENSIONS or not content_type.startswith("image/"):
            raise HTTPException(status_code=415, detail="Only png, jpg, gif and webp images are accepted")

        contents = await upload.read()
        if not contents:
            raise HTTPException(status_code=400, detail="Empty file")
        if len(contents) > settings.max_upload_bytes:
            raise HTTPException(status_code=413, detail=f"File too large (max {settings.max_upload_bytes} bytes)")

        folder = f"lesson_{lesson_id}"
        name = f"{uuid.uuid4().hex}.{ext}"
        target_dir = Path(settings.upload_dir) / folder
        target_dir.mkdir(parents=True, exist_ok=True)
        (target_dir / name).write_bytes(contents)

        logger.info("Image stored: lesson_id=%s file=%s bytes=%d", lesson_id, name, len(contents))
        return asset(f"{UPLOADS_URL_PREFIX}/{folder}/{name}", script_name)


upload_service = UploadService()

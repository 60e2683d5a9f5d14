"""`/api.php?action=...` entry point used by the admin editor script.

Dispatches on `action` to the same services the `/api/v1/admin` routes use.
"""

from __future__ import annotations

import json

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.encoders import jsonable_encoder
from pydantic import ValidationError
from sqlalchemy.orm import Session
from starlette.datastructures import UploadFile

from app.api.v1.deps import require_admin, script_path
from app.core.database import get_db
from app.schemas.lesson import LessonSaveRequest
from app.services.lesson_service import lesson_service
from app.services.upload_service import upload_service

router = APIRouter(tags=["legacy"], dependencies=[Depends(require_admin)])


async def _lesson_save(request: Request, db: Session) -> dict:
    try:
        body = await request.json()
    except json.JSONDecodeError:
        raise HTTPException(status_code=400, detail="Malformed JSON body")
    try:
        payload = LessonSaveRequest.model_validate(body)
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=jsonable_encoder(exc.errors(include_url=False)))
    lesson = lesson_service.save_lesson(db, payload)
    return {"ok": True, "id": lesson.id, "slug": lesson.slug, "is_published": lesson.is_published}


async def _upload_image(request: Request) -> dict:
    form = await request.form()
    upload = form.get("file")
    if not isinstance(upload, UploadFile):
        raise HTTPException(status_code=400, detail="Missing file")
    try:
        lesson_id = int(form.get("lesson_id") or 0)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid lesson_id")
    url = await upload_service.store_image(lesson_id, upload, script_path(request))
    return {"url": url}


@router.post("/api.php")
async def api_post(request: Request, action: str = Query(...), db: Session = Depends(get_db)):
    if action == "lesson_save":
        return await _lesson_save(request, db)
    if action == "upload_image":
        return await _upload_image(request)
    raise HTTPException(status_code=400, detail=f"Unknown action: {action}")


@router.get("/api.php")
def api_get(action: str = Query(...), id: int | None = None, db: Session = Depends(get_db)):
    if action == "lesson_get":
        if id is None:
            raise HTTPException(status_code=400, detail="Missing id")
        return lesson_service.serialize(lesson_service.get_lesson(db, id))
    raise HTTPException(status_code=400, detail=f"Unknown action: {action}")

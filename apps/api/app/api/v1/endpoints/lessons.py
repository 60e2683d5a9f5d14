from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from sqlalchemy.orm import Session

from app.api.v1.deps import require_admin, script_path
from app.core.database import get_db
from app.schemas.lesson import (
    CreateSectionRequest,
    LessonResponse,
    LessonSaveRequest,
    LessonSaveResponse,
    SectionResponse,
    UploadImageResponse,
)
from app.services.lesson_service import lesson_service
from app.services.upload_service import upload_service

router = APIRouter(prefix="/admin", tags=["admin-lessons"], dependencies=[Depends(require_admin)])


@router.get("/sections")
def list_sections(db: Session = Depends(get_db)):
    return {
        "items": [
            {
                "id": section.id,
                "title_ru": section.title_ru,
                "slug": section.slug,
                "position": section.position,
                "lessons": [lesson_service.summarize(lesson) for lesson in section.lessons],
            }
            for section in lesson_service.list_sections(db)
        ]
    }


@router.post("/sections", response_model=SectionResponse)
def create_section(payload: CreateSectionRequest, db: Session = Depends(get_db)):
    section = lesson_service.create_section(db, payload)
    return SectionResponse(id=section.id, title_ru=section.title_ru, slug=section.slug, position=section.position)


@router.get("/lessons")
def list_lessons(section_id: int | None = None, db: Session = Depends(get_db)):
    lessons = lesson_service.list_lessons(db, section_id=section_id)
    return {"items": [lesson_service.summarize(lesson) for lesson in lessons]}


@router.post("/lessons", response_model=LessonSaveResponse)
def save_lesson(payload: LessonSaveRequest, db: Session = Depends(get_db)):
    lesson = lesson_service.save_lesson(db, payload)
    return LessonSaveResponse(id=lesson.id, slug=lesson.slug, is_published=lesson.is_published)


@router.get("/lessons/{lesson_id}", response_model=LessonResponse)
def get_lesson(lesson_id: int, db: Session = Depends(get_db)):
    return lesson_service.serialize(lesson_service.get_lesson(db, lesson_id))


@router.delete("/lessons/{lesson_id}")
def delete_lesson(lesson_id: int, db: Session = Depends(get_db)):
    lesson_service.delete_lesson(db, lesson_id)
    return {"ok": True}


@router.post("/lessons/upload-image", response_model=UploadImageResponse)
async def upload_image(request: Request, file: UploadFile = File(...), lesson_id: int = Form(0)):
    url = await upload_service.store_image(lesson_id, file, script_path(request))
    return UploadImageResponse(url=url)

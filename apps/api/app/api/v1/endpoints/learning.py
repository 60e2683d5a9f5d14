from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.schemas.lesson import LessonResponse
from app.services.lesson_service import lesson_service

router = APIRouter(tags=["learning"])


@router.get("/sections")
def list_sections(db: Session = Depends(get_db)):
    items = []
    for section in lesson_service.list_sections(db):
        lessons = [lesson_service.summarize(lesson) for lesson in section.lessons if lesson.is_published]
        items.append({"id": section.id, "title_ru": section.title_ru, "slug": section.slug, "lessons": lessons})
    return {"items": items}


@router.get("/lessons/{slug}", response_model=LessonResponse)
def get_lesson(slug: str, db: Session = Depends(get_db)):
    return lesson_service.serialize(lesson_service.get_published_lesson(db, slug))

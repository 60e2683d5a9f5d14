from __future__ import annotations

import logging
import re

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.lesson import Lesson, Section
from app.schemas.lesson import SLUG_PATTERN, CreateSectionRequest, LessonContent, LessonSaveRequest
from app.services.sanitizer import normalize_rich_html

logger = logging.getLogger(__name__)

_SLUG_RE = re.compile(SLUG_PATTERN)


class LessonService:
    def _normalize_content(self, content: LessonContent) -> dict:
        data = content.model_dump(by_alias=True)
        data["theory_html"] = normalize_rich_html(data["theory_html"])
        for question in data["tests"]:
            question["question_html"] = normalize_rich_html(question["question_html"])
        for task in data["tasks"]:
            task["text_html"] = normalize_rich_html(task["text_html"])
        return data

    def serialize(self, lesson: Lesson) -> dict:
        content = lesson.content or {}
        return {
            "id": lesson.id,
            "section_id": lesson.section_id,
            "title_ru": lesson.title_ru,
            "slug": lesson.slug,
            "is_published": lesson.is_published,
            "content": {
                "theory_html": content.get("theory_html", ""),
                "tests": content.get("tests", []),
                "tasks": content.get("tasks", []),
            },
        }

    def summarize(self, lesson: Lesson) -> dict:
        return {
            "id": lesson.id,
            "title_ru": lesson.title_ru,
            "slug": lesson.slug,
            "is_published": lesson.is_published,
        }

    def _commit_unique(self, db: Session, detail: str) -> None:
        # Two writers can both pass the slug check; the unique index decides.
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise HTTPException(status_code=409, detail=detail)

    def slug_is_wellformed(self, slug: str) -> bool:
        return bool(_SLUG_RE.fullmatch(slug))

    def validate_slug(self, db: Session, slug: str, exclude_id: int | None = None) -> bool:
        if not self.slug_is_wellformed(slug):
            return False
        query = db.query(Lesson.id).filter(Lesson.slug == slug)
        if exclude_id is not None:
            query = query.filter(Lesson.id != exclude_id)
        return query.first() is None

    def get_section(self, db: Session, section_id: int) -> Section:
        section = db.get(Section, section_id)
        if not section:
            raise HTTPException(status_code=404, detail="Section not found")
        return section

    def list_sections(self, db: Session) -> list[Section]:
        return db.query(Section).order_by(Section.position, Section.id).all()

    def create_section(self, db: Session, payload: CreateSectionRequest) -> Section:
        if db.query(Section.id).filter(Section.slug == payload.slug).first():
            raise HTTPException(status_code=409, detail="Section slug already in use")
        section = Section(title_ru=payload.title_ru.strip(), slug=payload.slug, position=payload.position)
        db.add(section)
        self._commit_unique(db, "Section slug already in use")
        db.refresh(section)
        return section

    def get_lesson(self, db: Session, lesson_id: int) -> Lesson:
        lesson = db.get(Lesson, lesson_id)
        if not lesson:
            raise HTTPException(status_code=404, detail="Lesson not found")
        return lesson

    def get_published_lesson(self, db: Session, slug: str) -> Lesson:
        lesson = db.query(Lesson).filter(Lesson.slug == slug, Lesson.is_published.is_(True)).first()
        if not lesson:
            raise HTTPException(status_code=404, detail="Lesson not found")
        return lesson

    def list_lessons(self, db: Session, section_id: int | None = None, published_only: bool = False) -> list[Lesson]:
        query = db.query(Lesson)
        if section_id is not None:
            query = query.filter(Lesson.section_id == section_id)
        if published_only:
            query = query.filter(Lesson.is_published.is_(True))
        return query.order_by(Lesson.position, Lesson.id).all()

    def save_lesson(self, db: Session, payload: LessonSaveRequest) -> Lesson:
        """Create (id is None) or overwrite a lesson. Concurrent saves: last write wins."""
        slug = payload.slug.strip()
        if not self.slug_is_wellformed(slug):
            raise HTTPException(status_code=422, detail="Invalid slug: lowercase letters and hyphens only")

        self.get_section(db, payload.section_id)

        lesson = Lesson() if payload.id is None else self.get_lesson(db, payload.id)

        if not self.validate_slug(db, slug, exclude_id=payload.id):
            raise HTTPException(status_code=409, detail="Slug already in use")

        lesson.section_id = payload.section_id
        lesson.title_ru = payload.title_ru.strip()
        lesson.slug = slug
        lesson.is_published = payload.is_published
        lesson.content = self._normalize_content(payload.content)
        db.add(lesson)
        self._commit_unique(db, "Slug already in use")
        db.refresh(lesson)

        logger.info("Lesson saved: id=%s slug=%s published=%s", lesson.id, lesson.slug, lesson.is_published)
        return lesson

    def delete_lesson(self, db: Session, lesson_id: int) -> None:
        lesson = self.get_lesson(db, lesson_id)
        db.delete(lesson)
        db.commit()
        logger.info("Lesson deleted: id=%s", lesson_id)


lesson_service = LessonService()

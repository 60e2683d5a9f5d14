from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

SLUG_PATTERN = r"^[a-z-]+$"
ANSWERS_PER_QUESTION = 4


class QuizQuestion(BaseModel):
    """One self-check question: exactly four answers, one of them correct."""

    model_config = ConfigDict(populate_by_name=True)

    question_html: str = ""
    answers: list[str] = Field(min_length=ANSWERS_PER_QUESTION, max_length=ANSWERS_PER_QUESTION)
    correct_index: int = Field(alias="correctIndex", ge=0, le=ANSWERS_PER_QUESTION - 1)


class LessonTask(BaseModel):
    title: str = ""
    text_html: str = ""


class LessonContent(BaseModel):
    theory_html: str = ""
    tests: list[QuizQuestion] = Field(default_factory=list)
    tasks: list[LessonTask] = Field(default_factory=list)


class LessonSaveRequest(BaseModel):
    id: int | None = None
    section_id: int
    title_ru: str = Field(min_length=1, max_length=200)
    slug: str = Field(min_length=1, max_length=120)
    is_published: bool = False
    content: LessonContent = Field(default_factory=LessonContent)


class LessonSaveResponse(BaseModel):
    ok: bool = True
    id: int
    slug: str
    is_published: bool


class LessonResponse(BaseModel):
    id: int
    section_id: int
    title_ru: str
    slug: str
    is_published: bool
    content: LessonContent


class LessonSummary(BaseModel):
    id: int
    title_ru: str
    slug: str
    is_published: bool


class CreateSectionRequest(BaseModel):
    title_ru: str = Field(min_length=1, max_length=200)
    slug: str = Field(pattern=SLUG_PATTERN, max_length=120)
    position: int = 0


class SectionResponse(BaseModel):
    id: int
    title_ru: str
    slug: str
    position: int
    lessons: list[LessonSummary] = Field(default_factory=list)


class UploadImageResponse(BaseModel):
    url: str

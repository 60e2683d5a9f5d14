from __future__ import annotations

from app.models.lesson import Lesson, Section

__all__ = [
    "Lesson",
    "Section",
]

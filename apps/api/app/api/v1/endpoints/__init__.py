from __future__ import annotations

from app.api.v1.endpoints import auth, learning, lessons

__all__ = ["auth", "learning", "lessons"]

from __future__ import annotations

from fastapi import APIRouter

from app.api.v1.endpoints import auth, learning, lessons

api_router = APIRouter()
api_router.include_router(auth.router)
api_router.include_router(lessons.router)
api_router.include_router(learning.router)

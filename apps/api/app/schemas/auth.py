from __future__ import annotations

from pydantic import BaseModel


class LoginRequest(BaseModel):
    login: str
    password: str


class LoginResponse(BaseModel):
    ok: bool


class AdminStatusResponse(BaseModel):
    authenticated: bool
    admin_base: str

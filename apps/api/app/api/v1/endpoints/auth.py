from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from app.api.v1.deps import clear_session_cookie, get_session, get_session_store, script_path, set_session_cookie
from app.core.paths import base_path
from app.core.sessions import SessionContext, SessionStore
from app.schemas.auth import AdminStatusResponse, LoginRequest, LoginResponse
from app.services.admin_auth import admin_auth_service

router = APIRouter(prefix="/admin", tags=["admin-auth"])


@router.post("/login", response_model=LoginResponse)
async def login(
    payload: LoginRequest,
    response: Response,
    session: SessionContext = Depends(get_session),
    store: SessionStore = Depends(get_session_store),
):
    ok = await admin_auth_service.login(session, store, payload.login, payload.password)
    if not ok:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    set_session_cookie(response, session.id)
    return LoginResponse(ok=True)


@router.post("/logout", response_model=LoginResponse)
async def logout(
    response: Response,
    session: SessionContext = Depends(get_session),
    store: SessionStore = Depends(get_session_store),
):
    await admin_auth_service.logout(session, store)
    clear_session_cookie(response)
    return LoginResponse(ok=True)


@router.get("/me", response_model=AdminStatusResponse)
def me(request: Request, session: SessionContext = Depends(get_session)):
    return AdminStatusResponse(
        authenticated=admin_auth_service.is_authenticated(session),
        admin_base=base_path(script_path(request)),
    )

from __future__ import annotations

from fastapi import Depends, HTTPException, Request, Response, status

from app.core.config import settings
from app.core.sessions import SessionContext, SessionStore, session_store
from app.services.admin_auth import admin_auth_service


def get_session_store() -> SessionStore:
    return session_store


async def get_session(request: Request, store: SessionStore = Depends(get_session_store)) -> SessionContext:
    session_id = request.cookies.get(settings.session_cookie_name)
    data = await store.load(session_id)
    if not data:
        return SessionContext()
    return SessionContext(id=session_id, data=data)


async def require_admin(
    response: Response,
    session: SessionContext = Depends(get_session),
    store: SessionStore = Depends(get_session_store),
) -> SessionContext:
    if not admin_auth_service.is_authenticated(session):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Admin authentication required")
    # Sliding expiry: each admin request pushes both the record and the cookie forward.
    await store.save(session.id, session.data)
    set_session_cookie(response, session.id)
    return session


def set_session_cookie(response: Response, session_id: str) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=session_id,
        max_age=settings.session_ttl_seconds,
        path=settings.session_cookie_path,
        domain=settings.session_cookie_domain,
        secure=settings.session_cookie_secure,
        httponly=settings.session_cookie_httponly,
        samesite=settings.session_cookie_samesite,
    )


def clear_session_cookie(response: Response) -> None:
    # Same path/domain/flags as when set, otherwise the browser keeps the old cookie.
    response.delete_cookie(
        key=settings.session_cookie_name,
        path=settings.session_cookie_path,
        domain=settings.session_cookie_domain,
        secure=settings.session_cookie_secure,
        httponly=settings.session_cookie_httponly,
        samesite=settings.session_cookie_samesite,
    )


def script_path(request: Request) -> str:
    """Path of the mount point the request came through, used to work out the base path."""
    return request.scope.get("root_path", "") + "/"

from __future__ import annotations

import logging

from app.core.config import settings
from app.core.security import credentials_match, mask_secret
from app.core.sessions import SessionContext, SessionStore

logger = logging.getLogger(__name__)

ADMIN_FLAG = "admin_ok"


class AdminAuthService:
    def is_authenticated(self, session: SessionContext) -> bool:
        return bool(session.data.get(ADMIN_FLAG))

    async def login(self, session: SessionContext, store: SessionStore, login: str, password: str) -> bool:
        creds = settings.admin_credentials
        env_login = creds["login"]
        env_pass = creds["password"]
        ok = credentials_match(login, password, env_login, env_pass)

        if not ok:
            logger.warning(
                "Admin login failed: provided_login=%s env_login=%s env_pass_len=%d env_pass_mask=%s",
                login,
                env_login,
                len(env_pass),
                mask_secret(env_pass),
            )
            return False

        # New id on privilege change so a planted session id is never upgraded.
        await store.destroy(session.id)
        session.id = store.new_id()
        session.data[ADMIN_FLAG] = True
        await store.save(session.id, session.data)
        return True

    async def logout(self, session: SessionContext, store: SessionStore) -> None:
        session.data.clear()
        await store.destroy(session.id)
        session.id = None


admin_auth_service = AdminAuthService()

from __future__ import annotations

import json
import logging
import secrets
import time
from dataclasses import dataclass, field

from redis.asyncio import Redis

from app.core.config import settings

logger = logging.getLogger(__name__)

KEY_PREFIX = "session:"


@dataclass
class SessionContext:
    """Session record bound to the current request.

    `id` is None until the visitor gets a cookie; `data` is the mutable payload.
    """

    id: str | None = None
    data: dict = field(default_factory=dict)


class MemorySessionBackend:
    def __init__(self, clock=time.time) -> None:
        self._store: dict[str, tuple[float, str]] = {}
        self._clock = clock

    async def get(self, key: str) -> dict | None:
        entry = self._store.get(key)
        if not entry:
            return None
        expires_at, value = entry
        if self._clock() > expires_at:
            self._store.pop(key, None)
            return None
        return json.loads(value)

    async def set(self, key: str, value: dict, ttl_seconds: int) -> None:
        now = self._clock()
        self._sweep(now)
        self._store[key] = (now + ttl_seconds, json.dumps(value))

    async def delete(self, key: str) -> None:
        self._store.pop(key, None)

    def _sweep(self, now: float) -> None:
        expired = [key for key, (expires_at, _) in self._store.items() if now > expires_at]
        for key in expired:
            del self._store[key]

    def __len__(self) -> int:
        return len(self._store)


class SessionStore:
    """Server-side session records keyed by an opaque id.

    Uses Redis when `redis_url` is set and reachable at startup, the in-process
    backend otherwise. A Redis error on a single call falls back to memory for that call.
    """

    def __init__(self, ttl_seconds: int | None = None, clock=time.time) -> None:
        self._memory = MemorySessionBackend(clock)
        self._redis = None
        self.ttl_seconds = ttl_seconds or settings.session_ttl_seconds

    @property
    def backend_name(self) -> str:
        return "redis" if self._redis else "memory"

    async def connect(self) -> None:
        if not settings.redis_url:
            return
        try:
            client = Redis.from_url(settings.redis_url, decode_responses=True)
            await client.ping()
            self._redis = client
        except Exception as exc:
            logger.warning("Redis unavailable for sessions, using memory: %s", exc)
            self._redis = None

    async def close(self) -> None:
        if self._redis:
            await self._redis.close()

    @staticmethod
    def new_id() -> str:
        return secrets.token_urlsafe(32)

    async def load(self, session_id: str | None) -> dict:
        if not session_id:
            return {}
        key = KEY_PREFIX + session_id
        if self._redis:
            try:
                value = await self._redis.get(key)
                return json.loads(value) if value else {}
            except Exception as exc:
                logger.warning("Redis session read failed: %s", exc)
        return await self._memory.get(key) or {}

    async def save(self, session_id: str, data: dict) -> None:
        key = KEY_PREFIX + session_id
        serialized = json.dumps(data)
        if self._redis:
            try:
                await self._redis.set(name=key, value=serialized, ex=self.ttl_seconds)
                return
            except Exception as exc:
                logger.warning("Redis session write failed: %s", exc)
        await self._memory.set(key, data, self.ttl_seconds)

    async def destroy(self, session_id: str | None) -> None:
        if not session_id:
            return
        key = KEY_PREFIX + session_id
        if self._redis:
            try:
                await self._redis.delete(key)
            except Exception as exc:
                logger.warning("Redis session delete failed: %s", exc)
        await self._memory.delete(key)


session_store = SessionStore()

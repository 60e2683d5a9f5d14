from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from app.api.legacy import router as legacy_router
from app.api.v1.deps import script_path
from app.api.v1.router import api_router
from app.core.config import settings
from app.core.database import Base, engine
from app.core.logging import configure_logging, set_request_id
from app.core.paths import base_path
from app.core.sessions import session_store
from app.services.upload_service import UPLOADS_URL_PREFIX

configure_logging(settings.log_level)
logger = logging.getLogger("domlearn")


@asynccontextmanager
async def lifespan(_: FastAPI):
    Base.metadata.create_all(bind=engine)
    Path(settings.upload_dir).mkdir(parents=True, exist_ok=True)
    await session_store.connect()
    logger.info("DOMLearn API started: env=%s sessions=%s", settings.env, session_store.backend_name)
    yield
    await session_store.close()


app = FastAPI(
    title="DOMLearn API",
    version="1.0.0",
    description="Lesson viewer and admin back office for DOMLearn.",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_origin_regex=settings.cors_origin_regex,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    rid = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    set_request_id(rid)
    base_path(script_path(request))
    try:
        response = await call_next(request)
    except Exception:
        logger.exception("Unhandled error: %s %s", request.method, request.url.path)
        raise
    finally:
        set_request_id(None)
    response.headers["X-Request-ID"] = rid
    return response


@app.get("/health")
def health():
    return {"status": "ok"}


app.include_router(api_router, prefix=settings.api_v1_prefix)
app.include_router(legacy_router)
app.mount(UPLOADS_URL_PREFIX, StaticFiles(directory=settings.upload_dir, check_dir=False), name="uploads")

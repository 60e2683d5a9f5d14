"""
Shared pytest fixtures for the DOMLearn API tests.

The app reads its settings at import time, so the environment is pointed at a
throwaway SQLite database, in-process sessions and known admin credentials
before anything from `app` is imported.
"""

import os
import tempfile
from pathlib import Path

_TMP = Path(tempfile.mkdtemp(prefix="domlearn-tests-"))

os.environ["DATABASE_URL"] = f"sqlite:///{_TMP / 'domlearn.db'}"
os.environ["REDIS_URL"] = ""
os.environ["ADMIN_LOGIN"] = "admin"
os.environ["ADMIN_PASSWORD"] = "secret"
os.environ["UPLOAD_DIR"] = str(_TMP / "uploads")
os.environ["SANITIZE_HTML"] = "false"
os.environ.pop("DOCUMENT_ROOT", None)

import pytest
from fastapi.testclient import TestClient

from app.core.database import Base, engine
from app.core.paths import reset_base_path
from app.main import app

ADMIN_LOGIN = "admin"
ADMIN_PASSWORD = "secret"


@pytest.fixture(autouse=True)
def fresh_database():
    """Every test starts from empty tables."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture(autouse=True)
def fresh_base_path():
    reset_base_path()
    yield
    reset_base_path()


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def admin_client(client):
    """Client holding an authenticated admin session cookie."""
    response = client.post("/api/v1/admin/login", json={"login": ADMIN_LOGIN, "password": ADMIN_PASSWORD})
    assert response.status_code == 200
    return client


@pytest.fixture
def section_id(admin_client):
    response = admin_client.post("/api/v1/admin/sections", json={"title_ru": "Основы DOM", "slug": "dom-basics"})
    assert response.status_code == 200
    return response.json()["id"]


@pytest.fixture
def lesson_payload(section_id):
    """Payload shaped the way the editor modal posts it."""
    return {
        "id": None,
        "section_id": section_id,
        "title_ru": "Селекторы",
        "slug": "selectors",
        "is_published": False,
        "content": {
            "theory_html": '<p>Hello <span style="color: hsl(0, 0%, 0%);">world</span>!</p>',
            "tests": [
                {
                    "question_html": "<p>Что вернёт <code>querySelector</code>?</p>",
                    "answers": ["Элемент", "Массив", "Строку", "Число"],
                    "correctIndex": 0,
                }
            ],
            "tasks": [
                {"title": "Найти кнопку", "text_html": '<p><span style="color:#1b1c1d; font-weight:bold">id=save</span></p>'}
            ],
        },
    }

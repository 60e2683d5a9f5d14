"""Tests for lesson authoring (`/api.php` and `/api/v1/admin`) and the public lesson endpoints."""

import copy
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from app.core.config import settings
from app.main import app
from app.services.lesson_service import lesson_service

from conftest import ADMIN_LOGIN, ADMIN_PASSWORD

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


def save(client, payload):
    return client.post("/api.php?action=lesson_save", json=payload)


# --- lesson_save ---


def test_save_new_draft(admin_client, lesson_payload):
    response = save(admin_client, lesson_payload)
    assert response.status_code == 200
    data = response.json()
    assert data["ok"] is True
    assert isinstance(data["id"], int)
    assert data["slug"] == "selectors"
    assert data["is_published"] is False


def test_saved_lesson_round_trips_through_lesson_get(admin_client, lesson_payload):
    lesson_id = save(admin_client, lesson_payload).json()["id"]

    response = admin_client.get(f"/api.php?action=lesson_get&id={lesson_id}")
    assert response.status_code == 200
    lesson = response.json()

    assert lesson["section_id"] == lesson_payload["section_id"]
    assert lesson["title_ru"] == "Селекторы"
    assert lesson["content"]["tests"] == lesson_payload["content"]["tests"]
    assert lesson["content"]["tasks"][0]["title"] == "Найти кнопку"


def test_rich_text_is_sanitized_on_save(admin_client, lesson_payload):
    lesson_payload["content"]["tests"][0]["question_html"] = '<p><span style="color:#000">Что</span>?</p>'
    lesson_id = save(admin_client, lesson_payload).json()["id"]

    content = admin_client.get(f"/api/v1/admin/lessons/{lesson_id}").json()["content"]
    assert content["theory_html"] == "<p>Hello world!</p>"
    assert content["tests"][0]["question_html"] == "<p>Что?</p>"
    assert content["tasks"][0]["text_html"] == '<p><span style="font-weight:bold">id=save</span></p>'


def test_update_existing_lesson(admin_client, lesson_payload):
    lesson_id = save(admin_client, lesson_payload).json()["id"]

    updated = copy.deepcopy(lesson_payload)
    updated["id"] = lesson_id
    updated["title_ru"] = "Селекторы и поиск"
    updated["slug"] = "selectors-search"
    response = save(admin_client, updated)

    assert response.status_code == 200
    assert response.json()["id"] == lesson_id
    lesson = admin_client.get(f"/api/v1/admin/lessons/{lesson_id}").json()
    assert lesson["title_ru"] == "Селекторы и поиск"
    assert lesson["slug"] == "selectors-search"


def test_resaving_with_same_slug_is_allowed(admin_client, lesson_payload):
    lesson_id = save(admin_client, lesson_payload).json()["id"]
    lesson_payload["id"] = lesson_id
    assert save(admin_client, lesson_payload).status_code == 200


@pytest.mark.parametrize("slug", ["Selectors", "selectors_1", "select ors", "селекторы", "a1"])
def test_malformed_slug_is_rejected(admin_client, lesson_payload, slug):
    lesson_payload["slug"] = slug
    response = save(admin_client, lesson_payload)
    assert response.status_code == 422


def test_duplicate_slug_is_rejected(admin_client, lesson_payload):
    assert save(admin_client, lesson_payload).status_code == 200
    response = save(admin_client, lesson_payload)
    assert response.status_code == 409
    assert response.json()["detail"] == "Slug already in use"


def test_slug_race_lost_at_commit_is_409(admin_client, lesson_payload, monkeypatch):
    assert save(admin_client, lesson_payload).status_code == 200
    # The other writer committed between our uniqueness check and our commit.
    monkeypatch.setattr(lesson_service, "validate_slug", lambda *args, **kwargs: True)

    response = save(admin_client, lesson_payload)
    assert response.status_code == 409
    assert response.json()["detail"] == "Slug already in use"
    assert len(admin_client.get("/api/v1/admin/lessons").json()["items"]) == 1


@pytest.mark.parametrize(
    "question",
    [
        {"question_html": "q", "answers": ["a", "b", "c"], "correctIndex": 0},
        {"question_html": "q", "answers": ["a", "b", "c", "d", "e"], "correctIndex": 0},
        {"question_html": "q", "answers": ["a", "b", "c", "d"], "correctIndex": -1},
        {"question_html": "q", "answers": ["a", "b", "c", "d"], "correctIndex": 4},
        {"question_html": "q", "answers": ["a", "b", "c", "d"]},
    ],
)
def test_quiz_structure_is_enforced(admin_client, lesson_payload, question):
    lesson_payload["content"]["tests"] = [question]
    assert save(admin_client, lesson_payload).status_code == 422


def test_missing_section_is_404(admin_client, lesson_payload):
    lesson_payload["section_id"] = 9999
    response = save(admin_client, lesson_payload)
    assert response.status_code == 404
    assert response.json()["detail"] == "Section not found"


def test_updating_missing_lesson_is_404(admin_client, lesson_payload):
    lesson_payload["id"] = 9999
    assert save(admin_client, lesson_payload).status_code == 404


def test_malformed_json_body(admin_client):
    response = admin_client.post(
        "/api.php?action=lesson_save",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == 400


def test_unknown_action(admin_client):
    assert admin_client.post("/api.php?action=lesson_delete_all").status_code == 400
    assert admin_client.get("/api.php?action=whatever").status_code == 400


def test_lesson_get_requires_id(admin_client):
    assert admin_client.get("/api.php?action=lesson_get").status_code == 400


# --- upload_image ---


def test_upload_image(admin_client):
    response = admin_client.post(
        "/api.php?action=upload_image",
        files={"file": ("diagram.png", PNG_BYTES, "image/png")},
        data={"lesson_id": "5"},
    )
    assert response.status_code == 200
    url = response.json()["url"]
    assert url.startswith("/uploads/lesson_5/")
    assert url.endswith(".png")

    stored = Path(settings.upload_dir) / "lesson_5" / url.rsplit("/", 1)[1]
    assert stored.read_bytes() == PNG_BYTES

    served = admin_client.get(url)
    assert served.status_code == 200
    assert served.content == PNG_BYTES


def test_upload_for_unsaved_lesson_goes_to_lesson_zero(admin_client):
    response = admin_client.post(
        "/api.php?action=upload_image",
        files={"file": ("photo.JPG", PNG_BYTES, "image/jpeg")},
        data={"lesson_id": "0"},
    )
    assert response.status_code == 200
    assert response.json()["url"].startswith("/uploads/lesson_0/")


def test_upload_rejects_non_images(admin_client):
    response = admin_client.post(
        "/api.php?action=upload_image",
        files={"file": ("notes.txt", b"hello", "text/plain")},
        data={"lesson_id": "1"},
    )
    assert response.status_code == 415


def test_upload_rejects_empty_file(admin_client):
    response = admin_client.post(
        "/api.php?action=upload_image",
        files={"file": ("empty.png", b"", "image/png")},
        data={"lesson_id": "1"},
    )
    assert response.status_code == 400


def test_upload_rejects_oversized_file(admin_client, monkeypatch):
    monkeypatch.setattr(settings, "max_upload_bytes", 10)
    response = admin_client.post(
        "/api.php?action=upload_image",
        files={"file": ("big.png", PNG_BYTES, "image/png")},
        data={"lesson_id": "1"},
    )
    assert response.status_code == 413


def test_upload_without_file(admin_client):
    response = admin_client.post("/api.php?action=upload_image", data={"lesson_id": "1"})
    assert response.status_code == 400


def test_rest_upload_endpoint(admin_client):
    response = admin_client.post(
        "/api/v1/admin/lessons/upload-image",
        files={"file": ("pic.webp", PNG_BYTES, "image/webp")},
        data={"lesson_id": "3"},
    )
    assert response.status_code == 200
    assert response.json()["url"].startswith("/uploads/lesson_3/")


# --- REST admin routes ---


def test_rest_save_list_and_delete(admin_client, lesson_payload, section_id):
    response = admin_client.post("/api/v1/admin/lessons", json=lesson_payload)
    assert response.status_code == 200
    lesson_id = response.json()["id"]

    listed = admin_client.get(f"/api/v1/admin/lessons?section_id={section_id}").json()["items"]
    assert [item["id"] for item in listed] == [lesson_id]

    sections = admin_client.get("/api/v1/admin/sections").json()["items"]
    assert sections[0]["lessons"][0]["slug"] == "selectors"

    assert admin_client.delete(f"/api/v1/admin/lessons/{lesson_id}").json() == {"ok": True}
    assert admin_client.get(f"/api/v1/admin/lessons/{lesson_id}").status_code == 404


def test_duplicate_section_slug(admin_client, section_id):
    response = admin_client.post("/api/v1/admin/sections", json={"title_ru": "Ещё", "slug": "dom-basics"})
    assert response.status_code == 409


def test_section_slug_pattern(admin_client):
    response = admin_client.post("/api/v1/admin/sections", json={"title_ru": "Bad", "slug": "Bad Slug"})
    assert response.status_code == 422


# --- Public viewer ---


def test_draft_is_hidden_from_public(admin_client, lesson_payload):
    save(admin_client, lesson_payload)
    assert admin_client.get("/api/v1/lessons/selectors").status_code == 404

    sections = admin_client.get("/api/v1/sections").json()["items"]
    assert sections[0]["lessons"] == []


def test_published_lesson_is_public(admin_client, client, lesson_payload):
    lesson_payload["is_published"] = True
    save(admin_client, lesson_payload)
    admin_client.post("/api/v1/admin/logout")

    response = client.get("/api/v1/lessons/selectors")
    assert response.status_code == 200
    lesson = response.json()
    assert lesson["is_published"] is True
    assert lesson["content"]["theory_html"] == "<p>Hello world!</p>"
    assert lesson["content"]["tests"][0]["correctIndex"] == 0

    sections = client.get("/api/v1/sections").json()["items"]
    assert [item["slug"] for item in sections[0]["lessons"]] == ["selectors"]


def test_unpublishing_hides_lesson_again(admin_client, lesson_payload):
    lesson_payload["is_published"] = True
    lesson_id = save(admin_client, lesson_payload).json()["id"]
    assert admin_client.get("/api/v1/lessons/selectors").status_code == 200

    lesson_payload["id"] = lesson_id
    lesson_payload["is_published"] = False
    save(admin_client, lesson_payload)
    assert admin_client.get("/api/v1/lessons/selectors").status_code == 404


def test_last_write_wins(admin_client, lesson_payload):
    lesson_id = save(admin_client, lesson_payload).json()["id"]
    first = copy.deepcopy(lesson_payload)
    second = copy.deepcopy(lesson_payload)
    first.update(id=lesson_id, title_ru="Первая правка")
    second.update(id=lesson_id, title_ru="Вторая правка")

    save(admin_client, first)
    save(admin_client, second)

    assert admin_client.get(f"/api/v1/admin/lessons/{lesson_id}").json()["title_ru"] == "Вторая правка"


# --- App plumbing ---


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_request_id_is_echoed(client):
    response = client.get("/health", headers={"X-Request-ID": "abc123"})
    assert response.headers["X-Request-ID"] == "abc123"
    assert client.get("/health").headers["X-Request-ID"]


def test_upload_first_keeps_mount_prefix():
    with TestClient(app, root_path="/learn") as mounted:
        login = mounted.post("/api/v1/admin/login", json={"login": ADMIN_LOGIN, "password": ADMIN_PASSWORD})
        assert login.status_code == 200
        response = mounted.post(
            "/api.php?action=upload_image",
            files={"file": ("diagram.png", PNG_BYTES, "image/png")},
            data={"lesson_id": "2"},
        )
        assert response.status_code == 200
        assert response.json()["url"].startswith("/learn/uploads/lesson_2/")
        assert mounted.get("/api/v1/admin/me").json()["admin_base"] == "/learn"

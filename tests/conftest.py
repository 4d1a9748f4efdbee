from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
from fastapi.testclient import TestClient

from formbuilder.app import create_app
from formbuilder.config import Settings
from formbuilder.draft import DraftRepository
from formbuilder.repo_json import JSONStorage
from formbuilder.repo_sqlite import SQLiteStorage


def configure_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path, backend: str) -> None:
    monkeypatch.setenv("STORAGE_BACKEND", backend)
    monkeypatch.setenv("SQLITE_PATH", str(tmp_path / "app.db"))
    monkeypatch.setenv("JSON_PATH", str(tmp_path / "jsonstore.json"))
    monkeypatch.setenv("DRAFT_PATH", str(tmp_path / "drafts.json"))
    monkeypatch.setenv("UPLOAD_DIR", str(tmp_path / "uploads"))
    monkeypatch.setenv("AUTH_MODE", "none")
    monkeypatch.delenv("UPLOAD_MAX_BYTES", raising=False)


@pytest.fixture(params=["sqlite", "json"])
def backend(request: pytest.FixtureRequest) -> str:
    return request.param


@pytest.fixture
def storage(tmp_path: Path, backend: str) -> Any:
    if backend == "json":
        return JSONStorage(tmp_path / "jsonstore.json")
    return SQLiteStorage(tmp_path / "app.db")


@pytest.fixture
def draft_repo(tmp_path: Path) -> DraftRepository:
    return DraftRepository.from_path(tmp_path / "drafts.json")


@pytest.fixture
def app(monkeypatch: pytest.MonkeyPatch, tmp_path: Path, backend: str) -> Any:
    configure_env(monkeypatch, tmp_path, backend)
    return create_app(Settings())


@pytest.fixture
def client(app: Any) -> TestClient:
    return TestClient(app)


@pytest.fixture
def feedback_form_data() -> dict[str, Any]:
    return {
        "topic": "Feedback",
        "description": "Tell us what you think",
        "categories": ["Contact", "Opinion"],
        "fields": [
            {"id": "name", "label": "Name", "type": "text", "category": "Contact", "required": True},
            {"id": "email", "label": "Email", "type": "email", "category": "Contact", "required": False},
            {
                "id": "rating",
                "label": "Rating",
                "type": "selection",
                "category": "Opinion",
                "required": False,
                "selections": ["Good", "Bad"],
            },
            {"id": "agree", "label": "Agree", "type": "checkbox", "category": "", "required": False},
            {
                "id": "tags",
                "label": "Tags",
                "type": "array",
                "category": "Opinion",
                "required": False,
                "array_config": {"item_type": "string", "min_items": 0, "max_items": 3},
            },
        ],
    }


@pytest.fixture
def public_settings() -> dict[str, Any]:
    return {"share_setting": "public", "access_code": "", "response_draft": "Thanks!"}


@pytest.fixture
def token_client(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> TestClient:
    configure_env(monkeypatch, tmp_path, "json")
    monkeypatch.setenv("AUTH_MODE", "token")
    monkeypatch.setenv("ADMIN_TOKEN", "t0ken")
    return TestClient(create_app(Settings()))


@pytest.fixture
def image_form_data() -> dict[str, Any]:
    return {
        "topic": "Photos",
        "description": "Share a photo",
        "categories": ["Main"],
        "fields": [
            {"id": "name", "label": "Name", "type": "text", "category": "Main", "required": False},
            {"id": "pic", "label": "Picture", "type": "image", "category": "Main", "required": True},
        ],
    }


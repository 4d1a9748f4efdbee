from __future__ import annotations

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent

FIELD_TYPES = ("text", "number", "email", "date", "checkbox", "selection", "array")
RENDER_ONLY_TYPES = ("image",)
ARRAY_ITEM_TYPES = ("string", "number", "email")
SHARE_SETTINGS = ("public", "private")
UNCATEGORIZED = "Uncategorized"

# Form keys the public page and submit endpoint post next to field values.
RESERVED_FIELD_IDS = ("action", "access_code")
PENDING_SUFFIX = "__new"

DEFAULT_ARRAY_CONFIG = {"item_type": "string", "min_items": 1, "max_items": 10}


class Settings:
    def __init__(self) -> None:
        self.storage_backend = os.getenv("STORAGE_BACKEND", "sqlite").lower()
        self.sqlite_path = Path(os.getenv("SQLITE_PATH", "./data/app.db"))
        self.json_path = Path(os.getenv("JSON_PATH", "./data/jsonstore.json"))
        self.draft_path = Path(os.getenv("DRAFT_PATH", "./data/drafts.json"))
        self.upload_dir = Path(os.getenv("UPLOAD_DIR", "./data/uploads"))
        max_bytes = os.getenv("UPLOAD_MAX_BYTES")
        self.upload_max_bytes = int(max_bytes) if max_bytes else None
        self.auth_mode = os.getenv("AUTH_MODE", "none").lower()
        self.admin_token = os.getenv("ADMIN_TOKEN", "")
        self.log_level = os.getenv("LOG_LEVEL", "INFO").upper()
        self.host = os.getenv("HOST", "0.0.0.0")
        port_value = os.getenv("PORT", "8000")
        try:
            self.port = int(port_value)
        except ValueError:
            self.port = 8000


def ensure_dirs(settings: Settings) -> None:
    settings.sqlite_path.parent.mkdir(parents=True, exist_ok=True)
    settings.json_path.parent.mkdir(parents=True, exist_ok=True)
    settings.draft_path.parent.mkdir(parents=True, exist_ok=True)
    settings.upload_dir.mkdir(parents=True, exist_ok=True)

from __future__ import annotations

import logging
from pathlib import Path

from formbuilder.config import Settings, ensure_dirs
from formbuilder.draft import DraftRepository
from formbuilder.protocols import Storage
from formbuilder.repo_json import JSONStorage
from formbuilder.repo_sqlite import SQLiteStorage

logger = logging.getLogger(__name__)


def init_storage(settings: Settings) -> Storage:
    ensure_dirs(settings)
    if settings.storage_backend == "json":
        logger.info("Using JSON storage at %s", settings.json_path)
        return JSONStorage(settings.json_path)
    logger.info("Using SQLite storage at %s", settings.sqlite_path)
    return SQLiteStorage(settings.sqlite_path)


def init_drafts(settings: Settings) -> DraftRepository:
    ensure_dirs(settings)
    return DraftRepository.from_path(settings.draft_path)


def delete_form(storage: Storage, form_id: str) -> None:
    """Remove a form with its submissions, file records and stored uploads."""
    for file_meta in storage.files.delete_for_form(form_id):
        Path(file_meta["stored_path"]).unlink(missing_ok=True)
    storage.submissions.delete_for_form(form_id)
    storage.forms.delete_form(form_id)
    logger.info("Deleted form %s", form_id)

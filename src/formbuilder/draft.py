"""Draft persistence for the authoring wizard.

Each authoring session keeps one snapshot per artifact type (the form
definition being edited and its publish settings). Snapshots survive page
reloads, never expire, and are replaced wholesale on every save. A session has
a single writer, so no merging or conflict handling is done.
"""

from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Any

from filelock import FileLock
from tinydb import Query

from formbuilder.repo_json import JSONRepoBase

logger = logging.getLogger(__name__)

FORM_DATA_KEY = "form_data"
PUBLISH_DATA_KEY = "publish_data"

EMPTY_DRAFTS: dict[str, dict[str, Any]] = {
    FORM_DATA_KEY: {"topic": "", "description": "", "categories": [], "fields": []},
    PUBLISH_DATA_KEY: {"share_setting": "private", "access_code": "", "response_draft": ""},
}


def _check_key(key: str) -> None:
    if key not in EMPTY_DRAFTS:
        raise ValueError(f"unknown draft key: {key}")


class DraftRepository(JSONRepoBase):
    @classmethod
    def from_path(cls, path: Path) -> DraftRepository:
        return cls(path, FileLock(f"{path}.lock"))

    def get(self, session_id: str, key: str) -> Any | None:
        draft = Query()
        with self._db() as db:
            item = db.table("drafts").get((draft.session_id == session_id) & (draft.key == key))
        return item["value"] if item else None

    def put(self, session_id: str, key: str, value: Any) -> None:
        draft = Query()
        with self._db() as db:
            db.table("drafts").upsert(
                {"session_id": session_id, "key": key, "value": value},
                (draft.session_id == session_id) & (draft.key == key),
            )

    def remove(self, session_id: str, key: str | None = None) -> None:
        draft = Query()
        condition = draft.session_id == session_id
        if key is not None:
            condition = condition & (draft.key == key)
        with self._db() as db:
            db.table("drafts").remove(condition)

    def for_session(self, session_id: str) -> DraftStore:
        return DraftStore(self, session_id)


class DraftStore:
    def __init__(self, repo: DraftRepository, session_id: str) -> None:
        self._repo = repo
        self.session_id = session_id

    def save(self, key: str, value: Any) -> None:
        _check_key(key)
        self._repo.put(self.session_id, key, copy.deepcopy(value))

    def load(self, key: str) -> Any:
        _check_key(key)
        value = self._repo.get(self.session_id, key)
        if value is None:
            return copy.deepcopy(EMPTY_DRAFTS[key])
        return value

    def clear(self, key: str | None = None) -> None:
        if key is not None:
            _check_key(key)
        self._repo.remove(self.session_id, key)
        logger.info("Cleared draft %s for session %s", key or "*", self.session_id)

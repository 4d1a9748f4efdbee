from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Iterator

from filelock import FileLock
from tinydb import Query, TinyDB

from formbuilder.utils import now_utc, parse_dt, to_iso

DATE_KEYS = ("created_at", "updated_at")


def dump_record(item: dict[str, Any]) -> dict[str, Any]:
    """TinyDB document for ``item``; datetimes are stored as ISO strings."""
    return {
        key: to_iso(value) if isinstance(value, datetime) else value
        for key, value in item.items()
    }


def load_record(record: dict[str, Any]) -> dict[str, Any]:
    item = dict(record)
    for key in DATE_KEYS:
        if key in item:
            item[key] = parse_dt(item[key])
    return item


class JSONRepoBase:
    def __init__(self, path: Path, lock: FileLock) -> None:
        self._path = path
        self._lock = lock

    @contextmanager
    def _db(self) -> Iterator[TinyDB]:
        with self._lock:
            db = TinyDB(self._path)
            try:
                yield db
            finally:
                db.close()


class JSONFormRepo(JSONRepoBase):
    def list_forms(self) -> list[dict[str, Any]]:
        with self._db() as db:
            items = db.table("forms").all()
        forms = [self._from_record(item) for item in items]
        return sorted(forms, key=lambda x: x["updated_at"], reverse=True)

    def get_form(self, form_id: str) -> dict[str, Any] | None:
        with self._db() as db:
            item = db.table("forms").get(Query().id == form_id)
        return self._from_record(item) if item else None

    def create_form(self, form: dict[str, Any]) -> None:
        record = dump_record({**form, "fields": [dict(field) for field in form["fields"]]})
        for key in DATE_KEYS:
            record.setdefault(key, to_iso(now_utc()))
        with self._db() as db:
            db.table("forms").insert(record)

    def _change(self, form_id: str, change: Any) -> None:
        with self._db() as db:
            table = db.table("forms")
            item = table.get(Query().id == form_id)
            if not item:
                raise KeyError(form_id)
            table.update(change(item), Query().id == form_id)

    def set_status(self, form_id: str, status: str) -> None:
        self._change(form_id, lambda item: {"status": status, "updated_at": to_iso(now_utc())})

    def increment_submissions(self, form_id: str) -> None:
        self._change(form_id, lambda item: {"submissions": int(item.get("submissions") or 0) + 1})

    def delete_form(self, form_id: str) -> None:
        with self._db() as db:
            db.table("forms").remove(Query().id == form_id)

    @staticmethod
    def _from_record(record: dict[str, Any]) -> dict[str, Any]:
        item = load_record(record)
        return {
            "id": item["id"],
            "topic": item.get("topic", ""),
            "description": item.get("description", ""),
            "categories": list(item.get("categories") or []),
            "fields": [dict(field) for field in item.get("fields") or []],
            "status": item.get("status", "inactive"),
            "submissions": int(item.get("submissions") or 0),
            "access_mode": item.get("access_mode", "private"),
            "access_code": item.get("access_code", ""),
            "response_draft": item.get("response_draft", ""),
            "created_at": item.get("created_at") or now_utc(),
            "updated_at": item.get("updated_at") or now_utc(),
        }


class JSONSubmissionRepo(JSONRepoBase):
    def list_submissions(self, form_id: str) -> list[dict[str, Any]]:
        with self._db() as db:
            items = db.table("submissions").search(Query().form_id == form_id)
        submissions = [load_record(item) for item in items]
        return sorted(submissions, key=lambda x: x["created_at"], reverse=True)

    def create_submission(self, submission: dict[str, Any]) -> None:
        with self._db() as db:
            db.table("submissions").insert(dump_record(submission))

    def delete_for_form(self, form_id: str) -> None:
        with self._db() as db:
            db.table("submissions").remove(Query().form_id == form_id)


class JSONFileRepo(JSONRepoBase):
    def create_file(self, file_meta: dict[str, Any]) -> None:
        with self._db() as db:
            db.table("files").insert(dump_record(file_meta))

    def get_file(self, file_id: str) -> dict[str, Any] | None:
        with self._db() as db:
            item = db.table("files").get(Query().id == file_id)
        return load_record(item) if item else None

    def delete_for_form(self, form_id: str) -> list[dict[str, Any]]:
        with self._db() as db:
            table = db.table("files")
            items = table.search(Query().form_id == form_id)
            table.remove(Query().form_id == form_id)
        return [load_record(item) for item in items]


class JSONStorage:
    """Forms, submissions and files as tables of one TinyDB file."""

    def __init__(self, path: Path) -> None:
        self._lock = FileLock(f"{path}.lock")
        self.forms = JSONFormRepo(path, self._lock)
        self.submissions = JSONSubmissionRepo(path, self._lock)
        self.files = JSONFileRepo(path, self._lock)

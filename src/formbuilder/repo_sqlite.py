from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any

from sqlalchemy import create_engine, delete, select
from sqlalchemy.orm import sessionmaker

from formbuilder.models import Base, FieldModel, FileModel, FormModel, SubmissionModel
from formbuilder.utils import dumps_json, ensure_aware, loads_json, now_utc


def row_to_dict(row: Base) -> dict[str, Any]:
    """Plain dict of a mapped row; naive datetimes read back from SQLite become UTC."""
    item: dict[str, Any] = {}
    for column in row.__table__.columns:
        value = getattr(row, column.key)
        item[column.key] = ensure_aware(value) if isinstance(value, datetime) else value
    return item


class SQLiteRepoBase:
    def __init__(self, session_factory: sessionmaker) -> None:
        self._Session = session_factory

    def _add(self, row: Base) -> None:
        with self._Session() as session:
            session.add(row)
            session.commit()


class SQLiteFormRepo(SQLiteRepoBase):
    def list_forms(self) -> list[dict[str, Any]]:
        with self._Session() as session:
            rows = session.scalars(select(FormModel).order_by(FormModel.updated_at.desc())).all()
            return [self._to_dict(row) for row in rows]

    def get_form(self, form_id: str) -> dict[str, Any] | None:
        with self._Session() as session:
            row = session.get(FormModel, form_id)
            return self._to_dict(row) if row else None

    def create_form(self, form: dict[str, Any]) -> None:
        row = FormModel(
            id=form["id"],
            topic=form["topic"],
            description=form["description"],
            categories=",".join(form["categories"]),
            status=form["status"],
            submissions=form.get("submissions", 0),
            access_mode=form["access_mode"],
            access_code=form.get("access_code", ""),
            response_draft=form.get("response_draft", ""),
            created_at=form["created_at"],
            updated_at=form["updated_at"],
        )
        row.fields = [
            FieldModel(
                id=field["id"],
                position=position,
                label=field["label"],
                type=field["type"],
                category=field.get("category", ""),
                required=bool(field.get("required")),
                options=dumps_json(field.get("selections") or []),
                array_config=dumps_json(field["array_config"]) if field.get("array_config") else None,
            )
            for position, field in enumerate(form["fields"])
        ]
        self._add(row)

    def _change(self, form_id: str, **values: Any) -> None:
        with self._Session() as session:
            row = session.get(FormModel, form_id)
            if not row:
                raise KeyError(form_id)
            for key, value in values.items():
                setattr(row, key, value)
            session.commit()

    def set_status(self, form_id: str, status: str) -> None:
        self._change(form_id, status=status, updated_at=now_utc())

    def increment_submissions(self, form_id: str) -> None:
        self._change(form_id, submissions=FormModel.submissions + 1)

    def delete_form(self, form_id: str) -> None:
        with self._Session() as session:
            row = session.get(FormModel, form_id)
            if row:
                session.delete(row)
                session.commit()

    @staticmethod
    def _field_to_dict(row: FieldModel) -> dict[str, Any]:
        return {
            "id": row.id,
            "label": row.label or "",
            "type": row.type,
            "category": row.category or "",
            "required": bool(row.required),
            "selections": loads_json(row.options) or [],
            "array_config": loads_json(row.array_config),
        }

    @classmethod
    def _to_dict(cls, row: FormModel) -> dict[str, Any]:
        item = row_to_dict(row)
        item.update(
            description=row.description or "",
            categories=[name for name in (row.categories or "").split(",") if name],
            fields=[cls._field_to_dict(field) for field in row.fields],
            submissions=row.submissions or 0,
            access_mode=row.access_mode or "private",
            access_code=row.access_code or "",
            response_draft=row.response_draft or "",
        )
        return item


class SQLiteSubmissionRepo(SQLiteRepoBase):
    def list_submissions(self, form_id: str) -> list[dict[str, Any]]:
        with self._Session() as session:
            rows = session.scalars(
                select(SubmissionModel)
                .where(SubmissionModel.form_id == form_id)
                .order_by(SubmissionModel.created_at.desc())
            ).all()
            return [
                {**row_to_dict(row), "data_json": loads_json(row.data_json) or {}}
                for row in rows
            ]

    def create_submission(self, submission: dict[str, Any]) -> None:
        self._add(
            SubmissionModel(**{**submission, "data_json": dumps_json(submission["data_json"])})
        )

    def delete_for_form(self, form_id: str) -> None:
        with self._Session() as session:
            session.execute(delete(SubmissionModel).where(SubmissionModel.form_id == form_id))
            session.commit()


class SQLiteFileRepo(SQLiteRepoBase):
    def create_file(self, file_meta: dict[str, Any]) -> None:
        self._add(FileModel(**file_meta))

    def get_file(self, file_id: str) -> dict[str, Any] | None:
        with self._Session() as session:
            row = session.get(FileModel, file_id)
            return row_to_dict(row) if row else None

    def delete_for_form(self, form_id: str) -> list[dict[str, Any]]:
        with self._Session() as session:
            rows = session.scalars(select(FileModel).where(FileModel.form_id == form_id)).all()
            removed = [row_to_dict(row) for row in rows]
            session.execute(delete(FileModel).where(FileModel.form_id == form_id))
            session.commit()
        return removed


class SQLiteStorage:
    def __init__(self, db_path: Path) -> None:
        self._engine = create_engine(f"sqlite:///{db_path}", future=True)
        self._Session = sessionmaker(self._engine, expire_on_commit=False)
        Base.metadata.create_all(self._engine)
        self.forms = SQLiteFormRepo(self._Session)
        self.submissions = SQLiteSubmissionRepo(self._Session)
        self.files = SQLiteFileRepo(self._Session)

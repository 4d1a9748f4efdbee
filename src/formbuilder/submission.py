from __future__ import annotations

import logging
import mimetypes
from typing import Any

from fastapi import HTTPException, Request

from formbuilder.field_types import get_field_type
from formbuilder.utils import new_ulid, now_utc

logger = logging.getLogger(__name__)


def encode_submission(form: dict[str, Any], payload: dict[str, Any]) -> list[tuple[str, Any]]:
    """Multi-part entries for ``payload``: scalars once, array items and images repeated under the field key."""
    entries: list[tuple[str, Any]] = []
    for field in form.get("fields") or []:
        field_id = field.get("id")
        if field_id not in payload:
            continue
        entries.extend(get_field_type(field.get("type")).serialize(field, payload[field_id]))
    return entries


def decode_submission(form: dict[str, Any], form_data: Any) -> dict[str, Any]:
    return {
        field["id"]: get_field_type(field.get("type")).collect(field, form_data)
        for field in form.get("fields") or []
    }


def clean_payload(payload: dict[str, Any]) -> dict[str, Any]:
    cleaned: dict[str, Any] = {}
    for key, value in payload.items():
        if value is None or value == "":
            continue
        if isinstance(value, list) and not value:
            continue
        cleaned[key] = value
    return cleaned


def is_image_upload(content_type: str | None, filename: str | None) -> bool:
    media_type = (content_type or "").split(";", 1)[0].strip().lower()
    if not media_type or media_type == "application/octet-stream":
        media_type = (mimetypes.guess_type(filename or "")[0] or "").lower()
    return media_type.startswith("image/")


async def read_upload(file_obj: Any, max_bytes: int | None) -> bytes:
    """Content of an accepted upload; rejects non-images and oversized files."""
    if not is_image_upload(file_obj.content_type, file_obj.filename):
        logger.warning("Rejected upload %r (%s)", file_obj.filename, file_obj.content_type)
        raise HTTPException(status_code=400, detail="Only image files can be uploaded")
    content = await file_obj.read()
    if max_bytes is not None and len(content) > max_bytes:
        logger.warning("Rejected upload %r: %d bytes", file_obj.filename, len(content))
        raise HTTPException(status_code=400, detail="File is too large")
    return content


def save_upload(request: Request, form_id: str, file_obj: Any, content: bytes) -> str:
    storage = request.app.state.storage
    settings = request.app.state.settings
    file_id = new_ulid()
    destination = settings.upload_dir / file_id
    destination.write_bytes(content)
    storage.files.create_file(
        {
            "id": file_id,
            "form_id": form_id,
            "original_name": file_obj.filename or "",
            "stored_path": str(destination),
            "content_type": file_obj.content_type or "",
            "size": len(content),
            "created_at": now_utc(),
        }
    )
    return file_id


async def store_submission(
    request: Request, form: dict[str, Any], payload: dict[str, Any]
) -> dict[str, Any]:
    """Persist a validated payload; image uploads are replaced by file ids.

    Every upload is checked before the first one is written, so a rejected
    file leaves no stored files behind.
    """
    settings = request.app.state.settings
    accepted: dict[str, list[tuple[Any, bytes]]] = {}
    for field in form.get("fields") or []:
        if field.get("type") == "image" and payload.get(field["id"]):
            accepted[field["id"]] = [
                (upload, await read_upload(upload, settings.upload_max_bytes))
                for upload in payload[field["id"]]
            ]

    data = dict(payload)
    for field_id, uploads in accepted.items():
        data[field_id] = [
            save_upload(request, form["id"], upload, content) for upload, content in uploads
        ]
    storage = request.app.state.storage
    submission = {
        "id": new_ulid(),
        "form_id": form["id"],
        "data_json": clean_payload(data),
        "created_at": now_utc(),
    }
    storage.submissions.create_submission(submission)
    storage.forms.increment_submissions(form["id"])
    logger.info("Stored submission %s for form %s", submission["id"], form["id"])
    return submission

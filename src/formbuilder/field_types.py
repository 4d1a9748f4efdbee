from __future__ import annotations

import re
from typing import Any

from formbuilder.config import DEFAULT_ARRAY_CONFIG, PENDING_SUFFIX
from formbuilder.schema import resolve_options

NUMBER_PATTERN = re.compile(r"^\s*[-+]?(\d+(\.\d*)?|\.\d+)([eE][-+]?\d+)?\s*$")
INTEGER_PATTERN = re.compile(r"^\s*[-+]?\d+\s*$")
IMAGE_ACCEPT = "image/*"

# Leading bytes of the image formats browsers upload, with a file extension.
IMAGE_SIGNATURES: tuple[tuple[bytes, str, str], ...] = (
    (b"\x89PNG\r\n\x1a\n", "image/png", "png"),
    (b"\xff\xd8\xff", "image/jpeg", "jpg"),
    (b"GIF87a", "image/gif", "gif"),
    (b"GIF89a", "image/gif", "gif"),
    (b"BM", "image/bmp", "bmp"),
)


def is_number_text(value: str) -> bool:
    return bool(NUMBER_PATTERN.match(value))


def normalize_number(value: Any) -> Any:
    """Turn posted text into a number; unparsable text is returned as-is."""
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    text = str(value).strip()
    if INTEGER_PATTERN.match(text):
        return int(text)
    if NUMBER_PATTERN.match(text):
        return float(text)
    return text


def parse_bool(value: Any) -> bool:
    return str(value).lower() in {"1", "true", "on", "yes"}


def sniff_image(content: bytes) -> tuple[str, str]:
    """Media type and extension of an image blob, or octet-stream when unknown."""
    if content[:4] == b"RIFF" and content[8:12] == b"WEBP":
        return "image/webp", "webp"
    for signature, media_type, extension in IMAGE_SIGNATURES:
        if content.startswith(signature):
            return media_type, extension
    return "application/octet-stream", "bin"


def image_file_entry(blob: Any, index: int) -> tuple[str, bytes, str]:
    """A ``(filename, content, content_type)`` upload tuple for one image value.

    Tuples are passed through (a missing content type is detected); raw bytes
    get a generated name.
    """
    if isinstance(blob, tuple):
        filename, content, *rest = blob
        content_type = rest[0] if rest else sniff_image(content)[0]
        return filename, content, content_type
    content = bytes(blob)
    content_type, extension = sniff_image(content)
    return f"image-{index + 1}.{extension}", content, content_type


class FieldType:
    """One variant per field type: how it renders, validates and serializes."""

    name = ""
    input_type = "text"

    def base_control(self, field: dict[str, Any]) -> dict[str, Any]:
        return {
            "id": field.get("id"),
            "name": field.get("id"),
            "label": field.get("label", ""),
            "required": bool(field.get("required")),
            "type": self.name,
        }

    def render(self, field: dict[str, Any], value: Any, pending: str = "") -> dict[str, Any]:
        return {
            **self.base_control(field),
            "kind": "input",
            "input_type": self.input_type,
            "value": "" if value is None else str(value),
        }

    def is_missing(self, value: Any) -> bool:
        return value is None or value == ""

    def collect(self, field: dict[str, Any], form_data: Any) -> Any:
        raw = form_data.get(field["id"])
        if raw is None:
            return None
        return str(raw)

    def serialize(self, field: dict[str, Any], value: Any) -> list[tuple[str, Any]]:
        if value is None:
            return []
        return [(field["id"], str(value))]

    def json_schema(self, field: dict[str, Any]) -> dict[str, Any]:
        return {"type": "string"}


class TextFieldType(FieldType):
    name = "text"


class NumberFieldType(FieldType):
    name = "number"
    input_type = "number"

    def collect(self, field: dict[str, Any], form_data: Any) -> Any:
        return normalize_number(form_data.get(field["id"]))

    def json_schema(self, field: dict[str, Any]) -> dict[str, Any]:
        return {"type": "number"}


class EmailFieldType(FieldType):
    # Plain email fields are not format-checked; only array items are.
    name = "email"
    input_type = "email"


class DateFieldType(FieldType):
    name = "date"
    input_type = "date"

    def json_schema(self, field: dict[str, Any]) -> dict[str, Any]:
        return {"type": "string", "format": "date"}


class CheckboxFieldType(FieldType):
    name = "checkbox"

    def render(self, field: dict[str, Any], value: Any, pending: str = "") -> dict[str, Any]:
        return {**self.base_control(field), "kind": "checkbox", "checked": bool(value)}

    def collect(self, field: dict[str, Any], form_data: Any) -> Any:
        # An unchecked box is not posted at all.
        raw = form_data.get(field["id"])
        if raw is None:
            return None
        return parse_bool(raw)

    def serialize(self, field: dict[str, Any], value: Any) -> list[tuple[str, Any]]:
        if value is None:
            return []
        return [(field["id"], "true" if value else "false")]

    def json_schema(self, field: dict[str, Any]) -> dict[str, Any]:
        return {"type": "boolean"}


class SelectionFieldType(FieldType):
    name = "selection"

    def render(self, field: dict[str, Any], value: Any, pending: str = "") -> dict[str, Any]:
        options = resolve_options(field)
        if not options:
            return {**self.base_control(field), "kind": "label"}
        return {
            **self.base_control(field),
            "kind": "select",
            "options": options,
            "value": "" if value is None else str(value),
        }

    def json_schema(self, field: dict[str, Any]) -> dict[str, Any]:
        options = resolve_options(field)
        if options:
            return {"type": "string", "enum": options}
        return {"type": "string"}


class ArrayFieldType(FieldType):
    name = "array"

    def config(self, field: dict[str, Any]) -> dict[str, Any]:
        return field.get("array_config") or DEFAULT_ARRAY_CONFIG

    def render(self, field: dict[str, Any], value: Any, pending: str = "") -> dict[str, Any]:
        config = self.config(field)
        return {
            **self.base_control(field),
            "kind": "array",
            "items": list(value or []),
            "pending": pending or "",
            "pending_name": f"{field.get('id')}{PENDING_SUFFIX}",
            "item_type": config["item_type"],
            "placeholder": f"Add a {field.get('label', '')}",
        }

    def is_missing(self, value: Any) -> bool:
        return not isinstance(value, (list, tuple)) or len(value) == 0

    def check_item(self, field: dict[str, Any], text: str, items: list[str]) -> str | None:
        """Return a warning when ``text`` may not be appended, else ``None``."""
        config = self.config(field)
        item_type = config["item_type"]
        if item_type == "email" and "@" not in text:
            return "Please enter a valid email address"
        if item_type == "number" and not is_number_text(text):
            return "Please enter a valid number"
        max_items = config.get("max_items")
        if isinstance(max_items, int) and len(items) >= max_items:
            return f"You can add at most {max_items} items"
        return None

    def collect(self, field: dict[str, Any], form_data: Any) -> Any:
        return [str(item).strip() for item in form_data.getlist(field["id"]) if str(item).strip()]

    def serialize(self, field: dict[str, Any], value: Any) -> list[tuple[str, Any]]:
        return [(field["id"], str(item)) for item in value or []]

    def json_schema(self, field: dict[str, Any]) -> dict[str, Any]:
        config = self.config(field)
        item_type = config["item_type"]
        if item_type == "number":
            items: dict[str, Any] = {"type": "string", "pattern": NUMBER_PATTERN.pattern}
        elif item_type == "email":
            items = {"type": "string", "format": "email"}
        else:
            items = {"type": "string"}
        schema: dict[str, Any] = {"type": "array", "items": items}
        if isinstance(config.get("min_items"), int):
            schema["minItems"] = config["min_items"]
        if isinstance(config.get("max_items"), int):
            schema["maxItems"] = config["max_items"]
        return schema


class ImageFieldType(FieldType):
    name = "image"

    def render(self, field: dict[str, Any], value: Any, pending: str = "") -> dict[str, Any]:
        return {
            **self.base_control(field),
            "kind": "file",
            "accept": IMAGE_ACCEPT,
            "multiple": True,
            "count": len(value or []),
        }

    def is_missing(self, value: Any) -> bool:
        return not value

    def collect(self, field: dict[str, Any], form_data: Any) -> Any:
        return [
            upload
            for upload in form_data.getlist(field["id"])
            if getattr(upload, "filename", "")
        ]

    def serialize(self, field: dict[str, Any], value: Any) -> list[tuple[str, Any]]:
        return [
            (field["id"], image_file_entry(blob, index)) for index, blob in enumerate(value or [])
        ]

    def json_schema(self, field: dict[str, Any]) -> dict[str, Any]:
        # Uploads are still file objects when the payload is checked.
        return {"type": "array"}


class UnsupportedFieldType(FieldType):
    name = "unsupported"

    def render(self, field: dict[str, Any], value: Any, pending: str = "") -> dict[str, Any]:
        return {**self.base_control(field), "kind": "label"}

    def json_schema(self, field: dict[str, Any]) -> dict[str, Any]:
        return {}


FIELD_TYPE_REGISTRY: dict[str, FieldType] = {
    field_type.name: field_type
    for field_type in (
        TextFieldType(),
        NumberFieldType(),
        EmailFieldType(),
        DateFieldType(),
        CheckboxFieldType(),
        SelectionFieldType(),
        ArrayFieldType(),
        ImageFieldType(),
    )
}
UNSUPPORTED = UnsupportedFieldType()


def get_field_type(name: str | None) -> FieldType:
    return FIELD_TYPE_REGISTRY.get(name or "", UNSUPPORTED)

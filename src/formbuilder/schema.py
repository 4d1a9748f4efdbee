from __future__ import annotations

from typing import Any

from formbuilder.config import (
    ARRAY_ITEM_TYPES,
    DEFAULT_ARRAY_CONFIG,
    FIELD_TYPES,
    PENDING_SUFFIX,
    RENDER_ONLY_TYPES,
    RESERVED_FIELD_IDS,
    SHARE_SETTINGS,
)
from formbuilder.utils import new_ulid, now_utc, to_iso


def _as_str(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "on", "yes"}
    return bool(value)


def _as_int(value: Any, default: int) -> int | None:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def _clean_strings(values: Any) -> list[str]:
    if isinstance(values, str):
        values = values.split(",")
    if not isinstance(values, (list, tuple)):
        return []
    result: list[str] = []
    for value in values:
        text = _as_str(value)
        if text and text not in result:
            result.append(text)
    return result


def _pick(raw: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in raw:
            return raw[key]
    return None


def resolve_options(field: dict[str, Any]) -> list[str]:
    """Option list of a selection field.

    ``selections`` is the canonical key and wins when non-empty; ``options`` is
    the legacy alias kept for definitions stored before the rename.
    """
    selections = _clean_strings(field.get("selections"))
    if selections:
        return selections
    return _clean_strings(field.get("options"))


def normalize_array_config(raw: Any) -> dict[str, Any]:
    if not isinstance(raw, dict):
        return dict(DEFAULT_ARRAY_CONFIG)
    item_type = _as_str(_pick(raw, "item_type", "itemType")) or DEFAULT_ARRAY_CONFIG["item_type"]
    return {
        "item_type": item_type,
        "min_items": _as_int(_pick(raw, "min_items", "minItems"), DEFAULT_ARRAY_CONFIG["min_items"]),
        "max_items": _as_int(_pick(raw, "max_items", "maxItems"), DEFAULT_ARRAY_CONFIG["max_items"]),
    }


def normalize_field(raw: dict[str, Any]) -> dict[str, Any]:
    field_type = _as_str(raw.get("type")) or "text"
    array_config = None
    if field_type == "array":
        array_config = normalize_array_config(_pick(raw, "array_config", "arrayConfig"))
    return {
        "id": _as_str(raw.get("id")) or new_ulid(),
        "label": _as_str(raw.get("label")),
        "type": field_type,
        "category": _as_str(raw.get("category")),
        "required": _as_bool(raw.get("required")),
        "selections": resolve_options(raw),
        "array_config": array_config,
    }


def normalize_form_definition(raw: dict[str, Any] | None) -> dict[str, Any]:
    raw = raw or {}
    form: dict[str, Any] = {
        "topic": _as_str(raw.get("topic")),
        "description": _as_str(raw.get("description")),
        "categories": _clean_strings(raw.get("categories")),
        "fields": [
            normalize_field(item)
            for item in (raw.get("fields") or [])
            if isinstance(item, dict)
        ],
    }
    if raw.get("id"):
        form["id"] = _as_str(raw["id"])
    return form


def normalize_publish_settings(raw: dict[str, Any] | None) -> dict[str, Any]:
    raw = raw or {}
    share_setting = _as_str(_pick(raw, "share_setting", "shareSetting")).lower()
    return {
        "share_setting": share_setting or "private",
        "access_code": _as_str(_pick(raw, "access_code", "accessCode")),
        "response_draft": _as_str(_pick(raw, "response_draft", "responseDraft")),
    }


def validate_array_config(config: Any) -> list[str]:
    if not isinstance(config, dict):
        return ["Array fields need an item configuration"]
    errors: list[str] = []
    if config.get("item_type") not in ARRAY_ITEM_TYPES:
        errors.append(
            f"Array item type must be one of {', '.join(ARRAY_ITEM_TYPES)} ({config.get('item_type')})"
        )
    min_items = config.get("min_items")
    max_items = config.get("max_items")
    if not isinstance(min_items, int):
        errors.append("Minimum items must be a whole number")
    elif min_items < 0:
        errors.append("Minimum items cannot be negative")
    if not isinstance(max_items, int):
        errors.append("Maximum items must be a whole number")
    elif max_items < 1:
        errors.append("Maximum items must be at least 1")
    if isinstance(min_items, int) and isinstance(max_items, int) and max_items < min_items:
        errors.append("Maximum items cannot be less than minimum items")
    return errors


def validate_form_definition(form: dict[str, Any]) -> list[str]:
    """Collect authoring problems of a normalized form definition.

    Messages are prefixed with the field label (or ``Field N`` while the label
    is still empty). Nothing is raised; callers decide whether to block.
    """
    errors: list[str] = []
    if not _as_str(form.get("topic")):
        errors.append("Topic is required")
    if not _as_str(form.get("description")):
        errors.append("Description is required")
    categories = form.get("categories") or []
    if not categories:
        errors.append("At least one category is required")
    for category in categories:
        if "," in category:
            errors.append(f"Category names cannot contain commas ({category})")

    known_types = FIELD_TYPES + RENDER_ONLY_TYPES
    seen_ids: set[str] = set()
    for index, field in enumerate(form.get("fields") or [], start=1):
        label = _as_str(field.get("label"))
        loc = label or f"Field {index}"
        if not label:
            errors.append(f"{loc}: Label is required")
        field_id = field.get("id")
        if field_id in seen_ids:
            errors.append(f"{loc}: Field id is used more than once ({field_id})")
        seen_ids.add(field_id)
        if field_id in RESERVED_FIELD_IDS or str(field_id).endswith(PENDING_SUFFIX):
            errors.append(f"{loc}: Field id is reserved ({field_id})")
        field_type = field.get("type")
        if field_type not in known_types:
            errors.append(f"{loc}: Unknown field type ({field_type})")
        if field_type == "selection" and not resolve_options(field):
            errors.append(f"{loc}: Selection fields must have at least one option")
        if field_type == "array":
            errors.extend(f"{loc}: {message}" for message in validate_array_config(field.get("array_config")))
    return errors


def validate_publish_settings(settings: dict[str, Any]) -> list[str]:
    errors: list[str] = []
    share_setting = settings.get("share_setting")
    if share_setting not in SHARE_SETTINGS:
        errors.append(f"Share setting must be public or private ({share_setting})")
    if share_setting == "private" and not settings.get("access_code"):
        errors.append("Private forms need an access code")
    return errors


def field_output(field: dict[str, Any]) -> dict[str, Any]:
    config = field.get("array_config")
    return {
        "id": field["id"],
        "label": field.get("label", ""),
        "type": field.get("type", "text"),
        "category": field.get("category", ""),
        "required": bool(field.get("required")),
        "selections": list(field.get("selections") or []),
        "arrayConfig": (
            {
                "itemType": config["item_type"],
                "minItems": config["min_items"],
                "maxItems": config["max_items"],
            }
            if config
            else None
        ),
    }


def sanitize_form_output(form: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": form["id"],
        "topic": form.get("topic", ""),
        "description": form.get("description", ""),
        "categories": list(form.get("categories") or []),
        "status": form.get("status", "inactive"),
        "submissions": int(form.get("submissions") or 0),
        "accessMode": form.get("access_mode", "private"),
        "responseDraft": form.get("response_draft", ""),
        "createdAt": to_iso(form.get("created_at") or now_utc()),
        "updatedAt": to_iso(form.get("updated_at") or now_utc()),
        "fields": [field_output(field) for field in form.get("fields") or []],
    }


def build_form_record(
    form_data: dict[str, Any], publish_data: dict[str, Any]
) -> dict[str, Any]:
    now = now_utc()
    return {
        "id": new_ulid(),
        "topic": form_data["topic"],
        "description": form_data["description"],
        "categories": list(form_data["categories"]),
        "fields": [dict(field) for field in form_data["fields"]],
        "status": "active",
        "submissions": 0,
        "access_mode": publish_data["share_setting"],
        "access_code": publish_data["access_code"] if publish_data["share_setting"] == "private" else "",
        "response_draft": publish_data["response_draft"],
        "created_at": now,
        "updated_at": now,
    }

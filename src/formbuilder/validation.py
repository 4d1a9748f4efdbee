from __future__ import annotations

from typing import Any

from jsonschema import Draft7Validator, FormatChecker

from formbuilder.field_types import get_field_type


def validate_submission(form: dict[str, Any], payload: dict[str, Any]) -> list[str]:
    """Labels of required fields that have no value in ``payload``."""
    missing: list[str] = []
    for field in form.get("fields") or []:
        if not field.get("required"):
            continue
        value = payload.get(field.get("id"))
        if get_field_type(field.get("type")).is_missing(value):
            missing.append(field.get("label", ""))
    return missing


def build_submission_schema(form: dict[str, Any]) -> dict[str, Any]:
    properties: dict[str, Any] = {}
    for field in form.get("fields") or []:
        properties[field["id"]] = get_field_type(field.get("type")).json_schema(field)
    return {"type": "object", "properties": properties}


def _present(value: Any) -> bool:
    if value is None or value == "":
        return False
    if isinstance(value, (list, tuple)) and not value:
        return False
    return True


def find_invalid_fields(form: dict[str, Any], payload: dict[str, Any]) -> list[str]:
    """Labels of fields whose present value breaks the type constraints."""
    data = {key: value for key, value in payload.items() if _present(value)}
    validator = Draft7Validator(build_submission_schema(form), format_checker=FormatChecker())
    invalid_ids = {
        str(error.path[0]) for error in validator.iter_errors(data) if error.path
    }
    return [
        field.get("label", "")
        for field in form.get("fields") or []
        if field.get("id") in invalid_ids
    ]

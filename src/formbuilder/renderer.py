from __future__ import annotations

from typing import Any

from formbuilder.field_types import ArrayFieldType, get_field_type
from formbuilder.grouping import group_fields, visible_groups
from formbuilder.validation import validate_submission


def render_controls(
    form: dict[str, Any],
    payload: dict[str, Any],
    pending: dict[str, str] | None = None,
) -> list[dict[str, Any]]:
    """Controls for every visible category group, in presentation order."""
    pending = pending or {}
    groups: list[dict[str, Any]] = []
    for category, fields in visible_groups(group_fields(form)):
        controls = [
            get_field_type(field.get("type")).render(
                field, payload.get(field.get("id")), pending.get(field.get("id"), "")
            )
            for field in fields
        ]
        groups.append({"category": category, "controls": controls})
    return groups


class FormSession:
    """State of one fill-out session: the payload and the array input buffers.

    Every mutation goes through this object; ``render`` is a pure function of
    the current state.
    """

    def __init__(
        self,
        form: dict[str, Any],
        payload: dict[str, Any] | None = None,
        pending: dict[str, str] | None = None,
    ) -> None:
        self.form = form
        self.payload: dict[str, Any] = dict(payload or {})
        self.pending: dict[str, str] = dict(pending or {})
        self._fields = {field["id"]: field for field in form.get("fields") or []}

    def field(self, field_id: str) -> dict[str, Any]:
        try:
            return self._fields[field_id]
        except KeyError:
            raise KeyError(f"unknown field: {field_id}") from None

    def set_value(self, field_id: str, value: Any) -> None:
        self.field(field_id)
        self.payload[field_id] = value

    def set_pending(self, field_id: str, text: str) -> None:
        self.field(field_id)
        self.pending[field_id] = text

    def append_item(self, field_id: str) -> str | None:
        field = self.field(field_id)
        field_type = get_field_type(field.get("type"))
        if not isinstance(field_type, ArrayFieldType):
            raise ValueError(f"field {field_id} is not an array field")
        text = (self.pending.get(field_id) or "").strip()
        if not text:
            return None
        items = list(self.payload.get(field_id) or [])
        warning = field_type.check_item(field, text, items)
        if warning:
            return warning
        self.payload[field_id] = [*items, text]
        self.pending[field_id] = ""
        return None

    def remove_item(self, field_id: str, index: int) -> None:
        self.field(field_id)
        items = list(self.payload.get(field_id) or [])
        if 0 <= index < len(items):
            del items[index]
        self.payload[field_id] = items

    def reset(self) -> None:
        self.payload = {}
        self.pending = {}

    def missing_fields(self) -> list[str]:
        return validate_submission(self.form, self.payload)

    def render(self) -> list[dict[str, Any]]:
        return render_controls(self.form, self.payload, self.pending)

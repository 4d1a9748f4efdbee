from __future__ import annotations

import logging
from typing import Any, Callable

from formbuilder.config import DEFAULT_ARRAY_CONFIG, FIELD_TYPES
from formbuilder.draft import FORM_DATA_KEY, PUBLISH_DATA_KEY, DraftStore
from formbuilder.protocols import Storage
from formbuilder.schema import (
    build_form_record,
    normalize_array_config,
    normalize_form_definition,
    normalize_publish_settings,
    validate_form_definition,
    validate_publish_settings,
)
from formbuilder.utils import new_ulid

logger = logging.getLogger(__name__)


def new_field() -> dict[str, Any]:
    return {
        "id": new_ulid(),
        "label": "",
        "type": "text",
        "category": "",
        "required": False,
        "selections": [],
        "array_config": None,
    }


def check_publishable(form_data: dict[str, Any], publish_data: dict[str, Any]) -> list[str]:
    errors = validate_form_definition(form_data)
    if not form_data.get("fields"):
        errors.insert(0, "Form has no fields. Please add at least one field.")
    errors.extend(validate_publish_settings(publish_data))
    return errors


def publish_form(
    storage: Storage, form_data: dict[str, Any], publish_data: dict[str, Any]
) -> tuple[str | None, list[str]]:
    """Persist a form definition with its publish settings.

    Returns ``(form_id, [])`` on success or ``(None, errors)`` when the
    definition is not publishable; nothing is stored in that case.
    """
    form_data = normalize_form_definition(form_data)
    publish_data = normalize_publish_settings(publish_data)
    errors = check_publishable(form_data, publish_data)
    if errors:
        return None, errors
    record = build_form_record(form_data, publish_data)
    storage.forms.create_form(record)
    logger.info("Published form %s (%s)", record["id"], record["topic"])
    return record["id"], []


class FormWizard:
    """Authoring operations on the draft of one session.

    Every mutation loads the current snapshot, changes it and saves it back.
    Out-of-range field indexes raise ``IndexError``.
    """

    def __init__(self, drafts: DraftStore) -> None:
        self._drafts = drafts

    @property
    def form_data(self) -> dict[str, Any]:
        return normalize_form_definition(self._drafts.load(FORM_DATA_KEY))

    @property
    def publish_data(self) -> dict[str, Any]:
        return normalize_publish_settings(self._drafts.load(PUBLISH_DATA_KEY))

    def _mutate(self, change: Callable[[dict[str, Any]], None]) -> dict[str, Any]:
        form = self.form_data
        change(form)
        self._drafts.save(FORM_DATA_KEY, form)
        return form

    def _mutate_field(self, index: int, change: Callable[[dict[str, Any]], None]) -> dict[str, Any]:
        def apply(form: dict[str, Any]) -> None:
            if not 0 <= index < len(form["fields"]):
                raise IndexError(index)
            change(form["fields"][index])

        return self._mutate(apply)

    def set_details(self, topic: str, description: str) -> dict[str, Any]:
        def apply(form: dict[str, Any]) -> None:
            form["topic"] = topic.strip()
            form["description"] = description.strip()

        return self._mutate(apply)

    def add_category(self, name: str) -> dict[str, Any]:
        name = name.strip()

        def apply(form: dict[str, Any]) -> None:
            if name and name not in form["categories"]:
                form["categories"].append(name)

        return self._mutate(apply)

    def remove_category(self, name: str) -> dict[str, Any]:
        def apply(form: dict[str, Any]) -> None:
            form["categories"] = [item for item in form["categories"] if item != name]
            for field in form["fields"]:
                if field["category"] == name:
                    field["category"] = ""

        return self._mutate(apply)

    def add_field(self) -> dict[str, Any]:
        return self._mutate(lambda form: form["fields"].append(new_field()))

    def remove_field(self, index: int) -> dict[str, Any]:
        def apply(form: dict[str, Any]) -> None:
            if not 0 <= index < len(form["fields"]):
                raise IndexError(index)
            del form["fields"][index]

        return self._mutate(apply)

    def update_field(
        self,
        index: int,
        *,
        label: str | None = None,
        type: str | None = None,
        category: str | None = None,
        required: bool | None = None,
    ) -> dict[str, Any]:
        if type is not None and type not in FIELD_TYPES:
            raise ValueError(f"unknown field type: {type}")

        def apply(field: dict[str, Any]) -> None:
            if label is not None:
                field["label"] = label.strip()
            if category is not None:
                field["category"] = category.strip()
            if required is not None:
                field["required"] = required
            if type is not None:
                field["type"] = type
                if type == "selection" and not field.get("selections"):
                    field["selections"] = []
                if type == "array" and not field.get("array_config"):
                    field["array_config"] = dict(DEFAULT_ARRAY_CONFIG)

        return self._mutate_field(index, apply)

    def add_option(self, index: int, option: str) -> dict[str, Any]:
        option = option.strip()

        def apply(field: dict[str, Any]) -> None:
            if option and option not in field["selections"]:
                field["selections"].append(option)

        return self._mutate_field(index, apply)

    def remove_option(self, index: int, option: str) -> dict[str, Any]:
        def apply(field: dict[str, Any]) -> None:
            field["selections"] = [item for item in field["selections"] if item != option]

        return self._mutate_field(index, apply)

    def update_array_config(self, index: int, key: str, value: Any) -> dict[str, Any]:
        if key not in DEFAULT_ARRAY_CONFIG:
            raise ValueError(f"unknown array setting: {key}")

        def apply(field: dict[str, Any]) -> None:
            config = dict(field.get("array_config") or DEFAULT_ARRAY_CONFIG)
            config[key] = value
            field["array_config"] = normalize_array_config(config)

        return self._mutate_field(index, apply)

    def update_publish_settings(self, **changes: Any) -> dict[str, Any]:
        settings = {**self.publish_data, **changes}
        settings = normalize_publish_settings(settings)
        self._drafts.save(PUBLISH_DATA_KEY, settings)
        return settings

    def check_publishable(self) -> list[str]:
        return check_publishable(self.form_data, self.publish_data)

    def publish(self, storage: Storage) -> tuple[str | None, list[str]]:
        form_id, errors = publish_form(storage, self.form_data, self.publish_data)
        if form_id:
            self.reset()
        return form_id, errors

    def reset(self) -> None:
        self._drafts.clear()

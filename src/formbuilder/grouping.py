from __future__ import annotations

from typing import Any

from formbuilder.config import UNCATEGORIZED


def group_fields(form: dict[str, Any]) -> dict[str, list[dict[str, Any]]]:
    """Partition the fields of ``form`` into display buckets.

    ``Uncategorized`` always comes first, followed by the declared categories in
    declaration order. Fields with an empty or undeclared category fold into
    ``Uncategorized``.
    """
    groups: dict[str, list[dict[str, Any]]] = {UNCATEGORIZED: []}
    for category in form.get("categories") or []:
        groups.setdefault(category, [])
    for field in form.get("fields") or []:
        category = field.get("category") or UNCATEGORIZED
        if category not in groups:
            category = UNCATEGORIZED
        groups[category].append(field)
    return groups


def visible_groups(
    groups: dict[str, list[dict[str, Any]]],
) -> list[tuple[str, list[dict[str, Any]]]]:
    return [(category, fields) for category, fields in groups.items() if fields]

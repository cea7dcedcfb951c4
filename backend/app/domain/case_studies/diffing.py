"""Field-level comparison of two version snapshots."""

from __future__ import annotations

from typing import Any


def _changed(old: Any, new: Any) -> dict[str, Any] | None:
    if old == new:
        return None
    return {"from": old, "to": new}


def diff_content(old: dict[str, Any], new: dict[str, Any]) -> dict[str, Any]:
    old_sections = old.get("sections") or {}
    new_sections = new.get("sections") or {}

    added = [name for name in new_sections if name not in old_sections]
    removed = [name for name in old_sections if name not in new_sections]
    changed = {
        name: _section_changes(old_sections[name], new_sections[name])
        for name in new_sections
        if name in old_sections and old_sections[name] != new_sections[name]
    }

    fields: dict[str, Any] = {}
    for field in ("title", "description"):
        delta = _changed(old.get(field), new.get(field))
        if delta is not None:
            fields[field] = delta

    return {
        "fields": fields,
        "sections": {"added": added, "removed": removed, "changed": changed},
        "identical": not fields and not added and not removed and not changed,
    }


def _section_changes(old: dict[str, Any], new: dict[str, Any]) -> dict[str, Any]:
    keys = list(dict.fromkeys([*old.keys(), *new.keys()]))
    return {
        key: {"from": old.get(key), "to": new.get(key)}
        for key in keys
        if old.get(key) != new.get(key)
    }

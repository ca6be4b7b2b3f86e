"""Project files: flatten the section tree into the list the engine reads.

Two shapes are accepted:

  - flat: ``{"sections": [{"id", "title", "content", "parentId"}, ...]}``
  - nested: sections carrying ``subsections`` lists (the AI template
    import shape), possibly without ids

A bare JSON list of sections is treated as the flat shape.
"""
from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from gddrefs.io_utils import load_json
from gddrefs.references import (
    Section,
    convert_references_to_ids,
    convert_references_to_names,
)

DIRECTION_TO_IDS = "to_ids"
DIRECTION_TO_NAMES = "to_names"


class ProjectFormatError(ValueError):
    """Raised when a project file does not hold a usable section list."""


def flatten_sections(project: Mapping[str, Any] | Sequence[Any]) -> list[dict[str, Any]]:
    """Return every section, depth-first, as a new flat list of dicts.

    Nested children get ``parentId`` set to their parent. Sections without
    an id get ``<parent-id>-<n>`` (or ``section-<n>`` at the top level),
    suffixed with ``-<k>`` when the file already uses that id.
    """
    if isinstance(project, Mapping):
        roots = project.get("sections")
    else:
        roots = project
    if not isinstance(roots, list):
        raise ProjectFormatError("project has no 'sections' list")

    flat: list[dict[str, Any]] = []
    taken = _declared_ids(roots)
    _flatten_into(flat, roots, taken, parent_id=None, id_prefix="section")
    return flat


def _declared_ids(items: list[Any]) -> set[str]:
    ids: set[str] = set()
    for item in items:
        if not isinstance(item, Mapping):
            continue
        if item.get("id"):
            ids.add(item["id"])
        children = item.get("subsections")
        if isinstance(children, list):
            ids |= _declared_ids(children)
    return ids


def _generate_id(base: str, taken: set[str]) -> str:
    candidate = base
    k = 2
    while candidate in taken:
        candidate = f"{base}-{k}"
        k += 1
    taken.add(candidate)
    return candidate


def _flatten_into(
    flat: list[dict[str, Any]],
    items: list[Any],
    taken: set[str],
    *,
    parent_id: str | None,
    id_prefix: str,
) -> None:
    for n, item in enumerate(items, start=1):
        if not isinstance(item, Mapping):
            raise ProjectFormatError(
                f"section entries must be objects, got {type(item).__name__}"
            )
        section = {k: v for k, v in item.items() if k != "subsections"}
        if not section.get("id"):
            section["id"] = _generate_id(f"{id_prefix}-{n}", taken)
        if parent_id is not None and not section.get("parentId"):
            section["parentId"] = parent_id
        if not isinstance(section.get("title"), str):
            raise ProjectFormatError(f"section {section['id']!r} has no title")
        flat.append(section)

        children = item.get("subsections") or []
        if not isinstance(children, list):
            raise ProjectFormatError(
                f"section {section['id']!r} has a non-list 'subsections'"
            )
        _flatten_into(
            flat, children, taken, parent_id=section["id"], id_prefix=section["id"]
        )


def load_project(path: Path) -> dict[str, Any]:
    """Load a project file and return it with a flat ``sections`` list.

    Raises ProjectFormatError for unusable content; malformed JSON raises
    ``orjson.JSONDecodeError`` (also a ValueError).
    """
    raw = load_json(path)
    if isinstance(raw, list):
        project: dict[str, Any] = {"sections": raw}
    elif isinstance(raw, dict):
        project = dict(raw)
    else:
        raise ProjectFormatError(f"{path}: expected an object or a list of sections")

    sections = flatten_sections(project)
    ids = [s["id"] for s in sections]
    if len(set(ids)) != len(ids):
        dupes = sorted({sid for sid in ids if ids.count(sid) > 1})
        raise ProjectFormatError(f"{path}: duplicate section ids {dupes}")
    project["sections"] = sections
    return project


def convert_project(
    sections: Sequence[Section],
    direction: str,
) -> list[dict[str, Any]]:
    """Copy of ``sections`` with each content converted to ids or names.

    References resolve against the whole list, so a section may point at
    any other section regardless of nesting.
    """
    if direction == DIRECTION_TO_IDS:
        convert = convert_references_to_ids
    elif direction == DIRECTION_TO_NAMES:
        convert = convert_references_to_names
    else:
        raise ValueError(f"unknown direction {direction!r}")

    converted: list[dict[str, Any]] = []
    for section in sections:
        row = dict(section)
        content = section.get("content")
        if content:
            row["content"] = convert(content, sections)
        converted.append(row)
    return converted

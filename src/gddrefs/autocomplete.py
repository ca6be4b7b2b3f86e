"""Reference autocomplete for the section editor.

While the user types ``$[Comb`` the editor asks which sections could
complete the marker, then swaps the partial marker for a finished
``$[Combat System]``. Only the text logic lives here; caret geometry and
key handling stay in the UI.
"""
from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass

from gddrefs.references import Section

_PENDING_RE = re.compile(r"\$\[([^\]]*?)$")


@dataclass(frozen=True, slots=True)
class PendingReference:
    """An unterminated ``$[`` right before the cursor."""

    start_index: int  # offset of "$"
    query: str


def section_label(section: Section) -> str:
    """Title used for display and insertion; older records carry ``name``."""
    return str(section.get("title") or section.get("name") or "")


def find_pending_reference(text: str, cursor: int | None = None) -> PendingReference | None:
    if cursor is None:
        cursor = len(text)
    cursor = max(0, min(cursor, len(text)))
    match = _PENDING_RE.search(text[:cursor])
    if match is None:
        return None
    return PendingReference(start_index=match.start(), query=match.group(1))


def suggest_sections(
    sections: Sequence[Section],
    query: str,
    *,
    limit: int | None = None,
) -> list[Section]:
    """Sections whose label contains ``query`` (case-insensitive), input order."""
    needle = query.lower()
    matches: list[Section] = []
    for section in sections:
        label = section_label(section)
        if not label or needle not in label.lower():
            continue
        matches.append(section)
        if limit is not None and len(matches) >= limit:
            break
    return matches


def insert_reference(text: str, cursor: int | None, section: Section) -> tuple[str, int]:
    """Complete the pending marker at ``cursor`` with ``section``.

    Returns the new text and the cursor position after ``]``. Text after
    the cursor is kept. Without a pending marker nothing changes.
    """
    if cursor is None:
        cursor = len(text)
    cursor = max(0, min(cursor, len(text)))
    pending = find_pending_reference(text, cursor)
    if pending is None:
        return text, cursor
    marker = f"$[{section_label(section)}]"
    new_text = text[:pending.start_index] + marker + text[cursor:]
    return new_text, pending.start_index + len(marker)

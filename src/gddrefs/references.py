"""Section cross-reference engine.

Content stored in a GDD section may point at other sections with inline
markers:

  - ``$[Combat System]``  name reference (title, case-insensitive)
  - ``$[#sec-3]``         id reference (exact section id)

Editors show the name form and persist the id form so references survive
renames. Every function here is a pure mapping from (content, sections) to
a result; sections are plain mappings with ``id``/``title``/``content`` keys
and are never mutated.
"""
from __future__ import annotations

import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

Section = Mapping[str, Any]

# No escape syntax: any ``$[...]`` in prose is a reference.
_REFERENCE_RE = re.compile(r"\$\[([^\]]+)\]")

REF_TYPE_NAME = "name"
REF_TYPE_ID = "id"


@dataclass(frozen=True, slots=True)
class SectionReference:
    """One ``$[...]`` marker found in content.

    Offsets are half-open: ``content[start_index:end_index] == raw``.
    """

    raw: str
    ref_type: str  # "name" | "id"
    ref_value: str  # title, or id without the leading "#"
    start_index: int
    end_index: int

    @property
    def is_id(self) -> bool:
        return self.ref_type == REF_TYPE_ID

    def to_dict(self) -> dict[str, Any]:
        return {
            "raw": self.raw,
            "ref_type": self.ref_type,
            "ref_value": self.ref_value,
            "start_index": self.start_index,
            "end_index": self.end_index,
        }


@dataclass(frozen=True, slots=True)
class ReferenceValidation:
    """References partitioned by whether they resolve, in extraction order."""

    valid: tuple[SectionReference, ...]
    invalid: tuple[SectionReference, ...]

    @property
    def is_valid(self) -> bool:
        return not self.invalid

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid": [ref.to_dict() for ref in self.valid],
            "invalid": [ref.to_dict() for ref in self.invalid],
        }


def extract_section_references(content: str) -> list[SectionReference]:
    """Return every reference marker in ``content``, left to right."""
    if not content:
        return []
    references: list[SectionReference] = []
    for match in _REFERENCE_RE.finditer(content):
        inner = match.group(1).strip()
        is_id = inner.startswith("#")
        references.append(
            SectionReference(
                raw=match.group(0),
                ref_type=REF_TYPE_ID if is_id else REF_TYPE_NAME,
                ref_value=inner[1:] if is_id else inner,
                start_index=match.start(),
                end_index=match.end(),
            )
        )
    return references


def normalize_title(title: str | None) -> str:
    """Key used for name matching: edge-trimmed and lowercased.

    Internal whitespace is kept as-is.
    """
    return (title or "").strip().lower()


def find_section(
    sections: Sequence[Section],
    reference: SectionReference,
) -> Section | None:
    """Resolve a reference to a section, or ``None`` when it dangles.

    Id references match ``id`` exactly. Name references match the first
    section whose normalized title equals the normalized value; duplicate
    titles resolve to whichever section comes first in ``sections``.
    """
    if reference.ref_type == REF_TYPE_ID:
        for section in sections:
            if section.get("id") == reference.ref_value:
                return section
        return None

    wanted = normalize_title(reference.ref_value)
    for section in sections:
        title = section.get("title")
        if title is None:
            continue
        if normalize_title(title) == wanted:
            return section
    return None


def splice_references(
    content: str,
    replacements: Iterable[tuple[SectionReference, str | None]],
) -> str:
    """Rebuild ``content`` with reference spans swapped in a single pass.

    ``replacements`` must be in extraction order. A ``None`` replacement
    keeps the original marker.
    """
    parts: list[str] = []
    cursor = 0
    for ref, replacement in replacements:
        parts.append(content[cursor:ref.start_index])
        parts.append(ref.raw if replacement is None else replacement)
        cursor = ref.end_index
    parts.append(content[cursor:])
    return "".join(parts)


def convert_references_to_ids(content: str, sections: Sequence[Section]) -> str:
    """Rewrite resolvable ``$[Name]`` markers to ``$[#id]`` for storage."""
    refs = extract_section_references(content)
    if not refs:
        return content
    return splice_references(
        content,
        ((ref, _id_marker(ref, sections)) for ref in refs),
    )


def convert_references_to_names(content: str, sections: Sequence[Section]) -> str:
    """Rewrite resolvable ``$[#id]`` markers to ``$[Title]`` for editing."""
    refs = extract_section_references(content)
    if not refs:
        return content
    return splice_references(
        content,
        ((ref, _name_marker(ref, sections)) for ref in refs),
    )


def _id_marker(ref: SectionReference, sections: Sequence[Section]) -> str | None:
    if ref.ref_type != REF_TYPE_NAME:
        return None
    section = find_section(sections, ref)
    if section is None:
        return None
    return f"$[#{section['id']}]"


def _name_marker(ref: SectionReference, sections: Sequence[Section]) -> str | None:
    if ref.ref_type != REF_TYPE_ID:
        return None
    section = find_section(sections, ref)
    if section is None:
        return None
    return f"$[{section.get('title') or ''}]"


def validate_references(
    content: str,
    sections: Sequence[Section],
) -> ReferenceValidation:
    valid: list[SectionReference] = []
    invalid: list[SectionReference] = []
    for ref in extract_section_references(content):
        if find_section(sections, ref) is not None:
            valid.append(ref)
        else:
            invalid.append(ref)
    return ReferenceValidation(valid=tuple(valid), invalid=tuple(invalid))


def references_target(
    content: str | None,
    target_id: str,
    sections: Sequence[Section],
) -> bool:
    """True when any reference in ``content`` resolves to ``target_id``."""
    for ref in extract_section_references(content or ""):
        found = find_section(sections, ref)
        if found is not None and found.get("id") == target_id:
            return True
    return False


def get_backlinks(target_id: str, sections: Sequence[Section]) -> list[Section]:
    """Sections (other than the target) that reference ``target_id``.

    Each referencing section appears once, in input order.
    """
    backlinks: list[Section] = []
    seen: set[str] = set()
    for section in sections:
        section_id = section.get("id")
        if section_id == target_id or section_id in seen:
            continue
        if references_target(section.get("content"), target_id, sections):
            backlinks.append(section)
            seen.add(section_id)
    return backlinks

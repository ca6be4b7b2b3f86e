"""Turn reference markers into Markdown links for the read-only view.

Resolved markers link to the target section page. Dangling markers link to
a placeholder href under ``MISSING_HREF_PREFIX`` so the renderer can style
them as broken instead of dropping them.
"""
from __future__ import annotations

from collections.abc import Sequence
from urllib.parse import quote, unquote

from gddrefs.references import (
    Section,
    SectionReference,
    extract_section_references,
    find_section,
    splice_references,
)

SECTION_HREF_TEMPLATE = "/projects/{project_id}/sections/{section_id}"
MISSING_HREF_PREFIX = "/__gdd_missing__/"

# Characters left alone by JavaScript's encodeURIComponent.
_URI_COMPONENT_SAFE = "-_.!~*'()"


def section_href(project_id: str, section_id: str) -> str:
    return SECTION_HREF_TEMPLATE.format(project_id=project_id, section_id=section_id)


def missing_href(ref_value: str) -> str:
    return MISSING_HREF_PREFIX + quote(ref_value, safe=_URI_COMPONENT_SAFE)


def is_missing_href(href: str) -> bool:
    return href.startswith(MISSING_HREF_PREFIX)


def missing_ref_value(href: str) -> str | None:
    """Decode the reference text out of a placeholder href, if it is one."""
    if not is_missing_href(href):
        return None
    return unquote(href[len(MISSING_HREF_PREFIX):])


def render_reference_links(
    content: str,
    sections: Sequence[Section],
    project_id: str,
) -> str:
    """Replace every marker with ``[label](href)``; other text is untouched."""
    refs = extract_section_references(content)
    if not refs:
        return content

    replacements: list[tuple[SectionReference, str | None]] = []
    for ref in refs:
        target = find_section(sections, ref)
        if target is not None:
            link = f"[{target.get('title') or ''}]({section_href(project_id, target['id'])})"
        else:
            link = f"[{ref.ref_value}]({missing_href(ref.ref_value)})"
        replacements.append((ref, link))
    return splice_references(content, replacements)

"""Section graph for the mind-map view.

Two edge families are produced:
- hierarchy edges from ``parentId`` (root sections hang off the project node)
- reference edges from ``$[...]`` markers, drawn separately from the tree

Plus a small summary: most-referenced hubs, isolated sections and the
count of dangling markers.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from gddrefs.references import Section, extract_section_references, find_section

DEFAULT_HUB_LIMIT = 10


@dataclass(frozen=True, slots=True)
class ReferenceGraphSummary:
    node_count: int
    reference_edge_count: int
    dangling_reference_count: int
    hubs: tuple[tuple[str, int], ...]
    isolated: tuple[str, ...]


def reference_edges(sections: Sequence[Section]) -> list[tuple[str, str]]:
    """Deduplicated ``(source_id, target_id)`` pairs, in first-seen order.

    Self-references and dangling markers produce no edge.
    """
    edges, _ = _collect_reference_edges(sections)
    return edges


def _collect_reference_edges(
    sections: Sequence[Section],
) -> tuple[list[tuple[str, str]], int]:
    edges: list[tuple[str, str]] = []
    seen: set[tuple[str, str]] = set()
    dangling = 0
    for section in sections:
        src = section.get("id")
        for ref in extract_section_references(section.get("content") or ""):
            target = find_section(sections, ref)
            if target is None:
                dangling += 1
                continue
            dst = target.get("id")
            if dst == src:
                continue
            edge = (src, dst)
            if edge in seen:
                continue
            seen.add(edge)
            edges.append(edge)
    return edges, dangling


def cycle_members(declared: dict[str, str | None]) -> set[str]:
    """Ids that sit on a ``parentId`` loop (including self-parents)."""
    members: set[str] = set()
    for sid in declared:
        position: dict[str, int] = {}
        path: list[str] = []
        cursor: str | None = sid
        while cursor in declared and cursor not in position:
            position[cursor] = len(path)
            path.append(cursor)
            cursor = declared[cursor]
        if cursor in position:
            members.update(path[position[cursor]:])
    return members


def effective_parents(sections: Sequence[Section]) -> dict[str, str | None]:
    """Map each section id to its parent id, or ``None`` for roots.

    A section whose ``parentId`` is unknown, or which sits on a parent
    loop, is a root. Descendants of a loop keep their declared parent.
    """
    declared = {s.get("id"): s.get("parentId") for s in sections}
    in_cycle = cycle_members(declared)
    parents: dict[str, str | None] = {}
    for sid, parent in declared.items():
        if parent not in declared or sid in in_cycle:
            parents[sid] = None
        else:
            parents[sid] = parent
    return parents


def section_levels(parents: dict[str, str | None]) -> dict[str, int]:
    """Depth under the project node; roots are level 1."""
    levels: dict[str, int] = {}
    for sid in parents:
        level = 1
        cursor = parents[sid]
        while cursor is not None:
            level += 1
            cursor = parents.get(cursor)
        levels[sid] = level
    return levels


def build_reference_graph(
    sections: Sequence[Section],
    *,
    project_id: str | None = None,
    hub_limit: int = DEFAULT_HUB_LIMIT,
) -> dict[str, Any]:
    """Build nodes, hierarchy edges and reference edges for a section list."""
    ids = [s.get("id") for s in sections]
    parents = effective_parents(sections)
    levels = section_levels(parents)

    nodes = [
        {
            "id": s.get("id"),
            "title": s.get("title") or "",
            "parent_id": parents.get(s.get("id")),
            "level": levels.get(s.get("id"), 1),
        }
        for s in sections
    ]

    hierarchy: list[dict[str, Any]] = []
    for node in nodes:
        parent = node["parent_id"]
        if parent is not None:
            hierarchy.append({"from": parent, "to": node["id"]})
        elif project_id is not None:
            hierarchy.append({"from": project_id, "to": node["id"]})

    edges, dangling = _collect_reference_edges(sections)
    incoming: dict[str, int] = {sid: 0 for sid in ids}
    touched: set[str] = set()
    for src, dst in edges:
        incoming[dst] = incoming.get(dst, 0) + 1
        touched.add(src)
        touched.add(dst)

    hubs = sorted(
        ((sid, degree) for sid, degree in incoming.items() if degree > 0),
        key=lambda kv: (-kv[1], ids.index(kv[0])),
    )
    summary = ReferenceGraphSummary(
        node_count=len(nodes),
        reference_edge_count=len(edges),
        dangling_reference_count=dangling,
        hubs=tuple(hubs[:hub_limit]),
        isolated=tuple(sid for sid in ids if sid not in touched),
    )
    return {
        "nodes": nodes,
        "hierarchy_edges": hierarchy,
        "reference_edges": [{"from": src, "to": dst} for src, dst in edges],
        "summary": {
            "node_count": summary.node_count,
            "reference_edge_count": summary.reference_edge_count,
            "dangling_reference_count": summary.dangling_reference_count,
            "hubs": [{"id": sid, "in_degree": degree} for sid, degree in summary.hubs],
            "isolated": list(summary.isolated),
        },
    }

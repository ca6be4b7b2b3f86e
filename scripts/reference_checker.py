#!/usr/bin/env python3
"""Check, convert and index $[...] section references in a GDD project file.

Usage:
    # Report dangling references per section
    python3 scripts/reference_checker.py --project game.json

    # Sections that reference a given section
    python3 scripts/reference_checker.py --project game.json \
      --mode backlinks --section-id sec-3

    # Rewrite every section to the storage (id) form
    python3 scripts/reference_checker.py --project game.json \
      --mode to-ids --output game.ids.json

    # Mind-map graph with reference edges
    python3 scripts/reference_checker.py --project game.json --mode graph

    # One section's content with markers turned into Markdown links
    python3 scripts/reference_checker.py --project game.json \
      --mode render --section-id sec-3 --project-id p1

Outputs structured JSON to stdout (or --output), human messages to stderr.
Exit codes: 0 ok, 1 dangling references with --fail-on-invalid, 2 bad input.
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any

from gddrefs.io_utils import dump_json_stdout, save_json
from gddrefs.project import (
    DIRECTION_TO_IDS,
    DIRECTION_TO_NAMES,
    ProjectFormatError,
    convert_project,
    load_project,
)
from gddrefs.reference_graph import DEFAULT_HUB_LIMIT, build_reference_graph
from gddrefs.reference_links import render_reference_links
from gddrefs.references import get_backlinks, validate_references

log = logging.getLogger("reference_checker")

MODES = ("validate", "backlinks", "to-ids", "to-names", "graph", "render")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Check, convert and index section references in a GDD project."
    )
    parser.add_argument(
        "--project", required=True, type=Path, help="Path to project JSON"
    )
    parser.add_argument(
        "--mode", choices=MODES, default="validate",
        help="Operation to run (default: validate)",
    )
    parser.add_argument(
        "--section-id", default=None,
        help="Target section (required for backlinks and render)",
    )
    parser.add_argument(
        "--project-id", default=None,
        help="Project id used in rendered links and as the mind-map root",
    )
    parser.add_argument(
        "--hub-limit", type=int, default=DEFAULT_HUB_LIMIT,
        help=f"Number of hubs kept in the graph summary (default: {DEFAULT_HUB_LIMIT})",
    )
    parser.add_argument(
        "--output", type=Path, default=None,
        help="Write output to file instead of stdout",
    )
    parser.add_argument(
        "--fail-on-invalid", action="store_true",
        help="Exit 1 when validate finds dangling references",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Verbose logging",
    )
    return parser


def validation_report(sections: list[dict[str, Any]]) -> dict[str, Any]:
    """Per-section valid/invalid counts plus the dangling markers."""
    rows: list[dict[str, Any]] = []
    total_valid = 0
    total_invalid = 0
    for section in sections:
        result = validate_references(section.get("content") or "", sections)
        total_valid += len(result.valid)
        total_invalid += len(result.invalid)
        if not result.valid and not result.invalid:
            continue
        rows.append({
            "id": section["id"],
            "title": section.get("title", ""),
            "valid_count": len(result.valid),
            "invalid_count": len(result.invalid),
            "invalid": [ref.to_dict() for ref in result.invalid],
        })
    return {
        "section_count": len(sections),
        "valid_count": total_valid,
        "invalid_count": total_invalid,
        "sections": rows,
    }


def _section_summary(section: dict[str, Any]) -> dict[str, Any]:
    return {"id": section["id"], "title": section.get("title", "")}


def _find_by_id(sections: list[dict[str, Any]], section_id: str) -> dict[str, Any] | None:
    return next((s for s in sections if s["id"] == section_id), None)


def run(args: argparse.Namespace) -> tuple[Any, int]:
    """Execute one mode. Returns (payload, exit_code)."""
    project = load_project(args.project)
    sections: list[dict[str, Any]] = project["sections"]
    log.info("Loaded %d sections from %s", len(sections), args.project)

    if args.mode == "validate":
        report = validation_report(sections)
        if report["invalid_count"]:
            log.warning("%d dangling reference(s)", report["invalid_count"])
        code = 1 if args.fail_on_invalid and report["invalid_count"] else 0
        return report, code

    if args.mode in ("backlinks", "render"):
        if not args.section_id:
            raise ProjectFormatError(f"--section-id is required for --mode {args.mode}")
        target = _find_by_id(sections, args.section_id)
        if target is None:
            raise ProjectFormatError(f"section not found: {args.section_id}")
        if args.mode == "backlinks":
            backlinks = get_backlinks(args.section_id, sections)
            log.debug("%d backlink(s) to %s", len(backlinks), args.section_id)
            return {
                "target": _section_summary(target),
                "backlinks": [_section_summary(s) for s in backlinks],
            }, 0
        project_id = args.project_id or project.get("id")
        if not project_id:
            raise ProjectFormatError(
                "--project-id is required for --mode render when the project has no id"
            )
        return {
            "id": target["id"],
            "title": target.get("title", ""),
            "markdown": render_reference_links(
                target.get("content") or "", sections, str(project_id)
            ),
        }, 0

    if args.mode in ("to-ids", "to-names"):
        direction = DIRECTION_TO_IDS if args.mode == "to-ids" else DIRECTION_TO_NAMES
        converted = dict(project)
        converted["sections"] = convert_project(sections, direction)
        return converted, 0

    graph = build_reference_graph(
        sections,
        project_id=args.project_id or project.get("id"),
        hub_limit=args.hub_limit,
    )
    log.info(
        "Graph: %d nodes, %d reference edges",
        graph["summary"]["node_count"],
        graph["summary"]["reference_edge_count"],
    )
    return graph, 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    if not args.project.exists():
        log.error("project file not found: %s", args.project)
        return 2

    try:
        payload, code = run(args)
    except ValueError as exc:
        log.error("%s", exc)
        return 2

    if args.output is not None:
        save_json(payload, args.output)
        log.info("Wrote %s", args.output)
    else:
        dump_json_stdout(payload)
    return code


if __name__ == "__main__":
    sys.exit(main())

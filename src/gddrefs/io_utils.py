"""JSON I/O for project files and script output, built on orjson."""
from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import orjson

_PRETTY = orjson.OPT_INDENT_2 | orjson.OPT_SORT_KEYS


def load_json(path: Path) -> Any:
    """Load JSON from a file. Raises ``orjson.JSONDecodeError`` on bad input."""
    return orjson.loads(path.read_bytes())


def save_json(obj: Any, path: Path, *, pretty: bool = True) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    opts = _PRETTY if pretty else orjson.OPT_SORT_KEYS
    path.write_bytes(orjson.dumps(obj, option=opts) + b"\n")


def dump_json_stdout(obj: Any) -> None:
    """Write indented JSON to stdout, followed by a newline."""
    sys.stdout.buffer.write(orjson.dumps(obj, option=orjson.OPT_INDENT_2))
    sys.stdout.buffer.write(b"\n")
    sys.stdout.flush()

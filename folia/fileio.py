"""Workspace file I/O: tolerant readers and locked, atomic JSON writes.

Layout files, schema.json and dashboard.yaml are all small mappings, so the
readers return {} for anything missing, blank or not a mapping and leave
parse errors to the caller.
"""

from __future__ import annotations

import fcntl
import json
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

import yaml


def _mapping(path: Path, parse) -> dict[str, Any]:
    if not path.exists():
        return {}
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    data = parse(text)
    return data if isinstance(data, dict) else {}


def read_json(path: Path) -> dict[str, Any]:
    """Malformed JSON raises json.JSONDecodeError."""
    return _mapping(path, json.loads)


def read_yaml(path: Path) -> dict[str, Any]:
    return _mapping(path, yaml.safe_load)


@contextmanager
def _locked_replacement(path: Path) -> Iterator[Any]:
    """Yield a locked temp file beside path; it replaces path on clean exit."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.stem}.", suffix=".part")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            fcntl.flock(f, fcntl.LOCK_EX)
            yield f
            f.flush()
            os.fsync(f.fileno())
        os.replace(temp_name, path)
    except BaseException:
        Path(temp_name).unlink(missing_ok=True)
        raise


def write_json_atomic(path: Path, data: dict[str, Any]) -> None:
    """Replace path with data as pretty-printed JSON.

    The document is serialized before the temp file is created, so an
    unserializable value never leaves a partial file behind.
    """
    content = json.dumps(data, indent=2, ensure_ascii=False) + "\n"
    with _locked_replacement(path) as f:
        f.write(content)

"""Versioned schema migrations for stored dashboard layouts.

Every stored document carries a schemaVersion. Documents written before the
field existed are version 0 and are recognised by the two legacy shapes the
web client used to store:

- flow: {"widgets": [{"id", "type", "size", "order"}]}
- grid: {"widgets": [{"id", "type", "data"}], "layouts": {"lg": [{"i", "x", "y", "w", "h"}], ...}}

MIGRATIONS maps a version to the function that lifts a document to the next
version. run_startup_migrations() applies them to the whole workspace once
per process start and records the result in schema.json.
"""

from __future__ import annotations

import copy
import json
import logging
from pathlib import Path
from typing import Any, Callable

from folia.errors import MigrationError
from folia.fileio import read_json, write_json_atomic
from folia.models import CURRENT_SCHEMA_VERSION, FLOW, GRID
from folia.workspace import dashboards_dir, now_iso, schema_path, workspace_root

logger = logging.getLogger(__name__)

# react-grid-layout breakpoint keys of the legacy client -> current names
LEGACY_BREAKPOINTS = {"lg": "wide", "md": "wide", "sm": "narrow", "xs": "narrow", "xxs": "narrow"}


def _v0_to_v1(doc: dict[str, Any]) -> dict[str, Any]:
    widgets = []
    for w in doc.get("widgets") or []:
        if not isinstance(w, dict):
            continue
        settings = w.get("settings", w.get("data"))
        entry = {
            "id": str(w.get("id", "")),
            "type": str(w.get("type", "")),
            "settings": settings if isinstance(settings, dict) else {},
        }
        if "size" in w:
            entry["size"] = w["size"]
        if "order" in w:
            entry["order"] = w["order"]
        widgets.append(entry)

    legacy_layouts = doc.get("layouts")
    if not isinstance(legacy_layouts, dict):
        return {"schemaVersion": 1, "mode": FLOW, "widgets": widgets}

    placements: dict[str, list[dict[str, Any]]] = {}
    for name, entries in legacy_layouts.items():
        target = LEGACY_BREAKPOINTS.get(name, name)
        # first legacy key wins when several map onto one breakpoint
        if target in placements or not isinstance(entries, list):
            continue
        placements[target] = [
            {
                "widgetId": str(e.get("i", "")),
                "x": e.get("x", 0),
                "y": e.get("y", 0),
                "w": e.get("w", 1),
                "h": e.get("h", 1),
            }
            for e in entries
            if isinstance(e, dict) and e.get("i")
        ]

    # grid layouts sometimes stored only placements; recover bare widgets
    known = {w["id"] for w in widgets}
    for entries in legacy_layouts.values():
        for e in entries if isinstance(entries, list) else []:
            if isinstance(e, dict) and e.get("i") and e["i"] not in known and e.get("type"):
                widgets.append({"id": str(e["i"]), "type": str(e["type"]), "settings": {}})
                known.add(e["i"])

    return {"schemaVersion": 1, "mode": GRID, "widgets": widgets, "placements": placements}


MIGRATIONS: dict[int, Callable[[dict[str, Any]], dict[str, Any]]] = {
    0: _v0_to_v1,
}


def _has_legacy_shape(doc: dict[str, Any]) -> bool:
    if "layouts" in doc:
        return True
    return "mode" not in doc and "placements" not in doc


def document_version(doc: dict[str, Any]) -> int:
    """Schema version of a stored document.

    Documents without schemaVersion are version 0 only when they have one of
    the legacy shapes; a current-shape document that just lacks the field is
    taken as current.
    """
    if "schemaVersion" not in doc:
        return 0 if _has_legacy_shape(doc) else CURRENT_SCHEMA_VERSION
    try:
        return int(doc["schemaVersion"])
    except (TypeError, ValueError) as e:
        raise MigrationError(f"Unreadable schemaVersion: {doc.get('schemaVersion')!r}") from e


def migrate_document(doc: dict[str, Any]) -> dict[str, Any]:
    """Lift a stored document to CURRENT_SCHEMA_VERSION. Returns a new dict."""
    version = document_version(doc)
    if version > CURRENT_SCHEMA_VERSION:
        raise MigrationError(
            f"Layout schema {version} is newer than supported ({CURRENT_SCHEMA_VERSION})"
        )
    doc = copy.deepcopy(doc)
    while version < CURRENT_SCHEMA_VERSION:
        step = MIGRATIONS.get(version)
        if step is None:
            raise MigrationError(f"No migration from schema {version}")
        updated_at = doc.get("updatedAt")
        doc = step(doc)
        if updated_at:
            doc["updatedAt"] = updated_at
        version += 1
        doc["schemaVersion"] = version
    doc.setdefault("schemaVersion", version)
    return doc


def stored_schema_version(root: Path | None = None) -> int:
    try:
        data = read_json(schema_path(root))
    except (OSError, json.JSONDecodeError):
        return 0
    try:
        return int(data.get("version", 0))
    except (TypeError, ValueError):
        return 0


def run_startup_migrations(root: Path | None = None) -> list[str]:
    """Migrate every stored layout if the workspace schema is behind.

    Call once at process start. Returns the names of the files rewritten.
    Files that cannot be migrated are left untouched and logged; they are
    reported as load failures when their user next opens the dashboard.
    """
    if root is None:
        root = workspace_root()
    if stored_schema_version(root) >= CURRENT_SCHEMA_VERSION:
        return []

    migrated = []
    directory = dashboards_dir(root)
    for path in sorted(directory.glob("*.json")) if directory.exists() else []:
        try:
            doc = read_json(path)
            if not doc or document_version(doc) == CURRENT_SCHEMA_VERSION:
                continue
            write_json_atomic(path, migrate_document(doc))
        except (OSError, json.JSONDecodeError, MigrationError) as e:
            logger.warning("Skipping layout %s during migration: %s", path.name, e)
            continue
        migrated.append(path.name)

    write_json_atomic(schema_path(root), {"version": CURRENT_SCHEMA_VERSION, "migratedAt": now_iso()})
    logger.info("Schema at version %d (%d layout(s) migrated)", CURRENT_SCHEMA_VERSION, len(migrated))
    return migrated

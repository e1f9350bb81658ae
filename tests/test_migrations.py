"""Tests for folia/migrations.py: legacy layout upgrades."""

import pytest

from folia.errors import MigrationError
from folia.fileio import read_json
from folia.migrations import (
    document_version,
    migrate_document,
    run_startup_migrations,
    stored_schema_version,
)
from folia.models import CURRENT_SCHEMA_VERSION, Layout


def test_document_version():
    assert document_version({}) == 0
    assert document_version({"widgets": []}) == 0
    assert document_version({"mode": "grid", "widgets": [], "layouts": {}}) == 0
    # current shape without the field is current, not legacy
    assert document_version({"mode": "grid", "widgets": []}) == CURRENT_SCHEMA_VERSION
    assert document_version({"widgets": [], "placements": {}}) == CURRENT_SCHEMA_VERSION
    assert document_version({"schemaVersion": "1"}) == 1
    with pytest.raises(MigrationError):
        document_version({"schemaVersion": "one"})


def test_migrate_legacy_flow(legacy_flow_doc):
    doc = migrate_document(legacy_flow_doc)
    assert doc["schemaVersion"] == CURRENT_SCHEMA_VERSION
    assert doc["mode"] == "flow"
    assert "placements" not in doc
    b = next(w for w in doc["widgets"] if w["id"] == "b")
    assert b["settings"] == {"content": "hi"}
    assert b["order"] == 0


def test_migrate_legacy_grid(legacy_grid_doc):
    doc = migrate_document(legacy_grid_doc)
    assert doc["mode"] == "grid"
    assert doc["updatedAt"] == "2025-11-02T08:00:00+00:00"
    # legacy "data" becomes settings
    welcome = next(w for w in doc["widgets"] if w["id"] == "w-welcome")
    assert welcome["settings"] == {"firstName": "Ada"}
    # lg -> wide, sm -> narrow
    assert set(doc["placements"]) == {"wide", "narrow"}
    clock = next(p for p in doc["placements"]["wide"] if p["widgetId"] == "w-clock")
    assert (clock["x"], clock["y"], clock["w"], clock["h"]) == (8, 0, 4, 4)

    layout = Layout.from_dict(doc)
    assert layout.find_widget("w-clock").type == "Clock"


def test_migrate_first_legacy_key_wins():
    doc = migrate_document({
        "widgets": [{"id": "a", "type": "Clock"}],
        "layouts": {
            "lg": [{"i": "a", "x": 0, "y": 0, "w": 6, "h": 2}],
            "md": [{"i": "a", "x": 0, "y": 0, "w": 3, "h": 2}],
        },
    })
    assert doc["placements"]["wide"][0]["w"] == 6


def test_migrate_recovers_widgets_from_layout_entries():
    doc = migrate_document({
        "widgets": [],
        "layouts": {"lg": [{"i": "n1", "type": "Note", "x": 0, "y": 0, "w": 3, "h": 4}]},
    })
    assert doc["widgets"] == [{"id": "n1", "type": "Note", "settings": {}}]


def test_migrate_current_is_unchanged_copy():
    doc = {"schemaVersion": 1, "mode": "flow", "widgets": []}
    migrated = migrate_document(doc)
    assert migrated == doc
    assert migrated is not doc


def test_migrate_current_shape_without_version_keeps_grid():
    doc = {
        "mode": "grid",
        "widgets": [{"id": "a", "type": "Clock"}],
        "placements": {"wide": [{"widgetId": "a", "x": 4, "y": 0, "w": 4, "h": 4}]},
    }
    migrated = migrate_document(doc)
    assert migrated["schemaVersion"] == CURRENT_SCHEMA_VERSION
    assert migrated["mode"] == "grid"
    assert migrated["placements"] == doc["placements"]
    assert "schemaVersion" not in doc


def test_migrate_newer_schema_fails():
    with pytest.raises(MigrationError):
        migrate_document({"schemaVersion": CURRENT_SCHEMA_VERSION + 1})


def test_run_startup_migrations(workspace, legacy_grid_doc, legacy_flow_doc, write_layout):
    write_layout(workspace, "alice", legacy_grid_doc)
    write_layout(workspace, "bob", legacy_flow_doc)
    write_layout(workspace, "carol", {"schemaVersion": 1, "mode": "flow", "widgets": []})
    (workspace / "dashboards" / "broken.json").write_text("{oops", encoding="utf-8")

    migrated = run_startup_migrations(workspace)

    assert migrated == ["alice.json", "bob.json"]
    assert read_json(workspace / "dashboards" / "alice.json")["schemaVersion"] == 1
    # broken files are left as they were
    assert (workspace / "dashboards" / "broken.json").read_text("utf-8") == "{oops"
    assert stored_schema_version(workspace) == CURRENT_SCHEMA_VERSION
    assert read_json(workspace / "schema.json")["migratedAt"]


def test_run_startup_migrations_only_once(workspace, legacy_flow_doc, write_layout):
    run_startup_migrations(workspace)
    # a file written after the workspace is current is migrated lazily on load
    write_layout(workspace, "dave", legacy_flow_doc)
    assert run_startup_migrations(workspace) == []
    assert "schemaVersion" not in read_json(workspace / "dashboards" / "dave.json")


def test_stored_schema_version_missing(workspace):
    assert stored_schema_version(workspace) == 0

"""Shared test fixtures for Folia tests."""

from __future__ import annotations

import json
import os
from pathlib import Path

import pytest
import yaml


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Create a temporary workspace with standard structure."""
    root = tmp_path / "workspace"
    (root / "dashboards").mkdir(parents=True)

    # Config
    config = {
        "autosave_interval_seconds": 5,
        "default_mode": "flow",
        "breakpoints": [
            {"name": "wide", "min_width": 996, "columns": 12,
             "spans": {"small": 4, "medium": 4, "large": 4, "wide": 12}},
            {"name": "narrow", "min_width": 0, "columns": 4,
             "spans": {"small": 2, "medium": 2, "large": 4, "wide": 4}},
        ],
    }
    (root / "dashboard.yaml").write_text(
        yaml.dump(config, default_flow_style=False), encoding="utf-8"
    )

    # Set env var
    os.environ["FOLIA_ROOT"] = str(root)
    yield root
    # Cleanup
    if "FOLIA_ROOT" in os.environ:
        del os.environ["FOLIA_ROOT"]


@pytest.fixture
def legacy_grid_doc() -> dict:
    """A layout stored by the old grid client (no schemaVersion)."""
    return {
        "widgets": [
            {"id": "w-welcome", "type": "Welcome", "data": {"firstName": "Ada"}},
            {"id": "w-clock", "type": "Clock", "data": {}},
        ],
        "layouts": {
            "lg": [
                {"i": "w-welcome", "x": 0, "y": 0, "w": 8, "h": 4},
                {"i": "w-clock", "x": 8, "y": 0, "w": 4, "h": 4},
            ],
            "sm": [
                {"i": "w-welcome", "x": 0, "y": 0, "w": 4, "h": 4},
                {"i": "w-clock", "x": 0, "y": 4, "w": 4, "h": 4},
            ],
        },
        "updatedAt": "2025-11-02T08:00:00+00:00",
    }


@pytest.fixture
def legacy_flow_doc() -> dict:
    """A layout stored by the old flow client (no schemaVersion)."""
    return {
        "widgets": [
            {"id": "a", "type": "Clock", "size": "small", "order": 1},
            {"id": "b", "type": "Note", "size": "medium", "order": 0, "settings": {"content": "hi"}},
        ],
    }


@pytest.fixture
def write_layout():
    """Write a raw layout document for a user, bypassing the gateway."""

    def _write(root: Path, user_id: str, doc: dict) -> Path:
        path = root / "dashboards" / f"{user_id}.json"
        path.write_text(json.dumps(doc, indent=2), encoding="utf-8")
        return path

    return _write

"""Workspace root and path helpers for Folia."""

from __future__ import annotations

import os
import re
from datetime import datetime, timezone
from pathlib import Path


def workspace_root() -> Path:
    """Get the workspace root directory (contains dashboards/ and dashboard.yaml)."""
    return Path(
        os.environ.get("FOLIA_ROOT", str(Path.home() / "folia"))
    ).expanduser().resolve()


def now_iso() -> str:
    """Current UTC timestamp, second precision."""
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


_UNSAFE = re.compile(r"[^A-Za-z0-9._-]")


def safe_user_key(user_id: str) -> str:
    """Map a user id onto a file-name-safe key.

    Raises ValueError for ids that would be empty or escape the directory.
    """
    key = _UNSAFE.sub("_", user_id.strip())
    if not key or key.strip(".") == "":
        raise ValueError(f"Invalid user id: {user_id!r}")
    return key


# ── Path helpers ──────────────────────────────────────────────

def dashboards_dir(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "dashboards"


def dashboard_path(user_id: str, root: Path | None = None) -> Path:
    return dashboards_dir(root) / f"{safe_user_key(user_id)}.json"


def config_path(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "dashboard.yaml"


def schema_path(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "schema.json"


def logs_dir(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "logs"

"""Persistence gateway: load and save one layout document per user.

A gateway is anything with two coroutines:

    async def load(user_id) -> Layout | None   # None: nothing saved yet
    async def save(user_id, document) -> None  # full replace (upsert)

load raises PersistenceLoadFailure for anything other than "not found";
save raises PersistenceSaveFailure. Last writer wins.
"""

from __future__ import annotations

import asyncio
import copy
import json
import logging
from pathlib import Path
from typing import Any, Protocol

from folia.errors import MigrationError, PersistenceLoadFailure, PersistenceSaveFailure
from folia.fileio import read_json, write_json_atomic
from folia.migrations import migrate_document
from folia.models import Layout
from folia.workspace import dashboard_path, now_iso

logger = logging.getLogger(__name__)


class LayoutGateway(Protocol):
    async def load(self, user_id: str) -> Layout | None: ...

    async def save(self, user_id: str, document: dict[str, Any]) -> None: ...


# ── File-backed store ─────────────────────────────────────────


def load_layout(user_id: str, root: Path | None = None) -> Layout | None:
    """Read a user's layout file. Returns None if the user has none."""
    try:
        path = dashboard_path(user_id, root)
        data = read_json(path)
    except (OSError, ValueError) as e:
        # json.JSONDecodeError is a ValueError, so is an invalid user id
        raise PersistenceLoadFailure(f"Could not read layout for {user_id}: {e}") from e
    if not data:
        return None
    try:
        data = migrate_document(data)
    except MigrationError as e:
        raise PersistenceLoadFailure(str(e)) from e
    return Layout.from_dict(data)


def save_layout(user_id: str, document: dict[str, Any], root: Path | None = None) -> dict[str, Any]:
    """Replace a user's layout file atomically. Returns what was written."""
    stored = {**document, "updatedAt": now_iso()}
    try:
        write_json_atomic(dashboard_path(user_id, root), stored)
    except (OSError, ValueError, TypeError) as e:
        raise PersistenceSaveFailure(f"Could not save layout for {user_id}: {e}") from e
    return stored


class FileLayoutGateway:
    """One JSON file per user under <workspace>/dashboards/."""

    def __init__(self, root: Path | None = None) -> None:
        self.root = root

    async def load(self, user_id: str) -> Layout | None:
        layout = await asyncio.to_thread(load_layout, user_id, self.root)
        logger.info("Loaded layout for %s (%s)", user_id, "found" if layout else "none")
        return layout

    async def save(self, user_id: str, document: dict[str, Any]) -> None:
        await asyncio.to_thread(save_layout, user_id, document, self.root)
        logger.info("Saved layout for %s (%d widgets)", user_id, len(document.get("widgets", [])))


# ── In-memory store ───────────────────────────────────────────


class InMemoryLayoutGateway:
    """Keeps documents in a dict; used for previews and tests."""

    def __init__(self, documents: dict[str, dict[str, Any]] | None = None) -> None:
        self.documents: dict[str, dict[str, Any]] = copy.deepcopy(documents or {})
        self.saves: list[tuple[str, dict[str, Any]]] = []

    async def load(self, user_id: str) -> Layout | None:
        doc = self.documents.get(user_id)
        if doc is None:
            return None
        try:
            return Layout.from_dict(migrate_document(doc))
        except MigrationError as e:
            raise PersistenceLoadFailure(str(e)) from e

    async def save(self, user_id: str, document: dict[str, Any]) -> None:
        try:
            stored = json.loads(json.dumps(document))
        except (TypeError, ValueError) as e:
            raise PersistenceSaveFailure(f"Layout is not JSON-serializable: {e}") from e
        self.documents[user_id] = stored
        self.saves.append((user_id, stored))

from __future__ import annotations

import logging
import os
import secrets
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Body, Depends, FastAPI, HTTPException, status
from fastapi.responses import HTMLResponse
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from folia import (
    FileLayoutGateway,
    InvalidWidgetSettings,
    Layout,
    Notice,
    LayoutStore,
    MigrationError,
    PersistenceLoadFailure,
    PersistenceSaveFailure,
    UnknownWidget,
    UnknownWidgetType,
    UnsupportedOperation,
    catalogue,
    load_config,
    migrate_document,
    render_layout,
    run_startup_migrations,
    seed_default_layout,
    select_breakpoint,
    setup_logging,
    validate_document,
    workspace_root,
)

logger = logging.getLogger(__name__)

DEFAULT_WIDTH = 1200


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    migrated = run_startup_migrations(workspace_root())
    if migrated:
        logger.info("Migrated %d stored layout(s) on startup", len(migrated))
    yield


app = FastAPI(title="Folia Dashboard", version="0.4.0", lifespan=lifespan)

security = HTTPBasic(auto_error=False)


# ── HTML helpers ──────────────────────────────────────────────

def _escape(s: str) -> str:
    return (
        s.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


# ── Auth ──────────────────────────────────────────────────────

def get_current_user(credentials: HTTPBasicCredentials | None = Depends(security)) -> str:
    expected_username = os.environ.get("FOLIA_USERNAME", "")
    expected_password = os.environ.get("FOLIA_PASSWORD", "")

    if credentials is None:
        if not expected_username or not expected_password:
            return "guest"
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Basic"},
        )

    if not expected_username or not expected_password:
        return "guest"

    correct_username = secrets.compare_digest(credentials.username.encode("utf-8"), expected_username.encode("utf-8"))
    correct_password = secrets.compare_digest(credentials.password.encode("utf-8"), expected_password.encode("utf-8"))

    if not (correct_username and correct_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Basic"},
        )

    return credentials.username


# ── Store access ──────────────────────────────────────────────

async def _open_store(username: str) -> tuple[LayoutStore, FileLayoutGateway, Notice | None]:
    """Load the user's layout, seeding the default one on first use.

    A seed that could not be saved is still served, with a notice; the next
    request for a user with no stored layout tries the seed again.
    """
    root = workspace_root()
    config = load_config(root)
    gateway = FileLayoutGateway(root)
    try:
        layout = await gateway.load(username)
    except PersistenceLoadFailure as e:
        raise HTTPException(status_code=500, detail=str(e))
    notice = None
    if layout is None:
        layout, notice = await seed_default_layout(gateway, username, config.default_mode, config.breakpoints)
    return LayoutStore(layout, config.breakpoints), gateway, notice


async def _commit(store: LayoutStore, gateway: FileLayoutGateway, username: str) -> dict[str, Any]:
    document = store.snapshot()
    try:
        await gateway.save(username, document)
    except PersistenceSaveFailure as e:
        raise HTTPException(status_code=500, detail=str(e))
    return document


def _mutation_error(e: Exception) -> HTTPException:
    if isinstance(e, UnknownWidget):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, UnsupportedOperation):
        return HTTPException(status_code=409, detail=str(e))
    return HTTPException(status_code=400, detail=str(e))


# ── Endpoints ─────────────────────────────────────────────────

@app.get("/healthz")
def healthz() -> dict[str, str]:
    return {"ok": "true"}


@app.get("/api/widgets")
def api_widget_catalogue(username: str = Depends(get_current_user)) -> dict[str, Any]:
    """The widget library: every type that can be added."""
    return {"widgets": catalogue()}


@app.get("/api/dashboard")
async def api_get_dashboard(username: str = Depends(get_current_user)) -> dict[str, Any]:
    """Return the user's layout, seeding the default one on first visit."""
    store, _gateway, notice = await _open_store(username)
    result: dict[str, Any] = {"data": store.snapshot()}
    if notice is not None:
        result["notice"] = notice.to_dict()
    return result


@app.post("/api/dashboard")
async def api_save_dashboard(payload: dict[str, Any] = Body(...), username: str = Depends(get_current_user)) -> dict[str, Any]:
    """Upsert the whole layout document (full replace)."""
    document = payload.get("layout", payload)
    try:
        document = migrate_document(document)
    except MigrationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    errors = validate_document(document)
    if errors:
        raise HTTPException(status_code=400, detail="; ".join(errors))

    root = workspace_root()
    store = LayoutStore(Layout.from_dict(document), load_config(root).breakpoints)
    data = await _commit(store, FileLayoutGateway(root), username)
    return {"data": data}


@app.post("/api/dashboard/widgets")
async def api_add_widget(payload: dict[str, Any] = Body(...), username: str = Depends(get_current_user)) -> dict[str, Any]:
    """Add a widget: {"type": "Clock", "size": {"w": 4, "h": 2} | "small", "settings": {}}."""
    store, gateway, _notice = await _open_store(username)
    try:
        widget = store.add_widget(str(payload.get("type", "")), payload.get("size"), payload.get("settings"))
    except (UnknownWidgetType, InvalidWidgetSettings, ValueError) as e:
        raise _mutation_error(e)
    data = await _commit(store, gateway, username)
    return {"ok": True, "widget": widget.to_dict(), "data": data}


@app.delete("/api/dashboard/widgets/{widget_id}")
async def api_remove_widget(widget_id: str, username: str = Depends(get_current_user)) -> dict[str, Any]:
    """Remove a widget; removing an absent widget is not an error."""
    store, gateway, _notice = await _open_store(username)
    removed = store.remove_widget(widget_id)
    if removed:
        await _commit(store, gateway, username)
    return {"ok": True, "removed": removed, "widget_id": widget_id}


@app.patch("/api/dashboard/widgets/{widget_id}/settings")
async def api_update_settings(widget_id: str, payload: dict[str, Any] = Body(...), username: str = Depends(get_current_user)) -> dict[str, Any]:
    """Shallow-merge settings into one widget."""
    store, gateway, _notice = await _open_store(username)
    try:
        settings = store.update_settings(widget_id, payload)
    except (UnknownWidget, InvalidWidgetSettings) as e:
        raise _mutation_error(e)
    await _commit(store, gateway, username)
    return {"ok": True, "settings": settings}


@app.post("/api/dashboard/widgets/{widget_id}/move")
async def api_move_widget(widget_id: str, payload: dict[str, Any] = Body(...), username: str = Depends(get_current_user)) -> dict[str, Any]:
    """Grid mode: {"breakpoint": "wide", "x": 0, "y": 2, "w": 4, "h": 2}."""
    store, gateway, _notice = await _open_store(username)
    try:
        store.move_or_resize(widget_id, str(payload.get("breakpoint", "")), payload)
    except (UnknownWidget, UnsupportedOperation, ValueError) as e:
        raise _mutation_error(e)
    data = await _commit(store, gateway, username)
    return {"ok": True, "data": data}


@app.post("/api/dashboard/widgets/{widget_id}/reorder")
async def api_reorder_widget(widget_id: str, payload: dict[str, Any] = Body(...), username: str = Depends(get_current_user)) -> dict[str, Any]:
    """Flow mode: {"index": 3}."""
    store, gateway, _notice = await _open_store(username)
    try:
        store.reorder(widget_id, int(payload.get("index", 0)))
    except (UnknownWidget, UnsupportedOperation, ValueError, TypeError) as e:
        raise _mutation_error(e)
    data = await _commit(store, gateway, username)
    return {"ok": True, "data": data}


@app.get("/api/dashboard/render")
async def api_render_dashboard(width: int = DEFAULT_WIDTH, username: str = Depends(get_current_user)) -> dict[str, Any]:
    """Visible widgets for the breakpoint matching a container width."""
    store, _gateway, notice = await _open_store(username)
    bp = select_breakpoint(width, store.breakpoints)
    widgets = [
        {
            "id": item.widget.id,
            "type": item.widget.type,
            "known": item.known,
            "settings": item.widget.settings,
            **item.rect.to_dict(),
        }
        for item in render_layout(store.layout, bp)
    ]
    result = {"breakpoint": bp.name, "columns": bp.columns, "mode": store.mode, "widgets": widgets}
    if notice is not None:
        result["notice"] = notice.to_dict()
    return result


@app.get("/", response_class=HTMLResponse)
async def index(width: int = DEFAULT_WIDTH, username: str = Depends(get_current_user)) -> HTMLResponse:
    store, _gateway, notice = await _open_store(username)
    bp = select_breakpoint(width, store.breakpoints)

    cards = []
    for item in render_layout(store.layout, bp):
        r = item.rect
        style = f"grid-column:{r.x + 1} / span {r.w}; grid-row:{r.y + 1} / span {r.h}"
        classes = "card" if item.known else "card unknown"
        cards.append(
            f'<div class="{classes}" style="{style}" data-widget-id="{_escape(item.widget.id)}">'
            f'<h2>{_escape(item.spec.name)}</h2>'
            f'<div>{_escape(item.spec.render(item.widget.settings))}</div>'
            f'</div>'
        )

    banner = f'<div class="notice">{_escape(notice.message)}</div>' if notice is not None else ""

    html = f"""<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1" />
  <title>Folia</title>
  <style>
    body {{ font-family: system-ui, sans-serif; margin: 0; padding: 16px; }}
    .dash {{ display: grid; grid-template-columns: repeat({bp.columns}, 1fr); grid-auto-rows: 48px; gap: 12px; }}
    .card {{ border: 1px solid #ddd; border-radius: 8px; padding: 12px; overflow: auto; }}
    .card.unknown {{ opacity: 0.5; }}
    .muted {{ color: #888; font-size: 13px; }}
    .notice {{ background: #fff4d6; border-radius: 6px; padding: 8px 12px; margin-bottom: 12px; }}
  </style>
</head>
<body>
  <header>
    <h1>Folia</h1>
    <div class="muted">{_escape(username)} · {_escape(bp.name)} ({bp.columns} columns) · {_escape(store.mode)} layout</div>
  </header>
  {banner}
  <main class="dash">
    {''.join(cards) if cards else '<div class="muted">No widgets yet. Add one from the widget library.</div>'}
  </main>
</body>
</html>"""
    return HTMLResponse(html)

#!/usr/bin/env python3
"""Folia TUI: the home dashboard in the terminal, powered by Textual."""

from __future__ import annotations

import logging
import sys

from textual import on
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.widgets import DataTable, Footer, Header, Input, Label, Static

from folia import (
    FLOW,
    DashboardSession,
    FileLayoutGateway,
    Notice,
    REGISTRY,
    Rect,
    load_config,
    run_startup_migrations,
    select_breakpoint,
    setup_logging,
    workspace_root,
)

logger = logging.getLogger(__name__)

DEFAULT_USER = "local"

# terminal cells are mapped to pixels so the web breakpoints apply unchanged
CELL_WIDTH_PX = 8

CSS = """
Screen {
    layout: vertical;
}

.section-title {
    text-style: bold;
    color: $accent;
    margin: 1 0 0 0;
    padding: 0 1;
}

#widgets-table {
    height: 1fr;
}

#library {
    height: auto;
    padding: 0 1;
    color: $text-muted;
}

#add-input {
    display: none;
    margin: 0 1;
}

#edit-banner {
    height: 1;
    padding: 0 2;
    background: $warning-darken-2;
    display: none;
}
"""


def _library_text() -> str:
    names = sorted(REGISTRY)
    return "Widget library: " + ", ".join(names)


class FoliaApp(App):
    """Folia: customizable home dashboard."""

    TITLE = "Folia"
    CSS = CSS
    AUTO_FOCUS = "#widgets-table"

    BINDINGS = [
        Binding("e", "toggle_edit", "Edit"),
        Binding("a", "add_widget", "Add"),
        Binding("x", "remove_widget", "Remove"),
        Binding("left_square_bracket", "move(-1)", "Move up"),
        Binding("right_square_bracket", "move(1)", "Move down"),
        Binding("escape", "cancel_add", "Cancel"),
        Binding("q", "quit_app", "Quit"),
    ]

    def __init__(self, user_id: str = DEFAULT_USER) -> None:
        super().__init__()
        root = workspace_root()
        self.session = DashboardSession(
            user_id,
            FileLayoutGateway(root),
            config=load_config(root),
            on_notice=self._show_notice,
        )
        self._row_ids: list[str] = []

    def check_action(self, action: str, parameters: tuple[object, ...]) -> bool | None:
        """Only show editing bindings while in edit mode."""
        if action in {"add_widget", "remove_widget", "move"}:
            return True if self.session.editing else None
        if action == "cancel_add":
            return True if self.query_one("#add-input", Input).display else None
        return True

    def compose(self) -> ComposeResult:
        yield Header()
        yield Static("EDITING: changes are saved automatically", id="edit-banner")
        yield Vertical(
            Label("Dashboard", classes="section-title"),
            DataTable(id="widgets-table", cursor_type="row"),
            Static(_library_text(), id="library"),
            Input(placeholder="widget type, e.g. Clock", id="add-input"),
        )
        yield Footer()

    async def on_mount(self) -> None:
        table = self.query_one("#widgets-table", DataTable)
        table.add_columns("Pos", "Widget", "Size", "Preview")
        if await self.session.mount():
            self.session.start_autosave()
        self._refresh_table()

    def _show_notice(self, notice: Notice) -> None:
        self.notify(notice.message, title=notice.title, severity=notice.severity)

    # ── Rendering ──────────────────────────────────────────────

    def _refresh_table(self) -> None:
        table = self.query_one("#widgets-table", DataTable)
        cursor = table.cursor_row
        table.clear()
        self._row_ids = []

        views = self.session.views(self._container_width())
        for view in views:
            r = view.rect
            preview = view.body.splitlines()[0] if view.body else ""
            if view.navigates_to:
                preview = f"{preview} -> {view.navigates_to}"
            table.add_row(f"{r.y},{r.x}", view.name, f"{r.w}x{r.h}", preview)
            self._row_ids.append(view.id)

        if self._row_ids:
            table.move_cursor(row=min(cursor, len(self._row_ids) - 1))

        store = self.session.store
        mode = store.mode.upper() if store is not None else "-"
        self.sub_title = f"{len(views)} widgets  [{mode}]"

    def _container_width(self) -> int:
        return max(self.size.width * CELL_WIDTH_PX, 1)

    def on_resize(self) -> None:
        if self.session.mounted:
            self._refresh_table()

    def _focused_widget_id(self) -> str | None:
        table = self.query_one("#widgets-table", DataTable)
        if not self._row_ids or table.cursor_row < 0:
            return None
        return self._row_ids[min(table.cursor_row, len(self._row_ids) - 1)]

    # ── Edit mode ──────────────────────────────────────────────

    async def action_toggle_edit(self) -> None:
        banner = self.query_one("#edit-banner", Static)
        if self.session.editing:
            banner.display = False
            self.action_cancel_add()
            if await self.session.exit_edit_mode():
                self.notify("Layout saved.", title="Dashboard", severity="information")
        else:
            self.session.enter_edit_mode()
            banner.display = True
        self.refresh_bindings()

    def action_add_widget(self) -> None:
        box = self.query_one("#add-input", Input)
        box.value = ""
        box.display = True
        box.focus()
        self.refresh_bindings()

    def action_cancel_add(self) -> None:
        box = self.query_one("#add-input", Input)
        box.display = False
        self.query_one("#widgets-table", DataTable).focus()
        self.refresh_bindings()

    @on(Input.Submitted, "#add-input")
    def _on_add_submitted(self, event: Input.Submitted) -> None:
        widget_type = event.value.strip()
        self.action_cancel_add()
        if not widget_type:
            return
        widget = self.session.add_widget(widget_type)
        if widget is not None:
            self._refresh_table()
            self.query_one("#widgets-table", DataTable).move_cursor(row=len(self._row_ids) - 1)

    def action_remove_widget(self) -> None:
        widget_id = self._focused_widget_id()
        if widget_id is None:
            return
        if self.session.remove_widget(widget_id):
            self._refresh_table()

    def action_move(self, delta: int) -> None:
        """Flow mode moves the widget in the order; grid mode nudges it vertically."""
        store = self.session.store
        widget_id = self._focused_widget_id()
        if store is None or widget_id is None:
            return

        if store.mode == FLOW:
            widget = store.get_widget(widget_id)
            moved = self.session.reorder(widget_id, max(widget.order + delta, 0))
        else:
            width = self._container_width()
            bp = select_breakpoint(width, store.breakpoints)
            view = next(v for v in self.session.views(width) if v.id == widget_id)
            r = view.rect
            moved = self.session.move_or_resize(widget_id, bp.name, Rect(r.x, max(r.y + delta * r.h, 0), r.w, r.h))

        if moved:
            self._refresh_table()
            table = self.query_one("#widgets-table", DataTable)
            if widget_id in self._row_ids:
                table.move_cursor(row=self._row_ids.index(widget_id))

    async def action_quit_app(self) -> None:
        # final flush before exit
        await self.session.close()
        self.exit()


# ── Entry point ────────────────────────────────────────────────


def main() -> None:
    root = workspace_root()
    if not root.exists():
        print(f"Workspace not found: {root}")
        print("Set FOLIA_ROOT to an existing directory.")
        sys.exit(1)

    setup_logging(root, to_file=True, console=False)
    run_startup_migrations(root)

    user_id = sys.argv[1] if len(sys.argv) > 1 else DEFAULT_USER
    app = FoliaApp(user_id)
    app.run()


if __name__ == "__main__":
    main()

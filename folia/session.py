"""Dashboard session: mount-time load/seed flow plus the render-facing API.

A session is what a dashboard screen holds while it is open. It loads the
user's layout (seeding the default one on first use), owns the LayoutStore
and its AutosaveCoordinator, and turns every engine failure into a Notice
delivered to ``on_notice`` instead of an exception.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

from folia.autosave import AutosaveCoordinator
from folia.config import DashboardConfig
from folia.defaults import seed_default_layout
from folia.errors import DashboardError, PersistenceLoadFailure, UnknownWidgetType
from folia.models import Notice, Rect, WidgetInstance
from folia.reflow import render_layout, select_breakpoint
from folia.store import LayoutStore

logger = logging.getLogger(__name__)


@dataclass
class WidgetView:
    """What a widget renderer receives for one visible widget."""

    id: str
    type: str
    name: str
    settings: dict[str, Any]
    rect: Rect
    body: str
    navigates_to: str | None
    on_settings_change: Callable[[dict[str, Any]], None]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "name": self.name,
            "settings": self.settings,
            **self.rect.to_dict(),
            "body": self.body,
            "navigatesTo": self.navigates_to,
        }


class DashboardSession:
    def __init__(
        self,
        user_id: str,
        gateway,
        config: DashboardConfig | None = None,
        on_notice: Callable[[Notice], None] | None = None,
    ) -> None:
        self.user_id = user_id
        self.gateway = gateway
        self.config = config or DashboardConfig()
        self.on_notice = on_notice
        self.store: LayoutStore | None = None
        self.coordinator: AutosaveCoordinator | None = None
        self.editing = False

    @property
    def mounted(self) -> bool:
        return self.store is not None

    def _notify(self, notice: Notice) -> None:
        if self.on_notice is not None:
            self.on_notice(notice)

    # ── Lifecycle ──

    async def mount(self) -> bool:
        """Load (or seed) the layout. Returns False if the dashboard stays empty."""
        # never seed after a failed load: the seed would overwrite the real layout
        try:
            layout = await self.gateway.load(self.user_id)
        except PersistenceLoadFailure as e:
            logger.warning("Layout load failed for %s: %s", self.user_id, e)
            self._notify(Notice("Could not load dashboard.", "error", "Dashboard"))
            return False
        except Exception:
            logger.exception("Unexpected error loading layout for %s", self.user_id)
            self._notify(Notice("Could not load dashboard.", "error", "Dashboard"))
            return False

        seed_failed = False
        if layout is None:
            layout, notice = await seed_default_layout(
                self.gateway, self.user_id, self.config.default_mode, self.config.breakpoints
            )
            if notice is not None:
                seed_failed = True
                self._notify(notice)

        self.store = LayoutStore(layout, self.config.breakpoints)
        self.coordinator = AutosaveCoordinator(
            self.store,
            self.gateway,
            self.user_id,
            interval=self.config.autosave_interval_seconds,
            on_notice=self._notify,
        )
        if seed_failed:
            self.coordinator.mark_dirty()
        return True

    def start_autosave(self) -> None:
        if self.coordinator is not None:
            self.coordinator.start()

    async def close(self) -> bool:
        """Stop the timer and flush pending edits."""
        if self.coordinator is None:
            return True
        await self.coordinator.stop()
        return await self.coordinator.flush_now()

    async def flush_now(self) -> bool:
        """Persist pending edits; call before navigating away."""
        if self.coordinator is None:
            return True
        return await self.coordinator.flush_now()

    # ── Edit mode ──

    def enter_edit_mode(self) -> None:
        self.editing = True

    async def exit_edit_mode(self) -> bool:
        self.editing = False
        if self.coordinator is None:
            return True
        return await self.coordinator.exit_edit_mode()

    # ── Mutations (errors become notices) ──

    def add_widget(self, widget_type: str, size_hint: Any = None, settings: dict[str, Any] | None = None) -> WidgetInstance | None:
        if self.store is None:
            return None
        try:
            return self.store.add_widget(widget_type, size_hint, settings)
        except UnknownWidgetType as e:
            self._notify(Notice(f"Widget type '{e.widget_type}' is not available.", "warning", "Add widget"))
        except (DashboardError, ValueError) as e:
            self._notify(Notice(str(e), "warning", "Add widget"))
        return None

    def remove_widget(self, widget_id: str) -> bool:
        if self.store is None:
            return False
        return self.store.remove_widget(widget_id)

    def move_or_resize(self, widget_id: str, breakpoint: str, rect: Rect | dict[str, Any]) -> bool:
        return self._apply(lambda store: store.move_or_resize(widget_id, breakpoint, rect), "Move widget")

    def reorder(self, widget_id: str, target_index: int) -> bool:
        return self._apply(lambda store: store.reorder(widget_id, target_index), "Move widget")

    def update_settings(self, widget_id: str, partial: dict[str, Any]) -> bool:
        return self._apply(lambda store: store.update_settings(widget_id, partial), "Widget settings")

    def _apply(self, operation: Callable[[LayoutStore], Any], title: str) -> bool:
        if self.store is None:
            return False
        try:
            operation(self.store)
        except (DashboardError, ValueError) as e:
            self._notify(Notice(str(e), "warning", title))
            return False
        return True

    # ── Rendering ──

    def views(self, width: int) -> list[WidgetView]:
        """Visible widgets for the breakpoint matching a container width."""
        if self.store is None:
            return []
        bp = select_breakpoint(width, self.store.breakpoints)
        views = []
        for item in render_layout(self.store.layout, bp):
            widget_id = item.widget.id
            views.append(
                WidgetView(
                    id=widget_id,
                    type=item.widget.type,
                    name=item.spec.name,
                    settings=dict(item.widget.settings),
                    rect=item.rect,
                    body=item.spec.render(item.widget.settings),
                    navigates_to=item.spec.navigates_to,
                    on_settings_change=lambda partial, wid=widget_id: self.update_settings(wid, partial),
                )
            )
        return views

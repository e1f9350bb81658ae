"""Layout store: the in-memory dashboard arrangement and its mutations.

A LayoutStore owns one Layout and delegates placement bookkeeping to the
strategy matching the layout's mode:

- GridPlacement: free-form (x, y, w, h) per breakpoint, compacted by
  folia.reflow on removal and when a snapshot is taken.
- FlowPlacement: a single ordered list; each widget declares a size class
  and reordering splices list positions.

Every mutation is synchronous, performs no I/O, leaves the data-model
invariants intact and bumps the store revision. Listeners registered with
subscribe() are told about each new revision; the autosave coordinator is
one of them.
"""

from __future__ import annotations

import copy
import logging
import uuid
from typing import Any, Callable

from folia.config import default_breakpoints
from folia.errors import (
    InvalidWidgetSettings,
    UnknownWidget,
    UnsupportedOperation,
)
from folia.models import (
    FLOW,
    GRID,
    SIZE_CLASSES,
    VALID_MODES,
    Breakpoint,
    Layout,
    Placement,
    Rect,
    WidgetInstance,
)
from folia.reflow import bottom_of, compact
from folia.registry import default_size_class, lookup, require, validate_settings

logger = logging.getLogger(__name__)

SizeHint = Any  # (w, h), {"w": .., "h": ..}, {breakpoint: (w, h)} or a size class


def new_widget_id() -> str:
    return str(uuid.uuid4())


def _pair(value: Any) -> tuple[int, int] | None:
    if isinstance(value, dict) and "w" in value and "h" in value:
        value = (value["w"], value["h"])
    if isinstance(value, (tuple, list)) and len(value) == 2:
        try:
            w, h = int(value[0]), int(value[1])
        except (TypeError, ValueError):
            return None
        if w >= 1 and h >= 1:
            return w, h
    return None


def parse_footprint_hint(hint: SizeHint, breakpoints: list[Breakpoint]) -> dict[str, tuple[int, int]]:
    """Normalize a grid size hint into breakpoint name -> (w, h).

    Breakpoints the hint does not mention are left out; callers fall back to
    the registry footprint for them. Raises ValueError on a malformed hint.
    """
    if hint is None:
        return {}
    single = _pair(hint)
    if single is not None:
        return {bp.name: single for bp in breakpoints}
    if isinstance(hint, dict):
        names = {bp.name for bp in breakpoints}
        result = {}
        for name, value in hint.items():
            if name not in names:
                raise ValueError(f"Unknown breakpoint in size hint: {name}")
            pair = _pair(value)
            if pair is None:
                raise ValueError(f"Invalid size for breakpoint {name}: {value!r}")
            result[name] = pair
        return result
    raise ValueError(f"Invalid size hint: {hint!r}")


# ── Placement strategies ──────────────────────────────────────


class PlacementStrategy:
    """How widgets are positioned for one layout mode."""

    mode = ""

    def add(self, layout: Layout, widget: WidgetInstance, hint: SizeHint, breakpoints: list[Breakpoint]) -> None:
        raise NotImplementedError

    def prepare_add(self, widget_type: str, hint: SizeHint, breakpoints: list[Breakpoint]) -> Any:
        """Validate a hint before anything is mutated; returns the parsed form."""
        return hint

    def remove(self, layout: Layout, widget_id: str, breakpoints: list[Breakpoint]) -> None:
        raise NotImplementedError

    def move_or_resize(
        self, layout: Layout, widget_id: str, breakpoint: str, rect: Rect, breakpoints: list[Breakpoint]
    ) -> None:
        raise UnsupportedOperation(f"move_or_resize is not available in {self.mode} mode")

    def reorder(self, layout: Layout, widget_id: str, target_index: int) -> None:
        raise UnsupportedOperation(f"reorder is not available in {self.mode} mode")

    def normalize(self, layout: Layout, breakpoints: list[Breakpoint]) -> None:
        """Bring a freshly loaded or copied layout into canonical form."""


class GridPlacement(PlacementStrategy):
    mode = GRID

    def prepare_add(self, widget_type, hint, breakpoints):
        return parse_footprint_hint(hint, breakpoints)

    def add(self, layout, widget, hint, breakpoints):
        footprint = lookup(widget.type).footprint
        for bp in breakpoints:
            entries = layout.placements.setdefault(bp.name, [])
            if bp.name in hint:
                w, h = footprint.clamp(*hint[bp.name], bp)
            else:
                w, h = footprint.for_breakpoint(bp)
            entries.append(Placement(widget.id, 0, bottom_of(entries), w, h))

    def remove(self, layout, widget_id, breakpoints):
        for name in list(layout.placements):
            layout.placements[name] = [p for p in layout.placements[name] if p.widget_id != widget_id]
        self._compact(layout, breakpoints)

    def move_or_resize(self, layout, widget_id, breakpoint, rect, breakpoints):
        bp = next(b for b in breakpoints if b.name == breakpoint)
        w, h = lookup(layout.find_widget(widget_id).type).footprint.clamp(rect.w, rect.h, bp)
        placement = Placement(widget_id, rect.x, rect.y, w, h)
        entries = layout.placements.setdefault(breakpoint, [])
        for i, p in enumerate(entries):
            if p.widget_id == widget_id:
                entries[i] = placement
                return
        entries.append(placement)

    def normalize(self, layout, breakpoints):
        known = layout.widget_ids()
        configured = {bp.name for bp in breakpoints}
        for name in list(layout.placements):
            if name not in configured:
                logger.info("Dropped placements for unconfigured breakpoint %s", name)
                del layout.placements[name]
                continue
            kept = []
            seen = set()
            for p in layout.placements[name]:
                # first placement of a widget wins, as when rendering
                if p.widget_id in known and p.widget_id not in seen:
                    kept.append(p)
                    seen.add(p.widget_id)
            dropped = len(layout.placements[name]) - len(kept)
            if dropped:
                logger.debug("Dropped %d dangling or duplicate placement(s) at %s", dropped, name)
            layout.placements[name] = kept
        self._compact(layout, breakpoints)

    @staticmethod
    def _compact(layout, breakpoints):
        for bp in breakpoints:
            if bp.name in layout.placements:
                layout.placements[bp.name] = compact(layout.placements[bp.name], bp.columns)


class FlowPlacement(PlacementStrategy):
    mode = FLOW

    def prepare_add(self, widget_type, hint, breakpoints):
        if hint is None:
            return default_size_class(widget_type)
        if hint not in SIZE_CLASSES:
            raise ValueError(f"Invalid size class: {hint!r}")
        return hint

    def add(self, layout, widget, hint, breakpoints):
        widget.size = hint
        widget.order = len(layout.widgets) - 1

    def remove(self, layout, widget_id, breakpoints):
        self._renumber(layout)

    def reorder(self, layout, widget_id, target_index):
        widgets = layout.widgets
        current = next(i for i, w in enumerate(widgets) if w.id == widget_id)
        target = max(0, min(int(target_index), len(widgets) - 1))
        moved = widgets.pop(current)
        widgets.insert(target, moved)
        self._renumber(layout)

    def normalize(self, layout, breakpoints):
        layout.widgets.sort(key=lambda w: w.order)
        self._renumber(layout)
        layout.placements = {}

    @staticmethod
    def _renumber(layout):
        for index, widget in enumerate(layout.widgets):
            widget.order = index


STRATEGIES: dict[str, PlacementStrategy] = {
    GRID: GridPlacement(),
    FLOW: FlowPlacement(),
}


# ── Store ─────────────────────────────────────────────────────


class LayoutStore:
    """Authoritative in-memory layout for one dashboard session."""

    def __init__(self, layout: Layout | None = None, breakpoints: list[Breakpoint] | None = None) -> None:
        self.layout = copy.deepcopy(layout) if layout is not None else Layout()
        self.breakpoints = list(breakpoints) if breakpoints else default_breakpoints()
        self.strategy = STRATEGIES[self.layout.mode]
        self.strategy.normalize(self.layout, self.breakpoints)
        self.revision = 0
        self._listeners: list[Callable[[int], None]] = []

    # ── Observation ──

    @property
    def mode(self) -> str:
        return self.layout.mode

    def subscribe(self, listener: Callable[[int], None]) -> None:
        """Call listener(revision) after every mutation."""
        self._listeners.append(listener)

    def _changed(self) -> None:
        self.revision += 1
        for listener in list(self._listeners):
            listener(self.revision)

    def get_widget(self, widget_id: str) -> WidgetInstance:
        widget = self.layout.find_widget(widget_id)
        if widget is None:
            raise UnknownWidget(widget_id)
        return widget

    def widgets(self) -> list[WidgetInstance]:
        return list(self.layout.widgets)

    # ── Mutations ──

    def add_widget(
        self,
        widget_type: str,
        size_hint: SizeHint = None,
        settings: dict[str, Any] | None = None,
    ) -> WidgetInstance:
        """Add a widget of a registered type at the end of the layout.

        Raises UnknownWidgetType, InvalidWidgetSettings or ValueError (bad
        size hint) without touching the store.
        """
        require(widget_type)
        hint = self.strategy.prepare_add(widget_type, size_hint, self.breakpoints)
        settings = dict(settings or {})
        errors = validate_settings(widget_type, settings)
        if errors:
            raise InvalidWidgetSettings(widget_type, errors)

        widget_id = new_widget_id()
        while self.layout.find_widget(widget_id) is not None:
            widget_id = new_widget_id()

        widget = WidgetInstance(id=widget_id, type=widget_type, settings=copy.deepcopy(settings))
        self.layout.widgets.append(widget)
        self.strategy.add(self.layout, widget, hint, self.breakpoints)
        logger.debug("Added %s widget %s", widget_type, widget_id)
        self._changed()
        return widget

    def remove_widget(self, widget_id: str) -> bool:
        """Remove a widget and all of its placements. Returns False if absent."""
        if self.layout.find_widget(widget_id) is None:
            return False
        self.layout.widgets = [w for w in self.layout.widgets if w.id != widget_id]
        self.strategy.remove(self.layout, widget_id, self.breakpoints)
        logger.debug("Removed widget %s", widget_id)
        self._changed()
        return True

    def move_or_resize(self, widget_id: str, breakpoint: str, rect: Rect | dict[str, Any]) -> None:
        """Replace one widget's placement at one breakpoint (grid mode only).

        The size is held to the widget type's minimum footprint. Overlaps are
        not checked here; compaction resolves them.
        """
        self.get_widget(widget_id)
        if isinstance(rect, dict):
            rect = Rect.from_dict(rect)
        if self.mode == GRID and breakpoint not in {bp.name for bp in self.breakpoints}:
            raise ValueError(f"Unknown breakpoint: {breakpoint}")
        self.strategy.move_or_resize(self.layout, widget_id, breakpoint, rect, self.breakpoints)
        self._changed()

    def reorder(self, widget_id: str, target_index: int) -> None:
        """Move a widget to a new list position (flow mode only)."""
        self.get_widget(widget_id)
        self.strategy.reorder(self.layout, widget_id, target_index)
        self._changed()

    def update_settings(self, widget_id: str, partial: dict[str, Any]) -> dict[str, Any]:
        """Shallow-merge partial into a widget's settings; returns the merged bag."""
        widget = self.get_widget(widget_id)
        errors = validate_settings(widget.type, partial)
        if errors:
            raise InvalidWidgetSettings(widget.type, errors)
        if partial:
            widget.settings = {**widget.settings, **copy.deepcopy(partial)}
            self._changed()
        return copy.deepcopy(widget.settings)

    # ── Persistence view ──

    def snapshot(self) -> dict[str, Any]:
        """Full JSON-serializable copy of the current state, compacted."""
        layout = copy.deepcopy(self.layout)
        self.strategy.normalize(layout, self.breakpoints)
        return layout.to_dict()


def validate_document(data: dict[str, Any]) -> list[str]:
    """Validate a layout document submitted from outside. Returns errors."""
    errors = []
    if not isinstance(data, dict):
        return ["layout must be an object"]
    if data.get("mode", FLOW) not in VALID_MODES:
        errors.append(f"Invalid mode: {data.get('mode')}")

    widgets = data.get("widgets", [])
    if not isinstance(widgets, list):
        return errors + ["widgets must be a list"]
    seen = set()
    for w in widgets:
        if not isinstance(w, dict) or not w.get("id") or not w.get("type"):
            errors.append("Every widget needs an id and a type")
            continue
        if w["id"] in seen:
            errors.append(f"Duplicate widget id: {w['id']}")
        seen.add(w["id"])
        if "settings" in w and not isinstance(w["settings"], dict):
            errors.append(f"settings of {w['id']} must be an object")
        if "size" in w and w["size"] not in SIZE_CLASSES:
            errors.append(f"Invalid size class for {w['id']}: {w['size']}")

    placements = data.get("placements", {})
    if not isinstance(placements, dict):
        return errors + ["placements must be an object"]
    for bp, entries in placements.items():
        if not isinstance(entries, list):
            errors.append(f"placements for {bp} must be a list")
            continue
        for p in entries:
            if not isinstance(p, dict) or not p.get("widgetId"):
                errors.append(f"Every placement at {bp} needs a widgetId")
                continue
            for key, minimum in (("x", 0), ("y", 0), ("w", 1), ("h", 1)):
                value = p.get(key)
                if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
                    errors.append(f"{key} of {p['widgetId']} at {bp} must be an integer >= {minimum}")
    return errors

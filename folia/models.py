"""Typed dataclasses for the Folia dashboard data model.

All models use from_dict/to_dict for JSON/YAML serialization.
camelCase in JSON is mapped to snake_case in Python.
Unknown keys are ignored; missing keys use defaults.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any


GRID = "grid"
FLOW = "flow"
VALID_MODES = {GRID, FLOW}

SIZE_CLASSES = ("small", "medium", "large", "wide")
DEFAULT_SIZE_CLASS = "medium"

# Row height (grid cells) a size class occupies when a flow list is laid out.
SIZE_CLASS_HEIGHTS = {"small": 2, "medium": 3, "large": 4, "wide": 2}

CURRENT_SCHEMA_VERSION = 1


def _int(value: Any, default: int, minimum: int) -> int:
    try:
        return max(minimum, int(value))
    except (TypeError, ValueError):
        return default


# ── Geometry ──────────────────────────────────────────────────


@dataclass
class Rect:
    """A rectangle in grid cells."""

    x: int = 0
    y: int = 0
    w: int = 1
    h: int = 1

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Rect:
        if not d or not isinstance(d, dict):
            return cls()
        return cls(
            x=_int(d.get("x"), 0, 0),
            y=_int(d.get("y"), 0, 0),
            w=_int(d.get("w"), 1, 1),
            h=_int(d.get("h"), 1, 1),
        )

    @property
    def bottom(self) -> int:
        return self.y + self.h

    @property
    def right(self) -> int:
        return self.x + self.w

    def overlaps(self, other: Rect) -> bool:
        return (
            self.x < other.right
            and other.x < self.right
            and self.y < other.bottom
            and other.y < self.bottom
        )

    def to_dict(self) -> dict[str, int]:
        return {"x": self.x, "y": self.y, "w": self.w, "h": self.h}


@dataclass
class Placement:
    """Position and footprint of one widget at one breakpoint."""

    widget_id: str = ""
    x: int = 0
    y: int = 0
    w: int = 1
    h: int = 1

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Placement:
        rect = Rect.from_dict(d)
        return cls(
            widget_id=str(d.get("widgetId", d.get("widget_id", ""))),
            x=rect.x,
            y=rect.y,
            w=rect.w,
            h=rect.h,
        )

    @classmethod
    def at(cls, widget_id: str, rect: Rect) -> Placement:
        return cls(widget_id=widget_id, x=rect.x, y=rect.y, w=rect.w, h=rect.h)

    def rect(self) -> Rect:
        return Rect(self.x, self.y, self.w, self.h)

    def to_dict(self) -> dict[str, Any]:
        return {"widgetId": self.widget_id, "x": self.x, "y": self.y, "w": self.w, "h": self.h}


# ── Breakpoints ───────────────────────────────────────────────


@dataclass
class Breakpoint:
    """A named container-width band with its own column count."""

    name: str
    min_width: int = 0
    columns: int = 12
    # size class -> column span, used when a flow list is laid out
    spans: dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Breakpoint:
        columns = _int(d.get("columns"), 12, 1)
        spans = {}
        for size, span in (d.get("spans") or {}).items():
            if size in SIZE_CLASSES:
                spans[size] = min(columns, _int(span, 1, 1))
        return cls(
            name=str(d.get("name", "")),
            min_width=_int(d.get("min_width", d.get("minWidth")), 0, 0),
            columns=columns,
            spans=spans,
        )

    def span_for(self, size: str) -> int:
        """Column span of a size class at this breakpoint."""
        if size in self.spans:
            return self.spans[size]
        if size == "wide":
            return self.columns
        return max(1, self.columns // 3)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"name": self.name, "min_width": self.min_width, "columns": self.columns}
        if self.spans:
            d["spans"] = dict(self.spans)
        return d


# ── Widgets ───────────────────────────────────────────────────


@dataclass
class WidgetInstance:
    id: str = ""
    type: str = ""
    settings: dict[str, Any] = field(default_factory=dict)
    # flow mode only
    size: str = DEFAULT_SIZE_CLASS
    order: int = 0

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> WidgetInstance:
        settings = d.get("settings")
        size = str(d.get("size", DEFAULT_SIZE_CLASS))
        return cls(
            id=str(d.get("id", "")),
            type=str(d.get("type", "")),
            settings=copy.deepcopy(settings) if isinstance(settings, dict) else {},
            size=size if size in SIZE_CLASSES else DEFAULT_SIZE_CLASS,
            order=_int(d.get("order"), 0, 0),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "settings": copy.deepcopy(self.settings),
            "size": self.size,
            "order": self.order,
        }


@dataclass
class Layout:
    """The full arrangement of one user's widgets."""

    mode: str = FLOW
    widgets: list[WidgetInstance] = field(default_factory=list)
    placements: dict[str, list[Placement]] = field(default_factory=dict)
    schema_version: int = CURRENT_SCHEMA_VERSION
    updated_at: str = ""

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Layout:
        if not d or not isinstance(d, dict):
            return cls()
        mode = str(d.get("mode", FLOW)).strip().lower()
        widgets = [
            WidgetInstance.from_dict(w)
            for w in (d.get("widgets") or [])
            if isinstance(w, dict)
        ]
        placements: dict[str, list[Placement]] = {}
        for bp, entries in (d.get("placements") or {}).items():
            if isinstance(entries, list):
                placements[str(bp)] = [Placement.from_dict(p) for p in entries if isinstance(p, dict)]
        return cls(
            mode=mode if mode in VALID_MODES else FLOW,
            widgets=widgets,
            placements=placements,
            schema_version=_int(d.get("schemaVersion"), CURRENT_SCHEMA_VERSION, 0),
            updated_at=str(d.get("updatedAt", "") or ""),
        )

    def find_widget(self, widget_id: str) -> WidgetInstance | None:
        for w in self.widgets:
            if w.id == widget_id:
                return w
        return None

    def widget_ids(self) -> set[str]:
        return {w.id for w in self.widgets}

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "schemaVersion": self.schema_version,
            "mode": self.mode,
            "widgets": [w.to_dict() for w in self.widgets],
        }
        if self.mode == GRID:
            d["placements"] = {
                bp: [p.to_dict() for p in entries]
                for bp, entries in self.placements.items()
            }
        if self.updated_at:
            d["updatedAt"] = self.updated_at
        return d


# ── Notices ───────────────────────────────────────────────────


@dataclass
class Notice:
    """A user-visible, non-blocking message produced at the engine boundary."""

    message: str
    severity: str = "information"  # information, warning, error
    title: str = ""

    def to_dict(self) -> dict[str, str]:
        return {"message": self.message, "severity": self.severity, "title": self.title}

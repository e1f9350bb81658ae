"""Widget registry: the closed set of widget types the dashboard knows.

Each entry maps a widget type to its catalogue metadata, its default
footprint and size class, an optional typed settings schema and a text
renderer. Adding a widget type is an edit to REGISTRY, not a data-model
change.

Lookup of an unregistered type yields the UNKNOWN_WIDGET placeholder so a
layout that references a type removed in a later release still renders.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable

from folia.errors import UnknownWidgetType
from folia.models import Breakpoint, DEFAULT_SIZE_CLASS, SIZE_CLASSES


# footprints are drawn for a 12-column grid; narrower breakpoints use the
# compact (mobile) size
FULL_COLUMNS = 12


@dataclass
class Footprint:
    """Default and minimum size in grid cells."""

    w: int
    h: int
    min_w: int = 1
    min_h: int = 1
    compact_w: int | None = None
    compact_h: int | None = None

    def for_breakpoint(self, bp: Breakpoint) -> tuple[int, int]:
        if bp.columns < FULL_COLUMNS:
            w, h = self.compact_w or self.w, self.compact_h or self.h
        else:
            w, h = self.w, self.h
        return self.clamp(w, h, bp)

    def clamp(self, w: int, h: int, bp: Breakpoint) -> tuple[int, int]:
        """Fit (w, h) between the minimum size and the breakpoint's columns."""
        w = max(w, min(self.min_w, bp.columns))
        return min(w, bp.columns), max(h, self.min_h)


@dataclass
class SettingField:
    types: tuple[type, ...]
    choices: tuple[Any, ...] | None = None


@dataclass
class WidgetSpec:
    type: str
    name: str
    description: str
    footprint: Footprint
    size: str = DEFAULT_SIZE_CLASS
    navigates_to: str | None = None
    # None means a free-form settings bag
    settings_schema: dict[str, SettingField] | None = None
    renderer: Callable[[dict[str, Any]], str] = field(default=lambda settings: "")

    def render(self, settings: dict[str, Any]) -> str:
        return self.renderer(settings)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "name": self.name,
            "description": self.description,
            "w": self.footprint.w,
            "h": self.footprint.h,
            "minW": self.footprint.min_w,
            "minH": self.footprint.min_h,
            "compactW": self.footprint.compact_w or self.footprint.w,
            "compactH": self.footprint.compact_h or self.footprint.h,
            "size": self.size,
            "navigatesTo": self.navigates_to,
            "settings": sorted(self.settings_schema) if self.settings_schema else None,
        }


# ── Renderers ─────────────────────────────────────────────────


def greeting(hour: int) -> str:
    if hour < 12:
        return "Good morning"
    if hour < 18:
        return "Good afternoon"
    return "Good evening"


def _render_welcome(settings: dict[str, Any]) -> str:
    name = str(settings.get("firstName") or "there")
    return f"{greeting(datetime.now().hour)}, {name}."


def _render_clock(settings: dict[str, Any]) -> str:
    fmt = "%H:%M:%S" if settings.get("showSeconds") else "%H:%M"
    return datetime.now().strftime(fmt)


def _render_note(settings: dict[str, Any]) -> str:
    return str(settings.get("content") or "(empty note)")


def _render_link(settings: dict[str, Any]) -> str:
    url = settings.get("url")
    if not url:
        return "(no link set)"
    title = settings.get("title")
    return f"{title} <{url}>" if title else str(url)


def _static(text: str) -> Callable[[dict[str, Any]], str]:
    return lambda settings: text


def _render_unknown(settings: dict[str, Any]) -> str:
    return "This widget is no longer available."


# ── Registry ──────────────────────────────────────────────────

_STR = (str,)
_INT = (int,)
_NUM = (int, float)
_BOOL = (bool,)

REGISTRY: dict[str, WidgetSpec] = {
    spec.type: spec
    for spec in [
        WidgetSpec(
            "Welcome", "Welcome Greeting", "A personalized greeting for your day.",
            Footprint(6, 4, 4, 4), size="wide",
            renderer=_render_welcome,
        ),
        WidgetSpec(
            "Clock", "Clock", "A simple, elegant digital clock.",
            Footprint(4, 4, 3, 4), size="small",
            settings_schema={
                "fontSize": SettingField(_INT),
                "showSeconds": SettingField(_BOOL),
            },
            renderer=_render_clock,
        ),
        WidgetSpec(
            "DueToday", "Due Today", "See all tasks that are due today.",
            Footprint(4, 6, 3, 4), size="medium", navigates_to="Loom",
            renderer=_static("Tasks due today"),
        ),
        WidgetSpec(
            "Inbox", "Task Inbox", "Quickly add and manage your inbox tasks.",
            Footprint(6, 8, 4, 6), size="large", navigates_to="Loom",
            renderer=_static("Inbox tasks"),
        ),
        WidgetSpec(
            "Notes", "Garden Note", "Jot down a quick thought for your Garden.",
            Footprint(4, 5, 3, 5), size="medium", navigates_to="Garden",
            renderer=_static("Quick note for your Garden"),
        ),
        WidgetSpec(
            "Note", "Sticky Note", "A colorful sticky note for your mood board.",
            Footprint(3, 4, 3, 3, compact_w=6, compact_h=8), size="small",
            settings_schema={
                "content": SettingField(_STR),
                "color": SettingField(_STR),
                "font": SettingField(_STR),
                "fontSize": SettingField(_INT),
                "textAlign": SettingField(_STR, choices=("left", "center", "right")),
            },
            renderer=_render_note,
        ),
        WidgetSpec(
            "Image", "Image", "Add an inspiring image to your dashboard.",
            Footprint(4, 6, 2, 4, compact_w=8, compact_h=10), size="medium",
            settings_schema={
                "url": SettingField(_STR),
                "title": SettingField(_STR),
                "scale": SettingField(_NUM),
                "position": SettingField((dict,)),
            },
            renderer=_render_link,
        ),
        WidgetSpec(
            "Embed", "Embed", "Embed a YouTube video, Spotify track, etc.",
            Footprint(4, 6, 4, 4, compact_w=8, compact_h=10), size="medium",
            settings_schema={
                "url": SettingField(_STR),
                "title": SettingField(_STR),
            },
            renderer=_render_link,
        ),
        WidgetSpec(
            "Journal", "Journal", "A prompt for your daily journal entry.",
            Footprint(6, 6, 4, 6), size="medium", navigates_to="Journal",
            renderer=_static("How was your day?"),
        ),
        WidgetSpec(
            "Goals", "Goals Overview", "A glimpse of your long-term Horizon goals.",
            Footprint(6, 6, 4, 6), size="large", navigates_to="Horizon",
            renderer=_static("Long-term goals"),
        ),
        WidgetSpec(
            "Flow", "Active Projects", "Track the progress of your active projects.",
            Footprint(6, 6, 4, 6), size="large", navigates_to="Flow",
            renderer=_static("Active projects"),
        ),
    ]
}

UNKNOWN_WIDGET = WidgetSpec(
    "Unknown", "Unknown widget", "Placeholder for a widget type this version does not know.",
    Footprint(4, 2, 1, 1), size="small",
    renderer=_render_unknown,
)


def is_known(widget_type: str) -> bool:
    return widget_type in REGISTRY


def lookup(widget_type: str) -> WidgetSpec:
    """Return the WidgetSpec for a type, or the UNKNOWN_WIDGET placeholder."""
    return REGISTRY.get(widget_type, UNKNOWN_WIDGET)


def require(widget_type: str) -> WidgetSpec:
    """Return the WidgetSpec for a type. Raises UnknownWidgetType if not registered."""
    spec = REGISTRY.get(widget_type)
    if spec is None:
        raise UnknownWidgetType(widget_type)
    return spec


def catalogue() -> list[dict[str, Any]]:
    """All registered widget types in declaration order."""
    return [spec.to_dict() for spec in REGISTRY.values()]


def validate_settings(widget_type: str, partial: dict[str, Any]) -> list[str]:
    """Validate a settings update against the type's schema.

    Only keys named in the schema are checked; other keys pass through.
    Returns a list of errors (empty if valid).
    """
    if not isinstance(partial, dict):
        return ["settings must be a mapping"]
    schema = lookup(widget_type).settings_schema
    if not schema:
        return []

    errors = []
    for key, value in partial.items():
        setting = schema.get(key)
        if setting is None:
            continue
        # bool is an int subclass; only accept it where bool is declared
        if isinstance(value, bool) and bool not in setting.types:
            errors.append(f"{key} must be {_type_names(setting.types)}")
        elif not isinstance(value, setting.types):
            errors.append(f"{key} must be {_type_names(setting.types)}")
        elif setting.choices is not None and value not in setting.choices:
            errors.append(f"{key} must be one of: {', '.join(map(str, setting.choices))}")
    return errors


def _type_names(types: tuple[type, ...]) -> str:
    return " or ".join(t.__name__ for t in types)


def default_size_class(widget_type: str) -> str:
    size = lookup(widget_type).size
    return size if size in SIZE_CLASSES else DEFAULT_SIZE_CLASS

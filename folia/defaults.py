"""Default layout for users who have never saved one."""

from __future__ import annotations

import logging

from folia.config import default_breakpoints
from folia.models import FLOW, GRID, Breakpoint, Layout, Notice, Placement, WidgetInstance
from folia.registry import lookup
from folia.store import LayoutStore, new_widget_id

logger = logging.getLogger(__name__)

# (type, size class) in display order
DEFAULT_WIDGETS = [
    ("Welcome", "wide"),
    ("Clock", "small"),
    ("DueToday", "medium"),
    ("Inbox", "large"),
    ("Journal", "medium"),
    ("Goals", "large"),
]

# Hand-placed rectangles (x, y, w, h) for the default breakpoints, same order
# as DEFAULT_WIDGETS. Breakpoints without a preset stack widgets vertically.
GRID_PRESETS: dict[str, list[tuple[int, int, int, int]]] = {
    "wide": [
        (0, 0, 8, 4),
        (8, 0, 4, 4),
        (0, 4, 4, 6),
        (4, 4, 8, 6),
        (0, 10, 6, 6),
        (6, 10, 6, 6),
    ],
}


def _stacked(widgets: list[WidgetInstance], bp: Breakpoint) -> list[Placement]:
    placements = []
    y = 0
    for widget in widgets:
        w, h = lookup(widget.type).footprint.for_breakpoint(bp)
        placements.append(Placement(widget.id, 0, y, w, h))
        y += h
    return placements


def _preset_fits(preset: list[tuple[int, int, int, int]], bp: Breakpoint) -> bool:
    return len(preset) == len(DEFAULT_WIDGETS) and all(x + w <= bp.columns for x, _, w, _ in preset)


def build_default_layout(mode: str = FLOW, breakpoints: list[Breakpoint] | None = None) -> Layout:
    """Generate the starting layout with freshly minted widget ids."""
    widgets = [
        WidgetInstance(id=new_widget_id(), type=widget_type, size=size, order=index)
        for index, (widget_type, size) in enumerate(DEFAULT_WIDGETS)
    ]
    layout = Layout(mode=mode, widgets=widgets)
    if mode != GRID:
        return layout

    breakpoints = breakpoints or default_breakpoints()
    for bp in breakpoints:
        preset = GRID_PRESETS.get(bp.name)
        if preset and _preset_fits(preset, bp):
            layout.placements[bp.name] = [
                Placement(widget.id, x, y, w, h)
                for widget, (x, y, w, h) in zip(widgets, preset)
            ]
        else:
            layout.placements[bp.name] = _stacked(widgets, bp)
    return layout


async def seed_default_layout(
    gateway,
    user_id: str,
    mode: str = FLOW,
    breakpoints: list[Breakpoint] | None = None,
) -> tuple[Layout, Notice | None]:
    """Build the default layout and persist it right away.

    The save happens before the layout is handed back so a second session
    loading concurrently sees the same widgets. If the save fails the layout
    is still returned for local use, together with a notice.
    """
    layout = build_default_layout(mode, breakpoints)
    try:
        await gateway.save(user_id, LayoutStore(layout, breakpoints).snapshot())
    except Exception as e:
        logger.warning("Could not persist default layout for %s: %s", user_id, e)
        return layout, Notice("Could not save your new dashboard yet; changes will be retried.", "warning", "Dashboard")
    logger.info("Seeded default %s layout for %s", mode, user_id)
    return layout, None

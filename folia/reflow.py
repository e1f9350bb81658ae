"""Breakpoint reflow: compaction and per-breakpoint rendering order.

Grid layouts are compacted vertically: placements are processed top to
bottom, left to right, and each one slides down from its requested row to
the first row where it clears every placement already settled. Columns and
widths are kept as requested (only clamped into the column count), so the
result never overlaps and reflowing it again changes nothing.

Flow layouts carry no coordinates; they are laid out row by row in list
order using each breakpoint's size-class spans.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from folia.errors import DanglingPlacementReference
from folia.models import (
    FLOW,
    SIZE_CLASS_HEIGHTS,
    Breakpoint,
    Layout,
    Placement,
    Rect,
    WidgetInstance,
)
from folia.registry import WidgetSpec, is_known, lookup

logger = logging.getLogger(__name__)


@dataclass
class RenderedWidget:
    widget: WidgetInstance
    spec: WidgetSpec
    rect: Rect

    @property
    def known(self) -> bool:
        return is_known(self.widget.type)


def select_breakpoint(width: int, breakpoints: list[Breakpoint]) -> Breakpoint:
    """Pick the breakpoint with the largest min_width not exceeding width.

    The smallest breakpoint is the floor for widths below every threshold.
    """
    if not breakpoints:
        raise ValueError("No breakpoints configured")
    ordered = sorted(breakpoints, key=lambda b: b.min_width)
    chosen = ordered[0]
    for bp in ordered:
        if bp.min_width <= width:
            chosen = bp
    return chosen


def _clamp(rect: Rect, columns: int) -> Rect:
    w = min(rect.w, columns)
    x = min(rect.x, columns - w)
    return Rect(x, rect.y, w, rect.h)


def _settle(rect: Rect, placed: list[Rect]) -> Rect:
    """Lowest row at or below rect.y where rect clears every placed rect."""
    candidates = sorted({rect.y} | {p.bottom for p in placed if p.bottom > rect.y})
    for y in candidates:
        moved = Rect(rect.x, y, rect.w, rect.h)
        if not any(moved.overlaps(p) for p in placed):
            return moved
    # unreachable: the largest bottom always clears
    return Rect(rect.x, max(p.bottom for p in placed), rect.w, rect.h)


def compact(placements: list[Placement], columns: int) -> list[Placement]:
    """Vertically compact one breakpoint's placements.

    Returns new Placement objects in the same list order as the input.
    """
    indexed = sorted(enumerate(placements), key=lambda item: (item[1].y, item[1].x, item[0]))
    placed: list[Rect] = []
    settled: dict[int, Placement] = {}
    for index, placement in indexed:
        rect = _settle(_clamp(placement.rect(), columns), placed)
        placed.append(rect)
        settled[index] = Placement.at(placement.widget_id, rect)
    return [settled[i] for i in range(len(placements))]


def bottom_of(placements: list[Placement]) -> int:
    """Row just below the lowest placement (0 for an empty breakpoint)."""
    return max((p.y + p.h for p in placements), default=0)


def flow_placements(widgets: list[WidgetInstance], bp: Breakpoint) -> list[Placement]:
    """Lay an ordered flow list out in rows using the breakpoint's spans."""
    placements = []
    x = row_y = row_h = 0
    for widget in sorted(widgets, key=lambda w: w.order):
        span = bp.span_for(widget.size)
        h = SIZE_CLASS_HEIGHTS.get(widget.size, 1)
        if x + span > bp.columns:
            row_y += row_h
            x = row_h = 0
        placements.append(Placement(widget.id, x, row_y, span, h))
        x += span
        row_h = max(row_h, h)
    return placements


def _grid_placements(layout: Layout, bp: Breakpoint) -> list[Placement]:
    known = layout.widget_ids()
    entries = []
    placed_ids = set()
    for placement in layout.placements.get(bp.name, []):
        if placement.widget_id not in known:
            err = DanglingPlacementReference(placement.widget_id, bp.name)
            logger.debug("Skipping placement: %s", err)
            continue
        if placement.widget_id in placed_ids:
            continue
        placed_ids.add(placement.widget_id)
        entries.append(placement)
    # widgets without a placement at this breakpoint go below everything else
    y = bottom_of(entries)
    for widget in layout.widgets:
        if widget.id in placed_ids:
            continue
        w, h = lookup(widget.type).footprint.for_breakpoint(bp)
        entries.append(Placement(widget.id, 0, y, w, h))
        y += h
    return compact(entries, bp.columns)


def render_layout(layout: Layout, bp: Breakpoint) -> list[RenderedWidget]:
    """Widgets visible at one breakpoint, in top-to-bottom, left-to-right order.

    Dangling placements are skipped; unknown widget types render through the
    registry placeholder.
    """
    by_id = {w.id: w for w in layout.widgets}
    if layout.mode == FLOW:
        placements = flow_placements(layout.widgets, bp)
    else:
        placements = _grid_placements(layout, bp)

    rendered = []
    for placement in placements:
        widget = by_id[placement.widget_id]
        rendered.append(RenderedWidget(widget, lookup(widget.type), placement.rect()))
    rendered.sort(key=lambda r: (r.rect.y, r.rect.x))
    return rendered

"""Tests for folia/reflow.py: compaction, breakpoint selection and rendering order."""

import itertools
import random

import pytest

from folia.config import default_breakpoints
from folia.models import FLOW, GRID, Breakpoint, Layout, Placement, WidgetInstance
from folia.reflow import (
    bottom_of,
    compact,
    flow_placements,
    render_layout,
    select_breakpoint,
)


def _wide() -> Breakpoint:
    return default_breakpoints()[0]


def _narrow() -> Breakpoint:
    return default_breakpoints()[1]


def _random_placements(seed: int, count: int, columns: int) -> list[Placement]:
    rng = random.Random(seed)
    return [
        Placement(f"w{i}", rng.randint(0, columns + 2), rng.randint(0, 10), rng.randint(1, columns + 2), rng.randint(1, 5))
        for i in range(count)
    ]


# ── Breakpoint selection ──


def test_select_breakpoint_by_width():
    bps = default_breakpoints()
    assert select_breakpoint(1200, bps).name == "wide"
    assert select_breakpoint(996, bps).name == "wide"
    assert select_breakpoint(995, bps).name == "narrow"
    assert select_breakpoint(0, bps).name == "narrow"


def test_select_breakpoint_floor_is_smallest():
    bps = [Breakpoint("tablet", 600, 8), Breakpoint("desk", 1200, 12)]
    assert select_breakpoint(100, bps).name == "tablet"


def test_select_breakpoint_requires_one():
    with pytest.raises(ValueError):
        select_breakpoint(800, [])


# ── Compaction ──


def test_compact_never_moves_up():
    placements = [Placement("a", 0, 0, 4, 2), Placement("b", 0, 6, 4, 2)]
    result = compact(placements, 12)
    assert result == placements


def test_compact_keeps_input_order_and_columns():
    placements = [Placement("b", 2, 1, 4, 2), Placement("a", 0, 0, 4, 2)]
    result = compact(placements, 12)
    assert [p.widget_id for p in result] == ["b", "a"]
    # b collides with a, keeps its column and slides below it
    assert (result[0].x, result[0].y) == (2, 2)
    assert (result[1].x, result[1].y) == (0, 0)


def test_compact_clamps_to_columns():
    result = compact([Placement("a", 10, 0, 6, 2)], 4)
    assert (result[0].x, result[0].w) == (0, 4)


def test_compact_resolves_overlap():
    placements = [Placement("a", 0, 0, 6, 3), Placement("b", 3, 1, 6, 3)]
    result = compact(placements, 12)
    assert result[1].y == 3
    assert not result[0].rect().overlaps(result[1].rect())


@pytest.mark.parametrize("seed", range(20))
def test_compact_never_overlaps(seed):
    columns = 12 if seed % 2 else 4
    result = compact(_random_placements(seed, 8, columns), columns)
    for a, b in itertools.combinations(result, 2):
        assert not a.rect().overlaps(b.rect())
    for p in result:
        assert p.x + p.w <= columns


@pytest.mark.parametrize("seed", range(20))
def test_compact_is_idempotent(seed):
    columns = 12 if seed % 2 else 4
    once = compact(_random_placements(seed, 8, columns), columns)
    assert compact(once, columns) == once


def test_bottom_of():
    assert bottom_of([]) == 0
    assert bottom_of([Placement("a", 0, 2, 1, 3), Placement("b", 0, 0, 1, 1)]) == 5


# ── Flow ──


def test_flow_placements_rows():
    widgets = [
        WidgetInstance("a", "Welcome", size="wide", order=0),
        WidgetInstance("b", "Clock", size="small", order=1),
        WidgetInstance("c", "DueToday", size="medium", order=2),
        WidgetInstance("d", "Inbox", size="large", order=3),
        WidgetInstance("e", "Journal", size="medium", order=4),
    ]
    result = {p.widget_id: p for p in flow_placements(widgets, _wide())}
    assert (result["a"].x, result["a"].y, result["a"].w) == (0, 0, 12)
    assert (result["b"].x, result["b"].y) == (0, 2)
    assert (result["c"].x, result["c"].y) == (4, 2)
    assert (result["d"].x, result["d"].y) == (8, 2)
    # row height is the tallest in the row (large = 4)
    assert (result["e"].x, result["e"].y) == (0, 6)


def test_flow_placements_follow_order_not_list_position():
    widgets = [
        WidgetInstance("late", "Clock", size="small", order=1),
        WidgetInstance("early", "Clock", size="small", order=0),
    ]
    result = {p.widget_id: p for p in flow_placements(widgets, _narrow())}
    assert result["early"].x == 0
    assert result["late"].x == 2


# ── Rendering ──


def test_render_flow_layout_reflows_per_breakpoint():
    layout = Layout(mode=FLOW, widgets=[
        WidgetInstance("a", "Clock", size="small", order=0),
        WidgetInstance("b", "Clock", size="small", order=1),
        WidgetInstance("c", "Clock", size="small", order=2),
    ])
    wide = render_layout(layout, _wide())
    narrow = render_layout(layout, _narrow())
    assert [r.rect.y for r in wide] == [0, 0, 0]
    assert [(r.rect.x, r.rect.y) for r in narrow] == [(0, 0), (2, 0), (0, 2)]


def test_render_grid_skips_dangling_placements():
    layout = Layout(
        mode=GRID,
        widgets=[WidgetInstance("a", "Clock")],
        placements={"wide": [Placement("ghost", 0, 0, 4, 4), Placement("a", 0, 4, 4, 4)]},
    )
    rendered = render_layout(layout, _wide())
    assert [r.widget.id for r in rendered] == ["a"]
    assert rendered[0].rect.to_dict() == {"x": 0, "y": 4, "w": 4, "h": 4}


def test_render_grid_places_widgets_missing_a_placement():
    layout = Layout(
        mode=GRID,
        widgets=[WidgetInstance("a", "Clock"), WidgetInstance("b", "Inbox")],
        placements={"wide": [Placement("a", 0, 0, 4, 4)]},
    )
    rendered = render_layout(layout, _narrow())
    assert [r.widget.id for r in rendered] == ["a", "b"]
    # no narrow placements at all: registry footprints, clamped and stacked
    assert (rendered[0].rect.w, rendered[0].rect.h) == (4, 4)
    assert (rendered[1].rect.y, rendered[1].rect.w) == (4, 4)


def test_render_unknown_type_uses_placeholder():
    layout = Layout(mode=FLOW, widgets=[WidgetInstance("a", "Weather", order=0)])
    rendered = render_layout(layout, _wide())
    assert rendered[0].known is False
    assert rendered[0].spec.type == "Unknown"


def test_render_is_sorted_top_to_bottom_left_to_right():
    layout = Layout(
        mode=GRID,
        widgets=[WidgetInstance("c", "Clock"), WidgetInstance("b", "Clock"), WidgetInstance("a", "Clock")],
        placements={"wide": [
            Placement("c", 0, 4, 4, 4),
            Placement("b", 4, 0, 4, 4),
            Placement("a", 0, 0, 4, 4),
        ]},
    )
    assert [r.widget.id for r in render_layout(layout, _wide())] == ["a", "b", "c"]

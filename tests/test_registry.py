"""Tests for folia/registry.py: widget catalogue, lookup and settings schemas."""

import pytest

from folia.errors import UnknownWidgetType
from folia.models import Breakpoint
from folia.registry import (
    REGISTRY,
    UNKNOWN_WIDGET,
    catalogue,
    default_size_class,
    greeting,
    lookup,
    require,
    validate_settings,
)


def test_registry_has_known_types():
    for widget_type in ("Welcome", "Clock", "DueToday", "Inbox", "Notes", "Note",
                        "Image", "Embed", "Journal", "Goals", "Flow"):
        assert widget_type in REGISTRY


def test_lookup_unknown_returns_placeholder():
    assert lookup("Weather") is UNKNOWN_WIDGET
    assert lookup("Clock").name == "Clock"


def test_require_unknown_raises():
    with pytest.raises(UnknownWidgetType) as exc:
        require("Weather")
    assert exc.value.widget_type == "Weather"


def test_catalogue_entries():
    entries = catalogue()
    assert len(entries) == len(REGISTRY)
    inbox = next(e for e in entries if e["type"] == "Inbox")
    assert inbox["w"] == 6
    assert inbox["minH"] == 6
    assert inbox["navigatesTo"] == "Loom"
    image = next(e for e in entries if e["type"] == "Image")
    assert (image["compactW"], image["compactH"]) == (8, 10)
    assert next(e for e in entries if e["type"] == "Clock")["settings"] == ["fontSize", "showSeconds"]


def test_footprint_clamped_to_breakpoint():
    narrow = Breakpoint("narrow", 0, 4)
    assert REGISTRY["Inbox"].footprint.for_breakpoint(narrow) == (4, 8)
    # narrow breakpoints use the compact footprint
    assert REGISTRY["Note"].footprint.for_breakpoint(narrow) == (4, 8)
    assert REGISTRY["Note"].footprint.for_breakpoint(Breakpoint("wide", 996, 12)) == (3, 4)


def test_footprint_clamp_holds_minimum():
    wide = Breakpoint("wide", 996, 12)
    clock = REGISTRY["Clock"].footprint
    assert clock.clamp(1, 1, wide) == (3, 4)
    assert clock.clamp(20, 9, wide) == (12, 9)
    # a minimum wider than the grid gives way to the column count
    assert REGISTRY["Inbox"].footprint.clamp(1, 1, Breakpoint("tiny", 0, 2)) == (2, 6)


def test_validate_settings_typed():
    assert validate_settings("Clock", {"showSeconds": True, "fontSize": 48}) == []
    errors = validate_settings("Clock", {"showSeconds": "yes"})
    assert errors == ["showSeconds must be bool"]


def test_validate_settings_rejects_bool_for_int():
    assert validate_settings("Note", {"fontSize": True}) == ["fontSize must be int"]


def test_validate_settings_choices():
    assert validate_settings("Note", {"textAlign": "center"}) == []
    assert validate_settings("Note", {"textAlign": "justify"})


def test_validate_settings_unknown_keys_pass():
    assert validate_settings("Clock", {"theme": "dark"}) == []
    # free-form widgets take anything
    assert validate_settings("Welcome", {"firstName": 3}) == []


def test_validate_settings_not_a_mapping():
    assert validate_settings("Clock", ["x"]) == ["settings must be a mapping"]


def test_render():
    assert REGISTRY["Note"].render({"content": "Buy milk"}) == "Buy milk"
    assert REGISTRY["Embed"].render({"url": "https://x", "title": "Song"}) == "Song <https://x>"
    assert REGISTRY["Welcome"].render({"firstName": "Ada"}).endswith(", Ada.")
    assert UNKNOWN_WIDGET.render({}) == "This widget is no longer available."


def test_greeting():
    assert greeting(8) == "Good morning"
    assert greeting(13) == "Good afternoon"
    assert greeting(21) == "Good evening"


def test_default_size_class():
    assert default_size_class("Clock") == "small"
    assert default_size_class("Weather") == "small"

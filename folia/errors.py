"""Error taxonomy for the dashboard layout engine."""

from __future__ import annotations


class DashboardError(Exception):
    """Base class for every error raised by the layout engine."""


class UnknownWidgetType(DashboardError, ValueError):
    """add_widget was called with a type absent from the registry."""

    def __init__(self, widget_type: str) -> None:
        super().__init__(f"Unknown widget type: {widget_type}")
        self.widget_type = widget_type


class UnknownWidget(DashboardError, LookupError):
    """An operation referenced a widget id the store does not hold."""

    def __init__(self, widget_id: str) -> None:
        super().__init__(f"Widget not found: {widget_id}")
        self.widget_id = widget_id


class UnsupportedOperation(DashboardError):
    """A grid-only operation was used in flow mode, or the reverse."""


class InvalidWidgetSettings(DashboardError, ValueError):
    """A settings update does not match the widget type's settings schema."""

    def __init__(self, widget_type: str, errors: list[str]) -> None:
        super().__init__(f"Invalid settings for {widget_type}: " + "; ".join(errors))
        self.widget_type = widget_type
        self.errors = errors


class DanglingPlacementReference(DashboardError):
    """A placement refers to a widget id with no widget instance."""

    def __init__(self, widget_id: str, breakpoint: str) -> None:
        super().__init__(f"Placement at {breakpoint!r} refers to missing widget {widget_id}")
        self.widget_id = widget_id
        self.breakpoint = breakpoint


class PersistenceLoadFailure(DashboardError):
    """Loading a layout failed for a reason other than 'no record yet'."""


class PersistenceSaveFailure(DashboardError):
    """Saving a layout failed."""


class MigrationError(DashboardError):
    """A stored layout document cannot be brought up to the current schema."""

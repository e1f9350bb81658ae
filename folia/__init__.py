"""Folia dashboard core library: widget layout engine and persistence.

Public API re-exports for convenient imports:
    from folia import LayoutStore, DashboardSession, FileLayoutGateway, ...
"""

# Workspace & config
from folia.workspace import (
    workspace_root,
    dashboards_dir,
    dashboard_path,
    config_path,
    schema_path,
)
from folia.config import DashboardConfig, load_config, default_breakpoints
from folia.log import setup_logging

# Errors
from folia.errors import (
    DashboardError,
    UnknownWidgetType,
    UnknownWidget,
    UnsupportedOperation,
    InvalidWidgetSettings,
    DanglingPlacementReference,
    PersistenceLoadFailure,
    PersistenceSaveFailure,
    MigrationError,
)

# Models
from folia.models import (
    GRID,
    FLOW,
    SIZE_CLASSES,
    CURRENT_SCHEMA_VERSION,
    Rect,
    Placement,
    Breakpoint,
    WidgetInstance,
    Layout,
    Notice,
)

# Registry
from folia.registry import (
    REGISTRY,
    UNKNOWN_WIDGET,
    WidgetSpec,
    lookup,
    require,
    catalogue,
    validate_settings,
)

# Engine
from folia.reflow import compact, select_breakpoint, flow_placements, render_layout
from folia.store import LayoutStore, validate_document
from folia.defaults import build_default_layout, seed_default_layout
from folia.gateway import FileLayoutGateway, InMemoryLayoutGateway, load_layout, save_layout
from folia.autosave import AutosaveCoordinator, CLEAN, DIRTY, SAVING
from folia.migrations import migrate_document, run_startup_migrations
from folia.session import DashboardSession, WidgetView

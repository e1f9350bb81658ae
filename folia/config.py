"""Dashboard configuration loaded from dashboard.yaml."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from folia.fileio import read_yaml
from folia.models import FLOW, VALID_MODES, Breakpoint
from folia.workspace import config_path


DEFAULT_AUTOSAVE_INTERVAL = 5.0

WIDE = "wide"
NARROW = "narrow"


def default_breakpoints() -> list[Breakpoint]:
    return [
        Breakpoint(WIDE, min_width=996, columns=12,
                   spans={"small": 4, "medium": 4, "large": 4, "wide": 12}),
        Breakpoint(NARROW, min_width=0, columns=4,
                   spans={"small": 2, "medium": 2, "large": 4, "wide": 4}),
    ]


@dataclass
class DashboardConfig:
    autosave_interval_seconds: float = DEFAULT_AUTOSAVE_INTERVAL
    default_mode: str = FLOW
    # sorted ascending by min_width when loaded from dashboard.yaml
    breakpoints: list[Breakpoint] = field(default_factory=default_breakpoints)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> DashboardConfig:
        if not d or not isinstance(d, dict):
            return cls()

        try:
            interval = float(d.get("autosave_interval_seconds", DEFAULT_AUTOSAVE_INTERVAL))
        except (TypeError, ValueError):
            interval = DEFAULT_AUTOSAVE_INTERVAL
        if interval <= 0:
            interval = DEFAULT_AUTOSAVE_INTERVAL

        mode = str(d.get("default_mode", FLOW)).strip().lower()
        if mode not in VALID_MODES:
            mode = FLOW

        breakpoints = []
        seen = set()
        for bd in d.get("breakpoints") or []:
            if not isinstance(bd, dict):
                continue
            bp = Breakpoint.from_dict(bd)
            if not bp.name or bp.name in seen:
                continue
            seen.add(bp.name)
            breakpoints.append(bp)

        return cls(
            autosave_interval_seconds=interval,
            default_mode=mode,
            breakpoints=sorted(breakpoints, key=lambda b: b.min_width) or default_breakpoints(),
        )

    def breakpoint(self, name: str) -> Breakpoint | None:
        for bp in self.breakpoints:
            if bp.name == name:
                return bp
        return None

    def breakpoint_names(self) -> list[str]:
        return [bp.name for bp in self.breakpoints]

    def to_dict(self) -> dict[str, Any]:
        return {
            "autosave_interval_seconds": self.autosave_interval_seconds,
            "default_mode": self.default_mode,
            "breakpoints": [bp.to_dict() for bp in self.breakpoints],
        }


def load_config(root: Path | None = None) -> DashboardConfig:
    """Load dashboard.yaml, falling back to defaults when missing or unreadable."""
    try:
        data = read_yaml(config_path(root))
    except (OSError, yaml.YAMLError):
        return DashboardConfig()
    return DashboardConfig.from_dict(data)

"""
rollcall.config — YAML Configuration Loader
============================================

Reads ``config.yaml`` for **infrastructure-only** settings (community
identity, command prefix, panel refresh cadence).  Everything an admin
tunes from Discord (staff role, channels, stage mode) lives in the
``settings`` database table and is edited with ``/setup``.

Usage::

    from rollcall.config import load_config

    cfg = load_config()              # reads ./config.yaml by default
    print(cfg.community_name)        # "Rollcall Dev"
    print(cfg.refresh_interval_seconds)  # 30
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml


# ---------------------------------------------------------------------------
# Typed settings object — infrastructure/identity only.
# Attendance configuration lives in the DB ``settings`` table.
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class RollcallConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    # Identity
    community_name: str

    # Discord
    bot_prefix: str

    # Panel
    refresh_interval_seconds: int = 30
    refresh_debounce_seconds: float = 1.2
    leaderboard_size: int = 12
    panel_color: int = 0x00CF91


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> RollcallConfig:
    """Read *path* and return a :class:`RollcallConfig` instance.

    Parameters
    ----------
    path:
        Filesystem path to the YAML configuration file.
        Defaults to ``config.yaml`` in the current working directory.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    KeyError
        If a required key is missing from the YAML file.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    color = raw.get("panel_color", 0x00CF91)
    if isinstance(color, str):
        color = int(color.lstrip("#"), 16)

    return RollcallConfig(
        community_name=raw["community_name"],
        bot_prefix=raw["bot_prefix"],
        refresh_interval_seconds=int(raw.get("refresh_interval_seconds", 30)),
        refresh_debounce_seconds=float(raw.get("refresh_debounce_seconds", 1.2)),
        leaderboard_size=int(raw.get("leaderboard_size", 12)),
        panel_color=int(color),
    )

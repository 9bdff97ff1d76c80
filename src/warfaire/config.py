"""
Table configuration: seat limits and phase timers.

A config can be built in code, from a dict (missing keys fall back to the
defaults, unknown keys are ignored) or from a JSON file.
"""
from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from .game import MAX_PLAYERS, MIN_PLAYERS


@dataclass
class TableConfig:
    """Configuration for one War Faire table."""

    min_players: int = MIN_PLAYERS
    max_seats: int = MAX_PLAYERS
    # Delay before AI seats submit their plays.
    ai_delay_seconds: float = 1.0
    # How long humans get to bind a revealed group card before a random pick.
    group_selection_timeout_seconds: float = 15.0
    # Round/Fair summaries advance on their own after this long; None waits for continue_from_summary.
    summary_auto_advance_seconds: Optional[float] = 5.0
    seed: Optional[int] = None

    def __post_init__(self) -> None:
        if not MIN_PLAYERS <= self.min_players <= MAX_PLAYERS:
            raise ValueError(f"min_players must be within {MIN_PLAYERS}..{MAX_PLAYERS}")
        if not self.min_players <= self.max_seats <= MAX_PLAYERS:
            raise ValueError(f"max_seats must be within min_players..{MAX_PLAYERS}")
        if self.ai_delay_seconds < 0 or self.group_selection_timeout_seconds < 0:
            raise ValueError("timer delays must be non-negative")
        if self.summary_auto_advance_seconds is not None and self.summary_auto_advance_seconds < 0:
            raise ValueError("summary_auto_advance_seconds must be non-negative or None")


def table_config_to_dict(cfg: TableConfig) -> Dict[str, Any]:
    return asdict(cfg)


def table_config_from_dict(d: Dict[str, Any]) -> TableConfig:
    auto_advance = d.get("summary_auto_advance_seconds", 5.0)
    seed = d.get("seed")
    return TableConfig(
        min_players=int(d.get("min_players", MIN_PLAYERS)),
        max_seats=int(d.get("max_seats", MAX_PLAYERS)),
        ai_delay_seconds=float(d.get("ai_delay_seconds", 1.0)),
        group_selection_timeout_seconds=float(d.get("group_selection_timeout_seconds", 15.0)),
        summary_auto_advance_seconds=None if auto_advance is None else float(auto_advance),
        seed=None if seed is None else int(seed),
    )


def load_table_config(path: Path | str) -> TableConfig:
    """Read a TableConfig from a JSON file."""
    with Path(path).open("r", encoding="utf-8") as f:
        return table_config_from_dict(json.load(f))


__all__ = [
    "TableConfig",
    "load_table_config",
    "table_config_from_dict",
    "table_config_to_dict",
]

"""
Batch simulation of full matches between RandomAgents.

Each match is played through ``run_match``; results are collected in a
``(matches, players)`` VP matrix and summarized with numpy.
"""
from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Any, Dict, List, Sequence

import numpy as np

from .agents import RandomAgent, match_callbacks
from .game import MAX_PLAYERS, MIN_PLAYERS, run_match

logger = logging.getLogger("warfaire.simulate")


@dataclass
class SimulationSummary:
    player_names: List[str]
    vp: np.ndarray  # shape (matches, players)
    winners: np.ndarray  # seat index of each match winner
    retirements: np.ndarray  # categories retired per match

    @property
    def num_matches(self) -> int:
        return int(self.vp.shape[0])

    def mean_vp(self) -> np.ndarray:
        return self.vp.mean(axis=0)

    def std_vp(self) -> np.ndarray:
        return self.vp.std(axis=0)

    def win_rate(self) -> np.ndarray:
        counts = np.bincount(self.winners, minlength=len(self.player_names))
        return counts / max(1, self.num_matches)

    def mean_winning_vp(self) -> float:
        if self.num_matches == 0:
            return 0.0
        return float(self.vp.max(axis=1).mean())

    def mean_retirements(self) -> float:
        if self.num_matches == 0:
            return 0.0
        return float(self.retirements.mean())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "matches": self.num_matches,
            "players": list(self.player_names),
            "mean_vp": [round(float(x), 3) for x in self.mean_vp()],
            "std_vp": [round(float(x), 3) for x in self.std_vp()],
            "win_rate": [round(float(x), 3) for x in self.win_rate()],
            "mean_winning_vp": round(self.mean_winning_vp(), 3),
            "mean_retirements": round(self.mean_retirements(), 3),
        }


def run_simulations(
    num_matches: int,
    player_count: int = 4,
    seed: int = 0,
    player_names: Sequence[str] | None = None,
) -> SimulationSummary:
    """
    Play ``num_matches`` seeded matches with one RandomAgent per seat.

    The same seed reproduces the same summary.
    """
    if num_matches < 0:
        raise ValueError("num_matches must be non-negative")
    if not MIN_PLAYERS <= player_count <= MAX_PLAYERS:
        raise ValueError(f"player_count must be within {MIN_PLAYERS}..{MAX_PLAYERS}")
    names = list(player_names) if player_names is not None else [f"Player {i + 1}" for i in range(player_count)]
    if len(names) != player_count:
        raise ValueError("player_names must have one name per seat")

    master = random.Random(seed)
    vp = np.zeros((num_matches, player_count), dtype=np.int64)
    winners = np.zeros(num_matches, dtype=np.int64)
    retirements = np.zeros(num_matches, dtype=np.int64)

    for m in range(num_matches):
        agents = [RandomAgent(seed=master.randrange(2**31)) for _ in range(player_count)]
        get_play, choose_category = match_callbacks(agents)
        game = run_match(names, get_play, choose_category, rng=random.Random(master.randrange(2**31)))
        vp[m] = [p.total_vp for p in game.players]
        winner = game.get_winner()
        winners[m] = winner.id if winner is not None else 0
        retirements[m] = len(game.retired_categories)
        logger.debug("[SIM] Match %d: winner %s, VP %s", m + 1, names[int(winners[m])], vp[m].tolist())

    logger.info("[SIM] Played %d matches with %d players", num_matches, player_count)
    return SimulationSummary(player_names=names, vp=vp, winners=winners, retirements=retirements)


__all__ = ["SimulationSummary", "run_simulations"]

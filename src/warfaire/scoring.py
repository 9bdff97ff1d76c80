"""
Fair scoring: per-category ribbons with tie handling, group standings,
prestige updates and retirement candidate selection.

Ribbon VP = base (Gold 2, Silver 1, Bronze 0) + the category's prestige.
Tied players share a rank slot; the next slot index jumps by the number of
tied players (two golds -> no silver, the next group gets bronze).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

from .deck import Category
from .player import Player, RibbonType

logger = logging.getLogger("warfaire.scoring")

BASE_RIBBON_VALUES: dict[RibbonType, int] = {
    RibbonType.GOLD: 2,
    RibbonType.SILVER: 1,
    RibbonType.BRONZE: 0,
}

RANKED_RIBBONS: tuple[RibbonType, ...] = (RibbonType.GOLD, RibbonType.SILVER, RibbonType.BRONZE)

PRESTIGE_TOP_CATEGORIES = 3


@dataclass
class RibbonAward:
    player: Player
    ribbon_type: RibbonType
    vp: int
    total: int


@dataclass
class CategoryResult:
    winners: list[RibbonAward] = field(default_factory=list)
    total_points: int = 0
    prestige: int = 0


@dataclass
class GroupResult:
    winner: Player
    vp: int
    standings: list[tuple[Player, int]]


@dataclass
class FairResults:
    categories: dict[str, CategoryResult] = field(default_factory=dict)
    groups: dict[str, GroupResult] = field(default_factory=dict)

    def ribbon_vp_issued(self) -> int:
        """Total VP handed out by this scoring pass."""
        return sum(w.vp for result in self.categories.values() for w in result.winners)


def score_category(
    category_name: str,
    players: Sequence[Player],
    prestige: int,
    award: bool = True,
) -> CategoryResult:
    """
    Rank players in one category and award ribbons.

    Players with a total <= 0 did not take part. ``total_points`` sums every
    participant, placed or not. With ``award=False`` nothing is written to the
    players (same result, no side effects).
    """
    totals = [(p, p.get_category_total(category_name)) for p in players]
    totals = [(p, t) for p, t in totals if t > 0]
    if not totals:
        return CategoryResult(winners=[], total_points=0, prestige=prestige)

    totals.sort(key=lambda pt: pt[1], reverse=True)

    winners: list[RibbonAward] = []
    rank = 0
    i = 0
    while i < len(totals) and rank < len(RANKED_RIBBONS):
        current = totals[i][1]
        tied: list[Player] = []
        while i < len(totals) and totals[i][1] == current:
            tied.append(totals[i][0])
            i += 1

        ribbon_type = RANKED_RIBBONS[rank]
        vp = BASE_RIBBON_VALUES[ribbon_type] + prestige
        for player in tied:
            if award:
                player.add_ribbon(category_name, ribbon_type, vp)
            winners.append(RibbonAward(player=player, ribbon_type=ribbon_type, vp=vp, total=current))
        rank += len(tied)

    total_points = sum(t for _, t in totals)
    return CategoryResult(winners=winners, total_points=total_points, prestige=prestige)


def score_fair(
    players: Sequence[Player],
    active_categories: Sequence[Category],
    category_prestige: dict[str, int],
    award: bool = True,
) -> FairResults:
    """Score every active category, then rank players per group by ribbon VP."""
    results = FairResults()

    for category in active_categories:
        prestige = category_prestige.get(category.name, 0)
        results.categories[category.name] = score_category(category.name, players, prestige, award=award)

    groups: list[str] = []
    for category in active_categories:
        if category.group not in groups:
            groups.append(category.group)

    for group in groups:
        standings = [(p, p.get_group_vp(group, active_categories)) for p in players]
        standings = [(p, vp) for p, vp in standings if vp > 0]
        standings.sort(key=lambda ps: ps[1], reverse=True)
        # Ties are not broken: first in stable order takes the group.
        if standings:
            results.groups[group] = GroupResult(
                winner=standings[0][0],
                vp=standings[0][1],
                standings=standings,
            )

    return results


def update_prestige(
    active_categories: Sequence[Category],
    category_prestige: dict[str, int],
    results: FairResults,
) -> list[str]:
    """+1 prestige for the top 3 categories by points played. Returns their names."""
    ranked = sorted(
        results.categories.items(),
        key=lambda item: item[1].total_points,
        reverse=True,
    )
    top = [name for name, _ in ranked[:PRESTIGE_TOP_CATEGORIES]]
    for name in top:
        category_prestige[name] = category_prestige.get(name, 0) + 1
    logger.debug("[SCORING] Prestige +1 for %s", ", ".join(top))
    return top


def find_category_to_retire(
    active_categories: Sequence[Category],
    category_prestige: dict[str, int],
    results: FairResults,
) -> Category | None:
    """Lowest points played; among equals, lowest prestige retires first."""
    ranked = sorted(
        results.categories.items(),
        key=lambda item: (item[1].total_points, category_prestige.get(item[0], 0)),
    )
    for name, _ in ranked:
        for category in active_categories:
            if category.name == name:
                return category
    return None


__all__ = [
    "BASE_RIBBON_VALUES",
    "CategoryResult",
    "FairResults",
    "GroupResult",
    "RibbonAward",
    "find_category_to_retire",
    "score_category",
    "score_fair",
    "update_prestige",
]

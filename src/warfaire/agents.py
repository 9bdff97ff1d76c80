"""
Seat policies for AI-controlled seats and offline matches.

``SeatPolicy`` is the contract the table and ``run_match`` rely on:
- ``choose_play(hand, active_categories, allow_face_down)`` -> PlayChoice or None
- ``choose_category(card, choices)`` -> name of one of ``choices``

``RandomAgent`` is the baseline: uniform over cards in hand and over valid
categories for group cards.
"""
from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Optional, Protocol, Sequence

from .deck import Card, Category, GroupCard, get_categories_in_group
from .game import ChooseCategory, Game, GetPlay, PlayChoice
from .player import Player


class SeatPolicy(Protocol):
    """Decision policy for one seat."""

    def choose_play(
        self,
        hand: Sequence[Card],
        active_categories: Sequence[Category],
        allow_face_down: bool,
    ) -> Optional[PlayChoice]:
        """
        Pick a face-up card and, when ``allow_face_down``, a second card to
        commit face-down. Group cards need a category from their group among
        ``active_categories``. Return None when the hand is empty.
        """

    def choose_category(self, card: GroupCard, choices: Sequence[Category]) -> str:
        """Bind a revealed group card to one of ``choices`` (never empty)."""


@dataclass
class RandomAgent:
    """
    Baseline policy that plays uniformly random cards and categories.

    Usage:
        agent = RandomAgent(seed=42)
        choice = agent.choose_play(player.hand, game.active_categories, True)
    """

    seed: int | None = None

    def __post_init__(self) -> None:
        self._rng = random.Random(self.seed)

    def _pick_category(self, card: Card, active_categories: Sequence[Category]) -> str | None:
        if not isinstance(card, GroupCard):
            return None
        choices = get_categories_in_group(card.group, among=active_categories)
        if not choices:
            return None
        return self._rng.choice(choices).name

    def choose_play(
        self,
        hand: Sequence[Card],
        active_categories: Sequence[Category],
        allow_face_down: bool,
    ) -> Optional[PlayChoice]:
        if not hand:
            return None
        cards = list(hand)
        face_up = self._rng.choice(cards)
        rest = [c for c in cards if c is not face_up]
        face_down = self._rng.choice(rest) if allow_face_down and rest else None
        return PlayChoice(
            face_up=face_up,
            face_down=face_down,
            face_up_category=self._pick_category(face_up, active_categories),
            face_down_category=(
                self._pick_category(face_down, active_categories) if face_down is not None else None
            ),
        )

    def choose_category(self, card: GroupCard, choices: Sequence[Category]) -> str:
        if not choices:
            raise ValueError(f"No category available for {card.label()}")
        return self._rng.choice(list(choices)).name


def match_callbacks(policies: Sequence[SeatPolicy]) -> tuple[GetPlay, ChooseCategory]:
    """Adapt one policy per seat to the ``run_match`` callbacks."""

    def get_play(game: Game, player: Player) -> Optional[PlayChoice]:
        return policies[player.id].choose_play(
            player.hand,
            game.active_categories,
            not game.is_final_fair,
        )

    def choose_category(game: Game, player: Player, card: GroupCard, choices: list[Category]) -> str:
        return policies[player.id].choose_category(card, choices)

    return get_play, choose_category


__all__ = ["RandomAgent", "SeatPolicy", "match_callbacks"]

"""
Per-seat player state: hand, face-down queue, played cards, ribbons and VP.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from .deck import Card, Category


class RibbonType(str, Enum):
    GOLD = "gold"
    SILVER = "silver"
    BRONZE = "bronze"


@dataclass(frozen=True)
class Ribbon:
    category: str
    type: RibbonType
    vp: int


class Player:
    """
    Mutable state of one participant.

    - hand: cards available to play this round
    - face_down_cards: committed face-down, waiting for their reveal round
    - played_cards: every card that became face-up this Fair (stamped with fair/round)
    - ribbons / total_vp: kept for the whole match
    """

    def __init__(self, name: str, id: int) -> None:
        self.name = name
        self.id = id
        self.hand: list[Card] = []
        self.face_down_cards: list[Card] = []
        self.played_cards: list[Card] = []
        self.ribbons: list[Ribbon] = []
        self.total_vp: int = 0
        self.current_fair: int = 1
        self.current_round: int = 1

    def add_to_hand(self, card: Card) -> None:
        self.hand.append(card)

    def remove_from_hand(self, card: Card) -> bool:
        """Remove ``card`` by identity. Returns False if it is not in hand."""
        for i, held in enumerate(self.hand):
            if held is card:
                del self.hand[i]
                return True
        return False

    def play_card_face_up(self, card: Card) -> bool:
        if not self.remove_from_hand(card):
            return False
        card.played_at_fair = self.current_fair
        card.played_at_round = self.current_round
        self.played_cards.append(card)
        return True

    def play_card_face_down(self, card: Card) -> bool:
        if not self.remove_from_hand(card):
            return False
        card.played_face_down_at_fair = self.current_fair
        card.played_face_down_at_round = self.current_round
        self.face_down_cards.append(card)
        return True

    def flip_face_down_cards(self) -> list[Card]:
        """Reveal every queued face-down card at once."""
        flipped = list(self.face_down_cards)
        for card in flipped:
            card.played_at_fair = self.current_fair
            card.played_at_round = self.current_round
            self.played_cards.append(card)
        self.face_down_cards = []
        return flipped

    def flip_face_down_card(self, card: Card) -> bool:
        """
        Reveal a single face-down card. It goes through the same stamped
        face-up transition as a card played from hand.
        """
        for i, queued in enumerate(self.face_down_cards):
            if queued is card:
                del self.face_down_cards[i]
                self.add_to_hand(card)
                return self.play_card_face_up(card)
        return False

    def get_category_total(self, category_name: str) -> int:
        return sum(c.value for c in self.played_cards if c.effective_category == category_name)

    def add_ribbon(self, category: str, type: RibbonType, vp: int) -> Ribbon:
        ribbon = Ribbon(category=category, type=RibbonType(type), vp=vp)
        self.ribbons.append(ribbon)
        self.total_vp += vp
        return ribbon

    def get_group_vp(self, group: str, active_categories: Sequence[Category]) -> int:
        """
        Ribbon VP earned in ``group``. Membership is resolved against the active
        categories only, so ribbons from retired categories do not count.
        """
        group_of = {c.name: c.group for c in active_categories}
        return sum(r.vp for r in self.ribbons if group_of.get(r.category) == group)

    def clear_for_next_fair(self) -> None:
        # Ribbons and face-down commitments carry over.
        self.hand = []
        self.played_cards = []

    def reset(self) -> None:
        self.hand = []
        self.face_down_cards = []
        self.played_cards = []
        self.ribbons = []
        self.total_vp = 0

    def __str__(self) -> str:
        return f"{self.name} (VP: {self.total_vp})"

    def __repr__(self) -> str:
        return f"Player({self.name!r}, id={self.id}, vp={self.total_vp})"

"""
Match orchestration: setup -> 3 Fairs x 3 Rounds (reveal -> draw -> play) -> score
-> prestige -> category rotation -> next Fair.

``Game`` holds one match and exposes the transitions as plain methods; the
event-driven table (``warfaire.table``) and the offline ``run_match`` driver
both go through them.

Face-down schedule: a card committed at Fair F Round R is revealed at Fair F+1
Round R. Setup counts as Fair 0, so the i-th setup card is revealed in Fair 1
Round i.
"""
from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from .deck import (
    CATEGORIES,
    Card,
    Category,
    GroupCard,
    create_deck,
    draw_card,
    get_all_category_keys,
    get_categories_in_group,
    shuffle_deck,
)
from .player import Player
from .scoring import FairResults, find_category_to_retire, score_fair, update_prestige

logger = logging.getLogger("warfaire.game")

FAIRS_PER_MATCH = 3
ROUNDS_PER_FAIR = 3
CARDS_PER_DRAW = 3
SETUP_FACE_DOWN_CARDS = 3
SETUP_FAIR = 0
MIN_PLAYERS = 2
MAX_PLAYERS = 10
# Category rotation only happens below this many players.
ROTATION_PLAYER_LIMIT = 10


@dataclass
class PlayChoice:
    """One seat's decision for a round. ``face_down`` is None in the final Fair."""

    face_up: Card
    face_down: Optional[Card] = None
    face_up_category: Optional[str] = None
    face_down_category: Optional[str] = None


class Game:
    """Mutable state for one match (the GameSession)."""

    def __init__(self, player_names: Sequence[str], rng: random.Random | None = None) -> None:
        if not MIN_PLAYERS <= len(player_names) <= MAX_PLAYERS:
            raise ValueError(
                f"War Faire needs {MIN_PLAYERS}-{MAX_PLAYERS} players, got {len(player_names)}"
            )
        self.players = [Player(name, i) for i, name in enumerate(player_names)]
        self.rng = rng or random.Random()
        self.fair_number: int = 0
        self.round_number: int = 0
        self.deck: list[Card] = []
        self.active_categories: list[Category] = []
        self.inactive_categories: list[str] = []  # keys, front = longest benched
        self.category_prestige: dict[str, int] = {}
        self.fair_history: list[FairResults] = []
        self.retired_categories: list[str] = []
        self.finished: bool = False
        self.game_log: list[str] = []

    def log(self, message: str, *args: object) -> None:
        text = message % args if args else message
        self.game_log.append(text)
        logger.info(text)

    # ---- Queries ----

    @property
    def is_final_fair(self) -> bool:
        return self.fair_number >= FAIRS_PER_MATCH

    def active_category_keys(self) -> list[str]:
        return [c.key for c in self.active_categories]

    def categories_for_group(self, group: str) -> list[Category]:
        """Valid bindings for a group card: active categories of that group."""
        return get_categories_in_group(group, among=self.active_categories)

    def is_active(self, category_name: str) -> bool:
        return any(c.name == category_name for c in self.active_categories)

    def standings(self) -> list[Player]:
        """Descending VP; ties keep seat order."""
        return sorted(self.players, key=lambda p: p.total_vp, reverse=True)

    def get_winner(self) -> Player | None:
        ranked = self.standings()
        return ranked[0] if ranked else None

    # ---- Setup ----

    def setup_first_fair(self) -> None:
        """Pick players+1 active categories, build the deck, deal 3 face-down cards each."""
        self.log("[SETUP] Setting up the first Fair")
        num_active = len(self.players) + 1
        keys = get_all_category_keys()
        shuffled_keys = self.rng.sample(keys, len(keys))
        self.active_categories = [CATEGORIES[k] for k in shuffled_keys[:num_active]]
        self.inactive_categories = shuffled_keys[num_active:]
        self.category_prestige = {c.name: 0 for c in self.active_categories}
        for category in self.active_categories:
            self.log("[SETUP]   %s (%s) [Prestige: 0]", category.name, category.group)

        self.deck = shuffle_deck(create_deck(self.active_category_keys()), self.rng)
        self.log("[SETUP] Deck created with %d cards", len(self.deck))

        for player in self.players:
            player.current_fair = SETUP_FAIR
            for i in range(SETUP_FACE_DOWN_CARDS):
                card = draw_card(self.deck)
                if card is None:
                    break
                # Blind commitments still have to resolve to something.
                if isinstance(card, GroupCard):
                    self.auto_select_category(card)
                player.current_round = i + 1
                player.add_to_hand(card)
                player.play_card_face_down(card)
            self.log("[SETUP] %s: %d face-down cards", player.name, len(player.face_down_cards))

        self.fair_number = 1
        self.round_number = 0

    def auto_select_category(self, card: GroupCard) -> bool:
        """Bind ``card`` to a uniformly random valid category. False if its group has none active."""
        choices = self.categories_for_group(card.group)
        if not choices:
            return False
        card.select(self.rng.choice(choices).name)
        return True

    # ---- Round steps ----

    def begin_round(self) -> dict[int, list[Card]]:
        """Advance the round counter and return the face-down cards due now, per player index."""
        self.round_number += 1
        for player in self.players:
            player.current_fair = self.fair_number
            player.current_round = self.round_number
        self.log("[ROUND] Fair %d, Round %d", self.fair_number, self.round_number)
        return self.scheduled_reveals()

    def scheduled_reveals(self) -> dict[int, list[Card]]:
        due: dict[int, list[Card]] = {}
        for player in self.players:
            cards = [
                c
                for c in player.face_down_cards
                if c.played_face_down_at_fair is not None
                and c.played_face_down_at_fair + 1 == self.fair_number
                and c.played_face_down_at_round == self.round_number
            ]
            if cards:
                due[player.id] = cards
        return due

    def pending_group_cards(self, due: dict[int, list[Card]]) -> list[tuple[Player, GroupCard]]:
        """
        Due group cards that need a (new) category: unbound, or bound to a
        category retired since the commitment. Stale bindings are cleared.
        Cards whose group has no active category are left out; they flip unbound.
        """
        pending: list[tuple[Player, GroupCard]] = []
        for player_index, cards in due.items():
            player = self.players[player_index]
            for card in cards:
                if not isinstance(card, GroupCard):
                    continue
                if card.selected_category is not None and self.is_active(card.selected_category):
                    continue
                card.clear_selection()
                if self.categories_for_group(card.group):
                    pending.append((player, card))
        return pending

    def reveal_scheduled(self, due: dict[int, list[Card]]) -> int:
        """Flip every due card face-up. Returns how many were revealed."""
        revealed = 0
        for player_index, cards in due.items():
            player = self.players[player_index]
            for card in cards:
                if player.flip_face_down_card(card):
                    revealed += 1
                    self.log("[ROUND] %s reveals %s", player.name, card.label())
        return revealed

    def deal_round(self) -> int:
        """Each player draws up to 3 cards. No draws in the final Fair."""
        if self.is_final_fair:
            return 0
        drawn = 0
        for player in self.players:
            for _ in range(CARDS_PER_DRAW):
                card = draw_card(self.deck)
                if card is None:
                    break
                player.add_to_hand(card)
                drawn += 1
        if not self.deck:
            logger.debug("[ROUND] Deck exhausted in Fair %d Round %d", self.fair_number, self.round_number)
        return drawn

    def apply_play(
        self,
        player: Player,
        face_up: Card | None,
        face_down: Card | None = None,
        face_up_category: str | None = None,
        face_down_category: str | None = None,
    ) -> tuple[bool, bool]:
        """
        Bind group selections and place the cards. Each half is independent:
        a card that is not in hand is skipped and the other half still applies.
        """
        if face_down is not None and self.is_final_fair:
            raise ValueError("No face-down commitments in the final Fair")
        placed_up = placed_down = False
        if face_up is not None:
            self._bind(face_up, face_up_category)
            placed_up = player.play_card_face_up(face_up)
            if placed_up:
                self.log("[ROUND] %s plays %s face-up", player.name, face_up.label())
        if face_down is not None and face_down is not face_up:
            self._bind(face_down, face_down_category)
            placed_down = player.play_card_face_down(face_down)
            if placed_down:
                self.log("[ROUND] %s plays 1 card face-down", player.name)
        return placed_up, placed_down

    @staticmethod
    def _bind(card: Card, category_name: str | None) -> None:
        if isinstance(card, GroupCard) and category_name:
            card.select(category_name)

    # ---- Fair boundary ----

    def score_current_fair(self) -> tuple[FairResults, list[str]]:
        """Award ribbons and bump prestige for the Fair that just ended."""
        self.log("[SCORING] Scoring Fair %d", self.fair_number)
        results = score_fair(self.players, self.active_categories, self.category_prestige)
        for name, data in results.categories.items():
            if not data.winners:
                self.log("[SCORING] %s (prestige %d, %d pts): no entries", name, data.prestige, data.total_points)
                continue
            for w in data.winners:
                self.log(
                    "[SCORING] %s (prestige %d): %s %s with %d pts -> %d VP",
                    name,
                    data.prestige,
                    w.ribbon_type.value.upper(),
                    w.player.name,
                    w.total,
                    w.vp,
                )
        for group, data in results.groups.items():
            self.log("[SCORING] %s group leader: %s (%d VP)", group, data.winner.name, data.vp)

        top = update_prestige(self.active_categories, self.category_prestige, results)
        for name in top:
            self.log("[SCORING] Prestige %s +1 (now %d)", name, self.category_prestige[name])

        self.fair_history.append(results)
        if self.is_final_fair:
            self.finished = True
        return results, top

    def rotate_categories(self) -> tuple[Category | None, Category | None]:
        """
        Retire the weakest active category and bring back the longest-benched one.
        Only below 10 players and while an inactive category exists.
        Returns (retired, added).
        """
        if len(self.players) >= ROTATION_PLAYER_LIMIT or not self.inactive_categories:
            return None, None

        # Second scoring pass for the totals only; ribbons were awarded already.
        results = score_fair(self.players, self.active_categories, self.category_prestige, award=False)
        retired = find_category_to_retire(self.active_categories, self.category_prestige, results)
        if retired is None:
            return None, None

        self.active_categories = [c for c in self.active_categories if c.name != retired.name]
        self.category_prestige.pop(retired.name, None)
        self.inactive_categories.append(retired.key)
        self.retired_categories.append(retired.name)
        self.log("[RETIRE] Retiring category: %s", retired.name)

        added: Category | None = None
        if len(self.inactive_categories) > 1:
            added = CATEGORIES[self.inactive_categories.pop(0)]
            self.active_categories.append(added)
            self.category_prestige[added.name] = 0
            self.log("[RETIRE] Adding category: %s (%s)", added.name, added.group)
        return retired, added

    def prepare_next_fair(self) -> None:
        """Rotate categories, clear hands and boards, rebuild the deck, advance the Fair."""
        if self.is_final_fair:
            raise RuntimeError("The match ends after the final Fair")
        self.rotate_categories()
        for player in self.players:
            player.clear_for_next_fair()
        self.deck = shuffle_deck(create_deck(self.active_category_keys()), self.rng)
        self.fair_number += 1
        self.round_number = 0
        self.log("[SETUP] Fair %d deck created with %d cards", self.fair_number, len(self.deck))


# ---- Offline driver ----

GetPlay = Callable[[Game, Player], Optional[PlayChoice]]
ChooseCategory = Callable[[Game, Player, GroupCard, list[Category]], str]


def play_round(
    game: Game,
    get_play: GetPlay,
    choose_category: ChooseCategory | None = None,
) -> None:
    """
    Run one round synchronously: resolve pending group cards, reveal, draw,
    then ask every player for a play.
    """
    due = game.begin_round()
    for player, card in game.pending_group_cards(due):
        choices = game.categories_for_group(card.group)
        if choose_category is None:
            game.auto_select_category(card)
        else:
            card.select(choose_category(game, player, card, choices))
    game.reveal_scheduled(due)
    game.deal_round()

    for player in game.players:
        choice = get_play(game, player)
        if choice is None:
            continue
        face_down = None if game.is_final_fair else choice.face_down
        game.apply_play(
            player,
            choice.face_up,
            face_down,
            choice.face_up_category,
            choice.face_down_category,
        )


def run_match(
    player_names: Sequence[str],
    get_play: GetPlay,
    choose_category: ChooseCategory | None = None,
    rng: random.Random | None = None,
) -> Game:
    """
    Play a full match (3 Fairs) with callbacks.
    get_play(game, player) -> PlayChoice or None (nothing to play).
    choose_category(game, player, card, choices) -> category name for a revealed group card.
    """
    game = Game(player_names, rng=rng)
    game.setup_first_fair()
    while True:
        for _ in range(ROUNDS_PER_FAIR):
            play_round(game, get_play, choose_category)
        game.score_current_fair()
        if game.is_final_fair:
            break
        game.prepare_next_fair()

    winner = game.get_winner()
    if winner is not None:
        game.log("[END] Winner: %s with %d VP", winner.name, winner.total_vp)
    return game


__all__ = [
    "CARDS_PER_DRAW",
    "ChooseCategory",
    "FAIRS_PER_MATCH",
    "GetPlay",
    "MAX_PLAYERS",
    "MIN_PLAYERS",
    "ROUNDS_PER_FAIR",
    "Game",
    "PlayChoice",
    "play_round",
    "run_match",
]

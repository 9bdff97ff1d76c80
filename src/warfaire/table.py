"""
Event-driven War Faire table: seats, inbound actions, phase timers, AI seats
and per-viewer snapshot broadcast on top of ``warfaire.game.Game``.

Phases:
    Lobby
    Fair{F}Round{R}GroupSelection   (humans bind revealed group cards)
    Fair{F}Round{R}                 (play phase)
    RoundSummary{F}_{R}             (after rounds 1 and 2)
    FairSummary{F}                  (after round 3, once the Fair is scored)
    GameEnd

Every action handler and timer callback runs under one re-entrant lock.
Transitions go through ``_guarded``: an unexpected exception is logged with its
traceback, the phase is rolled back, its timers re-armed and the state
re-broadcast. Wrong-phase and malformed actions are ignored.
"""
from __future__ import annotations

import logging
import random
import threading
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping, Optional

from .agents import RandomAgent, SeatPolicy
from .config import TableConfig
from .deck import Card, Category, GroupCard
from .game import ROUNDS_PER_FAIR, Game, PlayChoice
from .persistence import table_snapshot
from .player import Player
from .scheduler import Scheduler, ThreadingScheduler, TimerHandle
from .scoring import FairResults

logger = logging.getLogger("warfaire.table")

LOBBY = "Lobby"
GAME_END = "GameEnd"

Broadcast = Callable[[str, dict[str, Any]], None]
PolicyFactory = Callable[[int], SeatPolicy]


def round_phase(fair: int, round_number: int) -> str:
    return f"Fair{fair}Round{round_number}"


def group_selection_phase(fair: int, round_number: int) -> str:
    return f"Fair{fair}Round{round_number}GroupSelection"


def round_summary_phase(fair: int, round_number: int) -> str:
    return f"RoundSummary{fair}_{round_number}"


def fair_summary_phase(fair: int) -> str:
    return f"FairSummary{fair}"


class SubmissionError(ValueError):
    """Raised for a structurally invalid ``play_cards`` or ``select_flip_category`` payload."""


@dataclass
class Seat:
    player_id: str
    name: str
    is_ai: bool = False
    has_acted: bool = False


@dataclass(frozen=True)
class CardDescriptor:
    """Wire reference to a card in hand: ``{category, value, isGroupCard}``."""

    category: str
    value: int
    is_group_card: bool = False

    @classmethod
    def from_payload(cls, data: Any) -> "CardDescriptor":
        if not isinstance(data, Mapping):
            raise SubmissionError(f"card descriptor must be an object, got {data!r}")
        category = data.get("category")
        value = data.get("value")
        is_group = data.get("isGroupCard", False)
        if not isinstance(category, str) or not category:
            raise SubmissionError("card descriptor needs a category name")
        if isinstance(value, bool) or not isinstance(value, int):
            raise SubmissionError("card descriptor needs an integer value")
        if not isinstance(is_group, bool):
            raise SubmissionError("isGroupCard must be a boolean")
        return cls(category=category, value=value, is_group_card=is_group)

    @classmethod
    def from_card(cls, card: Card) -> "CardDescriptor":
        return cls(category=card.category, value=card.value, is_group_card=card.is_group_card)

    def matches(self, card: Card) -> bool:
        return (
            card.category == self.category
            and card.value == self.value
            and card.is_group_card == self.is_group_card
        )

    def find_in(self, cards: Iterable[Card], exclude: Card | None = None) -> Card | None:
        """First matching card, skipping ``exclude`` (the card taken by the other slot)."""
        for card in cards:
            if card is not exclude and self.matches(card):
                return card
        return None


@dataclass
class PlaySubmission:
    player_id: str
    face_up: Optional[CardDescriptor]
    face_down: Optional[CardDescriptor] = None
    face_up_category: Optional[str] = None
    face_down_category: Optional[str] = None

    @classmethod
    def from_choice(cls, player_id: str, choice: PlayChoice) -> "PlaySubmission":
        return cls(
            player_id=player_id,
            face_up=CardDescriptor.from_card(choice.face_up),
            face_down=CardDescriptor.from_card(choice.face_down) if choice.face_down is not None else None,
            face_up_category=choice.face_up_category,
            face_down_category=choice.face_down_category,
        )


def _parse_selection(game: Game, card: Card, selection: Any, slot: str) -> str | None:
    if not isinstance(card, GroupCard):
        return None
    choices = [c.name for c in game.categories_for_group(card.group)]
    if not choices:
        # Nothing active in the group: the card is played unbound.
        return None
    if selection not in choices:
        raise SubmissionError(
            f"{slot} group card needs one of {', '.join(choices)}, got {selection!r}"
        )
    return selection


def parse_submission(player_id: str, data: Any, game: Game, hand: list[Card]) -> PlaySubmission:
    """
    Validate a ``play_cards`` payload against the seat's hand.

    - ``faceUpCard`` is required and must be in hand.
    - ``faceDownCard`` is required outside the final Fair when the hand holds
      two or more cards, must be a different card in hand, and must be null in
      the final Fair.
    - group cards need a ``groupSelections`` entry naming an active category
      of their group.
    """
    if not isinstance(data, Mapping):
        raise SubmissionError("play_cards payload must be an object")

    if data.get("faceUpCard") is None:
        raise SubmissionError("faceUpCard is required")
    face_up = CardDescriptor.from_payload(data["faceUpCard"])
    up_card = face_up.find_in(hand)
    if up_card is None:
        raise SubmissionError(f"faceUpCard {face_up.category} {face_up.value} is not in hand")

    face_down: CardDescriptor | None = None
    down_card: Card | None = None
    if data.get("faceDownCard") is not None:
        if game.is_final_fair:
            raise SubmissionError("no face-down card may be played in the final Fair")
        face_down = CardDescriptor.from_payload(data["faceDownCard"])
        down_card = face_down.find_in(hand, exclude=up_card)
        if down_card is None:
            raise SubmissionError(f"faceDownCard {face_down.category} {face_down.value} is not in hand")
    elif not game.is_final_fair and len(hand) >= 2:
        raise SubmissionError("faceDownCard is required")

    selections = data.get("groupSelections") or {}
    if not isinstance(selections, Mapping):
        raise SubmissionError("groupSelections must be an object")

    return PlaySubmission(
        player_id=player_id,
        face_up=face_up,
        face_down=face_down,
        face_up_category=_parse_selection(game, up_card, selections.get("faceUp"), "faceUp"),
        face_down_category=(
            _parse_selection(game, down_card, selections.get("faceDown"), "faceDown")
            if down_card is not None
            else None
        ),
    )


@dataclass
class PendingSelection:
    player_id: str
    card: GroupCard


@dataclass
class _ScheduledTimer:
    label: str
    phase: str
    handle: Optional[TimerHandle] = None


class WarFaireTable:
    """
    One War Faire table.

    Usage:
        table = WarFaireTable(TableConfig(seed=7), scheduler=ManualScheduler(), broadcast=send)
        table.sit("p1", "Alice")
        table.sit("bot", "Bot", is_ai=True)
        table.handle_action("p1", "start_hand")
    """

    def __init__(
        self,
        config: TableConfig | None = None,
        scheduler: Scheduler | None = None,
        broadcast: Broadcast | None = None,
        policy_factory: PolicyFactory | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.config = config or TableConfig()
        self.scheduler: Scheduler = scheduler or ThreadingScheduler()
        self.rng = rng or random.Random(self.config.seed)
        self._broadcast = broadcast
        self._policy_factory = policy_factory or self._default_policy
        self._lock = threading.RLock()

        self.phase: str = LOBBY
        self.seats: list[Seat] = []
        self.game: Game | None = None
        self.last_fair_results: FairResults | None = None

        self._seat_to_player: dict[str, int] = {}
        self._policies: dict[str, SeatPolicy] = {}
        self._due: dict[int, list[Card]] = {}
        self._pending: list[PendingSelection] = []
        self._submissions: list[PlaySubmission] = []
        self._timers: dict[str, _ScheduledTimer] = {}
        self._processing_round = False

    def _default_policy(self, seat_index: int) -> SeatPolicy:
        return RandomAgent(seed=self.rng.randrange(2**31))

    # ---- Seats ----

    def sit(self, player_id: str, name: str, is_ai: bool = False) -> bool:
        with self._lock:
            if self.phase != LOBBY or self.seat_of(player_id) is not None:
                return False
            if len(self.seats) >= self.config.max_seats:
                logger.info("[TABLE] Table full, %s cannot sit", name)
                return False
            self.seats.append(Seat(player_id=player_id, name=name, is_ai=is_ai))
            logger.info("[TABLE] %s sits down (%s)", name, "AI" if is_ai else "human")
            self._broadcast_state()
            return True

    def stand(self, player_id: str) -> bool:
        with self._lock:
            seat = self.seat_of(player_id)
            if self.phase != LOBBY or seat is None:
                return False
            self.seats.remove(seat)
            logger.info("[TABLE] %s stands up", seat.name)
            self._broadcast_state()
            return True

    def seat_of(self, player_id: str) -> Seat | None:
        for seat in self.seats:
            if seat.player_id == player_id:
                return seat
        return None

    def can_start_hand(self) -> bool:
        return self.phase == LOBBY and len(self.seats) >= self.config.min_players

    def player_for(self, player_id: str) -> Player | None:
        if self.game is None or player_id not in self._seat_to_player:
            return None
        return self.game.players[self._seat_to_player[player_id]]

    def _seat_for_player(self, player: Player) -> Seat:
        for seat in self.seats:
            if self._seat_to_player.get(seat.player_id) == player.id:
                return seat
        raise LookupError(f"No seat mapped to player {player.name}")

    def pending_selection_for(self, player_id: str) -> tuple[GroupCard, list[Category]] | None:
        """The viewer's next group card awaiting a category, with its valid choices."""
        if self.game is None:
            return None
        for pending in self._pending:
            if pending.player_id == player_id:
                return pending.card, self.game.categories_for_group(pending.card.group)
        return None

    # ---- Phase queries ----

    def _in_round_phase(self) -> bool:
        return self.game is not None and self.phase == round_phase(self.game.fair_number, self.game.round_number)

    def _in_group_selection(self) -> bool:
        return self.game is not None and self.phase == group_selection_phase(
            self.game.fair_number, self.game.round_number
        )

    def _in_summary(self) -> bool:
        if self.game is None:
            return False
        return self.phase in (
            round_summary_phase(self.game.fair_number, self.game.round_number),
            fair_summary_phase(self.game.fair_number),
        )

    def _all_acted(self) -> bool:
        return all(seat.has_acted for seat in self.seats)

    # ---- Inbound actions ----

    def handle_action(self, player_id: str, action: str, data: Any = None) -> bool:
        """
        Apply one client action. Returns True when it changed the table state;
        ignored actions (unknown, wrong phase, malformed) return False.
        """
        with self._lock:
            seat = self.seat_of(player_id)
            if seat is None:
                logger.debug("[TABLE] Action %s from unseated %s ignored", action, player_id)
                return False

            if action == "start_hand":
                if not self.can_start_hand():
                    return False
                return self._guarded(self._start_hand)
            if action == "play_cards":
                return self._on_play_cards(seat, data)
            if action == "select_flip_category":
                return self._on_select_flip_category(seat, data)
            if action == "continue_from_summary":
                if not self._in_summary():
                    return False
                return self._guarded(self._continue_from_summary)
            if action == "return_to_lobby":
                if self.phase != GAME_END:
                    return False
                return self._guarded(self._return_to_lobby)

            logger.debug("[TABLE] Unknown action %r from %s ignored", action, seat.name)
            return False

    def _on_play_cards(self, seat: Seat, data: Any) -> bool:
        if not self._in_round_phase() or seat.has_acted:
            return False
        player = self.player_for(seat.player_id)
        assert self.game is not None and player is not None
        try:
            submission = parse_submission(seat.player_id, data, self.game, player.hand)
        except SubmissionError as exc:
            logger.warning("[TABLE] Rejected play_cards from %s: %s", seat.name, exc)
            return False
        return self._guarded(self._record_submission, seat, submission)

    def _on_select_flip_category(self, seat: Seat, data: Any) -> bool:
        if not self._in_group_selection():
            return False
        pending = self.pending_selection_for(seat.player_id)
        if pending is None:
            return False
        card, choices = pending
        category = data.get("category") if isinstance(data, Mapping) else None
        if category not in [c.name for c in choices]:
            logger.warning(
                "[TABLE] Rejected select_flip_category from %s: %r is not a valid %s category",
                seat.name,
                category,
                card.group,
            )
            return False
        return self._guarded(self._select_flip_category, seat, card, category)

    # ---- Guarded transitions ----

    def _guarded(self, transition: Callable[..., None], *args: Any) -> bool:
        """
        Run one transition. On failure the phase is restored together with the
        fair/round counters and the per-round bookkeeping it is checked against.
        """
        previous_phase = self.phase
        game = self.game
        counters = (game.fair_number, game.round_number) if game is not None else None
        due, pending, submissions = self._due, list(self._pending), list(self._submissions)
        acted = [seat.has_acted for seat in self.seats]
        try:
            transition(*args)
            return True
        except Exception as exc:
            logger.exception(
                "[TABLE] Transition %s failed in phase %s: %s",
                transition.__name__,
                previous_phase,
                exc,
            )
            self.phase = previous_phase
            self.game = game
            if game is not None and counters is not None:
                game.fair_number, game.round_number = counters
                for player in game.players:
                    player.current_fair, player.current_round = counters
            self._due, self._pending, self._submissions = due, pending, submissions
            for seat, has_acted in zip(self.seats, acted):
                seat.has_acted = has_acted
            self._processing_round = False
            self._cancel_timers()
            self._rearm_timers()
            self._broadcast_state()
            return False

    def _rearm_timers(self) -> None:
        if self._in_group_selection() and self._pending:
            self._schedule(
                self.config.group_selection_timeout_seconds,
                "selection_timeout",
                self._on_selection_timeout,
            )
        elif self._in_round_phase():
            self._schedule_ai_turn()
        elif self._in_summary():
            self._schedule_summary_advance()

    def _start_hand(self) -> None:
        logger.info("[TABLE] Starting match with %d seats", len(self.seats))
        self.game = Game([seat.name for seat in self.seats], rng=self.rng)
        self._seat_to_player = {seat.player_id: i for i, seat in enumerate(self.seats)}
        self._policies = {
            seat.player_id: self._policy_factory(i) for i, seat in enumerate(self.seats) if seat.is_ai
        }
        self.last_fair_results = None
        self.game.setup_first_fair()
        self._start_round()

    def _start_round(self) -> None:
        assert self.game is not None
        game = self.game
        self._cancel_timers()
        self._submissions = []
        for seat in self.seats:
            seat.has_acted = False

        self._due = game.begin_round()
        self._pending = []
        for player, card in game.pending_group_cards(self._due):
            seat = self._seat_for_player(player)
            if seat.is_ai:
                choices = game.categories_for_group(card.group)
                card.select(self._ai_choose_category(seat, card, choices))
                logger.info("[AI] %s binds %s", seat.name, card.label())
            else:
                self._pending.append(PendingSelection(player_id=seat.player_id, card=card))

        if self._pending:
            self.phase = group_selection_phase(game.fair_number, game.round_number)
            self._schedule(
                self.config.group_selection_timeout_seconds,
                "selection_timeout",
                self._on_selection_timeout,
            )
            self._broadcast_state()
            return
        self._flip_cards_and_continue()

    def _select_flip_category(self, seat: Seat, card: GroupCard, category: str) -> None:
        card.select(category)
        self._pending = [p for p in self._pending if p.card is not card]
        logger.info("[TABLE] %s binds %s", seat.name, card.label())
        if self._pending:
            self._broadcast_state()
            return
        self._cancel_timers()
        self._flip_cards_and_continue()

    def _on_selection_timeout(self) -> None:
        assert self.game is not None
        for pending in self._pending:
            self.game.auto_select_category(pending.card)
            logger.info("[TIMER] Selection timed out, %s auto-assigned", pending.card.label())
        self._pending = []
        self._flip_cards_and_continue()

    def _flip_cards_and_continue(self) -> None:
        assert self.game is not None
        game = self.game
        game.reveal_scheduled(self._due)
        self._due = {}
        game.deal_round()

        self.phase = round_phase(game.fair_number, game.round_number)
        for seat in self.seats:
            player = self.player_for(seat.player_id)
            # Nothing to play means nothing to wait for.
            seat.has_acted = player is None or not player.hand
        if self._all_acted():
            self._end_round()
            return
        self._schedule_ai_turn()
        self._broadcast_state()

    def _record_submission(self, seat: Seat, submission: PlaySubmission) -> None:
        self._submissions.append(submission)
        seat.has_acted = True
        logger.info("[TABLE] %s submitted a play", seat.name)
        if self._all_acted():
            self._end_round()
        else:
            self._broadcast_state()

    def _schedule_ai_turn(self) -> None:
        if any(seat.is_ai and not seat.has_acted for seat in self.seats):
            self._schedule(self.config.ai_delay_seconds, "ai_turn", self._on_ai_turn)

    def _fallback_policy(self, seat: Seat) -> SeatPolicy:
        """Replace a failing seat policy with a RandomAgent for the rest of the match."""
        fallback = RandomAgent(seed=self.rng.randrange(2**31))
        self._policies[seat.player_id] = fallback
        logger.warning("[AI] %s falls back to RandomAgent", seat.name)
        return fallback

    def _ai_choose_category(self, seat: Seat, card: GroupCard, choices: list[Category]) -> str:
        try:
            name = self._policies[seat.player_id].choose_category(card, choices)
        except Exception as exc:
            logger.exception("[AI] %s failed to bind %s: %s", seat.name, card.label(), exc)
        else:
            if name in [c.name for c in choices]:
                return name
            logger.warning("[AI] %s chose %r, not a valid %s category", seat.name, name, card.group)
        return self._fallback_policy(seat).choose_category(card, choices)

    def _ai_choose_play(self, seat: Seat, player: Player) -> Optional[PlayChoice]:
        assert self.game is not None
        game = self.game
        args = (player.hand, game.active_categories, not game.is_final_fair)
        try:
            return self._policies[seat.player_id].choose_play(*args)
        except Exception as exc:
            logger.exception("[AI] %s failed to choose a play: %s", seat.name, exc)
        return self._fallback_policy(seat).choose_play(*args)

    def _on_ai_turn(self) -> None:
        assert self.game is not None
        for seat in self.seats:
            if not seat.is_ai or seat.has_acted:
                continue
            player = self.player_for(seat.player_id)
            assert player is not None
            choice = self._ai_choose_play(seat, player)
            if choice is not None:
                self._submissions.append(PlaySubmission.from_choice(seat.player_id, choice))
            seat.has_acted = True
            logger.debug("[AI] %s submitted a play", seat.name)
        if self._all_acted():
            self._end_round()
        else:
            self._broadcast_state()

    def _apply_submission(self, submission: PlaySubmission) -> None:
        assert self.game is not None
        player = self.player_for(submission.player_id)
        if player is None:
            return
        face_up = submission.face_up.find_in(player.hand) if submission.face_up else None
        face_down = (
            submission.face_down.find_in(player.hand, exclude=face_up) if submission.face_down else None
        )
        if submission.face_up is not None and face_up is None:
            logger.debug("[TABLE] %s face-up card no longer in hand, skipped", player.name)
        if submission.face_down is not None and face_down is None:
            logger.debug("[TABLE] %s face-down card no longer in hand, skipped", player.name)
        self.game.apply_play(
            player,
            face_up,
            face_down,
            submission.face_up_category,
            submission.face_down_category,
        )

    def _end_round(self) -> None:
        if self._processing_round:
            logger.debug("[TABLE] Round already being processed")
            return
        assert self.game is not None
        game = self.game
        self._processing_round = True
        try:
            self._cancel_timers()
            submissions, self._submissions = self._submissions, []
            for submission in submissions:
                self._apply_submission(submission)
            for seat in self.seats:
                seat.has_acted = False

            if game.round_number >= ROUNDS_PER_FAIR:
                self._end_fair()
                return
            self.phase = round_summary_phase(game.fair_number, game.round_number)
            self._schedule_summary_advance()
            self._broadcast_state()
        finally:
            self._processing_round = False

    def _end_fair(self) -> None:
        assert self.game is not None
        results, _ = self.game.score_current_fair()
        self.last_fair_results = results
        self.phase = fair_summary_phase(self.game.fair_number)
        self._schedule_summary_advance()
        self._broadcast_state()

    def _schedule_summary_advance(self) -> None:
        if self.config.summary_auto_advance_seconds is not None:
            self._schedule(
                self.config.summary_auto_advance_seconds,
                "summary",
                self._continue_from_summary,
            )

    def _continue_from_summary(self) -> None:
        assert self.game is not None
        game = self.game
        self._cancel_timers()
        if self.phase == fair_summary_phase(game.fair_number):
            if game.is_final_fair:
                self._end_game()
                return
            game.prepare_next_fair()
        self._start_round()

    def _end_game(self) -> None:
        assert self.game is not None
        self._cancel_timers()
        self.phase = GAME_END
        winner = self.game.get_winner()
        if winner is not None:
            self.game.log("[END] Winner: %s with %d VP", winner.name, winner.total_vp)
        self._broadcast_state()

    def _return_to_lobby(self) -> None:
        self._cancel_timers()
        self.phase = LOBBY
        self.game = None
        self.last_fair_results = None
        self._seat_to_player = {}
        self._policies = {}
        self._due = {}
        self._pending = []
        self._submissions = []
        for seat in self.seats:
            seat.has_acted = False
        logger.info("[TABLE] Back to lobby")
        self._broadcast_state()

    # ---- Timers ----

    def _schedule(self, delay: float, label: str, callback: Callable[[], None]) -> None:
        previous = self._timers.pop(label, None)
        if previous is not None and previous.handle is not None:
            previous.handle.cancel()
        entry = _ScheduledTimer(label=label, phase=self.phase)

        def fire() -> None:
            with self._lock:
                if self._timers.get(label) is not entry or self.phase != entry.phase:
                    logger.debug("[TIMER] Stale %s timer ignored", label)
                    return
                del self._timers[label]
                self._guarded(callback)

        self._timers[label] = entry
        entry.handle = self.scheduler.call_later(delay, fire)

    def _cancel_timers(self) -> None:
        timers, self._timers = self._timers, {}
        for entry in timers.values():
            if entry.handle is not None:
                entry.handle.cancel()

    # ---- Outbound ----

    def snapshot(self, viewer_id: str | None = None) -> dict[str, Any]:
        with self._lock:
            return table_snapshot(self, viewer_id)

    def _broadcast_state(self) -> None:
        if self._broadcast is None:
            return
        for seat in self.seats:
            try:
                self._broadcast(seat.player_id, self.snapshot(seat.player_id))
            except Exception as exc:
                logger.exception("[TABLE] Broadcast to %s failed: %s", seat.name, exc)


__all__ = [
    "GAME_END",
    "LOBBY",
    "CardDescriptor",
    "PlaySubmission",
    "Seat",
    "SubmissionError",
    "WarFaireTable",
    "fair_summary_phase",
    "group_selection_phase",
    "parse_submission",
    "round_phase",
    "round_summary_phase",
]

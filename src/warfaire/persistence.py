"""
Snapshot serialization for broadcast and export.

Converts table and match state to JSON-compatible dicts. Card dicts use the
same ``category`` / ``value`` / ``isGroupCard`` keys clients send back as card
descriptors in ``play_cards``. Hands are only included for the viewer's own
seat; other seats expose ``hand_size``.
"""
from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, Optional

from .deck import Card, GroupCard
from .player import Player
from .scoring import FairResults

if TYPE_CHECKING:
    from .table import WarFaireTable

SCHEMA_VERSION = 1


def card_to_dict(card: Card) -> Dict[str, Any]:
    d: Dict[str, Any] = {
        "category": card.category,
        "value": card.value,
        "isGroupCard": card.is_group_card,
        "effectiveCategory": card.effective_category,
        "playedAtFair": card.played_at_fair,
        "playedAtRound": card.played_at_round,
    }
    if isinstance(card, GroupCard):
        d["selectedCategory"] = card.selected_category
    return d


def player_to_dict(player: Player, reveal_hand: bool = False) -> Dict[str, Any]:
    d: Dict[str, Any] = {
        "id": player.id,
        "name": player.name,
        "played_cards": [card_to_dict(c) for c in player.played_cards],
        "face_down_count": len(player.face_down_cards),
        "ribbons": [
            {"category": r.category, "type": r.type.value, "vp": r.vp} for r in player.ribbons
        ],
        "total_vp": player.total_vp,
    }
    if reveal_hand:
        d["hand"] = [card_to_dict(c) for c in player.hand]
    else:
        d["hand_size"] = len(player.hand)
    return d


def fair_results_to_dict(results: FairResults) -> Dict[str, Any]:
    """Serialize one Fair's scoring (players referenced by seat index and name)."""
    return {
        "categories": {
            name: {
                "total_points": data.total_points,
                "prestige": data.prestige,
                "winners": [
                    {
                        "player": w.player.id,
                        "name": w.player.name,
                        "ribbon": w.ribbon_type.value,
                        "vp": w.vp,
                        "total": w.total,
                    }
                    for w in data.winners
                ],
            }
            for name, data in results.categories.items()
        },
        "groups": {
            group: {
                "winner": data.winner.id,
                "name": data.winner.name,
                "vp": data.vp,
                "standings": [{"player": p.id, "name": p.name, "vp": vp} for p, vp in data.standings],
            }
            for group, data in results.groups.items()
        },
    }


def table_snapshot(table: "WarFaireTable", viewer_id: Optional[str] = None) -> Dict[str, Any]:
    """
    Per-viewer projection of the table.

    Returns:
        Dict with schema_version, exported_at, phase, fair, round, categories,
        seats and, depending on the phase, pending_selection, fair_results and
        standings.
    """
    game = table.game
    snapshot: Dict[str, Any] = {
        "schema_version": SCHEMA_VERSION,
        "exported_at": datetime.now(timezone.utc).isoformat(),
        "phase": table.phase,
        "fair": game.fair_number if game is not None else 0,
        "round": game.round_number if game is not None else 0,
        "active_categories": (
            [{"key": c.key, "name": c.name, "group": c.group} for c in game.active_categories]
            if game is not None
            else []
        ),
        "category_prestige": dict(game.category_prestige) if game is not None else {},
        "deck_size": len(game.deck) if game is not None else 0,
        "can_start_hand": table.can_start_hand(),
    }

    seats = []
    for seat in table.seats:
        entry: Dict[str, Any] = {
            "player_id": seat.player_id,
            "name": seat.name,
            "is_ai": seat.is_ai,
            "has_acted": seat.has_acted,
        }
        player = table.player_for(seat.player_id)
        if player is not None:
            entry.update(player_to_dict(player, reveal_hand=seat.player_id == viewer_id))
        seats.append(entry)
    snapshot["seats"] = seats

    if viewer_id is not None:
        pending = table.pending_selection_for(viewer_id)
        if pending is not None:
            card, choices = pending
            snapshot["pending_selection"] = {
                "card": card_to_dict(card),
                "choices": [c.name for c in choices],
            }

    if table.phase.startswith("FairSummary") and table.last_fair_results is not None:
        snapshot["fair_results"] = fair_results_to_dict(table.last_fair_results)

    if table.phase == "GameEnd" and game is not None:
        snapshot["standings"] = [
            {"name": p.name, "total_vp": p.total_vp, "ribbons": len(p.ribbons)} for p in game.standings()
        ]
        winner = game.get_winner()
        snapshot["winner"] = winner.name if winner is not None else None
    return snapshot


def snapshot_to_json(snapshot: Dict[str, Any], indent: int | None = None) -> str:
    return json.dumps(snapshot, indent=indent)


__all__ = [
    "SCHEMA_VERSION",
    "card_to_dict",
    "fair_results_to_dict",
    "player_to_dict",
    "snapshot_to_json",
    "table_snapshot",
]

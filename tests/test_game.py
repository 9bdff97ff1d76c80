"""Tests for the match aggregate and the offline match driver."""
import random

import pytest

from warfaire.agents import RandomAgent, match_callbacks
from warfaire.deck import CATEGORIES, CategoryCard, GroupCard
from warfaire.game import FAIRS_PER_MATCH, Game, PlayChoice, play_round, run_match


def _random_match(names, seed):
    rng = random.Random(seed)
    agents = [RandomAgent(seed=rng.randrange(2**31)) for _ in names]
    get_play, choose_category = match_callbacks(agents)
    return run_match(names, get_play, choose_category, rng=rng)


def test_player_count_limits():
    with pytest.raises(ValueError):
        Game(["Solo"])
    with pytest.raises(ValueError):
        Game([f"P{i}" for i in range(11)])
    assert len(Game(["A", "B"]).players) == 2


def test_setup_first_fair():
    game = Game(["A", "B", "C", "D"], rng=random.Random(1))
    game.setup_first_fair()

    assert len(game.active_categories) == 5
    assert len(game.inactive_categories) == 6
    assert set(game.active_category_keys()).isdisjoint(game.inactive_categories)
    assert all(v == 0 for v in game.category_prestige.values())
    assert len(game.deck) == 5 * 13 + 24 - 4 * 3
    assert game.fair_number == 1
    assert game.round_number == 0

    for player in game.players:
        assert player.hand == []
        assert len(player.face_down_cards) == 3
        assert [c.played_face_down_at_fair for c in player.face_down_cards] == [0, 0, 0]
        assert [c.played_face_down_at_round for c in player.face_down_cards] == [1, 2, 3]
        for card in player.face_down_cards:
            if isinstance(card, GroupCard) and game.categories_for_group(card.group):
                assert game.is_active(card.selected_category)


def test_setup_cards_reveal_one_per_round():
    game = Game(["A", "B", "C"], rng=random.Random(2))
    game.setup_first_fair()

    for expected_round in (1, 2, 3):
        due = game.begin_round()
        assert game.round_number == expected_round
        assert sorted(due) == [0, 1, 2]
        assert all(len(cards) == 1 for cards in due.values())
        game.pending_group_cards(due)
        assert game.reveal_scheduled(due) == 3

    for player in game.players:
        assert player.face_down_cards == []
        assert [c.played_at_round for c in player.played_cards] == [1, 2, 3]


def test_deal_round_draws_three_until_deck_runs_out():
    game = Game(["A", "B"], rng=random.Random(3))
    game.setup_first_fair()
    game.begin_round()
    assert game.deal_round() == 6
    assert all(len(p.hand) == 3 for p in game.players)

    game.deck = game.deck[:4]
    assert game.deal_round() == 4
    assert game.deck == []
    assert game.deal_round() == 0


def test_apply_play_skips_missing_half():
    game = Game(["A", "B"], rng=random.Random(4))
    game.setup_first_fair()
    game.begin_round()
    player = game.players[0]
    held = CategoryCard(game.active_categories[0].name, 3)
    player.add_to_hand(held)

    stray = CategoryCard(game.active_categories[0].name, 5)
    assert game.apply_play(player, stray, held) == (False, True)
    assert held in player.face_down_cards


def test_apply_play_binds_group_cards():
    game = Game(["A", "B"], rng=random.Random(5))
    game.setup_first_fair()
    game.begin_round()
    category = game.active_categories[0]
    player = game.players[1]
    card = GroupCard(category.group, 4)
    player.add_to_hand(card)

    assert game.apply_play(player, card, face_up_category=category.name) == (True, False)
    assert card.selected_category == category.name
    assert player.get_category_total(category.name) >= 4


def test_pending_group_cards_clears_retired_binding():
    game = Game(["A", "B"], rng=random.Random(6))
    game.active_categories = [CATEGORIES["CARROTS"], CATEGORIES["PIES"]]
    game.fair_number, game.round_number = 2, 0
    player = game.players[0]

    stale = GroupCard("Produce", 3, selected_category="Tomatoes")
    fine = GroupCard("Produce", 2, selected_category="Carrots")
    orphan = GroupCard("Livestock", 5)
    for card in (stale, fine, orphan):
        card.played_face_down_at_fair, card.played_face_down_at_round = 1, 1
        player.face_down_cards.append(card)

    due = game.begin_round()
    pending = game.pending_group_cards(due)
    assert pending == [(player, stale)]
    assert stale.selected_category is None
    assert fine.selected_category == "Carrots"
    assert orphan.selected_category is None


def test_rotation_is_fifo_and_single():
    game = Game(["A", "B", "C"], rng=random.Random(7))
    game.active_categories = [CATEGORIES[k] for k in ("CARROTS", "PIES", "PIGS", "TOMATOES")]
    game.inactive_categories = ["CORN", "COWS", "CAKES"]
    game.category_prestige = {"Carrots": 1, "Pies": 0, "Pigs": 2, "Tomatoes": 1}
    for player, name in zip(game.players, ("Carrots", "Pies", "Pigs")):
        card = CategoryCard(name, 4)
        player.add_to_hand(card)
        player.play_card_face_up(card)

    retired, added = game.rotate_categories()
    assert retired.name == "Tomatoes"
    assert added.name == "Corn"
    assert game.inactive_categories == ["COWS", "CAKES", "TOMATOES"]
    assert game.active_category_keys() == ["CARROTS", "PIES", "PIGS", "CORN"]
    assert "Tomatoes" not in game.category_prestige
    assert game.category_prestige["Corn"] == 0
    assert game.retired_categories == ["Tomatoes"]
    # The totals pass hands out no ribbons.
    assert all(p.total_vp == 0 for p in game.players)


def test_rotation_needs_an_inactive_category():
    game = Game(["A", "B"], rng=random.Random(8))
    game.active_categories = [CATEGORIES["CARROTS"], CATEGORIES["PIES"]]
    game.inactive_categories = []
    assert game.rotate_categories() == (None, None)

    game.inactive_categories = ["CORN"]
    card = CategoryCard("Carrots", 3)
    game.players[0].add_to_hand(card)
    game.players[0].play_card_face_up(card)
    retired, added = game.rotate_categories()
    assert retired.name == "Pies"
    assert added.name == "Corn"
    assert game.inactive_categories == ["PIES"]


def test_no_rotation_with_ten_players():
    game = Game([f"P{i}" for i in range(10)], rng=random.Random(9))
    game.setup_first_fair()
    assert game.inactive_categories == []
    assert game.rotate_categories() == (None, None)


def test_prepare_next_fair_resets_board():
    game = Game(["A", "B", "C"], rng=random.Random(10))
    game.setup_first_fair()
    for _ in range(3):
        due = game.begin_round()
        game.pending_group_cards(due)
        game.reveal_scheduled(due)
        game.deal_round()
    game.score_current_fair()
    game.prepare_next_fair()

    assert game.fair_number == 2
    assert game.round_number == 0
    assert len(game.active_categories) == 4
    assert len(game.deck) == 4 * 13 + 24
    assert all(p.hand == [] and p.played_cards == [] for p in game.players)


def test_final_fair_has_no_draws_or_face_down():
    game = Game(["A", "B"], rng=random.Random(11))
    game.setup_first_fair()
    game.fair_number = FAIRS_PER_MATCH
    game.begin_round()
    assert game.is_final_fair
    assert game.deal_round() == 0

    player = game.players[0]
    up = CategoryCard(game.active_categories[0].name, 3)
    down = CategoryCard(game.active_categories[0].name, 4)
    player.add_to_hand(up)
    player.add_to_hand(down)
    with pytest.raises(ValueError):
        game.apply_play(player, up, down)
    with pytest.raises(RuntimeError):
        game.prepare_next_fair()


def test_play_round_ignores_face_down_in_final_fair():
    game = Game(["A", "B"], rng=random.Random(12))
    game.setup_first_fair()
    game.fair_number = FAIRS_PER_MATCH
    for player in game.players:
        player.face_down_cards = []
    cards = {}
    for player in game.players:
        up = CategoryCard(game.active_categories[0].name, 2)
        down = CategoryCard(game.active_categories[0].name, 3)
        player.add_to_hand(up)
        player.add_to_hand(down)
        cards[player.id] = (up, down)

    play_round(game, lambda g, p: PlayChoice(face_up=cards[p.id][0], face_down=cards[p.id][1]))
    for player in game.players:
        up, down = cards[player.id]
        assert player.played_cards == [up]
        assert player.hand == [down]
        assert player.face_down_cards == []


def test_full_match_vp_matches_ribbons_issued():
    names = ["Alice", "Bob", "Carol", "Dave"]
    game = _random_match(names, seed=2024)

    assert game.finished
    assert game.fair_number == FAIRS_PER_MATCH
    assert len(game.fair_history) == FAIRS_PER_MATCH

    winner = game.get_winner()
    assert winner.total_vp == max(p.total_vp for p in game.players)
    assert game.standings()[0] is winner
    assert sum(p.total_vp for p in game.players) == sum(r.ribbon_vp_issued() for r in game.fair_history)
    assert len(game.retired_categories) == 2
    assert any(line.startswith("[END]") for line in game.game_log)


def test_full_match_is_reproducible():
    names = ["Alice", "Bob", "Carol"]
    first = _random_match(names, seed=5)
    second = _random_match(names, seed=5)
    assert [p.total_vp for p in first.players] == [p.total_vp for p in second.players]
    assert first.retired_categories == second.retired_categories


def test_standings_keep_seat_order_on_ties():
    game = Game(["A", "B", "C"])
    game.players[1].total_vp = 4
    game.players[2].total_vp = 4
    assert [p.name for p in game.standings()] == ["B", "C", "A"]
    assert game.get_winner().name == "B"

"""Tests for per-player state transitions."""
from warfaire.deck import CATEGORIES, LIVESTOCK, PRODUCE, CategoryCard, GroupCard
from warfaire.player import Player, RibbonType


def _player(**stamps) -> Player:
    p = Player("Alice", 0)
    p.current_fair = stamps.get("fair", 1)
    p.current_round = stamps.get("round", 2)
    return p


def test_play_face_up_stamps_and_moves_card():
    p = _player(fair=2, round=3)
    card = CategoryCard("Corn", 4)
    p.add_to_hand(card)

    assert p.play_card_face_up(card)
    assert p.hand == []
    assert p.played_cards == [card]
    assert (card.played_at_fair, card.played_at_round) == (2, 3)


def test_play_requires_card_in_hand():
    p = _player()
    stray = CategoryCard("Corn", 4)
    assert not p.play_card_face_up(stray)
    assert not p.play_card_face_down(stray)
    assert p.played_cards == []
    assert p.face_down_cards == []


def test_remove_from_hand_uses_identity():
    p = _player()
    a = CategoryCard("Pies", 3)
    b = CategoryCard("Pies", 3)
    p.add_to_hand(a)
    p.add_to_hand(b)

    assert p.remove_from_hand(b)
    assert len(p.hand) == 1
    assert p.hand[0] is a


def test_face_down_then_flip_all():
    p = _player(fair=1, round=1)
    cards = [CategoryCard("Pigs", 2), CategoryCard("Cows", 5)]
    for c in cards:
        p.add_to_hand(c)
        p.play_card_face_down(c)
    assert [c.played_face_down_at_round for c in cards] == [1, 1]

    p.current_fair, p.current_round = 2, 1
    flipped = p.flip_face_down_cards()
    assert flipped == cards
    assert p.face_down_cards == []
    assert p.played_cards == cards
    assert all(c.played_at_fair == 2 for c in cards)


def test_flip_single_card():
    p = _player(fair=1, round=1)
    keep = CategoryCard("Pigs", 2)
    flip = CategoryCard("Cows", 5)
    for c in (keep, flip):
        p.add_to_hand(c)
        p.play_card_face_down(c)

    p.current_fair, p.current_round = 2, 1
    assert p.flip_face_down_card(flip)
    assert p.face_down_cards == [keep]
    assert p.played_cards == [flip]
    assert p.hand == []
    assert (flip.played_at_fair, flip.played_at_round) == (2, 1)
    assert not p.flip_face_down_card(flip)


def test_group_card_counts_only_once_bound():
    p = _player()
    card = GroupCard(PRODUCE, 5)
    p.add_to_hand(card)
    p.play_card_face_up(card)

    assert p.get_category_total("Carrots") == 0
    assert p.get_category_total(PRODUCE) == 5

    card.select("Carrots")
    assert p.get_category_total("Carrots") == 5
    assert p.get_category_total("Corn") == 0


def test_ribbons_accumulate_vp():
    p = _player()
    ribbon = p.add_ribbon("Pigs", RibbonType.GOLD, 4)
    p.add_ribbon("Cows", RibbonType.BRONZE, 1)
    assert ribbon.type is RibbonType.GOLD
    assert p.total_vp == 5
    assert [r.category for r in p.ribbons] == ["Pigs", "Cows"]


def test_group_vp_ignores_retired_categories():
    p = _player()
    p.add_ribbon("Pigs", RibbonType.GOLD, 3)
    p.add_ribbon("Cows", RibbonType.SILVER, 2)
    p.add_ribbon("Carrots", RibbonType.GOLD, 2)

    active = [CATEGORIES["PIGS"], CATEGORIES["COWS"], CATEGORIES["CARROTS"]]
    assert p.get_group_vp(LIVESTOCK, active) == 5
    assert p.get_group_vp(PRODUCE, active) == 2

    without_cows = [CATEGORIES["PIGS"], CATEGORIES["CARROTS"]]
    assert p.get_group_vp(LIVESTOCK, without_cows) == 3


def test_clear_for_next_fair_keeps_ribbons_and_face_down():
    p = _player()
    committed = CategoryCard("Pies", 3)
    played = CategoryCard("Cakes", 4)
    held = CategoryCard("Breads", 2)
    for c in (committed, played, held):
        p.add_to_hand(c)
    p.play_card_face_down(committed)
    p.play_card_face_up(played)
    p.add_ribbon("Cakes", RibbonType.GOLD, 2)

    p.clear_for_next_fair()
    assert p.hand == []
    assert p.played_cards == []
    assert p.face_down_cards == [committed]
    assert p.total_vp == 2
    assert len(p.ribbons) == 1


def test_reset_clears_everything():
    p = _player()
    card = CategoryCard("Pies", 3)
    p.add_to_hand(card)
    p.play_card_face_down(card)
    p.add_ribbon("Pies", RibbonType.GOLD, 2)

    p.reset()
    assert p.face_down_cards == []
    assert p.ribbons == []
    assert p.total_vp == 0
    assert "Alice" in str(p)

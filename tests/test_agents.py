"""Tests for seat policies."""
import random

import pytest

from warfaire.agents import RandomAgent, match_callbacks
from warfaire.deck import CATEGORIES, CategoryCard, GroupCard
from warfaire.game import Game


ACTIVE = [CATEGORIES["CARROTS"], CATEGORIES["CORN"], CATEGORIES["PIES"]]


def test_random_agent_plays_two_distinct_cards():
    agent = RandomAgent(seed=1)
    hand = [CategoryCard("Carrots", 2), CategoryCard("Carrots", 2), CategoryCard("Pies", 4)]
    for _ in range(20):
        choice = agent.choose_play(hand, ACTIVE, allow_face_down=True)
        assert choice.face_up in hand
        assert choice.face_down in hand
        assert choice.face_up is not choice.face_down


def test_random_agent_without_face_down():
    agent = RandomAgent(seed=2)
    hand = [CategoryCard("Corn", 3), CategoryCard("Pies", 5)]
    choice = agent.choose_play(hand, ACTIVE, allow_face_down=False)
    assert choice.face_down is None
    single = agent.choose_play(hand[:1], ACTIVE, allow_face_down=True)
    assert single.face_down is None
    assert agent.choose_play([], ACTIVE, allow_face_down=True) is None


def test_random_agent_binds_group_cards_within_group():
    agent = RandomAgent(seed=3)
    hand = [GroupCard("Produce", 4), GroupCard("Livestock", 2)]
    for _ in range(20):
        choice = agent.choose_play(hand, ACTIVE, allow_face_down=True)
        for card, category in ((choice.face_up, choice.face_up_category), (choice.face_down, choice.face_down_category)):
            if card.group == "Produce":
                assert category in ("Carrots", "Corn")
            else:
                assert category is None


def test_choose_category():
    agent = RandomAgent(seed=4)
    card = GroupCard("Produce", 2)
    choices = [CATEGORIES["CARROTS"], CATEGORIES["CORN"]]
    assert agent.choose_category(card, choices) in ("Carrots", "Corn")
    with pytest.raises(ValueError):
        agent.choose_category(card, [])


def test_random_agent_is_seeded():
    hand = [CategoryCard("Carrots", v) for v in (2, 3, 4, 5, 6)]
    a = RandomAgent(seed=9).choose_play(hand, ACTIVE, True)
    b = RandomAgent(seed=9).choose_play(hand, ACTIVE, True)
    assert a.face_up is b.face_up
    assert a.face_down is b.face_down


def test_match_callbacks_route_by_player_id():
    game = Game(["A", "B"], rng=random.Random(1))
    game.setup_first_fair()
    game.begin_round()
    game.deal_round()
    get_play, choose_category = match_callbacks([RandomAgent(seed=1), RandomAgent(seed=2)])

    choice = get_play(game, game.players[1])
    assert choice.face_up in game.players[1].hand
    assert choice.face_down in game.players[1].hand

    card = GroupCard("Produce", 3)
    choices = [CATEGORIES["CARROTS"]]
    assert choose_category(game, game.players[0], card, choices) == "Carrots"

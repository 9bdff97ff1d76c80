"""Tests for table configuration loading."""
import json

import pytest

from warfaire.config import (
    TableConfig,
    load_table_config,
    table_config_from_dict,
    table_config_to_dict,
)


def test_defaults():
    cfg = TableConfig()
    assert cfg.min_players == 2
    assert cfg.max_seats == 10
    assert cfg.ai_delay_seconds == 1.0
    assert cfg.group_selection_timeout_seconds == 15.0
    assert cfg.summary_auto_advance_seconds == 5.0
    assert cfg.seed is None


def test_from_dict_uses_defaults_and_ignores_unknown_keys():
    cfg = table_config_from_dict({"max_seats": 6, "seed": "12", "buy_in": 100})
    assert cfg.max_seats == 6
    assert cfg.seed == 12
    assert cfg.min_players == 2

    manual = table_config_from_dict({"summary_auto_advance_seconds": None})
    assert manual.summary_auto_advance_seconds is None


def test_round_trip_dict():
    cfg = TableConfig(min_players=3, max_seats=5, ai_delay_seconds=0.0, seed=4)
    assert table_config_from_dict(table_config_to_dict(cfg)) == cfg


@pytest.mark.parametrize(
    "kwargs",
    [
        {"min_players": 1},
        {"max_seats": 11},
        {"min_players": 5, "max_seats": 4},
        {"ai_delay_seconds": -1.0},
        {"summary_auto_advance_seconds": -2.0},
    ],
)
def test_invalid_values_raise(kwargs):
    with pytest.raises(ValueError):
        TableConfig(**kwargs)


def test_load_from_json(tmp_path):
    path = tmp_path / "table.json"
    path.write_text(json.dumps({"min_players": 3, "group_selection_timeout_seconds": 30}), encoding="utf-8")
    cfg = load_table_config(path)
    assert cfg.min_players == 3
    assert cfg.group_selection_timeout_seconds == 30.0

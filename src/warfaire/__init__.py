"""War Faire card game engine (3 Fairs x 3 Rounds, ribbons, prestige, category rotation)."""

__version__ = "0.1.0"

from .deck import (
    CATEGORIES,
    GROUPS,
    Card,
    Category,
    CategoryCard,
    GroupCard,
    create_deck,
    draw_card,
    shuffle_deck,
)
from .player import Player, Ribbon, RibbonType
from .scoring import (
    CategoryResult,
    FairResults,
    find_category_to_retire,
    score_category,
    score_fair,
    update_prestige,
)
from .game import FAIRS_PER_MATCH, ROUNDS_PER_FAIR, Game, PlayChoice, run_match
from .agents import RandomAgent, SeatPolicy, match_callbacks
from .config import TableConfig, load_table_config
from .scheduler import ManualScheduler, ThreadingScheduler
from .table import SubmissionError, WarFaireTable

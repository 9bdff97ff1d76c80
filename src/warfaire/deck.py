"""
War Faire deck: category cards (13 per active category) and group cards (8 per group).
Groups: Produce, Baking, Livestock. A group card scores toward whichever category
of its group it gets bound to; until bound it scores nowhere.
"""
from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import ClassVar, Iterable, Optional, Union

PRODUCE = "Produce"
BAKING = "Baking"
LIVESTOCK = "Livestock"

GROUPS: tuple[str, ...] = (PRODUCE, BAKING, LIVESTOCK)

# Value multisets: per active category, and per group.
CARD_VALUES: tuple[int, ...] = (2, 2, 2, 2, 3, 3, 3, 3, 4, 4, 5, 5, 6)
GROUP_CARD_VALUES: tuple[int, ...] = (2, 2, 3, 3, 4, 4, 5, 5)


@dataclass(frozen=True)
class Category:
    """Catalog entry. ``key`` is the stable identifier, ``name`` is what cards and scores use."""

    key: str
    name: str
    group: str

    def __str__(self) -> str:
        return self.name


CATEGORIES: dict[str, Category] = {
    c.key: c
    for c in (
        Category("CARROTS", "Carrots", PRODUCE),
        Category("PUMPKINS", "Pumpkins", PRODUCE),
        Category("TOMATOES", "Tomatoes", PRODUCE),
        Category("CORN", "Corn", PRODUCE),
        Category("PIES", "Pies", BAKING),
        Category("CAKES", "Cakes", BAKING),
        Category("COOKIES", "Cookies", BAKING),
        Category("BREADS", "Breads", BAKING),
        Category("PIGS", "Pigs", LIVESTOCK),
        Category("COWS", "Cows", LIVESTOCK),
        Category("CHICKENS", "Chickens", LIVESTOCK),
    )
}


@dataclass(eq=False)
class CategoryCard:
    """
    A card bound to one specific category for its whole life.

    Cards compare by identity: a hand may hold several Carrots 3s and each one
    is a distinct physical card.
    """

    category: str
    value: int
    played_at_fair: Optional[int] = field(default=None, repr=False)
    played_at_round: Optional[int] = field(default=None, repr=False)
    played_face_down_at_fair: Optional[int] = field(default=None, repr=False)
    played_face_down_at_round: Optional[int] = field(default=None, repr=False)

    is_group_card: ClassVar[bool] = False

    @property
    def effective_category(self) -> str:
        return self.category

    @property
    def is_resolved(self) -> bool:
        return True

    def label(self) -> str:
        return f"{self.category} {self.value}"


@dataclass(eq=False)
class GroupCard:
    """
    Wildcard for a whole group. ``selected_category`` is set when the owner
    binds it (at play time, or at reveal time for face-down cards).
    """

    group: str
    value: int
    selected_category: Optional[str] = None
    played_at_fair: Optional[int] = field(default=None, repr=False)
    played_at_round: Optional[int] = field(default=None, repr=False)
    played_face_down_at_fair: Optional[int] = field(default=None, repr=False)
    played_face_down_at_round: Optional[int] = field(default=None, repr=False)

    is_group_card: ClassVar[bool] = True

    @property
    def category(self) -> str:
        """Raw category field: the group name."""
        return self.group

    @property
    def effective_category(self) -> str:
        # A group name never matches a category name, so an unbound card
        # contributes to no category total.
        return self.selected_category or self.group

    @property
    def is_resolved(self) -> bool:
        return self.selected_category is not None

    def select(self, category_name: str) -> None:
        """Bind the card to ``category_name``; it must belong to this card's group."""
        category = get_category_by_name(category_name)
        if category is None or category.group != self.group:
            raise ValueError(f"{category_name!r} is not a {self.group} category")
        self.selected_category = category.name

    def clear_selection(self) -> None:
        self.selected_category = None

    def label(self) -> str:
        if self.selected_category:
            return f"{self.group} group card {self.value} -> {self.selected_category}"
        return f"{self.group} group card {self.value}"


Card = Union[CategoryCard, GroupCard]


def get_all_category_keys() -> list[str]:
    return list(CATEGORIES.keys())


def get_category_by_name(name: str) -> Category | None:
    for category in CATEGORIES.values():
        if category.name == name:
            return category
    return None


def get_category_key(name: str) -> str | None:
    category = get_category_by_name(name)
    return category.key if category is not None else None


def get_categories_in_group(
    group: str,
    among: Iterable[Category] | None = None,
) -> list[Category]:
    """Categories of ``group``, from the full catalog or from ``among`` (e.g. the active set)."""
    pool = CATEGORIES.values() if among is None else among
    return [c for c in pool if c.group == group]


def create_deck(active_category_keys: Iterable[str]) -> list[Card]:
    """
    Build an unshuffled deck: 13 cards per active category (in the given order),
    then 8 group cards for each of the 3 groups. Callers shuffle before dealing.
    """
    deck: list[Card] = []
    for key in active_category_keys:
        category = CATEGORIES[key]
        for value in CARD_VALUES:
            deck.append(CategoryCard(category.name, value))
    for group in GROUPS:
        for value in GROUP_CARD_VALUES:
            deck.append(GroupCard(group, value))
    return deck


def shuffle_deck(deck: list[Card], rng: random.Random | None = None) -> list[Card]:
    """Return a uniformly shuffled copy (Fisher-Yates, last index down to 1)."""
    if rng is None:
        rng = random.Random()
    shuffled = list(deck)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def draw_card(deck: list[Card]) -> Card | None:
    """Pop the top card (end of the list). An empty deck yields None."""
    if not deck:
        return None
    return deck.pop()

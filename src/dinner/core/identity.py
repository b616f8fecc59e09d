"""
Meal identity and deduplication.

A meal's id is assigned once and never changes afterwards. Replacing or
modifying a meal swaps its content but keeps the id, so grocery items
(`mealId`) and client list positions stay valid.

Ids look like `meal-<epoch ms>-<counter>-<random hex>`: the counter makes
them unique within the process even when two meals are created in the
same millisecond.
"""

import itertools
import logging
import secrets
import time
from collections.abc import Iterable

from dinner.models.entities import Meal

logger = logging.getLogger(__name__)

_counter = itertools.count(1)


def new_meal_id() -> str:
    millis = int(time.time() * 1000)
    return f"meal-{millis}-{next(_counter)}-{secrets.token_hex(3)}"


def ensure_id(meal: Meal) -> Meal:
    """
    Return `meal` itself if it has an id, else a copy with a fresh id.

    The caller's object is never mutated: other holders may keep
    references to the same logical meal.
    """
    if meal.id:
        return meal
    return meal.model_copy(update={"id": new_meal_id()})


def with_id(meal: Meal, meal_id: str, **updates) -> Meal:
    """Copy `meal` with its id forced to `meal_id` (identity preservation)."""
    return meal.model_copy(update={"id": meal_id, **updates})


def ensure_ids(meals: Iterable[Meal]) -> list[Meal]:
    return [ensure_id(meal) for meal in meals]


def deduplicate(meals: Iterable[Meal]) -> list[Meal]:
    """
    Collapse meals sharing an id, keeping the first occurrence.

    Meals without an id get one first, so they are never collapsed with
    each other. Order of first occurrence is preserved.
    """
    seen: set[str] = set()
    unique: list[Meal] = []
    discarded = 0

    for meal in ensure_ids(meals):
        if meal.id in seen:
            discarded += 1
            continue
        seen.add(meal.id)
        unique.append(meal)

    if discarded:
        logger.warning(f"Dropped {discarded} duplicate meal(s) while deduplicating")

    return unique


def find_meal_index(meals: list[Meal], meal_id: str) -> int | None:
    for index, meal in enumerate(meals):
        if meal.id == meal_id:
            return index
    return None


def duplicate_names(meals: Iterable[Meal]) -> set[str]:
    """Lower-cased names that occur more than once."""
    seen: set[str] = set()
    dupes: set[str] = set()
    for meal in meals:
        key = meal.name.strip().lower()
        if key in seen:
            dupes.add(key)
        seen.add(key)
    return dupes

"""
Grocery department organizer.

Maps item names onto a fixed store-department layout with keyword
matching. Pure functions, no I/O.
"""

import re
from collections.abc import Iterable
from functools import lru_cache

from dinner.models.entities import GroceryItem, GrocerySection

OTHER = "Other"

# Department order breaks ties between equally specific matches.
DEPARTMENT_KEYWORDS: dict[str, tuple[str, ...]] = {
    "Produce": (
        "apple", "avocado", "banana", "basil", "bell pepper", "berry", "berries",
        "broccoli", "cabbage", "carrot", "celery", "cilantro", "corn on the cob",
        "cucumber", "garlic", "ginger", "green bean", "herb", "jalapeno", "kale",
        "lemon", "lettuce", "lime", "mushroom", "onion", "parsley",
        "potato", "romaine", "scallion", "shallot", "spinach", "squash",
        "sweet potato", "tomato", "vegetable", "zucchini",
    ),
    "Dairy": (
        "butter", "cheddar", "cheese", "cream", "egg", "feta", "greek yogurt",
        "half and half", "milk", "mozzarella", "parmesan", "ricotta",
        "sour cream", "yogurt",
    ),
    "Meat & Seafood": (
        "bacon", "beef", "chicken", "cod", "fish", "ground turkey", "ham",
        "lamb", "pork", "salmon", "sausage", "shrimp", "steak", "tilapia",
        "tuna steak", "turkey",
    ),
    "Bakery": ("bagel", "bread", "bun", "baguette", "pita", "roll", "tortilla"),
    "Frozen": ("frozen", "ice cream", "peas"),
    "Canned Goods": ("beans", "broth", "canned", "chickpea", "coconut milk", "stock", "tomato paste", "tomato sauce"),
    "Dry Goods": (
        "cereal", "cornstarch", "couscous", "flour", "lentil", "noodle", "oat",
        "pasta", "penne", "quinoa", "rice", "seasoning", "spaghetti", "spice",
        "sugar", "thyme", "cumin", "paprika", "oregano", "chili powder",
    ),
    "Condiments": (
        "honey", "hot sauce", "ketchup", "mayo", "mayonnaise", "mustard", "oil",
        "salsa", "soy sauce", "syrup", "vinegar", "dressing",
    ),
    "Beverages": ("coffee", "juice", "soda", "sparkling water", "tea", "wine"),
}

DEPARTMENTS: tuple[str, ...] = (*DEPARTMENT_KEYWORDS, OTHER)


@lru_cache(maxsize=None)
def _pattern(keyword: str) -> re.Pattern:
    # Whole words, tolerating a plural suffix ("onions", "tomatoes")
    return re.compile(rf"\b{re.escape(keyword)}(?:e?s)?\b", re.IGNORECASE)


def department_for(name: str) -> str:
    """
    Department for an item name; OTHER when nothing matches.

    When keywords from several departments match, the one with more words wins
    ("coconut milk" over "milk"), then the one matching last in the name,
    which is usually the head noun ("chicken broth", "egg noodles").
    Remaining ties go to the earlier department.
    """
    best: tuple[int, int, int] | None = None
    found = OTHER
    for rank, (department, keywords) in enumerate(DEPARTMENT_KEYWORDS.items()):
        for keyword in keywords:
            matches = list(_pattern(keyword).finditer(name))
            if not matches:
                continue
            score = (len(keyword.split()), matches[-1].end(), -rank)
            if best is None or score > best:
                best, found = score, department
    return found


def organize_by_department(
    items: Iterable[GroceryItem],
    exclude_checked: bool = False,
    checked_ids: Iterable[str] | None = None,
) -> list[GrocerySection]:
    """
    Group items into department sections, in department order.

    Every input item appears in the output exactly once. Empty
    departments are dropped. With `exclude_checked`, checked items (the
    item's own flag, or its id in `checked_ids`) are pulled out of their
    departments and collected in the trailing Other section.
    """
    checked = set(checked_ids or ())
    buckets: dict[str, list[GroceryItem]] = {name: [] for name in DEPARTMENTS}
    set_aside: list[GroceryItem] = []

    for item in items:
        if exclude_checked and (item.checked or item.id in checked):
            set_aside.append(item)
            continue
        buckets[department_for(item.name)].append(item)

    buckets[OTHER].extend(set_aside)

    return [
        GrocerySection(name=name, items=department_items)
        for name, department_items in buckets.items()
        if department_items
    ]

"""
Meal normalization.

Meals arrive from two places - the generation collaborator and the web
client - and both have drifted over time (ingredients vs mainIngredients
vs main_ingredients, prepTime vs prep_time, directions vs instructions).
`normalize_meal` folds every known variant into the canonical Meal shape.
Nothing past this boundary should ever see an alternate field name.
"""

import re
from typing import Any

from dinner.core.errors import InvalidMealData
from dinner.models.entities import Meal, MealCategory

# Alternate ingredient lists, checked in order
_INGREDIENT_ALIASES = ("mainIngredients", "main_ingredients")
_INSTRUCTION_ALIASES = ("instructions", "directions", "steps")
_PREP_TIME_ALIASES = ("prepTime", "prep_time", "totalTime", "total_time")
_IMAGE_ALIASES = ("imageUrl", "image_url", "image")
_REPLACED_ALIASES = ("replacedFrom", "replaced_from")
_MODIFIED_ALIASES = ("modifiedFrom", "modified_from")
_MODIFICATION_ALIASES = ("modificationRequest", "modification_request")

# An ingredient list this short is usually a summary, not the real list
THIN_INGREDIENT_COUNT = 3


def _first(raw: dict, keys: tuple[str, ...]) -> Any:
    for key in keys:
        value = raw.get(key)
        if value not in (None, "", []):
            return value
    return None


def parse_minutes(value: Any) -> int | None:
    """
    Parse a prep time to minutes.

    Examples:
        30 -> 30
        "30" -> 30
        "45 minutes" -> 45
        "PT1H15M" -> 75
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)

    text = str(value).strip()
    iso = re.fullmatch(r"PT(?:(\d+)H)?(?:(\d+)M)?", text, re.IGNORECASE)
    if iso and (iso.group(1) or iso.group(2)):
        return int(iso.group(1) or 0) * 60 + int(iso.group(2) or 0)

    match = re.search(r"\d+", text)
    return int(match.group(0)) if match else None


# "1.5 lbs chicken breast" -> ("chicken breast", "1.5 lbs")
_QUANTITY = re.compile(
    r"^\s*(?P<qty>(?:\d+(?:[./]\d+)?|[½¼¾⅓⅔])(?:\s*-\s*\d+)?"
    r"(?:\s+(?:lbs?|pounds?|oz|ounces?|cups?|tbsp|tsp|tablespoons?|teaspoons?|cloves?|cans?|"
    r"packets?|packages?|heads?|bunch(?:es)?|slices?|large|medium|small|g|kg|ml|l))?)\s+(?P<name>.+)$",
    re.IGNORECASE,
)


def split_quantity(ingredient: str) -> tuple[str, str | None]:
    """Split an ingredient line into (name, quantity)."""
    match = _QUANTITY.match(ingredient)
    if not match:
        return ingredient.strip(), None
    return match.group("name").strip(), match.group("qty").strip()


def normalize_ingredients(ingredients: Any) -> list[str]:
    """
    Normalize ingredients to a list of strings.

    Handles:
        - List of strings
        - List of dicts with 'name' or 'text' (and optional 'quantity')
        - A single newline-separated string
    """
    if not ingredients:
        return []

    if isinstance(ingredients, str):
        return [line.strip(" -*\t") for line in ingredients.splitlines() if line.strip(" -*\t")]

    result = []
    for item in ingredients:
        if isinstance(item, str):
            text = item.strip()
        elif isinstance(item, dict):
            name = item.get("name") or item.get("text") or ""
            quantity = item.get("quantity") or item.get("amount")
            text = f"{quantity} {name}".strip() if quantity else str(name).strip()
        else:
            text = str(item).strip()
        if text:
            result.append(text)
    return result


def normalize_instructions(instructions: Any) -> list[str]:
    """Split a block of instructions into steps, or clean an existing list."""
    if not instructions:
        return []

    if isinstance(instructions, list):
        steps = []
        for step in instructions:
            text = step.get("text", "") if isinstance(step, dict) else str(step)
            text = text.strip()
            if text:
                steps.append(text)
        return steps

    text = str(instructions).strip()
    # "1. Do this\n2. Do that" or "Step 1: ..."
    steps = re.split(r"(?:^|\n)\s*(?:step\s*)?\d+[\.\):]\s*", text, flags=re.IGNORECASE)
    steps = [s.strip() for s in steps if s.strip()]
    if len(steps) > 1:
        return steps
    return [s.strip() for s in text.split("\n") if s.strip()]


def normalize_categories(raw: dict) -> list[str]:
    value = raw.get("categories") or raw.get("category") or raw.get("mealCategory")
    if not value:
        return []
    values = [value] if isinstance(value, str) else list(value)

    categories = []
    for entry in values:
        parsed = MealCategory.parse(str(entry))
        label = parsed.value if parsed else str(entry).strip()
        if label and label not in categories:
            categories.append(label)
    return categories


def _as_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    match = re.search(r"\d+", str(value))
    return int(match.group(0)) if match else None


def _string_list(value: Any) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [value.strip()]
    return [str(v).strip() for v in value if str(v).strip()]


def normalize_meal(raw: dict | Meal) -> Meal:
    """
    Build a canonical Meal from any upstream shape.

    Raises:
        InvalidMealData: if the payload is not a mapping or has no name
    """
    if isinstance(raw, Meal):
        return raw.model_copy(deep=True)
    if not isinstance(raw, dict):
        raise InvalidMealData(f"Expected a meal object, got {type(raw).__name__}.")

    name = raw.get("name") or raw.get("title")
    if not isinstance(name, str) or not name.strip():
        raise InvalidMealData("Meal is missing a name.")

    ingredients = normalize_ingredients(raw.get("ingredients"))
    alternate = normalize_ingredients(_first(raw, _INGREDIENT_ALIASES))
    if len(ingredients) <= THIN_INGREDIENT_COUNT and len(alternate) > len(ingredients):
        ingredients = alternate

    return Meal(
        id=str(raw.get("id") or ""),
        name=name.strip(),
        description=str(raw.get("description") or "").strip(),
        categories=normalize_categories(raw),
        prep_time=parse_minutes(_first(raw, _PREP_TIME_ALIASES)),
        servings=_as_int(raw.get("servings")),
        ingredients=ingredients,
        instructions=normalize_instructions(_first(raw, _INSTRUCTION_ALIASES)),
        rationales=_string_list(raw.get("rationales")),
        day=raw.get("day") or None,
        image_url=_first(raw, _IMAGE_ALIASES),
        replaced_from=_first(raw, _REPLACED_ALIASES),
        modified_from=_first(raw, _MODIFIED_ALIASES),
        modification_request=_first(raw, _MODIFICATION_ALIASES),
    )


def normalize_meals(raw_meals: list) -> list[Meal]:
    return [normalize_meal(raw) for raw in raw_meals or []]

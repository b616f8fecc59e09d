"""
Dinner, Decided - Model Router.

Per-task model configuration. Meal generation wants some creativity;
grocery breakdowns want consistency.

Tasks:
- meal_plan: a full set of meals for the week
- replace: one new meal in the same category
- modify: an existing meal with a requested change
- grocery: department breakdown of all plan ingredients
- chat: conversational replies
"""

from typing import TypedDict


class ModelConfig(TypedDict, total=False):
    """Configuration for model calls."""

    model: str
    temperature: float
    max_tokens: int


DEFAULT_MODEL = "gpt-4o"

TASK_CONFIGS: dict[str, ModelConfig] = {
    "meal_plan": {
        "model": DEFAULT_MODEL,
        "temperature": 0.7,  # Variety across weeks
        "max_tokens": 4000,
    },
    "replace": {
        "model": DEFAULT_MODEL,
        "temperature": 0.8,  # Must differ from the meal it replaces
        "max_tokens": 1500,
    },
    "modify": {
        "model": DEFAULT_MODEL,
        "temperature": 0.4,  # Stay close to the original
        "max_tokens": 1500,
    },
    "grocery": {
        "model": DEFAULT_MODEL,
        "temperature": 0.2,  # Consistent department assignment
        "max_tokens": 3000,
    },
    "chat": {
        "model": DEFAULT_MODEL,
        "temperature": 0.6,  # User-facing can be warmer
        "max_tokens": 800,
    },
}

# Default config if task not recognized
DEFAULT_CONFIG: ModelConfig = {
    "model": DEFAULT_MODEL,
    "temperature": 0.5,
}


def get_task_config(task: str) -> ModelConfig:
    """
    Get model configuration for a task.

    Args:
        task: Task name ("meal_plan", "replace", "modify", "grocery", "chat")

    Returns:
        A copy of the task's config, safe to mutate
    """
    return TASK_CONFIGS.get(task, DEFAULT_CONFIG).copy()


def get_model(task: str) -> str:
    return get_task_config(task).get("model", DEFAULT_MODEL)

"""
Dinner, Decided - LLM.

Structured OpenAI calls via Instructor and the MealGenerator collaborator.
"""

from dinner.llm.client import call_llm, get_client
from dinner.llm.generator import DemoMealGenerator, MealGenerator, OpenAIMealGenerator
from dinner.llm.model_router import get_model

__all__ = [
    "call_llm",
    "get_client",
    "get_model",
    "DemoMealGenerator",
    "MealGenerator",
    "OpenAIMealGenerator",
]

"""
Tests for the LLM layer: error classification, call_llm, and the two
MealGenerator implementations.

No network: the Instructor client is an AsyncMock installed via set_client.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from instructor.exceptions import InstructorRetryException
from openai import APIConnectionError, APITimeoutError, AuthenticationError, InternalServerError, RateLimitError

from dinner.core.errors import GenerationError, GenerationErrorKind, InvalidMealData
from dinner.llm import prompts
from dinner.llm.client import call_llm, classify_error, set_client
from dinner.llm.generator import (
    ChatReply,
    DemoMealGenerator,
    GroceryItemDraft,
    GroceryListDraft,
    GrocerySectionDraft,
    MealDraft,
    MealPlanDraft,
    OpenAIMealGenerator,
)
from dinner.llm.model_router import get_model
from dinner.models.entities import Meal, MealCategory, MealRequest

URL = "https://api.openai.com/v1/chat/completions"


def _run(coro):
    """Run async function synchronously."""
    return asyncio.run(coro)


def _response(status: int) -> httpx.Response:
    return httpx.Response(status, request=httpx.Request("POST", URL))


def _rate_limit(code: str = "rate_limit_exceeded") -> RateLimitError:
    return RateLimitError("Rate limit reached", response=_response(429), body={"error": {"code": code}})


@pytest.fixture
def mock_client():
    client = MagicMock()
    client.chat.completions.create = AsyncMock()
    set_client(client)
    yield client
    set_client(None)


# =============================================================================
# Error classification
# =============================================================================


class TestClassifyError:
    """classify_error maps SDK failures to GenerationErrorKind."""

    def test_rate_limited(self):
        assert classify_error(_rate_limit()) == GenerationErrorKind.RATE_LIMITED

    def test_quota_exceeded(self):
        assert classify_error(_rate_limit("insufficient_quota")) == GenerationErrorKind.QUOTA_EXCEEDED

    def test_auth_failed(self):
        error = AuthenticationError("Incorrect API key provided", response=_response(401), body=None)
        assert classify_error(error) == GenerationErrorKind.AUTH_FAILED

    def test_timeout(self):
        error = APITimeoutError(request=httpx.Request("POST", URL))
        assert classify_error(error) == GenerationErrorKind.TIMEOUT

    def test_server_error_is_unknown(self):
        error = InternalServerError("Server error", response=_response(500), body=None)
        assert classify_error(error) == GenerationErrorKind.UNKNOWN

    def test_message_fallback(self):
        assert classify_error(Exception("You exceeded your current quota")) == GenerationErrorKind.QUOTA_EXCEEDED
        assert classify_error(Exception("Invalid API key")) == GenerationErrorKind.AUTH_FAILED
        assert classify_error(Exception("boom")) == GenerationErrorKind.UNKNOWN


# =============================================================================
# call_llm
# =============================================================================


class TestCallLLM:
    """call_llm passes task config through and converts failures."""

    def test_passes_task_config(self, mock_client):
        mock_client.chat.completions.create.return_value = ChatReply(reply="hi")

        with patch("dinner.llm.client.log_prompt") as mock_log:
            result = _run(call_llm(response_model=ChatReply, system_prompt="sys", user_prompt="user", task="chat"))

        assert result.reply == "hi"
        kwargs = mock_client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == get_model("chat")
        assert kwargs["response_model"] is ChatReply
        assert kwargs["temperature"] == 0.6
        assert kwargs["messages"][0] == {"role": "system", "content": "sys"}
        assert mock_log.call_args.kwargs["task"] == "chat"
        assert mock_log.call_args.kwargs["response"].reply == "hi"

    def test_rate_limit_becomes_generation_error(self, mock_client):
        mock_client.chat.completions.create.side_effect = _rate_limit("insufficient_quota")

        with patch("dinner.llm.client.log_prompt") as mock_log:
            with pytest.raises(GenerationError) as exc_info:
                _run(call_llm(response_model=ChatReply, system_prompt="s", user_prompt="u", task="chat"))

        assert exc_info.value.kind == GenerationErrorKind.QUOTA_EXCEEDED
        assert mock_log.call_args.kwargs["error"]

    def test_connection_error(self, mock_client):
        mock_client.chat.completions.create.side_effect = APIConnectionError(request=httpx.Request("POST", URL))

        with patch("dinner.llm.client.log_prompt"):
            with pytest.raises(GenerationError) as exc_info:
                _run(call_llm(response_model=ChatReply, system_prompt="s", user_prompt="u", task="chat"))

        assert exc_info.value.kind == GenerationErrorKind.UNKNOWN

    def test_validation_exhaustion_is_invalid_data(self, mock_client):
        mock_client.chat.completions.create.side_effect = InstructorRetryException(
            "validation failed", n_attempts=3, total_usage=0
        )

        with patch("dinner.llm.client.log_prompt"):
            with pytest.raises(InvalidMealData):
                _run(call_llm(response_model=MealDraft, system_prompt="s", user_prompt="u", task="modify"))

    def test_retry_exception_with_api_cause(self, mock_client):
        error = InstructorRetryException("failed", n_attempts=1, total_usage=0)
        error.__cause__ = _rate_limit()
        mock_client.chat.completions.create.side_effect = error

        with patch("dinner.llm.client.log_prompt"):
            with pytest.raises(GenerationError) as exc_info:
                _run(call_llm(response_model=MealDraft, system_prompt="s", user_prompt="u", task="modify"))

        assert exc_info.value.kind == GenerationErrorKind.RATE_LIMITED


# =============================================================================
# Generators
# =============================================================================


class TestOpenAIMealGenerator:
    """OpenAIMealGenerator normalizes drafts; call_llm is patched."""

    def test_generate_meals(self):
        draft = MealPlanDraft(meals=[MealDraft(name="Tacos", category="quick", prep_time=15, ingredients=["1 lb beef"])])

        with patch("dinner.llm.generator.call_llm", new=AsyncMock(return_value=draft)) as mock_call:
            meals = _run(OpenAIMealGenerator().generate_meals(None, MealRequest(count=1, exclude_names=["Soup"])))

        assert meals[0].name == "Tacos"
        assert meals[0].categories == ["Quick & Easy"]
        assert meals[0].id == ""
        assert "Soup" in mock_call.call_args.kwargs["user_prompt"]

    def test_empty_meal_plan(self):
        with patch("dinner.llm.generator.call_llm", new=AsyncMock(return_value=MealPlanDraft(meals=[]))):
            with pytest.raises(InvalidMealData):
                _run(OpenAIMealGenerator().generate_meals(None, MealRequest(count=2)))

    def test_grocery_drops_unknown_meal_ids(self):
        draft = GroceryListDraft(
            sections=[
                GrocerySectionDraft(
                    name="Produce",
                    items=[
                        GroceryItemDraft(name="Carrots", quantity="4", meal_id="m1"),
                        GroceryItemDraft(name="Onion", meal_id="ghost"),
                    ],
                )
            ]
        )

        with patch("dinner.llm.generator.call_llm", new=AsyncMock(return_value=draft)):
            sections = _run(OpenAIMealGenerator().generate_grocery_sections([Meal(id="m1", name="Soup")]))

        assert [(i.name, i.meal_id) for i in sections[0].items] == [("Carrots", "m1"), ("Onion", None)]

    def test_chat_reply(self):
        with patch("dinner.llm.generator.call_llm", new=AsyncMock(return_value=ChatReply(reply="Try tacos"))):
            reply = _run(OpenAIMealGenerator().chat_reply([], None))

        assert reply == "Try tacos"


class TestDemoMealGenerator:
    def test_cycles_categories(self):
        meals = _run(DemoMealGenerator().generate_meals(None, MealRequest(count=4)))

        assert [m.category for m in meals] == [c.value for c in MealCategory]
        assert all(m.ingredients for m in meals)

    def test_meals_by_day(self):
        request = MealRequest(meals_by_day={"Monday": "quick", "Tuesday": "batch"})

        meals = _run(DemoMealGenerator().generate_meals(None, request))

        assert [(m.day, m.category) for m in meals] == [("Monday", "Quick & Easy"), ("Tuesday", "Batch Cooking")]

    def test_excludes_planned_names(self):
        request = MealRequest(count=2, meal_type="quick", exclude_names=["Rotisserie Chicken Quesadillas"])

        meals = _run(DemoMealGenerator().generate_meals(None, request))

        names = [m.name for m in meals]
        assert "Rotisserie Chicken Quesadillas" not in names
        assert len(set(names)) == 2

    def test_replace_stays_in_category(self):
        original = Meal(id="m1", name="Baked Ziti", categories=["Batch Cooking"])

        replacement = _run(DemoMealGenerator().replace_meal(original))

        assert replacement.name != "Baked Ziti"
        assert replacement.category == "Batch Cooking"

    def test_grocery_sections_reference_meals(self):
        meals = _run(DemoMealGenerator().generate_meals(None, MealRequest(count=2)))
        meals = [m.model_copy(update={"id": f"m{i}"}) for i, m in enumerate(meals)]

        sections = _run(DemoMealGenerator().generate_grocery_sections(meals))

        assert {item.meal_id for s in sections for item in s.items} == {"m0", "m1"}


def test_grocery_prompt_lists_meal_ids():
    prompt = prompts.grocery_prompt([Meal(id="m7", name="Chili", ingredients=["1 onion"])])
    assert "mealId: m7" in prompt

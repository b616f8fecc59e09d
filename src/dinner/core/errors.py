"""
Dinner, Decided - Error taxonomy.

Every failure the core raises is a DinnerError carrying a stable `code`,
a user-facing `message` and optional `help_text`. The web layer turns
these into structured JSON responses (see dinner.web.app).
"""

from enum import Enum


class DinnerError(Exception):
    """Base class for all domain errors."""

    code = "error"
    default_message = "Something went wrong."

    def __init__(self, message: str | None = None, *, help_text: str | None = None):
        self.message = message or self.default_message
        self.help_text = help_text
        super().__init__(self.message)

    def to_dict(self) -> dict:
        payload = {"error": self.code, "message": self.message}
        if self.help_text:
            payload["helpText"] = self.help_text
        return payload


# =============================================================================
# Lookup failures (client-correctable, never retried)
# =============================================================================


class NoActivePlan(DinnerError):
    code = "no_active_plan"
    default_message = "No active meal plan found."

    def __init__(self, message: str | None = None):
        super().__init__(message, help_text="Create a meal plan first.")


class PlanNotFound(DinnerError):
    code = "plan_not_found"

    def __init__(self, plan_id: int):
        self.plan_id = plan_id
        super().__init__(f"Meal plan {plan_id} not found.")


class MealNotFound(DinnerError):
    code = "meal_not_found"

    def __init__(self, meal_id: str, plan_id: int | None = None):
        self.meal_id = meal_id
        self.plan_id = plan_id
        where = f" in meal plan {plan_id}" if plan_id is not None else ""
        super().__init__(
            f"Meal {meal_id} not found{where}.",
            help_text="The meal may have been removed. Refresh and try again.",
        )


class GroceryListNotFound(DinnerError):
    code = "grocery_list_not_found"
    default_message = "No grocery list found."


class GroceryItemNotFound(DinnerError):
    code = "grocery_item_not_found"

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"Grocery item {item_id} not found.")


class HouseholdNotFound(DinnerError):
    code = "household_not_found"
    default_message = "No household found."


class MemberNotFound(DinnerError):
    code = "member_not_found"

    def __init__(self, member_id: str):
        self.member_id = member_id
        super().__init__(f"Household member {member_id} not found.")


# =============================================================================
# Data and concurrency failures
# =============================================================================


class InvalidMealData(DinnerError):
    """A meal without a name, or a collaborator response of the wrong shape."""

    code = "invalid_meal_data"
    default_message = "Received invalid meal data."


class StalePlanVersion(DinnerError):
    code = "stale_plan_version"

    def __init__(self, plan_id: int, expected: int, actual: int):
        self.plan_id = plan_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Meal plan {plan_id} changed since it was loaded "
            f"(expected version {expected}, found {actual}).",
            help_text="Reload the meal plan and apply your changes again.",
        )


# =============================================================================
# Generation collaborator failures
# =============================================================================


class GenerationErrorKind(str, Enum):
    RATE_LIMITED = "rate_limited"
    QUOTA_EXCEEDED = "quota_exceeded"
    AUTH_FAILED = "auth_failed"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


_GENERATION_MESSAGES: dict[GenerationErrorKind, tuple[str, str]] = {
    GenerationErrorKind.QUOTA_EXCEEDED: (
        "OpenAI API quota exceeded.",
        "You need to upgrade your OpenAI API plan or wait until your quota refreshes.",
    ),
    GenerationErrorKind.RATE_LIMITED: (
        "OpenAI API rate limit reached.",
        "Please wait a few minutes before trying again.",
    ),
    GenerationErrorKind.AUTH_FAILED: (
        "OpenAI API authentication error.",
        "You need to provide a valid OpenAI API key in the environment variables.",
    ),
    GenerationErrorKind.TIMEOUT: (
        "Meal generation took too long.",
        "The request timed out. Try again in a moment.",
    ),
    GenerationErrorKind.UNKNOWN: (
        "Failed to generate content.",
        "Please try again later.",
    ),
}


class GenerationError(DinnerError):
    """The generation collaborator failed. `kind` decides the user guidance."""

    code = "generation_error"

    def __init__(
        self,
        kind: GenerationErrorKind = GenerationErrorKind.UNKNOWN,
        detail: str | None = None,
    ):
        self.kind = kind
        self.detail = detail
        message, help_text = _GENERATION_MESSAGES[kind]
        super().__init__(message, help_text=help_text)

    @property
    def retryable(self) -> bool:
        return self.kind in (GenerationErrorKind.RATE_LIMITED, GenerationErrorKind.TIMEOUT)

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload["kind"] = self.kind.value
        return payload

"""
Dinner, Decided - LLM Client.

Wraps AsyncOpenAI with Instructor for structured outputs. All model calls
go through `call_llm`, which is also the single place where raw OpenAI SDK
failures become GenerationError / InvalidMealData.
"""

import logging
from typing import TypeVar

import instructor
from instructor.exceptions import InstructorRetryException
from openai import (
    APIConnectionError,
    APIStatusError,
    APITimeoutError,
    AsyncOpenAI,
    AuthenticationError,
    PermissionDeniedError,
    RateLimitError,
)
from pydantic import BaseModel

from dinner.config import settings
from dinner.core.errors import GenerationError, GenerationErrorKind, InvalidMealData
from dinner.llm.model_router import DEFAULT_MODEL, get_task_config
from dinner.llm.prompt_logger import log_prompt

logger = logging.getLogger(__name__)

# Type variable for generic structured output
T = TypeVar("T", bound=BaseModel)

# Singleton client instance
_client: instructor.AsyncInstructor | None = None


def get_client() -> instructor.AsyncInstructor:
    """
    Get the Instructor-wrapped async OpenAI client.

    Uses singleton pattern to reuse connection. SDK retries are off:
    retry and backoff are the caller's decision.
    """
    global _client

    if _client is None:
        openai_client = AsyncOpenAI(
            api_key=settings.openai_api_key,
            timeout=settings.generation_timeout_seconds,
            max_retries=0,
        )
        _client = instructor.from_openai(openai_client)

    return _client


def set_client(client: instructor.AsyncInstructor | None) -> None:
    """Swap the client (tests)."""
    global _client
    _client = client


# =============================================================================
# Error classification
# =============================================================================


def _error_code(error: APIStatusError) -> str | None:
    body = error.body
    if isinstance(body, dict):
        # {"error": {"code": ...}} or the inner object directly
        inner = body.get("error", body)
        if isinstance(inner, dict):
            return inner.get("code") or inner.get("type")
    return getattr(error, "code", None)


def classify_error(error: BaseException) -> GenerationErrorKind:
    """
    Map an OpenAI SDK (or transport) failure to a GenerationErrorKind.

    Status codes decide first; message sniffing is the fallback for
    errors that arrive without a usable status.
    """
    if isinstance(error, (APITimeoutError, TimeoutError)):
        return GenerationErrorKind.TIMEOUT

    if isinstance(error, RateLimitError):
        if _error_code(error) == "insufficient_quota":
            return GenerationErrorKind.QUOTA_EXCEEDED
        return GenerationErrorKind.RATE_LIMITED

    if isinstance(error, (AuthenticationError, PermissionDeniedError)):
        return GenerationErrorKind.AUTH_FAILED

    if isinstance(error, APIStatusError):
        if error.status_code == 429:
            return GenerationErrorKind.RATE_LIMITED
        if error.status_code in (401, 403):
            return GenerationErrorKind.AUTH_FAILED

    message = str(error).lower()
    if "insufficient_quota" in message or "exceeded your current quota" in message:
        return GenerationErrorKind.QUOTA_EXCEEDED
    if "rate limit" in message:
        return GenerationErrorKind.RATE_LIMITED
    if "invalid api key" in message or "incorrect api key" in message or "authentication" in message:
        return GenerationErrorKind.AUTH_FAILED

    return GenerationErrorKind.UNKNOWN


def to_generation_error(error: BaseException) -> GenerationError:
    kind = classify_error(error)
    return GenerationError(kind, detail=str(error))


# =============================================================================
# Calls
# =============================================================================


async def call_llm(
    *,
    response_model: type[T],
    system_prompt: str,
    user_prompt: str,
    task: str,
    max_retries: int = 2,
) -> T:
    """
    Make a structured LLM call with schema validation.

    Args:
        response_model: Pydantic model class for the response
        system_prompt: System message setting context
        user_prompt: User message with the actual request
        task: Task name for model selection and prompt logs
        max_retries: Instructor re-asks when the response fails validation

    Returns:
        Instance of response_model with validated data

    Raises:
        GenerationError: the API call failed (kind says why)
        InvalidMealData: the model never produced a valid response
    """
    client = get_client()
    config = get_task_config(task)
    model = config.pop("model", DEFAULT_MODEL)

    messages = [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": user_prompt},
    ]

    try:
        response = await client.chat.completions.create(
            model=model,
            messages=messages,
            response_model=response_model,
            max_retries=max_retries,
            **config,
        )
    except InstructorRetryException as e:
        log_prompt(
            task=task,
            model=model,
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            response_model=response_model.__name__,
            error=str(e),
            config=dict(config),
        )
        cause = e.__cause__
        if cause is not None and classify_error(cause) is not GenerationErrorKind.UNKNOWN:
            raise to_generation_error(cause) from e
        logger.warning(f"{task}: no valid {response_model.__name__} after {max_retries} retries")
        raise InvalidMealData(f"The meal generator returned malformed {task} data.") from e
    except (APIStatusError, APIConnectionError, TimeoutError) as e:
        log_prompt(
            task=task,
            model=model,
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            response_model=response_model.__name__,
            error=str(e),
            config=dict(config),
        )
        generation_error = to_generation_error(e)
        logger.error(f"{task}: OpenAI call failed ({generation_error.kind.value}): {e}")
        raise generation_error from e

    log_prompt(
        task=task,
        model=model,
        system_prompt=system_prompt,
        user_prompt=user_prompt,
        response_model=response_model.__name__,
        response=response,
        config=dict(config),
    )
    return response

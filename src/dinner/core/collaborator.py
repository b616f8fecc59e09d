"""
Timeout wrapper for generation collaborator calls.

Model calls take tens of seconds. They get a generous deadline, and
running out of time is reported as its own retryable failure rather
than a generic error.
"""

import asyncio
import logging
from collections.abc import Awaitable
from typing import TypeVar

from dinner.config import settings
from dinner.core.errors import GenerationError, GenerationErrorKind

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def call_collaborator(call: Awaitable[T], *, what: str, timeout: float | None = None) -> T:
    """
    Await `call` with the generation timeout.

    Raises:
        GenerationError: TIMEOUT when the deadline passes
    """
    timeout = timeout if timeout is not None else settings.generation_timeout_seconds
    try:
        return await asyncio.wait_for(call, timeout)
    except TimeoutError as e:
        logger.warning(f"Generation call '{what}' timed out after {timeout:.0f}s")
        raise GenerationError(GenerationErrorKind.TIMEOUT, detail=what) from e

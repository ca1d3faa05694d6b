import logging
from typing import Awaitable, Callable, TypeVar

from reviewbot.errors import MalformedResponseError, RetriesExhaustedError, ReviewServiceError

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_ATTEMPTS = 3

# Failures worth another attempt; anything else propagates immediately.
RETRYABLE_ERRORS = (ReviewServiceError, MalformedResponseError)


class BoundedRetry:
    """
    Run an AI call up to ``attempts`` times.

    The call receives ``genius=True`` on the first attempt only; retries
    fall back to the cheaper mode.
    """

    def __init__(self, attempts: int = MAX_ATTEMPTS, genius_first: bool = True):
        if attempts < 1:
            raise ValueError("attempts must be at least 1")
        self.attempts = attempts
        self.genius_first = genius_first

    async def run(self, call: Callable[[bool], Awaitable[T]], label: str) -> T:
        last_error: Exception | None = None
        for attempt in range(self.attempts):
            genius = self.genius_first and attempt == 0
            try:
                return await call(genius)
            except RETRYABLE_ERRORS as e:
                last_error = e
                logger.warning(f"[{label}] attempt {attempt + 1}/{self.attempts} failed: {e}")

        logger.error(f"[{label}] giving up after {self.attempts} attempts")
        raise RetriesExhaustedError(label, self.attempts, last_error)

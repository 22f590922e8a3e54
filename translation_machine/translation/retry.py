"""
Retry / Backoff Controller

Wraps one chunk's remote work with bounded retries. Rate limiting gets an
exponential delay, chunk-too-large errors are never retried, and any other
failure is retried after a short linear delay. Exhausting the attempts
yields a FinalFailure value instead of raising.
"""

import time
from dataclasses import dataclass
from typing import Callable, Tuple, TypeVar, Union

from translation_machine.ai.exceptions import ChunkTooLargeError, QuotaError
from translation_machine.config import DEFAULT_MAX_ATTEMPTS
from translation_machine.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class FinalFailure:
    """A chunk that could not be translated within the retry budget."""

    reason: str
    original_text: str
    attempts: int
    too_large: bool = False


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    quota_base_delay: float = 5.0
    quota_max_delay: float = 30.0
    transient_base_delay: float = 1.0


class RetryController:
    """Runs an operation until it succeeds, fails permanently, or runs out of attempts."""

    def __init__(self, policy: RetryPolicy = None, sleep: Callable[[float], None] = time.sleep):
        self.policy = policy or RetryPolicy()
        self._sleep = sleep

    def categorize(self, error: Exception, attempt: int) -> Tuple[bool, float]:
        """
        Categorize an error and determine retry strategy.

        Args:
            error: The exception raised by the operation
            attempt: 1-based number of the attempt that failed

        Returns:
            Tuple of (should_retry, wait_time_seconds)
        """
        if isinstance(error, ChunkTooLargeError):
            return False, 0

        # Rate limiting - exponential backoff, capped
        if isinstance(error, QuotaError):
            wait_time = self.policy.quota_base_delay * (2 ** (attempt - 1))
            return True, min(wait_time, self.policy.quota_max_delay)

        # Everything else - short linear backoff
        return True, self.policy.transient_base_delay * attempt

    def run(self, operation: Callable[[], T], original_text: str) -> Union[T, FinalFailure]:
        """
        Call operation() with retries.

        Returns:
            The operation's result, or FinalFailure once retries are exhausted
            or the error is not retryable. Never raises for operation errors.
        """
        max_attempts = max(1, self.policy.max_attempts)
        last_error = None

        for attempt in range(1, max_attempts + 1):
            try:
                if attempt > 1:
                    logger.info(f"  Retry attempt {attempt}/{max_attempts}")
                return operation()
            except Exception as e:
                last_error = e
                should_retry, wait_time = self.categorize(e, attempt)

                if not should_retry:
                    logger.error(f"  Non-recoverable error: {e}")
                    return FinalFailure(
                        reason=str(e),
                        original_text=original_text,
                        attempts=attempt,
                        too_large=isinstance(e, ChunkTooLargeError),
                    )
                if attempt < max_attempts:
                    logger.warning(f"  Attempt {attempt} failed: {e}. Waiting {wait_time}s before retry...")
                    self._sleep(wait_time)

        logger.warning(f"Translation failed after {max_attempts} attempts: {last_error}")
        return FinalFailure(reason=str(last_error), original_text=original_text, attempts=max_attempts)

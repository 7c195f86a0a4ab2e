"""Retry policy for the language-model and embedding clients.

Only the capability clients retry. A pipeline stage is attempted once; if
its client gives up, the stage fails with a typed error.
"""

import logging
from typing import Callable, TypeVar

from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Connection drops, rate limits and timeouts; clients re-raise provider
# errors as one of these builtins
RETRYABLE_EXCEPTIONS = (ConnectionError, TimeoutError)


def _log_retry(capability: str, max_attempts: int) -> Callable[[RetryCallState], None]:
    def before_sleep(state: RetryCallState) -> None:
        error = state.outcome.exception() if state.outcome else None
        logger.warning(
            "%s call failed (attempt %d/%d), retrying in %.1fs: %s",
            capability,
            state.attempt_number,
            max_attempts,
            state.next_action.sleep if state.next_action else 0.0,
            error,
        )

    return before_sleep


def with_capability_retry(
    capability: str,
    max_attempts: int = 3,
    min_wait: float = 2.0,
    max_wait: float = 10.0,
    multiplier: float = 1.0,
):
    """Decorator that retries a capability call with exponential backoff.

    Args:
        capability: Name used in retry log lines ("llm" or "embedding").
        max_attempts: Maximum number of attempts (default 3).
        min_wait: Minimum wait between retries in seconds (default 2).
        max_wait: Maximum wait between retries in seconds (default 10).
        multiplier: Base multiplier for exponential backoff (default 1).

    The last error is re-raised unchanged once attempts run out, so callers
    can still tell a timeout from a connection failure.
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        return retry(
            stop=stop_after_attempt(max_attempts),
            wait=wait_exponential(multiplier=multiplier, min=min_wait, max=max_wait),
            retry=retry_if_exception_type(RETRYABLE_EXCEPTIONS),
            before_sleep=_log_retry(capability, max_attempts),
            reraise=True,
        )(func)

    return decorator

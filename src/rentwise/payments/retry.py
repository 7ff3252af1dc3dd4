"""Bounded retries for outbound calls."""

from collections.abc import Awaitable, Callable

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    retry_if_result,
    stop_after_attempt,
    wait_fixed,
)

logger = structlog.get_logger()


def _is_declined(result: bool) -> bool:
    return not result


async def call_with_retries(
    call: Callable[[], Awaitable[bool]],
    *,
    operation: str,
    max_retries: int,
    backoff_seconds: float,
) -> bool:
    """Run call until it returns True, at most max_retries + 1 times.

    A False result and an exception both count as a failed attempt; a fixed
    backoff separates attempts.

    Returns:
        True if some attempt succeeded, False once attempts are exhausted
    """

    def log_attempt(state: RetryCallState) -> None:
        outcome = state.outcome
        if outcome is not None and outcome.failed:
            error = outcome.exception()
            logger.warning(
                "outbound_call_failed",
                operation=operation,
                attempt=state.attempt_number,
                error=str(error),
                error_type=type(error).__name__,
            )
        else:
            logger.warning(
                "outbound_call_declined", operation=operation, attempt=state.attempt_number
            )

    def give_up(state: RetryCallState) -> bool:
        logger.error("outbound_call_exhausted", operation=operation, attempts=state.attempt_number)
        return False

    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_retries + 1),
        wait=wait_fixed(backoff_seconds),
        retry=retry_if_result(_is_declined) | retry_if_exception_type(Exception),
        after=log_attempt,
        retry_error_callback=give_up,
    )
    return await retrying(call)

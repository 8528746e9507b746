# ==============================================================================
# Retry Configuration
# ==============================================================================
"""
Shared retry configuration for broker calls.

Offset commits are retried a few times with a short exponential backoff when
librdkafka reports the error as retriable. Anything else is re-raised
immediately so the caller can log it and move on: a failed commit only costs
redelivery, never data loss.

Commit retry: 3 attempts over ~0.3 seconds
"""

import logging

from confluent_kafka import KafkaException
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

# ==============================================================================
# Retry Constants
# ==============================================================================

# Exponential backoff: 0.1s, 0.2s = ~0.3s total
RETRY_ATTEMPTS_COMMIT = 3
RETRY_WAIT_MIN = 0.1  # seconds
RETRY_WAIT_MAX = 1.0  # seconds (cap for exponential backoff)


def is_retriable_kafka_error(exc: BaseException) -> bool:
    """Return True for KafkaException instances flagged retriable by librdkafka."""
    if not isinstance(exc, KafkaException):
        return False
    error = exc.args[0] if exc.args else None
    retriable = getattr(error, "retriable", None)
    return bool(retriable and retriable())


# ==============================================================================
# Logging Callbacks
# ==============================================================================


def log_retry_attempt(logger: logging.Logger):
    """
    Create a callback that logs retry attempts.

    Args:
        logger: Logger instance to use for logging

    Returns:
        Callback function for tenacity's before_sleep parameter
    """

    def _log_retry(retry_state: RetryCallState) -> None:
        exception = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "Commit retry attempt %d/%d after error: %s",
            retry_state.attempt_number,
            RETRY_ATTEMPTS_COMMIT,
            exception,
        )

    return _log_retry


# ==============================================================================
# Retry Decorators
# ==============================================================================


def retry_commit(logger: logging.Logger):
    """
    Create a retry decorator for offset commits (3 attempts, ~0.3 seconds).

    Args:
        logger: Logger instance for retry logging

    Returns:
        Tenacity retry decorator

    Example:
        @retry_commit(logger)
        def _commit_offsets(self, offsets):
            ...
    """
    return retry(
        stop=stop_after_attempt(RETRY_ATTEMPTS_COMMIT),
        wait=wait_exponential(multiplier=0.1, min=RETRY_WAIT_MIN, max=RETRY_WAIT_MAX),
        retry=retry_if_exception(is_retriable_kafka_error),
        before_sleep=log_retry_attempt(logger),
        reraise=True,
    )

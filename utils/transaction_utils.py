"""
Transaction helpers for money-moving operations.

Usage:
    @retry_on_deadlock(max_retries=3)
    def process_batch():
        with transaction.atomic():
            ...
"""

import logging
import time
from functools import wraps

from django.db import OperationalError

logger = logging.getLogger(__name__)

DEADLOCK_MARKERS = ("deadlock", "1213", "database is locked", "could not serialize")


class TransactionError(Exception):
    """Raised when a database transaction cannot be completed."""

    pass


class DeadlockError(TransactionError):
    """Raised when a deadlock persists after every retry."""

    pass


def is_deadlock(error: Exception) -> bool:
    message = str(error).lower()
    return any(marker in message for marker in DEADLOCK_MARKERS)


def retry_on_deadlock(max_retries=3, delay=0.1, backoff=2.0):
    """
    Retry the wrapped callable when the database reports a deadlock.

    Args:
        max_retries: Number of retries after the first attempt
        delay: Initial delay between retries in seconds
        backoff: Multiplier applied to the delay after each retry
    """

    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            current_delay = delay
            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except OperationalError as e:
                    if not is_deadlock(e):
                        raise TransactionError(f"Database operation failed: {e}") from e
                    if attempt == max_retries:
                        raise DeadlockError(f"Deadlock detected: {e}") from e
                    logger.warning(
                        f"Deadlock detected in {func.__name__}, retrying in {current_delay}s "
                        f"(attempt {attempt + 1}/{max_retries})"
                    )
                    time.sleep(current_delay)
                    current_delay *= backoff

        return wrapper

    return decorator

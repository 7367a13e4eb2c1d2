"""Bounded retry for optimistic-concurrency conflicts.

A VersionConflictError means another request saved the same booking
between our load and our save.  The whole load-mutate-save unit is run
again against the fresh state; every other error propagates unchanged.
"""

from __future__ import annotations

import logging
from typing import Callable, TypeVar

from booking_engine.domain.exceptions import VersionConflictError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_ATTEMPTS = 3


def retry_on_conflict(operation: Callable[[], T], attempts: int = DEFAULT_ATTEMPTS) -> T:
    if attempts < 1:
        raise ValueError("attempts must be at least 1")
    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except VersionConflictError as exc:
            if attempt == attempts:
                logger.warning("Giving up after %d conflicting attempts: %s", attempts, exc)
                raise
            logger.warning("Version conflict (attempt %d/%d), retrying: %s", attempt, attempts, exc)
    raise AssertionError("unreachable")

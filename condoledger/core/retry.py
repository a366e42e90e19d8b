"""Retry transient storage failures inside a single logical transaction."""

import logging
from collections.abc import Callable
from typing import TypeVar

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from condoledger.core.config import settings
from condoledger.core.errors import StorageError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def run_in_transaction(
    db: Session,
    operation: str,
    fn: Callable[[], T],
    attempts: int | None = None,
) -> T:
    """Run ``fn`` and commit, retrying on transient ``OperationalError``.

    ``fn`` must only flush; the commit happens here. Domain errors roll the
    session back and propagate unchanged. Lock contention and timeouts are
    rolled back and retried; once the budget is spent a ``StorageError`` is
    raised.
    """
    max_attempts = attempts if attempts is not None else settings.STORAGE_RETRY_ATTEMPTS
    max_attempts = max(1, max_attempts)
    last_error: OperationalError | None = None

    for attempt in range(1, max_attempts + 1):
        try:
            result = fn()
            db.commit()
            return result
        except OperationalError as e:
            db.rollback()
            last_error = e
            logger.warning(
                "Transient storage failure during %s (attempt %d/%d): %s",
                operation,
                attempt,
                max_attempts,
                e.orig,
            )
        except Exception:
            db.rollback()
            raise

    raise StorageError(operation, max_attempts, last_error)

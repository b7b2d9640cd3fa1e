"""Transaction boundaries for engine write operations.

Every public write operation in the service layer runs inside ``atomic``:
all row changes commit together or none do. Lock contention and optimistic
version mismatches surface as ``ConcurrencyConflict`` so callers can retry
the whole unit of work with ``with_conflict_retry``.
"""

import logging
from contextlib import contextmanager
from typing import Callable, Iterator, Optional, TypeVar

from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from inventory_engine.core.config import settings
from inventory_engine.core.exceptions import ConcurrencyConflict

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Driver messages that indicate a retryable lock or serialization failure
_CONFLICT_MARKERS = (
    "could not serialize access",
    "deadlock detected",
    "lock not available",
    "database is locked",
    "lock wait timeout",
)


def is_conflict_error(exc: DBAPIError) -> bool:
    message = str(exc.orig if exc.orig is not None else exc).lower()
    return any(marker in message for marker in _CONFLICT_MARKERS)


@contextmanager
def atomic(db: Session) -> Iterator[Session]:
    """Run a block as one transaction: commit on success, roll back on any error."""
    try:
        yield db
        db.commit()
    except StaleDataError as e:
        db.rollback()
        logger.warning(f"Optimistic version check failed, transaction rolled back: {e}")
        raise ConcurrencyConflict("Record was modified by another transaction") from e
    except OperationalError as e:
        db.rollback()
        if is_conflict_error(e):
            logger.warning(f"Lock conflict, transaction rolled back: {e.orig}")
            raise ConcurrencyConflict("Lock contention, retry the operation") from e
        logger.error(f"Database error, transaction rolled back: {e}")
        raise
    except Exception:
        db.rollback()
        raise


def with_conflict_retry(
    operation: Callable[[], T],
    attempts: Optional[int] = None,
) -> T:
    """Re-run ``operation`` when it fails with ``ConcurrencyConflict``.

    ``operation`` must open its own transaction (i.e. call a public service
    method) so that each attempt starts from freshly read rows.
    """
    attempts = attempts or settings.conflict_retry_attempts
    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except ConcurrencyConflict:
            if attempt == attempts:
                logger.error(f"Giving up after {attempts} conflicting attempts")
                raise
            logger.info(f"Concurrency conflict on attempt {attempt}/{attempts}, retrying")
    raise AssertionError("unreachable")

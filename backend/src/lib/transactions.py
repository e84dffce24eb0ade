"""
Guarded read-modify-write transactions.

Every write that depends on a prior read (booking status checks, rating
aggregation) runs through run_in_transaction:

- a fresh session per attempt, so each attempt reads committed state
- rows are read with SELECT ... FOR UPDATE where the dialect supports it
- models carry a version_id column; a commit against a stale row raises
  StaleDataError and the whole body is re-run from scratch
- any other exception rolls back and propagates unchanged
"""
from typing import Callable, Optional, TypeVar

from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError
from tenacity import RetryCallState, RetryError, Retrying, retry_if_exception_type, stop_after_attempt

from src.lib.db import SessionLocal
from src.lib.logging import get_logger
from src.lib.metrics import get_metrics_collector
from src.lib.settings import settings
from src.services.errors import TransactionConflictError

logger = get_logger(__name__)

T = TypeVar("T")


def _record_conflict(operation: str, attempts: int) -> Callable[[RetryCallState], None]:
    def after(retry_state: RetryCallState) -> None:
        get_metrics_collector().increment_transaction_conflicts(operation)
        logger.warning(
            "Transaction conflict, retrying",
            extra={
                "operation": operation,
                "attempt": retry_state.attempt_number,
                "max_attempts": attempts,
            },
        )

    return after


def run_in_transaction(
    work: Callable[[Session], T],
    *,
    operation: str,
    session_factory: Optional[sessionmaker] = None,
    max_attempts: Optional[int] = None,
) -> T:
    """
    Run `work(session)` atomically, retrying on optimistic-lock conflicts.

    Args:
        work: Transaction body. Must only touch the database through the
            given session and must be safe to re-run.
        operation: Short name used in logs and metrics (e.g. "rate_booking")
        session_factory: Session factory (defaults to the app's SessionLocal)
        max_attempts: Overrides settings.transaction_max_attempts

    Returns:
        Whatever `work` returns from the attempt that committed

    Raises:
        TransactionConflictError: every attempt hit a concurrent commit
    """
    factory = session_factory or SessionLocal
    attempts = max_attempts or settings.transaction_max_attempts

    def attempt() -> T:
        session = factory()
        try:
            result = work(session)
            session.commit()
            return result
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    retryer = Retrying(
        stop=stop_after_attempt(attempts),
        retry=retry_if_exception_type(StaleDataError),
        after=_record_conflict(operation, attempts),
        reraise=False,
    )

    try:
        result = retryer(attempt)
    except RetryError as e:
        logger.error(
            "Transaction gave up after repeated conflicts",
            extra={"operation": operation, "attempts": attempts},
        )
        raise TransactionConflictError(attempts, details={"operation": operation}) from e

    if retryer.statistics.get("attempt_number", 1) > 1:
        logger.info(
            "Transaction committed after retry",
            extra={"operation": operation, "attempt": retryer.statistics["attempt_number"]},
        )
    return result

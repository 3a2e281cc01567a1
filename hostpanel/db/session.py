"""Database engine, session factory, dependency injection and retry helper."""

import functools
import logging
import time
from typing import Any, Callable, Dict, Generator, Optional, TypeVar

from sqlalchemy import create_engine
from sqlalchemy.exc import DBAPIError, DisconnectionError, OperationalError
from sqlalchemy.orm import sessionmaker, Session

from hostpanel.core.config import settings
from hostpanel.core.exceptions import StoreUnavailableError

logger = logging.getLogger("hostpanel")

# MySQL access-denied, unknown-database, unknown-column and missing-table codes
NON_RETRYABLE_CODES = {1044, 1045, 1049, 1054, 1146}

F = TypeVar("F", bound=Callable[..., Any])


def _engine_kwargs(url: str) -> Dict[str, Any]:
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_timeout": 30,
        "pool_recycle": 1800,
        "pool_pre_ping": True,
    }


engine = create_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    **_engine_kwargs(settings.DATABASE_URL),
)

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency that provides a DB session per request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def driver_error_code(exc: BaseException) -> Optional[int]:
    """Return the numeric driver error code wrapped by a SQLAlchemy error."""
    orig = getattr(exc, "orig", None)
    args = getattr(orig, "args", ())
    if args and isinstance(args[0], int):
        return args[0]
    return None


def is_transient(exc: BaseException) -> bool:
    """Whether a store error is worth retrying."""
    if isinstance(exc, DisconnectionError):
        return True
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return True
    if isinstance(exc, OperationalError):
        return driver_error_code(exc) not in NON_RETRYABLE_CODES
    return False


def retry_on_transient(func: F) -> F:
    """Retry a unit of work whose first argument is the session.

    Transient connection errors roll the session back and retry with linear
    backoff. Authentication and schema errors fail fast. Either way the
    caller ends up with a ``StoreUnavailableError`` once retries are spent.
    """

    @functools.wraps(func)
    def wrapper(db: Session, *args, **kwargs):
        attempts = max(1, settings.DB_RETRY_ATTEMPTS)
        for attempt in range(1, attempts + 1):
            try:
                return func(db, *args, **kwargs)
            except (OperationalError, DisconnectionError) as exc:
                db.rollback()
                code = driver_error_code(exc)
                if not is_transient(exc) or attempt == attempts:
                    logger.error(
                        "Database error in %s (code=%s, attempt %d/%d): %s",
                        func.__name__, code, attempt, attempts, exc,
                    )
                    raise StoreUnavailableError("Database unavailable") from exc
                delay = settings.DB_RETRY_BACKOFF_SECONDS * attempt
                logger.warning(
                    "Transient database error in %s (code=%s), retrying in %.2fs",
                    func.__name__, code, delay,
                )
                time.sleep(delay)

    return wrapper  # type: ignore[return-value]

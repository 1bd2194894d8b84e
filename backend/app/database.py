import logging
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

from sqlalchemy import create_engine, event, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker

from .config import settings
from .services.errors import StorageFailure

logger = logging.getLogger(__name__)


def _engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        # check_same_thread=False: FastAPI serves sync routes from a thread pool
        return {"connect_args": {"check_same_thread": False}}
    # Bounded pool: requests block on checkout instead of opening connections without limit
    return {"pool_size": 5, "max_overflow": 5, "pool_timeout": 10, "pool_pre_ping": True}


engine = create_engine(
    settings.resolved_database_url,
    **_engine_kwargs(settings.resolved_database_url),
)


def enable_sqlite_fk(dbapi_connection, _):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()
    # Let SQLAlchemy emit BEGIN itself so SAVEPOINT nests correctly
    dbapi_connection.isolation_level = None


def _sqlite_begin(conn):
    conn.exec_driver_sql("BEGIN")


def configure_sqlite(sqlite_engine) -> None:
    event.listen(sqlite_engine, "connect", enable_sqlite_fk)
    event.listen(sqlite_engine, "begin", _sqlite_begin)


if engine.dialect.name == "sqlite":
    configure_sqlite(engine)


SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine
)


# FastAPI dependency
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# ──────────────────────────────────────────────────────────────────────────────
# Transaction scope with a bounded lock wait
# ──────────────────────────────────────────────────────────────────────────────

def _apply_lock_wait(db: Session, seconds: int) -> Callable[[], None]:
    """
    Set a bounded lock wait for the current transaction.

    Returns a callable that restores the previous setting. PostgreSQL uses
    SET LOCAL, which ends with the transaction, so there is nothing to restore.
    """
    dialect = db.get_bind().dialect.name

    if dialect == "postgresql":
        db.execute(text(f"SET LOCAL lock_timeout = '{int(seconds)}s'"))
        return lambda: None

    if dialect in ("mysql", "mariadb"):
        previous = db.execute(text("SELECT @@SESSION.innodb_lock_wait_timeout")).scalar()
        db.execute(text(f"SET SESSION innodb_lock_wait_timeout = {int(seconds)}"))

        def restore_mysql() -> None:
            db.execute(text(f"SET SESSION innodb_lock_wait_timeout = {int(previous)}"))
            db.commit()

        return restore_mysql

    if dialect == "sqlite":
        previous = db.execute(text("PRAGMA busy_timeout")).scalar()
        db.execute(text(f"PRAGMA busy_timeout = {int(seconds) * 1000}"))

        def restore_sqlite() -> None:
            db.execute(text(f"PRAGMA busy_timeout = {int(previous or 0)}"))
            db.commit()

        return restore_sqlite

    return lambda: None


def _storage_failure(exc: OperationalError) -> StorageFailure:
    message = str(exc.orig) if exc.orig is not None else str(exc)
    lowered = message.lower()
    if "lock" in lowered or "busy" in lowered or "timeout" in lowered:
        return StorageFailure(
            "Timed out waiting for a row lock, retry later",
            code="LockTimeout",
            details={"reason": message},
        )
    return StorageFailure(
        "Database temporarily unavailable, retry later",
        code="StorageUnavailable",
        details={"reason": message},
    )


@contextmanager
def transaction_scope(
    db: Session,
    lock_timeout_seconds: Optional[int] = None,
) -> Iterator[Session]:
    """
    Run a block as one transaction with a bounded lock wait.

    Commits on success, rolls back on any exception, and restores the
    previous lock-wait setting on every exit path. OperationalError
    (lock timeout, lost connection) surfaces as StorageFailure.
    """
    seconds = lock_timeout_seconds or settings.lock_wait_timeout_seconds
    restore: Callable[[], None] = lambda: None

    try:
        restore = _apply_lock_wait(db, seconds)
        yield db
        db.commit()
    except OperationalError as exc:
        db.rollback()
        logger.warning(f"Transaction failed on storage error: {exc}")
        raise _storage_failure(exc) from exc
    except Exception:
        db.rollback()
        raise
    finally:
        try:
            restore()
        except OperationalError:
            logger.exception("Failed to restore lock wait setting")
            db.rollback()

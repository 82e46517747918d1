import logging
import time
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from config import get_settings

logger = logging.getLogger(__name__)

CONNECT_RETRY_SECS = 5.0


def _create_engine() -> Engine:
    settings = get_settings()
    connect_args: dict[str, object] = {}
    kwargs: dict[str, object] = {}
    if settings.database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
        if settings.database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    from sqlalchemy import create_engine

    eng = create_engine(settings.database_url, connect_args=connect_args, **kwargs)
    if settings.database_url.startswith("sqlite"):
        event.listen(eng, "connect", _enable_sqlite_pragmas)
    return eng


def _enable_sqlite_pragmas(dbapi_conn, _record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON;")
    cursor.close()


engine = _create_engine()
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


class Base(DeclarativeBase):
    pass


@contextmanager
def session_scope() -> Iterator[Session]:
    session: Session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def wait_for_database(
    eng: Engine = engine,
    *,
    retry_secs: float = CONNECT_RETRY_SECS,
    sleep=time.sleep,
) -> int:
    """Block until the database answers ``SELECT 1``.

    Retries forever with a fixed backoff. Returns the number of failed
    attempts before the connection succeeded.
    """
    failures = 0
    while True:
        try:
            with eng.connect() as conn:
                conn.execute(text("SELECT 1"))
        except OperationalError as exc:
            failures += 1
            logger.error(f"db_connect_failed: attempt={failures} error={exc}")
            logger.info(f"db_connect_retry: in_secs={retry_secs}")
            sleep(retry_secs)
            continue
        logger.info(f"db_connected: failed_attempts={failures}")
        return failures

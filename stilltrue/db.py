from sqlmodel import SQLModel, create_engine, Session
from contextlib import contextmanager
from typing import Any, Dict, Generator, List
import logging
import os
import time
from sqlalchemy import Table
from sqlalchemy.exc import OperationalError
from sqlalchemy.pool import NullPool

logger = logging.getLogger("db")

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./stilltrue.db")

if DATABASE_URL.startswith("sqlite"):
    engine = create_engine(
        DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=NullPool,
    )
else:
    engine = create_engine(
        DATABASE_URL,
        echo=False,
        pool_size=5,
        max_overflow=10,
        pool_recycle=3600,
        pool_timeout=30,
    )


def create_db_and_tables():
    # Import registers the tables on SQLModel.metadata.
    import stilltrue.models  # noqa: F401
    SQLModel.metadata.create_all(engine)


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """Yield a DB session that is always properly closed."""
    session = Session(engine)
    try:
        yield session
    finally:
        session.close()


def _dialect_insert(table: Table):
    if engine.dialect.name == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    else:
        from sqlalchemy.dialects.sqlite import insert
    return insert(table)


def upsert_row(table: Table, values: Dict[str, Any], conflict_cols: List[str],
               update: Dict[str, Any], attempts: int = 3, backoff: float = 0.05) -> None:
    """INSERT ... ON CONFLICT DO UPDATE, retried on transient OperationalError.

    ``update`` values may reference ``stmt.excluded`` columns through callables
    taking the insert statement, e.g. ``{"n": lambda s: table.c.n + 1}``.
    """
    stmt = _dialect_insert(table).values(**values)
    set_ = {k: (v(stmt) if callable(v) else v) for k, v in update.items()}
    stmt = stmt.on_conflict_do_update(index_elements=conflict_cols, set_=set_)
    for attempt in range(attempts):
        try:
            with engine.begin() as conn:
                conn.execute(stmt)
            return
        except OperationalError:
            if attempt == attempts - 1:
                raise
            logger.warning("Upsert into %s hit OperationalError (attempt %d)", table.name, attempt + 1)
            time.sleep(backoff * (2 ** attempt))

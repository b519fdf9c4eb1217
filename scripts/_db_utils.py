from __future__ import annotations

from contextlib import contextmanager
from collections.abc import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from app.fieldops.db import configure_sqlite


def create_script_engine(db_url: str) -> Engine:
    """Engine for one-off maintenance scripts that run without a Flask app."""
    if db_url.startswith("sqlite"):
        engine = create_engine(db_url, future=True)
        # Same transaction handling as the app engine.
        configure_sqlite(engine)
        return engine
    return create_engine(db_url, future=True, pool_pre_ping=True, pool_recycle=1800)


@contextmanager
def script_session(db_url: str) -> Generator[Session, None, None]:
    """Single session over a throwaway engine. Commits on success, rolls back on error."""
    engine = create_script_engine(db_url)
    s: Session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)()
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()
        engine.dispose()

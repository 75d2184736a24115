"""Database session dependency for FastAPI endpoints."""

from collections.abc import Generator

from sqlalchemy.orm import Session

from protrack.db.session import SessionLocal


def get_db_session() -> Generator[Session, None, None]:
    """Yield a session per request; uncommitted work is rolled back on errors."""

    session = SessionLocal()
    try:
        yield session
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()

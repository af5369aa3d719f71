"""
Console registry database - connection and session management
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from contextlib import contextmanager
from typing import Generator

from pgconsole.config import settings

# ============================================================================
# CONSOLE REGISTRY DATABASE
# Used for: connection targets (encrypted credentials) and app definitions
# Configured via: Environment variables ONLY
# Target databases are never reached through this engine.
# ============================================================================


def _engine_options(url: str) -> dict:
    """Engine options for the registry database."""
    if url.startswith("sqlite"):
        # Sessions are created in the threadpool and used from handlers
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_size": 10,
        "max_overflow": 20,
        "pool_pre_ping": True,
        "connect_args": {"connect_timeout": 10},
    }


app_engine = create_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    **_engine_options(settings.DATABASE_URL)
)

AppSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=app_engine)

Base = declarative_base()


def get_app_db() -> Generator[Session, None, None]:
    """Dependency for registry DB session."""
    db = AppSessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_app_db_context() -> Generator[Session, None, None]:
    """Context manager for registry DB session."""
    db = AppSessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

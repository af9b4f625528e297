"""
Database connection management for the OBE attainment engine.

Provides engine and session management plus a read-only snapshot scope
used by report generation.
"""

import logging
import os
from contextlib import contextmanager
from typing import Generator, Optional

from dotenv import load_dotenv
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

# Load environment variables from .env file if present
load_dotenv()

logger = logging.getLogger(__name__)

# Default connection parameters
DEFAULT_HOST = "localhost"
DEFAULT_PORT = "5432"
DEFAULT_DB = "obe_attainment"
DEFAULT_USER = os.getenv("USER", "postgres")
DEFAULT_PASSWORD = ""

# Global engine instance (created lazily)
_engine: Optional[Engine] = None
_SessionLocal: Optional[sessionmaker] = None


def get_database_url() -> str:
    """
    Get the database connection URL.

    Priority:
    1. DATABASE_URL environment variable
    2. Build from individual components (POSTGRES_HOST, POSTGRES_PORT, etc.)
    3. Default local development URL

    Returns:
        Database connection URL string
    """
    if os.getenv("DATABASE_URL"):
        return os.getenv("DATABASE_URL")

    host = os.getenv("POSTGRES_HOST", DEFAULT_HOST)
    port = os.getenv("POSTGRES_PORT", DEFAULT_PORT)
    database = os.getenv("POSTGRES_DB", DEFAULT_DB)
    user = os.getenv("POSTGRES_USER", DEFAULT_USER)
    password = os.getenv("POSTGRES_PASSWORD", DEFAULT_PASSWORD)

    if password:
        return f"postgresql://{user}:{password}@{host}:{port}/{database}"
    else:
        return f"postgresql://{user}@{host}:{port}/{database}"


def get_engine(database_url: Optional[str] = None, echo: bool = False) -> Engine:
    """
    Get or create the SQLAlchemy engine.

    SQLite URLs (used by the test suite) get SQLAlchemy's default pool;
    everything else gets a bounded connection pool.

    Args:
        database_url: Optional override for database URL
        echo: If True, log all SQL statements (useful for debugging)

    Returns:
        SQLAlchemy Engine instance
    """
    global _engine

    if _engine is None or database_url is not None:
        url = database_url or get_database_url()
        if url.startswith("sqlite"):
            _engine = create_engine(url, echo=echo)
        else:
            _engine = create_engine(
                url,
                echo=echo,
                pool_size=5,  # Maximum number of connections in pool
                max_overflow=10,  # Additional connections beyond pool_size
                pool_timeout=30,  # Seconds to wait for available connection
                pool_recycle=1800,  # Recycle connections after 30 minutes
            )

    return _engine


def get_session_factory(engine: Optional[Engine] = None) -> sessionmaker:
    """
    Get the session factory.

    Args:
        engine: Optional engine instance (uses global if not provided)

    Returns:
        SQLAlchemy sessionmaker instance
    """
    global _SessionLocal

    if _SessionLocal is None or engine is not None:
        eng = engine or get_engine()
        _SessionLocal = sessionmaker(
            bind=eng,
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
        )

    return _SessionLocal


def get_session() -> Session:
    """
    Create a new database session.

    Note: Caller is responsible for closing the session.
    For report generation, use the snapshot_scope() context manager.
    """
    SessionLocal = get_session_factory()
    return SessionLocal()


@contextmanager
def snapshot_scope(engine: Optional[Engine] = None) -> Generator[Session, None, None]:
    """
    Provide a read-only, consistent snapshot for report generation.

    On PostgreSQL the transaction runs as REPEATABLE READ READ ONLY, so every
    query of one report sees marks as of the same instant. The transaction
    is always rolled back; reports never write.

    Usage:
        with snapshot_scope() as session:
            report = ReportAssembler(session).generate_clo_report(42)

    Yields:
        SQLAlchemy Session instance
    """
    session = get_session_factory(engine)() if engine is not None else get_session()
    try:
        if session.get_bind().dialect.name == "postgresql":
            session.connection(execution_options={"isolation_level": "REPEATABLE READ"})
            session.execute(text("SET TRANSACTION READ ONLY"))
        yield session
    finally:
        session.rollback()
        session.close()


def init_db(engine: Optional[Engine] = None) -> None:
    """
    Create all tables defined in models.py if they don't exist.

    Args:
        engine: Optional engine instance (uses global if not provided)
    """
    from .models import Base

    eng = engine or get_engine()
    Base.metadata.create_all(bind=eng)

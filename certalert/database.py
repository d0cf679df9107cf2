"""Database connection and session management."""
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from typing import Generator
import logging

from certalert.config import settings


logger = logging.getLogger(__name__)


def enable_sqlite_savepoints(engine: Engine) -> Engine:
    """Let SQLAlchemy own transaction boundaries on a pysqlite engine.

    pysqlite defers BEGIN until the first DML statement, which breaks
    SAVEPOINT handling. The reminder store relies on SAVEPOINTs for its
    uniqueness guard, so SQLite engines emit BEGIN themselves.

    Args:
        engine: SQLite engine to configure

    Returns:
        The same engine
    """
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


def _create_engine() -> Engine:
    url = settings.database_url
    if url.startswith("sqlite"):
        return enable_sqlite_savepoints(create_engine(
            url,
            connect_args={"check_same_thread": False},
            echo=settings.debug
        ))
    return create_engine(
        url,
        pool_pre_ping=True,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_timeout=settings.db_pool_timeout,
        pool_recycle=settings.db_pool_recycle,
        echo=settings.debug
    )


# Create database engine
engine = _create_engine()

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for ORM models
Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """
    Dependency function to get database session.

    Yields:
        Session: SQLAlchemy database session
    """
    db = SessionLocal()
    try:
        yield db
    except Exception as e:
        logger.error(f"Database session error: {e}")
        db.rollback()
        raise
    finally:
        db.close()


def init_db() -> None:
    """Initialize database by creating all tables."""
    # Register every model on Base.metadata before creating tables
    import certalert.models  # noqa: F401

    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created successfully")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise

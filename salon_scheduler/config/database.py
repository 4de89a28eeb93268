"""Database configuration and connection setup"""
import logging

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from salon_scheduler.config.settings import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()


def _enable_sqlite_write_locking(engine: Engine) -> None:
    """
    Make every SQLite transaction start with BEGIN IMMEDIATE.

    The booking conflict check and the insert that follows it must not
    interleave with another writer. PostgreSQL gets this from the staff row
    lock taken by the booking service; SQLite has no row locks, so the
    database write lock is taken up front instead.
    """

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, _connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(database_url: str, **kwargs) -> Engine:
    """Create an engine for the given URL with the pool settings we run with"""
    if database_url.startswith("sqlite"):
        engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False, "timeout": 30},
            echo=False,
            **kwargs,
        )
        _enable_sqlite_write_locking(engine)
        return engine

    return create_engine(
        database_url,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_pre_ping=True,
        echo=False,
        **kwargs,
    )


engine = build_engine(settings.DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """Database dependency for FastAPI"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables(bind: Engine = engine):
    """Create all scheduling tables (local development and tests)"""
    from salon_scheduler.models import Base

    Base.metadata.create_all(bind=bind)
    logger.info("✅ Database tables created successfully!")


if __name__ == "__main__":
    create_tables()

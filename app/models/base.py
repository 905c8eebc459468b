"""
Base database model and session management
"""
import os
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import NullPool, StaticPool
from sqlalchemy.orm import declarative_base, sessionmaker
from app.config import get_settings
from app.utils.logger import log

settings = get_settings()


def create_db_engine(database_url: str) -> Engine:
    """
    Build an engine for the configured database.

    - "sqlite://" (in-memory) shares one connection so every session sees the same tables
    - relative SQLite file paths are resolved against the working directory
    - anything else gets a small pre-pinged pool
    """
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    if database_url.startswith("sqlite"):
        if database_url.startswith("sqlite:///") and not database_url.startswith("sqlite:////"):
            database_url = "sqlite:///" + os.path.abspath(database_url[len("sqlite:///"):])
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False, "timeout": 30},
            poolclass=NullPool,
        )

    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
        pool_recycle=300,
    )


engine = create_db_engine(settings.database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for all models
Base = declarative_base()


def get_db():
    """Get database session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def check_database(bind: Engine = None) -> bool:
    """True when the database answers a trivial query."""
    try:
        with (bind or engine).connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as e:
        log.error(f"Database check failed: {e}")
        return False


def _add_missing_columns(bind: Engine):
    """create_all() only creates missing tables; new model columns on an
    existing abandoned_carts table are added here."""
    inspector = inspect(bind)
    with bind.connect() as conn:
        for table_name, table in Base.metadata.tables.items():
            if not inspector.has_table(table_name):
                continue
            existing = {c["name"] for c in inspector.get_columns(table_name)}
            for col in table.columns:
                if col.name in existing:
                    continue
                col_type = col.type.compile(dialect=bind.dialect)
                log.info(f"Adding column {table_name}.{col.name} ({col_type})")
                conn.execute(text(f"ALTER TABLE {table_name} ADD COLUMN {col.name} {col_type}"))
        conn.commit()


def init_db(bind: Engine = None):
    """Create tables and add any columns the models gained since."""
    import app.models  # noqa: F401

    bind = bind or engine
    Base.metadata.create_all(bind=bind)
    _add_missing_columns(bind)

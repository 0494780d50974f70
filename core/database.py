# core/database.py — engine, table creation and the request-scoped session
import logging
from typing import Generator

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import SQLModel, Session, create_engine

from core.config import settings

logger = logging.getLogger(__name__)

# ============================================================
# ✅ Engine (PostgreSQL in production, SQLite locally)
# ============================================================
DATABASE_URL = settings.DATABASE_URL

if DATABASE_URL.startswith("sqlite"):
    logger.warning("⚠️ Using local SQLite database: %s", DATABASE_URL)
    # Sync routes run in a threadpool
    connect_args = {"check_same_thread": False}
else:
    logger.info("✅ Using database from environment.")
    connect_args = {}

engine = create_engine(
    DATABASE_URL,
    echo=False,
    pool_pre_ping=True,
    connect_args=connect_args,
)


def create_db_and_tables() -> None:
    """Create profiles, progreso, pagos, notifications and waitlist if missing."""
    import models.models  # noqa: F401

    try:
        SQLModel.metadata.create_all(engine)
        logger.info("✅ All database tables created successfully.")
    except SQLAlchemyError as e:
        logger.error(f"❌ Failed to create tables: {e}")
        raise


def ping_database() -> bool:
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as e:
        logger.error(f"❌ Database ping failed: {e}")
        return False


# ============================================================
# ✅ Dependency: one session per request
# ============================================================
def get_session() -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session

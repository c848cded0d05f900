"""Database engine configuration."""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from passcut.core.config import settings


def create_db_engine(database_url: str | None = None) -> Engine:
    """Create SQLAlchemy engine."""
    url = database_url or settings.DATABASE_URL
    if url.startswith("sqlite"):
        # Single shared connection so in-memory databases survive across sessions
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=False,
        )
    return create_engine(
        url,
        pool_pre_ping=True,  # Verify connections before using
        pool_size=5,
        max_overflow=10,
        echo=False,  # Set to True for SQL query logging
    )


# Global engine instance
engine = create_db_engine()

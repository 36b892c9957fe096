"""Database setup for Kinodeck using SQLModel."""

from sqlalchemy.engine import Engine
from sqlmodel import Field, SQLModel, create_engine

from kinodeck.core.config import get_settings


class StoredValue(SQLModel, table=True):
    """A single key/value blob (the watchlist lives under one key)."""

    __tablename__ = "kv_store"

    key: str = Field(primary_key=True)
    value: str


def make_engine(database_url: str | None = None, echo: bool | None = None) -> Engine:
    """Create an engine for the configured (or given) database URL."""
    settings = get_settings()
    url = database_url or settings.database_url
    connect_args = {}
    if url.startswith("sqlite"):
        connect_args["check_same_thread"] = False  # Needed for SQLite
    return create_engine(
        url,
        echo=settings.debug if echo is None else echo,
        connect_args=connect_args,
    )


def create_db_and_tables(engine: Engine) -> None:
    """Create all database tables."""
    SQLModel.metadata.create_all(engine)

"""Database engine, session factory and table definitions."""

from __future__ import annotations

from datetime import UTC, datetime

import sqlalchemy as sa
from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker


def utcnow() -> datetime:
    """Current time as a naive UTC datetime, the way SQLite stores it."""
    return datetime.now(UTC).replace(tzinfo=None)


class Base(DeclarativeBase):
    """Declarative base for all tables."""


class WeatherCacheRow(Base):
    """Serialized weather snapshot keyed by rounded coordinates."""

    __tablename__ = "weather_cache"

    id: Mapped[str] = mapped_column(sa.Text, primary_key=True)
    data: Mapped[str] = mapped_column(sa.Text, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(sa.DateTime, nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(sa.DateTime, nullable=False, default=utcnow)


class PlaceRow(Base):
    """Gazetteer place or ZIP code tabulation area."""

    __tablename__ = "places"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True)
    name: Mapped[str] = mapped_column(sa.Text, nullable=False)
    state: Mapped[str] = mapped_column(sa.Text, nullable=False)
    zip: Mapped[str | None] = mapped_column(sa.Text, nullable=True)
    latitude: Mapped[float] = mapped_column(sa.Float, nullable=False)
    longitude: Mapped[float] = mapped_column(sa.Float, nullable=False)
    population: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)


class AppInterestRow(Base):
    """Sign-up from the mobile app interest form."""

    __tablename__ = "app_interest"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(sa.Text, nullable=False)
    android: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)
    ios: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)
    country: Mapped[str | None] = mapped_column(sa.Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(sa.DateTime, nullable=False, default=utcnow)


# External-content FTS5 index over places, kept in sync by triggers.
_PLACES_FTS_DDL = (
    """
    CREATE VIRTUAL TABLE IF NOT EXISTS places_fts USING fts5(
        name,
        state,
        zip,
        details,
        content='places',
        content_rowid='id',
        tokenize='porter ascii'
    )
    """,
    """
    CREATE TRIGGER IF NOT EXISTS places_ai AFTER INSERT ON places BEGIN
        INSERT INTO places_fts(rowid, name, state, zip, details)
        VALUES (new.id, new.name, new.state, new.zip,
                new.name || ', ' || new.state || ' ' || COALESCE(new.zip, ''));
    END
    """,
    """
    CREATE TRIGGER IF NOT EXISTS places_ad AFTER DELETE ON places BEGIN
        INSERT INTO places_fts(places_fts, rowid, name, state, zip, details)
        VALUES ('delete', old.id, old.name, old.state, old.zip,
                old.name || ', ' || old.state || ' ' || COALESCE(old.zip, ''));
    END
    """,
    """
    CREATE TRIGGER IF NOT EXISTS places_au AFTER UPDATE ON places BEGIN
        INSERT INTO places_fts(places_fts, rowid, name, state, zip, details)
        VALUES ('delete', old.id, old.name, old.state, old.zip,
                old.name || ', ' || old.state || ' ' || COALESCE(old.zip, ''));
        INSERT INTO places_fts(rowid, name, state, zip, details)
        VALUES (new.id, new.name, new.state, new.zip,
                new.name || ', ' || new.state || ' ' || COALESCE(new.zip, ''));
    END
    """,
)


def create_db_engine(database_url: str) -> Engine:
    """Create an engine for the given URL.

    SQLite connections are shared with the threadpool that runs blocking
    store calls, so same-thread checking is disabled for them.
    """
    connect_args: dict[str, object] = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(database_url, connect_args=connect_args)

    if engine.dialect.name == "sqlite":

        @event.listens_for(engine, "connect")
        def _set_sqlite_pragmas(dbapi_connection, _record) -> None:  # type: ignore[no-untyped-def]
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.close()

    return engine


def init_schema(engine: Engine) -> None:
    """Create tables, and the full-text index where the backend supports it."""
    Base.metadata.create_all(engine)
    if engine.dialect.name != "sqlite":
        return
    with engine.begin() as conn:
        for statement in _PLACES_FTS_DDL:
            conn.exec_driver_sql(statement)


def make_session_factory(engine: Engine) -> sessionmaker:
    """Session factory bound to the engine."""
    return sessionmaker(bind=engine, expire_on_commit=False)

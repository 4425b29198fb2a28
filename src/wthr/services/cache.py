"""Persistent TTL cache for weather snapshots."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

import sqlalchemy as sa
from prometheus_client import Counter
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from wthr.db import WeatherCacheRow, utcnow

# Metrics
cache_hits = Counter("wthr_cache_hits_total", "Total weather cache hits")
cache_misses = Counter("wthr_cache_misses_total", "Total weather cache misses")
cache_errors = Counter(
    "wthr_cache_errors_total",
    "Total weather cache storage failures",
    ["operation"],
)


class CacheError(Exception):
    """Raised when the cache table cannot be read or written."""


@dataclass(frozen=True)
class CacheEntry:
    """A stored snapshot and its freshness window."""

    data: str
    expires_at: datetime
    created_at: datetime


def make_key(lat: float, lon: float) -> str:
    """Cache key for already-rounded coordinates."""
    return f"{lat:.2f},{lon:.2f}"


class WeatherCacheStore:
    """TTL-keyed snapshot storage over the ``weather_cache`` table.

    Expired rows are never returned; they stay in the table until the same
    key is written again or :meth:`purge_expired` runs.
    """

    def __init__(self, session_factory: sessionmaker) -> None:
        """Initialize store with a session factory."""
        self._session_factory = session_factory

    def get(self, lat: float, lon: float) -> CacheEntry | None:
        """Return the live entry for the coordinates, or None on a miss.

        Raises:
            CacheError: If the database cannot be queried
        """
        key = make_key(lat, lon)
        stmt = sa.select(WeatherCacheRow).where(
            WeatherCacheRow.id == key,
            WeatherCacheRow.expires_at > utcnow(),
        )
        try:
            with self._session_factory() as session:
                row = session.execute(stmt).scalar_one_or_none()
        except SQLAlchemyError as e:
            cache_errors.labels(operation="get").inc()
            raise CacheError(f"Failed to read cache entry {key}: {e}") from e

        if row is None:
            cache_misses.inc()
            return None
        cache_hits.inc()
        return CacheEntry(data=row.data, expires_at=row.expires_at, created_at=row.created_at)

    def set(self, lat: float, lon: float, data: str, ttl: timedelta) -> CacheEntry:
        """Upsert the entry for the coordinates, last write wins.

        Raises:
            CacheError: If the database cannot be written
        """
        key = make_key(lat, lon)
        now = utcnow()
        entry = CacheEntry(data=data, expires_at=now + ttl, created_at=now)

        stmt = sqlite_insert(WeatherCacheRow).values(
            id=key,
            data=entry.data,
            expires_at=entry.expires_at,
            created_at=entry.created_at,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[WeatherCacheRow.id],
            set_={
                "data": stmt.excluded.data,
                "expires_at": stmt.excluded.expires_at,
                "created_at": stmt.excluded.created_at,
            },
        )
        try:
            with self._session_factory() as session, session.begin():
                session.execute(stmt)
        except SQLAlchemyError as e:
            cache_errors.labels(operation="set").inc()
            raise CacheError(f"Failed to write cache entry {key}: {e}") from e
        return entry

    def purge_expired(self) -> int:
        """Delete expired rows and return how many were removed."""
        stmt = sa.delete(WeatherCacheRow).where(WeatherCacheRow.expires_at <= utcnow())
        try:
            with self._session_factory() as session, session.begin():
                result = session.execute(stmt)
        except SQLAlchemyError as e:
            cache_errors.labels(operation="purge").inc()
            raise CacheError(f"Failed to purge expired cache entries: {e}") from e
        return result.rowcount or 0

    def is_healthy(self) -> bool:
        """Check if the database answers a trivial query."""
        try:
            with self._session_factory() as session:
                session.execute(sa.text("SELECT 1"))
        except SQLAlchemyError:
            return False
        return True

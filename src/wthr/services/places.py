"""Place search over the imported gazetteer, and app interest sign-ups."""

from __future__ import annotations

import sqlalchemy as sa
import structlog
from sqlalchemy.orm import sessionmaker

from wthr.api.schemas import Place
from wthr.db import AppInterestRow

logger = structlog.get_logger()

SEARCH_LIMIT = 10

_SEARCH_SQL = sa.text(
    """
    SELECT p.name, p.state, p.zip, p.latitude, p.longitude
    FROM places p
    JOIN places_fts ON p.id = places_fts.rowid
    WHERE places_fts MATCH :query
    ORDER BY rank
    LIMIT :limit
    """
)


def sanitize_search_term(term: str) -> str:
    """Keep only characters that are safe inside an FTS5 prefix query.

    ASCII letters and digits survive; hyphens and periods become spaces.
    """
    kept = "".join(
        " " if ch in "-." else ch
        for ch in term
        if (ch.isascii() and ch.isalnum()) or ch in "-."
    )
    return " ".join(kept.split())


def build_match_query(query: str) -> str:
    """Turn free text into an FTS5 prefix query.

    ``San Fran`` becomes ``"San"* AND "Fran"*``. Quoting keeps words such as
    ``OR`` from being read as operators.
    """
    terms = (sanitize_search_term(term) for term in query.split())
    return " AND ".join(f'"{term}"*' for term in terms if term)


class PlaceService:
    """Full-text place lookup and app interest storage."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def search_places(self, query: str) -> list[Place]:
        """Return up to ten places matching every term of the query by prefix."""
        match = build_match_query(query)
        if not match:
            return []

        with self._session_factory() as session:
            rows = session.execute(_SEARCH_SQL, {"query": match, "limit": SEARCH_LIMIT})
            return [
                Place(
                    name=row.name,
                    state=row.state,
                    zip=row.zip or "",
                    latitude=row.latitude,
                    longitude=row.longitude,
                )
                for row in rows
            ]

    def save_app_interest(self, email: str, android: bool, ios: bool, country: str) -> None:
        """Record an app interest sign-up."""
        with self._session_factory() as session, session.begin():
            session.add(
                AppInterestRow(email=email, android=android, ios=ios, country=country or None)
            )
        logger.info("Saved app interest", android=android, ios=ios, country=country)

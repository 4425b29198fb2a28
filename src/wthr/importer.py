"""One-shot importer for the Census gazetteer place and ZIP code files.

Downloads the national places and ZCTA archives, then loads every row into
the ``places`` table, which the search endpoint queries through its FTS5
index.
"""

from __future__ import annotations

import argparse
import csv
import io
import zipfile
from collections.abc import Callable, Iterable, Iterator
from pathlib import Path

import httpx
import structlog
from sqlalchemy import insert
from sqlalchemy.orm import Session

from wthr.config import get_settings
from wthr.db import PlaceRow, create_db_engine, init_schema, make_session_factory
from wthr.middleware.logging import configure_logging

logger = structlog.get_logger()

GAZETTEER_BASE_URL = "https://www2.census.gov/geo/docs/maps-data/data/gazetteer/2023_Gazetteer"
PLACES_URL = f"{GAZETTEER_BASE_URL}/2023_Gaz_place_national.zip"
ZCTAS_URL = f"{GAZETTEER_BASE_URL}/2023_Gaz_zcta_national.zip"

DOWNLOAD_TIMEOUT_SECONDS = 120.0
BATCH_SIZE = 1000

NAME_SUFFIXES = (" city", " town", " village", " CDP", " borough")

PlaceRecord = dict[str, object]
RowParser = Callable[[list[str]], PlaceRecord | None]


class GazetteerError(Exception):
    """Raised when a gazetteer archive cannot be downloaded or read."""


def clean_place_name(name: str) -> str:
    """Strip the legal/statistical area suffix from a place name."""
    for suffix in NAME_SUFFIXES:
        if name.endswith(suffix):
            return name[: -len(suffix)]
    return name


def parse_coordinates(lat_text: str, lon_text: str) -> tuple[float, float]:
    """Parse and range-check a latitude/longitude pair.

    Raises:
        ValueError: If either value is not a number or is out of range
    """
    lat = float(lat_text)
    if not -90 <= lat <= 90:
        raise ValueError(f"latitude out of range: {lat}")
    lon = float(lon_text)
    if not -180 <= lon <= 180:
        raise ValueError(f"longitude out of range: {lon}")
    return lat, lon


def parse_place_row(record: list[str]) -> PlaceRecord | None:
    """Parse a row of the national places file.

    Columns: USPS, GEOID, ANSICODE, NAME, LSAD, FUNCSTAT, ALAND, AWATER,
    ALAND_SQMI, AWATER_SQMI, INTPTLAT, INTPTLONG.
    """
    if len(record) < 12:
        return None
    name = clean_place_name(record[3].strip())
    try:
        lat, lon = parse_coordinates(record[10].strip(), record[11].strip())
    except ValueError as e:
        logger.warning("Skipping place with bad coordinates", name=name, error=str(e))
        return None
    return {"name": name, "state": record[0].strip(), "zip": None, "latitude": lat, "longitude": lon}


def parse_zcta_row(record: list[str]) -> PlaceRecord | None:
    """Parse a row of the national ZCTA file.

    Columns: GEOID, ALAND, AWATER, ALAND_SQMI, AWATER_SQMI, INTPTLAT, INTPTLONG.
    """
    if len(record) < 7:
        return None
    zip_code = record[0].strip()
    try:
        lat, lon = parse_coordinates(record[5].strip(), record[6].strip())
    except ValueError as e:
        logger.warning("Skipping ZIP with bad coordinates", zip=zip_code, error=str(e))
        return None
    return {"name": zip_code, "state": "", "zip": zip_code, "latitude": lat, "longitude": lon}


def parse_gazetteer(lines: Iterable[str], parse_row: RowParser) -> Iterator[PlaceRecord]:
    """Yield parsed records from a tab-separated gazetteer file, skipping its header."""
    reader = csv.reader(lines, delimiter="\t", quoting=csv.QUOTE_NONE)
    next(reader, None)
    for record in reader:
        parsed = parse_row(record)
        if parsed is not None:
            yield parsed


def download(url: str, destination: Path, user_agent: str) -> None:
    """Stream a URL to a file, leaving no partial file behind on failure."""
    partial = destination.with_suffix(destination.suffix + ".part")
    try:
        with httpx.stream(
            "GET",
            url,
            headers={"User-Agent": user_agent},
            timeout=DOWNLOAD_TIMEOUT_SECONDS,
            follow_redirects=True,
        ) as response:
            response.raise_for_status()
            with partial.open("wb") as out:
                for chunk in response.iter_bytes():
                    out.write(chunk)
    except httpx.HTTPError as e:
        partial.unlink(missing_ok=True)
        raise GazetteerError(f"Failed to download {url}: {e}") from e
    partial.replace(destination)


def insert_records(session: Session, records: Iterable[PlaceRecord]) -> int:
    """Insert records in batches and return how many were written."""
    count = 0
    batch: list[PlaceRecord] = []
    for record in records:
        batch.append(record)
        if len(batch) >= BATCH_SIZE:
            session.execute(insert(PlaceRow), batch)
            count += len(batch)
            batch = []
            logger.info("Import progress", rows=count)
    if batch:
        session.execute(insert(PlaceRow), batch)
        count += len(batch)
    return count


def import_dataset(
    session: Session,
    url: str,
    name: str,
    data_dir: Path,
    parse_row: RowParser,
    user_agent: str,
) -> int:
    """Download (unless already present) and import one gazetteer archive."""
    zip_path = data_dir / f"{name}.zip"
    if zip_path.exists():
        logger.info("Using existing archive", dataset=name, path=str(zip_path))
    else:
        logger.info("Downloading archive", dataset=name, url=url)
        download(url, zip_path, user_agent)

    logger.info("Processing archive", dataset=name)
    try:
        with zipfile.ZipFile(zip_path) as archive:
            member = next((m for m in archive.namelist() if m.endswith(".txt")), None)
            if member is None:
                raise GazetteerError(f"No .txt file found in {zip_path}")
            with archive.open(member) as raw:
                text = io.TextIOWrapper(raw, encoding="utf-8", errors="replace", newline="")
                count = insert_records(session, parse_gazetteer(text, parse_row))
    except zipfile.BadZipFile as e:
        raise GazetteerError(f"Corrupt archive {zip_path}: {e}") from e

    logger.info("Finished importing dataset", dataset=name, rows=count)
    return count


def main(argv: list[str] | None = None) -> int:
    """Command-line entry point."""
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Import Census gazetteer places and ZIP codes")
    parser.add_argument("--data-dir", default=settings.geo_data_dir, help="Archive download directory")
    parser.add_argument("--database-url", default=settings.database_url, help="SQLAlchemy database URL")
    args = parser.parse_args(argv)

    configure_logging(settings)

    data_dir = Path(args.data_dir)
    data_dir.mkdir(parents=True, exist_ok=True)

    engine = create_db_engine(args.database_url)
    init_schema(engine)
    session_factory = make_session_factory(engine)

    datasets: list[tuple[str, str, RowParser]] = [
        (PLACES_URL, "places", parse_place_row),
        (ZCTAS_URL, "zctas", parse_zcta_row),
    ]
    try:
        for url, name, parse_row in datasets:
            with session_factory() as session, session.begin():
                import_dataset(session, url, name, data_dir, parse_row, settings.nws_user_agent)
    except GazetteerError as e:
        logger.error("Import failed", error=str(e))
        return 1
    finally:
        engine.dispose()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

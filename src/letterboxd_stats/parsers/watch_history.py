"""Parser for Letterboxd watch-history exports (ratings.csv, diary.csv, watched.csv)."""

from __future__ import annotations

import logging
import re
from pathlib import Path

from letterboxd_stats.models import RawWatchRecord

logger = logging.getLogger(__name__)

DEFAULT_DELIMITER = ","

# Normalized column names, in order of preference
TITLE_COLUMNS = ("name", "title")
DATE_COLUMNS = ("watcheddate", "date")
YEAR_COLUMN = "year"
RATING_COLUMN = "rating"
REWATCH_COLUMN = "rewatch"
REVIEW_COLUMN = "review"
URI_COLUMN = "letterboxduri"

_LEADING_FLOAT = re.compile(r"^\s*[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")
_LEADING_INT = re.compile(r"^\s*[+-]?\d+")


class ParseError(ValueError):
    """Raised when the export has no usable header line."""


class WatchHistoryReadError(RuntimeError):
    """Raised when the export file cannot be read."""


def split_line(line: str, delimiter: str = DEFAULT_DELIMITER) -> list[str]:
    """Split one line, honouring double-quoted fields.

    Every double quote toggles the quoted state and is dropped; the delimiter
    only splits outside quotes. Values are trimmed.
    """
    values: list[str] = []
    current: list[str] = []
    in_quotes = False

    for char in line:
        if char == '"':
            in_quotes = not in_quotes
        elif char == delimiter and not in_quotes:
            values.append("".join(current).strip())
            current = []
        else:
            current.append(char)

    values.append("".join(current).strip())
    return values


def normalize_header(name: str) -> str:
    return re.sub(r"\s+", "", name.replace('"', "")).lower()


def parse_float(value: str | None) -> float:
    """Parse the leading number of ``value``; anything unparseable is 0."""
    if not value:
        return 0.0
    match = _LEADING_FLOAT.match(value)
    if not match:
        return 0.0
    try:
        return float(match.group(0))
    except ValueError:  # pragma: no cover - regex only admits float literals
        return 0.0


def parse_int(value: str | None) -> int:
    if not value:
        return 0
    match = _LEADING_INT.match(value)
    return int(match.group(0)) if match else 0


def parse_watch_history(text: str, delimiter: str = DEFAULT_DELIMITER) -> list[RawWatchRecord]:
    """Turn the raw export text into watch records, one per non-blank data line."""

    lines = text.split("\n")
    header_line = lines[0].lstrip("\ufeff").strip() if lines else ""
    if not header_line:
        raise ParseError("Missing header line in watch history export")

    headers = [normalize_header(name) for name in split_line(header_line, delimiter)]
    if not any(headers):
        raise ParseError("Header line in watch history export has no column names")
    logger.debug("Headers found: %s", headers)

    records: list[RawWatchRecord] = []
    for line in lines[1:]:
        line = line.strip()
        if not line:
            continue

        values = split_line(line, delimiter)
        columns = {
            header: values[index] if index < len(values) else ""
            for index, header in enumerate(headers)
            if header
        }
        records.append(_build_record(columns))

    logger.info("Parsed %d watch records", len(records))
    return records


def read_watch_history(path: Path, delimiter: str = DEFAULT_DELIMITER) -> list[RawWatchRecord]:
    """Read and parse an export file from disk."""
    try:
        text = path.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as exc:
        raise WatchHistoryReadError(f"Unable to read {path}: {exc}") from exc
    return parse_watch_history(text, delimiter)


def _build_record(columns: dict[str, str]) -> RawWatchRecord:
    review = columns.get(REVIEW_COLUMN) or None
    uri = columns.get(URI_COLUMN) or None
    return RawWatchRecord(
        title=_first_present(columns, TITLE_COLUMNS),
        year=parse_int(columns.get(YEAR_COLUMN)),
        rating=parse_float(columns.get(RATING_COLUMN)),
        date_watched=_first_present(columns, DATE_COLUMNS),
        rewatch=columns.get(REWATCH_COLUMN, "").lower() in {"yes", "true", "1"},
        review=review,
        letterboxd_uri=uri,
        columns=columns,
    )


def _first_present(columns: dict[str, str], candidates: tuple[str, ...]) -> str:
    for name in candidates:
        value = columns.get(name)
        if value:
            return value
    return ""


__all__ = [
    "ParseError",
    "WatchHistoryReadError",
    "normalize_header",
    "parse_float",
    "parse_int",
    "parse_watch_history",
    "read_watch_history",
    "split_line",
]

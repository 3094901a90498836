from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime

from pydantic import BaseModel, Field

UNKNOWN_DIRECTOR = "N/A"
UNKNOWN_COUNTRY = "Desconhecido"


def parse_watch_date(value: str | None) -> date | None:
    """Parse an ISO watch date, returning None for empty or malformed values."""
    if not value:
        return None
    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return None


class RawWatchRecord(BaseModel):
    """One row of a Letterboxd export, as parsed."""

    title: str = ""
    year: int = 0
    rating: float = 0.0
    date_watched: str = ""
    rewatch: bool = False
    review: str | None = None
    letterboxd_uri: str | None = None
    columns: dict[str, str] = Field(default_factory=dict)

    model_config = {
        "extra": "ignore",
    }


class EnrichedMovie(BaseModel):
    """A watch record merged with catalog metadata.

    Serialized with camelCase aliases so a persisted session reads the same
    way the dashboard stored it.
    """

    title: str
    release_year: int = Field(default=0, alias="year")
    rating: float = 0.0
    date_watched: str = Field(default="", alias="dateWatched")
    external_id: int | None = Field(default=None, alias="tmdbId")
    director: str = UNKNOWN_DIRECTOR
    cast: tuple[str, ...] = ()
    genres: tuple[str, ...] = ()
    runtime: int = 0
    country: str = UNKNOWN_COUNTRY
    poster_path: str | None = Field(default=None, alias="posterPath")
    overview: str = ""
    rewatch: bool = False
    review: str | None = None
    letterboxd_uri: str | None = Field(default=None, alias="letterboxdUri")

    model_config = {
        "populate_by_name": True,
        "frozen": True,
        "extra": "ignore",
    }

    @classmethod
    def from_record(cls, record: RawWatchRecord) -> EnrichedMovie:
        """Build an unenriched movie carrying only the user's data."""
        return cls(
            title=record.title,
            release_year=record.year,
            rating=record.rating,
            date_watched=record.date_watched,
            rewatch=record.rewatch,
            review=record.review,
            letterboxd_uri=record.letterboxd_uri,
        )

    @property
    def is_enriched(self) -> bool:
        return self.external_id is not None

    @property
    def watched_on(self) -> date | None:
        return parse_watch_date(self.date_watched)

    def director_names(self) -> list[str]:
        """Split a comma-joined director credit into individual names.

        The unresolved placeholder is not a name and yields nothing.
        """
        if not self.director or self.director == UNKNOWN_DIRECTOR:
            return []
        return [name for name in self.director.split(", ") if name]

    def matches(self, query: str) -> bool:
        """Case-insensitive substring match over title, director and cast."""
        needle = query.lower()
        if needle in self.title.lower() or needle in self.director.lower():
            return True
        return any(needle in actor.lower() for actor in self.cast)


@dataclass(frozen=True)
class EnrichmentProgress:
    """Progress notification emitted after each processed record."""

    current: int
    total: int
    title: str

    @property
    def fraction(self) -> float:
        return self.current / self.total if self.total else 1.0


__all__ = [
    "EnrichedMovie",
    "EnrichmentProgress",
    "RawWatchRecord",
    "UNKNOWN_COUNTRY",
    "UNKNOWN_DIRECTOR",
    "parse_watch_date",
]

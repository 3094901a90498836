"""Enrichment service matching watch records against the TMDB catalog."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from letterboxd_stats.clients.tmdb import TmdbClient
from letterboxd_stats.models import (
    UNKNOWN_COUNTRY,
    UNKNOWN_DIRECTOR,
    EnrichedMovie,
    EnrichmentProgress,
    RawWatchRecord,
)

logger = logging.getLogger(__name__)

MAX_CAST = 30

ProgressCallback = Callable[[EnrichmentProgress], None]


class EnrichmentItemFailure(RuntimeError):
    """A single record could not be enriched; the record is kept with defaults."""

    def __init__(self, title: str, reason: str) -> None:
        self.title = title
        self.reason = reason
        super().__init__(f"{title}: {reason}")


class EnrichmentService:
    """Drives search, disambiguation, detail fetch and merge for each record."""

    def __init__(self, client: TmdbClient, *, max_cast: int = MAX_CAST) -> None:
        self._client = client
        self._max_cast = max_cast
        self.failures: list[EnrichmentItemFailure] = []
        self.unmatched: list[str] = []

    async def enrich(
        self,
        records: Sequence[RawWatchRecord],
        on_progress: ProgressCallback | None = None,
    ) -> list[EnrichedMovie]:
        """
        Enrich every record, one at a time, in input order.

        Returns one EnrichedMovie per record. A record whose lookup fails at any
        step is returned with only the user's data and default metadata.
        """
        self.failures = []
        self.unmatched = []
        total = len(records)
        enriched: list[EnrichedMovie] = []

        logger.info("[ENRICH] Processing %d movies", total)
        for index, record in enumerate(records, start=1):
            try:
                movie = await self._enrich_single(record)
            except Exception as exc:
                failure = (
                    exc
                    if isinstance(exc, EnrichmentItemFailure)
                    else EnrichmentItemFailure(record.title, repr(exc))
                )
                logger.warning("[ENRICH] Failed to enrich %s", failure)
                self.failures.append(failure)
                movie = EnrichedMovie.from_record(record)

            enriched.append(movie)
            if on_progress is not None:
                on_progress(EnrichmentProgress(current=index, total=total, title=record.title))

        logger.info(
            "[ENRICH] Done: %d movies, %d unmatched, %d failures",
            len(enriched),
            len(self.unmatched),
            len(self.failures),
        )
        return enriched

    async def _enrich_single(self, record: RawWatchRecord) -> EnrichedMovie:
        candidates = await self._client.search_movie(record.title, record.year)
        match = pick_best_match(candidates, record.title)
        if match is None or match.get("id") is None:
            logger.info("[ENRICH] No TMDB results for: %s", record.title)
            self.unmatched.append(record.title)
            return EnrichedMovie.from_record(record)

        details = await self._client.get_movie_details(match["id"])
        if not details:
            logger.info("[ENRICH] No TMDB details for: %s (id=%s)", record.title, match["id"])
            return EnrichedMovie.from_record(record)

        movie = merge_details(record, details, max_cast=self._max_cast)
        logger.debug("[ENRICH] %s -> tmdb:%s, director %s", record.title, movie.external_id, movie.director)
        return movie


def pick_best_match(
    candidates: Sequence[Mapping[str, Any]], title: str
) -> Mapping[str, Any] | None:
    """Prefer an exact case-insensitive title match, else the catalog's first result."""
    if not candidates:
        return None
    wanted = title.lower()
    for candidate in candidates:
        candidate_title = candidate.get("title")
        if isinstance(candidate_title, str) and candidate_title.lower() == wanted:
            return candidate
    return candidates[0]


def merge_details(
    record: RawWatchRecord,
    details: Mapping[str, Any],
    *,
    max_cast: int = MAX_CAST,
) -> EnrichedMovie:
    """Build an EnrichedMovie from a watch record and a TMDB detail payload."""
    credits = details.get("credits") or {}
    if not isinstance(credits, Mapping):
        raise EnrichmentItemFailure(record.title, "credits payload is not an object")
    crew = _list_of_mappings(record.title, credits.get("crew"), "crew")
    cast = _list_of_mappings(record.title, credits.get("cast"), "cast")
    genres = _list_of_mappings(record.title, details.get("genres"), "genres")
    countries = _list_of_mappings(
        record.title, details.get("production_countries"), "production_countries"
    )

    director = next(
        (person.get("name") for person in crew if person.get("job") == "Director"),
        None,
    )
    country = countries[0].get("name") if countries else None

    return EnrichedMovie(
        title=record.title,
        release_year=record.year,
        rating=record.rating,
        date_watched=record.date_watched,
        rewatch=record.rewatch,
        review=record.review,
        letterboxd_uri=record.letterboxd_uri,
        external_id=details.get("id"),
        director=director or UNKNOWN_DIRECTOR,
        cast=tuple(str(person.get("name") or "") for person in cast[:max_cast]),
        genres=tuple(str(genre.get("name") or "") for genre in genres),
        runtime=details.get("runtime") or 0,
        country=country or UNKNOWN_COUNTRY,
        poster_path=details.get("poster_path") or None,
        overview=details.get("overview") or "",
    )


def _list_of_mappings(title: str, value: Any, label: str) -> list[Mapping[str, Any]]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise EnrichmentItemFailure(title, f"{label} payload is not a list")
    return [item for item in value if isinstance(item, Mapping)]


__all__ = [
    "EnrichmentItemFailure",
    "EnrichmentService",
    "MAX_CAST",
    "merge_details",
    "pick_best_match",
]

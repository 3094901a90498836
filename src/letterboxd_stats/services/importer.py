"""Import flow: export file to persisted, aggregated session."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from letterboxd_stats.parsers import read_watch_history
from letterboxd_stats.services.enrichment import (
    EnrichmentItemFailure,
    EnrichmentService,
    ProgressCallback,
)
from letterboxd_stats.services.session import SessionStore
from letterboxd_stats.services.state import AppState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImportResult:
    """Outcome of an import run."""

    state: AppState
    saved: bool
    failures: list[EnrichmentItemFailure] = field(default_factory=list)
    unmatched: list[str] = field(default_factory=list)

    @property
    def total_movies(self) -> int:
        return len(self.state.movies)


class ImportService:
    """Coordinates parsing, enrichment, aggregation and persistence."""

    def __init__(self, enrichment: EnrichmentService, store: SessionStore) -> None:
        self._enrichment = enrichment
        self._store = store

    async def import_file(
        self,
        path: Path,
        on_progress: ProgressCallback | None = None,
    ) -> ImportResult:
        """Run the full import. Read and parse errors propagate before any lookup."""
        records = read_watch_history(path)
        logger.info("Importing %d records from %s", len(records), path)

        movies = await self._enrichment.enrich(records, on_progress=on_progress)
        state = AppState.from_movies(movies)
        logger.info(
            "Import complete: %d movies, %d directors, %d actors, %d genres",
            len(state.movies),
            len(state.index.directors),
            len(state.index.actors),
            len(state.index.genres),
        )

        saved = self._store.save(state.movies)
        return ImportResult(
            state=state,
            saved=saved,
            failures=list(self._enrichment.failures),
            unmatched=list(self._enrichment.unmatched),
        )

    def restore(self) -> AppState | None:
        return restore_state(self._store)


def restore_state(store: SessionStore) -> AppState | None:
    """Rebuild state from the session slot, skipping enrichment; None if absent."""
    movies = store.load()
    if movies is None:
        return None
    return AppState.from_movies(movies)


__all__ = ["ImportResult", "ImportService", "restore_state"]

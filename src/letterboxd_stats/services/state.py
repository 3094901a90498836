from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from letterboxd_stats.models import AggregateIndex, EnrichedMovie, SummaryStats
from letterboxd_stats.services.aggregation import build_indices, summarize


@dataclass(frozen=True)
class AppState:
    """The current movie set together with the views derived from it.

    Built once per import or restore and handed to whoever needs it; a new
    movie set means a new AppState.
    """

    movies: tuple[EnrichedMovie, ...] = ()
    index: AggregateIndex = field(default_factory=AggregateIndex)
    stats: SummaryStats = field(default_factory=SummaryStats)

    @classmethod
    def from_movies(cls, movies: Sequence[EnrichedMovie]) -> AppState:
        movies = tuple(movies)
        return cls(movies=movies, index=build_indices(movies), stats=summarize(movies))


__all__ = ["AppState"]

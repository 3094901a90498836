"""Derived statistics over an enriched movie set.

Everything here is a pure function of the movie list: indices are rebuilt in
full whenever the set changes, and nothing is mutated after it is returned.
The canonical watch date is ``EnrichedMovie.date_watched``.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date

from letterboxd_stats.models import (
    AggregateIndex,
    EnrichedMovie,
    GenreAggregate,
    PersonAggregate,
    SummaryStats,
    YearAggregate,
)


@dataclass
class _Tally:
    """Running sums for one name while folding over the movie list."""

    count: int = 0
    total_rating: float = 0.0
    movies: list[EnrichedMovie] = field(default_factory=list)
    first_movie: EnrichedMovie | None = None
    first_date: date | None = None
    last_movie: EnrichedMovie | None = None
    last_date: date | None = None

    def add(self, movie: EnrichedMovie, watched_on: date | None) -> None:
        self.count += 1
        self.total_rating += movie.rating
        self.movies.append(movie)
        if watched_on is None:
            return
        if self.first_date is None or watched_on < self.first_date:
            self.first_movie, self.first_date = movie, watched_on
        if self.last_date is None or watched_on > self.last_date:
            self.last_movie, self.last_date = movie, watched_on

    def to_person(self, name: str) -> PersonAggregate:
        return PersonAggregate(
            name=name,
            count=self.count,
            total_rating=self.total_rating,
            average_rating=self.total_rating / self.count,
            movies=tuple(self.movies),
            first_movie=self.first_movie,
            last_movie=self.last_movie,
        )

    def to_genre(self, name: str) -> GenreAggregate:
        return GenreAggregate(
            name=name,
            count=self.count,
            total_rating=self.total_rating,
            average_rating=self.total_rating / self.count,
            movies=tuple(self.movies),
        )


def build_indices(movies: Iterable[EnrichedMovie]) -> AggregateIndex:
    """Group movies by director, actor and genre."""
    directors: dict[str, _Tally] = {}
    actors: dict[str, _Tally] = {}
    genres: dict[str, _Tally] = {}

    for movie in movies:
        watched_on = movie.watched_on
        for name in movie.director_names():
            directors.setdefault(name, _Tally()).add(movie, watched_on)
        for name in movie.cast:
            if name:
                actors.setdefault(name, _Tally()).add(movie, watched_on)
        for name in movie.genres:
            if name:
                genres.setdefault(name, _Tally()).add(movie, None)

    return AggregateIndex(
        directors={name: tally.to_person(name) for name, tally in directors.items()},
        actors={name: tally.to_person(name) for name, tally in actors.items()},
        genres={name: tally.to_genre(name) for name, tally in genres.items()},
    )


def merge_indices(left: AggregateIndex, right: AggregateIndex) -> AggregateIndex:
    """Combine indices built from two disjoint movie sets."""
    return left.merge(right)


def sort_by_watch_date(movies: Sequence[EnrichedMovie]) -> list[EnrichedMovie]:
    """Ascending by watch date; undated movies go last in their original order."""
    dated = [(movie.watched_on, index, movie) for index, movie in enumerate(movies)]
    dated.sort(key=lambda item: (item[0] is None, item[0] or date.min, item[1]))
    return [movie for _, _, movie in dated]


def summarize(movies: Sequence[EnrichedMovie]) -> SummaryStats:
    if not movies:
        return SummaryStats()

    total = len(movies)
    total_runtime = sum(movie.runtime for movie in movies)
    years = [movie.release_year for movie in movies if movie.release_year > 0]

    return SummaryStats(
        total_movies=total,
        average_rating=sum(movie.rating for movie in movies) / total,
        total_runtime=total_runtime,
        average_runtime=total_runtime / total,
        year_range=max(years) - min(years) if years else 0,
        sorted_movies=tuple(sort_by_watch_date(movies)),
    )


def ratings_by_year(movies: Iterable[EnrichedMovie]) -> dict[int, YearAggregate]:
    """Average rating per release year, ascending by year. Year 0 is skipped."""
    tallies: dict[int, _Tally] = {}
    for movie in movies:
        if movie.release_year > 0:
            tallies.setdefault(movie.release_year, _Tally()).add(movie, None)

    return {
        year: YearAggregate(
            year=year,
            count=tally.count,
            total_rating=tally.total_rating,
            average_rating=tally.total_rating / tally.count,
            movies=tuple(tally.movies),
        )
        for year, tally in sorted(tallies.items())
    }


def movies_by_month(movies: Iterable[EnrichedMovie]) -> list[int]:
    """Twelve watch counts, January first. Undated movies are not counted."""
    counts = [0] * 12
    for movie in movies:
        watched_on = movie.watched_on
        if watched_on is not None:
            counts[watched_on.month - 1] += 1
    return counts


__all__ = [
    "build_indices",
    "merge_indices",
    "movies_by_month",
    "ratings_by_year",
    "sort_by_watch_date",
    "summarize",
]

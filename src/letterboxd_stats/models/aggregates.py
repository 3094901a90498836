from __future__ import annotations

from dataclasses import dataclass, field

from letterboxd_stats.models.movie import EnrichedMovie


def _earliest(a: EnrichedMovie | None, b: EnrichedMovie | None) -> EnrichedMovie | None:
    if a is None or b is None:
        return a or b
    return b if b.watched_on < a.watched_on else a


def _latest(a: EnrichedMovie | None, b: EnrichedMovie | None) -> EnrichedMovie | None:
    if a is None or b is None:
        return a or b
    return b if b.watched_on > a.watched_on else a


@dataclass(frozen=True)
class GenreAggregate:
    """Grouped statistics for one genre."""

    name: str
    count: int
    total_rating: float
    average_rating: float
    movies: tuple[EnrichedMovie, ...]

    def merge(self, other: GenreAggregate) -> GenreAggregate:
        """Combine two aggregates for the same genre into a new one."""
        _ensure_same_name(self.name, other.name)
        count = self.count + other.count
        total = self.total_rating + other.total_rating
        return GenreAggregate(
            name=self.name,
            count=count,
            total_rating=total,
            average_rating=total / count,
            movies=self.movies + other.movies,
        )


@dataclass(frozen=True)
class PersonAggregate:
    """Grouped statistics for one director or actor.

    ``first_movie`` and ``last_movie`` only consider credited movies whose
    watch date parses; both are None when none of them does.
    """

    name: str
    count: int
    total_rating: float
    average_rating: float
    movies: tuple[EnrichedMovie, ...]
    first_movie: EnrichedMovie | None = None
    last_movie: EnrichedMovie | None = None

    def merge(self, other: PersonAggregate) -> PersonAggregate:
        """Combine two aggregates for the same person into a new one."""
        _ensure_same_name(self.name, other.name)
        count = self.count + other.count
        total = self.total_rating + other.total_rating
        return PersonAggregate(
            name=self.name,
            count=count,
            total_rating=total,
            average_rating=total / count,
            movies=self.movies + other.movies,
            first_movie=_earliest(self.first_movie, other.first_movie),
            last_movie=_latest(self.last_movie, other.last_movie),
        )


@dataclass(frozen=True)
class AggregateIndex:
    """Directors, actors and genres keyed by name, in first-credited order."""

    directors: dict[str, PersonAggregate] = field(default_factory=dict)
    actors: dict[str, PersonAggregate] = field(default_factory=dict)
    genres: dict[str, GenreAggregate] = field(default_factory=dict)

    def group(self, kind: str) -> dict[str, PersonAggregate] | dict[str, GenreAggregate]:
        if kind == "directors":
            return self.directors
        if kind == "actors":
            return self.actors
        if kind == "genres":
            return self.genres
        raise KeyError(f"Unknown group '{kind}'. Expected directors, actors or genres.")

    def merge(self, other: AggregateIndex) -> AggregateIndex:
        return AggregateIndex(
            directors=_merge_groups(self.directors, other.directors),
            actors=_merge_groups(self.actors, other.actors),
            genres=_merge_groups(self.genres, other.genres),
        )


@dataclass(frozen=True)
class YearAggregate:
    """Ratings of the movies released in one year."""

    year: int
    count: int
    total_rating: float
    average_rating: float
    movies: tuple[EnrichedMovie, ...]


@dataclass(frozen=True)
class SummaryStats:
    total_movies: int = 0
    average_rating: float = 0.0
    total_runtime: int = 0
    average_runtime: float = 0.0
    year_range: int = 0
    sorted_movies: tuple[EnrichedMovie, ...] = ()


def _merge_groups(left: dict, right: dict) -> dict:
    merged = dict(left)
    for name, aggregate in right.items():
        merged[name] = merged[name].merge(aggregate) if name in merged else aggregate
    return merged


def _ensure_same_name(left: str, right: str) -> None:
    if left != right:
        raise ValueError(f"Cannot merge aggregates for different names: {left!r} and {right!r}")


GROUP_KINDS = ("directors", "actors", "genres")

__all__ = [
    "AggregateIndex",
    "GROUP_KINDS",
    "GenreAggregate",
    "PersonAggregate",
    "SummaryStats",
    "YearAggregate",
]

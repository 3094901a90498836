"""Read-only queries served to the presentation layer."""

from __future__ import annotations

import math
import statistics
from dataclasses import dataclass, field

from letterboxd_stats.clients.tmdb import poster_url
from letterboxd_stats.models import (
    EnrichedMovie,
    GenreAggregate,
    PersonAggregate,
    YearAggregate,
)
from letterboxd_stats.services.aggregation import movies_by_month, ratings_by_year
from letterboxd_stats.services.state import AppState

RATING_CEILING = 5.0

RUNTIME_BANDS: tuple[tuple[str, int | None], ...] = (
    ("<90m", 89),
    ("90-120m", 120),
    ("120-150m", 150),
    ("150-180m", 180),
    (">180m", None),
)

MONTH_LABELS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

CHART_CATEGORIES = (
    "summary",
    "rating-distribution",
    "directors",
    "actors",
    "genres",
    "rating-by-year",
    "runtime",
    "movies-by-month",
    "rating-vs-year",
)


class UnknownChartError(KeyError):
    """Raised for a chart category the facade does not serve."""


@dataclass(frozen=True)
class MovieDetails:
    movie: EnrichedMovie
    poster_url: str | None


@dataclass(frozen=True)
class PersonDetails:
    name: str
    kind: str
    count: int
    average_rating: float
    movies: list[EnrichedMovie]
    best_movie: EnrichedMovie
    worst_movie: EnrichedMovie
    rating_distribution: dict[int, int]
    first_movie: EnrichedMovie | None = None
    last_movie: EnrichedMovie | None = None


@dataclass(frozen=True)
class SummaryBundle:
    total_movies: int = 0
    average_rating: float = 0.0
    total_runtime: int = 0
    average_runtime: float = 0.0
    year_range: int = 0
    first_movie: EnrichedMovie | None = None
    last_movie: EnrichedMovie | None = None
    highest_rating: float | None = None
    highest_rated: list[EnrichedMovie] = field(default_factory=list)
    lowest_rating: float | None = None
    lowest_rated: list[EnrichedMovie] = field(default_factory=list)


@dataclass(frozen=True)
class RatingDistributionBundle:
    mean: float = 0.0
    median: float = 0.0
    modes: list[float] = field(default_factory=list)
    std_dev: float = 0.0
    histogram: dict[str, int] = field(default_factory=dict)
    top_rated: list[EnrichedMovie] = field(default_factory=list)
    lowest_rating: float | None = None
    lowest_rated: list[EnrichedMovie] = field(default_factory=list)


@dataclass(frozen=True)
class PeopleBundle:
    kind: str
    total: int
    ranking: list[PersonAggregate]


@dataclass(frozen=True)
class GenresBundle:
    total: int = 0
    favorite: GenreAggregate | None = None
    best_in_favorite: EnrichedMovie | None = None
    worst_in_favorite: EnrichedMovie | None = None
    ranking: list[GenreAggregate] = field(default_factory=list)


@dataclass(frozen=True)
class RatingByYearBundle:
    best_year: YearAggregate | None = None
    worst_year: YearAggregate | None = None
    best_year_highlights: list[EnrichedMovie] = field(default_factory=list)
    years: list[YearAggregate] = field(default_factory=list)


@dataclass(frozen=True)
class RuntimeBundle:
    bands: dict[str, int]
    movies_with_runtime: int = 0
    average_runtime: float = 0.0
    longest: EnrichedMovie | None = None
    shortest: EnrichedMovie | None = None


@dataclass(frozen=True)
class MonthlyBundle:
    labels: tuple[str, ...]
    counts: list[int]


@dataclass(frozen=True)
class RatingVsYearBundle:
    """Scatter points of (release year, rating), one per movie with a known year."""

    points: list[tuple[int, float]] = field(default_factory=list)


def _movie_details(movie: EnrichedMovie) -> MovieDetails:
    return MovieDetails(movie=movie, poster_url=poster_url(movie.poster_path))


def runtime_band(runtime: int) -> str | None:
    """Name of the band a positive runtime falls in; None when unknown."""
    if runtime <= 0:
        return None
    for label, upper in RUNTIME_BANDS:
        if upper is None or runtime <= upper:
            return label
    return None  # pragma: no cover - the last band is open-ended


class QueryFacade:
    """Projections over an AppState. Every call recomputes from current state."""

    def __init__(self, state: AppState) -> None:
        self._state = state

    @property
    def state(self) -> AppState:
        return self._state

    # ---------- lists ----------

    def list_movies(self, query: str | None = None) -> list[EnrichedMovie]:
        movies = list(self._state.movies)
        if not query:
            return movies
        return [movie for movie in movies if movie.matches(query)]

    def list_group(
        self, kind: str, query: str | None = None
    ) -> list[PersonAggregate] | list[GenreAggregate]:
        """Directors, actors or genres sorted by descending count."""
        group = self._state.index.group(kind)
        entries = list(group.values())
        if query:
            needle = query.lower()
            entries = [entry for entry in entries if needle in entry.name.lower()]
        return sorted(entries, key=lambda entry: entry.count, reverse=True)

    # ---------- details ----------

    def movie_details(self, title: str, year: int | None = None) -> MovieDetails | None:
        """First movie with this title (case-insensitive), narrowed by release year if given."""
        wanted = title.lower()
        for movie in self._state.movies:
            if movie.title.lower() != wanted:
                continue
            if year is not None and movie.release_year != year:
                continue
            return _movie_details(movie)
        return None

    def movie_at(self, position: int, query: str | None = None) -> MovieDetails | None:
        """Movie at a 1-based position in ``list_movies(query)``.

        Reaches every entry, including rewatches that share title and year.
        """
        movies = self.list_movies(query)
        if position < 1 or position > len(movies):
            return None
        return _movie_details(movies[position - 1])

    def person_details(self, kind: str, name: str) -> PersonDetails | None:
        aggregate = self._state.index.group(kind).get(name)
        if aggregate is None or not aggregate.movies:
            return None

        movies = sorted(aggregate.movies, key=lambda movie: movie.rating, reverse=True)
        distribution: dict[int, int] = {}
        for movie in movies:
            bucket = math.floor(movie.rating)
            distribution[bucket] = distribution.get(bucket, 0) + 1

        return PersonDetails(
            name=aggregate.name,
            kind=kind,
            count=aggregate.count,
            average_rating=aggregate.average_rating,
            movies=movies,
            best_movie=movies[0],
            worst_movie=movies[-1],
            rating_distribution=dict(sorted(distribution.items())),
            first_movie=getattr(aggregate, "first_movie", None),
            last_movie=getattr(aggregate, "last_movie", None),
        )

    # ---------- chart bundles ----------

    def chart(self, category: str):
        handlers = {
            "summary": self.summary_bundle,
            "rating-distribution": self.rating_distribution_bundle,
            "directors": lambda: self.people_bundle("directors"),
            "actors": lambda: self.people_bundle("actors"),
            "genres": self.genres_bundle,
            "rating-by-year": self.rating_by_year_bundle,
            "runtime": self.runtime_bundle,
            "movies-by-month": self.movies_by_month_bundle,
            "rating-vs-year": self.rating_vs_year_bundle,
        }
        handler = handlers.get(category)
        if handler is None:
            raise UnknownChartError(
                f"Unknown chart '{category}'. Expected one of: {', '.join(CHART_CATEGORIES)}"
            )
        return handler()

    def summary_bundle(self) -> SummaryBundle:
        stats = self._state.stats
        movies = self._state.movies
        if not movies:
            return SummaryBundle()

        ratings = [movie.rating for movie in movies]
        highest, lowest = max(ratings), min(ratings)
        dated = [movie for movie in stats.sorted_movies if movie.watched_on is not None]
        return SummaryBundle(
            total_movies=stats.total_movies,
            average_rating=stats.average_rating,
            total_runtime=stats.total_runtime,
            average_runtime=stats.average_runtime,
            year_range=stats.year_range,
            first_movie=dated[0] if dated else None,
            last_movie=dated[-1] if dated else None,
            highest_rating=highest,
            highest_rated=[movie for movie in movies if movie.rating == highest],
            lowest_rating=lowest,
            lowest_rated=[movie for movie in movies if movie.rating == lowest],
        )

    def rating_distribution_bundle(self) -> RatingDistributionBundle:
        movies = self._state.movies
        if not movies:
            return RatingDistributionBundle()

        ratings = [movie.rating for movie in movies]
        histogram: dict[float, int] = {}
        for rating in ratings:
            histogram[rating] = histogram.get(rating, 0) + 1
        lowest = min(ratings)

        return RatingDistributionBundle(
            mean=statistics.fmean(ratings),
            median=float(statistics.median(ratings)),
            modes=statistics.multimode(ratings),
            std_dev=statistics.pstdev(ratings),
            histogram={f"{rating:.1f}": count for rating, count in sorted(histogram.items())},
            top_rated=[movie for movie in movies if movie.rating == RATING_CEILING],
            lowest_rating=lowest,
            lowest_rated=[movie for movie in movies if movie.rating == lowest],
        )

    def people_bundle(self, kind: str) -> PeopleBundle:
        if kind not in ("directors", "actors"):
            raise UnknownChartError(f"Unknown people kind '{kind}'")
        ranking = self.list_group(kind)
        return PeopleBundle(kind=kind, total=len(ranking), ranking=ranking)

    def genres_bundle(self) -> GenresBundle:
        ranking = self.list_group("genres")
        if not ranking:
            return GenresBundle()

        favorite = ranking[0]
        best = worst = favorite.movies[0]
        for movie in favorite.movies[1:]:
            if movie.rating > best.rating:
                best = movie
            if movie.rating < worst.rating:
                worst = movie

        return GenresBundle(
            total=len(ranking),
            favorite=favorite,
            best_in_favorite=best,
            worst_in_favorite=worst,
            ranking=ranking,
        )

    def rating_by_year_bundle(self) -> RatingByYearBundle:
        years = list(ratings_by_year(self._state.movies).values())
        if not years:
            return RatingByYearBundle()

        best = worst = years[0]
        for entry in years[1:]:
            if entry.average_rating > best.average_rating:
                best = entry
            if entry.average_rating < worst.average_rating:
                worst = entry

        return RatingByYearBundle(
            best_year=best,
            worst_year=worst,
            best_year_highlights=list(best.movies[:3]),
            years=sorted(years, key=lambda entry: entry.year, reverse=True),
        )

    def runtime_bundle(self) -> RuntimeBundle:
        bands = {label: 0 for label, _ in RUNTIME_BANDS}
        timed = [movie for movie in self._state.movies if movie.runtime > 0]
        for movie in timed:
            bands[runtime_band(movie.runtime)] += 1
        if not timed:
            return RuntimeBundle(bands=bands)

        longest = shortest = timed[0]
        for movie in timed[1:]:
            if movie.runtime > longest.runtime:
                longest = movie
            if movie.runtime < shortest.runtime:
                shortest = movie

        return RuntimeBundle(
            bands=bands,
            movies_with_runtime=len(timed),
            average_runtime=sum(movie.runtime for movie in timed) / len(timed),
            longest=longest,
            shortest=shortest,
        )

    def movies_by_month_bundle(self) -> MonthlyBundle:
        return MonthlyBundle(labels=MONTH_LABELS, counts=movies_by_month(self._state.movies))

    def rating_vs_year_bundle(self) -> RatingVsYearBundle:
        return RatingVsYearBundle(points=self.rating_vs_year())

    def rating_vs_year(self) -> list[tuple[int, float]]:
        return [
            (movie.release_year, movie.rating)
            for movie in self._state.movies
            if movie.release_year > 0
        ]


__all__ = [
    "CHART_CATEGORIES",
    "GenresBundle",
    "MonthlyBundle",
    "MovieDetails",
    "PeopleBundle",
    "PersonDetails",
    "QueryFacade",
    "RatingByYearBundle",
    "RatingDistributionBundle",
    "RatingVsYearBundle",
    "RuntimeBundle",
    "SummaryBundle",
    "UnknownChartError",
    "runtime_band",
]

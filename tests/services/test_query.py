"""Tests for the read-only query facade."""

import pytest

from letterboxd_stats.services import AppState, QueryFacade, UnknownChartError
from letterboxd_stats.services.query import (
    CHART_CATEGORIES,
    GenresBundle,
    PeopleBundle,
    RatingByYearBundle,
    RatingDistributionBundle,
    RatingVsYearBundle,
    RuntimeBundle,
    SummaryBundle,
    runtime_band,
)
from tests.fixtures.movies import make_movie, sample_movies


@pytest.fixture
def movies():
    return sample_movies()


@pytest.fixture
def facade(movies):
    return QueryFacade(AppState.from_movies(movies))


@pytest.fixture
def empty_facade():
    return QueryFacade(AppState())


class TestLists:
    def test_list_movies_without_query(self, facade, movies):
        assert facade.list_movies() == movies

    @pytest.mark.parametrize(
        "query,expected",
        [
            ("MATRIX", ["The Matrix"]),
            ("fincher", ["Se7en", "Fight Club"]),
            ("brad", ["Se7en", "Fight Club"]),
            ("zzz", []),
        ],
    )
    def test_list_movies_filters_title_director_and_cast(self, facade, query, expected):
        assert [movie.title for movie in facade.list_movies(query)] == expected

    def test_list_group_sorted_by_count(self, facade):
        names = [entry.name for entry in facade.list_group("directors")]

        assert names == ["David Fincher", "Lana Wachowski", "Lilly Wachowski", "Tom Hooper"]

    def test_list_group_with_query(self, facade):
        names = [entry.name for entry in facade.list_group("actors", "an")]

        assert names == ["Morgan Freeman", "Keanu Reeves", "Francesca Hayward"]

    def test_list_group_unknown_kind(self, facade):
        with pytest.raises(KeyError):
            facade.list_group("producers")


class TestDetails:
    def test_movie_details(self, facade):
        details = facade.movie_details("se7en")

        assert details.movie.title == "Se7en"
        assert details.poster_url == "https://image.tmdb.org/t/p/w300/se7en.jpg"

    def test_movie_details_without_poster(self, facade):
        assert facade.movie_details("Cats").poster_url is None

    def test_movie_details_not_found(self, facade):
        assert facade.movie_details("Heat") is None

    def test_same_title_movies_are_told_apart_by_year(self):
        facade = QueryFacade(
            AppState.from_movies(
                [
                    make_movie("Suspiria", release_year=1977, director="Dario Argento"),
                    make_movie("Suspiria", release_year=2018, director="Luca Guadagnino"),
                ]
            )
        )

        assert facade.movie_details("Suspiria").movie.release_year == 1977
        assert facade.movie_details("suspiria", 2018).movie.director == "Luca Guadagnino"
        assert facade.movie_details("Suspiria", 1999) is None

    def test_movie_at_reaches_every_entry(self):
        first = make_movie("Heat", release_year=1995, rating=4.0, date_watched="2020-01-01")
        rewatch = make_movie("Heat", release_year=1995, rating=5.0, date_watched="2023-01-01", rewatch=True)
        facade = QueryFacade(AppState.from_movies([first, rewatch]))

        assert facade.movie_at(1).movie is first
        assert facade.movie_at(2).movie is rewatch
        assert facade.movie_at(0) is None
        assert facade.movie_at(3) is None

    def test_movie_at_follows_the_filtered_list(self, facade):
        assert facade.movie_at(2, "fincher").movie.title == "Fight Club"

    def test_person_details(self, facade):
        details = facade.person_details("directors", "David Fincher")

        assert details.count == 2
        assert details.average_rating == pytest.approx(4.75)
        assert [movie.title for movie in details.movies] == ["Fight Club", "Se7en"]
        assert details.best_movie.title == "Fight Club"
        assert details.worst_movie.title == "Se7en"
        assert details.rating_distribution == {4: 1, 5: 1}
        assert details.first_movie.title == "Se7en"
        assert details.last_movie.title == "Fight Club"

    def test_genre_details_have_no_first_or_last(self, facade):
        details = facade.person_details("genres", "Thriller")

        assert details.count == 2
        assert details.first_movie is None

    def test_person_details_not_found(self, facade):
        assert facade.person_details("actors", "Nobody") is None


class TestCharts:
    def test_every_category_is_served(self, facade):
        for category in CHART_CATEGORIES:
            assert facade.chart(category) is not None

    def test_unknown_category(self, facade):
        with pytest.raises(UnknownChartError):
            facade.chart("box-office")

    def test_summary_bundle(self, facade):
        bundle = facade.chart("summary")

        assert isinstance(bundle, SummaryBundle)
        assert bundle.total_movies == 5
        assert bundle.average_rating == pytest.approx(3.4)
        assert bundle.total_runtime == 512
        assert bundle.year_range == 24
        assert bundle.first_movie.title == "The Matrix"
        assert bundle.last_movie.title == "Fight Club"
        assert bundle.highest_rating == 5.0
        assert [movie.title for movie in bundle.highest_rated] == ["Fight Club"]
        assert [movie.title for movie in bundle.lowest_rated] == ["Cats"]

    def test_rating_distribution_bundle(self, facade):
        bundle = facade.chart("rating-distribution")

        assert isinstance(bundle, RatingDistributionBundle)
        assert bundle.mean == pytest.approx(3.4)
        assert bundle.median == pytest.approx(4.0)
        assert bundle.std_dev > 0
        assert bundle.histogram == {"0.5": 1, "3.0": 1, "4.0": 1, "4.5": 1, "5.0": 1}
        assert [movie.title for movie in bundle.top_rated] == ["Fight Club"]
        assert bundle.lowest_rating == 0.5

    def test_rating_modes(self):
        facade = QueryFacade(
            AppState.from_movies(
                [make_movie("A", rating=4.0), make_movie("B", rating=4.0), make_movie("C", rating=2.0)]
            )
        )

        bundle = facade.rating_distribution_bundle()

        assert bundle.modes == [4.0]
        assert bundle.median == pytest.approx(4.0)

    def test_people_bundle(self, facade):
        bundle = facade.chart("actors")

        assert isinstance(bundle, PeopleBundle)
        assert bundle.total == 5
        assert bundle.ranking[0].name == "Brad Pitt"

    def test_genres_bundle(self, facade):
        bundle = facade.chart("genres")

        assert isinstance(bundle, GenresBundle)
        assert bundle.total == 6
        assert bundle.favorite.name == "Thriller"
        assert bundle.best_in_favorite.title == "Fight Club"
        assert bundle.worst_in_favorite.title == "Se7en"

    def test_rating_by_year_bundle(self, facade):
        bundle = facade.chart("rating-by-year")

        assert isinstance(bundle, RatingByYearBundle)
        # 1995 and 1999 tie at 4.5; the first year seen keeps the title
        assert bundle.best_year.year == 1995
        assert bundle.worst_year.year == 2019
        assert [entry.year for entry in bundle.years] == [2019, 1999, 1995]
        assert [movie.title for movie in bundle.best_year_highlights] == ["Se7en"]

    def test_runtime_bundle(self, facade):
        bundle = facade.chart("runtime")

        assert isinstance(bundle, RuntimeBundle)
        assert bundle.bands == {
            "<90m": 0,
            "90-120m": 1,
            "120-150m": 3,
            "150-180m": 0,
            ">180m": 0,
        }
        assert bundle.movies_with_runtime == 4
        assert bundle.average_runtime == pytest.approx(128.0)
        assert bundle.longest.title == "Fight Club"
        assert bundle.shortest.title == "Cats"

    def test_movies_by_month_bundle(self, facade):
        bundle = facade.chart("movies-by-month")

        assert bundle.labels[0] == "Jan"
        assert len(bundle.counts) == 12

    def test_rating_vs_year_chart(self, facade):
        bundle = facade.chart("rating-vs-year")

        assert isinstance(bundle, RatingVsYearBundle)
        assert (1995, 4.5) in bundle.points
        assert len(bundle.points) == 4

    def test_empty_state(self, empty_facade):
        assert empty_facade.summary_bundle() == SummaryBundle()
        assert empty_facade.rating_distribution_bundle() == RatingDistributionBundle()
        assert empty_facade.genres_bundle() == GenresBundle()
        assert empty_facade.rating_by_year_bundle() == RatingByYearBundle()
        assert empty_facade.runtime_bundle().movies_with_runtime == 0
        assert empty_facade.people_bundle("directors").total == 0


@pytest.mark.parametrize(
    "runtime,band",
    [
        (0, None),
        (45, "<90m"),
        (89, "<90m"),
        (90, "90-120m"),
        (120, "90-120m"),
        (121, "120-150m"),
        (150, "120-150m"),
        (180, "150-180m"),
        (181, ">180m"),
    ],
)
def test_runtime_band(runtime, band):
    assert runtime_band(runtime) == band

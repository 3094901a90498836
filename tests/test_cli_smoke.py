import json

import httpx
import pytest
import respx
from typer.testing import CliRunner

from letterboxd_stats import __version__
from letterboxd_stats.cli.__main__ import app
from letterboxd_stats.services import SessionStore
from tests.fixtures.movies import make_movie, sample_movies
from tests.fixtures.tmdb_responses import MOVIE_DETAILS_SE7EN, RATINGS_CSV, SEARCH_SE7EN_RESPONSE

runner = CliRunner()


@pytest.fixture
def session_path(tmp_path, monkeypatch):
    path = tmp_path / "session.json"
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("LETTERBOXD_STATS_CONFIG", str(tmp_path / "absent.toml"))
    monkeypatch.setenv("LETTERBOXD_STATS_SESSION_PATH", str(path))
    monkeypatch.delenv("TMDB_API_KEY", raising=False)
    monkeypatch.delenv("LETTERBOXD_STATS_SESSION_QUOTA", raising=False)
    return path


@pytest.fixture
def stored_session(session_path):
    SessionStore(session_path).save(sample_movies())
    return session_path


def test_version_command_outputs_version() -> None:
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert __version__ in result.stdout


def test_config_reports_session_path(session_path) -> None:
    result = runner.invoke(app, ["config"])
    assert result.exit_code == 0
    assert f"session_path: {session_path}" in result.stdout
    assert "tmdb_api_key: <unset>" in result.stdout


def test_summary_without_session_exits_with_hint(session_path) -> None:
    result = runner.invoke(app, ["summary"])
    assert result.exit_code == 1
    assert "letterboxd-stats import" in result.stdout


def test_summary_reads_stored_session(stored_session) -> None:
    result = runner.invoke(app, ["summary"])
    assert result.exit_code == 0
    assert "Total movies: 5" in result.stdout
    assert "Average rating: 3.40" in result.stdout


def test_chart_json_output(stored_session) -> None:
    result = runner.invoke(app, ["chart", "runtime", "--json"])
    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["bands"]["120-150m"] == 3
    assert payload["longest"]["title"] == "Fight Club"


def test_unknown_chart_fails(stored_session) -> None:
    result = runner.invoke(app, ["chart", "box-office"])
    assert result.exit_code == 1
    assert "Unknown chart" in result.stdout


def test_movies_query(stored_session) -> None:
    result = runner.invoke(app, ["movies", "--query", "fincher"])
    assert result.exit_code == 0
    assert "Se7en (1995)" in result.stdout
    assert "The Matrix" not in result.stdout


def test_movie_by_title_and_year(session_path) -> None:
    SessionStore(session_path).save(
        [
            make_movie("Suspiria", release_year=1977, director="Dario Argento"),
            make_movie("Suspiria", release_year=2018, director="Luca Guadagnino"),
        ]
    )

    result = runner.invoke(app, ["movie", "Suspiria", "--year", "2018"])
    assert result.exit_code == 0
    assert "Director: Luca Guadagnino" in result.stdout

    result = runner.invoke(app, ["movie", "Suspiria", "--year", "1990"])
    assert result.exit_code == 1


def test_movie_by_number(stored_session) -> None:
    result = runner.invoke(app, ["movie", "--number", "2", "--query", "fincher"])
    assert result.exit_code == 0
    assert "Fight Club (1999)" in result.stdout


def test_movie_requires_title_or_number(stored_session) -> None:
    result = runner.invoke(app, ["movie"])
    assert result.exit_code == 1


def test_rating_vs_year_chart(stored_session) -> None:
    result = runner.invoke(app, ["chart", "rating-vs-year", "--json"])
    assert result.exit_code == 0
    assert [1995, 4.5] in json.loads(result.stdout)["points"]


def test_person_details(stored_session) -> None:
    result = runner.invoke(app, ["person", "David Fincher"])
    assert result.exit_code == 0
    assert "Movies: 2" in result.stdout
    assert "First watched: Se7en (1995)" in result.stdout


def test_people_rejects_unknown_kind(stored_session) -> None:
    result = runner.invoke(app, ["people", "--kind", "producers"])
    assert result.exit_code == 1


def test_reset_clears_session(stored_session) -> None:
    result = runner.invoke(app, ["reset", "--yes"])
    assert result.exit_code == 0
    assert SessionStore(stored_session).load() is None


def test_import_requires_api_key(session_path, tmp_path) -> None:
    csv_path = tmp_path / "ratings.csv"
    csv_path.write_text(RATINGS_CSV, encoding="utf-8")

    result = runner.invoke(app, ["import", str(csv_path)])
    assert result.exit_code == 1
    assert "TMDB_API_KEY" in result.stdout


def test_import_missing_file(session_path, tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("TMDB_API_KEY", "test-key")

    result = runner.invoke(app, ["import", str(tmp_path / "missing.csv")])
    assert result.exit_code == 1
    assert "Error processing file" in result.stdout


@respx.mock
def test_import_enriches_and_saves(session_path, tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("TMDB_API_KEY", "test-key")
    respx.get("https://api.themoviedb.org/3/search/movie").mock(
        return_value=httpx.Response(200, json=SEARCH_SE7EN_RESPONSE)
    )
    respx.get("https://api.themoviedb.org/3/movie/1000001").mock(
        return_value=httpx.Response(200, json=MOVIE_DETAILS_SE7EN)
    )
    csv_path = tmp_path / "ratings.csv"
    csv_path.write_text(RATINGS_CSV, encoding="utf-8")

    result = runner.invoke(app, ["import", str(csv_path)])

    assert result.exit_code == 0
    assert "Imported 3 movies." in result.stdout
    stored = SessionStore(session_path).load()
    assert [movie.title for movie in stored] == ["Se7en, Director's Cut", "Alien", "Cats"]
    assert all(movie.director == "David Fincher" for movie in stored)

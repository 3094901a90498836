"""Tests for the import flow."""

from unittest.mock import AsyncMock

import pytest

from letterboxd_stats.clients.tmdb import TmdbClient
from letterboxd_stats.parsers import ParseError, WatchHistoryReadError
from letterboxd_stats.services import (
    EnrichmentService,
    ImportService,
    SessionStore,
    restore_state,
)

ALPHA_DETAILS = {
    "id": 1,
    "runtime": 100,
    "genres": [{"id": 18, "name": "Drama"}],
    "production_countries": [{"name": "France"}],
    "credits": {
        "cast": [{"name": "Actor One"}],
        "crew": [{"name": "X", "job": "Director"}],
    },
}


@pytest.fixture
def mock_tmdb_client():
    client = AsyncMock(spec=TmdbClient)

    async def search(title, year):
        if title == "Beta":
            raise RuntimeError("catalog unavailable")
        return [{"id": 1, "title": title}]

    client.search_movie = AsyncMock(side_effect=search)
    client.get_movie_details = AsyncMock(return_value=ALPHA_DETAILS)
    return client


@pytest.fixture
def store(tmp_path):
    return SessionStore(tmp_path / "session.json")


@pytest.fixture
def import_service(mock_tmdb_client, store):
    return ImportService(EnrichmentService(mock_tmdb_client), store)


@pytest.fixture
def csv_path(tmp_path):
    path = tmp_path / "ratings.csv"
    path.write_text(
        "Name,Year,Rating,Date\n"
        "Alpha,2000,5,2020-01-01\n"
        "Beta,2001,3,2020-02-01\n",
        encoding="utf-8",
    )
    return path


class TestImportService:
    @pytest.mark.asyncio
    async def test_import_with_one_failed_record(self, import_service, csv_path):
        result = await import_service.import_file(csv_path)

        directors = result.state.index.directors
        assert list(directors) == ["X"]
        assert directors["X"].count == 1
        assert directors["X"].average_rating == pytest.approx(5.0)
        assert result.state.stats.total_movies == 2
        assert result.state.stats.average_rating == pytest.approx(4.0)
        assert result.total_movies == 2
        assert result.saved is True
        assert [failure.title for failure in result.failures] == ["Beta"]

        beta = result.state.movies[1]
        assert (beta.title, beta.release_year, beta.rating, beta.date_watched) == (
            "Beta",
            2001,
            3.0,
            "2020-02-01",
        )
        assert beta.director == "N/A"

    @pytest.mark.asyncio
    async def test_import_persists_and_restores(self, import_service, store, csv_path, mock_tmdb_client):
        result = await import_service.import_file(csv_path)
        mock_tmdb_client.search_movie.reset_mock()

        restored = import_service.restore()

        assert restored == result.state
        assert restore_state(store).index.directors["X"].count == 1
        mock_tmdb_client.search_movie.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_progress_callback_is_forwarded(self, import_service, csv_path):
        seen = []

        await import_service.import_file(csv_path, on_progress=seen.append)

        assert [event.current for event in seen] == [1, 2]

    @pytest.mark.asyncio
    async def test_storage_failure_keeps_session_in_memory(self, mock_tmdb_client, tmp_path, csv_path):
        store = SessionStore(tmp_path / "session.json", quota_bytes=10)
        service = ImportService(EnrichmentService(mock_tmdb_client), store)

        result = await service.import_file(csv_path)

        assert result.saved is False
        assert result.total_movies == 2
        assert service.restore() is None

    @pytest.mark.asyncio
    async def test_missing_file_fails_before_any_lookup(self, import_service, tmp_path, mock_tmdb_client):
        with pytest.raises(WatchHistoryReadError):
            await import_service.import_file(tmp_path / "missing.csv")

        mock_tmdb_client.search_movie.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_empty_file_fails_before_any_lookup(self, import_service, tmp_path, mock_tmdb_client):
        path = tmp_path / "empty.csv"
        path.write_text("", encoding="utf-8")

        with pytest.raises(ParseError):
            await import_service.import_file(path)

        mock_tmdb_client.search_movie.assert_not_awaited()

    def test_restore_without_session(self, import_service):
        assert import_service.restore() is None

from __future__ import annotations

import logging
from collections.abc import Mapping
from contextlib import asynccontextmanager
from typing import Any

import httpx
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

from letterboxd_stats import __version__

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.themoviedb.org/3"
DEFAULT_TIMEOUT = 20.0
DEFAULT_MAX_ATTEMPTS = 3
POSTER_BASE_URL = "https://image.tmdb.org/t/p/w300"
USER_AGENT = f"letterboxd-stats/{__version__}"

# v3 API keys are 32 hex chars; v4 read-access tokens are long JWTs
_V4_TOKEN_MIN_LENGTH = 40


class TmdbClient:
    """Thin asynchronous wrapper around the TMDB v3 API.

    Lookups fail soft: transport errors, error statuses and undecodable bodies
    are logged and counted in ``failures``, and the call returns an empty
    result instead of raising.
    """

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        language: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        retry_wait: float = 0.5,
    ) -> None:
        headers = {
            "User-Agent": USER_AGENT,
            "Accept": "application/json",
        }
        params: dict[str, str] = {}
        if len(api_key) > _V4_TOKEN_MIN_LENGTH:
            headers["Authorization"] = f"Bearer {api_key}"
        else:
            params["api_key"] = api_key
        if language:
            params["language"] = language

        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            params=params,
            timeout=timeout,
        )
        self._max_attempts = max_attempts
        self._retry_wait = retry_wait
        self.failures = 0

    async def close(self) -> None:
        await self._client.aclose()

    async def search_movie(self, title: str, year: int | None = None) -> list[dict[str, Any]]:
        """Search the catalog by title, returning ranked candidates (possibly empty)."""
        params: dict[str, Any] = {"query": title}
        if year:
            params["year"] = year
        try:
            payload = await self._get_json("/search/movie", params=params)
        except (httpx.HTTPError, ValueError) as exc:
            self._record_failure("search", title, exc)
            return []

        results = payload.get("results") if isinstance(payload, Mapping) else None
        if not isinstance(results, list):
            return []
        return [item for item in results if isinstance(item, dict)]

    async def get_movie_details(self, movie_id: int | str) -> dict[str, Any] | None:
        """Fetch full details for one movie, with credits appended."""
        try:
            payload = await self._get_json(
                f"/movie/{movie_id}",
                params={"append_to_response": "credits"},
            )
        except (httpx.HTTPError, ValueError) as exc:
            self._record_failure("details", str(movie_id), exc)
            return None
        return payload if isinstance(payload, dict) else None

    async def _get_json(self, path: str, *, params: Mapping[str, Any]) -> Any:
        async for attempt in self._retry_policy():
            with attempt:
                response = await self._client.get(path, params=params)
                response.raise_for_status()
                return response.json()
        raise RuntimeError("Unable to query TMDB after retries")  # pragma: no cover

    def _retry_policy(self) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential(multiplier=self._retry_wait, max=6),
            retry=retry_if_exception(_is_rate_limited),
            reraise=True,
        )

    def _record_failure(self, operation: str, subject: str, exc: Exception) -> None:
        self.failures += 1
        logger.warning("[TMDB] %s failed for %r: %s", operation, subject, exc)

    async def __aenter__(self) -> TmdbClient:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # type: ignore[override]
        await self.close()


@asynccontextmanager
async def tmdb_client(
    api_key: str,
    *,
    base_url: str = DEFAULT_BASE_URL,
    language: str | None = None,
    timeout: float = DEFAULT_TIMEOUT,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
):
    client = TmdbClient(
        api_key,
        base_url=base_url,
        language=language,
        timeout=timeout,
        max_attempts=max_attempts,
    )
    try:
        yield client
    finally:
        await client.close()


def poster_url(poster_path: str | None) -> str | None:
    if not poster_path:
        return None
    return f"{POSTER_BASE_URL}{poster_path}"


def _is_rate_limited(exc: BaseException) -> bool:
    return isinstance(exc, httpx.HTTPStatusError) and exc.response.status_code == 429


__all__ = ["POSTER_BASE_URL", "TmdbClient", "poster_url", "tmdb_client"]

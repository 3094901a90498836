from .tmdb import TmdbClient, poster_url, tmdb_client

__all__ = ["TmdbClient", "poster_url", "tmdb_client"]

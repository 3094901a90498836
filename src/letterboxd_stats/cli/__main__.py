from __future__ import annotations

import asyncio
import dataclasses
import json
import logging
from pathlib import Path
from typing import Any

import typer
from pydantic import BaseModel

from letterboxd_stats import __version__
from letterboxd_stats.clients.tmdb import TmdbClient
from letterboxd_stats.config import Settings, SettingsError, SettingsLoadResult, load_settings
from letterboxd_stats.models import GROUP_KINDS, EnrichedMovie, EnrichmentProgress
from letterboxd_stats.parsers import ParseError, WatchHistoryReadError
from letterboxd_stats.services.enrichment import EnrichmentService
from letterboxd_stats.services.importer import ImportResult, ImportService, restore_state
from letterboxd_stats.services.query import (
    CHART_CATEGORIES,
    GenresBundle,
    MonthlyBundle,
    PeopleBundle,
    QueryFacade,
    RatingByYearBundle,
    RatingDistributionBundle,
    RatingVsYearBundle,
    RuntimeBundle,
    SummaryBundle,
    UnknownChartError,
)
from letterboxd_stats.services.session import SessionStore

app = typer.Typer(
    add_completion=False,
    help="Import a Letterboxd export, enrich it with TMDB, and explore your viewing statistics.",
)


@app.callback()
def _cli_entry(ctx: typer.Context) -> None:
    """Entrypoint for the letterboxd-stats CLI."""
    ctx.obj = {} if ctx.obj is None else ctx.obj


@app.command()
def version() -> None:
    """Print the installed version."""
    typer.echo(__version__)


@app.command()
def config(show_sources: bool = typer.Option(False, help="Display where settings came from.")) -> None:
    """Describe configuration expectations."""
    load_result = _safe_load_settings(load_even_if_missing=True)
    if load_result is None:
        raise typer.Exit(code=1)

    settings = load_result.settings
    values: dict[str, Any] = {
        "tmdb_api_key": "<set>" if settings.tmdb_api_key else "<unset>",
        "tmdb_base_url": settings.tmdb_base_url,
        "tmdb_language": settings.tmdb_language or "<unset>",
        "tmdb_timeout": settings.tmdb_timeout,
        "tmdb_max_attempts": settings.tmdb_max_attempts,
        "max_cast": settings.max_cast,
        "session_path": settings.session_path,
        "session_quota_bytes": settings.session_quota_bytes or "<unlimited>",
        "log_level": settings.log_level,
    }

    for key, value in values.items():
        typer.echo(f"{key}: {value}")

    if show_sources:
        source_hint = load_result.source_path or "<env/.env>"
        typer.echo(f"resolved_from: {source_hint}")
        typer.echo(
            "Set TMDB_API_KEY (v3 key or v4 read token)."
            " Configure ~/.config/letterboxd-stats/config.toml for persistent settings.",
        )


@app.command("import")
def import_(
    csv_path: Path = typer.Argument(..., help="Letterboxd export file (ratings.csv or diary.csv)."),
    debug: bool = typer.Option(False, help="Enable debug logging."),
) -> None:
    """Enrich a watch-history export with TMDB metadata and save the session."""
    load_result = _safe_load_settings()
    if load_result is None:
        raise typer.Exit(code=1)
    settings = load_result.settings
    _setup_logging(logging.DEBUG if debug else _level_from(settings.log_level))

    try:
        settings.require_tmdb()
    except SettingsError as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=1) from exc

    try:
        result = asyncio.run(_run_import(settings, csv_path))
    except (ParseError, WatchHistoryReadError) as exc:
        typer.secho(f"Error processing file: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=1) from exc

    _render_import_result(result)
    _render_summary(QueryFacade(result.state).summary_bundle())


@app.command()
def summary(json_output: bool = typer.Option(False, "--json/--no-json", help="Output as JSON.")) -> None:
    """Show the headline statistics of the stored session."""
    _show_chart(_require_facade(), "summary", json_output)


@app.command()
def chart(
    category: str = typer.Argument(..., help=f"One of: {', '.join(CHART_CATEGORIES)}."),
    json_output: bool = typer.Option(False, "--json/--no-json", help="Output as JSON."),
) -> None:
    """Show the statistics behind one dashboard chart."""
    _show_chart(_require_facade(), category, json_output)


@app.command()
def movies(
    query: str | None = typer.Option(None, help="Filter by title, director or cast member."),
    json_output: bool = typer.Option(False, "--json/--no-json", help="Output as JSON."),
) -> None:
    """List the movies in the stored session."""
    results = _require_facade().list_movies(query)
    if json_output:
        _output_json(results)
        return
    if not results:
        typer.secho("No movies found.", fg=typer.colors.YELLOW)
        return
    for idx, movie in enumerate(results, start=1):
        typer.echo(f"{idx}. {_movie_label(movie)} • {movie.rating} • {movie.director}")


@app.command()
def movie(
    title: str | None = typer.Argument(None, help="Exact movie title (case-insensitive)."),
    year: int | None = typer.Option(None, help="Release year, to tell remakes apart."),
    number: int | None = typer.Option(
        None, "--number", "-n", help="Position shown by `movies` (combine with the same --query)."
    ),
    query: str | None = typer.Option(None, help="Filter used together with --number."),
    json_output: bool = typer.Option(False, "--json/--no-json", help="Output as JSON."),
) -> None:
    """Show everything known about one movie."""
    if title is None and number is None:
        typer.secho("Give a movie title or --number.", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    facade = _require_facade()
    if number is not None:
        details = facade.movie_at(number, query)
        missing = f"No movie at position {number}."
    else:
        details = facade.movie_details(title, year)
        missing = f"Movie not found: {title}" + (f" ({year})" if year is not None else "")
    if details is None:
        typer.secho(missing, fg=typer.colors.YELLOW)
        raise typer.Exit(code=1)
    if json_output:
        _output_json(details)
        return

    entry = details.movie
    typer.secho(_movie_label(entry), fg=typer.colors.CYAN)
    typer.echo(f"Your rating: {entry.rating}")
    if entry.director:
        typer.echo(f"Director: {entry.director}")
    if entry.runtime > 0:
        typer.echo(f"Runtime: {entry.runtime} min")
    if entry.genres:
        typer.echo(f"Genres: {', '.join(entry.genres)}")
    if entry.cast:
        more = "..." if len(entry.cast) > 5 else ""
        typer.echo(f"Cast: {', '.join(entry.cast[:5])}{more}")
    typer.echo(f"Country: {entry.country}")
    typer.echo(f"Watched on: {entry.date_watched or 'unknown'}")
    if details.poster_url:
        typer.echo(f"Poster: {details.poster_url}")
    if entry.overview:
        typer.echo(f"\n{entry.overview}")


@app.command()
def people(
    kind: str = typer.Option("directors", help="directors, actors or genres."),
    query: str | None = typer.Option(None, help="Filter by name."),
    limit: int = typer.Option(20, help="Maximum number of entries to show (0 for all)."),
) -> None:
    """Rank directors, actors or genres by how many of their movies you watched."""
    _check_kind(kind)
    ranking = _require_facade().list_group(kind, query)
    if limit > 0:
        ranking = ranking[:limit]
    if not ranking:
        typer.secho("No entries found.", fg=typer.colors.YELLOW)
        return
    for idx, entry in enumerate(ranking, start=1):
        typer.echo(f"{idx}. {entry.name} • {entry.count} movies • avg {entry.average_rating:.1f}")


@app.command()
def person(
    name: str = typer.Argument(..., help="Director, actor or genre name."),
    kind: str = typer.Option("directors", help="directors, actors or genres."),
    json_output: bool = typer.Option(False, "--json/--no-json", help="Output as JSON."),
) -> None:
    """Show statistics and filmography for one person or genre."""
    _check_kind(kind)
    details = _require_facade().person_details(kind, name)
    if details is None:
        typer.secho(f"No movies found for {name}.", fg=typer.colors.YELLOW)
        raise typer.Exit(code=1)
    if json_output:
        _output_json(details)
        return

    typer.secho(details.name, fg=typer.colors.CYAN)
    typer.echo(f"Movies: {details.count} • average rating {details.average_rating:.1f}")
    if details.first_movie is not None:
        typer.echo(f"First watched: {_movie_label(details.first_movie)}")
    if details.last_movie is not None:
        typer.echo(f"Last watched: {_movie_label(details.last_movie)}")
    typer.echo(f"Best: {_movie_label(details.best_movie)} • {details.best_movie.rating}")
    typer.echo(f"Worst: {_movie_label(details.worst_movie)} • {details.worst_movie.rating}")
    distribution = ", ".join(f"{rating}: {count}" for rating, count in details.rating_distribution.items())
    typer.echo(f"Rating distribution: {distribution}")
    typer.echo("Filmography:")
    for entry in details.movies:
        typer.echo(f"  {_movie_label(entry)} • {entry.rating}")


@app.command()
def reset(yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt.")) -> None:
    """Delete the stored session so the next run starts from a fresh import."""
    load_result = _safe_load_settings()
    if load_result is None:
        raise typer.Exit(code=1)
    if not yes and not typer.confirm("Delete all stored data and start over?"):
        raise typer.Exit(code=0)
    _build_store(load_result.settings).clear()
    typer.secho("Session cleared.", fg=typer.colors.GREEN)


def main() -> None:
    """Expose Typer app for the console script."""
    app()


async def _run_import(settings: Settings, csv_path: Path) -> ImportResult:
    assert settings.tmdb_api_key is not None

    async with TmdbClient(
        settings.tmdb_api_key,
        base_url=settings.tmdb_base_url,
        language=settings.tmdb_language,
        timeout=settings.tmdb_timeout,
        max_attempts=settings.tmdb_max_attempts,
    ) as client:
        enrichment = EnrichmentService(client, max_cast=settings.max_cast)
        importer = ImportService(enrichment, _build_store(settings))

        def on_progress(update: EnrichmentProgress) -> None:
            typer.echo(
                f"\r[{update.fraction:6.1%}] Processing: {update.title} ({update.current}/{update.total})",
                nl=update.current == update.total,
                err=True,
            )

        return await importer.import_file(csv_path, on_progress=on_progress)


def _safe_load_settings(load_even_if_missing: bool = False) -> SettingsLoadResult | None:
    try:
        return load_settings()
    except SettingsError as exc:
        if load_even_if_missing:
            typer.secho(
                f"Warning: configuration incomplete – {exc}",
                fg=typer.colors.YELLOW,
            )
            return SettingsLoadResult(settings=Settings(), source_path=None)
        typer.secho(str(exc), fg=typer.colors.RED)
        return None


def _build_store(settings: Settings) -> SessionStore:
    return SessionStore(settings.session_path, quota_bytes=settings.session_quota_bytes)


def _require_facade() -> QueryFacade:
    load_result = _safe_load_settings()
    if load_result is None:
        raise typer.Exit(code=1)
    _setup_logging(_level_from(load_result.settings.log_level))

    state = restore_state(_build_store(load_result.settings))
    if state is None:
        typer.secho(
            "No stored session found. Run `letterboxd-stats import <ratings.csv>` first.",
            fg=typer.colors.YELLOW,
        )
        raise typer.Exit(code=1)
    return QueryFacade(state)


def _check_kind(kind: str) -> None:
    if kind not in GROUP_KINDS:
        typer.secho(f"Unknown kind '{kind}'. Expected one of: {', '.join(GROUP_KINDS)}", fg=typer.colors.RED)
        raise typer.Exit(code=1)


def _setup_logging(level: int = logging.INFO) -> None:
    """Configure logging for the CLI process."""
    logging.basicConfig(
        format="%(message)s",
        level=level,
        force=True,
    )


def _level_from(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.WARNING


def _show_chart(facade: QueryFacade, category: str, json_output: bool) -> None:
    try:
        bundle = facade.chart(category)
    except UnknownChartError as exc:
        typer.secho(str(exc.args[0]), fg=typer.colors.RED)
        raise typer.Exit(code=1) from exc

    if json_output:
        _output_json(bundle)
        return

    if isinstance(bundle, SummaryBundle):
        _render_summary(bundle)
    elif isinstance(bundle, RatingDistributionBundle):
        _render_rating_distribution(bundle)
    elif isinstance(bundle, PeopleBundle):
        typer.secho(f"Total {bundle.kind}: {bundle.total}", fg=typer.colors.CYAN)
        for entry in bundle.ranking:
            typer.echo(f"  {entry.name} • {entry.count} movies • {entry.average_rating:.1f}")
    elif isinstance(bundle, GenresBundle):
        _render_genres(bundle)
    elif isinstance(bundle, RatingByYearBundle):
        _render_rating_by_year(bundle)
    elif isinstance(bundle, RuntimeBundle):
        _render_runtime(bundle)
    elif isinstance(bundle, MonthlyBundle):
        for label, count in zip(bundle.labels, bundle.counts):
            typer.echo(f"  {label}: {count}")
    elif isinstance(bundle, RatingVsYearBundle):
        if not bundle.points:
            typer.secho("No release years found.", fg=typer.colors.YELLOW)
        for year, rating in bundle.points:
            typer.echo(f"  {year}: {rating}")


def _render_import_result(result: ImportResult) -> None:
    typer.secho(f"Imported {result.total_movies} movies.", fg=typer.colors.GREEN)
    if result.unmatched:
        typer.secho(
            f"{len(result.unmatched)} movies were not found on TMDB: {', '.join(result.unmatched)}",
            fg=typer.colors.YELLOW,
        )
    if result.failures:
        typer.secho(f"{len(result.failures)} movies could not be enriched.", fg=typer.colors.YELLOW)
    if not result.saved:
        typer.secho(
            "Could not save the session; the storage limit may have been exceeded."
            " The next run will need a fresh import.",
            fg=typer.colors.YELLOW,
        )


def _render_summary(bundle: SummaryBundle) -> None:
    if bundle.total_movies == 0:
        typer.secho("Statistics not available.", fg=typer.colors.YELLOW)
        return
    hours, minutes = divmod(bundle.total_runtime, 60)
    typer.echo(f"Total movies: {bundle.total_movies}")
    typer.echo(f"Average rating: {bundle.average_rating:.2f}")
    typer.echo(f"Total watch time: {hours}h {minutes}m")
    typer.echo(f"Years spanned: {bundle.year_range}")
    if bundle.first_movie is not None:
        typer.echo(f"First movie: {_movie_label(bundle.first_movie)} - {bundle.first_movie.date_watched}")
    if bundle.last_movie is not None:
        typer.echo(f"Last movie: {_movie_label(bundle.last_movie)} - {bundle.last_movie.date_watched}")
    if bundle.highest_rated:
        titles = ", ".join(entry.title for entry in bundle.highest_rated)
        typer.echo(f"Best ({bundle.highest_rating:.1f}): {titles}")
    if bundle.lowest_rated:
        titles = ", ".join(entry.title for entry in bundle.lowest_rated)
        typer.echo(f"Worst ({bundle.lowest_rating:.1f}): {titles}")


def _render_rating_distribution(bundle: RatingDistributionBundle) -> None:
    typer.echo(f"Mean: {bundle.mean:.2f}")
    typer.echo(f"Median: {bundle.median:.1f}")
    typer.echo(f"Mode: {', '.join(str(mode) for mode in bundle.modes)}")
    typer.echo(f"Standard deviation: {bundle.std_dev:.2f}")
    for rating, count in bundle.histogram.items():
        typer.echo(f"  {rating}: {count}")
    if bundle.top_rated:
        typer.echo("Top rated (5.0): " + ", ".join(_movie_label(entry) for entry in bundle.top_rated))
    if bundle.lowest_rated:
        typer.echo(
            f"Lowest rated ({bundle.lowest_rating}): "
            + ", ".join(_movie_label(entry) for entry in bundle.lowest_rated)
        )


def _render_genres(bundle: GenresBundle) -> None:
    if bundle.favorite is None:
        typer.secho("No genres found.", fg=typer.colors.YELLOW)
        return
    typer.echo(f"Favorite genre: {bundle.favorite.name} ({bundle.favorite.count} movies)")
    if bundle.best_in_favorite is not None and bundle.worst_in_favorite is not None:
        typer.echo(f"  Best: {bundle.best_in_favorite.title} ({bundle.best_in_favorite.rating})")
        typer.echo(f"  Worst: {bundle.worst_in_favorite.title} ({bundle.worst_in_favorite.rating})")
    typer.echo("Average rating by genre:")
    for entry in bundle.ranking:
        typer.echo(f"  {entry.name}: {entry.average_rating:.1f}")


def _render_rating_by_year(bundle: RatingByYearBundle) -> None:
    if bundle.best_year is None or bundle.worst_year is None:
        typer.secho("No release years found.", fg=typer.colors.YELLOW)
        return
    typer.echo(f"Best year: {bundle.best_year.year} (average {bundle.best_year.average_rating:.2f})")
    for entry in bundle.best_year_highlights:
        typer.echo(f"  - {entry.title} ({entry.rating})")
    typer.echo(f"Worst year: {bundle.worst_year.year} (average {bundle.worst_year.average_rating:.2f})")
    for entry in bundle.years:
        typer.echo(f"  {entry.year}: {entry.average_rating:.2f}")


def _render_runtime(bundle: RuntimeBundle) -> None:
    for label, count in bundle.bands.items():
        typer.echo(f"  {label}: {count}")
    if bundle.longest is None or bundle.shortest is None:
        return
    hours, minutes = divmod(round(bundle.average_runtime), 60)
    typer.echo(f"Average: {round(bundle.average_runtime)} min ({hours}h {minutes}m)")
    typer.echo(f"Longest: {bundle.longest.title} ({bundle.longest.runtime} min)")
    typer.echo(f"Shortest: {bundle.shortest.title} ({bundle.shortest.runtime} min)")


def _movie_label(movie: EnrichedMovie) -> str:
    return f"{movie.title} ({movie.release_year or '?'})"


def _to_jsonable(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {item.name: _to_jsonable(getattr(value, item.name)) for item in dataclasses.fields(value)}
    if isinstance(value, dict):
        return {str(key): _to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_jsonable(item) for item in value]
    return value


def _output_json(value: Any) -> None:
    typer.echo(json.dumps(_to_jsonable(value), indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()

"""Typer CLI application for the NFL pick'em score service."""

from __future__ import annotations

import time

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from nfl_pickem.app import Services, build_services
from nfl_pickem.config import Settings
from nfl_pickem.ingest.connectors import ConnectorError
from nfl_pickem.ingest.schema import PickStats, Season, SeasonPhase, new_id, utcnow
from nfl_pickem.ingest.sync import NoCurrentSeasonError
from nfl_pickem.refresh.staleness import format_last_update
from nfl_pickem.utils.logger import configure_logging

app = typer.Typer(help="NFL pick'em score sync and scoring CLI")
console = Console()


@app.callback()
def _callback(
    ctx: typer.Context,
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        help="QUIET | NORMAL | VERBOSE | DEBUG (default: $NFL_PICKEM_LOG_LEVEL or NORMAL)",
    ),
) -> None:
    """NFL pick'em CLI: schedule sync, score refresh and pick scoring."""
    try:
        settings = Settings.from_env()
    except ValidationError as exc:
        console.print(f"[red]Error: invalid configuration:[/red]\n{escape(str(exc))}")
        raise typer.Exit(code=1)
    try:
        configure_logging(log_level or settings.log_level)
    except ValueError as exc:
        console.print(f"[red]Error: {exc}[/red]")
        raise typer.Exit(code=1)
    ctx.obj = settings


def _services(ctx: typer.Context) -> Services:
    settings = ctx.obj if isinstance(ctx.obj, Settings) else Settings.from_env()
    return build_services(settings)


def _season(services: Services, season_id: str | None) -> Season:
    if season_id is not None:
        season = services.repository.get_season(season_id)
        if season is None:
            console.print(f"[red]Error: Unknown season {season_id!r}[/red]")
            raise typer.Exit(code=1)
        return season
    season = services.repository.get_current_season()
    if season is None:
        console.print("[red]Error: No current season set (run `nfl-pickem init-season`)[/red]")
        raise typer.Exit(code=1)
    return season


def _stats_table(title: str, stats: PickStats) -> Table:
    table = Table(title=title)
    for column in ("Total", "Correct", "Incorrect", "Pending", "Accuracy"):
        table.add_column(column, justify="right")
    table.add_row(
        str(stats.total_picks),
        str(stats.correct_picks),
        str(stats.incorrect_picks),
        str(stats.pending_picks),
        f"{stats.accuracy_percentage:.2f}%",
    )
    return table


@app.command("init-season")
def init_season(
    ctx: typer.Context,
    year: str = typer.Argument(..., help="Season year, e.g. 2024"),
    current: bool = typer.Option(True, "--current/--not-current", help="Flag the season as current"),
    sync: bool = typer.Option(False, "--sync", help="Fetch the full schedule after creating the season"),
) -> None:
    """Create a season (or reuse the one for YEAR) and optionally sync its schedule."""
    services = _services(ctx)
    existing = next((s for s in services.repository.list_seasons() if s.year == year), None)
    if existing is None:
        try:
            season = services.repository.add_season(
                Season(id=new_id(), year=year, is_current=current, created_at=utcnow()),
            )
        except ValidationError as exc:
            console.print(f"[red]Error: {escape(str(exc))}[/red]")
            raise typer.Exit(code=1)
        console.print(f"Created season [bold]{season.year}[/bold] ({season.id})")
    else:
        season = existing
        if current and not season.is_current:
            services.repository.set_current_season(season.id)
        console.print(f"Season [bold]{season.year}[/bold] already exists ({season.id})")

    if sync:
        try:
            result = services.game_sync.update_nfl_games(season.id)
        except ConnectorError as exc:
            console.print(f"[red]Error: {exc}[/red]")
            raise typer.Exit(code=1)
        console.print(
            f"Schedule sync: {result.created} created, {result.updated} updated, {result.skipped} skipped",
        )


@app.command("sync")
def sync_games(
    ctx: typer.Context,
    season_id: str | None = typer.Option(None, "--season-id", help="Season to sync (default: current)"),
    week: int | None = typer.Option(None, "--week", min=1, help="Single week (default: full schedule)"),
    phase: int | None = typer.Option(None, "--phase", min=1, max=3, help="1=pre, 2=regular, 3=post"),
    scores_only: bool = typer.Option(False, "--scores-only", help="Update scores of known games only"),
) -> None:
    """Fetch games from ESPN and upsert them into a season."""
    services = _services(ctx)
    season = _season(services, season_id)
    start = time.monotonic()
    try:
        result = services.game_sync.update_nfl_games(
            season.id,
            week=week,
            season_phase=SeasonPhase(phase) if phase is not None else None,
            scores_only=scores_only,
        )
    except ConnectorError as exc:
        console.print(f"[red]Error: {exc}[/red]")
        raise typer.Exit(code=1)
    elapsed = time.monotonic() - start
    console.print(
        f"Sync complete in {elapsed:.1f}s: "
        f"created {result.created}, updated {result.updated}, skipped {result.skipped}",
    )


@app.command("scores")
def update_scores(ctx: typer.Context) -> None:
    """Sync the previous and current league week of the current season."""
    services = _services(ctx)
    try:
        results = services.game_sync.update_game_scores()
    except (NoCurrentSeasonError, ConnectorError) as exc:
        console.print(f"[red]Error: {exc}[/red]")
        raise typer.Exit(code=1)

    table = Table(title="Score update")
    table.add_column("Week", justify="right")
    table.add_column("Phase")
    table.add_column("Created", justify="right")
    table.add_column("Updated", justify="right")
    for r in results:
        table.add_row(str(r.week), r.season_phase.label, str(r.created), str(r.updated))
    console.print(table)


@app.command("score-picks")
def score_picks(
    ctx: typer.Context,
    season_id: str | None = typer.Option(None, "--season-id", help="Season to score (default: current)"),
    week: int | None = typer.Option(None, "--week", min=1, help="Single week (default: all weeks)"),
) -> None:
    """Mark picks correct or incorrect from final game results."""
    services = _services(ctx)
    season = _season(services, season_id)
    result = services.scorer.calculate_picks(season.id, week)
    console.print(f"Updated {result.updated_picks} picks for {result.completed_games} completed games")
    console.print(_stats_table(f"Season {season.year}", services.scorer.get_pick_stats(season.id, week)))


@app.command("refresh")
def refresh(
    ctx: typer.Context,
    season_id: str | None = typer.Option(None, "--season-id", help="Season (default: current)"),
    week: int | None = typer.Option(None, "--week", min=1, help="Week (default: current league week)"),
) -> None:
    """Refresh scores for a week only if they are stale."""
    services = _services(ctx)
    if week is None and season_id is None:
        result = services.updater.update_current_week_if_stale()
    else:
        season = _season(services, season_id)
        if week is None:
            week = services.connector.fetch_season_status().week
        result = services.updater.update_scores_if_stale(season.id, week)

    if result.error:
        console.print(f"[red]{result.reason}: {result.error}[/red]")
        raise typer.Exit(code=1)
    console.print(f"{result.reason} (last update: {format_last_update(result.last_update)})")
    if result.updated:
        console.print(
            f"Games updated: {result.games_updated}, created: {result.games_created}, "
            f"picks updated: {result.picks_updated}",
        )


@app.command("status")
def status(ctx: typer.Context) -> None:
    """Show the league calendar, scheduler heuristics and pick stats."""
    services = _services(ctx)
    season_status = services.connector.fetch_season_status()
    sched = services.scheduler.get_status()

    table = Table(title="NFL pick'em status")
    table.add_column("Field")
    table.add_column("Value")
    league = f"{season_status.year} {season_status.phase_label}, week {season_status.week}"
    table.add_row("League season", league)
    current = services.repository.get_current_season()
    table.add_row("Current season", current.year if current else "(none)")
    table.add_row("Game day", str(sched.is_game_day))
    table.add_row("Active game time", str(sched.is_active_game_time))
    table.add_row("Games today", str(services.scheduler.has_games_today()))
    if current is not None:
        last = services.updater.get_last_update_time(current.id, season_status.week)
        table.add_row("Last score update", format_last_update(last))
    console.print(table)

    if current is not None:
        stats = services.scorer.get_pick_stats(current.id)
        console.print(_stats_table(f"Season {current.year} picks", stats))


@app.command("run-scheduler")
def run_scheduler(
    ctx: typer.Context,
    trigger: bool = typer.Option(False, "--trigger", help="Run one full update cycle before scheduling"),
) -> None:
    """Run the periodic score/pick scheduler until interrupted."""
    services = _services(ctx)
    scheduler = services.scheduler
    if trigger:
        outcome = scheduler.trigger_update()
        console.print(f"Manual update: {'ok' if outcome.success else outcome.reason or outcome.error}")
    scheduler.start()
    console.print("[green]Scheduler running[/green] (Ctrl-C to stop)")
    try:
        scheduler.wait()
    except KeyboardInterrupt:
        console.print("Stopping scheduler...")
    finally:
        scheduler.stop()


if __name__ == "__main__":
    app()

"""Command line interface for the verbavox application."""

from __future__ import annotations

import json
from dataclasses import asdict
from typing import Dict, Optional

import typer
from rich.console import Console
from rich.table import Table
from rich.text import Text

from . import config as config_mod
from .comparator import word_diff
from .config import ConfigError
from .dashboard import compute_stats, recent_exercises
from .exercises import ExerciseCatalog, ExerciseNotFound
from .models import Difficulty, SaveOutcome
from .podcasts import EpisodeNotFound, open_catalog, page_metadata, series_jsonld
from .practice import ValidationError, feedback_message, submit_attempt
from .primary import RestPrimaryStore
from .results import ResultStore, open_result_store
from .scoring import PERIOD_DAYS, build_leaderboard, group_by_user
from .storage import StorageError

app = typer.Typer(add_completion=False, help="Listening practice: type what you hear and get scored.")
console = Console()

_OUTCOME_COLOURS = {
    SaveOutcome.PRIMARY: typer.colors.GREEN,
    SaveOutcome.FALLBACK: typer.colors.YELLOW,
    SaveOutcome.FAILED: typer.colors.RED,
}


def _load_config() -> config_mod.Config:
    try:
        return config_mod.load_config()
    except ConfigError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc


def _open_store(cfg: config_mod.Config) -> ResultStore:
    try:
        return open_result_store(cfg)
    except StorageError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(False, "--version", "-v", help="Show version and exit"),
) -> None:
    if version:
        typer.echo("verbavox v0.1.0")
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


@app.command("exercises")
def exercises_command(
    difficulty: Optional[Difficulty] = typer.Option(None, "--difficulty", case_sensitive=False, help="Only show one level."),
    search: Optional[str] = typer.Option(None, "--search", help="Filter by title, description or category."),
) -> None:
    """List available exercises."""

    cfg = _load_config()
    catalog = ExerciseCatalog(RestPrimaryStore.from_config(cfg))
    rows = catalog.search(search) if search else catalog.all()
    if difficulty is not None:
        rows = [exercise for exercise in rows if exercise.difficulty is difficulty]
    if not rows:
        typer.echo("No exercises match your search.")
        return

    table = Table(title="Exercises")
    table.add_column("ID", justify="right")
    table.add_column("Title")
    table.add_column("Level")
    table.add_column("Category")
    table.add_column("Duration")
    for exercise in rows:
        table.add_row(
            str(exercise.id),
            exercise.title,
            exercise.difficulty.value,
            exercise.category,
            exercise.duration,
        )
    console.print(table)


@app.command()
def practice(
    exercise_id: str = typer.Argument(..., help="Identifier of the exercise to practise."),
    text: Optional[str] = typer.Option(None, "--text", help="Transcript to submit; prompts when omitted."),
    show_diff: bool = typer.Option(True, "--diff/--no-diff", help="Show which words were wrong."),
) -> None:
    """Transcribe an exercise and get scored."""

    cfg = _load_config()
    catalog = ExerciseCatalog(RestPrimaryStore.from_config(cfg))
    try:
        exercise = catalog.get(exercise_id)
    except ExerciseNotFound as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc

    typer.secho(f"{exercise.title} ({exercise.difficulty.value}, {exercise.category})", fg=typer.colors.BLUE)
    if exercise.audio_url:
        typer.echo(f"Audio: {exercise.audio_url}")
    if text is None:
        text = typer.prompt("Type what you heard")

    store = _open_store(cfg)
    try:
        submission = submit_attempt(exercise, text, store, user_id=cfg.user_id)
    except ValidationError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc

    comparison = submission.comparison
    typer.echo(f"Accuracy: {comparison.accuracy}%")
    typer.echo(f"Mistakes: {comparison.mistakes}")
    typer.echo(f"Words: {comparison.total_words}")
    if show_diff:
        line = Text()
        for expected, _, correct in word_diff(exercise.text, text):
            if correct:
                line.append(expected + " ", style="green")
            else:
                line.append(expected + " ", style="bold red")
        console.print(line)

    outcome = submission.report.outcome
    typer.secho(
        feedback_message(submission),
        fg=_OUTCOME_COLOURS[outcome],
        err=outcome is SaveOutcome.FAILED,
    )


@app.command()
def history(
    limit: int = typer.Option(10, "--limit", help="Number of attempts to show."),
) -> None:
    """Show recent attempts."""

    cfg = _load_config()
    store = _open_store(cfg)
    try:
        results = store.history(cfg.user_id)
    except StorageError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc
    if not results:
        typer.echo("No attempts yet. Use `verbavox practice` to start.")
        return

    table = Table(title="Recent attempts")
    table.add_column("Exercise")
    table.add_column("Level")
    table.add_column("Accuracy", justify="right")
    table.add_column("When")
    for item in recent_exercises(results, limit=limit):
        table.add_row(item.title, item.difficulty, f"{item.accuracy}%", item.time_ago)
    console.print(table)


@app.command()
def stats() -> None:
    """Show exercises completed, accuracy, streak, level and score."""

    cfg = _load_config()
    store = _open_store(cfg)
    try:
        summary = compute_stats(store.history(cfg.user_id))
    except StorageError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(f"Exercises completed: {summary.exercises_completed}")
    typer.echo(f"Average accuracy: {summary.average_accuracy}%")
    typer.echo(f"Current streak: {summary.streak} day(s)")
    typer.echo(f"Level: {summary.level}")
    typer.echo(f"Score: {summary.score}")


@app.command()
def leaderboard(
    period: str = typer.Option("weekly", "--period", help="weekly, monthly or all_time."),
    search: Optional[str] = typer.Option(None, "--search", help="Filter by username."),
) -> None:
    """Rank everyone who practised on this device."""

    if period not in PERIOD_DAYS:
        typer.secho(f"Unknown period {period!r}. Choose one of: {', '.join(PERIOD_DAYS)}.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    cfg = _load_config()
    store = _open_store(cfg)
    try:
        entries = build_leaderboard(group_by_user(store.all_results()), period=period, query=search)
    except StorageError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc
    if not entries:
        typer.echo("Nobody has practised in this period yet.")
        return

    table = Table(title=f"Leaderboard ({period.replace('_', ' ')})")
    table.add_column("Rank", justify="right")
    table.add_column("User")
    table.add_column("Score", justify="right")
    table.add_column("Exercises", justify="right")
    table.add_column("Accuracy", justify="right")
    for entry in entries:
        table.add_row(str(entry.rank), entry.username, str(entry.score), str(entry.exercises), f"{entry.accuracy}%")
    console.print(table)


@app.command()
def podcasts(
    episode_id: Optional[str] = typer.Argument(None, help="Show a single episode."),
    jsonld: bool = typer.Option(False, "--jsonld", help="Print the schema.org PodcastSeries document."),
) -> None:
    """List English By Ear podcast episodes."""

    cfg = _load_config()
    try:
        catalog = open_catalog(cfg.podcast_path)
    except ValueError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc

    if jsonld:
        typer.echo(json.dumps(series_jsonld(catalog.all()), indent=2))
        return

    if episode_id is not None:
        try:
            episode = catalog.get(episode_id)
        except EpisodeNotFound as exc:
            typer.secho(str(exc), fg=typer.colors.RED, err=True)
            raise typer.Exit(code=1) from exc
        metadata = page_metadata(episode)
        typer.secho(metadata["title"], fg=typer.colors.BLUE)
        typer.echo(episode.description)
        typer.echo(f"Published: {episode.date_published}  Length: {episode.duration}")
        typer.echo(f"Audio: {episode.audio_url}")
        return

    table = Table(title="Podcast episodes")
    table.add_column("ID")
    table.add_column("Title")
    table.add_column("Published")
    table.add_column("Length")
    for episode in catalog.all():
        table.add_row(episode.id, episode.title, episode.date_published, episode.duration)
    console.print(table)


@app.command()
def config(
    user_id: Optional[str] = typer.Option(None, help="Identity used when saving attempts."),
    namespace: Optional[str] = typer.Option(None, help="Key prefix for the fallback store."),
    user_history_cap: Optional[int] = typer.Option(None, help="Attempts kept per user on this device."),
    global_history_cap: Optional[int] = typer.Option(None, help="Attempts kept across all users on this device."),
    server_url: Optional[str] = typer.Option(None, help="Base URL of the hosted primary store."),
    server_token: Optional[str] = typer.Option(None, help="API key for the primary store."),
    verify_ssl: Optional[bool] = typer.Option(
        None,
        "--verify-ssl/--no-verify-ssl",
        help="Toggle TLS certificate verification for primary store calls.",
    ),
    api_timeout: Optional[float] = typer.Option(None, help="HTTP client timeout (seconds) for primary store calls."),
    fallback_path: Optional[str] = typer.Option(None, help="Location of the fallback store database."),
    podcast_path: Optional[str] = typer.Option(None, help="JSON file with podcast episodes; built-in list when unset."),
    show: bool = typer.Option(False, "--show", help="Display the active configuration."),
) -> None:
    """Update or inspect configuration settings."""

    updates: Dict[str, object] = {
        key: value
        for key, value in {
            "user_id": user_id,
            "namespace": namespace,
            "user_history_cap": user_history_cap,
            "global_history_cap": global_history_cap,
            "server_url": server_url,
            "server_token": server_token,
            "verify_ssl": verify_ssl,
            "api_timeout": api_timeout,
            "fallback_path": fallback_path,
            "podcast_path": podcast_path,
        }.items()
        if value is not None
    }

    if show or not updates:
        cfg = _load_config()
        typer.echo(json.dumps(asdict(cfg), indent=2, default=str))
        return

    try:
        config_mod.update_config(**updates)
    except ConfigError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc
    typer.secho("Configuration updated.", fg=typer.colors.BLUE)


if __name__ == "__main__":  # pragma: no cover
    app()

"""kioku CLI: record attempts and inspect vocabulary progress."""

import asyncio
import json
import logging
import sys
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from collections.abc import Awaitable, Callable
from typing import Annotated, Any

import typer

from kioku.application.config import AppConfig, config_file_path, resolve_config
from kioku.domain.constants import CROSS_DECK_REVIEW_LIMIT, RECENT_DECKS_LIMIT

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="kioku: vocabulary mastery and spaced-repetition progress engine.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

config_app = typer.Typer(help="Manage kioku configuration.")
app.add_typer(config_app, name="config")

logger = logging.getLogger(__name__)


def _setup_logging(verbose: int) -> None:
    level = logging.WARNING if verbose <= 0 else logging.INFO if verbose == 1 else logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(levelname)s:%(name)s:%(message)s",
        stream=sys.stderr,
    )


def _resolve_with_overrides(ctx: typer.Context, **overrides: Any) -> AppConfig:
    overrides.update(ctx.obj or {})
    return resolve_config(overrides)


def _emit(data: Any) -> None:
    typer.echo(json.dumps(data, indent=2, ensure_ascii=False))


def _run(config: AppConfig, operation: Callable[[Any], Awaitable[Any]]) -> Any:
    """
    Run one service operation in a fresh event loop and release the store afterwards.
    Progress errors become a red message and exit code 1.
    """
    from kioku.application.factory import get_progress_service
    from kioku.domain.progress.errors import ProgressError

    async def runner():
        service = get_progress_service(config)
        try:
            return await operation(service)
        finally:
            await service.close()

    try:
        return asyncio.run(runner())
    except (ProgressError, ValueError) as e:
        typer.secho(f"Error: {e}", fg="red", err=True)
        raise typer.Exit(1) from None


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity. Repeat for more detail."
        ),
    ] = 1,
    backend: Annotated[
        str | None, typer.Option(help="Progress store backend: memory, sqlite.")
    ] = None,
    database: Annotated[
        Path | None, typer.Option("--database", help="SQLite database path.")
    ] = None,
    decks_dir: Annotated[
        Path | None, typer.Option(help="Directory holding <deck_id>.yaml deck files.")
    ] = None,
):
    """Global settings for kioku."""
    _setup_logging(verbose)
    ctx.ensure_object(dict)
    overrides = {"backend": backend, "database_path": database, "decks_dir": decks_dir}
    ctx.obj.update({k: v for k, v in overrides.items() if v is not None})
    ctx.obj["verbose"] = verbose


# ---------------------------------------------------------------------------
# Write commands
# ---------------------------------------------------------------------------


@app.command()
def attempt(
    ctx: typer.Context,
    user_id: Annotated[str, typer.Argument(help="Learner ID.")],
    deck_id: Annotated[str, typer.Argument(help="Deck ID.")],
    section: Annotated[int, typer.Argument(help="Section index (0-based).")],
    item: Annotated[int, typer.Argument(help="Item index inside the section (0-based).")],
    correct: Annotated[
        bool | None,
        typer.Option("--correct/--incorrect", help="Attempt outcome."),
    ] = None,
    answer: Annotated[
        str | None,
        typer.Option(help="Typed fill-in answer, checked against the item's expected answer."),
    ] = None,
    score: Annotated[
        float | None, typer.Option(help="0-100 evaluation score, used when no outcome is given.")
    ] = None,
    at: Annotated[
        datetime | None, typer.Option(help="Attempt time (ISO 8601, UTC if no offset).")
    ] = None,
):
    """Record one practice [bold green]attempt[/bold green]."""
    from kioku.domain.progress.models import SubmitAttempt
    from kioku.infrastructure.adapters.stores.codec import (
        item_to_dict,
        section_to_dict,
        stats_to_dict,
    )

    if correct is None and answer is None and score is None:
        typer.secho("Pass --correct/--incorrect, --answer or --score.", fg="red", err=True)
        raise typer.Exit(2)

    config = _resolve_with_overrides(ctx)
    submission = SubmitAttempt(
        user_id=user_id,
        deck_id=deck_id,
        section_index=section,
        item_index=item,
        correct=correct,
        occurred_at=at,
        score=score,
        answer=answer,
    )

    result = _run(config, lambda service: service.submit_attempt(submission))

    _emit(
        {
            "item": item_to_dict(result.item),
            "section": section_to_dict(result.section),
            "stats": stats_to_dict(result.stats),
        }
    )


@app.command()
def session(
    ctx: typer.Context,
    user_id: Annotated[str, typer.Argument(help="Learner ID.")],
    deck_id: Annotated[str, typer.Argument(help="Deck ID.")],
    minutes: Annotated[int, typer.Option(min=0, help="Minutes studied in this session.")] = 0,
    at: Annotated[datetime | None, typer.Option(help="Session end time (ISO 8601).")] = None,
):
    """Mark a practice session as completed and update the study streak."""
    config = _resolve_with_overrides(ctx)
    progress = _run(
        config, lambda service: service.complete_session(user_id, deck_id, minutes, at)
    )
    _emit(
        {
            "study_streak": progress.study_streak,
            "longest_streak": progress.longest_streak,
            "sessions_completed": progress.overall_stats.sessions_completed,
            "total_study_time_minutes": progress.overall_stats.total_study_time_minutes,
        }
    )


@app.command()
def reset(
    ctx: typer.Context,
    user_id: Annotated[str, typer.Argument(help="Learner ID.")],
    deck_id: Annotated[str, typer.Argument(help="Deck ID.")],
    section: Annotated[
        int | None, typer.Option(help="Only reset this section index.")
    ] = None,
    force: Annotated[bool, typer.Option("--force", "-f", help="Skip confirmation.")] = False,
):
    """Reset progress for a deck or one of its sections."""
    target = f"section {section} of deck {deck_id}" if section is not None else f"deck {deck_id}"
    if not force and not typer.confirm(f"Reset {user_id}'s progress on {target}?"):
        raise typer.Exit(1)

    config = _resolve_with_overrides(ctx)
    if section is not None:
        progress = _run(
            config, lambda service: service.reset_section_progress(user_id, deck_id, section)
        )
    else:
        progress = _run(config, lambda service: service.reset_deck_progress(user_id, deck_id))
    typer.secho(
        f"Reset {target}; {progress.overall_stats.total_items_practiced} items still tracked.",
        fg="green",
    )


# ---------------------------------------------------------------------------
# Read commands
# ---------------------------------------------------------------------------


@app.command()
def progress(
    ctx: typer.Context,
    user_id: Annotated[str, typer.Argument(help="Learner ID.")],
    deck_id: Annotated[str, typer.Argument(help="Deck ID.")],
):
    """Show the full progress record for a deck."""
    from kioku.infrastructure.adapters.stores.codec import progress_to_dict

    config = _resolve_with_overrides(ctx)
    result = _run(config, lambda service: service.get_deck_progress(user_id, deck_id))
    _emit(progress_to_dict(result))


@app.command()
def review(
    ctx: typer.Context,
    user_id: Annotated[str, typer.Argument(help="Learner ID.")],
    deck_id: Annotated[str, typer.Argument(help="Deck ID.")],
    limit: Annotated[int | None, typer.Option(min=1, help="Maximum items to list.")] = None,
    at: Annotated[datetime | None, typer.Option(help="Evaluate due items at this time.")] = None,
):
    """List items due for review, most overdue first."""
    config = _resolve_with_overrides(ctx)
    keys = _run(
        config,
        lambda service: service.get_items_needing_review(
            user_id, deck_id, at, limit or config.review_limit
        ),
    )
    if not keys:
        typer.secho("Nothing to review.", fg="yellow", err=True)
    _emit([{"section_index": k.section_index, "item_index": k.item_index} for k in keys])


@app.command()
def completion(
    ctx: typer.Context,
    user_id: Annotated[str, typer.Argument(help="Learner ID.")],
    deck_id: Annotated[str, typer.Argument(help="Deck ID.")],
    total_items: Annotated[int, typer.Option(min=0, help="Number of items in the deck.")],
):
    """Percentage of the deck's items at MASTERED level."""
    config = _resolve_with_overrides(ctx)
    percent = _run(
        config, lambda service: service.get_completion_percentage(user_id, deck_id, total_items)
    )
    _emit({"completion_percentage": percent})


@app.command()
def stats(
    ctx: typer.Context,
    user_id: Annotated[str, typer.Argument(help="Learner ID.")],
):
    """Statistics for a learner across every deck."""
    config = _resolve_with_overrides(ctx)
    result = _run(config, lambda service: service.get_user_stats(user_id))
    _emit(asdict(result))


@app.command("review-all")
def review_all(
    ctx: typer.Context,
    user_id: Annotated[str, typer.Argument(help="Learner ID.")],
    limit: Annotated[
        int, typer.Option(min=1, help="Maximum items to list.")
    ] = CROSS_DECK_REVIEW_LIMIT,
    at: Annotated[datetime | None, typer.Option(help="Evaluate due items at this time.")] = None,
):
    """List items due for review across every deck, most overdue first."""
    from kioku.infrastructure.adapters.stores.codec import due_item_to_dict

    config = _resolve_with_overrides(ctx)
    items = _run(
        config, lambda service: service.get_all_items_needing_review(user_id, at, limit)
    )
    if not items:
        typer.secho("Nothing to review.", fg="yellow", err=True)
    _emit([due_item_to_dict(i) for i in items])


@app.command()
def decks(
    ctx: typer.Context,
    user_id: Annotated[str, typer.Argument(help="Learner ID.")],
    limit: Annotated[int, typer.Option(min=1, help="Maximum decks to list.")] = RECENT_DECKS_LIMIT,
):
    """List the learner's decks, most recently studied first."""
    from kioku.infrastructure.adapters.stores.codec import deck_summary_to_dict

    config = _resolve_with_overrides(ctx)
    result = _run(config, lambda service: service.get_recent_decks(user_id, limit))
    _emit([deck_summary_to_dict(p) for p in result])


# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------


@app.command()
def server(
    ctx: typer.Context,
    host: Annotated[str | None, typer.Option(help="Bind address.")] = None,
    port: Annotated[int | None, typer.Option(help="Port to listen on.")] = None,
    reload: Annotated[bool, typer.Option("--reload", help="Auto-reload on code changes.")] = False,
):
    """Start the HTTP API server."""
    import os

    import uvicorn

    config = _resolve_with_overrides(ctx, host=host, port=port)
    # The server process resolves its own config; pass CLI overrides through the env.
    for key in ("backend", "database_path", "decks_dir"):
        if key in (ctx.obj or {}):
            os.environ[f"KIOKU_{key.upper()}"] = str(ctx.obj[key])

    uvicorn.run("kioku.server:app", host=config.host, port=config.port, reload=reload)


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show(ctx: typer.Context):
    """Display final resolved configuration."""
    config = _resolve_with_overrides(ctx)
    d = {k: str(v) if isinstance(v, Path) else v for k, v in config.model_dump().items()}
    typer.echo(json.dumps(d, indent=2))


@config_app.command("path")
def config_path():
    """Print the location of the config file."""
    typer.echo(str(config_file_path()))


if __name__ == "__main__":
    app()

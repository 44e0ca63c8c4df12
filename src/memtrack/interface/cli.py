"""memtrack CLI — stats reports, session recording, live watch and server."""

import asyncio
import json
import logging
import sys
from datetime import datetime
from typing import Annotated

import typer

from memtrack.application.config import resolve_config
from memtrack.interface._common import (
    _resolve_with_overrides,
    format_update,
    parse_range,
    recent_to_dict,
    run_closing,
    update_to_dict,
)

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="memtrack: Session analytics for memory-training games.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)

config_app = typer.Typer(help="Manage memtrack configuration.")
app.add_typer(config_app, name="config")


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
):
    """Global settings for memtrack."""
    ctx.ensure_object(dict)
    ctx.obj["verbose_bonus"] = verbose


# ---------------------------------------------------------------------------
# Root commands
# ---------------------------------------------------------------------------


@app.command()
def stats(
    ctx: typer.Context,
    period: Annotated[
        str | None, typer.Option(help="today, week, month, all, custom or recent. Defaults to config.")
    ] = None,
    start: Annotated[str | None, typer.Option(help="Custom range start (YYYY-MM-DD).")] = None,
    end: Annotated[str | None, typer.Option(help="Custom range end (YYYY-MM-DD).")] = None,
    user: Annotated[str | None, typer.Option(help="User id.")] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Output raw JSON.")] = False,
):
    """Show [bold green]accuracy and activity[/bold green] for a period."""
    config = _resolve_with_overrides(
        user_id=user, default_period=period, verbose=ctx.obj.get("verbose_bonus", 1)
    )
    try:
        custom_range = parse_range(start, end)
    except ValueError as e:
        typer.secho(f"Invalid date: {e}", fg="red")
        raise typer.Exit(2)

    from memtrack.application.factory import build_stats_service

    service = build_stats_service(config)
    update = asyncio.run(
        run_closing(service.store, service.get_report(config.default_period, custom_range))
    )

    if as_json:
        typer.echo(json.dumps(update_to_dict(update), indent=2))
    else:
        typer.echo(format_update(update))


@app.command()
def record(
    ctx: typer.Context,
    category: Annotated[str, typer.Argument(help="Game category, e.g. 'people' or 'Category Match'.")],
    total: Annotated[int, typer.Option("--total", min=0, help="Questions shown.")],
    correct: Annotated[int, typer.Option("--correct", min=0, help="Correct answers.")],
    skipped: Annotated[int, typer.Option("--skipped", min=0, help="Skipped cards.")] = 0,
    seconds: Annotated[float, typer.Option("--time", min=0, help="Seconds spent.")] = 0.0,
    user: Annotated[str | None, typer.Option(help="User id.")] = None,
):
    """Record a finished session (remote + local copy)."""
    from memtrack.application.factory import build_session_store
    from memtrack.domain.stats.errors import StorageQuotaExceeded
    from memtrack.domain.stats.models import SessionRecord

    config = _resolve_with_overrides(user_id=user, verbose=ctx.obj.get("verbose_bonus", 1))
    store = build_session_store(config)
    session = SessionRecord(
        category=category,
        total_questions=total,
        correct_answers=correct,
        skipped=skipped,
        total_time=seconds,
        timestamp=datetime.now(store.user.tz),
    )

    try:
        result = asyncio.run(run_closing(store, store.append(session)))
    except StorageQuotaExceeded as e:
        typer.secho(f"Could not save session locally: {e}", fg="red")
        raise typer.Exit(1)

    if result.remote_ok:
        typer.secho("Session saved.", fg="green")
    else:
        typer.secho("Session saved locally; remote save failed.", fg="yellow")


@app.command()
def recent(
    ctx: typer.Context,
    limit: Annotated[int | None, typer.Option(help="Number of sessions to show.")] = None,
    user: Annotated[str | None, typer.Option(help="User id.")] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Output raw JSON.")] = False,
):
    """List the most recent sessions, newest first."""
    from memtrack.application.factory import build_session_store
    from memtrack.application.stats.insights import recent_sessions

    config = _resolve_with_overrides(
        user_id=user, recent_limit=limit, verbose=ctx.obj.get("verbose_bonus", 1)
    )
    store = build_session_store(config)
    result = asyncio.run(run_closing(store, store.fetch()))
    items = recent_sessions(result.records, limit=config.recent_limit)

    if as_json:
        typer.echo(json.dumps([recent_to_dict(i) for i in items], indent=2))
        return

    if not items:
        typer.secho("No sessions found.", fg="yellow")
        return

    tz = config.get_tz()
    for item in items:
        r = item.record
        typer.echo(
            f"{r.timestamp.astimezone(tz):%Y-%m-%d %H:%M}  {r.category:<24} "
            f"{r.correct_answers}/{r.total_questions}  {item.accuracy:>3}%  {item.duration_minutes} min"
        )


@app.command()
def watch(
    ctx: typer.Context,
    period: Annotated[str | None, typer.Option(help="Period mode to display.")] = None,
    user: Annotated[str | None, typer.Option(help="User id.")] = None,
):
    """Stream live stats updates until interrupted."""
    from memtrack.application.factory import build_coordinator

    config = _resolve_with_overrides(
        user_id=user, default_period=period, verbose=ctx.obj.get("verbose_bonus", 1)
    )

    def on_update(update):
        typer.echo(format_update(update))
        typer.echo("-" * 40)

    async def run():
        coordinator = build_coordinator(config, on_update)
        await coordinator.start()
        try:
            await asyncio.Event().wait()
        finally:
            await coordinator.dispose()

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        typer.echo("Stopped.")


@app.command()
def serve(
    host: Annotated[str, typer.Option(help="Bind address.")] = "127.0.0.1",
    port: Annotated[int, typer.Option(help="Port.")] = 8777,
):
    """Run the stats HTTP server."""
    import uvicorn

    uvicorn.run("memtrack.server:app", host=host, port=port)


# ---------------------------------------------------------------------------
# Config commands
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show():
    """Print the resolved configuration as JSON."""
    config = resolve_config()
    typer.echo(json.dumps(config.model_dump(mode="json"), indent=2))


def main():
    app()


if __name__ == "__main__":
    main()

# src/due_lens/cli/main.py

"""
CLI entrypoint.

- `annotate`: fetch tasks, annotate a saved calendar page, write the result.
- `tasks`: fetch tasks and print them with their due badge.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from datetime import UTC, datetime
from pathlib import Path

import typer

from ..config import Settings
from ..core.models import TaskRecord
from ..core.session import annotate_snapshot, fetch_task_set
from ..core.state import create_api_state
from ..dom.badges import badge_for
from .bootstrap import init_runtime, pick_credentials

logger = logging.getLogger(__name__)

app = typer.Typer(help="due-lens: due-date badges for calendar task blocks", no_args_is_help=True)

MISSING_KEY_MESSAGE = "API key not found. Set DUELENS_API_KEY or pass --api-key."


@app.command()
def annotate(
    input_html: Path = typer.Argument(..., exists=True, dir_okay=False, help="Saved calendar page"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write here instead of stdout"),
    api_key: str | None = typer.Option(None, help="API key (defaults to DUELENS_API_KEY)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging on the console"),
) -> None:
    """Annotate task blocks in an HTML snapshot with days-until-due badges."""
    settings = init_runtime(verbose=verbose)
    credentials = pick_credentials(settings, api_key)

    html = input_html.read_text("utf-8")
    result = asyncio.run(annotate_snapshot(html, settings=settings, credentials=credentials))
    if result is None:
        typer.echo(MISSING_KEY_MESSAGE, err=True)
        raise typer.Exit(code=1)

    if output is None:
        sys.stdout.write(result)
        return
    output.write_text(result, "utf-8")
    logger.info("Wrote annotated page to %s", output)


async def _load_tasks(settings: Settings, api_key: str) -> tuple[TaskRecord, ...]:
    state = create_api_state(settings, api_key)
    try:
        return await fetch_task_set(state)
    finally:
        await state.aclose()


@app.command()
def tasks(
    api_key: str | None = typer.Option(None, help="API key (defaults to DUELENS_API_KEY)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging on the console"),
) -> None:
    """List fetched tasks with their due badge."""
    settings = init_runtime(verbose=verbose)
    key = pick_credentials(settings, api_key).get_api_key()
    if not key:
        typer.echo(MISSING_KEY_MESSAGE, err=True)
        raise typer.Exit(code=1)

    records = asyncio.run(_load_tasks(settings, key))
    now = datetime.now(UTC)
    for rec in records:
        label = badge_for(rec.due_date, now).label if rec.due_date else "-"
        typer.echo(f"{rec.id}\t{label}\t{rec.name}")
    typer.echo(f"{len(records)} tasks", err=True)


def main() -> None:
    app()


if __name__ == "__main__":
    main()

"""Repetita CLI — root commands and subgroup registration."""

import asyncio
import json
import logging
import logging.handlers
import sys
from typing import Annotated

import typer

from repetita.application.config import AppConfig, resolve_config
from repetita.domain.exceptions import RepetitaError

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="repetita: SM-2 spaced-repetition scheduler for flashcard sets.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)

LOG_HANDLER_NAME = "repetita-file"

# ---------------------------------------------------------------------------
# Subgroups
# ---------------------------------------------------------------------------

cards_app = typer.Typer(help="Manage the flashcard catalogue.", no_args_is_help=True)
app.add_typer(cards_app, name="cards")

learners_app = typer.Typer(help="Manage learner review history.", no_args_is_help=True)
app.add_typer(learners_app, name="learners")

config_app = typer.Typer(help="Manage repetita configuration.", no_args_is_help=True)
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
    ] = 0,
):
    """Global settings for repetita."""
    ctx.ensure_object(dict)
    config = _config()
    # -v on the command line wins over the configured default
    verbose = verbose or config.verbose
    ctx.obj["verbose"] = verbose
    if verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    setup_file_logging(config, level)


def _config() -> AppConfig:
    return resolve_config()


def setup_file_logging(config: AppConfig, level: int) -> logging.Logger:
    """
    Set the package log level and attach a rotating file handler under config.log_dir.

    Handlers from a previous invocation are closed first, so repeated calls in
    one process never write the same record twice.
    """
    pkg_logger = logging.getLogger("repetita")
    pkg_logger.setLevel(level)

    for handler in list(pkg_logger.handlers):
        if getattr(handler, "name", None) == LOG_HANDLER_NAME:
            pkg_logger.removeHandler(handler)
            handler.close()

    config.log_dir.mkdir(parents=True, exist_ok=True)
    file_handler = logging.handlers.RotatingFileHandler(
        config.log_dir / "repetita.log",
        maxBytes=5 * 1024 * 1024,
        backupCount=3,
        encoding="utf-8",
    )
    file_handler.set_name(LOG_HANDLER_NAME)
    file_handler.setLevel(level)
    file_handler.setFormatter(
        logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    )
    pkg_logger.addHandler(file_handler)
    return pkg_logger


def _run(coro):
    """Run a service coroutine, turning domain errors into a clean exit."""
    try:
        return asyncio.run(coro)
    except RepetitaError as e:
        typer.secho(f"Error: {e}", fg="red", err=True)
        raise typer.Exit(1) from e


# ---------------------------------------------------------------------------
# Root commands
# ---------------------------------------------------------------------------


@app.command()
def session(
    learner_id: Annotated[str, typer.Argument(help="Learner identifier.")],
    set_id: Annotated[int, typer.Argument(help="Flashcard set to study.")],
    limit: Annotated[
        int | None, typer.Option(help="Maximum cards to return (0 for all).")
    ] = None,
):
    """List the cards due for review in a set, oldest-due first."""
    from repetita.application.factory import build_session_service

    service = build_session_service(_config())
    card_ids = _run(service.start_session(learner_id, set_id, limit))

    if not card_ids:
        typer.secho("No cards due.", fg="green")
        return
    for card_id in card_ids:
        typer.echo(card_id)


@app.command()
def review(
    learner_id: Annotated[str, typer.Argument(help="Learner identifier.")],
    card_id: Annotated[int, typer.Argument(help="Reviewed card.")],
    quality: Annotated[int, typer.Argument(help="Recall quality, 0 (forgot) to 5 (perfect).")],
):
    """Record a review and print the next due date."""
    from repetita.application.factory import build_session_service

    service = build_session_service(_config())
    result = _run(service.submit_review(learner_id, card_id, quality))

    typer.secho(result.message, fg="green" if result.state.repetition_count else "yellow")
    typer.echo(
        f"interval={result.interval_days}d "
        f"next={result.next_review_at.isoformat()} "
        f"ef={result.state.easiness_factor:.2f} "
        f"reps={result.state.repetition_count}"
    )


@app.command()
def stats(
    learner_id: Annotated[str, typer.Argument(help="Learner identifier.")],
    set_id: Annotated[int, typer.Argument(help="Flashcard set.")],
):
    """Show the learner's progress over a set as JSON."""
    from dataclasses import asdict

    from repetita.application.factory import build_session_service

    service = build_session_service(_config())
    summary = _run(service.get_set_statistics(learner_id, set_id))
    typer.echo(json.dumps(asdict(summary), indent=2, default=str))


@app.command()
def serve(
    host: Annotated[str | None, typer.Option(help="Bind address.")] = None,
    port: Annotated[int | None, typer.Option(help="Bind port.")] = None,
    reload: Annotated[bool, typer.Option("--reload", help="Auto-reload on code changes.")] = False,
):
    """Run the HTTP server."""
    import uvicorn

    config = _config()
    uvicorn.run(
        "repetita.server:app",
        host=host or config.host,
        port=port or config.port,
        reload=reload,
    )


# ---------------------------------------------------------------------------
# cards
# ---------------------------------------------------------------------------


@cards_app.command("add")
def cards_add(
    set_id: Annotated[int, typer.Argument(help="Set the cards belong to.")],
    card_ids: Annotated[list[int], typer.Argument(help="Card ids to register.")],
):
    """Register cards as members of a set."""
    from repetita.application.factory import get_flashcard_store

    store = get_flashcard_store(_config())
    added = _run(store.add_cards(set_id, card_ids))
    typer.secho(f"Added {added} card(s) to set {set_id}.", fg="green")


@cards_app.command("remove")
def cards_remove(
    card_id: Annotated[int, typer.Argument(help="Card to delete.")],
):
    """Delete a card and every learner's review state for it."""
    from repetita.application.factory import get_flashcard_store

    store = get_flashcard_store(_config())
    if not _run(store.remove_card(card_id)):
        typer.secho(f"Card {card_id} not found.", fg="yellow")
        raise typer.Exit(1)
    typer.secho(f"Removed card {card_id}.", fg="green")


# ---------------------------------------------------------------------------
# learners
# ---------------------------------------------------------------------------


@learners_app.command("remove")
def learners_remove(
    learner_id: Annotated[str, typer.Argument(help="Learner to forget.")],
):
    """Delete every review state recorded for a learner."""
    from repetita.application.factory import get_flashcard_store

    store = get_flashcard_store(_config())
    removed = _run(store.remove_learner(learner_id))
    typer.secho(f"Removed {removed} review state(s) for learner {learner_id}.", fg="green")


# ---------------------------------------------------------------------------
# config
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show():
    """Print the resolved configuration as JSON."""
    config = resolve_config()
    typer.echo(json.dumps(config.model_dump(), indent=2, default=str))


if __name__ == "__main__":
    app()

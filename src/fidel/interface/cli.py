"""fidel CLI: study, progress and configuration commands."""

import json
import logging
import sys
from typing import Annotated, Any, get_args

import typer
from pydantic import TypeAdapter

from fidel.application.config import AppConfig, resolve_config
from fidel.application.factory import get_card_source, get_learner_service
from fidel.application.progress.analyzer import ProgressSummary
from fidel.application.service import DeckOverview
from fidel.consts import VERSION
from fidel.domain.errors import FidelError
from fidel.domain.models import Achievement, Card, CardFilter, Category, Difficulty, StudyMode, TimeRange

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="fidel: spaced-repetition phrase trainer.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

config_app = typer.Typer(help="Manage fidel configuration.")
app.add_typer(config_app, name="config")

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)

_LOG_LEVELS = {0: logging.ERROR, 1: logging.WARNING, 2: logging.INFO}

_SUMMARY_ADAPTER = TypeAdapter(ProgressSummary)
_OVERVIEW_ADAPTER = TypeAdapter(DeckOverview)
_ACHIEVEMENTS_ADAPTER = TypeAdapter(list[Achievement])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _choice(value: str | None, allowed: tuple[str, ...], name: str) -> Any:
    if value is not None and value not in allowed:
        raise typer.BadParameter(f"{name} must be one of: {', '.join(allowed)}")
    return value


def _resolve_with_overrides(ctx: typer.Context, **overrides: Any) -> AppConfig:
    verbose = ctx.obj.get("verbose") if ctx.obj else None
    if verbose is not None:
        overrides["verbose"] = verbose
    config = resolve_config(overrides)
    logging.getLogger().setLevel(_LOG_LEVELS.get(config.verbose, logging.DEBUG))
    return config


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"fidel {VERSION}")
        raise typer.Exit()


def _show_answer(card: Card) -> None:
    typer.secho(f"  {card.back}", fg="green", bold=True)
    if card.pronunciation:
        typer.echo(f"  pronunciation: {card.pronunciation}")
    if card.cultural_note:
        typer.echo(f"  note: {card.cultural_note}")


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
    version: Annotated[
        bool,
        typer.Option("--version", callback=_version_callback, is_eager=True, help="Show the version and exit."),
    ] = False,
):
    """Global settings for fidel."""
    ctx.ensure_object(dict)
    # count=True yields 0 when the flag is absent; leave config in charge then
    ctx.obj["verbose"] = (verbose + 1) if verbose else None


# ---------------------------------------------------------------------------
# Study
# ---------------------------------------------------------------------------


@app.command()
def study(
    ctx: typer.Context,
    mode: Annotated[
        str | None, typer.Option(help="Traversal order: sequential, random or spaced.")
    ] = None,
    category: Annotated[
        str | None, typer.Option(help="Only study one category.")
    ] = None,
    difficulty: Annotated[
        str | None, typer.Option(help="Only study one difficulty level.")
    ] = None,
    limit: Annotated[int | None, typer.Option(min=1, help="Maximum number of cards.")] = None,
    learner: Annotated[str | None, typer.Option(help="Learner id.")] = None,
):
    """[bold green]Study[/bold green] a deck of phrase flashcards."""
    study_mode: StudyMode | None = _choice(mode, get_args(StudyMode), "--mode")
    card_filter = CardFilter(
        category=_choice(category, get_args(Category), "--category"),
        difficulty=_choice(difficulty, get_args(Difficulty), "--difficulty"),
    )
    config = _resolve_with_overrides(ctx, study_mode=study_mode, learner_id=learner)

    try:
        service = get_learner_service(config)
        session = service.start_session(config.learner_id, config.study_mode, card_filter, limit)
    except FidelError as e:
        typer.secho(str(e), fg="red")
        raise typer.Exit(1) from e

    typer.echo(f"Studying {len(session.cards)} cards ({session.study_mode}).")
    while True:
        card = session.current_card
        if card is None:
            break
        typer.echo("")
        typer.secho(
            f"[{session.index + 1}/{len(session.cards)}] {card.front}  "
            f"({card.category}, {card.difficulty})",
            bold=True,
        )
        action = typer.prompt(
            "[Enter] reveal  [p] previous  [s] shuffle  [f] finish  [q] quit",
            default="",
            show_default=False,
        ).strip().lower()

        if action == "q":
            session.abandon()
            typer.secho("Session abandoned; nothing was recorded.", fg="yellow")
            return
        if action == "f":
            service.complete_session(session)
            break
        if action == "p":
            session.previous()
            continue
        if action == "s":
            session.shuffle()
            continue

        _show_answer(session.reveal())
        correct = typer.confirm("Did you know it?", default=True)
        state = service.grade(session, correct)
        typer.echo(f"  next review in {state.interval} day(s)")
        session.advance()

    record = session.session
    if record is None:
        return
    typer.echo("")
    typer.secho(
        f"Session complete: {record.correct_answers}/{record.total_answers} correct "
        f"({session.accuracy_percentage}%), {record.time_spent_minutes} min.",
        fg="green",
    )


# ---------------------------------------------------------------------------
# Reporting
# ---------------------------------------------------------------------------


@app.command()
def cards(
    ctx: typer.Context,
    category: Annotated[str | None, typer.Option(help="Filter by category.")] = None,
    difficulty: Annotated[str | None, typer.Option(help="Filter by difficulty.")] = None,
):
    """List the cards in the deck."""
    card_filter = CardFilter(
        category=_choice(category, get_args(Category), "--category"),
        difficulty=_choice(difficulty, get_args(Difficulty), "--difficulty"),
    )
    config = _resolve_with_overrides(ctx)
    try:
        deck = get_card_source(config).list_cards(card_filter)
    except FidelError as e:
        typer.secho(str(e), fg="red")
        raise typer.Exit(1) from e

    for card in deck:
        typer.echo(f"{card.id:<24} {card.category:<10} {card.difficulty:<13} {card.front} = {card.back}")
    typer.echo(f"{len(deck)} cards")


@app.command()
def stats(
    ctx: typer.Context,
    time_range: Annotated[
        str, typer.Option("--range", help="Window for weekly activity: week, month or all.")
    ] = "week",
    learner: Annotated[str | None, typer.Option(help="Learner id.")] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print JSON.")] = False,
):
    """Show streaks, accuracy and weekly activity."""
    selected: TimeRange = _choice(time_range, get_args(TimeRange), "--range")
    config = _resolve_with_overrides(ctx, learner_id=learner)
    try:
        service = get_learner_service(config)
        summary = service.progress(config.learner_id, selected)
        overview = service.overview(config.learner_id)
    except FidelError as e:
        typer.secho(str(e), fg="red")
        raise typer.Exit(1) from e

    if as_json:
        payload = {
            "summary": _SUMMARY_ADAPTER.dump_python(summary, mode="json"),
            "deck": _OVERVIEW_ADAPTER.dump_python(overview, mode="json"),
        }
        typer.echo(json.dumps(payload, indent=2))
        return

    typer.echo(f"Phrases learned: {overview.learned_cards}/{overview.total_cards} ({overview.due_cards} due)")
    typer.echo(f"Sessions: {summary.total_sessions}  Study time: {summary.total_study_minutes} min")
    typer.echo(f"Average session: {summary.average_session_minutes} min")
    typer.echo(f"Accuracy: {round(summary.average_accuracy * 100)}%")
    typer.echo(f"Current streak: {summary.current_streak} day(s)  Longest: {summary.longest_streak}")
    typer.echo(f"Activity ({summary.time_range}):")
    for day in summary.weekly_activity:
        typer.echo(
            f"  {day.day}  sessions={day.session_count:<3} "
            f"accuracy={round(day.avg_accuracy * 100):>3}%  minutes={day.total_minutes}"
        )


@app.command()
def achievements(
    ctx: typer.Context,
    learner: Annotated[str | None, typer.Option(help="Learner id.")] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print JSON.")] = False,
):
    """Show achievements and unlock dates."""
    config = _resolve_with_overrides(ctx, learner_id=learner)
    try:
        result = get_learner_service(config).achievements(config.learner_id)
    except FidelError as e:
        typer.secho(str(e), fg="red")
        raise typer.Exit(1) from e

    if as_json:
        typer.echo(json.dumps(_ACHIEVEMENTS_ADAPTER.dump_python(result, mode="json"), indent=2))
        return

    for a in result:
        if a.unlocked_at is not None:
            typer.secho(f"[x] {a.title}: {a.description} (unlocked {a.unlocked_at:%Y-%m-%d})", fg="green")
        else:
            typer.echo(f"[ ] {a.title}: {a.description} ({a.progress}/{a.target})")


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show():
    """Display final resolved configuration."""
    config = resolve_config()
    typer.echo(json.dumps(config.model_dump(mode="json"), indent=2))


def main():
    app()


if __name__ == "__main__":
    main()

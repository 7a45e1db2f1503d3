"""SmartLearn CLI: interactive study loop, progress and config commands."""

import asyncio
import dataclasses
import json
import logging
import sys
import time
from pathlib import Path
from typing import Annotated, Any

import typer

from smartlearn.application.config import AppConfig, resolve_config
from smartlearn.domain.learn.errors import NotFoundError, RatingLockedError
from smartlearn.domain.learn.models import (
    MultipleChoiceQuestion,
    Result,
    ReviewDifficultyChoice,
)

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="smartlearn: Adaptive flashcard review in your terminal.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

config_app = typer.Typer(help="Manage smartlearn configuration.")
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

QUIT_WORDS = {":q", ":quit"}
DONT_KNOW = "?"

RESULT_COLORS = {
    Result.CORRECT: "green",
    Result.CORRECT_MINOR: "green",
    Result.INCORRECT: "red",
    Result.SKIP: "yellow",
}

CHOICE_KEYS = {
    "1": ReviewDifficultyChoice.VERY_HARD,
    "2": ReviewDifficultyChoice.HARD,
    "3": ReviewDifficultyChoice.AGAIN,
    "4": ReviewDifficultyChoice.NORMAL,
}


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
    """Global settings for smartlearn."""
    ctx.ensure_object(dict)
    ctx.obj["verbose_bonus"] = verbose


def _configure_logging(verbose: int) -> None:
    if verbose >= 2:
        logging.getLogger().setLevel(logging.DEBUG)
    elif verbose == 1:
        logging.getLogger().setLevel(logging.INFO)
    else:
        logging.getLogger().setLevel(logging.WARNING)


def _resolve_with_overrides(ctx: typer.Context, **overrides: Any) -> AppConfig:
    # -v on the command line beats SMARTLEARN_VERBOSE and the config file
    overrides["verbose"] = (ctx.obj or {}).get("verbose_bonus") or None
    config = resolve_config(overrides)
    _configure_logging(config.verbose)
    return config


# ---------------------------------------------------------------------------
# Study
# ---------------------------------------------------------------------------


def _read_answer(question) -> str | None:
    """Prompt for an answer. Returns None for a skip."""
    raw = typer.prompt("Answer", default="", show_default=False).strip()
    if not raw:
        return None
    if isinstance(question, MultipleChoiceQuestion) and raw.isdigit():
        choice = int(raw)
        if 1 <= choice <= len(question.options):
            return question.options[choice - 1]
    return raw


async def _ask_rating(service, user: str, library: str, card_id: str) -> None:
    meta = await service.get_difficulty_meta(user, library, card_id)
    if meta is None or not meta.should_prompt:
        return

    typer.secho(
        "This card keeps tripping you up. How hard does it feel? "
        "[1] very hard  [2] hard  [3] again  [4] normal  (blank to skip)",
        fg="cyan",
    )
    raw = typer.prompt("Rating", default="", show_default=False).strip()
    choice = CHOICE_KEYS.get(raw)
    if choice is None:
        return
    try:
        await service.record_choice(user, library, card_id, choice)
    except RatingLockedError:
        typer.secho("You rated this card recently. Keep practising first.", fg="yellow")


async def run_study(
    config: AppConfig,
    library: str,
    user: str,
    limit: int | None,
    mc: bool,
    typed: bool,
) -> None:
    from smartlearn.application.factory import get_session_service

    service = get_session_service(config)
    await service.get_session(user, library)
    # Flags describe this run only; a saved --no-mc must not outlive it
    await service.set_mode_preferences(user, library, mc=mc, typed=typed)

    answered = 0
    try:
        while limit is None or answered < limit:
            question = await service.next_question(user, library)
            if question is None:
                typer.secho("Every card is mastered. Nice work!", fg="green")
                break

            typer.echo("")
            typer.secho(question.prompt, bold=True)
            if isinstance(question, MultipleChoiceQuestion):
                for n, option in enumerate(question.options, start=1):
                    typer.echo(f"  {n}. {option}")
            elif question.hint:
                typer.echo(f"  hint: {question.hint}")

            started = time.monotonic()
            answer = _read_answer(question)
            elapsed_ms = int((time.monotonic() - started) * 1000)

            if answer is not None and answer.lower() in QUIT_WORDS:
                break

            card = (await service.get_session(user, library)).engine.get_card(question.card_id)
            if answer == DONT_KNOW:
                await service.mark_card_as_hard(user, library, question.card_id)
                typer.secho(f"Answer: {card.back}", fg="yellow")
                await _ask_rating(service, user, library, question.card_id)
                answered += 1
                continue

            result = await service.submit_answer(
                user, library, question.card_id, answer, ms=elapsed_ms
            )
            answered += 1
            message = result.value
            if result is not Result.CORRECT:
                message += f" (answer: {card.back})"
            typer.secho(message, fg=RESULT_COLORS[result])

            await _ask_rating(service, user, library, question.card_id)
    finally:
        await service.flush(user, library)

    summary = await service.get_progress(user, library)
    typer.echo(
        f"\nMastered {summary.mastered}/{summary.total} "
        f"({summary.percent_mastered}%), accuracy {summary.accuracy_overall:.0%}"
    )


@app.command()
def study(
    ctx: typer.Context,
    library: Annotated[str, typer.Argument(help="Library id (file name without extension).")],
    user: Annotated[str | None, typer.Option(help="Learner id. Defaults to config.")] = None,
    limit: Annotated[
        int | None, typer.Option(help="Stop after this many questions.", min=1)
    ] = None,
    mc: Annotated[bool, typer.Option("--mc/--no-mc", help="Allow multiple choice.")] = True,
    typed: Annotated[
        bool, typer.Option("--typed/--no-typed", help="Allow typed recall.")
    ] = True,
    library_dir: Annotated[
        Path | None, typer.Option(help="Directory holding library files.")
    ] = None,
):
    """[bold green]Study[/bold green] a library. Blank skips, '?' reveals, ':q' quits."""
    if not mc and not typed:
        typer.secho("At least one of --mc/--typed must stay enabled.", fg="red")
        raise typer.Exit(2)

    config = _resolve_with_overrides(ctx, library_dir=library_dir)
    user_id = user or config.default_user

    try:
        asyncio.run(run_study(config, library, user_id, limit, mc, typed))
    except NotFoundError as e:
        typer.secho(str(e), fg="red")
        raise typer.Exit(1)


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------


@app.command()
def progress(
    ctx: typer.Context,
    library: Annotated[str, typer.Argument(help="Library id.")],
    user: Annotated[str | None, typer.Option(help="Learner id. Defaults to config.")] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print JSON.")] = False,
    library_dir: Annotated[
        Path | None, typer.Option(help="Directory holding library files.")
    ] = None,
):
    """Show mastery progress for a library."""
    from smartlearn.application.factory import get_session_service
    from smartlearn.application.learn.progress import ProgressCalculator

    config = _resolve_with_overrides(ctx, library_dir=library_dir)
    user_id = user or config.default_user
    service = get_session_service(config)

    try:
        session = asyncio.run(service.get_session(user_id, library))
    except NotFoundError as e:
        typer.secho(str(e), fg="red")
        raise typer.Exit(1)

    detailed = ProgressCalculator().detailed(session.engine)
    if as_json:
        typer.echo(json.dumps(dataclasses.asdict(detailed), indent=2))
        return

    s = detailed.summary
    typer.echo(f"Library:   {library}")
    typer.echo(f"Cards:     {s.total}")
    typer.echo(f"Mastered:  {s.mastered} ({s.percent_mastered}%)")
    typer.echo(f"Learning:  {s.learning}")
    typer.echo(f"New:       {s.fresh}")
    typer.echo(f"Due now:   {s.due}")
    typer.echo(f"Accuracy:  {s.accuracy_overall:.0%}")
    for level, bucket in enumerate(detailed.levels):
        typer.echo(f"  level {level}: {bucket.count} ({bucket.percent}%)")


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show():
    """Display final resolved configuration."""
    config = resolve_config()
    d = config.model_dump(mode="json")
    typer.echo(json.dumps(d, indent=2))

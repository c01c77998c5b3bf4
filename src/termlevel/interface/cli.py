"""termlevel CLI — term registration, quizzes, history and the proxy server."""

import asyncio
import json
import logging
import mimetypes
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Annotated

import typer

from termlevel.application.config import AppConfig, resolve_config
from termlevel.application.display import (
    level_label,
    level_progress,
    next_review_text,
)
from termlevel.domain.constants import MAX_LEVEL
from termlevel.domain.errors import (
    ConfigurationError,
    NoEligibleTermsError,
    ServiceError,
    TermlevelError,
    TermNotFoundError,
    ValidationError,
)
from termlevel.domain.models import QuizMode, Term

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="termlevel: level up your vocabulary with graded quizzes.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

history_app = typer.Typer(help="Show or clear quiz history.", invoke_without_command=True)
app.add_typer(history_app, name="history")

config_app = typer.Typer(help="Manage termlevel configuration.", no_args_is_help=True)
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

LOG_FILE_NAME = "termlevel.log"
_file_handler: logging.Handler | None = None


def _setup_logging(config: AppConfig, verbose_bonus: int) -> None:
    """Apply the configured verbosity (plus -v flags) and log to a file in log_dir."""
    global _file_handler

    verbosity = config.verbose + verbose_bonus
    if verbosity >= 3:
        level = logging.DEBUG
    elif verbosity == 2:
        level = logging.INFO
    else:
        level = logging.WARNING

    pkg_logger = logging.getLogger("termlevel")
    pkg_logger.setLevel(level)

    if _file_handler is not None:
        pkg_logger.removeHandler(_file_handler)
        _file_handler.close()
        _file_handler = None

    try:
        config.log_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.warning(f"Cannot create log directory {config.log_dir}: {e}")
        return
    _file_handler = logging.FileHandler(config.log_dir / LOG_FILE_NAME, encoding="utf-8", delay=True)
    _file_handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    )
    pkg_logger.addHandler(_file_handler)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def humanize_error(e: Exception) -> str:
    """Turn known failures into a one-line message for the terminal."""
    if isinstance(e, ConfigurationError):
        return f"Configuration error: {e}"
    if isinstance(e, ServiceError):
        return f"Service unavailable: {e}. Check your network and API key, then try again."
    if isinstance(e, (ValidationError, NoEligibleTermsError, TermNotFoundError)):
        return str(e)
    return f"Unexpected error: {e}"


def _fail(e: Exception) -> typer.Exit:
    color = "yellow" if isinstance(e, (ValidationError, NoEligibleTermsError)) else "red"
    typer.secho(humanize_error(e), fg=color, err=True)
    return typer.Exit(1)


def _config(ctx: typer.Context) -> AppConfig:
    return resolve_config(ctx.obj.get("overrides", {}))


def _open(ctx: typer.Context, with_services: bool = False):
    from termlevel.application.factory import open_session

    return open_session(_config(ctx), with_services=with_services)


def _format_date(dt: datetime) -> str:
    return dt.astimezone().strftime("%Y/%m/%d %H:%M")


def _echo_term(term: Term, now: datetime | None = None) -> None:
    typer.secho(f"{term.name}  [{level_label(term.level)}]", bold=True)
    bar_width = 14
    filled = round(level_progress(term.level) / 100 * bar_width)
    typer.echo(f"  {'#' * filled}{'.' * (bar_width - filled)} {term.level}/{MAX_LEVEL}")
    typer.echo(f"  {term.description}")
    typer.echo(
        f"  Next: {next_review_text(term, now)}  |  "
        f"Correct: {term.correct_count}/{term.total_attempts}"
    )


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    data_file: Annotated[
        Path | None, typer.Option("--data-file", help="Path to the JSON data file.")
    ] = None,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity. Repeat for more detail."
        ),
    ] = 0,
):
    """Global settings for termlevel."""
    ctx.ensure_object(dict)
    ctx.obj["overrides"] = {"data_file": data_file}
    _setup_logging(_config(ctx), verbose)


# ---------------------------------------------------------------------------
# Terms
# ---------------------------------------------------------------------------


@app.command()
def add(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Term to learn.")],
    description: Annotated[
        str | None, typer.Argument(help="Canonical description / answer.")
    ] = None,
    image: Annotated[
        Path | None,
        typer.Option(
            "--image", exists=True, dir_okay=False, help="Read the description from an image."
        ),
    ] = None,
):
    """[bold green]Register[/bold green] a new term."""
    try:
        if image is not None and not description:
            description = asyncio.run(_recognize(ctx, image))
            typer.echo(f"Recognized description:\n{description}")
        session = _open(ctx)
        term = session.register_term(name, description or "")
    except TermlevelError as e:
        raise _fail(e) from None

    typer.secho(f"Added '{term.name}'.", fg="green")


async def _recognize(ctx: typer.Context, image: Path) -> str:
    from termlevel.application.factory import get_llm_service

    mime_type = mimetypes.guess_type(image.name)[0] or "image/png"
    service = get_llm_service(_config(ctx))
    try:
        return await service.recognize(image.read_bytes(), mime_type)
    finally:
        await service.aclose()


@app.command()
def delete(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Term to delete.")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation.")] = False,
):
    """Delete a term."""
    try:
        session = _open(ctx)
        session.get_term(name)
        if not yes and not typer.confirm(f"Delete '{name}'?"):
            raise typer.Abort()
        session.delete_term(name)
    except TermlevelError as e:
        raise _fail(e) from None

    typer.secho(f"Deleted '{name}'.", fg="green")


@app.command("list")
def list_terms(
    ctx: typer.Context,
    due: Annotated[bool, typer.Option("--due", help="Only terms ready for review.")] = False,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """List registered terms with their level and next review."""
    session = _open(ctx)
    terms = session.reviewable_terms() if due else session.terms
    now = session.clock()

    if json_output:
        typer.echo(
            json.dumps(
                [
                    {
                        "name": t.name,
                        "level": t.level,
                        "label": level_label(t.level),
                        "next_review": next_review_text(t, now),
                        "correct_count": t.correct_count,
                        "total_attempts": t.total_attempts,
                    }
                    for t in terms
                ],
                indent=2,
                ensure_ascii=False,
            )
        )
        return

    if not terms:
        typer.secho("No terms due for review." if due else "No terms registered yet.", fg="yellow")
        return

    for term in terms:
        _echo_term(term, now)
    if not due:
        typer.echo(f"\nReady to review: {len(session.reviewable_terms())}")


@app.command()
def search(
    ctx: typer.Context,
    query: Annotated[str, typer.Argument(help="Text to look for in names and descriptions.")],
):
    """Search the dictionary."""
    session = _open(ctx)
    matches = session.search_terms(query)
    if not matches:
        typer.secho("No matching terms found.", fg="yellow")
        return
    now = session.clock()
    for term in matches:
        _echo_term(term, now)


@app.command()
def sweep(ctx: typer.Context):
    """Reset overdue terms back to level 1."""
    from termlevel.application.factory import open_session

    session = open_session(_config(ctx), sweep=False)
    reset = session.sweep()
    for term in reset:
        typer.echo(f"  {term.name} → Lv{term.level}")
    typer.echo(f"Terms reset: {len(reset)}")


# ---------------------------------------------------------------------------
# Quiz
# ---------------------------------------------------------------------------


@app.command()
def quiz(
    ctx: typer.Context,
    mode: Annotated[
        QuizMode,
        typer.Option(
            "--mode",
            "-m",
            help="'practice' = any term, level unchanged. 'levelup' = due terms, level moves.",
        ),
    ] = QuizMode.LEVELUP,
    rounds: Annotated[int, typer.Option("--rounds", "-n", min=1, help="Questions to ask.")] = 1,
):
    """Answer generated questions and get graded."""

    async def run():
        session = _open(ctx, with_services=True)
        try:
            for _ in range(rounds):
                await _quiz_round(session, mode)
        finally:
            await session.question_service.aclose()

    try:
        asyncio.run(run())
    except TermlevelError as e:
        raise _fail(e) from None


async def _quiz_round(session, mode: QuizMode) -> None:
    typer.echo("Generating question...")
    active = await session.start_quiz(mode)
    term = session.get_term(active.term_name)

    badge = "Practice" if mode is QuizMode.PRACTICE else "Level up"
    typer.secho(f"\n[{badge}] {term.name} ({level_label(term.level)})", bold=True)
    typer.echo(active.question)

    while True:
        answer = typer.prompt("Your answer")
        typer.echo("Grading...")
        try:
            outcome = await session.submit_answer(answer)
            break
        except ValidationError as e:
            typer.secho(str(e), fg="yellow")
        except ServiceError as e:
            typer.secho(humanize_error(e), fg="red")
            if not typer.confirm("Retry submitting?", default=True):
                raise

    change = outcome.change
    typer.secho(f"\nScore: {outcome.result.score}", bold=True)
    if mode is QuizMode.PRACTICE:
        typer.secho("Practice mode: level unaffected.", fg="cyan")
    elif change.was_reset:
        typer.secho(f"Level reset... {change.old_level} → {change.new_level}", fg="red")
    elif change.new_level == MAX_LEVEL and change.leveled_up:
        typer.secho("Mastered! Lv7 reached!", fg="magenta")
    elif change.leveled_up:
        typer.secho(f"Level up! {change.old_level} → {change.new_level}", fg="green")
    typer.echo(f"\nFeedback:\n{outcome.result.feedback}")
    typer.echo(f"\nModel answer:\n{outcome.result.model_answer}")


# ---------------------------------------------------------------------------
# History subgroup
# ---------------------------------------------------------------------------


@history_app.callback()
def history_show(
    ctx: typer.Context,
    limit: Annotated[int, typer.Option(help="Entries to show.")] = 10,
):
    """Show quiz stats and recent attempts."""
    if ctx.invoked_subcommand is not None:
        return

    session = _open(ctx)
    summary = session.summary()
    typer.echo(
        f"Questions: {summary.total_questions}  "
        f"Average score: {summary.average_score}  "
        f"Terms: {summary.total_terms}"
    )
    if not session.history:
        typer.secho("No quiz history yet.", fg="yellow")
        return

    for entry in session.history[:limit]:
        question = entry.question[:100] + ("..." if len(entry.question) > 100 else "")
        typer.echo(
            f"\n{_format_date(entry.date)}  {entry.score} pts  "
            f"{entry.term_name} [{entry.mode.value}] ({entry.level_change})"
        )
        typer.echo(f"  {question}")


@history_app.command("clear")
def history_clear(
    ctx: typer.Context,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation.")] = False,
):
    """Delete all quiz history."""
    if not yes:
        typer.confirm("Delete all quiz history?", abort=True)
    session = _open(ctx)
    count = session.clear_history()
    typer.secho(f"Cleared {count} entries.", fg="green")


# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------


@app.command()
def serve(
    ctx: typer.Context,
    host: Annotated[str | None, typer.Option(help="Bind address.")] = None,
    port: Annotated[int | None, typer.Option(help="Port.")] = None,
    reload: Annotated[bool, typer.Option(help="Auto-reload on code changes.")] = False,
):
    """Run the question/grading proxy server."""
    import uvicorn

    config = _config(ctx)
    uvicorn.run(
        "termlevel.server:app",
        host=host or config.server_host,
        port=port or config.server_port,
        reload=reload,
    )


@app.command()
def logs(ctx: typer.Context):
    """Open the log directory."""
    import subprocess

    config = _config(ctx)
    if not config.log_dir.exists():
        config.log_dir.mkdir(parents=True, exist_ok=True)

    if sys.platform == "darwin":
        subprocess.run(["open", str(config.log_dir)])
    elif sys.platform == "win32":
        os.startfile(str(config.log_dir))
    else:
        subprocess.run(["xdg-open", str(config.log_dir)])


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show(ctx: typer.Context):
    """Display final resolved configuration."""
    config = _config(ctx)
    d = {k: str(v) if isinstance(v, Path) else v for k, v in config.model_dump().items()}
    if d.get("openai_api_key"):
        d["openai_api_key"] = d["openai_api_key"][:6] + "..."
    typer.echo(json.dumps(d, indent=2))

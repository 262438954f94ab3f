"""Command-line entry point.

Commands:
- bash-skill-tester [menu]               : interactive menu
- bash-skill-tester quick-test           : five-question skill check
- bash-skill-tester assessment [TOPIC]   : detailed assessment of one topic
- bash-skill-tester practice [TOPIC]     : unscored practice exercises
- bash-skill-tester learn [MODULE]       : guided learning modules
- bash-skill-tester learning-path        : personalised learning path
- bash-skill-tester progress             : progress and assessment history
- bash-skill-tester topics               : list topics, modules and practice sets

Exit codes: 0 success, 1 invalid topic/module argument, 2 storage failure.
"""

import logging
import os
import sys
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import NoReturn

import structlog
import typer
from rich.console import Console
from rich.table import Table

from bash_skill_tester.bank.loader import QuestionBank
from bash_skill_tester.config import Settings, get_settings
from bash_skill_tester.errors import (
    CorruptProfileError,
    InvalidArgumentError,
    MalformedBankError,
    StorageIOError,
)
from bash_skill_tester.session.runner import SessionAborted, SessionRunner
from bash_skill_tester.session.terminal import RichTerminal
from bash_skill_tester.storage.user_profile import ProfileStore

EXIT_OK = 0
EXIT_INVALID_ARGUMENT = 1
EXIT_STORAGE_ERROR = 2

console = Console(highlight=False)
err_console = Console(stderr=True, highlight=False)

app = typer.Typer(
    name="bash-skill-tester",
    help="Interactive bash skills assessment and guided learning.",
    add_completion=False,
)


def configure_logging(level: str, fmt: str) -> None:
    """Configure structlog to write to stderr, away from the interactive stream."""
    if fmt == "json" or os.getenv("ENV", "development").lower() == "production":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


@dataclass
class CliState:
    settings: Settings
    user: str
    onboard: bool


def _fail(message: str, code: int) -> NoReturn:
    err_console.print(message, style="bold red", markup=False)
    raise typer.Exit(code)


def _load_bank(state: CliState) -> QuestionBank:
    try:
        return QuestionBank.load(state.settings.resolved_bank_dir)
    except MalformedBankError as e:
        _fail(f"Question bank error: {e}", EXIT_STORAGE_ERROR)


def _run_session(
    state: CliState, bank: QuestionBank, action: Callable[[SessionRunner], object]
) -> None:
    """Start a session, run one entry point, then flush and exit with the right code."""
    runner = SessionRunner(
        bank,
        ProfileStore(state.settings.resolved_data_dir),
        RichTerminal(console),
        history_limit=state.settings.history_display_limit,
    )
    try:
        runner.start_session(state.user, onboard=state.onboard)
    except CorruptProfileError as e:
        _fail(str(e), EXIT_STORAGE_ERROR)
    except StorageIOError as e:
        _fail(f"Storage error: {e}", EXIT_STORAGE_ERROR)
    except InvalidArgumentError as e:
        _fail(str(e), EXIT_INVALID_ARGUMENT)
    except SessionAborted:
        # Left during onboarding: keep whatever was entered, skip the command
        console.print("Session ended.")
        if not runner.end_session():
            raise typer.Exit(EXIT_STORAGE_ERROR)
        return

    exit_code = EXIT_OK
    try:
        action(runner)
    except InvalidArgumentError as e:
        err_console.print(str(e), style="red", markup=False)
        exit_code = EXIT_INVALID_ARGUMENT
    except SessionAborted:
        console.print("Session ended.")

    if not runner.end_session() and exit_code == EXIT_OK:
        exit_code = EXIT_STORAGE_ERROR
    if exit_code != EXIT_OK:
        raise typer.Exit(exit_code)


def _require(value: str, known: list[str] | set[str], what: str) -> None:
    if value not in known:
        _fail(
            f"Unknown {what}: {value}. Available: {', '.join(sorted(known))}",
            EXIT_INVALID_ARGUMENT,
        )


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    user: str | None = typer.Option(None, "--user", "-u", help="Profile to use"),
    data_dir: Path | None = typer.Option(
        None, "--data-dir", help="Directory for profiles and assessment history"
    ),
    bank_dir: Path | None = typer.Option(None, "--bank-dir", help="Question bank directory"),
    log_level: str | None = typer.Option(None, "--log-level", help="debug/info/warning/error"),
    onboard: bool = typer.Option(
        True, "--onboard/--no-onboard", help="Ask for profile details on first run"
    ),
):
    """Bash skills assessment and guided learning with saved progress."""
    options = {"data_dir": data_dir, "bank_dir": bank_dir, "log_level": log_level}
    overrides = {k: v for k, v in options.items() if v is not None}
    try:
        settings = Settings(**overrides) if overrides else get_settings()
    except ValueError as e:
        _fail(f"Invalid configuration: {e}", EXIT_INVALID_ARGUMENT)
    configure_logging(settings.log_level, settings.log_format)
    ctx.obj = CliState(settings=settings, user=user or settings.default_user, onboard=onboard)

    if ctx.invoked_subcommand is None:
        state: CliState = ctx.obj
        _run_session(state, _load_bank(state), lambda runner: runner.menu())


@app.command("menu")
def menu(ctx: typer.Context):
    """Interactive menu (the default when no command is given)."""
    state: CliState = ctx.obj
    _run_session(state, _load_bank(state), lambda runner: runner.menu())


@app.command("quick-test")
def quick_test(ctx: typer.Context):
    """Five-question quick skill test."""
    state: CliState = ctx.obj
    _run_session(state, _load_bank(state), lambda runner: runner.quick_test())


@app.command("assessment")
def assessment(
    ctx: typer.Context,
    topic: str | None = typer.Argument(None, help="Topic to assess"),
):
    """Detailed assessment of one topic."""
    state: CliState = ctx.obj
    bank = _load_bank(state)
    if topic is not None:
        _require(topic, bank.topics(), "topic")
    _run_session(state, bank, lambda runner: runner.run_quiz(topic or runner.choose_topic()))


@app.command("practice")
def practice(
    ctx: typer.Context,
    topic: str | None = typer.Argument(None, help="Practice topic"),
):
    """Practice exercises with hints (not scored)."""
    state: CliState = ctx.obj
    bank = _load_bank(state)
    if topic is not None:
        _require(topic, bank.practice_topics(), "practice topic")

    _run_session(
        state, bank, lambda runner: runner.practice(topic or runner.choose_practice_topic())
    )


@app.command("learn")
def learn(
    ctx: typer.Context,
    module: str | None = typer.Argument(None, help="Module to study (default: continue)"),
):
    """Guided learning modules; continues from the last session by default."""
    state: CliState = ctx.obj
    bank = _load_bank(state)
    if module is not None:
        _require(module, bank.module_ids(), "module")
    _run_session(state, bank, lambda runner: runner.learn(module))


@app.command("learning-path")
def learning_path(ctx: typer.Context):
    """Personalised learning path for your experience level."""
    state: CliState = ctx.obj
    _run_session(state, _load_bank(state), lambda runner: runner.show_learning_path())


@app.command("progress")
def progress(ctx: typer.Context):
    """Module progress, scores and assessment history."""
    state: CliState = ctx.obj
    _run_session(state, _load_bank(state), lambda runner: runner.show_progress())


@app.command("topics")
def topics(ctx: typer.Context):
    """List assessment topics, learning modules and practice sets."""
    state: CliState = ctx.obj
    bank = _load_bank(state)

    table = Table(title=f"Question bank v{bank.version}")
    table.add_column("Kind", style="cyan")
    table.add_column("Id", style="bold")
    table.add_column("Title")
    table.add_column("Items", justify="right")
    for topic in bank.ordered_topics():
        table.add_row("assessment", topic.id, topic.title, str(len(topic.questions)))
    for module in bank.modules():
        table.add_row("module", module.id, module.title, str(len(module.exercises)))
    for topic_id in bank.practice_topics():
        practice_set = bank.practice_for(topic_id)
        table.add_row("practice", topic_id, practice_set.title, str(len(practice_set.questions)))
    console.print(table)


if __name__ == "__main__":
    app()

"""Shared fixtures: the bundled question bank, a scripted terminal and a fake clock."""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from bash_skill_tester.bank.loader import QuestionBank
from bash_skill_tester.session.runner import SessionRunner
from bash_skill_tester.storage.user_profile import ProfileStore

BANK_DIR = Path(__file__).resolve().parent.parent / "config" / "bank"


class ScriptedTerminal:
    """Terminal that replays canned input lines and records output.

    Running out of input behaves like end of file.
    """

    def __init__(self, inputs=()):
        self.inputs = list(inputs)
        self.prompts: list[str] = []
        self.lines: list[str] = []

    def feed(self, *lines: str) -> None:
        self.inputs.extend(lines)

    def read_line(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self.inputs:
            raise EOFError
        return self.inputs.pop(0)

    def write_line(self, text: str = "", style: str | None = None) -> None:
        self.lines.append(text)

    @property
    def output(self) -> str:
        return "\n".join(self.lines)


class FakeClock:
    """Returns a strictly increasing time on every call."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


@pytest.fixture(scope="session")
def bank() -> QuestionBank:
    return QuestionBank.load(BANK_DIR)


@pytest.fixture
def store(tmp_path) -> ProfileStore:
    return ProfileStore(tmp_path / "data")


@pytest.fixture
def terminal() -> ScriptedTerminal:
    return ScriptedTerminal()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def runner(bank, store, terminal, clock) -> SessionRunner:
    return SessionRunner(bank, store, terminal, clock=clock)

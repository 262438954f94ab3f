"""Session and module state enums plus the running quiz tally."""

from enum import StrEnum

from pydantic import BaseModel


class SessionState(StrEnum):
    """Session runner lifecycle states."""

    IDLE = "idle"
    RUNNING = "running"
    SCORING = "scoring"
    EXIT = "exit"


class ModuleStatus(StrEnum):
    """Per-module learning state."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class QuizTally(BaseModel):
    """Running score for the active quiz."""

    topic: str
    score: int = 0
    total: int = 0

    def record(self, is_correct: bool) -> None:
        self.total += 1
        if is_correct:
            self.score += 1

"""Question bank models: quiz questions, answer patterns and learning modules."""

import re
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

CHOICE_LETTERS = "abcdefghij"


class ExactPattern(BaseModel):
    """Answer must equal the value once surrounding whitespace is removed."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["exact"] = "exact"
    value: str

    def matches(self, answer: str) -> bool:
        return answer.strip() == self.value.strip()


class SubstringPattern(BaseModel):
    """Answer must contain the value."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["substring"] = "substring"
    value: str
    case_sensitive: bool = True

    def matches(self, answer: str) -> bool:
        if self.case_sensitive:
            return self.value in answer
        return self.value.lower() in answer.lower()


class RegexPattern(BaseModel):
    """Answer must contain a match for the regular expression."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["regex"] = "regex"
    value: str

    @field_validator("value")
    @classmethod
    def _compiles(cls, value: str) -> str:
        try:
            re.compile(value)
        except re.error as e:
            raise ValueError(f"invalid regular expression {value!r}: {e}") from e
        return value

    def matches(self, answer: str) -> bool:
        return re.search(self.value, answer) is not None


AnswerPattern = Annotated[
    ExactPattern | SubstringPattern | RegexPattern,
    Field(discriminator="kind"),
]


class Question(BaseModel):
    """A single quiz item.

    Multiple-choice questions carry ``choices`` and the correct ``answer``
    letter; free-form questions carry an ``expected_pattern`` that a typed
    command must satisfy.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    topic: str
    prompt: str
    choices: tuple[str, ...] | None = None
    answer: str | None = None
    expected_pattern: AnswerPattern | None = None
    explanation: str = ""
    hint: str | None = None

    @model_validator(mode="after")
    def _check_answer_shape(self) -> "Question":
        if self.choices is None and self.expected_pattern is None:
            raise ValueError(f"question {self.id!r} needs either choices or expected_pattern")
        if self.choices is not None and self.expected_pattern is not None:
            raise ValueError(f"question {self.id!r} cannot have both choices and expected_pattern")
        if self.choices is not None:
            if len(self.choices) < 2:
                raise ValueError(f"question {self.id!r} needs at least two choices")
            if len(self.choices) > len(CHOICE_LETTERS):
                raise ValueError(f"question {self.id!r} has too many choices")
            if self.answer is None:
                raise ValueError(f"question {self.id!r} has no correct answer letter")
            letter = self.answer.strip().lower()
            if letter not in CHOICE_LETTERS[: len(self.choices)]:
                raise ValueError(
                    f"question {self.id!r} answer {self.answer!r} is not one of its choices"
                )
        return self

    @property
    def is_multiple_choice(self) -> bool:
        return self.choices is not None

    @property
    def correct_index(self) -> int | None:
        """Zero-based index of the correct choice, or None for free-form questions."""
        if self.answer is None:
            return None
        return CHOICE_LETTERS.index(self.answer.strip().lower())

    @property
    def correct_choice_text(self) -> str | None:
        index = self.correct_index
        if index is None or self.choices is None:
            return None
        return f"{CHOICE_LETTERS[index]}) {self.choices[index]}"


class Module(BaseModel):
    """A learning module: lesson text followed by exercises.

    The last exercise is the terminal exercise; answering it completes the module.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    lesson: tuple[str, ...] = ()
    exercises: tuple[Question, ...] = Field(min_length=1)
    summary: tuple[str, ...] = ()

    @property
    def terminal_exercise(self) -> Question:
        return self.exercises[-1]


class Topic(BaseModel):
    """A named quiz category with its ordered questions."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    questions: tuple[Question, ...] = Field(min_length=1)

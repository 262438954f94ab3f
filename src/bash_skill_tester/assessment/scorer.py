"""Answer evaluation for multiple-choice and command questions."""

import re
from dataclasses import dataclass

import structlog

from bash_skill_tester.models.question import CHOICE_LETTERS, Question

logger = structlog.get_logger()

GENERIC_EXPLANATION = "This question could not be checked; it has been counted as incorrect."


@dataclass(frozen=True)
class Evaluation:
    """Outcome of checking one answer."""

    is_correct: bool
    explanation: str


def _choice_matches(question: Question, answer: str) -> bool:
    index = question.correct_index
    if index is None:
        raise ValueError("multiple-choice question without a correct answer")
    normalized = answer.lower()
    if normalized == CHOICE_LETTERS[index]:
        return True
    # Accept the 1-based position of the correct choice as well
    return normalized.isdigit() and int(normalized) == index + 1


def evaluate(question: Question, raw_answer: str | None) -> Evaluation:
    """Check a raw answer against a question.

    Pure function of its arguments and never raises: an empty answer is
    incorrect, and a question that cannot be evaluated (bad pattern, missing
    answer key) is logged and scored as incorrect.

    Args:
        question: The question being answered.
        raw_answer: Text typed by the user.

    Returns:
        Evaluation with correctness and the question's explanation.
    """
    answer = (raw_answer or "").strip()
    if not answer:
        return Evaluation(is_correct=False, explanation=question.explanation)

    try:
        if question.choices is not None:
            is_correct = _choice_matches(question, answer)
        elif question.expected_pattern is not None:
            is_correct = question.expected_pattern.matches(answer)
        else:
            raise ValueError("question has neither choices nor expected_pattern")
    except (ValueError, IndexError, TypeError, re.error) as e:
        logger.error("malformed_question", question_id=question.id, error=str(e))
        return Evaluation(is_correct=False, explanation=GENERIC_EXPLANATION)

    logger.debug("answer_evaluated", question_id=question.id, is_correct=is_correct)
    return Evaluation(is_correct=is_correct, explanation=question.explanation)

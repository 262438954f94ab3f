"""Tests for answer evaluation."""

import pytest

from bash_skill_tester.assessment.scorer import GENERIC_EXPLANATION, evaluate
from bash_skill_tester.models.question import Question, RegexPattern


@pytest.fixture
def mc_question():
    return Question(
        id="mc",
        topic="t",
        prompt="Which operator appends?",
        choices=(">", ">>", "<<"),
        answer="b",
        explanation=">> appends.",
    )


def _free_form(kind: str, value: str, **extra) -> Question:
    return Question(
        id=f"ff-{kind}",
        topic="t",
        prompt="Type a command",
        expected_pattern={"kind": kind, "value": value, **extra},
        explanation="because",
    )


class TestMultipleChoice:
    def test_correct_letter(self, mc_question):
        result = evaluate(mc_question, "b")
        assert result.is_correct
        assert result.explanation == ">> appends."

    def test_letter_case_and_whitespace(self, mc_question):
        assert evaluate(mc_question, "  B \n").is_correct

    def test_choice_number(self, mc_question):
        assert evaluate(mc_question, "2").is_correct
        assert not evaluate(mc_question, "3").is_correct

    def test_wrong_letter(self, mc_question):
        result = evaluate(mc_question, "a")
        assert not result.is_correct
        assert result.explanation == ">> appends."

    def test_empty_answer(self, mc_question):
        assert not evaluate(mc_question, "").is_correct
        assert not evaluate(mc_question, "   ").is_correct
        assert not evaluate(mc_question, None).is_correct

    def test_same_answer_same_result(self, mc_question):
        assert evaluate(mc_question, "c") == evaluate(mc_question, "c")


class TestPatterns:
    def test_regex_search(self):
        q = _free_form("regex", r"ls\s+/missing.*2>\s*/dev/null")
        assert evaluate(q, "ls /missing 2>/dev/null").is_correct
        assert not evaluate(q, "ls /missing").is_correct

    def test_substring_case_sensitive(self):
        q = _free_form("substring", "${slug//-/_}")
        assert evaluate(q, 'echo "${slug//-/_}"').is_correct
        assert not evaluate(q, "echo ${SLUG//-/_}").is_correct

    def test_substring_case_insensitive(self):
        q = _free_form("substring", "grep", case_sensitive=False)
        assert evaluate(q, "GREP -c x").is_correct

    def test_exact(self):
        q = _free_form("exact", "set -euo pipefail")
        assert evaluate(q, "  set -euo pipefail ").is_correct
        assert not evaluate(q, "set -euo pipefail; echo").is_correct


class TestMalformedQuestions:
    def test_no_answer_shape(self):
        q = Question.model_construct(
            id="broken", topic="t", prompt="p", choices=None, answer=None,
            expected_pattern=None, explanation="x", hint=None,
        )
        result = evaluate(q, "anything")
        assert not result.is_correct
        assert result.explanation == GENERIC_EXPLANATION

    def test_answer_letter_out_of_range(self):
        q = Question.model_construct(
            id="broken", topic="t", prompt="p", choices=("x", "y"), answer="z",
            expected_pattern=None, explanation="x", hint=None,
        )
        result = evaluate(q, "a")
        assert not result.is_correct
        assert result.explanation == GENERIC_EXPLANATION

    def test_uncompilable_regex(self):
        q = Question.model_construct(
            id="broken", topic="t", prompt="p", choices=None, answer=None,
            expected_pattern=RegexPattern.model_construct(kind="regex", value="("),
            explanation="x", hint=None,
        )
        result = evaluate(q, "ls")
        assert not result.is_correct
        assert result.explanation == GENERIC_EXPLANATION

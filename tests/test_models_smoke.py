"""Smoke tests for Pydantic models."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from bash_skill_tester.assessment.levels import get_full_mapping, get_level_feedback
from bash_skill_tester.models.assessment import AssessmentResult, SkillLevel, compute_percentage
from bash_skill_tester.models.question import Module, Question, RegexPattern
from bash_skill_tester.models.session import QuizTally
from bash_skill_tester.models.user_profile import (
    ExperienceLevel,
    LearningProgress,
    UserProfile,
)

NOW = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)


class TestSkillLevel:
    @pytest.mark.parametrize(
        "percentage,expected",
        [
            (100, SkillLevel.EXPERT),
            (90, SkillLevel.EXPERT),
            (89, SkillLevel.ADVANCED),
            (75, SkillLevel.ADVANCED),
            (74, SkillLevel.INTERMEDIATE),
            (60, SkillLevel.INTERMEDIATE),
            (59, SkillLevel.BEGINNER),
            (40, SkillLevel.BEGINNER),
            (39, SkillLevel.NOVICE),
            (0, SkillLevel.NOVICE),
        ],
    )
    def test_thresholds(self, percentage, expected):
        assert SkillLevel.from_percentage(percentage) == expected


class TestComputePercentage:
    def test_three_of_five(self):
        assert compute_percentage(3, 5) == 60

    def test_rounds_down(self):
        assert compute_percentage(2, 3) == 66

    def test_zero_total_rejected(self):
        with pytest.raises(ValueError):
            compute_percentage(0, 0)


class TestAssessmentResult:
    def test_from_tally(self):
        result = AssessmentResult.from_tally("quick-test", 3, 5, NOW)
        assert result.percentage == 60
        assert result.derived_level == SkillLevel.INTERMEDIATE

    def test_score_above_total_rejected(self):
        with pytest.raises(ValidationError):
            AssessmentResult(
                timestamp=NOW,
                topic="t",
                score=6,
                total=5,
                percentage=100,
                derived_level=SkillLevel.EXPERT,
            )

    def test_zero_total_rejected(self):
        with pytest.raises(ValidationError):
            AssessmentResult(
                timestamp=NOW,
                topic="t",
                score=0,
                total=0,
                percentage=0,
                derived_level=SkillLevel.NOVICE,
            )

    def test_frozen(self):
        result = AssessmentResult.from_tally("t", 1, 2, NOW)
        with pytest.raises(ValidationError):
            result.score = 2


class TestQuestion:
    def test_multiple_choice(self):
        q = Question(id="q", topic="t", prompt="p", choices=("x", "y"), answer="B")
        assert q.is_multiple_choice
        assert q.correct_index == 1
        assert q.correct_choice_text == "b) y"

    def test_free_form(self):
        q = Question(
            id="q", topic="t", prompt="p", expected_pattern={"kind": "regex", "value": "^ls"}
        )
        assert isinstance(q.expected_pattern, RegexPattern)
        assert q.correct_choice_text is None

    def test_needs_choices_or_pattern(self):
        with pytest.raises(ValidationError):
            Question(id="q", topic="t", prompt="p")

    def test_answer_letter_out_of_range(self):
        with pytest.raises(ValidationError):
            Question(id="q", topic="t", prompt="p", choices=("x", "y"), answer="c")

    def test_invalid_regex_rejected(self):
        with pytest.raises(ValidationError):
            Question(
                id="q", topic="t", prompt="p", expected_pattern={"kind": "regex", "value": "("}
            )

    def test_module_requires_exercise(self):
        with pytest.raises(ValidationError):
            Module(id="m", title="M", exercises=())


class TestUserProfile:
    def test_defaults(self):
        profile = UserProfile(user_id="alice")
        assert profile.experience_level == ExperienceLevel.UNKNOWN
        assert profile.assessments_taken == 0
        assert profile.progress.completed_modules == []
        assert profile.progress.current_module is None
        assert profile.created_at.tzinfo is not None

    def test_lenient_experience_level(self):
        profile = UserProfile(user_id="alice", experience_level="Guru")
        assert profile.experience_level == ExperienceLevel.UNKNOWN

    def test_completed_modules_deduplicated(self):
        progress = LearningProgress(completed_modules=["intro", "variables", "intro"])
        assert progress.completed_modules == ["intro", "variables"]

    def test_experience_parse(self):
        assert ExperienceLevel.parse(" Advanced ") == ExperienceLevel.ADVANCED
        assert ExperienceLevel.parse("") == ExperienceLevel.UNKNOWN


class TestQuizTally:
    def test_record(self):
        tally = QuizTally(topic="t")
        tally.record(True)
        tally.record(False)
        assert (tally.score, tally.total) == (1, 2)


class TestLevelFeedback:
    def test_full_mapping(self):
        mapping = get_full_mapping(60)
        assert mapping["level"] == "intermediate"
        assert mapping["percentage"] == 60
        assert mapping["headline"] == get_level_feedback(SkillLevel.INTERMEDIATE)[0]

    def test_every_level_has_feedback(self):
        for level in SkillLevel:
            headline, next_step = get_level_feedback(level)
            assert headline and next_step

"""Tests for the module progress state machine."""

import pytest

from bash_skill_tester.errors import InvalidArgumentError
from bash_skill_tester.learning.tracker import ProgressTracker
from bash_skill_tester.models.session import ModuleStatus
from bash_skill_tester.models.user_profile import LearningProgress

MODULES = ["intro", "variables", "loops", "functions"]


@pytest.fixture
def tracker():
    return ProgressTracker(MODULES, LearningProgress())


class TestStates:
    def test_fresh_progress(self, tracker):
        assert all(status == ModuleStatus.NOT_STARTED for _, status in tracker.statuses())
        assert tracker.next_module() == "intro"

    def test_enter_marks_in_progress(self, tracker):
        assert tracker.enter("variables") == ModuleStatus.IN_PROGRESS
        assert tracker.current_module == "variables"

    def test_complete_marks_completed(self, tracker):
        tracker.enter("intro")
        assert tracker.complete("intro") is True
        assert tracker.state_of("intro") == ModuleStatus.COMPLETED
        assert tracker.current_module == "variables"

    def test_unknown_module(self, tracker):
        with pytest.raises(InvalidArgumentError):
            tracker.enter("cobol")
        with pytest.raises(InvalidArgumentError):
            tracker.complete("cobol")


class TestCompletion:
    def test_idempotent(self, tracker):
        assert tracker.complete("intro") is True
        assert tracker.complete("intro") is False
        assert tracker.completed_modules == ["intro"]

    def test_review_leaves_current_module(self, tracker):
        tracker.complete("intro")
        tracker.enter("variables")
        assert tracker.enter("intro") == ModuleStatus.COMPLETED
        assert tracker.current_module == "variables"
        tracker.complete("intro")
        assert tracker.current_module == "variables"

    def test_current_never_completed(self, tracker):
        for module_id in ["loops", "intro", "functions", "variables"]:
            tracker.enter(module_id)
            tracker.complete(module_id)
            assert tracker.current_module not in tracker.completed_modules
        assert tracker.current_module is None

    def test_completion_percentage(self, tracker):
        tracker.complete("intro")
        assert tracker.completion_percentage() == 25.0


class TestNextModule:
    def test_follows_last_completed(self, tracker):
        tracker.complete("variables")
        assert tracker.next_module() == "loops"

    def test_skips_completed(self, tracker):
        tracker.complete("loops")
        tracker.complete("intro")
        assert tracker.next_module() == "variables"

    def test_wraps_to_start(self, tracker):
        tracker.complete("functions")
        assert tracker.next_module() == "intro"

    def test_all_done(self, tracker):
        for module_id in MODULES:
            tracker.complete(module_id)
        assert tracker.next_module() is None


class TestLoadedProgress:
    def test_unknown_ids_dropped(self):
        progress = LearningProgress(completed_modules=["intro", "retired"], current_module="gone")
        tracker = ProgressTracker(MODULES, progress)
        assert progress.completed_modules == ["intro"]
        assert tracker.current_module is None

    def test_completed_current_module_advanced(self):
        progress = LearningProgress(completed_modules=["intro"], current_module="intro")
        ProgressTracker(MODULES, progress)
        assert progress.current_module == "variables"

"""Interactive session orchestration: quizzes, modules, practice and progress."""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

import structlog

from bash_skill_tester.assessment.levels import get_full_mapping
from bash_skill_tester.assessment.scorer import Evaluation, evaluate
from bash_skill_tester.bank.loader import QuestionBank
from bash_skill_tester.errors import HistoryOrderError, InvalidArgumentError, StorageIOError
from bash_skill_tester.learning.tracker import ProgressTracker
from bash_skill_tester.models.assessment import AssessmentResult
from bash_skill_tester.models.question import CHOICE_LETTERS, Question
from bash_skill_tester.models.session import ModuleStatus, QuizTally, SessionState
from bash_skill_tester.models.user_profile import ExperienceLevel, UserProfile
from bash_skill_tester.session.terminal import Terminal
from bash_skill_tester.storage.user_profile import ProfileStore

logger = structlog.get_logger()

EXIT_COMMANDS = frozenset({"exit", "quit"})
QUICK_TEST_TOPIC = "quick-test"
PROGRESS_BAR_WIDTH = 20

STATUS_MARKS = {
    ModuleStatus.COMPLETED: ("[done]", "green"),
    ModuleStatus.IN_PROGRESS: ("[....]", "yellow"),
    ModuleStatus.NOT_STARTED: ("[    ]", "blue"),
}


def _local_now() -> datetime:
    return datetime.now().astimezone()


class SessionAborted(Exception):
    """The user asked to leave (``exit``/``quit`` or end of input)."""


@dataclass
class SessionContext:
    """State owned by the runner for the duration of one session.

    ``pending_results`` holds completed assessments not yet committed to the
    history; ``dirty`` marks profile changes not yet saved.
    """

    profile: UserProfile
    tracker: ProgressTracker
    state: SessionState = SessionState.IDLE
    tally: QuizTally | None = None
    pending_results: list[AssessmentResult] = field(default_factory=list)
    dirty: bool = False


class SessionRunner:
    """Drives an interactive session.

    Reads the question bank, scores answers, updates module progress and
    commits state through the profile store at checkpoints: module
    completion, quiz completion and session end.

    Args:
        bank: Loaded question bank.
        store: Profile store for the user's persisted state.
        terminal: Blocking terminal I/O.
        clock: Callable returning the current time.
        history_limit: Number of recent results shown in the progress view.
    """

    def __init__(
        self,
        bank: QuestionBank,
        store: ProfileStore,
        terminal: Terminal,
        clock: Callable[[], datetime] = _local_now,
        history_limit: int = 10,
    ):
        self.bank = bank
        self.store = store
        self.terminal = terminal
        self.clock = clock
        self.history_limit = history_limit
        self._context: SessionContext | None = None

    @property
    def context(self) -> SessionContext:
        if self._context is None:
            raise RuntimeError("Session not started; call start_session() first")
        return self._context

    # ------------------------------------------------------------------
    # Input helpers
    # ------------------------------------------------------------------

    def _say(self, text: str = "", style: str | None = None) -> None:
        self.terminal.write_line(text, style)

    def _ask(self, prompt: str) -> str:
        """Read one line; ``exit``/``quit`` or end of input aborts the session."""
        try:
            raw = self.terminal.read_line(prompt)
        except (EOFError, KeyboardInterrupt):
            raise SessionAborted() from None
        if raw.strip().lower() in EXIT_COMMANDS:
            raise SessionAborted()
        return raw

    def _confirm(self, prompt: str) -> bool:
        return self._ask(f"{prompt} [y/N]:").strip().lower().startswith("y")

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def start_session(self, user_id: str, onboard: bool = True) -> SessionContext:
        """Load the user's profile and initialise progress tracking.

        Args:
            user_id: Profile key.
            onboard: Ask for name, experience and role when no profile exists.

        Raises:
            CorruptProfileError: If the stored profile is unreadable.
            StorageIOError: If the profile file cannot be read.
        """
        is_new = not self.store.exists(user_id)
        profile = self.store.load(user_id)
        tracker = ProgressTracker(self.bank.module_ids(), profile.progress)
        self._context = SessionContext(profile=profile, tracker=tracker)
        logger.info("session_started", user_id=user_id, new_profile=is_new)

        if is_new:
            self._context.dirty = True
            if onboard:
                self._onboard(profile)
                self.checkpoint()
        return self._context

    def _onboard(self, profile: UserProfile) -> None:
        self._say("First time setup - Creating your profile", "yellow")
        profile.name = self._ask("Enter your name:").strip()
        while True:
            raw_level = self._ask(
                "Enter your experience level (beginner/intermediate/advanced):"
            ).strip()
            level = ExperienceLevel.parse(raw_level)
            if level is not ExperienceLevel.UNKNOWN or not raw_level:
                break
            self._say(f"Unknown experience level: {raw_level}", "red")
        profile.experience_level = level
        profile.role = self._ask("Enter your role (developer/devops/sysadmin/student):").strip()
        self._say("Profile created successfully!", "green")

    def flush(self) -> None:
        """Commit pending results, then the profile if it changed.

        Raises:
            StorageIOError: On the first write that fails. Whatever was not
                written stays pending.
        """
        ctx = self.context
        while ctx.pending_results:
            result = ctx.pending_results[0]
            try:
                self.store.append_result(ctx.profile.user_id, result)
            except HistoryOrderError as e:
                # Retrying can never succeed; the profile still holds the score
                logger.error("assessment_result_dropped", topic=result.topic, error=str(e))
                ctx.pending_results.pop(0)
                raise
            ctx.pending_results.pop(0)
        if ctx.dirty:
            ctx.profile.last_session_at = self.clock()
            self.store.save(ctx.profile)
            ctx.dirty = False

    def checkpoint(self) -> bool:
        """Flush state, letting the user retry when storage fails.

        Returns:
            True if everything was persisted.
        """
        while True:
            try:
                self.flush()
                return True
            except StorageIOError as e:
                logger.error("checkpoint_failed", error=str(e))
                self._say(f"Could not save progress: {e}", "red")
                if not self._confirm("Retry saving?"):
                    self._say(
                        "Progress is kept for this session and will be saved again "
                        "at the next checkpoint or on exit.",
                        "yellow",
                    )
                    return False

    def end_session(self) -> bool:
        """Flush completed work and move to the EXIT state.

        In-progress (unscored) quiz answers are discarded.

        Returns:
            True if all state was persisted.
        """
        ctx = self.context
        ctx.tally = None
        ctx.state = SessionState.EXIT
        try:
            saved = self.checkpoint()
        except SessionAborted:
            saved = False
        logger.info("session_ended", user_id=ctx.profile.user_id, saved=saved)
        if saved:
            self._say("Your progress has been saved.", "green")
        return saved

    # ------------------------------------------------------------------
    # Quizzes
    # ------------------------------------------------------------------

    def begin_quiz(self, topic: str) -> tuple[Question, ...]:
        """Validate the topic and open a tally for it.

        Raises:
            InvalidArgumentError: For unknown or empty topics.
        """
        questions = self.bank.questions_for(topic)
        if not questions:
            raise InvalidArgumentError(f"Topic {topic!r} has no questions")
        ctx = self.context
        ctx.tally = QuizTally(topic=topic)
        ctx.state = SessionState.RUNNING
        return questions

    def record_answer(self, question: Question, raw_answer: str) -> Evaluation:
        """Score one answer and add it to the active quiz tally."""
        ctx = self.context
        if ctx.tally is None:
            raise RuntimeError("No quiz in progress")
        evaluation = evaluate(question, raw_answer)
        ctx.tally.record(evaluation.is_correct)
        return evaluation

    def finish_quiz(self, topic: str) -> AssessmentResult:
        """Turn the active tally into an AssessmentResult and persist it.

        Storage failures are reported (see ``checkpoint``), never raised;
        the result stays pending in memory.
        """
        ctx = self.context
        tally = ctx.tally
        if tally is None or tally.topic != topic or tally.total == 0:
            raise RuntimeError(f"No answers recorded for topic {topic!r}")

        ctx.state = SessionState.SCORING
        result = AssessmentResult.from_tally(topic, tally.score, tally.total, self.clock())
        profile = ctx.profile
        profile.assessments_taken += 1
        profile.skill_scores[topic] = result.percentage
        profile.progress.skill_level = result.derived_level
        ctx.pending_results.append(result)
        ctx.dirty = True
        ctx.tally = None
        logger.info(
            "quiz_finished",
            topic=topic,
            score=result.score,
            total=result.total,
            level=result.derived_level.value,
        )

        self._show_result(result)
        self.checkpoint()
        ctx.state = SessionState.IDLE
        return result

    def _show_result(self, result: AssessmentResult) -> None:
        mapping = get_full_mapping(result.percentage)
        self._say()
        self._say(f"=== {self._topic_title(result.topic)} Results ===", "cyan")
        self._say(f"Score: {result.score} out of {result.total} ({result.percentage}%)")
        self._say(str(mapping["headline"]), str(mapping["style"]))
        self._say(f"Next: {mapping['next_step']}")

    def _topic_title(self, topic: str) -> str:
        try:
            return self.bank.topic_title(topic)
        except InvalidArgumentError:
            return topic

    def _present_question(self, question: Question, number: int, count: int) -> str:
        self._say()
        self._say(f"Question {number}/{count}", "yellow")
        self._say(question.prompt.rstrip())
        if question.choices is not None:
            for letter, choice in zip(CHOICE_LETTERS, question.choices):
                self._say(f"  {letter}) {choice}")
            letters = "/".join(CHOICE_LETTERS[: len(question.choices)])
            return self._ask(f"Your answer ({letters}):")
        return self._ask("Your command:")

    def _show_feedback(self, question: Question, evaluation: Evaluation) -> None:
        if evaluation.is_correct:
            self._say("Correct!", "green")
            return
        if question.correct_choice_text is not None:
            self._say(f"Incorrect. Answer: {question.correct_choice_text}", "red")
        else:
            self._say("Not quite.", "yellow")
            if question.hint:
                self._say(f"Try: {question.hint}", "yellow")
        if evaluation.explanation:
            self._say(f"Explanation: {evaluation.explanation}")

    def run_quiz(self, topic: str) -> AssessmentResult:
        """Ask every question of a topic, then score and persist the run.

        Raises:
            InvalidArgumentError: For unknown topics.
            SessionAborted: If the user exits mid-quiz; answers so far are discarded.
        """
        questions = self.begin_quiz(topic)
        self._say(self.bank.topic_title(topic), "bold magenta")
        try:
            for number, question in enumerate(questions, start=1):
                raw = self._present_question(question, number, len(questions))
                self._show_feedback(question, self.record_answer(question, raw))
        except SessionAborted:
            logger.info("quiz_abandoned", topic=topic)
            self.context.tally = None
            self.context.state = SessionState.IDLE
            raise
        return self.finish_quiz(topic)

    def quick_test(self) -> AssessmentResult:
        return self.run_quiz(QUICK_TEST_TOPIC)

    def choose_topic(self) -> str:
        self._say("Available skills for assessment:", "magenta")
        for topic in self.bank.ordered_topics():
            self._say(f"  {topic.id}: {topic.title}")
        return self._ask("Enter skill to assess:").strip()

    def choose_practice_topic(self) -> str:
        self._say(f"Practice topics: {', '.join(self.bank.practice_topics())}")
        return self._ask("Enter topic to practice:").strip()

    # ------------------------------------------------------------------
    # Learning modules
    # ------------------------------------------------------------------

    def present_module(self, module_id: str) -> bool:
        """Walk through one module's lesson and exercises.

        Reaching the terminal exercise completes the module whether or not
        the answer was right. A new completion is saved immediately.

        Returns:
            True if the module was newly completed.

        Raises:
            InvalidArgumentError: For unknown modules.
            SessionAborted: If the user exits before the terminal exercise.
        """
        module = self.bank.module(module_id)
        ctx = self.context
        before = ctx.tracker.current_module
        ctx.tracker.enter(module_id)
        if ctx.tracker.current_module != before:
            ctx.dirty = True
        ctx.state = SessionState.RUNNING

        self._say()
        self._say(module.title, "bold magenta")
        for line in module.lesson:
            self._say(line)

        answered = 0
        try:
            for number, exercise in enumerate(module.exercises, start=1):
                raw = self._present_question(exercise, number, len(module.exercises))
                self._show_feedback(exercise, evaluate(exercise, raw))
                answered += 1
        except SessionAborted:
            logger.info("module_abandoned", module=module_id, answered=answered)
            ctx.state = SessionState.IDLE
            raise

        newly_completed = ctx.tracker.complete(module_id)
        ctx.profile.exercises_completed += answered
        ctx.dirty = True
        ctx.state = SessionState.IDLE

        self._say()
        self._say(f"Module completed: {module.title}", "green")
        if module.summary:
            self._say("You learned:")
            for item in module.summary:
                self._say(f"  - {item}")
        if newly_completed:
            self.checkpoint()
        return newly_completed

    def learn(self, module_id: str | None = None) -> None:
        """Study a module, then keep going while the user opts to continue.

        With no module id, resumes the current module (or the recommended one).
        """
        tracker = self.context.tracker
        target = module_id or tracker.current_module or tracker.next_module()
        while target is not None:
            self.present_module(target)
            target = tracker.next_module()
            if target is None:
                self._say("All modules completed. Well done!", "green")
                return
            if not self._confirm(f"Continue to next module ({target})?"):
                return

    # ------------------------------------------------------------------
    # Practice, learning path and progress views
    # ------------------------------------------------------------------

    def practice(self, topic: str) -> int:
        """Run a practice set. Nothing is scored or recorded in the history.

        Returns:
            Number of exercises answered correctly.
        """
        practice_set = self.bank.practice_for(topic)
        ctx = self.context
        ctx.state = SessionState.RUNNING
        self._say(f"Practice Mode: {practice_set.title}", "bold magenta")
        correct = 0
        answered = 0
        try:
            for number, exercise in enumerate(practice_set.questions, start=1):
                raw = self._present_question(exercise, number, len(practice_set.questions))
                evaluation = evaluate(exercise, raw)
                self._show_feedback(exercise, evaluation)
                answered += 1
                correct += evaluation.is_correct
        finally:
            # Answered exercises count even if the user leaves early
            if answered:
                ctx.profile.exercises_completed += answered
                ctx.dirty = True
            ctx.state = SessionState.IDLE
        self._say()
        self._say("Practice complete! Try more exercises with real scripts.", "blue")
        return correct

    def show_learning_path(self) -> None:
        profile = self.context.profile
        self._say("Personalized Learning Path", "bold magenta")
        self._say("Based on your profile:")
        self._say(f"  Name: {profile.name or profile.user_id}")
        self._say(f"  Experience: {profile.experience_level.value}")
        self._say(f"  Role: {profile.role or 'unknown'}")
        self._say()
        level = profile.experience_level
        if level is ExperienceLevel.UNKNOWN:
            level = ExperienceLevel.BEGINNER
        self._say(f"{level.value.capitalize()} Learning Path:", "yellow")
        for number, stage in enumerate(self.bank.learning_path(level), start=1):
            duration = f" ({stage.duration})" if stage.duration else ""
            self._say(f"{number}. {stage.title}{duration}")
            for item in stage.items:
                self._say(f"   - {item}")
        next_module = self.context.tracker.next_module()
        self._say()
        if next_module is not None:
            self._say(f"Recommended next module: {next_module}", "blue")
        if self.bank.practice_topics():
            self._say(
                f"Practice topics: {', '.join(self.bank.practice_topics())}", "blue"
            )

    def show_progress(self) -> None:
        ctx = self.context
        profile = ctx.profile
        tracker = ctx.tracker
        self._say("Your Learning Progress", "bold magenta")
        self._say(f"Name: {profile.name or profile.user_id}")
        self._say(f"Created: {profile.created_at.isoformat(timespec='seconds')}")
        if profile.last_session_at is not None:
            self._say(f"Last session: {profile.last_session_at.isoformat(timespec='seconds')}")
        self._say(f"Assessments taken: {profile.assessments_taken}")
        self._say(f"Exercises completed: {profile.exercises_completed}")
        skill_level = profile.progress.skill_level
        self._say(f"Current skill level: {skill_level.value if skill_level else 'not assessed'}")
        self._say()

        self._say("Module Progress:", "yellow")
        for module in self.bank.modules():
            status = tracker.state_of(module.id)
            mark, style = STATUS_MARKS[status]
            suffix = " (In Progress)" if status is ModuleStatus.IN_PROGRESS else ""
            self._say(f"{mark} {module.id} - {module.title}{suffix}", style)

        percentage = tracker.completion_percentage()
        filled = int(percentage * PROGRESS_BAR_WIDTH // 100)
        self._say()
        self._say(f"Overall Completion: {percentage:.0f}%", "cyan")
        self._say("[" + "=" * filled + "-" * (PROGRESS_BAR_WIDTH - filled) + "]")

        if profile.skill_scores:
            self._say()
            self._say("Latest scores:", "yellow")
            for topic, score in sorted(profile.skill_scores.items()):
                self._say(f"  {topic}: {score}%")

        self._say()
        history = self.store.read_history(profile.user_id) + ctx.pending_results
        if not history:
            self._say("No assessments taken yet.")
            self._say("Start with: bash-skill-tester quick-test")
            return
        self._say("Recent assessments:", "yellow")
        for result in history[-self.history_limit:]:
            self._say(
                f"  {self._topic_title(result.topic)}: {result.percentage}% "
                f"({result.derived_level.value}) - "
                f"{result.timestamp.isoformat(timespec='seconds')}"
            )

    # ------------------------------------------------------------------
    # Menu
    # ------------------------------------------------------------------

    def _show_menu(self) -> None:
        ctx = self.context
        skill_level = ctx.profile.progress.skill_level
        self._say()
        self._say("Bash Skills Assessment & Learning", "bold blue")
        self._say(f"Current level: {skill_level.value if skill_level else 'not assessed'}", "yellow")
        self._say(
            f"Completed modules: {len(ctx.tracker.completed_modules)}/"
            f"{len(ctx.tracker.module_ids)}",
            "yellow",
        )
        self._say("  1. quick       Quick skill test")
        self._say("  2. assessment  Detailed assessment (specific topic)")
        self._say("  3. learn       Study a learning module")
        self._say("  4. continue    Continue from last session")
        self._say("  5. practice    Practice mode")
        self._say("  6. path        Generate learning path")
        self._say("  7. progress    View progress")
        self._say("  8. exit        Save and exit")

    def _dispatch(self, choice: str) -> None:
        if choice in ("1", "quick", "quick-test"):
            self.quick_test()
        elif choice in ("2", "assessment"):
            self.run_quiz(self.choose_topic())
        elif choice in ("3", "learn"):
            self._say(f"Modules: {', '.join(self.bank.module_ids())}")
            self.learn(self._ask("Enter module name:").strip())
        elif choice in ("4", "continue"):
            self.learn()
        elif choice in ("5", "practice"):
            self.practice(self.choose_practice_topic())
        elif choice in ("6", "path", "learning-path"):
            self.show_learning_path()
        elif choice in ("7", "progress"):
            self.show_progress()
        elif choice == "8":
            raise SessionAborted()
        elif choice in self.bank.module_ids():
            self.learn(choice)
        else:
            raise InvalidArgumentError(f"Invalid option: {choice!r}")

    def menu(self) -> None:
        """Idle loop: show the menu and dispatch until the user exits."""
        ctx = self.context
        while True:
            ctx.state = SessionState.IDLE
            self._show_menu()
            try:
                self._dispatch(self._ask("Choose an option:").strip().lower())
            except InvalidArgumentError as e:
                self._say(str(e), "red")
            except SessionAborted:
                return

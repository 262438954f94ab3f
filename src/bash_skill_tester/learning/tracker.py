"""Learning module progress state machine."""

import structlog

from bash_skill_tester.errors import InvalidArgumentError
from bash_skill_tester.models.session import ModuleStatus
from bash_skill_tester.models.user_profile import LearningProgress

logger = structlog.get_logger()


class ProgressTracker:
    """Tracks module states on top of a profile's LearningProgress.

    Each module is NOT_STARTED, IN_PROGRESS (it is ``current_module``) or
    COMPLETED. Completion is an idempotent insert into the ordered
    ``completed_modules`` list. The tracker mutates the LearningProgress it
    is given, so the owning profile always reflects the latest state.

    Args:
        module_ids: All module ids in curriculum order.
        progress: Progress record to track (mutated in place).
    """

    def __init__(self, module_ids: list[str], progress: LearningProgress):
        self._module_ids = list(module_ids)
        self.progress = progress
        self._drop_unknown()
        if self.progress.current_module in self.progress.completed_modules:
            self.progress.current_module = self.next_module()

    def _drop_unknown(self) -> None:
        """Forget ids that no longer exist in the curriculum."""
        known = set(self._module_ids)
        unknown = [m for m in self.progress.completed_modules if m not in known]
        if unknown:
            logger.warning("unknown_completed_modules_dropped", modules=unknown)
            self.progress.completed_modules = [
                m for m in self.progress.completed_modules if m in known
            ]
        if self.progress.current_module is not None and self.progress.current_module not in known:
            logger.warning("unknown_current_module_reset", module=self.progress.current_module)
            self.progress.current_module = None

    def _require(self, module_id: str) -> None:
        if module_id not in self._module_ids:
            raise InvalidArgumentError(
                f"Unknown module: {module_id!r}. Available: {', '.join(self._module_ids)}"
            )

    @property
    def module_ids(self) -> list[str]:
        return list(self._module_ids)

    @property
    def current_module(self) -> str | None:
        return self.progress.current_module

    @property
    def completed_modules(self) -> list[str]:
        return list(self.progress.completed_modules)

    def is_completed(self, module_id: str) -> bool:
        return module_id in self.progress.completed_modules

    def state_of(self, module_id: str) -> ModuleStatus:
        self._require(module_id)
        if self.is_completed(module_id):
            return ModuleStatus.COMPLETED
        if module_id == self.progress.current_module:
            return ModuleStatus.IN_PROGRESS
        return ModuleStatus.NOT_STARTED

    def statuses(self) -> list[tuple[str, ModuleStatus]]:
        return [(m, self.state_of(m)) for m in self._module_ids]

    def enter(self, module_id: str) -> ModuleStatus:
        """Start (or resume) a module.

        A not-completed module becomes the current module. Re-entering a
        completed module is a review and leaves ``current_module`` alone.

        Returns:
            The module's state after entering.
        """
        self._require(module_id)
        if not self.is_completed(module_id):
            self.progress.current_module = module_id
            logger.info("module_entered", module=module_id)
        else:
            logger.info("module_review_started", module=module_id)
        return self.state_of(module_id)

    def complete(self, module_id: str) -> bool:
        """Mark a module completed and advance ``current_module``.

        Returns:
            True if this is a new completion, False if it was already completed.
        """
        self._require(module_id)
        newly_completed = not self.is_completed(module_id)
        if newly_completed:
            self.progress.completed_modules.append(module_id)
            logger.info("module_completed", module=module_id)
        if newly_completed or self.progress.current_module == module_id:
            self.progress.current_module = self.next_module()
        return newly_completed

    def next_module(self) -> str | None:
        """Recommend the next module to study.

        The first not-completed module after the most recently completed one,
        wrapping to the start of the curriculum; None when everything is done.
        """
        remaining = [m for m in self._module_ids if not self.is_completed(m)]
        if not remaining:
            return None
        if self.progress.completed_modules:
            last_index = self._module_ids.index(self.progress.completed_modules[-1])
            for module_id in self._module_ids[last_index + 1:]:
                if not self.is_completed(module_id):
                    return module_id
        return remaining[0]

    def completion_percentage(self) -> float:
        if not self._module_ids:
            return 0.0
        return len(self.progress.completed_modules) / len(self._module_ids) * 100

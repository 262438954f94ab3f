"""Question bank loading and lookup.

The bank is a directory of YAML files:

- ``topics.yaml``: quiz topics and their multiple-choice / command questions
- ``modules.yaml``: ordered learning modules with lesson text and exercises
- ``practice.yaml``: free-form practice sets
- ``paths.yaml``: learning paths per experience level

Everything is validated once at load time; lookups afterwards never fail
except for unknown ids.
"""

from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import BaseModel, ConfigDict, ValidationError

from bash_skill_tester.errors import InvalidArgumentError, MalformedBankError
from bash_skill_tester.models.question import Module, Question, Topic
from bash_skill_tester.models.user_profile import ExperienceLevel

logger = structlog.get_logger()

BANK_FILES = ("topics.yaml", "modules.yaml", "practice.yaml", "paths.yaml")


class PathStage(BaseModel):
    """One stage of a learning path."""

    model_config = ConfigDict(frozen=True)

    title: str
    duration: str = ""
    items: tuple[str, ...] = ()


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise MalformedBankError(f"Question bank file not found: {path}")
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise MalformedBankError(f"Cannot read question bank file {path}: {e}") from e
    if not isinstance(data, dict):
        raise MalformedBankError(f"Question bank file {path} must contain a mapping")
    return data


def _with_topic(items: list[dict] | None, topic: str) -> list[dict]:
    """Stamp each raw question with the topic it belongs to."""
    return [{**item, "topic": topic} for item in (items or [])]


def _check_unique(ids: list[str], what: str) -> None:
    seen: set[str] = set()
    for item_id in ids:
        if item_id in seen:
            raise MalformedBankError(f"Duplicate {what} id: {item_id!r}")
        seen.add(item_id)


class QuestionBank:
    """Immutable, versioned collection of topics, modules and practice sets.

    Args:
        version: Bank content version.
        topics: Quiz topics keyed by id.
        modules: Learning modules in curriculum order.
        practice: Practice sets keyed by id.
        paths: Learning path stages per experience level.
    """

    def __init__(
        self,
        version: int,
        topics: dict[str, Topic],
        modules: tuple[Module, ...] = (),
        practice: dict[str, Topic] | None = None,
        paths: dict[ExperienceLevel, tuple[PathStage, ...]] | None = None,
    ):
        self.version = version
        self._topics = dict(topics)
        self._modules = tuple(modules)
        self._modules_by_id = {m.id: m for m in self._modules}
        self._practice = dict(practice or {})
        self._paths = dict(paths or {})

    @classmethod
    def load(cls, bank_dir: Path) -> "QuestionBank":
        """Load and validate every bank file in ``bank_dir``.

        Raises:
            MalformedBankError: If any file is missing, unparseable or invalid.
        """
        raw = {name: _read_yaml(bank_dir / name) for name in BANK_FILES}
        versions = {raw[name].get("version", 1) for name in BANK_FILES}
        if len(versions) != 1:
            raise MalformedBankError(f"Bank files disagree on version: {sorted(versions)}")
        version = versions.pop()

        try:
            topics = {
                topic_id: Topic(
                    id=topic_id,
                    title=entry.get("title", topic_id),
                    questions=_with_topic(entry.get("questions"), topic_id),
                )
                for topic_id, entry in (raw["topics.yaml"].get("topics") or {}).items()
            }
            modules = tuple(
                Module(**{
                    **entry,
                    "exercises": _with_topic(entry.get("exercises"), entry.get("id", "")),
                })
                for entry in (raw["modules.yaml"].get("modules") or [])
            )
            practice = {
                topic_id: Topic(
                    id=topic_id,
                    title=entry.get("title", topic_id),
                    questions=_with_topic(entry.get("exercises"), topic_id),
                )
                for topic_id, entry in (raw["practice.yaml"].get("practice") or {}).items()
            }
            paths = {
                ExperienceLevel(level): tuple(PathStage(**stage) for stage in stages or [])
                for level, stages in (raw["paths.yaml"].get("paths") or {}).items()
            }
        except (ValidationError, TypeError, ValueError, AttributeError) as e:
            raise MalformedBankError(f"Invalid question bank in {bank_dir}: {e}") from e

        if not topics:
            raise MalformedBankError(f"Question bank in {bank_dir} defines no topics")
        _check_unique([m.id for m in modules], "module")
        for topic in list(topics.values()) + list(practice.values()):
            _check_unique([q.id for q in topic.questions], f"question in topic {topic.id!r}")
        for module in modules:
            _check_unique([q.id for q in module.exercises], f"exercise in module {module.id!r}")

        logger.info(
            "question_bank_loaded",
            bank_dir=str(bank_dir),
            version=version,
            topics=len(topics),
            modules=len(modules),
        )
        return cls(version, topics, modules, practice, paths)

    def topics(self) -> set[str]:
        return set(self._topics)

    def ordered_topics(self) -> list[Topic]:
        """Topics in bank file order, for menus."""
        return list(self._topics.values())

    def _topic(self, topic: str) -> Topic:
        try:
            return self._topics[topic]
        except KeyError:
            raise InvalidArgumentError(
                f"Unknown topic: {topic!r}. Available: {', '.join(self._topics)}"
            ) from None

    def questions_for(self, topic: str) -> tuple[Question, ...]:
        """Questions for a topic, in the same order on every call."""
        return self._topic(topic).questions

    def topic_title(self, topic: str) -> str:
        return self._topic(topic).title

    def modules(self) -> tuple[Module, ...]:
        return self._modules

    def module_ids(self) -> list[str]:
        return [m.id for m in self._modules]

    def module(self, module_id: str) -> Module:
        try:
            return self._modules_by_id[module_id]
        except KeyError:
            raise InvalidArgumentError(
                f"Unknown module: {module_id!r}. Available: {', '.join(self._modules_by_id)}"
            ) from None

    def practice_topics(self) -> list[str]:
        return list(self._practice)

    def practice_for(self, topic: str) -> Topic:
        try:
            return self._practice[topic]
        except KeyError:
            raise InvalidArgumentError(
                f"Practice mode not available for: {topic!r}. "
                f"Available practice topics: {', '.join(self._practice)}"
            ) from None

    def learning_path(self, level: ExperienceLevel) -> tuple[PathStage, ...]:
        """Path stages for a level; unknown levels get the beginner path."""
        if level in self._paths:
            return self._paths[level]
        return self._paths.get(ExperienceLevel.BEGINNER, ())

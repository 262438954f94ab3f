"""User profile model for tracking learning progress across sessions."""

from datetime import datetime
from enum import StrEnum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from bash_skill_tester.models.assessment import SkillLevel


def _now() -> datetime:
    return datetime.now().astimezone()


class ExperienceLevel(StrEnum):
    """Self-reported experience level."""

    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: str) -> "ExperienceLevel":
        """Lenient parse for user input; anything unrecognised is UNKNOWN."""
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.UNKNOWN


class LearningProgress(BaseModel):
    """Module completion state.

    ``completed_modules`` is an ordered set: insertion order is completion order.
    """

    model_config = ConfigDict(extra="ignore")

    current_module: str | None = None
    completed_modules: list[str] = Field(default_factory=list)
    skill_level: SkillLevel | None = None

    @field_validator("completed_modules")
    @classmethod
    def _dedupe(cls, value: list[str]) -> list[str]:
        return list(dict.fromkeys(value))


class UserProfile(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    user_id: str
    name: str = ""
    experience_level: ExperienceLevel = ExperienceLevel.UNKNOWN
    role: str = ""
    created_at: datetime = Field(
        default_factory=_now, validation_alias=AliasChoices("created_at", "created")
    )
    last_session_at: datetime | None = Field(
        default=None, validation_alias=AliasChoices("last_session_at", "last_session")
    )
    assessments_taken: int = Field(default=0, ge=0)
    exercises_completed: int = Field(default=0, ge=0)
    skill_scores: dict[str, int] = Field(default_factory=dict)
    progress: LearningProgress = Field(default_factory=LearningProgress)

    @field_validator("experience_level", mode="before")
    @classmethod
    def _lenient_level(cls, value):
        if isinstance(value, str):
            return ExperienceLevel.parse(value)
        return value

    @field_validator("created_at", "last_session_at", mode="before")
    @classmethod
    def _blank_timestamp(cls, value, info):
        # The shell tool wrote "" for timestamps it never filled in
        if value == "":
            return _now() if info.field_name == "created_at" else None
        return value

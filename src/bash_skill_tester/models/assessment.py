"""Assessment result and skill level models."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class SkillLevel(StrEnum):
    """Skill classification derived from a quiz percentage."""

    NOVICE = "novice"
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"

    @classmethod
    def from_percentage(cls, percentage: float) -> "SkillLevel":
        """Determine skill level from a 0-100 percentage."""
        if percentage >= 90:
            return cls.EXPERT
        elif percentage >= 75:
            return cls.ADVANCED
        elif percentage >= 60:
            return cls.INTERMEDIATE
        elif percentage >= 40:
            return cls.BEGINNER
        else:
            return cls.NOVICE


def compute_percentage(score: int, total: int) -> int:
    """Whole-number percentage of correct answers, clamped to 0-100."""
    if total <= 0:
        raise ValueError("total must be positive")
    return max(0, min(100, score * 100 // total))


class AssessmentResult(BaseModel):
    """One completed quiz run. Immutable once written."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    topic: str
    score: int = Field(ge=0)
    total: int = Field(gt=0)
    percentage: int = Field(ge=0, le=100)
    derived_level: SkillLevel

    @model_validator(mode="after")
    def _score_within_total(self) -> "AssessmentResult":
        if self.score > self.total:
            raise ValueError("score cannot exceed total")
        return self

    @classmethod
    def from_tally(
        cls, topic: str, score: int, total: int, timestamp: datetime
    ) -> "AssessmentResult":
        """Build a result, deriving percentage and level from the raw tally."""
        percentage = compute_percentage(score, total)
        return cls(
            timestamp=timestamp,
            topic=topic,
            score=score,
            total=total,
            percentage=percentage,
            derived_level=SkillLevel.from_percentage(percentage),
        )

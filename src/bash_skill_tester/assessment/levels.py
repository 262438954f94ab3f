"""Skill level labels and recommendations shown after a quiz."""

from bash_skill_tester.models.assessment import SkillLevel

LEVEL_FEEDBACK: dict[SkillLevel, tuple[str, str]] = {
    SkillLevel.EXPERT: (
        "Expert level! You've mastered this topic.",
        "Consider teaching others or contributing to documentation.",
    ),
    SkillLevel.ADVANCED: (
        "Advanced level! Very good understanding.",
        "Practice real-world scenarios and edge cases.",
    ),
    SkillLevel.INTERMEDIATE: (
        "Intermediate level! Solid foundation.",
        "Study advanced patterns and best practices.",
    ),
    SkillLevel.BEGINNER: (
        "Beginner level! Basic understanding present.",
        "Practice more examples and hands-on exercises.",
    ),
    SkillLevel.NOVICE: (
        "Study needed! Review the fundamentals.",
        "Go through the tutorial materials for this topic.",
    ),
}

LEVEL_STYLES: dict[SkillLevel, str] = {
    SkillLevel.EXPERT: "bold green",
    SkillLevel.ADVANCED: "green",
    SkillLevel.INTERMEDIATE: "yellow",
    SkillLevel.BEGINNER: "yellow",
    SkillLevel.NOVICE: "red",
}


def get_level_feedback(level: SkillLevel) -> tuple[str, str]:
    """Get the headline and recommended next step for a level.

    Args:
        level: Derived skill level.

    Returns:
        (headline, next_step) tuple.
    """
    return LEVEL_FEEDBACK[level]


def get_full_mapping(percentage: int) -> dict[str, str | int]:
    """Get level, feedback and style for a percentage score.

    Args:
        percentage: Quiz percentage 0-100.

    Returns:
        Dict with level, headline, next_step, style and percentage.
    """
    level = SkillLevel.from_percentage(percentage)
    headline, next_step = get_level_feedback(level)
    return {
        "level": level.value,
        "headline": headline,
        "next_step": next_step,
        "style": LEVEL_STYLES[level],
        "percentage": percentage,
    }

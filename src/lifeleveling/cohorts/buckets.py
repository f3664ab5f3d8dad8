"""
Pure cohort arithmetic: age bucketing, percentiles and encouraging messages.

Nothing here touches the database; the service layer feeds it rows.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from lifeleveling.config import get_settings
from lifeleveling.enums import CommitmentLevel, SkillLevel

DEFAULT_PERCENTILE = 50
MIN_PERCENTILE = 1
MAX_PERCENTILE = 99


@dataclass(frozen=True)
class AgeRange:
    min: int
    max: int

    def contains(self, low: int, high: int) -> bool:
        return low >= self.min and high <= self.max

    def overlap(self, low: int, high: int) -> int:
        """Number of whole years shared with the inclusive range [low, high]."""
        return max(0, min(high, self.max) - max(low, self.min) + 1)

    def label(self) -> str:
        return f"{self.min}-{self.max}"


@dataclass(frozen=True)
class CohortKey:
    """Identifies one cohort: (age bracket, interest category, commitment level)."""

    age_min: int
    age_max: int
    category: str
    commitment: str

    @property
    def age_range(self) -> AgeRange:
        return AgeRange(self.age_min, self.age_max)

    def as_dict(self) -> dict[str, object]:
        return {
            "age_min": self.age_min,
            "age_max": self.age_max,
            "category": self.category,
            "commitment": self.commitment,
        }


def get_age_brackets() -> list[AgeRange]:
    """The configured bracket table, in ascending order."""
    return [AgeRange(low, high) for low, high in get_settings().cohort_age_brackets]


def get_user_age_range(age_min: int, age_max: int, brackets: list[AgeRange] | None = None) -> AgeRange:
    """
    Map a user's self-reported age range onto one bracket.

    The first bracket that fully contains the range wins. Otherwise the bracket
    with the largest overlap (earliest on ties). With no overlap at all the
    first bracket is used.
    """
    table = brackets if brackets is not None else get_age_brackets()
    for bracket in table:
        if bracket.contains(age_min, age_max):
            return bracket

    best = table[0]
    best_overlap = 0
    for bracket in table:
        overlap = bracket.overlap(age_min, age_max)
        if overlap > best_overlap:
            best, best_overlap = bracket, overlap
    return best


def cohort_key_for(age_min: int, age_max: int, category: str, commitment: str) -> CohortKey:
    bracket = get_user_age_range(age_min, age_max)
    return CohortKey(bracket.min, bracket.max, category, commitment)


def _counts(level_counts: Mapping[str | int, int]) -> dict[int, int]:
    return {int(level): int(count) for level, count in level_counts.items()}


def calculate_percentile(user_level: int, level_counts: Mapping[str | int, int]) -> int:
    """
    Share of the cohort strictly below ``user_level``, as a whole percent.

    Clamped to 1..99. An empty cohort yields 50.
    """
    counts = _counts(level_counts)
    total = sum(counts.values())
    if total == 0:
        return DEFAULT_PERCENTILE
    below = sum(count for level, count in counts.items() if level < user_level)
    percentile = round(below / total * 100)
    return max(MIN_PERCENTILE, min(MAX_PERCENTILE, percentile))


def cumulative_percentiles(level_counts: Mapping[str | int, int]) -> dict[str, int]:
    """For each populated level, the percent of the cohort below it (unclamped)."""
    counts = _counts(level_counts)
    total = sum(counts.values())
    if total == 0:
        return {}
    result: dict[str, int] = {}
    below = 0
    for level in sorted(counts):
        if counts[level] == 0:
            continue
        result[str(level)] = round(below / total * 100)
        below += counts[level]
    return result


def average_level(level_counts: Mapping[str | int, int]) -> float:
    counts = _counts(level_counts)
    total = sum(counts.values())
    if total == 0:
        return 0.0
    return round(sum(level * count for level, count in counts.items()) / total, 2)


def empty_level_counts() -> dict[str, int]:
    return {str(int(level)): 0 for level in SkillLevel}


_COMMITMENT_WORDS = {
    CommitmentLevel.CASUAL.value: "casual",
    CommitmentLevel.AVERAGE.value: "regular",
    CommitmentLevel.INVESTED.value: "dedicated",
    CommitmentLevel.COMPETITIVE.value: "competitive",
}


def generate_encouraging_message(percentile: int, commitment: str, category: str, age_range: AgeRange) -> str:
    """Human-friendly summary of where a user stands in their cohort."""
    if age_range.max <= 12:
        age_group = "kids"
    elif age_range.max <= 18:
        age_group = "teens"
    else:
        age_group = "people"
    commitment_text = _COMMITMENT_WORDS.get(commitment, "competitive")
    topic = category.lower()
    ages = age_range.label()

    if percentile >= 90:
        return (
            f"Amazing! You're in the top 10% of {commitment_text} {topic} enthusiasts aged {ages}. "
            "Keep up the fantastic work! 🌟"
        )
    if percentile >= 75:
        return (
            f"Great job! You're in the top 25% of {commitment_text} {topic} learners in your age group ({ages}). "
            "You're doing really well! 🎉"
        )
    if percentile >= 50:
        return (
            f"You're doing well! You're above average compared to other {commitment_text} {topic} {age_group} "
            f"aged {ages}. Keep exploring and growing! 💪"
        )
    if percentile >= 25:
        return (
            f"You're on a great learning journey! Many {commitment_text} {topic} {age_group} in your age group "
            f"({ages}) are at similar levels. Every step forward counts! 🚀"
        )
    return (
        f"Every expert was once a beginner! You're building your {topic} skills alongside other "
        f"{commitment_text} learners aged {ages}. Keep going! 🌱"
    )

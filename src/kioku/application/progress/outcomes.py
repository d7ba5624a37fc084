"""
Mapping practice answers to attempt outcomes.

The engine only consumes a boolean; these helpers turn flashcard
self-assessments, typed answers and evaluation-provider scores into one.
"""

from enum import Enum

from kioku.domain.constants import (
    DEFAULT_SCORE_THRESHOLD,
    FILL_IN_SIMILARITY_THRESHOLD,
    MAX_SCORE,
)


class FlashcardAssessment(str, Enum):
    EASY = "EASY"
    GOOD = "GOOD"
    HARD = "HARD"
    FORGOT = "FORGOT"


def outcome_from_flashcard(assessment: FlashcardAssessment | str) -> bool:
    """EASY and GOOD count as correct; HARD and FORGOT do not."""
    assessment = FlashcardAssessment(assessment)
    return assessment in (FlashcardAssessment.EASY, FlashcardAssessment.GOOD)


def outcome_from_score(score: float, threshold: float = DEFAULT_SCORE_THRESHOLD) -> bool:
    """
    Turn a 0-100 evaluation score into a correct/incorrect outcome.

    Raises:
        ValueError: The score is outside 0-100.
    """
    if not 0 <= score <= MAX_SCORE:
        raise ValueError(f"Score must be between 0 and {MAX_SCORE:g}, got {score}")
    return score >= threshold


def levenshtein_distance(s1: str, s2: str) -> int:
    """Edit distance (insertions, deletions, substitutions)."""
    if len(s1) < len(s2):
        s1, s2 = s2, s1

    previous = list(range(len(s2) + 1))
    for i, c1 in enumerate(s1, start=1):
        current = [i]
        for j, c2 in enumerate(s2, start=1):
            cost = 0 if c1 == c2 else 1
            current.append(min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost))
        previous = current
    return previous[-1]


def similarity(answer: str, expected: str) -> float:
    """
    Case-insensitive similarity ratio (0.0-1.0) between two answers.
    Surrounding whitespace is ignored.
    """
    a = answer.strip().lower()
    b = expected.strip().lower()

    if not a and not b:
        return 1.0
    if not a or not b:
        return 0.0
    if a == b:
        return 1.0

    return 1.0 - levenshtein_distance(a, b) / max(len(a), len(b))


def outcome_from_answer(
    answer: str,
    expected: str,
    threshold: float = FILL_IN_SIMILARITY_THRESHOLD,
) -> bool:
    """A typed fill-in answer is correct when it is close enough to the expected one."""
    return similarity(answer, expected) >= threshold

import math
import sys
from typing import NamedTuple

from .state import Question


# Seconds of remaining time worth one extra multiple of the base points
TIME_BONUS_SCALE = 10.0
# Ceiling for a single award, reached only by absurd reported times
MAX_POINTS = sys.maxsize


class ScoreResult(NamedTuple):
    is_correct: bool
    points: int
    time_remaining: float


def _as_seconds(value) -> float:
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(seconds) or math.isinf(seconds):
        return 0.0
    return seconds


def is_option(answer) -> bool:
    """Option indices are plain ints; bools and numeric strings are not."""
    return isinstance(answer, int) and not isinstance(answer, bool)


def score_answer(answer, question: Question, time_remaining) -> ScoreResult:
    """Score a single submitted answer.

    Correct answers earn at least half the question's points, plus
    ``time_remaining / 10`` of the base value on top. The bonus is not
    capped, so a client reporting more time than the question allows gets
    more than 1.5x. Wrong answers earn nothing.
    """
    remaining = _as_seconds(time_remaining)
    is_correct = is_option(answer) and answer == question.correct_answer
    if not is_correct:
        return ScoreResult(False, 0, remaining)
    bonus = max(0.0, remaining / TIME_BONUS_SCALE)
    raw = question.points * (0.5 + bonus)
    if math.isinf(raw):
        # Huge reported times overflow the product; keep the award finite
        raw = float(MAX_POINTS)
    return ScoreResult(True, min(int(math.floor(raw)), MAX_POINTS), remaining)

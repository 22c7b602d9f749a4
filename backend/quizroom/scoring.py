"""Answer matching and points for a single question."""

from typing import Optional

from .models import Question

MAX_SPEED_BONUS = 50


def normalize_answer(text: str) -> str:
    return text.strip().lower()


def speed_bonus(response_time_ms: int) -> int:
    """One point less per elapsed second, never below zero."""
    return max(0, MAX_SPEED_BONUS - response_time_ms // 1000)


def is_correct(question: Question, answer: Optional[str]) -> bool:
    if answer is None:
        return False
    return normalize_answer(answer) == normalize_answer(question.correct_answer)


def points_for(question: Question, answer: Optional[str], response_time_ms: Optional[int]) -> int:
    if not is_correct(question, answer):
        return 0
    return question.point_value + speed_bonus(response_time_ms or 0)

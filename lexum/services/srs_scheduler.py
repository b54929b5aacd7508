"""
SM-2 scheduling plus the Personal Layer.

Two levels:

1. SM-2 decides WHEN a word is reviewed next:
   ease_factor, interval_days, repetitions, next_review, last_result.

2. The Personal Layer describes how hard the word is for this learner:
   personal_score = difficulty - familiarity_bonus + mistake_penalty + decay_penalty,
   plus the word_state life cycle (new -> learning -> stabilizing -> mastered -> decaying)
   and a trend computed from recent answers.

Everything here is pure: callers persist the returned state.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Optional

from lexum.exceptions import ValidationError


DEFAULT_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3

QUALITY_GRADES = {"forgot": 0, "hard": 3, "good": 4, "easy": 5}

FAMILIARITY_BONUS_MAX = 15
MISTAKE_PENALTY_MAX = 10
DECAY_PENALTY_MAX = 8

DEFAULT_DIFFICULTY = 50


@dataclass(frozen=True)
class ReviewState:
    ease_factor: float = DEFAULT_EASE_FACTOR
    interval_days: int = 0
    repetitions: int = 0
    next_review: Optional[datetime] = None
    last_result: str = "new"


@dataclass(frozen=True)
class ProgressUpdate:
    ease_factor: float
    interval_days: int
    repetitions: int
    next_review: datetime
    last_result: str
    wrong_count: int
    correct_count: int
    personal_score: int
    word_state: str
    trend_direction: str

    def as_dict(self) -> dict:
        return {
            "ease_factor": self.ease_factor,
            "interval_days": self.interval_days,
            "repetitions": self.repetitions,
            "next_review": self.next_review,
            "last_result": self.last_result,
            "wrong_count": self.wrong_count,
            "correct_count": self.correct_count,
            "personal_score": self.personal_score,
            "word_state": self.word_state,
            "trend_direction": self.trend_direction,
        }


def _field(progress: Any, name: str, default=None):
    if progress is None:
        return default
    if isinstance(progress, dict):
        value = progress.get(name, default)
    else:
        value = getattr(progress, name, default)
    return default if value is None else value


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def grade_for(quality: str) -> int:
    try:
        return QUALITY_GRADES[quality]
    except KeyError:
        raise ValidationError(f"quality must be one of {', '.join(QUALITY_GRADES)}, got {quality!r}")


def to_review_state(progress: Any) -> ReviewState:
    """Read SM-2 fields from a row, dict or ReviewState and validate them."""
    ease_factor = float(_field(progress, "ease_factor", DEFAULT_EASE_FACTOR))
    interval_days = _field(progress, "interval_days", 0)
    repetitions = _field(progress, "repetitions", 0)

    if ease_factor < MIN_EASE_FACTOR:
        raise ValidationError(f"ease_factor must be >= {MIN_EASE_FACTOR}, got {ease_factor}")
    if int(interval_days) != interval_days or interval_days < 0:
        raise ValidationError(f"interval_days must be a non-negative integer, got {interval_days}")
    if int(repetitions) != repetitions or repetitions < 0:
        raise ValidationError(f"repetitions must be a non-negative integer, got {repetitions}")

    return ReviewState(
        ease_factor=ease_factor,
        interval_days=int(interval_days),
        repetitions=int(repetitions),
        next_review=_field(progress, "next_review"),
        last_result=_field(progress, "last_result", "new"),
    )


def next_state(progress: Any, quality: str, now: Optional[datetime] = None) -> ReviewState:
    """Compute the SM-2 state after one answer."""
    q = grade_for(quality)
    state = to_review_state(progress)
    now = _utc(now or datetime.now(timezone.utc))

    ease_factor = state.ease_factor
    interval_days = state.interval_days
    repetitions = state.repetitions

    if q < 3:
        # Forgotten: start over, due again today
        repetitions = 0
        interval_days = 0
    else:
        if repetitions == 0:
            interval_days = 1
        elif repetitions == 1:
            interval_days = 6
        else:
            interval_days = _round_half_up(interval_days * ease_factor)
        repetitions += 1

    ease_factor = max(MIN_EASE_FACTOR, ease_factor + (0.1 - (5 - q) * (0.08 + (5 - q) * 0.02)))

    return ReviewState(
        ease_factor=round(ease_factor, 2),
        interval_days=interval_days,
        repetitions=repetitions,
        next_review=now + timedelta(days=interval_days),
        last_result=quality,
    )


def _overdue_days(next_review: Optional[datetime], now: datetime) -> float:
    if next_review is None:
        return 0.0
    return (now - _utc(next_review)).total_seconds() / 86400


def word_state(progress: Any, now: Optional[datetime] = None) -> str:
    if progress is None or _field(progress, "repetitions") is None:
        return "new"

    now = _utc(now or datetime.now(timezone.utc))
    repetitions = _field(progress, "repetitions", 0)
    ease_factor = _field(progress, "ease_factor", DEFAULT_EASE_FACTOR)
    interval_days = _field(progress, "interval_days", 0)
    last_result = _field(progress, "last_result")
    next_review = _field(progress, "next_review")

    if repetitions == 0:
        return "new"
    if repetitions >= 5 and ease_factor >= 2.3 and last_result == "forgot":
        return "decaying"
    if repetitions >= 4 and next_review is not None and _overdue_days(next_review, now) > 14:
        return "decaying"
    if repetitions >= 5 and ease_factor >= 2.3 and interval_days >= 21:
        return "mastered"
    if repetitions >= 3:
        return "stabilizing"
    return "learning"


def _familiarity_bonus(correct_count: int, repetitions: int) -> int:
    reps = max(correct_count or 0, repetitions or 0)
    return min(FAMILIARITY_BONUS_MAX, _round_half_up(math.log2(reps + 1) * 5))


def _mistake_penalty(wrong_count: int, total_count: int) -> int:
    if not total_count:
        return 0
    return min(MISTAKE_PENALTY_MAX, _round_half_up((wrong_count or 0) / total_count * MISTAKE_PENALTY_MAX))


def _decay_penalty(next_review: Optional[datetime], now: datetime) -> int:
    overdue = _overdue_days(next_review, now)
    if overdue <= 0:
        return 0
    return min(DECAY_PENALTY_MAX, _round_half_up(math.log2(overdue + 1) * 3))


def personal_score(difficulty_score: Optional[float], progress: Any, now: Optional[datetime] = None) -> int:
    """Difficulty of the word for this learner, 0-100."""
    base = DEFAULT_DIFFICULTY if difficulty_score is None else difficulty_score
    repetitions = _field(progress, "repetitions", 0)
    if progress is None or not repetitions:
        return int(base)

    now = _utc(now or datetime.now(timezone.utc))
    correct_count = _field(progress, "correct_count", 0)
    wrong_count = _field(progress, "wrong_count", 0)

    score = (base
             - _familiarity_bonus(correct_count, repetitions)
             + _mistake_penalty(wrong_count, correct_count + wrong_count)
             + _decay_penalty(_field(progress, "next_review"), now))
    return min(100, max(0, _round_half_up(score)))


def trend(recent_results: Iterable[bool]) -> str:
    """Compare the last 3 answers with the 3 before them (newest first)."""
    results = [1 if result else 0 for result in recent_results]
    if len(results) < 4:
        return "stable"

    last3 = results[:3]
    prev3 = results[3:6]
    delta = sum(last3) / len(last3) - sum(prev3) / len(prev3)

    if delta > 0.2:
        return "easier"
    if delta < -0.2:
        return "harder"
    return "stable"


def apply_answer(progress: Any, quality: str, difficulty_score: Optional[float] = None,
                 recent_results: Iterable[bool] = (), now: Optional[datetime] = None) -> ProgressUpdate:
    """SM-2 step plus counters, word state, personal score and trend."""
    now = _utc(now or datetime.now(timezone.utc))
    sm2 = next_state(progress, quality, now=now)

    is_correct = quality != "forgot"
    wrong_count = _field(progress, "wrong_count", 0) + (0 if is_correct else 1)
    correct_count = _field(progress, "correct_count", 0) + (1 if is_correct else 0)

    merged = {
        "ease_factor": sm2.ease_factor,
        "interval_days": sm2.interval_days,
        "repetitions": sm2.repetitions,
        "next_review": sm2.next_review,
        "last_result": sm2.last_result,
        "wrong_count": wrong_count,
        "correct_count": correct_count,
    }

    return ProgressUpdate(
        ease_factor=sm2.ease_factor,
        interval_days=sm2.interval_days,
        repetitions=sm2.repetitions,
        next_review=sm2.next_review,
        last_result=sm2.last_result,
        wrong_count=wrong_count,
        correct_count=correct_count,
        personal_score=personal_score(difficulty_score, merged, now),
        word_state=word_state(merged, now),
        trend_direction=trend([is_correct, *recent_results]),
    )

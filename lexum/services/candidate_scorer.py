"""
Scoring of pool candidates and CEFR targeting.

score = level match (3 same level, else 1)
      + commonality (5 - frequency_band, never negative)
      + confidence bonus (1 when confidence_score >= 80)
      + phrase bonus (0.5)
"""

from typing import Any, List, Optional, Sequence

from lexum.constants.cefr import CEFR_ORDER, DEFAULT_CEFR


DEFAULT_FREQUENCY_BAND = 3
DEFAULT_CONFIDENCE = 50
HIGH_CONFIDENCE = 80

INTENTS = ("expand", "focus", "explore")


def _attr(candidate: Any, name: str):
    if isinstance(candidate, dict):
        return candidate.get(name)
    return getattr(candidate, name, None)


def score(candidate: Any, primary_cefr: str) -> float:
    frequency_band = _attr(candidate, "frequency_band")
    confidence = _attr(candidate, "confidence_score")
    if frequency_band is None:
        frequency_band = DEFAULT_FREQUENCY_BAND
    if confidence is None:
        confidence = DEFAULT_CONFIDENCE

    total = 3 if _attr(candidate, "cefr_level") == primary_cefr else 1
    total += max(0, 5 - frequency_band)
    if confidence >= HIGH_CONFIDENCE:
        total += 1
    if _attr(candidate, "phrase_flag"):
        total += 0.5
    return total


def rank(candidates: Sequence[Any], primary_cefr: str) -> List[Any]:
    # sorted() is stable, so equal scores keep fetch order
    return sorted(candidates, key=lambda candidate: score(candidate, primary_cefr), reverse=True)


def cefr_step(level: str, delta: int) -> str:
    if level not in CEFR_ORDER:
        return level
    index = CEFR_ORDER.index(level) + delta
    return CEFR_ORDER[max(0, min(len(CEFR_ORDER) - 1, index))]


def adjust_level(dominant: Optional[str], difficulty: Optional[str]) -> str:
    base = dominant or DEFAULT_CEFR
    if difficulty == "easier":
        return cefr_step(base, -1)
    if difficulty == "harder":
        return cefr_step(base, 1)
    return base


def target_cefr_levels(dominant: Optional[str], difficulty: Optional[str] = None,
                       mode: str = "auto", intent: Optional[str] = None) -> List[str]:
    """CEFR levels to draw recommendations from."""
    base = adjust_level(dominant, difficulty)

    if mode == "auto":
        levels = [base, cefr_step(base, 1)]
    elif intent == "focus":
        levels = [base]
    elif intent == "explore":
        levels = [cefr_step(base, 1), cefr_step(base, 2)]
    else:
        levels = [cefr_step(base, -1), base, cefr_step(base, 1)]

    return list(dict.fromkeys(levels))

"""
Skill profile: per-learner weakness scores for four linguistic factors.

Each word belongs to zero or more factors:
    frequency  -> frequency_band 4-5 (rare words)
    polysemy   -> polysemy_level 3-4 (many meanings)
    morphology -> morph_complexity 3-4 (complex grammar)
    idiom      -> phrase_flag, or a translation kind mentioning "idiom"

After every answer the factor scores move by an exponential moving average:
    new = old * (1 - ALPHA) + (+DELTA if correct else -DELTA) * ALPHA

A factor scoring below WEAKNESS_THRESHOLD (-10) is a weakness.
"""

import math
from dataclasses import dataclass, replace
from typing import Any, Callable, Iterable, Optional


EMA_ALPHA = 0.15
DELTA = 20
MIN_SCORE = -100
MAX_SCORE = 100

WEAKNESS_THRESHOLD = -10

FACTORS = ("frequency", "polysemy", "morphology", "idiom")

# factor -> SkillProfile attribute
SCORE_FIELDS = {
    "frequency": "frequency_score",
    "polysemy": "polysemy_score",
    "morphology": "morph_score",
    "idiom": "idiom_score",
}


@dataclass(frozen=True)
class SkillProfile:
    frequency_score: int = 0
    polysemy_score: int = 0
    morph_score: int = 0
    idiom_score: int = 0
    total_updates: int = 0

    @classmethod
    def from_row(cls, row: Any) -> "SkillProfile":
        if row is None:
            return cls()
        return cls(
            frequency_score=row.frequency_score or 0,
            polysemy_score=row.polysemy_score or 0,
            morph_score=row.morph_score or 0,
            idiom_score=row.idiom_score or 0,
            total_updates=row.total_updates or 0,
        )

    def score_of(self, factor: str) -> int:
        return getattr(self, SCORE_FIELDS[factor])

    def as_dict(self) -> dict:
        return {
            "frequency_score": self.frequency_score,
            "polysemy_score": self.polysemy_score,
            "morph_score": self.morph_score,
            "idiom_score": self.idiom_score,
            "total_updates": self.total_updates,
        }


def _meta(word: Any, name: str):
    if isinstance(word, dict):
        return word.get(name)
    return getattr(word, name, None)


def factors_of(word: Any) -> frozenset:
    factors = set()

    frequency_band = _meta(word, "frequency_band")
    if frequency_band is not None and frequency_band >= 4:
        factors.add("frequency")

    polysemy_level = _meta(word, "polysemy_level")
    if polysemy_level is not None and polysemy_level >= 3:
        factors.add("polysemy")

    morph_complexity = _meta(word, "morph_complexity")
    if morph_complexity is not None and morph_complexity >= 3:
        factors.add("morphology")

    translation_kind = _meta(word, "translation_kind")
    is_idiom_kind = isinstance(translation_kind, str) and "idiom" in translation_kind.lower()
    if _meta(word, "phrase_flag") or is_idiom_kind:
        factors.add("idiom")

    return frozenset(factors)


def ema_step(score: int, is_correct: bool) -> int:
    signal = DELTA if is_correct else -DELTA
    moved = score * (1 - EMA_ALPHA) + signal * EMA_ALPHA
    return max(MIN_SCORE, min(MAX_SCORE, math.floor(moved + 0.5)))


def update(profile: SkillProfile, factors: Iterable[str], is_correct: bool) -> SkillProfile:
    factors = set(factors)
    if not factors:
        return profile

    changes = {
        SCORE_FIELDS[factor]: ema_step(profile.score_of(factor), is_correct)
        for factor in FACTORS if factor in factors
    }
    return replace(profile, total_updates=profile.total_updates + 1, **changes)


def dominant_weakness(profile: Optional[SkillProfile]) -> Optional[str]:
    """Lowest-scoring factor below the weakness threshold, or None."""
    if profile is None:
        return None

    weakest = None
    for factor in FACTORS:
        score = profile.score_of(factor)
        if score >= WEAKNESS_THRESHOLD:
            continue
        if weakest is None or score < profile.score_of(weakest):
            weakest = factor
    return weakest


@dataclass(frozen=True)
class WeaknessFilter:
    column: str
    op: str
    value: Any

    def __call__(self, word: Any) -> bool:
        actual = _meta(word, self.column)
        if actual is None:
            return False
        if self.op == "gte":
            return actual >= self.value
        return actual == self.value


_WEAKNESS_FILTERS = {
    "frequency": WeaknessFilter("frequency_band", "gte", 4),
    "polysemy": WeaknessFilter("polysemy_level", "gte", 3),
    "morphology": WeaknessFilter("morph_complexity", "gte", 3),
    "idiom": WeaknessFilter("phrase_flag", "eq", True),
}


def weakness_filter(factor: Optional[str]) -> Optional[Callable[[Any], bool]]:
    if factor is None:
        return None
    return _WEAKNESS_FILTERS.get(factor)

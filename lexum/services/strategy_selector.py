"""
Recommendation strategy selection.

Decides how many recommendations come from the word pool (sql) and how many
are generated (llm). Rules are evaluated top to bottom, first match wins.
"""

import math
from dataclasses import dataclass
from typing import Callable, List, Tuple


FOUNDATION_THRESHOLD = 10   # below this the learner has no usable seed vocabulary
HYBRID_POOL_MIN = 20        # smaller pools are not worth ranking
SQL_POOL_THRESHOLD = 80     # pools this large never need generation
SEED_THRESHOLD = 30         # learners below this send a sample of their words as seed
HYBRID_SQL_SHARE = 0.7

MODES = ("sql", "hybrid", "llm")


@dataclass(frozen=True)
class RecommendationStrategy:
    mode: str
    sql_count: int
    llm_count: int

    def as_dict(self) -> dict:
        return {"mode": self.mode, "sql_count": self.sql_count, "llm_count": self.llm_count}


def _llm_only(pool_size: int, requested: int) -> RecommendationStrategy:
    return RecommendationStrategy("llm", 0, requested)


def _sql_only(pool_size: int, requested: int) -> RecommendationStrategy:
    return RecommendationStrategy("sql", requested, 0)


def _hybrid(pool_size: int, requested: int) -> RecommendationStrategy:
    sql_count = min(pool_size, math.ceil(requested * HYBRID_SQL_SHARE))
    return RecommendationStrategy("hybrid", sql_count, requested - sql_count)


Rule = Tuple[Callable[[int, int], bool], Callable[[int, int], RecommendationStrategy]]

# (pool_size, user_word_count) predicate -> strategy builder
RULES: List[Rule] = [
    (lambda pool_size, user_word_count: user_word_count < FOUNDATION_THRESHOLD, _llm_only),
    (lambda pool_size, user_word_count: pool_size < HYBRID_POOL_MIN, _llm_only),
    (lambda pool_size, user_word_count: pool_size >= SQL_POOL_THRESHOLD, _sql_only),
]


def select_strategy(pool_size: int, user_word_count: int, requested: int) -> RecommendationStrategy:
    for matches, build in RULES:
        if matches(pool_size, user_word_count):
            return build(pool_size, requested)
    return _hybrid(pool_size, requested)


def needs_seed(user_word_count: int) -> bool:
    """Learners between the foundation and seed thresholds send a vocabulary sample."""
    return FOUNDATION_THRESHOLD <= user_word_count < SEED_THRESHOLD

"""Tests for recommendation strategy selection."""

import pytest

from lexum.services.strategy_selector import RecommendationStrategy, needs_seed, select_strategy


class TestSelectStrategy:

    def test_small_vocabulary_is_llm_only(self):
        assert select_strategy(pool_size=200, user_word_count=5, requested=5) == \
            RecommendationStrategy("llm", 0, 5)

    def test_large_pool_is_sql_only(self):
        assert select_strategy(pool_size=100, user_word_count=50, requested=10) == \
            RecommendationStrategy("sql", 10, 0)

    def test_small_pool_is_llm_only(self):
        assert select_strategy(pool_size=19, user_word_count=50, requested=10).mode == "llm"

    def test_medium_pool_is_hybrid(self):
        strategy = select_strategy(pool_size=40, user_word_count=50, requested=10)

        assert strategy.mode == "hybrid"
        assert strategy.sql_count == 7
        assert strategy.llm_count == 3

    def test_hybrid_sql_share_capped_by_pool(self):
        strategy = select_strategy(pool_size=20, user_word_count=50, requested=40)

        assert strategy.sql_count == 20
        assert strategy.llm_count == 20

    @pytest.mark.parametrize("pool_size,user_word_count,requested", [
        (0, 0, 1), (15, 12, 7), (50, 9, 10), (79, 300, 13), (80, 10, 3), (500, 500, 100),
    ])
    def test_counts_always_add_up(self, pool_size, user_word_count, requested):
        strategy = select_strategy(pool_size, user_word_count, requested)

        assert strategy.sql_count + strategy.llm_count == requested
        assert strategy.sql_count >= 0 and strategy.llm_count >= 0
        assert strategy.mode in ("sql", "hybrid", "llm")

    def test_as_dict(self):
        assert RecommendationStrategy("sql", 3, 0).as_dict() == {"mode": "sql", "sql_count": 3, "llm_count": 0}


class TestNeedsSeed:

    def test_below_foundation(self):
        assert not needs_seed(9)

    def test_between_thresholds(self):
        assert needs_seed(10)
        assert needs_seed(29)

    def test_established_learner(self):
        assert not needs_seed(30)

"""Tests for pool candidate scoring and CEFR targeting."""

from types import SimpleNamespace

from lexum.services import candidate_scorer


class TestScore:

    def test_full_score(self):
        candidate = {"cefr_level": "B1", "frequency_band": 1, "confidence_score": 90, "phrase_flag": True}
        assert candidate_scorer.score(candidate, "B1") == 8.5

    def test_defaults_for_missing_metadata(self):
        assert candidate_scorer.score({}, "B1") == 3

    def test_other_level_scores_lower(self):
        same = {"cefr_level": "B1", "frequency_band": 2}
        other = {"cefr_level": "B2", "frequency_band": 2}
        assert candidate_scorer.score(same, "B1") > candidate_scorer.score(other, "B1")

    def test_commonality_never_negative(self):
        assert candidate_scorer.score({"cefr_level": "A1", "frequency_band": 9}, "B1") == 1

    def test_reads_attributes(self):
        row = SimpleNamespace(cefr_level="B1", frequency_band=3, confidence_score=80, phrase_flag=False)
        assert candidate_scorer.score(row, "B1") == 6


class TestRank:

    def test_highest_first_ties_keep_order(self):
        pool = [
            {"id": 1, "cefr_level": "B2", "frequency_band": 3},
            {"id": 2, "cefr_level": "B1", "frequency_band": 3},
            {"id": 3, "cefr_level": "B2", "frequency_band": 3},
        ]
        assert [c["id"] for c in candidate_scorer.rank(pool, "B1")] == [2, 1, 3]


class TestCefrTargeting:

    def test_step_is_clamped(self):
        assert candidate_scorer.cefr_step("C2", 1) == "C2"
        assert candidate_scorer.cefr_step("A1", -1) == "A1"

    def test_unknown_level_unchanged(self):
        assert candidate_scorer.cefr_step("X9", 1) == "X9"

    def test_adjust_level(self):
        assert candidate_scorer.adjust_level(None, None) == "B1"
        assert candidate_scorer.adjust_level("B1", "easier") == "A2"
        assert candidate_scorer.adjust_level("B1", "harder") == "B2"
        assert candidate_scorer.adjust_level("B1", "same") == "B1"

    def test_auto_targets_level_and_next(self):
        assert candidate_scorer.target_cefr_levels("B1") == ["B1", "B2"]

    def test_auto_at_top_is_deduplicated(self):
        assert candidate_scorer.target_cefr_levels("C2") == ["C2"]

    def test_controlled_focus(self):
        assert candidate_scorer.target_cefr_levels("B1", mode="controlled", intent="focus") == ["B1"]

    def test_controlled_explore(self):
        assert candidate_scorer.target_cefr_levels("B1", mode="controlled", intent="explore") == ["B2", "C1"]

    def test_controlled_expand(self):
        assert candidate_scorer.target_cefr_levels("B1", mode="controlled", intent="expand") == ["A2", "B1", "B2"]
        assert candidate_scorer.target_cefr_levels("A1", mode="controlled", intent="expand") == ["A1", "A2"]

    def test_difficulty_shifts_base(self):
        assert candidate_scorer.target_cefr_levels("B1", difficulty="easier") == ["A2", "B1"]

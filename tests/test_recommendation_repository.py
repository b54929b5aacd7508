"""Tests for recommendation store queries against a mocked session."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

from sqlalchemy.dialects import postgresql

from lexum.repositories.recommendation_repository import RecommendationRepository


def fake_db(first=None):
    result = MagicMock()
    result.first.return_value = first
    db = MagicMock()
    db.rollback = AsyncMock()
    db.execute = AsyncMock(return_value=result)
    return db


class TestDominantCefr:

    async def test_ties_break_on_level(self):
        db = fake_db(SimpleNamespace(cefr_level="B1"))

        level = await RecommendationRepository(db).dominant_cefr(1)

        assert level == "B1"
        sql = str(db.execute.call_args.args[0].compile(dialect=postgresql.dialect()))
        order_by = sql.split("ORDER BY", 1)[1]
        assert "count(*) DESC, words.cefr_level" in order_by

    async def test_no_levels_returns_none(self):
        db = fake_db(None)

        assert await RecommendationRepository(db).dominant_cefr(1) is None

"""Tests for the daily plan store: plan sizing, entitlements and the creation race."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import IntegrityError
from sqlalchemy.sql.dml import Delete, Update

from lexum.constants.entitlements import ENTITLEMENTS
from lexum.exceptions import DependencyError, EntitlementError
from lexum.repositories.today_repository import TodayRepository, format_plan, plan_target
from lexum.services.daily_plan_builder import PlanItem


FREE = ENTITLEMENTS["free"]
PRO = ENTITLEMENTS["pro"]


def stored_plan(now, items=()):
    return SimpleNamespace(id=3, date=now.date(), target_count=len(items), completed_count=0,
                           generated_at=now, items=list(items))


def stored_item(item_id, order_index, slot_type="due"):
    word = SimpleNamespace(id=item_id, original=f"w{item_id}", translation=f"t{item_id}", transcription=None,
                           cefr_level="B1", part_of_speech="noun", phrase_flag=False,
                           example_sentence_target=None, difficulty_score=40.0)
    return SimpleNamespace(id=item_id, word_id=item_id, list_id=1, slot_type=slot_type,
                           order_index=order_index, status="pending", completed_at=None, word=word)


def fake_db():
    db = MagicMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.execute = AsyncMock()
    return db


class TestPlanTarget:

    def test_free_plan_ignores_requested_size(self):
        assert plan_target(FREE, 40) == 10

    def test_pro_plan_uses_requested_size_within_bounds(self):
        assert plan_target(PRO, 25) == 25
        assert plan_target(PRO, 3) == 10
        assert plan_target(PRO, 500) == 50

    def test_no_request_uses_plan_default(self):
        assert plan_target(PRO, None) == 30


class TestFormatPlan:

    def test_items_sorted_and_entitlements_attached(self, now):
        plan = stored_plan(now, [stored_item(2, 1), stored_item(1, 0, "weak")])

        response = format_plan(plan, PRO)

        assert [item.order_index for item in response.items] == [0, 1]
        assert response.items[0].word.original == "w1"
        assert response.can_regen is True
        assert response.plan_size_limit == 30


class TestInsertPlan:

    async def test_created(self, now):
        db = fake_db()
        repo = TodayRepository(db, user_id=1)

        plan, created = await repo._insert_plan(now.date(), 10)

        assert created is True
        assert plan.user_id == 1
        assert plan.target_count == 10
        db.add.assert_called_once_with(plan)

    async def test_concurrent_insert_returns_winner(self, now):
        db = fake_db()
        db.commit.side_effect = IntegrityError("INSERT INTO daily_plans", {}, Exception("duplicate key"))
        repo = TodayRepository(db, user_id=1)
        winner = stored_plan(now)
        repo._find_plan = AsyncMock(return_value=winner)

        plan, created = await repo._insert_plan(now.date(), 10)

        assert plan is winner
        assert created is False
        db.rollback.assert_awaited_once()

    async def test_conflict_without_winner_is_dependency_error(self, now):
        db = fake_db()
        db.commit.side_effect = IntegrityError("INSERT INTO daily_plans", {}, Exception("duplicate key"))
        repo = TodayRepository(db, user_id=1)
        repo._find_plan = AsyncMock(return_value=None)

        with pytest.raises(DependencyError):
            await repo._insert_plan(now.date(), 10)


class TestGetOrCreateToday:

    async def test_existing_plan_is_returned_unchanged(self, now):
        repo = TodayRepository(fake_db(), user_id=1)
        repo._find_plan = AsyncMock(return_value=stored_plan(now, [stored_item(1, 0)]))
        repo._build_items = AsyncMock()

        response = await repo.get_or_create_today(FREE, now)

        assert response.id == 3
        assert len(response.items) == 1
        repo._build_items.assert_not_awaited()

    async def test_losing_the_race_returns_the_winners_plan(self, now):
        repo = TodayRepository(fake_db(), user_id=1)
        winner = stored_plan(now, [stored_item(1, 0)])
        repo._find_plan = AsyncMock(return_value=None)
        repo._build_items = AsyncMock(return_value=[PlanItem(word_id=9, list_id=1, slot_type="new", order_index=0)])
        repo._insert_plan = AsyncMock(return_value=(winner, False))
        repo._insert_items = AsyncMock()

        response = await repo.get_or_create_today(FREE, now)

        assert [item.word_id for item in response.items] == [1]
        repo._insert_items.assert_not_awaited()

    async def test_new_plan_gets_items(self, now):
        repo = TodayRepository(fake_db(), user_id=1)
        items = [PlanItem(word_id=1, list_id=1, slot_type="new", order_index=0)]
        created = SimpleNamespace(id=3)
        repo._find_plan = AsyncMock(side_effect=[None, stored_plan(now, [stored_item(1, 0, "new")])])
        repo._build_items = AsyncMock(return_value=items)
        repo._insert_plan = AsyncMock(return_value=(created, True))
        repo._insert_items = AsyncMock()

        response = await repo.get_or_create_today(FREE, now)

        repo._build_items.assert_awaited_once_with(10, now)
        repo._insert_plan.assert_awaited_once_with(now.date(), 1)
        repo._insert_items.assert_awaited_once_with(3, items)
        assert response.items[0].slot_type == "new"

    async def test_plan_without_items_is_rebuilt(self, now):
        repo = TodayRepository(fake_db(), user_id=1)
        empty = stored_plan(now)
        empty.target_count = 10
        items = [PlanItem(word_id=1, list_id=1, slot_type="due", order_index=0)]
        repo._find_plan = AsyncMock(side_effect=[empty, stored_plan(now, [stored_item(1, 0)])])
        repo._build_items = AsyncMock(return_value=items)
        repo._insert_plan = AsyncMock()
        repo._insert_items = AsyncMock()

        response = await repo.get_or_create_today(FREE, now)

        repo._build_items.assert_awaited_once_with(10, now)
        repo._insert_items.assert_awaited_once_with(3, items)
        repo._insert_plan.assert_not_awaited()
        assert [item.word_id for item in response.items] == [1]

    async def test_plan_with_nothing_to_study_is_not_rebuilt(self, now):
        repo = TodayRepository(fake_db(), user_id=1)
        repo._find_plan = AsyncMock(return_value=stored_plan(now))
        repo._build_items = AsyncMock()

        response = await repo.get_or_create_today(FREE, now)

        assert response.items == []
        repo._build_items.assert_not_awaited()


class TestInsertItems:

    async def test_duplicate_words_are_skipped(self):
        db = fake_db()
        repo = TodayRepository(db, user_id=1)
        items = [PlanItem(word_id=1, list_id=1, slot_type="due", order_index=0),
                 PlanItem(word_id=2, list_id=1, slot_type="new", order_index=1)]

        await repo._insert_items(3, items)

        statement = db.execute.call_args.args[0]
        sql = str(statement.compile(dialect=postgresql.dialect()))
        assert "ON CONFLICT (plan_id, word_id) DO NOTHING" in sql
        db.commit.assert_awaited_once()

    async def test_no_items_writes_nothing(self):
        db = fake_db()
        repo = TodayRepository(db, user_id=1)

        await repo._insert_items(3, [])

        db.execute.assert_not_awaited()


class TestRegenerate:

    async def test_free_plan_cannot_regenerate(self, now):
        db = fake_db()
        repo = TodayRepository(db, user_id=1)

        with pytest.raises(EntitlementError) as error:
            await repo.regenerate(FREE, 20, now)

        assert error.value.code == "REGEN_PRO_ONLY"
        db.execute.assert_not_awaited()

    async def test_pro_plan_replaces_items(self, now):
        db = fake_db()
        repo = TodayRepository(db, user_id=1)
        items = [PlanItem(word_id=5, list_id=1, slot_type="weak", order_index=0),
                 PlanItem(word_id=6, list_id=1, slot_type="new", order_index=1)]
        repo._find_plan = AsyncMock(side_effect=[
            stored_plan(now, [stored_item(1, 0)]),
            stored_plan(now, [stored_item(5, 0, "weak"), stored_item(6, 1, "new")]),
        ])
        repo._build_items = AsyncMock(return_value=items)
        repo._insert_items = AsyncMock()

        response = await repo.regenerate(PRO, 25, now)

        repo._build_items.assert_awaited_once_with(25, now)
        repo._insert_items.assert_awaited_once_with(3, items)
        removed, reset = [call.args[0] for call in db.execute.await_args_list]
        assert isinstance(removed, Delete)
        assert isinstance(reset, Update)
        params = reset.compile().params
        assert params["target_count"] == 2
        assert params["completed_count"] == 0
        assert [item.word_id for item in response.items] == [5, 6]

    async def test_missing_plan_is_created_first(self, now):
        db = fake_db()
        repo = TodayRepository(db, user_id=1)
        repo._find_plan = AsyncMock(side_effect=[None, stored_plan(now)])
        repo._insert_plan = AsyncMock(return_value=(SimpleNamespace(id=3), True))
        repo._build_items = AsyncMock(return_value=[])
        repo._insert_items = AsyncMock()

        await repo.regenerate(PRO, None, now)

        repo._insert_plan.assert_awaited_once_with(now.date(), 30)
        repo._build_items.assert_awaited_once_with(30, now)

from datetime import datetime, timezone, date
from typing import Dict, List, Optional, Tuple

from sqlalchemy import select, func, update, delete
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from lexum.constants.entitlements import PlanEntitlements, MIN_CUSTOM_PLAN_SIZE, MAX_CUSTOM_PLAN_SIZE
from lexum.exceptions import DependencyError, EntitlementError, NotFoundError
from lexum.logging_config import setup_logger
from lexum.models.plan_model import DailyPlan, DailyPlanItem
from lexum.models.progress_model import UserWordProgress, PracticeEvent, UserSkillProfile
from lexum.models.word_model import VocabularyItem, WordList, ListWord
from lexum.schemas.today_schemas import DailyPlanResponse, PlanItemResponse, PlanItemStatusResponse
from lexum.services import daily_plan_builder, skill_profiler

logger = setup_logger(__name__, "plan.log")


def plan_target(entitlements: PlanEntitlements, requested: Optional[int]) -> int:
    """Plan size for a regeneration; only plans that can customise may pick their own."""
    if requested is None or not entitlements.can_customize_plan:
        return entitlements.daily_plan_size
    return max(MIN_CUSTOM_PLAN_SIZE, min(MAX_CUSTOM_PLAN_SIZE, requested))


def format_plan(plan: DailyPlan, entitlements: PlanEntitlements) -> DailyPlanResponse:
    return DailyPlanResponse(
        id=plan.id,
        date=plan.date,
        target_count=plan.target_count,
        completed_count=plan.completed_count,
        generated_at=plan.generated_at,
        items=[PlanItemResponse.model_validate(item)
               for item in sorted(plan.items, key=lambda item: item.order_index)],
        can_regen=entitlements.can_regen_plan,
        can_customize=entitlements.can_customize_plan,
        plan_size_limit=entitlements.daily_plan_size,
    )


class TodayRepository:
    def __init__(self, db: AsyncSession, user_id: int):
        self.db = db
        self.user_id = user_id

    async def _failed(self, label: str, e: Exception) -> DependencyError:
        await self.db.rollback()
        logger.error(f"❌ {label} (user {self.user_id}): {str(e)}")
        return DependencyError(label, e)

    async def _find_plan(self, day: date) -> Optional[DailyPlan]:
        try:
            result = await self.db.execute(
                select(DailyPlan)
                .where(DailyPlan.user_id == self.user_id, DailyPlan.date == day)
                .options(selectinload(DailyPlan.items).selectinload(DailyPlanItem.word))
                .execution_options(populate_existing=True)
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise await self._failed("Plan read failed", e)

    async def _insert_plan(self, day: date, target_count: int) -> Tuple[DailyPlan, bool]:
        """
        Insert today's plan row. Returns (plan, created).

        A concurrent request may insert first; the unique (user_id, date)
        constraint rejects ours and the winner's row is returned instead.
        """
        plan = DailyPlan(user_id=self.user_id, date=day, target_count=target_count, completed_count=0)
        try:
            self.db.add(plan)
            await self.db.commit()
            return plan, True
        except IntegrityError:
            await self.db.rollback()
            logger.info(f"🔁 Plan for user {self.user_id} on {day} created concurrently, re-reading")
            winner = await self._find_plan(day)
            if winner is None:
                raise DependencyError("Plan insert conflicted but no plan was found")
            return winner, False
        except SQLAlchemyError as e:
            raise await self._failed("Plan insert failed", e)

    async def _plan_inputs(self):
        try:
            result = await self.db.execute(
                select(ListWord.word_id, ListWord.list_id, ListWord.added_at, VocabularyItem)
                .join(WordList, WordList.id == ListWord.list_id)
                .join(VocabularyItem, VocabularyItem.id == ListWord.word_id)
                .where(WordList.user_id == self.user_id)
                .order_by(ListWord.id)
            )
            words = [
                daily_plan_builder.PlanWord(
                    word_id=row.word_id,
                    list_id=row.list_id,
                    difficulty_score=row.VocabularyItem.difficulty_score,
                    added_at=row.added_at,
                    metadata=row.VocabularyItem,
                )
                for row in result.all()
            ]

            progress = await self.db.execute(
                select(UserWordProgress).where(UserWordProgress.user_id == self.user_id)
            )
            progress_by_word = {row.word_id: row for row in progress.scalars().all()}
        except SQLAlchemyError as e:
            raise await self._failed("Plan inputs read failed", e)

        recent = await self._recent_answers()
        weakness = await self._weakness()
        return words, progress_by_word, recent, weakness

    async def _recent_answers(self) -> Dict[int, List[bool]]:
        ranked = (
            select(
                PracticeEvent.word_id,
                PracticeEvent.is_correct,
                func.row_number().over(
                    partition_by=PracticeEvent.word_id,
                    order_by=(PracticeEvent.created_at.desc(), PracticeEvent.id.desc()),
                ).label("rn"),
            )
            .where(PracticeEvent.user_id == self.user_id)
            .subquery()
        )
        try:
            result = await self.db.execute(
                select(ranked.c.word_id, ranked.c.is_correct)
                .where(ranked.c.rn <= daily_plan_builder.RECENT_WINDOW)
                .order_by(ranked.c.word_id, ranked.c.rn)
            )
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.warning(f"⚠️ Recent answers unavailable for user {self.user_id}, no weak words: {str(e)}")
            return {}

        answers: Dict[int, List[bool]] = {}
        for row in result.all():
            answers.setdefault(row.word_id, []).append(row.is_correct)
        return answers

    async def _weakness(self):
        try:
            result = await self.db.execute(
                select(UserSkillProfile).where(UserSkillProfile.user_id == self.user_id)
            )
            profile = skill_profiler.SkillProfile.from_row(result.scalar_one_or_none())
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.warning(f"⚠️ Skill profile unavailable for user {self.user_id}: {str(e)}")
            return None
        return skill_profiler.weakness_filter(skill_profiler.dominant_weakness(profile))

    async def _build_items(self, target_count: int, now: datetime) -> List[daily_plan_builder.PlanItem]:
        words, progress_by_word, recent, weakness = await self._plan_inputs()
        return daily_plan_builder.build(words, progress_by_word, recent, target_count, now=now, weakness=weakness)

    async def _insert_items(self, plan_id: int, items: List[daily_plan_builder.PlanItem]):
        if not items:
            return
        rows = [
            {
                "plan_id": plan_id,
                "word_id": item.word_id,
                "list_id": item.list_id,
                "slot_type": item.slot_type,
                "order_index": item.order_index,
                "status": "pending",
            }
            for item in items
        ]
        try:
            # A concurrent regeneration may have inserted some of these words already
            await self.db.execute(
                pg_insert(DailyPlanItem)
                .values(rows)
                .on_conflict_do_nothing(index_elements=["plan_id", "word_id"])
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            raise await self._failed("Plan items insert failed", e)

    async def get_or_create_today(self, entitlements: PlanEntitlements,
                                  now: Optional[datetime] = None) -> DailyPlanResponse:
        now = now or datetime.now(timezone.utc)
        today = now.date()

        existing = await self._find_plan(today)
        if existing is not None:
            if existing.items or not existing.target_count:
                return format_plan(existing, entitlements)

            # Plan row committed but its items were never written
            logger.warning(f"⚠️ Plan {existing.id} for user {self.user_id} has no items, rebuilding")
            items = await self._build_items(existing.target_count, now)
            await self._insert_items(existing.id, items)
            return format_plan(await self._find_plan(today), entitlements)

        items = await self._build_items(entitlements.daily_plan_size, now)
        plan, created = await self._insert_plan(today, len(items))
        if not created:
            return format_plan(plan, entitlements)

        await self._insert_items(plan.id, items)
        logger.info(f"✅ Plan for user {self.user_id} on {today}: {len(items)} items "
                    f"({', '.join(f'{slot}={sum(1 for i in items if i.slot_type == slot)}' for slot in daily_plan_builder.SLOT_ORDER)})")

        return format_plan(await self._find_plan(today), entitlements)

    async def regenerate(self, entitlements: PlanEntitlements, requested: Optional[int] = None,
                         now: Optional[datetime] = None) -> DailyPlanResponse:
        """
        Replace today's items. Each step commits on its own, so a half-finished
        regeneration is repaired by simply calling this again.
        """
        if not entitlements.can_regen_plan:
            raise EntitlementError("Plan regeneration requires Pro subscription", "REGEN_PRO_ONLY")

        now = now or datetime.now(timezone.utc)
        today = now.date()
        target_count = plan_target(entitlements, requested)

        plan = await self._find_plan(today)
        if plan is None:
            plan, _ = await self._insert_plan(today, target_count)

        try:
            await self.db.execute(delete(DailyPlanItem).where(DailyPlanItem.plan_id == plan.id))
            await self.db.commit()
        except SQLAlchemyError as e:
            raise await self._failed("Plan items delete failed", e)

        items = await self._build_items(target_count, now)
        await self._insert_items(plan.id, items)

        try:
            await self.db.execute(
                update(DailyPlan)
                .where(DailyPlan.id == plan.id)
                .values(target_count=len(items), completed_count=0, generated_at=now)
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            raise await self._failed("Plan update failed", e)

        logger.info(f"🔄 Plan for user {self.user_id} regenerated with {len(items)}/{target_count} items")
        return format_plan(await self._find_plan(today), entitlements)

    async def set_item_status(self, word_id: int, status: str,
                              now: Optional[datetime] = None) -> PlanItemStatusResponse:
        now = now or datetime.now(timezone.utc)
        plan = await self._find_plan(now.date())
        if plan is None:
            raise NotFoundError("No plan found for today")

        try:
            result = await self.db.execute(
                update(DailyPlanItem)
                .where(DailyPlanItem.plan_id == plan.id, DailyPlanItem.word_id == word_id)
                .values(status=status, completed_at=now if status == "completed" else None)
                .returning(DailyPlanItem.id)
            )
            item_id = result.scalar_one_or_none()
            if item_id is None:
                await self.db.rollback()
                raise NotFoundError(f"Word {word_id} is not in today's plan")

            completed = await self.db.execute(
                select(func.count(DailyPlanItem.id))
                .where(DailyPlanItem.plan_id == plan.id, DailyPlanItem.status == "completed")
            )
            completed_count = completed.scalar() or 0

            await self.db.execute(
                update(DailyPlan).where(DailyPlan.id == plan.id).values(completed_count=completed_count)
            )
            await self.db.commit()

            item = await self.db.execute(
                select(DailyPlanItem)
                .where(DailyPlanItem.id == item_id)
                .options(selectinload(DailyPlanItem.word))
                .execution_options(populate_existing=True)
            )
            return PlanItemStatusResponse(
                item=PlanItemResponse.model_validate(item.scalar_one()),
                completed_count=completed_count,
                target_count=plan.target_count,
            )
        except SQLAlchemyError as e:
            raise await self._failed("Plan item update failed", e)

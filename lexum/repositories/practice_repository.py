from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from lexum.exceptions import DependencyError, NotFoundError
from lexum.logging_config import setup_logger
from lexum.models.progress_model import UserWordProgress, PracticeEvent, UserSkillProfile
from lexum.models.word_model import VocabularyItem
from lexum.services import srs_scheduler
from lexum.services.skill_profiler import SkillProfile

logger = setup_logger(__name__, "practice.log")


# trend() compares the last 3 answers with the 3 before; the new answer is prepended
TREND_HISTORY = 5


class PracticeRepository:
    def __init__(self, db: AsyncSession, user_id: int):
        self.db = db
        self.user_id = user_id

    async def _recent_results(self, word_id: int, limit: int) -> List[bool]:
        try:
            result = await self.db.execute(
                select(PracticeEvent.is_correct)
                .where(PracticeEvent.user_id == self.user_id, PracticeEvent.word_id == word_id)
                .order_by(PracticeEvent.created_at.desc(), PracticeEvent.id.desc())
                .limit(limit)
            )
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            # Trend only; answer is still recorded
            await self.db.rollback()
            logger.warning(f"⚠️ Recent answers for word {word_id} unavailable: {str(e)}")
            return []

    async def record_result(self, word_id: int, quality: str,
                            now: Optional[datetime] = None) -> UserWordProgress:
        """Apply one answer server-side and upsert the progress row."""
        now = now or datetime.now(timezone.utc)
        try:
            word = await self.db.get(VocabularyItem, word_id)
            if word is None:
                raise NotFoundError(f"Word {word_id} not found")

            result = await self.db.execute(
                select(UserWordProgress)
                .where(UserWordProgress.user_id == self.user_id, UserWordProgress.word_id == word_id)
            )
            progress = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"❌ Progress read failed for word {word_id}: {str(e)}")
            raise DependencyError("Progress read failed", e)

        recent = await self._recent_results(word_id, TREND_HISTORY)
        answer = srs_scheduler.apply_answer(progress, quality, word.difficulty_score, recent, now)
        values = answer.as_dict()

        try:
            result = await self.db.execute(
                pg_insert(UserWordProgress)
                .values(user_id=self.user_id, word_id=word_id, **values)
                .on_conflict_do_update(index_elements=["user_id", "word_id"], set_=values)
                .returning(UserWordProgress)
            )
            saved = result.scalar_one()
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"❌ Progress upsert failed for word {word_id}: {str(e)}")
            raise DependencyError("Progress upsert failed", e)

        logger.info(f"✅ User {self.user_id} answered '{quality}' on word {word_id}: "
                    f"next in {answer.interval_days}d, state={answer.word_state}")
        return saved

    async def get_skill_profile(self) -> SkillProfile:
        try:
            result = await self.db.execute(
                select(UserSkillProfile).where(UserSkillProfile.user_id == self.user_id)
            )
            return SkillProfile.from_row(result.scalar_one_or_none())
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"❌ Skill profile read failed for user {self.user_id}: {str(e)}")
            raise DependencyError("Skill profile read failed", e)

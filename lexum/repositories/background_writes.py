# repositories/background_writes.py

from datetime import date

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert

from lexum.database.setup import SessionLocal
from lexum.logging_config import setup_logger
from lexum.models.progress_model import PracticeEvent, UserSkillProfile
from lexum.models.recommendation_model import RecommendationCandidateWord
from lexum.models.user_model import UserModel
from lexum.models.word_model import VocabularyItem
from lexum.services import skill_profiler

logger = setup_logger(__name__, "dispatch.log")


class BackgroundWrites:
    """
    Side writes run through the EventDispatcher.

    Each job opens its own session because the request session is closed by
    the time the job runs. Errors propagate to the dispatcher, which logs them.
    """

    def __init__(self, session_factory=SessionLocal):
        self.session_factory = session_factory

    async def set_recommendation_usage(self, user_id: int, used: int, reset_date: date):
        async with self.session_factory() as db:
            await db.execute(
                update(UserModel)
                .where(UserModel.id == user_id)
                .values(rec_requests_today=used, rec_reset_date=reset_date)
            )
            await db.commit()
        logger.info(f"📈 Recommendation usage for user {user_id} set to {used} ({reset_date})")

    async def increment_add_count(self, rec_word_id: int):
        async with self.session_factory() as db:
            await db.execute(
                update(RecommendationCandidateWord)
                .where(RecommendationCandidateWord.id == rec_word_id)
                .values(add_count=RecommendationCandidateWord.add_count + 1)
            )
            await db.commit()

    async def log_practice_event(self, user_id: int, word_id: int, quality: str, is_correct: bool):
        async with self.session_factory() as db:
            db.add(PracticeEvent(user_id=user_id, word_id=word_id, quality=quality, is_correct=is_correct))
            await db.commit()

    async def update_skill_profile(self, user_id: int, word_id: int, is_correct: bool):
        async with self.session_factory() as db:
            word = await db.get(VocabularyItem, word_id)
            if word is None:
                logger.warning(f"⚠️ Skill update skipped, word {word_id} not found")
                return

            factors = skill_profiler.factors_of(word)
            if not factors:
                return

            result = await db.execute(select(UserSkillProfile).where(UserSkillProfile.user_id == user_id))
            profile = skill_profiler.update(
                skill_profiler.SkillProfile.from_row(result.scalar_one_or_none()), factors, is_correct
            )

            values = profile.as_dict()
            await db.execute(
                pg_insert(UserSkillProfile)
                .values(user_id=user_id, **values)
                .on_conflict_do_update(index_elements=["user_id"], set_=values)
            )
            await db.commit()
        logger.info(f"🧠 Skill profile for user {user_id} updated ({', '.join(sorted(factors))})")

from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import select, func, update, distinct
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from lexum.exceptions import DependencyError
from lexum.logging_config import setup_logger
from lexum.models.ai_models import GeneratedWord
from lexum.models.progress_model import UserSkillProfile
from lexum.models.recommendation_model import RecommendationRun, RecommendationItem, RecommendationCandidateWord
from lexum.models.user_model import UserModel
from lexum.models.word_model import VocabularyItem, WordList, ListWord
from lexum.schemas.recommendation_schemas import GenerateRecommendationsRequest, RecommendationItemSchema
from lexum.services.skill_profiler import SkillProfile
from lexum.services.strategy_selector import RecommendationStrategy

logger = setup_logger(__name__, "recommendations.log")


MIN_POOL_CONFIDENCE = 60

PROMOTED_DEFAULTS = {
    "frequency_band": 3,
    "base_score": 50,
    "confidence_score": 60,
    "source": "promoted",
}


class RecommendationRepository:
    """Store access for the recommendation pipeline. Every write commits on its own."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _failed(self, label: str, e: Exception) -> DependencyError:
        await self.db.rollback()
        logger.error(f"❌ {label}: {str(e)}")
        return DependencyError(label, e)

    def _user_list_words(self, user_id: int):
        return (
            select(ListWord.word_id, VocabularyItem.original, VocabularyItem.cefr_level)
            .join(WordList, WordList.id == ListWord.list_id)
            .join(VocabularyItem, VocabularyItem.id == ListWord.word_id)
            .where(WordList.user_id == user_id)
        )

    async def get_quota_profile(self, user_id: int) -> Optional[UserModel]:
        try:
            result = await self.db.execute(select(UserModel).where(UserModel.id == user_id))
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise await self._failed("Quota read failed", e)

    async def count_user_words(self, user_id: int) -> int:
        try:
            result = await self.db.execute(
                select(func.count(distinct(ListWord.word_id)))
                .join(WordList, WordList.id == ListWord.list_id)
                .where(WordList.user_id == user_id)
            )
            return result.scalar() or 0
        except SQLAlchemyError as e:
            raise await self._failed("User word count failed", e)

    async def dominant_cefr(self, user_id: int) -> Optional[str]:
        try:
            result = await self.db.execute(
                select(VocabularyItem.cefr_level, func.count().label("cnt"))
                .join(ListWord, ListWord.word_id == VocabularyItem.id)
                .join(WordList, WordList.id == ListWord.list_id)
                .where(WordList.user_id == user_id, VocabularyItem.cefr_level.is_not(None))
                .group_by(VocabularyItem.cefr_level)
                .order_by(func.count().desc(), VocabularyItem.cefr_level)
                .limit(1)
            )
            row = result.first()
            return row.cefr_level if row else None
        except SQLAlchemyError as e:
            raise await self._failed("Dominant CEFR query failed", e)

    async def user_vocabulary(self, user_id: int) -> List[Tuple[int, str]]:
        try:
            result = await self.db.execute(self._user_list_words(user_id))
            return [(row.word_id, row.original) for row in result.all()]
        except SQLAlchemyError as e:
            raise await self._failed("User vocabulary read failed", e)

    async def recently_shown(self, user_id: int, since: datetime) -> List[Tuple[Optional[int], str]]:
        try:
            result = await self.db.execute(
                select(RecommendationItem.word_id, RecommendationItem.original)
                .where(RecommendationItem.user_id == user_id, RecommendationItem.created_at >= since)
            )
            return [(row.word_id, row.original) for row in result.all()]
        except SQLAlchemyError as e:
            raise await self._failed("Recently shown read failed", e)

    async def fetch_pool(self, source_lang: str, target_lang: str, cefr_levels: Sequence[str],
                         exclude_ids: Sequence[int], limit: int) -> List[VocabularyItem]:
        """Commonality-first candidates: frequency band asc, then base score desc."""
        try:
            query = (
                select(VocabularyItem)
                .where(
                    VocabularyItem.source_lang == source_lang,
                    VocabularyItem.target_lang == target_lang,
                    VocabularyItem.cefr_level.in_(list(cefr_levels)),
                    VocabularyItem.confidence_score >= MIN_POOL_CONFIDENCE,
                )
                .order_by(VocabularyItem.frequency_band.asc().nulls_last(),
                          VocabularyItem.base_score.desc().nulls_last(),
                          VocabularyItem.id)
                .limit(limit)
            )
            if exclude_ids:
                query = query.where(VocabularyItem.id.not_in(list(exclude_ids)))

            result = await self.db.execute(query)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise await self._failed("Word pool query failed", e)

    async def get_skill_profile(self, user_id: int) -> SkillProfile:
        try:
            result = await self.db.execute(select(UserSkillProfile).where(UserSkillProfile.user_id == user_id))
            return SkillProfile.from_row(result.scalar_one_or_none())
        except SQLAlchemyError as e:
            raise await self._failed("Skill profile read failed", e)

    async def seed_sample(self, user_id: int, limit: int) -> List[str]:
        try:
            result = await self.db.execute(self._user_list_words(user_id).limit(limit))
            return [row.original for row in result.all() if row.original]
        except SQLAlchemyError as e:
            raise await self._failed("Seed sample read failed", e)

    async def save_candidate_words(self, words: Sequence[GeneratedWord], source_lang: str,
                                   target_lang: str) -> Dict[str, int]:
        """Store generated words as provisional candidates; returns original -> candidate id."""
        if not words:
            return {}
        try:
            rows = [
                {
                    "source_lang": source_lang,
                    "target_lang": target_lang,
                    "trust_level": "provisional",
                    **word.model_dump(exclude={"reason_code"}),
                }
                for word in words
            ]
            await self.db.execute(
                pg_insert(RecommendationCandidateWord)
                .values(rows)
                .on_conflict_do_nothing(index_elements=["source_lang", "target_lang", "original"])
            )
            await self.db.commit()

            result = await self.db.execute(
                select(RecommendationCandidateWord.id, RecommendationCandidateWord.original)
                .where(
                    RecommendationCandidateWord.source_lang == source_lang,
                    RecommendationCandidateWord.target_lang == target_lang,
                    RecommendationCandidateWord.original.in_([word.original for word in words]),
                )
            )
            return {row.original: row.id for row in result.all()}
        except SQLAlchemyError as e:
            raise await self._failed("Saving candidate words failed", e)

    async def save_run(self, user_id: int, request: GenerateRecommendationsRequest, requested: int,
                       strategy: RecommendationStrategy, pool_size: int,
                       items: Sequence[RecommendationItemSchema]) -> int:
        controlled = request.mode == "controlled"
        try:
            run = RecommendationRun(
                user_id=user_id,
                source_lang=request.source_lang,
                target_lang=request.target_lang,
                mode=request.mode,
                intent=request.intent if controlled else None,
                difficulty=request.difficulty if controlled else None,
                topic=request.topic,
                format=request.format if controlled else None,
                requested_count=requested,
                strategy=strategy.mode,
                pool_size=pool_size,
                sql_count=sum(1 for item in items if item.source == "sql"),
                llm_count=sum(1 for item in items if item.source == "llm"),
            )
            self.db.add(run)
            await self.db.commit()
            return run.id
        except SQLAlchemyError as e:
            raise await self._failed("Saving recommendation run failed", e)

    async def save_items(self, run_id: int, user_id: int, request: GenerateRecommendationsRequest,
                         items: Sequence[RecommendationItemSchema]) -> List[int]:
        try:
            rows = [
                RecommendationItem(
                    run_id=run_id,
                    user_id=user_id,
                    source_lang=request.source_lang,
                    target_lang=request.target_lang,
                    **item.model_dump(exclude={"id", "source", "user_action"}),
                )
                for item in items
            ]
            self.db.add_all(rows)
            await self.db.commit()
            return [row.id for row in rows]
        except SQLAlchemyError as e:
            raise await self._failed("Saving recommendation items failed", e)

    async def get_item(self, user_id: int, item_id: int) -> Optional[RecommendationItem]:
        try:
            result = await self.db.execute(
                select(RecommendationItem)
                .where(RecommendationItem.id == item_id, RecommendationItem.user_id == user_id)
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise await self._failed("Recommendation item read failed", e)

    async def get_candidate_word(self, rec_word_id: int) -> Optional[RecommendationCandidateWord]:
        try:
            return await self.db.get(RecommendationCandidateWord, rec_word_id)
        except SQLAlchemyError as e:
            raise await self._failed("Candidate word read failed", e)

    async def promote_candidate(self, candidate: RecommendationCandidateWord, source_lang: str,
                                target_lang: str) -> Optional[int]:
        """
        Insert the candidate into the canonical `words` table.

        An existing row with the same (original, langs, translation) always wins:
        the insert does nothing on conflict and the existing id is returned.
        """
        key = {
            "original": candidate.original,
            "source_lang": source_lang,
            "target_lang": target_lang,
            "translation": candidate.translation,
        }
        try:
            result = await self.db.execute(
                pg_insert(VocabularyItem)
                .values(
                    **key,
                    transcription=candidate.transcription,
                    cefr_level=candidate.cefr_level or "B1",
                    part_of_speech=candidate.part_of_speech or "other",
                    phrase_flag=bool(candidate.phrase_flag),
                    example_sentence_target=candidate.example_sentence_target,
                    definition=candidate.definition,
                    definition_uk=candidate.definition_uk,
                    **PROMOTED_DEFAULTS,
                )
                .on_conflict_do_nothing(index_elements=list(key))
                .returning(VocabularyItem.id)
            )
            word_id = result.scalar_one_or_none()
            await self.db.commit()

            if word_id is None:
                existing = await self.db.execute(
                    select(VocabularyItem.id).where(*(getattr(VocabularyItem, name) == value
                                                      for name, value in key.items()))
                )
                word_id = existing.scalar_one_or_none()
            else:
                logger.info(f"✅ Promoted candidate {candidate.id} '{candidate.original}' to word {word_id}")

            return word_id
        except SQLAlchemyError as e:
            raise await self._failed("Word promotion failed", e)

    async def add_to_list(self, user_id: int, list_id: int, word_id: int) -> bool:
        """Idempotent; False when the list does not belong to the user."""
        try:
            owned = await self.db.execute(
                select(WordList.id).where(WordList.id == list_id, WordList.user_id == user_id)
            )
            if owned.scalar_one_or_none() is None:
                return False

            await self.db.execute(
                pg_insert(ListWord)
                .values(list_id=list_id, word_id=word_id)
                .on_conflict_do_nothing(index_elements=["list_id", "word_id"])
            )
            await self.db.commit()
            return True
        except SQLAlchemyError as e:
            raise await self._failed("Adding word to list failed", e)

    async def record_action(self, user_id: int, item_id: int, action: str, actioned_at: datetime,
                            added_to_list_id: Optional[int] = None, word_id: Optional[int] = None):
        values = {"user_action": action, "actioned_at": actioned_at}
        if added_to_list_id is not None:
            values["added_to_list_id"] = added_to_list_id
        if word_id is not None:
            values["word_id"] = word_id

        try:
            await self.db.execute(
                update(RecommendationItem)
                .where(RecommendationItem.id == item_id, RecommendationItem.user_id == user_id)
                .values(**values)
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            raise await self._failed("Recording recommendation action failed", e)

"""
Recommendation pipeline: one run per request.

quota check -> dominant CEFR -> exclusions -> word pool -> strategy
-> ranked pool slice (+ generated top-up) -> persist -> consume quota.

Collaborators are injected:
    store       - RecommendationRepository (reads/writes for this learner)
    generator   - AIService (generate_words never raises)
    dispatcher  - EventDispatcher for best-effort side writes
    side_writes - BackgroundWrites, jobs that open their own session
"""

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, List, Optional, Set, Tuple

from lexum.constants.cefr import DEFAULT_CEFR
from lexum.constants.entitlements import PlanEntitlements
from lexum.exceptions import DependencyError, NotFoundError
from lexum.logging_config import setup_logger
from lexum.models.ai_models import GenerationRequest, GeneratedWord
from lexum.schemas.recommendation_schemas import (
    GenerateRecommendationsRequest, RecommendationItemSchema, RecommendationResult,
    RecommendationActionRequest, RecommendationActionResult,
)
from lexum.services import candidate_scorer, skill_profiler
from lexum.services.quota import QuotaState
from lexum.services.strategy_selector import (
    FOUNDATION_THRESHOLD, RecommendationStrategy, needs_seed, select_strategy,
)

logger = setup_logger(__name__, "recommendations.log")


DEDUP_WINDOW_DAYS = 30
POOL_MULTIPLIER = 5
POOL_MAX = 300
SEED_SAMPLE_SIZE = 20
GENERATED_ITEM_SCORE = 50


def pool_limit(requested: int) -> int:
    return min(requested * POOL_MULTIPLIER, POOL_MAX)


@dataclass
class Exclusions:
    word_ids: Set[int] = field(default_factory=set)
    originals: Set[str] = field(default_factory=set)

    def add(self, pairs: Iterable[Tuple[Optional[int], Optional[str]]]):
        for word_id, original in pairs:
            if word_id is not None:
                self.word_ids.add(word_id)
            if original:
                self.originals.add(original.strip().lower())

    def blocks(self, word_id: Optional[int], original: Optional[str]) -> bool:
        if word_id is not None and word_id in self.word_ids:
            return True
        return bool(original) and original.strip().lower() in self.originals


def _attr(obj: Any, name: str):
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def _reason_for(candidate: Any, weakness) -> str:
    if _attr(candidate, "phrase_flag"):
        return "phrase_needed"
    if weakness is not None and weakness(candidate):
        return "gap_fill"
    return "cefr_fit"


class RecommendationPipeline:
    def __init__(self, store, generator, dispatcher, side_writes):
        self.store = store
        self.generator = generator
        self.dispatcher = dispatcher
        self.side_writes = side_writes

    async def _optional(self, label: str, awaitable, default):
        """Await an optional read; a store failure degrades to `default`."""
        try:
            return await awaitable
        except DependencyError as e:
            logger.warning(f"⚠️ {label} unavailable, continuing without it: {e}")
            return default

    async def run(self, user_id: int, request: GenerateRecommendationsRequest,
                  entitlements: PlanEntitlements, now: Optional[datetime] = None) -> RecommendationResult:
        now = now or datetime.now(timezone.utc)

        quota = QuotaState.from_profile(await self.store.get_quota_profile(user_id), entitlements, now)
        quota.ensure_available()
        requested = quota.clamp_requested(request.count, entitlements.max_recs_per_day)

        user_word_count = await self._optional("user word count", self.store.count_user_words(user_id), 0)
        dominant = DEFAULT_CEFR
        if user_word_count >= FOUNDATION_THRESHOLD:
            dominant = await self._optional("dominant CEFR", self.store.dominant_cefr(user_id), None) or DEFAULT_CEFR

        primary_cefr = candidate_scorer.adjust_level(dominant, request.difficulty)
        cefr_levels = candidate_scorer.target_cefr_levels(dominant, request.difficulty, request.mode, request.intent)

        exclusions = Exclusions()
        exclusions.add(await self.store.user_vocabulary(user_id))
        exclusions.add(await self.store.recently_shown(user_id, now - timedelta(days=DEDUP_WINDOW_DAYS)))

        pool = await self._optional(
            "word pool",
            self.store.fetch_pool(request.source_lang, request.target_lang, cefr_levels,
                                  exclusions.word_ids, pool_limit(requested)),
            [],
        )
        pool = [candidate for candidate in pool
                if not exclusions.blocks(_attr(candidate, "id"), _attr(candidate, "original"))]

        strategy = select_strategy(len(pool), user_word_count, requested)
        logger.info(f"📊 strategy={strategy.mode} pool={len(pool)} userWords={user_word_count} "
                    f"requested={requested} levels={cefr_levels}")

        items: List[RecommendationItemSchema] = []
        if strategy.sql_count > 0:
            profile = await self._optional("skill profile", self.store.get_skill_profile(user_id), None)
            weakness = skill_profiler.weakness_filter(skill_profiler.dominant_weakness(profile))
            items.extend(self._pool_items(pool, primary_cefr, strategy.sql_count, weakness))

        if strategy.llm_count > 0:
            items.extend(await self._generated_items(
                user_id, request, cefr_levels, strategy, user_word_count, exclusions, items))

        items = items[:requested]
        for position, item in enumerate(items, start=1):
            item.rank_position = position

        run_id, items = await self._persist(user_id, request, requested, strategy, len(pool), items)

        used = quota.consumed(len(items))
        if used > quota.used:
            self.dispatcher.dispatch(
                f"rec-quota:{user_id}",
                lambda: self.side_writes.set_recommendation_usage(user_id, used, quota.reset_date),
            )

        return RecommendationResult(
            run_id=run_id,
            items=items,
            strategy=strategy.mode,
            pool_size=len(pool),
            quota_used=used,
            quota_max=quota.limit,
            quota_left=max(0, quota.limit - used),
            plan=entitlements.plan,
        )

    def _pool_items(self, pool: List[Any], primary_cefr: str, count: int,
                    weakness) -> List[RecommendationItemSchema]:
        items = []
        for candidate in candidate_scorer.rank(pool, primary_cefr)[:count]:
            items.append(RecommendationItemSchema(
                word_id=_attr(candidate, "id"),
                original=_attr(candidate, "original"),
                translation=_attr(candidate, "translation"),
                transcription=_attr(candidate, "transcription"),
                cefr_level=_attr(candidate, "cefr_level"),
                part_of_speech=_attr(candidate, "part_of_speech"),
                phrase_flag=bool(_attr(candidate, "phrase_flag")),
                example_sentence_target=_attr(candidate, "example_sentence_target"),
                definition=_attr(candidate, "definition"),
                definition_uk=_attr(candidate, "definition_uk"),
                reason_code=_reason_for(candidate, weakness),
                score=int(math.floor(candidate_scorer.score(candidate, primary_cefr) * 10 + 0.5)),
                source="sql",
            ))
        return items

    async def _generated_items(self, user_id: int, request: GenerateRecommendationsRequest,
                               cefr_levels: List[str], strategy: RecommendationStrategy,
                               user_word_count: int, exclusions: Exclusions,
                               chosen: List[RecommendationItemSchema]) -> List[RecommendationItemSchema]:
        seed_words = []
        if needs_seed(user_word_count):
            seed_words = await self._optional("seed sample",
                                              self.store.seed_sample(user_id, SEED_SAMPLE_SIZE), [])

        chosen_originals = [item.original for item in chosen]
        generation = GenerationRequest(
            source_lang=request.source_lang,
            target_lang=request.target_lang,
            cefr_levels=cefr_levels,
            count=strategy.llm_count,
            exclude_originals=chosen_originals,
            seed_words=seed_words,
            topic=request.topic,
            format=request.format,
            intent=request.intent if request.mode == "controlled" else None,
        )

        try:
            words = await self.generator.generate_words(generation)
        except Exception as e:
            logger.error(f"❌ Generator raised, continuing with pool words only: {e}")
            words = []

        blocked = set(exclusions.originals) | {original.lower() for original in chosen_originals}
        accepted: List[GeneratedWord] = []
        for word in words:
            if word.original in blocked:
                continue
            blocked.add(word.original)
            accepted.append(word)
            if len(accepted) >= strategy.llm_count:
                break

        if len(accepted) < len(words):
            logger.info(f"🔁 Dropped {len(words) - len(accepted)} generated duplicate(s) for user {user_id}")
        if not accepted:
            return []

        saved_ids = await self._optional(
            "candidate word save",
            self.store.save_candidate_words(accepted, request.source_lang, request.target_lang),
            {},
        )

        return [
            RecommendationItemSchema(
                rec_word_id=saved_ids.get(word.original),
                original=word.original,
                translation=word.translation,
                transcription=word.transcription,
                cefr_level=word.cefr_level,
                part_of_speech=word.part_of_speech,
                phrase_flag=word.phrase_flag,
                example_sentence_target=word.example_sentence_target,
                definition=word.definition,
                definition_uk=word.definition_uk,
                reason_code=word.reason_code,
                score=GENERATED_ITEM_SCORE,
                source="llm",
            )
            for word in accepted
        ]

    async def _persist(self, user_id: int, request: GenerateRecommendationsRequest, requested: int,
                       strategy: RecommendationStrategy, pool_size: int,
                       items: List[RecommendationItemSchema]) -> Tuple[Optional[int], List[RecommendationItemSchema]]:
        try:
            run_id = await self.store.save_run(user_id, request, requested, strategy, pool_size, items)
        except DependencyError as e:
            logger.error(f"❌ Failed to save recommendation run for user {user_id}: {e}")
            return None, items

        if not items:
            return run_id, items

        try:
            item_ids = await self.store.save_items(run_id, user_id, request, items)
        except DependencyError as e:
            logger.error(f"❌ Failed to save recommendation items for run {run_id}: {e}")
            return run_id, items

        return run_id, [item.model_copy(update={"id": item_id}) for item, item_id in zip(items, item_ids)]


class RecommendationActionService:
    """Records added / hidden / skipped on a recommendation and promotes accepted generated words."""

    def __init__(self, store, dispatcher, side_writes):
        self.store = store
        self.dispatcher = dispatcher
        self.side_writes = side_writes

    async def act(self, user_id: int, request: RecommendationActionRequest,
                  now: Optional[datetime] = None) -> RecommendationActionResult:
        now = now or datetime.now(timezone.utc)

        item = await self.store.get_item(user_id, request.item_id)
        if item is None:
            raise NotFoundError("Recommendation item not found")

        adding = request.action == "added" and request.list_id is not None
        resolved_word_id = item.word_id
        promoted_word_id = None

        if adding and item.word_id is None and item.rec_word_id is not None:
            promoted_word_id = await self._promote(item)
            resolved_word_id = promoted_word_id

        if adding and resolved_word_id is not None:
            try:
                added = await self.store.add_to_list(user_id, request.list_id, resolved_word_id)
                if not added:
                    logger.warning(f"⚠️ List {request.list_id} not found for user {user_id}, word not added")
            except DependencyError as e:
                logger.warning(f"⚠️ Adding word {resolved_word_id} to list {request.list_id} failed: {e}")

        await self.store.record_action(
            user_id=user_id,
            item_id=item.id,
            action=request.action,
            actioned_at=now,
            added_to_list_id=request.list_id if adding else None,
            word_id=promoted_word_id,
        )

        logger.info(f"✅ Recommendation {item.id} marked '{request.action}' by user {user_id}")
        return RecommendationActionResult(ok=True, word_id=resolved_word_id)

    async def _promote(self, item) -> Optional[int]:
        candidate = await self.store.get_candidate_word(item.rec_word_id)
        if candidate is None:
            logger.warning(f"⚠️ Candidate word {item.rec_word_id} for item {item.id} is gone")
            return None

        try:
            word_id = await self.store.promote_candidate(
                candidate,
                source_lang=item.source_lang or candidate.source_lang,
                target_lang=item.target_lang or candidate.target_lang,
            )
        except DependencyError as e:
            logger.warning(f"⚠️ Word promotion failed for candidate {candidate.id}: {e}")
            return None

        if word_id is not None:
            self.dispatcher.dispatch(
                f"rec-add-count:{candidate.id}",
                lambda: self.side_writes.increment_add_count(candidate.id),
            )
        return word_id

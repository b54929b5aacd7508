"""
Tests for the recommendation pipeline and recommendation actions.

The store, generator, dispatcher and side writes are in-memory fakes; the
pipeline only talks to them through the methods the repositories expose.
"""

from datetime import timedelta
from types import SimpleNamespace

import pytest

from lexum.constants.entitlements import ENTITLEMENTS
from lexum.exceptions import DependencyError, NotFoundError, QuotaExceededError
from lexum.models.ai_models import GeneratedWord
from lexum.schemas.recommendation_schemas import GenerateRecommendationsRequest, RecommendationActionRequest
from lexum.services.recommendation_pipeline import RecommendationActionService, RecommendationPipeline
from lexum.services.skill_profiler import SkillProfile


FREE = ENTITLEMENTS["free"]
PRO = ENTITLEMENTS["pro"]


def pool_word(word_id, **overrides):
    word = {
        "id": word_id,
        "original": f"w{word_id}",
        "translation": f"t{word_id}",
        "cefr_level": "B1",
        "frequency_band": 2,
        "confidence_score": 70,
        "phrase_flag": False,
    }
    word.update(overrides)
    return word


class FakeStore:
    def __init__(self, now, used=0, reset_date=None, user_word_count=50, pool=(),
                 vocabulary=(), shown=(), profile=None, seed=()):
        self.quota_user = SimpleNamespace(rec_requests_today=used,
                                          rec_reset_date=reset_date or now.date())
        self.user_word_count = user_word_count
        self.pool = list(pool)
        self.vocabulary = list(vocabulary)
        self.shown = list(shown)
        self.profile = profile or SkillProfile()
        self.seed = list(seed)
        self.failing = set()
        self.calls = []
        self.saved_runs = []
        self.saved_items = []

    def _check(self, name):
        self.calls.append(name)
        if name in self.failing:
            raise DependencyError(f"{name} failed")

    async def get_quota_profile(self, user_id):
        self._check("get_quota_profile")
        return self.quota_user

    async def count_user_words(self, user_id):
        self._check("count_user_words")
        return self.user_word_count

    async def dominant_cefr(self, user_id):
        self._check("dominant_cefr")
        return "B1"

    async def user_vocabulary(self, user_id):
        self._check("user_vocabulary")
        return self.vocabulary

    async def recently_shown(self, user_id, since):
        self._check("recently_shown")
        self.shown_since = since
        return self.shown

    async def fetch_pool(self, source_lang, target_lang, cefr_levels, exclude_ids, limit):
        self._check("fetch_pool")
        self.pool_limit = limit
        return self.pool[:limit]

    async def get_skill_profile(self, user_id):
        self._check("get_skill_profile")
        return self.profile

    async def seed_sample(self, user_id, limit):
        self._check("seed_sample")
        return self.seed

    async def save_candidate_words(self, words, source_lang, target_lang):
        self._check("save_candidate_words")
        return {word.original: 1000 + index for index, word in enumerate(words)}

    async def save_run(self, user_id, request, requested, strategy, pool_size, items):
        self._check("save_run")
        self.saved_runs.append((requested, strategy, pool_size))
        return 77

    async def save_items(self, run_id, user_id, request, items):
        self._check("save_items")
        self.saved_items.extend(items)
        return [500 + index for index in range(len(items))]


class FakeGenerator:
    def __init__(self, originals=(), error=None):
        self.originals = list(originals)
        self.error = error
        self.requests = []

    async def generate_words(self, request):
        self.requests.append(request)
        if self.error:
            raise self.error
        return [GeneratedWord(original=original, translation=f"tr-{original}", cefr_level="B1")
                for original in self.originals]


class FakeDispatcher:
    def __init__(self):
        self.jobs = []

    def dispatch(self, label, coro_factory):
        self.jobs.append((label, coro_factory))

    async def run_all(self):
        for _, factory in self.jobs:
            await factory()


class FakeSideWrites:
    def __init__(self):
        self.usage = []
        self.add_counts = []

    async def set_recommendation_usage(self, user_id, used, reset_date):
        self.usage.append((user_id, used, reset_date))

    async def increment_add_count(self, rec_word_id):
        self.add_counts.append(rec_word_id)


def make_pipeline(store, generator=None):
    dispatcher = FakeDispatcher()
    side_writes = FakeSideWrites()
    pipeline = RecommendationPipeline(store=store, generator=generator or FakeGenerator(),
                                      dispatcher=dispatcher, side_writes=side_writes)
    return pipeline, dispatcher, side_writes


def request(**overrides):
    data = {"source_lang": "en", "target_lang": "uk"}
    data.update(overrides)
    return GenerateRecommendationsRequest(**data)


class TestRecommendationPipeline:

    async def test_large_pool_is_served_from_sql(self, now):
        store = FakeStore(now, pool=[pool_word(i) for i in range(1, 121)])
        generator = FakeGenerator()
        pipeline, dispatcher, side_writes = make_pipeline(store, generator)

        result = await pipeline.run(1, request(count=20), PRO, now)

        assert result.strategy == "sql"
        assert result.pool_size == 100
        assert len(result.items) == 20
        assert all(item.source == "sql" for item in result.items)
        assert [item.rank_position for item in result.items] == list(range(1, 21))
        assert [item.id for item in result.items] == list(range(500, 520))
        assert result.run_id == 77
        assert result.quota_used == 20
        assert result.quota_left == 80
        assert generator.requests == []

        await dispatcher.run_all()
        assert side_writes.usage == [(1, 20, now.date())]

    async def test_hybrid_tops_up_with_generated_words(self, now):
        store = FakeStore(now, pool=[pool_word(i) for i in range(1, 41)])
        generator = FakeGenerator(originals=["alpha", "beta", "gamma"])
        pipeline, _, _ = make_pipeline(store, generator)

        result = await pipeline.run(1, request(count=10), FREE, now)

        assert result.strategy == "hybrid"
        assert [item.source for item in result.items] == ["sql"] * 7 + ["llm"] * 3
        assert generator.requests[0].count == 3
        assert set(generator.requests[0].exclude_originals) == {item.original for item in result.items[:7]}
        assert [item.rec_word_id for item in result.items[7:]] == [1000, 1001, 1002]
        assert all(item.score == 50 for item in result.items[7:])

    async def test_request_is_clamped_to_remaining_quota(self, now):
        store = FakeStore(now, used=8, user_word_count=5)
        generator = FakeGenerator(originals=["a", "b", "c", "d", "e"])
        pipeline, dispatcher, side_writes = make_pipeline(store, generator)

        result = await pipeline.run(1, request(count=5), FREE, now)

        assert generator.requests[0].count == 2
        assert len(result.items) == 2
        assert result.quota_used == 10
        assert result.quota_left == 0

        await dispatcher.run_all()
        assert side_writes.usage == [(1, 10, now.date())]

    async def test_exhausted_quota_raises_before_any_work(self, now):
        store = FakeStore(now, used=10)
        pipeline, _, _ = make_pipeline(store)

        with pytest.raises(QuotaExceededError):
            await pipeline.run(1, request(count=5), FREE, now)

        assert store.calls == ["get_quota_profile"]

    async def test_yesterdays_usage_does_not_count(self, now):
        store = FakeStore(now, used=10, reset_date=now.date() - timedelta(days=1), user_word_count=5)
        pipeline, _, _ = make_pipeline(store, FakeGenerator(originals=["a"]))

        result = await pipeline.run(1, request(count=1), FREE, now)

        assert result.quota_used == 1

    async def test_known_and_recent_words_are_excluded(self, now):
        pool = [pool_word(i) for i in range(1, 101)]
        store = FakeStore(now, pool=pool, vocabulary=[(1, "w1"), (2, "w2")], shown=[(3, "w3")])
        pipeline, _, _ = make_pipeline(store)

        result = await pipeline.run(1, request(count=20), PRO, now)

        assert {item.word_id for item in result.items}.isdisjoint({1, 2, 3})
        assert store.shown_since == now - timedelta(days=30)

    async def test_pool_words_matching_an_excluded_original_are_dropped(self, now):
        pool = [pool_word(i) for i in range(1, 101)]
        store = FakeStore(now, pool=pool, vocabulary=[(999, "w7")], shown=[(None, "w5")])
        pipeline, _, _ = make_pipeline(store)

        result = await pipeline.run(1, request(count=20), PRO, now)

        originals = {item.original for item in result.items}
        assert result.items
        assert originals.isdisjoint({"w5", "w7"})

    async def test_generated_duplicates_are_dropped(self, now):
        store = FakeStore(now, user_word_count=5, shown=[(None, "Known")])
        generator = FakeGenerator(originals=["known", "fresh", "other", "Fresh"])
        pipeline, _, _ = make_pipeline(store, generator)

        result = await pipeline.run(1, request(count=5), FREE, now)

        assert [item.original for item in result.items] == ["fresh", "other"]
        assert result.quota_used == 2

    async def test_generator_failure_degrades_to_empty(self, now):
        store = FakeStore(now, user_word_count=5)
        pipeline, dispatcher, _ = make_pipeline(store, FakeGenerator(error=RuntimeError("boom")))

        result = await pipeline.run(1, request(count=5), FREE, now)

        assert result.strategy == "llm"
        assert result.items == []
        assert result.quota_used == 0
        assert dispatcher.jobs == []

    async def test_required_exclusion_read_failure_propagates(self, now):
        store = FakeStore(now)
        store.failing.add("user_vocabulary")
        pipeline, _, _ = make_pipeline(store)

        with pytest.raises(DependencyError):
            await pipeline.run(1, request(count=5), FREE, now)

    async def test_optional_reads_degrade(self, now):
        store = FakeStore(now, pool=[pool_word(i) for i in range(1, 200)])
        store.failing.update({"count_user_words", "fetch_pool"})
        generator = FakeGenerator(originals=["a", "b"])
        pipeline, _, _ = make_pipeline(store, generator)

        result = await pipeline.run(1, request(count=2), FREE, now)

        assert result.strategy == "llm"
        assert result.pool_size == 0
        assert len(result.items) == 2
        assert "dominant_cefr" not in store.calls

    async def test_persistence_failure_still_returns_items(self, now):
        store = FakeStore(now, user_word_count=5)
        store.failing.add("save_run")
        pipeline, dispatcher, _ = make_pipeline(store, FakeGenerator(originals=["a", "b"]))

        result = await pipeline.run(1, request(count=2), FREE, now)

        assert result.run_id is None
        assert [item.id for item in result.items] == [None, None]
        assert result.quota_used == 2
        assert len(dispatcher.jobs) == 1

    async def test_seed_sample_sent_for_growing_vocabulary(self, now):
        store = FakeStore(now, user_word_count=15, seed=["cat", "dog"])
        generator = FakeGenerator(originals=["a"])
        pipeline, _, _ = make_pipeline(store, generator)

        await pipeline.run(1, request(count=1), FREE, now)

        assert generator.requests[0].seed_words == ["cat", "dog"]
        assert generator.requests[0].intent is None

    async def test_controlled_mode_sends_intent(self, now):
        store = FakeStore(now, user_word_count=5)
        generator = FakeGenerator(originals=["a"])
        pipeline, _, _ = make_pipeline(store, generator)

        await pipeline.run(1, request(count=1, mode="controlled", intent="focus"), FREE, now)

        assert generator.requests[0].intent == "focus"
        assert generator.requests[0].cefr_levels == ["B1"]

    async def test_reason_codes_follow_weakness_and_phrases(self, now):
        pool = [pool_word(1, phrase_flag=True), pool_word(2, frequency_band=4)] + \
               [pool_word(i) for i in range(3, 101)]
        store = FakeStore(now, pool=pool, profile=SkillProfile(frequency_score=-40))
        pipeline, _, _ = make_pipeline(store)

        result = await pipeline.run(1, request(count=100), PRO, now)
        reasons = {item.word_id: item.reason_code for item in result.items}

        assert reasons[1] == "phrase_needed"
        assert reasons[2] == "gap_fill"
        assert reasons[3] == "cefr_fit"

    async def test_response_carries_reason_labels(self, now):
        store = FakeStore(now, user_word_count=5)
        pipeline, _, _ = make_pipeline(store, FakeGenerator(originals=["a"]))

        result = await pipeline.run(1, request(count=1), FREE, now)
        response = result.to_response()

        assert response["items"][0]["reason_label"] == "AI-curated for you"
        assert "source" not in response["items"][0]
        assert response["plan"] == "free"


class FakeActionStore:
    def __init__(self, item=None, candidate=None, promoted_id=900, list_exists=True):
        self.item = item
        self.candidate = candidate
        self.promoted_id = promoted_id
        self.list_exists = list_exists
        self.added = []
        self.actions = []
        self.promoted = []

    async def get_item(self, user_id, item_id):
        return self.item

    async def get_candidate_word(self, rec_word_id):
        return self.candidate

    async def promote_candidate(self, candidate, source_lang, target_lang):
        self.promoted.append((candidate.id, source_lang, target_lang))
        return self.promoted_id

    async def add_to_list(self, user_id, list_id, word_id):
        self.added.append((list_id, word_id))
        return self.list_exists

    async def record_action(self, **kwargs):
        self.actions.append(kwargs)


def rec_item(**overrides):
    item = dict(id=5, word_id=None, rec_word_id=None, source_lang="EN", target_lang="UK")
    item.update(overrides)
    return SimpleNamespace(**item)


class TestRecommendationActions:

    def make_service(self, store):
        dispatcher = FakeDispatcher()
        side_writes = FakeSideWrites()
        return RecommendationActionService(store, dispatcher, side_writes), dispatcher, side_writes

    async def test_missing_item(self, now):
        service, _, _ = self.make_service(FakeActionStore(item=None))

        with pytest.raises(NotFoundError):
            await service.act(1, RecommendationActionRequest(item_id=5, action="hidden"), now)

    async def test_adding_generated_word_promotes_it(self, now):
        candidate = SimpleNamespace(id=12, source_lang="EN", target_lang="UK")
        store = FakeActionStore(item=rec_item(rec_word_id=12), candidate=candidate)
        service, dispatcher, side_writes = self.make_service(store)

        result = await service.act(1, RecommendationActionRequest(item_id=5, action="added", list_id=3), now)

        assert result.word_id == 900
        assert store.promoted == [(12, "EN", "UK")]
        assert store.added == [(3, 900)]
        assert store.actions[0]["word_id"] == 900
        assert store.actions[0]["added_to_list_id"] == 3

        await dispatcher.run_all()
        assert side_writes.add_counts == [12]

    async def test_adding_pool_word_skips_promotion(self, now):
        store = FakeActionStore(item=rec_item(word_id=44))
        service, dispatcher, _ = self.make_service(store)

        result = await service.act(1, RecommendationActionRequest(item_id=5, action="added", list_id=3), now)

        assert result.word_id == 44
        assert store.promoted == []
        assert store.added == [(3, 44)]
        assert store.actions[0]["word_id"] is None
        assert dispatcher.jobs == []

    async def test_hidden_records_action_only(self, now):
        store = FakeActionStore(item=rec_item(word_id=44))
        service, _, _ = self.make_service(store)

        await service.act(1, RecommendationActionRequest(item_id=5, action="hidden", list_id=3), now)

        assert store.added == []
        assert store.actions == [{
            "user_id": 1, "item_id": 5, "action": "hidden", "actioned_at": now,
            "added_to_list_id": None, "word_id": None,
        }]

    async def test_unknown_action_is_rejected(self):
        with pytest.raises(ValueError):
            RecommendationActionRequest(item_id=5, action="liked")

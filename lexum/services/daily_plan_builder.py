"""
Daily plan builder - weighted three-bucket queue.

Buckets, in precedence order (a word lands in the first that matches):
1. weak: reviewed before and missed at least WEAK_MIN_WRONG of its last
   RECENT_WINDOW answers. Worst first (2 * recent_wrong - correct_count).
2. due:  reviewed before and next_review <= now. Most overdue first.
3. new:  never reviewed, or added in the last NEW_WORD_DAYS days. Easiest first.

Quota split of the target: 40% weak, 20% new, the rest due. Buckets are filled
in weak -> due -> new order up to their quota, then a fallback pass tops up
the plan from due -> weak -> new ignoring quotas.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence


WEAK_SHARE = 0.4
NEW_SHARE = 0.2

RECENT_WINDOW = 10
WEAK_MIN_WRONG = 2
NEW_WORD_DAYS = 2

DEFAULT_DIFFICULTY = 50

SLOT_ORDER = ("weak", "due", "new")
FALLBACK_ORDER = ("due", "weak", "new")


@dataclass(frozen=True)
class PlanWord:
    word_id: int
    list_id: Optional[int] = None
    difficulty_score: Optional[float] = None
    added_at: Optional[datetime] = None
    metadata: Optional[Any] = None


@dataclass(frozen=True)
class PlanItem:
    word_id: int
    list_id: Optional[int]
    slot_type: str
    order_index: int


@dataclass(frozen=True)
class _Candidate:
    word: PlanWord
    slot_type: str
    sort_key: tuple


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def _get(obj: Any, name: str, default=None):
    if obj is None:
        return default
    if isinstance(obj, dict):
        value = obj.get(name, default)
    else:
        value = getattr(obj, name, default)
    return default if value is None else value


def slot_quotas(target_count: int) -> Dict[str, int]:
    weak = _round_half_up(WEAK_SHARE * target_count)
    new = _round_half_up(NEW_SHARE * target_count)
    due = max(0, target_count - weak - new)
    return {"weak": weak, "due": due, "new": new}


def _unique_words(all_user_words: Iterable[PlanWord]) -> List[PlanWord]:
    # A word saved in several lists keeps the first list it was seen in
    seen = set()
    words = []
    for word in all_user_words:
        if word.word_id in seen:
            continue
        seen.add(word.word_id)
        words.append(word)
    return words


def classify(words: Sequence[PlanWord],
             progress_by_word: Dict[int, Any],
             recent_answers_by_word: Dict[int, Sequence[bool]],
             now: datetime,
             weakness: Optional[Callable[[Any], bool]] = None) -> Dict[str, List[_Candidate]]:
    """Split words into sorted weak / due / new buckets; ineligible words are dropped."""
    buckets: Dict[str, List[_Candidate]] = {slot: [] for slot in SLOT_ORDER}
    new_since = now - timedelta(days=NEW_WORD_DAYS)

    for position, word in enumerate(words):
        progress = progress_by_word.get(word.word_id)
        recent = list(recent_answers_by_word.get(word.word_id, ()))[:RECENT_WINDOW]
        recent_wrong = sum(1 for answer in recent if not answer)

        if progress is not None and recent_wrong >= WEAK_MIN_WRONG:
            weak_score = 2 * recent_wrong - _get(progress, "correct_count", 0)
            buckets["weak"].append(_Candidate(word, "weak", (-weak_score, position)))
            continue

        next_review = _get(progress, "next_review")
        if progress is not None and next_review is not None and _utc(next_review) <= now:
            overdue_days = (now - _utc(next_review)).total_seconds() / 86400
            buckets["due"].append(_Candidate(word, "due", (-overdue_days, position)))
            continue

        recently_added = word.added_at is not None and _utc(word.added_at) >= new_since
        if progress is None or recently_added:
            difficulty = DEFAULT_DIFFICULTY if word.difficulty_score is None else word.difficulty_score
            # remedial words win ties on difficulty
            remedial = 0 if weakness is not None and word.metadata is not None and weakness(word.metadata) else 1
            buckets["new"].append(_Candidate(word, "new", (difficulty, remedial, position)))

    for bucket in buckets.values():
        bucket.sort(key=lambda candidate: candidate.sort_key)
    return buckets


def build(all_user_words: Iterable[PlanWord],
          progress_by_word: Dict[int, Any],
          recent_answers_by_word: Dict[int, Sequence[bool]],
          target_count: int,
          now: Optional[datetime] = None,
          weakness: Optional[Callable[[Any], bool]] = None) -> List[PlanItem]:
    """
    Build today's ordered study queue.

    Args:
        all_user_words: every word in the learner's lists
        progress_by_word: word_id -> progress row (missing = never reviewed)
        recent_answers_by_word: word_id -> answer results, newest first
        target_count: desired plan size
        now: reference time (UTC)
        weakness: optional predicate for the learner's dominant weakness

    Returns:
        min(target_count, eligible) plan items: weak, then due, then new.
    """
    if target_count <= 0:
        return []

    now = _utc(now or datetime.now(timezone.utc))
    words = _unique_words(all_user_words)
    buckets = classify(words, progress_by_word, recent_answers_by_word, now, weakness)
    quotas = slot_quotas(target_count)

    selected: Dict[str, List[_Candidate]] = {slot: [] for slot in SLOT_ORDER}
    taken = set()
    total = 0

    for slot in SLOT_ORDER:
        for candidate in buckets[slot]:
            if total >= target_count or len(selected[slot]) >= quotas[slot]:
                break
            selected[slot].append(candidate)
            taken.add(candidate.word.word_id)
            total += 1

    for slot in FALLBACK_ORDER:
        for candidate in buckets[slot]:
            if total >= target_count:
                break
            if candidate.word.word_id in taken:
                continue
            selected[slot].append(candidate)
            taken.add(candidate.word.word_id)
            total += 1

    items = []
    for slot in SLOT_ORDER:
        for candidate in sorted(selected[slot], key=lambda c: c.sort_key):
            items.append(PlanItem(
                word_id=candidate.word.word_id,
                list_id=candidate.word.list_id,
                slot_type=slot,
                order_index=len(items),
            ))
    return items

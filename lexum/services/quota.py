"""Per-user daily recommendation quota, reset at UTC midnight."""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Optional

from lexum.constants.entitlements import PlanEntitlements
from lexum.exceptions import QuotaExceededError


DEFAULT_REQUEST_COUNT = 5


def utc_today(now: Optional[datetime] = None) -> date:
    return (now or datetime.now(timezone.utc)).astimezone(timezone.utc).date()


@dataclass(frozen=True)
class QuotaState:
    used: int
    limit: int
    reset_date: date
    plan: str = "free"

    @classmethod
    def from_profile(cls, profile: Any, entitlements: PlanEntitlements,
                     now: Optional[datetime] = None) -> "QuotaState":
        """Read the counters off a user row; a stale reset date means nothing used today."""
        today = utc_today(now)
        stored_date = getattr(profile, "rec_reset_date", None) if profile is not None else None
        used = getattr(profile, "rec_requests_today", 0) or 0
        if stored_date != today:
            used = 0
        return cls(used=used, limit=entitlements.max_recs_per_day, reset_date=today,
                   plan=entitlements.plan)

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.used)

    @property
    def reset_at(self) -> datetime:
        return datetime.combine(self.reset_date + timedelta(days=1), time.min, tzinfo=timezone.utc)

    def ensure_available(self):
        if self.remaining <= 0:
            raise QuotaExceededError(limit=self.limit, used=self.used, plan=self.plan,
                                     reset_at=self.reset_at)

    def clamp_requested(self, requested: Optional[int], plan_max: Optional[int] = None) -> int:
        """min(max(1, requested or 5), remaining, plan_max)."""
        wanted = max(1, requested or DEFAULT_REQUEST_COUNT)
        cap = self.limit if plan_max is None else plan_max
        return min(wanted, self.remaining, cap)

    def consumed(self, actual: int) -> int:
        """Usage after delivering `actual` items; stays within [used, limit]."""
        return max(self.used, min(self.limit, self.used + max(0, actual)))

    def as_dict(self) -> dict:
        return {
            "used": self.used,
            "max": self.limit,
            "left": self.remaining,
            "resetAt": self.reset_at.isoformat(),
            "plan": self.plan,
        }

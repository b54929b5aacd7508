# Subscription plan limits, one entry per tier.
# Routes read these server-side; the client only displays what is left.

from pydantic import BaseModel, ConfigDict


class PlanEntitlements(BaseModel):
    model_config = ConfigDict(frozen=True)

    plan: str
    daily_plan_size: int
    can_regen_plan: bool
    can_customize_plan: bool
    max_recs_per_day: int
    max_alt_count: int
    max_ai_per_day: int


ENTITLEMENTS = {
    "free": PlanEntitlements(
        plan="free",
        daily_plan_size=10,
        can_regen_plan=False,
        can_customize_plan=False,
        max_recs_per_day=10,
        max_alt_count=3,
        max_ai_per_day=5,
    ),
    "pro": PlanEntitlements(
        plan="pro",
        daily_plan_size=30,
        can_regen_plan=True,
        can_customize_plan=True,
        max_recs_per_day=100,
        max_alt_count=7,
        max_ai_per_day=200,
    ),
}

# Bounds for a customised daily plan size
MIN_CUSTOM_PLAN_SIZE = 10
MAX_CUSTOM_PLAN_SIZE = 50


def get_entitlements(plan: str | None) -> PlanEntitlements:
    """Entitlements for a plan; unknown or missing plans get the free tier."""
    return ENTITLEMENTS.get(plan or "free", ENTITLEMENTS["free"])

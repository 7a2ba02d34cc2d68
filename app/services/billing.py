"""
Subscription lookup. Checkout and portal sessions live with the payments
integration; this side only reads the plan to gate models and quotas.
"""
from app.models.ai_settings import PlanTier
from app.models.models import SubscriptionPlan
from app.services.db import subscriptions_coll
from app.utils.exceptions import ExceptionContext
from app.utils.logging_config import get_logger

logger = get_logger(__name__)

PAID_STATUSES = {"active", "trialing"}


async def get_subscription_plan(user_id: str) -> SubscriptionPlan:
    with ExceptionContext("get_subscription_plan", collection="subscriptions", logger=logger, user_id=user_id):
        record = await subscriptions_coll.find_one({"user_id": user_id})

    if not record:
        return SubscriptionPlan(plan=PlanTier.FREE, user_id=user_id)

    status = record.get("subscription_status")
    plan = PlanTier.PRO if record.get("subscription_plan") == PlanTier.PRO.value and status in PAID_STATUSES else PlanTier.FREE
    return SubscriptionPlan(plan=plan, status=status, user_id=user_id)

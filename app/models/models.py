from pydantic import BaseModel
from typing import Optional

from app.models.ai_settings import PlanTier


class AuthUser(BaseModel):
    id: str
    email: Optional[str] = None


class AuthResult(BaseModel):
    authenticated: bool
    user: Optional[AuthUser] = None


class SubscriptionPlan(BaseModel):
    plan: PlanTier = PlanTier.FREE
    status: Optional[str] = None
    user_id: Optional[str] = None

    @property
    def is_pro(self) -> bool:
        return self.plan == PlanTier.PRO

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest

from app.models.ai_settings import PlanTier
from app.services.auth import check_auth, require_user
from app.services.billing import get_subscription_plan
from app.utils.exceptions import PersistenceFailure, Unauthenticated


def _request(cookies=None, headers=None):
    return SimpleNamespace(cookies=cookies or {}, headers=headers or {})


class TestCheckAuth:

    @pytest.mark.asyncio
    async def test_no_token(self):
        result = await check_auth(_request())

        assert result.authenticated is False
        assert result.user is None

    @pytest.mark.asyncio
    @patch('app.services.auth.auth_sessions_coll')
    async def test_cookie_session(self, mock_sessions):
        mock_sessions.find_one = AsyncMock(return_value={
            "token": "abc", "user_id": "user-1", "email": "dev@example.com",
            "expires_at": datetime.now(timezone.utc) + timedelta(hours=1),
        })

        result = await check_auth(_request(cookies={"session_token": "abc"}))

        assert result.authenticated is True
        assert result.user.id == "user-1"
        mock_sessions.find_one.assert_awaited_once_with({"token": "abc"})

    @pytest.mark.asyncio
    @patch('app.services.auth.auth_sessions_coll')
    async def test_bearer_token(self, mock_sessions):
        mock_sessions.find_one = AsyncMock(return_value={"token": "xyz", "user_id": "user-2"})

        result = await check_auth(_request(headers={"authorization": "Bearer xyz"}))

        assert result.user.id == "user-2"

    @pytest.mark.asyncio
    @patch('app.services.auth.auth_sessions_coll')
    async def test_expired_session(self, mock_sessions):
        mock_sessions.find_one = AsyncMock(return_value={
            "token": "abc", "user_id": "user-1",
            "expires_at": datetime.utcnow() - timedelta(minutes=1),
        })

        result = await check_auth(_request(cookies={"session_token": "abc"}))

        assert result.authenticated is False

    @pytest.mark.asyncio
    async def test_require_user_raises(self):
        with pytest.raises(Unauthenticated):
            await require_user(_request())


class TestSubscriptionPlan:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("record,expected", [
        (None, PlanTier.FREE),
        ({"subscription_plan": "pro", "subscription_status": "active"}, PlanTier.PRO),
        ({"subscription_plan": "pro", "subscription_status": "trialing"}, PlanTier.PRO),
        ({"subscription_plan": "pro", "subscription_status": "canceled"}, PlanTier.FREE),
        ({"subscription_plan": "free", "subscription_status": "active"}, PlanTier.FREE),
    ])
    async def test_plan_resolution(self, record, expected):
        with patch('app.services.billing.subscriptions_coll') as mock_subs:
            mock_subs.find_one = AsyncMock(return_value=record)
            plan = await get_subscription_plan("user-1")

        assert plan.plan == expected
        assert plan.is_pro is (expected == PlanTier.PRO)

    @pytest.mark.asyncio
    async def test_database_error(self):
        with patch('app.services.billing.subscriptions_coll') as mock_subs:
            mock_subs.find_one = AsyncMock(side_effect=RuntimeError("down"))
            with pytest.raises(PersistenceFailure):
                await get_subscription_plan("user-1")

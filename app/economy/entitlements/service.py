from __future__ import annotations

from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import as_utc
from app.db.models.users import User
from app.db.repo.chats_repo import ChatsRepo
from app.db.repo.subscriptions_repo import SubscriptionsRepo
from app.db.repo.users_repo import UsersRepo
from app.economy.catalog.store import catalog_store
from app.economy.catalog.types import Catalog
from app.economy.entitlements.rules import FREE_TIER, can_create_chat, resolve_entitlement
from app.economy.entitlements.types import ChatAllowance, Entitlement, SubscriptionView
from app.economy.ledger.errors import UserNotFoundError


class EntitlementService:
    @staticmethod
    def resolve(catalog: Catalog, user: User, now_utc: datetime) -> Entitlement:
        return resolve_entitlement(
            catalog,
            subscription_status=user.subscription_status,
            subscription_expiry=user.subscription_expiry,
            now_utc=now_utc,
        )

    @staticmethod
    async def resolve_for_user(
        session: AsyncSession,
        *,
        user_id: int,
        now_utc: datetime,
    ) -> Entitlement:
        user = await UsersRepo.get_by_id(session, user_id)
        if user is None:
            raise UserNotFoundError
        catalog = await catalog_store.get(session)
        return EntitlementService.resolve(catalog, user, now_utc)

    @staticmethod
    async def can_user_create_chat(
        session: AsyncSession,
        *,
        user_id: int,
        now_utc: datetime,
    ) -> ChatAllowance:
        entitlement = await EntitlementService.resolve_for_user(
            session,
            user_id=user_id,
            now_utc=now_utc,
        )
        current_count = await ChatsRepo.count_by_user(session, user_id=user_id)
        return ChatAllowance(
            can_create=can_create_chat(current_count=current_count, limit=entitlement.chat_limit),
            current_count=current_count,
            limit=entitlement.chat_limit,
            tier=entitlement.tier,
        )

    @staticmethod
    async def get_subscription_view(
        session: AsyncSession,
        *,
        user_id: int,
        now_utc: datetime,
    ) -> SubscriptionView:
        entitlement = await EntitlementService.resolve_for_user(
            session,
            user_id=user_id,
            now_utc=now_utc,
        )
        latest = await SubscriptionsRepo.get_latest(session, user_id=user_id)
        latest_in_period = latest is not None and as_utc(latest.end_date) > now_utc

        status = "inactive"
        auto_renew = False
        if entitlement.tier != FREE_TIER:
            status = "active"
            if latest_in_period:
                auto_renew = latest.auto_renew
                if latest.status == "cancelled":
                    status = "cancelled"

        return SubscriptionView(
            tier=entitlement.tier,
            status=status,
            expires_at=entitlement.expires_at,
            chat_limit=entitlement.chat_limit,
            exclusive_persona_access=entitlement.exclusive_persona_access,
            discount_multiplier=entitlement.discount_multiplier,
            auto_renew=auto_renew,
        )

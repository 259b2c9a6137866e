from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import as_utc
from app.db.repo.free_messages_repo import FreeMessagesRepo
from app.economy.quota.types import FreeMessageStatus

POLICY_LIFETIME = "lifetime"
POLICY_ROLLING = "rolling"


@dataclass(frozen=True, slots=True)
class FreeMessagePolicy:
    kind: str
    limit: int
    window: timedelta | None = None

    def __post_init__(self) -> None:
        if self.kind not in {POLICY_LIFETIME, POLICY_ROLLING}:
            raise ValueError(f"unsupported free message policy {self.kind}")
        if self.kind == POLICY_ROLLING and (self.window is None or self.window <= timedelta(0)):
            raise ValueError("rolling free message policy needs a positive window")

    @classmethod
    def from_settings(cls, settings: object) -> FreeMessagePolicy:
        kind = str(getattr(settings, "free_message_policy", POLICY_LIFETIME)).strip().lower()
        limit = int(getattr(settings, "free_message_limit", 0))
        window = None
        if kind == POLICY_ROLLING:
            window = timedelta(hours=int(getattr(settings, "free_message_window_hours", 24)))
        return cls(kind=kind, limit=limit, window=window)

    def window_elapsed(self, window_started_at: datetime | None, now_utc: datetime) -> bool:
        if self.kind != POLICY_ROLLING or window_started_at is None:
            return False
        return as_utc(window_started_at) + self.window <= now_utc

    def window_resets_at(self, window_started_at: datetime | None) -> datetime | None:
        if self.kind != POLICY_ROLLING or window_started_at is None:
            return None
        return as_utc(window_started_at) + self.window


async def consume_free_message(
    session: AsyncSession,
    *,
    user_id: int,
    policy: FreeMessagePolicy,
    now_utc: datetime,
) -> int | None:
    """Take one free message if the cap allows; returns the new used count or None."""
    if policy.limit <= 0:
        return None
    await FreeMessagesRepo.ensure_row(session, user_id=user_id, now_utc=now_utc)
    if policy.kind == POLICY_ROLLING:
        await FreeMessagesRepo.restart_window_if_elapsed(
            session,
            user_id=user_id,
            window_cutoff_utc=now_utc - policy.window,
            now_utc=now_utc,
        )
    return await FreeMessagesRepo.increment_if_below(
        session,
        user_id=user_id,
        cap=policy.limit,
        now_utc=now_utc,
    )


async def get_free_message_status(
    session: AsyncSession,
    *,
    user_id: int,
    policy: FreeMessagePolicy,
    now_utc: datetime,
) -> FreeMessageStatus:
    usage = await FreeMessagesRepo.get(session, user_id)
    used = 0
    resets_at = None
    if usage is not None and not policy.window_elapsed(usage.window_started_at, now_utc):
        used = usage.used_count
        resets_at = policy.window_resets_at(usage.window_started_at)
    remaining = max(0, policy.limit - used)
    return FreeMessageStatus(
        has_free_messages=remaining > 0,
        used=used,
        remaining=remaining,
        limit=policy.limit,
        policy=policy.kind,
        window_resets_at=resets_at,
    )

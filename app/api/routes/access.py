from __future__ import annotations

import structlog
from fastapi import HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.db.repo.users_repo import UsersRepo
from app.services.internal_auth import (
    extract_client_ip,
    is_client_ip_allowed,
    is_internal_request_authenticated,
    parse_actor_user_id,
)

logger = structlog.get_logger(__name__)


def assert_internal_access(request: Request) -> None:
    settings = get_settings()
    client_ip = extract_client_ip(
        request,
        trusted_proxies=getattr(settings, "internal_api_trusted_proxies", ""),
    )

    if not is_internal_request_authenticated(request, expected_token=settings.internal_api_token):
        logger.warning("internal_api_auth_failed", reason="invalid_token", client_ip=client_ip)
        raise HTTPException(status_code=401, detail={"code": "UNAUTHORIZED"})

    if not is_client_ip_allowed(client_ip=client_ip, allowlist=settings.internal_api_allowlist):
        logger.warning("internal_api_auth_failed", reason="ip_not_allowed", client_ip=client_ip)
        raise HTTPException(status_code=401, detail={"code": "UNAUTHORIZED"})


async def require_admin_actor(session: AsyncSession, request: Request) -> int:
    actor_user_id = parse_actor_user_id(request)
    if actor_user_id is None:
        raise HTTPException(status_code=403, detail={"code": "FORBIDDEN"})

    actor = await UsersRepo.get_by_id(session, actor_user_id)
    if actor is None or actor.role != "admin":
        logger.warning("admin_action_forbidden", actor_user_id=actor_user_id)
        raise HTTPException(status_code=403, detail={"code": "FORBIDDEN"})
    return actor_user_id

"""Dependency injection utilities for FastAPI"""

import logging

import asyncpg
from fastapi import Cookie, Depends, HTTPException

from ..services import AuthService, HeroPointService
from .config import get_settings
from .database import get_database_manager

logger = logging.getLogger(__name__)


# ============================================
# Service Dependencies
# ============================================


def get_auth_service() -> AuthService:
    settings = get_settings()
    return AuthService(
        secret_key=settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
        expire_days=settings.jwt_expire_days,
    )


def get_db_pool() -> asyncpg.Pool:
    db_manager = get_database_manager()
    if not db_manager.is_connected:
        raise HTTPException(status_code=503, detail="Database not ready")
    return db_manager.pool


def get_hero_point_service(pool: asyncpg.Pool = Depends(get_db_pool)) -> HeroPointService:
    settings = get_settings()
    return HeroPointService(
        pool,
        default_timeout_minutes=settings.hero_point_default_timeout_minutes,
        max_hero_points=settings.hero_point_max,
    )


# ============================================
# Authentication Dependencies
# ============================================


def _get_token_payload(auth_token: str | None) -> dict:
    if not auth_token:
        logger.warning("No auth token provided")
        raise HTTPException(status_code=401, detail="Not logged in")

    payload = get_auth_service().verify_token(auth_token)
    if not payload:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    return payload


async def get_current_user_id(auth_token: str | None = Cookie(None)) -> str:
    return str(_get_token_payload(auth_token)["sub"])


async def require_campaign_access(
    campaign_id: str,
    auth_token: str | None = Cookie(None),
) -> str:
    """Return the path's campaign id once the caller is allowed to manage it."""
    payload = _get_token_payload(auth_token)
    if not AuthService.can_manage(payload, campaign_id):
        logger.warning(f"User {payload['sub']} denied access to campaign {campaign_id}")
        raise HTTPException(status_code=403, detail="No access to this campaign")
    return campaign_id

"""Hero point dashboard API routes."""

from __future__ import annotations

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from ..core.dependencies import get_hero_point_service, require_campaign_access
from ..services import HeroPointService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/hero-points", tags=["hero-points"])


# ============================================
# Request / Response Models
# ============================================


class SettingsResponse(BaseModel):
    campaign_id: str
    default_timeout_minutes: int
    max_hero_points: int
    updated_at: datetime | None = None


class SettingsUpdate(BaseModel):
    default_timeout_minutes: int | None = Field(default=None, ge=0, le=24 * 60)
    max_hero_points: int | None = Field(default=None, ge=0, le=24)


class CharacterResponse(BaseModel):
    id: str
    name: str
    actor_type: str
    alliance: str | None = None
    traits: list[str] = []
    player_owned: bool
    assigned_user_id: str | None = None
    hero_points: int
    earns_hero_points: bool


class TimerStatusResponse(BaseModel):
    campaign_id: str
    user_id: str
    running: bool
    remaining_minutes: int
    start_time: int | None = None
    budget_minutes: int | None = None


# ============================================
# Endpoints
# ============================================


@router.get("/{campaign_id}/settings", response_model=SettingsResponse)
async def get_settings(
    campaign_id: str = Depends(require_campaign_access),
    service: HeroPointService = Depends(get_hero_point_service),
) -> SettingsResponse:
    settings = await service.get_settings(campaign_id)
    return SettingsResponse(**vars(settings))


@router.put("/{campaign_id}/settings", response_model=SettingsResponse)
async def update_settings(
    body: SettingsUpdate,
    campaign_id: str = Depends(require_campaign_access),
    service: HeroPointService = Depends(get_hero_point_service),
) -> SettingsResponse:
    """Update timer default and hero point cap. Omitted fields are unchanged."""
    try:
        settings = await service.update_settings(
            campaign_id,
            default_timeout_minutes=body.default_timeout_minutes,
            max_hero_points=body.max_hero_points,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return SettingsResponse(**vars(settings))


@router.get("/{campaign_id}/roster", response_model=list[CharacterResponse])
async def get_roster(
    campaign_id: str = Depends(require_campaign_access),
    service: HeroPointService = Depends(get_hero_point_service),
) -> list[CharacterResponse]:
    roster = await service.list_roster(campaign_id)
    return [
        CharacterResponse(
            id=c.id,
            name=c.name,
            actor_type=c.actor_type,
            alliance=c.alliance,
            traits=c.traits,
            player_owned=c.player_owned,
            assigned_user_id=c.assigned_user_id,
            hero_points=c.hero_points,
            earns_hero_points=hero,
        )
        for c, hero in roster
    ]


@router.get("/{campaign_id}/timers/{user_id}", response_model=TimerStatusResponse)
async def get_timer(
    user_id: str,
    campaign_id: str = Depends(require_campaign_access),
    service: HeroPointService = Depends(get_hero_point_service),
) -> TimerStatusResponse:
    """Remaining minutes on a user's countdown; 0 when no countdown runs."""
    return TimerStatusResponse(**await service.timer_status(campaign_id, user_id))

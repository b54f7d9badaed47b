"""
Interest endpoints.

Routes:
  POST  /api/v1/interests                     express interest in a profile
  GET   /api/v1/interests?type=received|sent  list interests
  GET   /api/v1/interests/declined            list declined profiles
  POST  /api/v1/interests/declined            hide a profile from the feed
  GET   /api/v1/interests/mutual/{profile_id} mutual status with a profile
  GET   /api/v1/interests/{interest_id}       one interest
  PATCH /api/v1/interests/{interest_id}       accept / reject / reconsider / withdraw
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, get_interest_service
from app.core.database import get_db
from app.models.user import User
from app.repositories.profile_repository import ProfileRepository
from app.schemas.interest import (
    DeclinedProfile as DeclinedProfileSchema,
    DeclinedProfileList,
    DeclineCreate,
    Interest as InterestSchema,
    InterestCreate,
    InterestList,
    InterestRespond,
    InterestResult,
    MutualStatus,
)
from app.services.exceptions import InvalidAction, NotFound
from app.services.interest_service import InterestService

router = APIRouter()


@router.post("", response_model=InterestResult)
async def express_interest(
    payload: InterestCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    service: InterestService = Depends(get_interest_service),
):
    """Express interest in a profile; finalizes a mutual match when they already did"""
    target = await ProfileRepository().get(db, payload.profile_id)
    if not target:
        raise NotFound("Profile not found")

    result = await service.express_interest(db, current_user.id, target.user_id, payload.message)
    return InterestResult.model_validate(result)


@router.get("", response_model=InterestList)
async def list_interests(
    type: str = Query(default="received"),
    status: Optional[str] = Query(default=None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    service: InterestService = Depends(get_interest_service),
):
    """List received (optionally by status) or sent interests, newest first"""
    if type == "received":
        interests = await service.list_received(db, current_user.id, status)
    elif type == "sent":
        interests = await service.list_sent(db, current_user.id)
    else:
        raise InvalidAction(f"Invalid type: {type}")

    return InterestList(interests=[InterestSchema.model_validate(i) for i in interests])


@router.get("/declined", response_model=DeclinedProfileList)
async def list_declined(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    service: InterestService = Depends(get_interest_service),
):
    declined = await service.list_declined(db, current_user.id)
    return DeclinedProfileList(declined=[DeclinedProfileSchema.model_validate(d) for d in declined])


@router.post("/declined", response_model=DeclinedProfileSchema)
async def decline_profile(
    payload: DeclineCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    service: InterestService = Depends(get_interest_service),
):
    """Hide a profile from the current user's feed; declining twice is a no-op"""
    target = await ProfileRepository().get(db, payload.profile_id)
    if not target:
        raise NotFound("Profile not found")

    marker = await service.decline_profile(db, current_user.id, target.user_id)
    return DeclinedProfileSchema.model_validate(marker)



@router.get("/mutual/{profile_id}", response_model=MutualStatus)
async def check_mutual(
    profile_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    service: InterestService = Depends(get_interest_service),
):
    status = await service.check_mutual(db, current_user.id, profile_id)
    return MutualStatus.model_validate(status)


@router.get("/{interest_id}", response_model=InterestSchema)
async def get_interest(
    interest_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    service: InterestService = Depends(get_interest_service),
):
    return await service.get_interest(db, interest_id, current_user.id)


@router.patch("/{interest_id}", response_model=InterestResult)
async def respond_to_interest(
    interest_id: uuid.UUID,
    payload: InterestRespond,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    service: InterestService = Depends(get_interest_service),
):
    """Accept, reject or reconsider a received interest, or withdraw a sent one"""
    result = await service.respond_to_interest(db, interest_id, current_user.id, payload.action)
    return InterestResult.model_validate(result)

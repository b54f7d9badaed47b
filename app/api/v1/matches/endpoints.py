from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, get_ranking_service
from app.core.database import get_db
from app.models.user import User
from app.schemas.ranking import BoostStatus, RankedCandidate, RankRequest, RankResponse
from app.services.ranking_service import RankingService

router = APIRouter()


@router.post("/rank", response_model=RankResponse)
async def rank_candidates(
    payload: RankRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    service: RankingService = Depends(get_ranking_service),
):
    """Order scored candidate profiles for the current user's feed"""
    result = await service.rank_feed(
        db,
        current_user.id,
        [(c.profile_id, c.match_score.percentage) for c in payload.candidates],
    )
    return RankResponse(
        candidates=[RankedCandidate.model_validate(c) for c in result.candidates],
        boost_activations=result.boost_activations,
    )


@router.get("/boost", response_model=BoostStatus)
async def get_boost_status(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    service: RankingService = Depends(get_ranking_service),
):
    """Referral count and boost window for the current user's profile"""
    status = await service.get_boost_status(db, current_user.id)
    return BoostStatus.model_validate(status)

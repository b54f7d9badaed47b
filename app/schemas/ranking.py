from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
import uuid


class MatchScore(BaseModel):
    percentage: float = Field(ge=0, le=100)


class RankCandidate(BaseModel):
    profile_id: uuid.UUID
    match_score: MatchScore


class RankRequest(BaseModel):
    candidates: List[RankCandidate] = Field(default_factory=list, max_length=500)


class RankedCandidate(BaseModel):
    profile_id: uuid.UUID
    match_percentage: float
    boosted: bool
    they_liked_me_first: bool

    class Config:
        from_attributes = True


class RankResponse(BaseModel):
    candidates: List[RankedCandidate]
    boost_activations: List[uuid.UUID]


class BoostStatus(BaseModel):
    referral_code: Optional[str] = None
    referral_count: int
    boost_active: bool
    boost_expires_at: Optional[datetime] = None

    class Config:
        from_attributes = True

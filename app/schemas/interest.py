from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
import uuid

from app.models.interest import InterestStatus


class InterestCreate(BaseModel):
    profile_id: uuid.UUID
    message: Optional[str] = Field(default=None, max_length=1000)


class DeclineCreate(BaseModel):
    profile_id: uuid.UUID


class InterestRespond(BaseModel):
    action: str  # accept, reject, reconsider or withdraw


class Interest(BaseModel):
    id: uuid.UUID
    sender_id: uuid.UUID
    receiver_id: uuid.UUID
    message: Optional[str] = None
    status: InterestStatus
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ContactInfo(BaseModel):
    """Counterpart contact details, only returned by a successful accept."""
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    linkedin_profile: Optional[str] = None
    facebook_instagram: Optional[str] = None

    class Config:
        from_attributes = True


class InterestResult(BaseModel):
    message: str
    interest: Interest
    mutual: bool = False
    deleted: bool = False
    contact_info: Optional[ContactInfo] = None

    class Config:
        from_attributes = True


class InterestList(BaseModel):
    interests: List[Interest]


class MutualStatus(BaseModel):
    sent_by_me: bool
    received_from_them: bool
    mutual: bool
    sent_at: Optional[datetime] = None
    received_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DeclinedProfile(BaseModel):
    declined_user_id: uuid.UUID
    source: Optional[str] = None
    hidden_from_reconsider: bool = False
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DeclinedProfileList(BaseModel):
    declined: List[DeclinedProfile]

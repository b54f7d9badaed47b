from sqlalchemy import Column, String, DateTime, ForeignKey, Boolean, Enum
from sqlalchemy.sql import func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
import uuid
import enum
from app.core.database import Base


class ApprovalStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class Profile(Base):
    """
    Matchmaking profile, owned by the external profile store.

    This service reads approval and referral fields and writes only
    ``referral_boost_start``.
    """
    __tablename__ = "profiles"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), unique=True, nullable=False, index=True)
    first_name = Column(String(100))

    # Moderation state
    approval_status = Column(
        Enum(ApprovalStatus, name="approvalstatus"),
        nullable=False,
        default=ApprovalStatus.pending,
        index=True,
    )
    is_active = Column(Boolean, nullable=False, default=True)
    is_suspended = Column(Boolean, nullable=False, default=False)

    # Shared with a connection only after a successful accept
    linkedin_profile = Column(String(255))
    facebook_instagram = Column(String(255))

    # Referrals
    referral_code = Column(String(32), unique=True, index=True)
    referred_by = Column(String(32), index=True)  # referral_code of the referrer
    referral_boost_start = Column(DateTime(timezone=True), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    user = relationship("User", back_populates="profile")

    @property
    def is_approved(self) -> bool:
        return self.approval_status == ApprovalStatus.approved

    @property
    def is_visible(self) -> bool:
        return bool(self.is_active) and not self.is_suspended and self.is_approved

    def __repr__(self):
        return f"<Profile(id={self.id}, user_id={self.user_id}, approval_status={self.approval_status})>"

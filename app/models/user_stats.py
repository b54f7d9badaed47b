from sqlalchemy import Column, DateTime, ForeignKey, Integer
from sqlalchemy.sql import func
from sqlalchemy.dialects.postgresql import UUID
from app.core.database import Base


class UserStats(Base):
    """Lifetime counters; only the arq worker writes these."""
    __tablename__ = "user_stats"

    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), primary_key=True)
    interests_sent = Column(Integer, nullable=False, default=0)
    interests_received = Column(Integer, nullable=False, default=0)
    mutual_matches = Column(Integer, nullable=False, default=0)

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return (
            f"<UserStats(user_id={self.user_id}, sent={self.interests_sent}, "
            f"received={self.interests_received}, mutual={self.mutual_matches})>"
        )

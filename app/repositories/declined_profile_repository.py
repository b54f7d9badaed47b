"""
Declined profile repository.

A declined marker keeps a withdrawn or declined counterpart out of a user's
candidate feed. Markers are upserted and never deleted here.
"""

from __future__ import annotations
from typing import Optional
from uuid import UUID
from sqlalchemy import select, and_, desc
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
import logging

from app.models.declined_profile import DeclinedProfile
from .base import BaseRepository

logger = logging.getLogger(__name__)


class DeclinedProfileRepository(BaseRepository[DeclinedProfile]):

    def __init__(self):
        """Initialize with DeclinedProfile model."""
        super().__init__(DeclinedProfile)

    async def get_for_pair(
        self,
        db: AsyncSession,
        user_id: UUID,
        declined_user_id: UUID
    ) -> Optional[DeclinedProfile]:
        try:
            stmt = select(DeclinedProfile).where(
                and_(
                    DeclinedProfile.user_id == user_id,
                    DeclinedProfile.declined_user_id == declined_user_id
                )
            )
            result = await db.execute(stmt)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching declined marker {user_id} -> {declined_user_id}: {e}")
            raise

    async def upsert(
        self,
        db: AsyncSession,
        user_id: UUID,
        declined_user_id: UUID,
        source: Optional[str] = None,
        hidden_from_reconsider: bool = False
    ) -> DeclinedProfile:
        """
        Create the marker, or refresh source and flag on an existing one.

        Args:
            db: Active database session
            user_id: UUID of the user who no longer wants to see the other
            declined_user_id: UUID of the user to hide
            source: Why the marker was written (see DeclinedSource)
            hidden_from_reconsider: Hide the profile from the reconsider list too

        Returns:
            The stored marker

        Example:
            await repo.upsert(db, sender_id, receiver_id, source=DeclinedSource.INTEREST_WITHDRAWN)
        """
        existing = await self.get_for_pair(db, user_id, declined_user_id)
        if existing:
            return await self.update(db, existing, {
                "source": source,
                "hidden_from_reconsider": hidden_from_reconsider,
            })

        return await self.create(db, {
            "user_id": user_id,
            "declined_user_id": declined_user_id,
            "source": source,
            "hidden_from_reconsider": hidden_from_reconsider,
        })

    async def list_for_user(
        self,
        db: AsyncSession,
        user_id: UUID
    ) -> list[DeclinedProfile]:
        """List a user's declined markers, newest first."""
        try:
            stmt = (
                select(DeclinedProfile)
                .where(DeclinedProfile.user_id == user_id)
                .order_by(desc(DeclinedProfile.created_at))
            )
            result = await db.execute(stmt)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Error listing declined markers for {user_id}: {e}")
            raise

    async def get_declined_user_ids(
        self,
        db: AsyncSession,
        user_id: UUID
    ) -> set[UUID]:
        try:
            stmt = select(DeclinedProfile.declined_user_id).where(DeclinedProfile.user_id == user_id)
            result = await db.execute(stmt)
            return set(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Error fetching declined user ids for {user_id}: {e}")
            raise

    async def get_user_ids_declining(
        self,
        db: AsyncSession,
        declined_user_id: UUID
    ) -> set[UUID]:
        """Users who have declined ``declined_user_id``."""
        try:
            stmt = select(DeclinedProfile.user_id).where(DeclinedProfile.declined_user_id == declined_user_id)
            result = await db.execute(stmt)
            return set(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Error fetching users who declined {declined_user_id}: {e}")
            raise

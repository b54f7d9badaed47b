"""
Profile repository.

Profiles belong to the external profile store. This repository is the
read side this service needs from it: the approval status of a user (the
verification oracle), referral counts per code (the referral ledger) and the
single field written here, ``referral_boost_start``.
"""

from __future__ import annotations
from datetime import datetime
from typing import Iterable, Optional
from uuid import UUID
from sqlalchemy import select, func, update as sql_update, and_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.exc import SQLAlchemyError
import logging

from app.models.profile import Profile, ApprovalStatus
from .base import BaseRepository

logger = logging.getLogger(__name__)


class ProfileRepository(BaseRepository[Profile]):
    """
    Repository for Profile model.

    Provides methods for:
    - Loading a profile with its owning user (for contact info) by user id
    - Approval status lookups by user id
    - Referral counts per referral code
    - Lazy activation of referral boosts
    """

    def __init__(self):
        """Initialize with Profile model."""
        super().__init__(Profile)

    async def get_by_user_id(
        self,
        db: AsyncSession,
        user_id: UUID
    ) -> Optional[Profile]:
        """Get the profile owned by a user, with the user loaded."""
        try:
            stmt = (
                select(Profile)
                .where(Profile.user_id == user_id)
                .options(selectinload(Profile.user))
            )
            result = await db.execute(stmt)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching profile for user {user_id}: {e}")
            raise

    async def get_approval_status(
        self,
        db: AsyncSession,
        user_id: UUID
    ) -> Optional[ApprovalStatus]:
        """
        Report whether a user's profile is currently approved.

        Returns:
            The profile's ApprovalStatus, or None if the user has no profile
        """
        try:
            stmt = select(Profile.approval_status).where(Profile.user_id == user_id)
            result = await db.execute(stmt)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching approval status for user {user_id}: {e}")
            raise

    async def get_many(
        self,
        db: AsyncSession,
        profile_ids: Iterable[UUID]
    ) -> dict[UUID, Profile]:
        """Load several profiles at once, keyed by profile id."""
        profile_ids = list(profile_ids)
        if not profile_ids:
            return {}

        try:
            stmt = select(Profile).where(Profile.id.in_(profile_ids))
            result = await db.execute(stmt)
            return {profile.id: profile for profile in result.scalars().all()}
        except SQLAlchemyError as e:
            logger.error(f"Error fetching {len(profile_ids)} profiles: {e}")
            raise

    async def get_referral_counts(
        self,
        db: AsyncSession,
        referral_codes: Iterable[str]
    ) -> dict[str, int]:
        """
        Count the profiles attributed to each referral code.

        Codes nobody used are absent from the result.

        Example:
            counts = await repo.get_referral_counts(db, ["ANU123", "RAVI77"])
            counts.get("ANU123", 0)
        """
        codes = [code for code in set(referral_codes) if code]
        if not codes:
            return {}

        try:
            stmt = (
                select(Profile.referred_by, func.count(Profile.id))
                .where(Profile.referred_by.in_(codes))
                .group_by(Profile.referred_by)
            )
            result = await db.execute(stmt)
            return {code: count for code, count in result.all()}
        except SQLAlchemyError as e:
            logger.error(f"Error counting referrals: {e}")
            raise

    async def activate_boosts(
        self,
        db: AsyncSession,
        profile_ids: Iterable[UUID],
        started_at: datetime
    ) -> int:
        """
        Set ``referral_boost_start`` on profiles that do not have one yet.

        The start is written at most once per boost window, so rows that
        already carry a start are left alone.

        Returns:
            Number of profiles updated
        """
        profile_ids = list(profile_ids)
        if not profile_ids:
            return 0

        try:
            stmt = (
                sql_update(Profile)
                .where(
                    and_(
                        Profile.id.in_(profile_ids),
                        Profile.referral_boost_start.is_(None)
                    )
                )
                .values(referral_boost_start=started_at)
                .execution_options(synchronize_session="fetch")
            )
            result = await db.execute(stmt)
            await db.flush()
            return result.rowcount
        except SQLAlchemyError as e:
            logger.error(f"Error activating referral boosts: {e}")
            await db.rollback()
            raise

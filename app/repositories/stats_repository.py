"""
Stats repository for the lifetime counters and engagement points written by
the background worker.
"""

from __future__ import annotations
from typing import Optional
from uuid import UUID
from sqlalchemy import select, update as sql_update, and_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
import logging

from app.models.user_stats import UserStats
from app.models.engagement_points import EngagementPoints

logger = logging.getLogger(__name__)

COUNTER_FIELDS = ("interests_sent", "interests_received", "mutual_matches")


class StatsRepository:
    """Counters live in ``user_stats``, one row per user, created on first use."""

    async def increment(
        self,
        db: AsyncSession,
        user_id: UUID,
        **deltas: int
    ) -> None:
        """
        Add ``deltas`` to a user's counters, creating the row if needed.

        Example:
            await repo.increment(db, sender_id, interests_sent=1)
        """
        unknown = set(deltas) - set(COUNTER_FIELDS)
        if unknown:
            raise ValueError(f"Unknown stats counters: {sorted(unknown)}")

        values = {
            field: getattr(UserStats, field) + delta
            for field, delta in deltas.items()
        }

        try:
            stmt = sql_update(UserStats).where(UserStats.user_id == user_id).values(**values)
            result = await db.execute(stmt)
            if result.rowcount:
                return

            try:
                async with db.begin_nested():
                    db.add(UserStats(user_id=user_id, **{
                        field: deltas.get(field, 0) for field in COUNTER_FIELDS
                    }))
            except IntegrityError:
                # Another worker created the row first
                await db.execute(stmt)

        except SQLAlchemyError as e:
            logger.error(f"Error incrementing stats for user {user_id}: {e}")
            raise

    async def award_points(
        self,
        db: AsyncSession,
        user_id: UUID,
        kind: str,
        interest_id: Optional[UUID],
        points: int
    ) -> bool:
        """
        Record an engagement points award.

        Returns:
            False if this (user, kind, interest) was already awarded
        """
        try:
            stmt = select(EngagementPoints.id).where(
                and_(
                    EngagementPoints.user_id == user_id,
                    EngagementPoints.kind == kind,
                    EngagementPoints.interest_id == interest_id
                )
            )
            if (await db.execute(stmt)).scalar_one_or_none() is not None:
                return False

            db.add(EngagementPoints(user_id=user_id, kind=kind, interest_id=interest_id, points=points))
            await db.flush()
            return True

        except SQLAlchemyError as e:
            logger.error(f"Error awarding {kind} points to user {user_id}: {e}")
            raise

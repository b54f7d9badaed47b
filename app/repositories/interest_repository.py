"""
Interest repository: the durable store behind the interest lifecycle.

Rows are unique per ordered (sender, receiver) pair. Besides the base CRUD
operations this module provides pair lookups, the received/sent listings and
the reciprocity queries used by ranking.
"""

from __future__ import annotations
from typing import Iterable, Optional
from uuid import UUID
from sqlalchemy import select, and_, desc, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
import logging

from app.core.locks import pair_lock_key
from app.models.interest import Interest, InterestStatus
from .base import BaseRepository

logger = logging.getLogger(__name__)


class InterestRepository(BaseRepository[Interest]):
    """
    Repository for Interest model.

    Provides methods for:
    - Looking up an interest by its ordered (sender, receiver) pair
    - Status updates
    - Received and sent listings, newest first
    - Finding which users a viewer has already sent interest to, or received
      interest from
    """

    def __init__(self):
        """Initialize with Interest model."""
        super().__init__(Interest)

    async def get_by_pair(
        self,
        db: AsyncSession,
        sender_id: UUID,
        receiver_id: UUID,
        for_update: bool = False
    ) -> Optional[Interest]:
        """
        Get the interest sent from ``sender_id`` to ``receiver_id``.

        Args:
            db: Active database session
            sender_id: UUID of the sending user
            receiver_id: UUID of the receiving user
            for_update: Lock the row until the transaction ends

        Returns:
            Interest if one exists for this ordered pair, None otherwise

        Example:
            reverse = await repo.get_by_pair(db, receiver_id, sender_id)
            if reverse:
                print("They already expressed interest")
        """
        try:
            stmt = select(Interest).where(
                and_(
                    Interest.sender_id == sender_id,
                    Interest.receiver_id == receiver_id
                )
            )
            if for_update:
                stmt = stmt.with_for_update().execution_options(populate_existing=True)

            result = await db.execute(stmt)
            return result.scalar_one_or_none()

        except SQLAlchemyError as e:
            logger.error(f"Error fetching interest {sender_id} -> {receiver_id}: {e}")
            raise

    async def lock_pair(
        self,
        db: AsyncSession,
        user_a: UUID,
        user_b: UUID
    ) -> None:
        """
        Take a transaction-scoped advisory lock on the unordered user pair.

        Held until the session commits or rolls back, so API processes
        serialize on the pair even when neither interest row exists yet.
        Postgres only; on other dialects this is a no-op.

        Example:
            async with pair_locks.hold(a, b):
                await repo.lock_pair(db, a, b)
                reverse = await repo.get_by_pair(db, b, a)
        """
        if db.get_bind().dialect.name != "postgresql":
            return

        try:
            await db.execute(select(func.pg_advisory_xact_lock(pair_lock_key(user_a, user_b))))
        except SQLAlchemyError as e:
            logger.error(f"Error taking pair lock {user_a} <-> {user_b}: {e}")
            raise

    async def set_status(
        self,
        db: AsyncSession,
        interest: Interest,
        status: InterestStatus
    ) -> Interest:
        """
        Move an interest to a new status and flush.

        Example:
            interest = await repo.set_status(db, interest, InterestStatus.accepted)
            await db.commit()
        """
        return await self.update(db, interest, {"status": status})

    async def list_received(
        self,
        db: AsyncSession,
        receiver_id: UUID,
        status: Optional[InterestStatus] = None
    ) -> list[Interest]:
        """
        List interests received by a user, newest first.

        Args:
            db: Active database session
            receiver_id: UUID of the receiving user
            status: Optional status filter

        Returns:
            List of interests
        """
        try:
            stmt = select(Interest).where(Interest.receiver_id == receiver_id)
            if status is not None:
                stmt = stmt.where(Interest.status == status)
            stmt = stmt.order_by(desc(Interest.created_at), desc(Interest.id))

            result = await db.execute(stmt)
            return list(result.scalars().all())

        except SQLAlchemyError as e:
            logger.error(f"Error listing interests received by {receiver_id}: {e}")
            raise

    async def list_sent(
        self,
        db: AsyncSession,
        sender_id: UUID,
        exclude_status: Optional[InterestStatus] = None
    ) -> list[Interest]:
        """
        List interests sent by a user, newest first.

        Args:
            db: Active database session
            sender_id: UUID of the sending user
            exclude_status: Optional status to leave out

        Returns:
            List of interests
        """
        try:
            stmt = select(Interest).where(Interest.sender_id == sender_id)
            if exclude_status is not None:
                stmt = stmt.where(Interest.status != exclude_status)
            stmt = stmt.order_by(desc(Interest.created_at), desc(Interest.id))

            result = await db.execute(stmt)
            return list(result.scalars().all())

        except SQLAlchemyError as e:
            logger.error(f"Error listing interests sent by {sender_id}: {e}")
            raise

    async def get_receiver_ids_sent_by(
        self,
        db: AsyncSession,
        sender_id: UUID,
        receiver_ids: Iterable[UUID]
    ) -> set[UUID]:
        """
        Return which of ``receiver_ids`` the sender has an interest row to.

        Example:
            reciprocated = await repo.get_receiver_ids_sent_by(db, viewer_id, sender_ids)
        """
        receiver_ids = list(receiver_ids)
        if not receiver_ids:
            return set()

        try:
            stmt = select(Interest.receiver_id).where(
                and_(
                    Interest.sender_id == sender_id,
                    Interest.receiver_id.in_(receiver_ids)
                )
            )
            result = await db.execute(stmt)
            return set(result.scalars().all())

        except SQLAlchemyError as e:
            logger.error(f"Error fetching reverse interests for {sender_id}: {e}")
            raise

    async def get_sender_ids_to(
        self,
        db: AsyncSession,
        receiver_id: UUID,
        sender_ids: Iterable[UUID],
        status: Optional[InterestStatus] = None
    ) -> set[UUID]:
        """
        Return which of ``sender_ids`` have sent an interest to ``receiver_id``.

        Args:
            db: Active database session
            receiver_id: UUID of the receiving user
            sender_ids: Candidate senders to check
            status: Only count interests in this status

        Example:
            liked_me = await repo.get_sender_ids_to(
                db, viewer_id, candidate_ids, status=InterestStatus.pending
            )
        """
        sender_ids = list(sender_ids)
        if not sender_ids:
            return set()

        try:
            stmt = select(Interest.sender_id).where(
                and_(
                    Interest.receiver_id == receiver_id,
                    Interest.sender_id.in_(sender_ids)
                )
            )
            if status is not None:
                stmt = stmt.where(Interest.status == status)
            result = await db.execute(stmt)
            return set(result.scalars().all())

        except SQLAlchemyError as e:
            logger.error(f"Error fetching interests received by {receiver_id}: {e}")
            raise

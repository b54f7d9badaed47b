"""
ARQ tasks for the counters and points that follow interest transitions.

Each task opens its own session and commits; a failure is retried with
exponential backoff and, on the last try, logged and dropped. Counters are
best effort by design of the lifecycle: they never roll back a transition.
"""

import logging
from uuid import UUID

from arq.worker import Retry

from app.core.config import settings
from app.core.database import AsyncSessionLocal
from app.repositories.stats_repository import StatsRepository

logger = logging.getLogger(__name__)


def retry_or_give_up(ctx: dict, what: str, error: Exception) -> None:
    job_try: int = ctx.get("job_try", 1)
    max_tries: int = ctx.get("max_tries", 3)
    logger.error(f"{what} failed (try {job_try}): {error}", exc_info=True)
    if job_try < max_tries:
        # 1 s, 4 s, 9 s
        raise Retry(defer=job_try ** 2)


async def increment_interest_stats(ctx: dict, sender_id: str, receiver_id: str) -> None:
    """Lifetime counters: one more interest sent by sender, received by receiver."""
    stats_repo = StatsRepository()
    async with AsyncSessionLocal() as db:
        try:
            await stats_repo.increment(db, UUID(sender_id), interests_sent=1)
            await stats_repo.increment(db, UUID(receiver_id), interests_received=1)
            await db.commit()
        except Exception as e:
            await db.rollback()
            retry_or_give_up(ctx, f"Interest stats {sender_id} -> {receiver_id}", e)


async def increment_mutual_matches(ctx: dict, user_a: str, user_b: str) -> None:
    stats_repo = StatsRepository()
    async with AsyncSessionLocal() as db:
        try:
            await stats_repo.increment(db, UUID(user_a), mutual_matches=1)
            await stats_repo.increment(db, UUID(user_b), mutual_matches=1)
            await db.commit()
        except Exception as e:
            await db.rollback()
            retry_or_give_up(ctx, f"Mutual match stats {user_a} <-> {user_b}", e)


async def award_engagement_points(ctx: dict, kind: str, user_id: str, interest_id: str) -> None:
    stats_repo = StatsRepository()
    async with AsyncSessionLocal() as db:
        try:
            awarded = await stats_repo.award_points(
                db, UUID(user_id), kind, UUID(interest_id), settings.interest_response_points
            )
            await db.commit()
            if not awarded:
                logger.debug(f"Points for {kind} on {interest_id} already awarded to {user_id}")
        except Exception as e:
            await db.rollback()
            retry_or_give_up(ctx, f"Points {kind} for user {user_id}", e)

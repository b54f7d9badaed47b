"""
Side-effect dispatcher for the interest lifecycle.

Stats counters, in-app notifications, transactional emails and engagement
points are enqueued as arq jobs after an interest transition has committed.
The worker (app.tasks.worker) executes them. Dispatch is best effort: a
failure to enqueue is logged and swallowed, and never changes the outcome of
the transition that triggered it.

Enqueueing runs in a background task so a slow or unreachable Redis never
delays the response. Pending tasks are tracked and drained on shutdown.
"""

from __future__ import annotations
from typing import Any, Awaitable, Optional
from uuid import UUID
import asyncio
import logging

from app.core import arq as arq_core
from app.models.notification import NotificationType

logger = logging.getLogger(__name__)

_background_tasks: set[asyncio.Task] = set()


def run_in_background(work: Awaitable[Any], name: Optional[str] = None) -> asyncio.Task:
    """Schedule ``work`` without awaiting it; the task is kept until it finishes."""
    task = asyncio.ensure_future(work)
    if name:
        task.set_name(name)
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return task


async def drain_background_tasks(timeout: Optional[float] = None) -> None:
    """
    Wait for scheduled side effects to finish.

    Tasks still running after ``timeout`` seconds are cancelled.
    """
    loop = asyncio.get_running_loop()
    pending = [task for task in _background_tasks if not task.done() and task.get_loop() is loop]
    if not pending:
        return

    _, still_running = await asyncio.wait(pending, timeout=timeout)
    for task in still_running:
        task.cancel()
    if still_running:
        logger.warning(f"Cancelled {len(still_running)} side-effect task(s) on drain")


class SideEffectDispatcher:
    """Writes lifecycle side effects to the arq queue."""

    async def _enqueue(self, function: str, *args: Any) -> bool:
        try:
            pool = await arq_core.get_arq_pool()
            await pool.enqueue_job(function, *args)
            logger.debug(f"Enqueued {function}{args}")
            return True
        except Exception as e:
            logger.warning(f"Failed to enqueue {function}: {e}", exc_info=True)
            return False

    async def increment_interest_stats(self, sender_id: UUID, receiver_id: UUID) -> bool:
        return await self._enqueue("increment_interest_stats", str(sender_id), str(receiver_id))

    async def increment_mutual_matches(self, user_a: UUID, user_b: UUID) -> bool:
        return await self._enqueue("increment_mutual_matches", str(user_a), str(user_b))

    async def send_notification(
        self,
        kind: NotificationType,
        target_user_id: UUID,
        payload: Optional[dict] = None
    ) -> bool:
        return await self._enqueue(
            "store_notification", kind.value, str(target_user_id), _stringify(payload)
        )

    async def send_email(
        self,
        kind: NotificationType,
        target_user_id: UUID,
        payload: Optional[dict] = None
    ) -> bool:
        return await self._enqueue(
            "send_transactional_email", kind.value, str(target_user_id), _stringify(payload)
        )

    async def award_points(self, kind: str, user_id: UUID, interest_id: UUID) -> bool:
        return await self._enqueue("award_engagement_points", kind, str(user_id), str(interest_id))


def _stringify(payload: Optional[dict]) -> dict:
    # Job arguments are pickled by arq; keep them to plain strings.
    if not payload:
        return {}
    return {key: (str(value) if value is not None else "") for key, value in payload.items()}


side_effect_dispatcher = SideEffectDispatcher()

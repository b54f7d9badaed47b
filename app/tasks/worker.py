import logging

import httpx

from app.core.arq import get_redis_settings
from app.core.config import settings
from app.core.logging import configure_logging
from app.tasks.interest_tasks import (
    award_engagement_points,
    increment_interest_stats,
    increment_mutual_matches,
)
from app.tasks.notification_tasks import send_transactional_email, store_notification

logger = logging.getLogger(__name__)


async def on_startup(ctx: dict) -> None:
    configure_logging(settings.app_env, settings.log_level or None, service="interest-worker")
    ctx["http_client"] = httpx.AsyncClient(timeout=10.0)
    ctx["max_tries"] = WorkerSettings.max_tries
    logger.info(
        "ARQ worker started. Functions: increment_interest_stats, "
        "increment_mutual_matches, store_notification, "
        "send_transactional_email, award_engagement_points"
    )


async def on_shutdown(ctx: dict) -> None:
    http_client: httpx.AsyncClient | None = ctx.get("http_client")
    if http_client is not None:
        await http_client.aclose()
    logger.info("ARQ worker shut down. HTTP client closed.")


class WorkerSettings:
    functions = [
        increment_interest_stats,
        increment_mutual_matches,
        store_notification,
        send_transactional_email,
        award_engagement_points,
    ]
    redis_settings = get_redis_settings()
    max_jobs = 20
    job_timeout = 60
    max_tries = 3       # Retry up to 3 times on failure
    on_startup = on_startup
    on_shutdown = on_shutdown

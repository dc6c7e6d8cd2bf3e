"""arq worker configuration for listing price tasks.

This module configures the arq worker with:
    - update_listing_prices_task: Recompute listing prices for a batch of ids
    - reindex_listing_prices_task: Recompute listing prices for all products
    - monitor_queue_depth: Cron job logging queue and DLQ depth

Retries and dead-lettering happen inside the tasks (see listing_price_tasks).
"""
from arq.connections import RedisSettings, ArqRedis
from arq import cron
from typing import Dict, Any
import structlog
from listing_indexer.config import settings, configure_logging

from listing_indexer.tasks.listing_price_tasks import (
    MAX_TRIES,
    update_listing_prices_task,
    reindex_listing_prices_task,
)

# Configure logging
configure_logging(settings.log_level)
logger = structlog.get_logger(__name__)


async def monitor_queue_depth(ctx: Dict[str, Any]) -> None:
    """Periodic task to log queue and dead letter queue depth.

    Args:
        ctx: Worker context (contains Redis connection)
    """
    try:
        redis: ArqRedis = ctx.get("redis")
        if not redis:
            logger.warning("monitor_queue_depth_no_redis")
            return

        queue_depth = await redis.zcard(settings.queue_name)
        dlq_depth = await redis.scard(f"arq:dlq:{settings.dlq_name}")

        logger.info(
            "queue_depth_monitor",
            queue_name=settings.queue_name,
            queue_depth=queue_depth,
            dlq_name=settings.dlq_name,
            dlq_depth=dlq_depth
        )
    except Exception as e:
        # Monitoring must never take the worker down
        logger.error("monitor_queue_depth_error", error=str(e))


class WorkerSettings:
    """arq worker configuration settings.

    Run with: `arq listing_indexer.worker.WorkerSettings`

    Registered Tasks:
        - update_listing_prices_task: Recompute listing prices for product ids
        - reindex_listing_prices_task: Recompute listing prices for all products

    Cron Jobs:
        - monitor_queue_depth: Every 5 minutes
    """

    redis_settings = RedisSettings.from_dsn(settings.redis_url)
    queue_name = settings.queue_name
    max_jobs = settings.max_workers
    job_timeout = settings.job_timeout
    keep_result = 3600  # Keep results for 1 hour
    max_tries = MAX_TRIES

    functions = [
        update_listing_prices_task,
        reindex_listing_prices_task,
    ]

    cron_jobs = [
        cron(monitor_queue_depth, minute=set(range(0, 60, 5))),
    ]

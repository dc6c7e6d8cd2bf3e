"""Queue tasks for listing price indexing.

This module wraps the listing price indexer for the arq worker:
    - update_listing_prices_task: Recompute listing prices for a batch of ids
    - reindex_listing_prices_task: Recompute listing prices for every product
    - enqueue_listing_price_update: Validate and enqueue an update message
"""
import time
import uuid
from datetime import timedelta
from typing import Dict, Any, List, Optional

from arq.connections import ArqRedis
from arq.worker import Retry
from redis.exceptions import RedisError
import structlog

from listing_indexer.config import settings
from listing_indexer.db.base import async_session_maker
from listing_indexer.errors.exceptions import DatabaseError, InvalidProductIdError, PricePayloadError
from listing_indexer.models.queue_message import ListingPriceUpdateMessage
from listing_indexer.services.listing_price import (
    ListingPriceIndexer,
    parse_product_id,
    reindex_all,
)

logger = structlog.get_logger(__name__)


# ============================================================================
# Observability Metrics Logging
# ============================================================================
# Metrics are structured log events scraped by the log pipeline

def emit_metric(metric_name: str, value: float, labels: Dict[str, str] = None) -> None:
    """Emit a metric event for observability.

    Args:
        metric_name: Name of the metric (e.g., "listing_prices_written_total")
        value: Numeric value of the metric
        labels: Optional labels/tags for the metric
    """
    labels = labels or {}
    logger.info(
        "metric",
        metric_name=metric_name,
        metric_value=value,
        **labels,
    )


# ============================================================================
# Retry and Dead Letter Handling
# ============================================================================
# arq retries a job only when it raises Retry; max_tries counts the first try

MAX_TRIES = 3
RETRY_DELAYS = [1, 5, 25]  # seconds


def _get_retry_delay(retry_count: int) -> timedelta:
    """Backoff delay for the given zero-based retry number."""
    return timedelta(seconds=RETRY_DELAYS[min(retry_count, len(RETRY_DELAYS) - 1)])


def _handle_retry(log, retry_count: int, max_tries: int, error: Exception, error_type: str) -> bool:
    """Log a failed try and tell whether another one is allowed."""
    if retry_count < max_tries:
        log.warning(
            "task_retry_scheduled",
            retry_count=retry_count,
            max_tries=max_tries,
            error=str(error),
            error_type=error_type,
        )
        return True

    log.error(
        "task_max_retries_exceeded",
        retry_count=retry_count,
        max_tries=max_tries,
        error=str(error),
        error_type=error_type,
    )
    return False


async def _move_to_dlq(ctx: Dict[str, Any], job_id: str, error: Exception) -> None:
    """Record a job that used up its tries in the dead letter set."""
    redis: ArqRedis = ctx.get("redis")
    if not redis:
        return

    dlq_key = f"arq:dlq:{settings.dlq_name}"
    try:
        await redis.sadd(dlq_key, job_id)
        await redis.expire(dlq_key, 86400 * 7)  # Keep for 7 days
        logger.warning("job_moved_to_dlq", job_id=job_id, dlq_name=settings.dlq_name, error=str(error))
    except (RedisError, OSError) as e:
        logger.error("dlq_routing_failed", job_id=job_id, error=str(e))


async def _retry_or_dead_letter(ctx: Dict[str, Any], log, task_id: str, error: DatabaseError) -> None:
    """Raise Retry while tries remain, otherwise dead-letter the job.

    Returns only on the last try; the caller re-raises ``error``.
    """
    job_try = ctx.get("job_try", 1)
    if _handle_retry(log, job_try, MAX_TRIES, error, type(error).__name__):
        raise Retry(defer=_get_retry_delay(job_try - 1)) from error
    await _move_to_dlq(ctx, ctx.get("job_id", task_id), error)


def _task_status(updated: int, failed: int) -> str:
    if failed == 0:
        return "success"
    if updated > 0:
        return "partial_success"
    return "error"


async def update_listing_prices_task(
    ctx: Dict[str, Any],
    task_id: str,
    product_ids: List[str],
    trigger: str = "manual",
    **kwargs
) -> Dict[str, Any]:
    """Recompute cached listing prices for a batch of product ids.

    Args:
        ctx: Worker context (contains Redis connection)
        task_id: Unique task identifier for logging
        product_ids: Canonical or variant product ids (hex strings)
        trigger: What triggered the update (for audit trail)

    Returns:
        Dictionary with task results and metrics:
            - task_id: Task identifier
            - status: "success", "partial_success" or "error"
            - trigger: What triggered the update
            - products_requested / products_updated / products_failed
            - unresolved_ids / quotes_skipped
            - duration_seconds: Task duration
            - results: Per-product results (only if any write failed)

    Raises:
        Retry: If the store is unavailable and tries remain
        DatabaseError: If the store is still unavailable on the last try
            (the job is recorded in the dead letter set)
    """
    start_time = time.time()

    parsed_ids: List[uuid.UUID] = []
    for value in product_ids:
        try:
            parsed_ids.append(parse_product_id(value))
        except InvalidProductIdError:
            logger.warning("invalid_product_id", task_id=task_id, product_id=value)

    log = logger.bind(task_id=task_id, product_count=len(parsed_ids), trigger=trigger)
    log.info("update_listing_prices_task_started")

    if not parsed_ids:
        log.warning("no_valid_product_ids")
        return {
            "task_id": task_id,
            "status": "error",
            "trigger": trigger,
            "error": "No valid product IDs provided",
            "duration_seconds": round(time.time() - start_time, 3),
        }

    try:
        async with async_session_maker() as session:
            async with session.begin():
                report = await ListingPriceIndexer(session).update(parsed_ids)
    except PricePayloadError as e:
        # Retrying cannot fix stored data
        duration = round(time.time() - start_time, 3)
        log.error(
            "update_listing_prices_task_aborted",
            quote_id=str(e.quote_id) if e.quote_id else None,
            error=e.message,
            duration_seconds=duration,
        )
        return {
            "task_id": task_id,
            "status": "error",
            "trigger": trigger,
            "error": e.message,
            "duration_seconds": duration,
        }
    except DatabaseError as e:
        log.error(
            "update_listing_prices_task_failed",
            error=e.message,
            duration_seconds=round(time.time() - start_time, 3),
        )
        await _retry_or_dead_letter(ctx, log, task_id, e)
        raise

    duration = round(time.time() - start_time, 3)
    status = _task_status(report.updated_count, report.failed_count)

    log.info(
        "update_listing_prices_task_completed",
        status=status,
        duration_seconds=duration,
        **report.to_dict(),
    )
    emit_metric("listing_prices_written_total", report.updated_count, {"status": "success"})
    emit_metric("listing_prices_written_total", report.failed_count, {"status": "error"})
    emit_metric("listing_prices_task_duration_seconds", duration, {"task_type": "update"})

    response = {
        "task_id": task_id,
        "status": status,
        "trigger": trigger,
        "duration_seconds": duration,
        **report.to_dict(),
    }
    if report.failed_count > 0:
        response["results"] = [r.model_dump(mode="json") for r in report.results]

    return response


async def reindex_listing_prices_task(
    ctx: Dict[str, Any],
    task_id: str,
    **kwargs
) -> Dict[str, Any]:
    """Recompute cached listing prices for every canonical product.

    Malformed payloads end the task with an error result. Database outages
    are retried like in ``update_listing_prices_task``.
    """
    start_time = time.time()
    log = logger.bind(task_id=task_id)
    log.info("reindex_listing_prices_task_started")

    try:
        report = await reindex_all()
    except PricePayloadError as e:
        # Retrying cannot fix stored data
        duration = round(time.time() - start_time, 3)
        log.error(
            "reindex_listing_prices_task_aborted",
            quote_id=str(e.quote_id) if e.quote_id else None,
            error=e.message,
            duration_seconds=duration,
        )
        return {
            "task_id": task_id,
            "status": "error",
            "error": e.message,
            "duration_seconds": duration,
        }
    except DatabaseError as e:
        log.error(
            "reindex_listing_prices_task_failed",
            error=e.message,
            duration_seconds=round(time.time() - start_time, 3),
        )
        await _retry_or_dead_letter(ctx, log, task_id, e)
        raise

    duration = round(time.time() - start_time, 3)
    status = _task_status(report.updated_count, report.failed_count)
    log.info(
        "reindex_listing_prices_task_completed",
        status=status,
        duration_seconds=duration,
        **report.to_dict(),
    )
    emit_metric("listing_prices_task_duration_seconds", duration, {"task_type": "reindex"})

    return {
        "task_id": task_id,
        "status": status,
        "duration_seconds": duration,
        **report.to_dict(),
    }


async def enqueue_listing_price_update(
    redis: ArqRedis,
    product_ids: List[Any],
    trigger: str = "manual",
    task_id: Optional[str] = None,
) -> str:
    """Validate an update message and enqueue ``update_listing_prices_task``.

    Args:
        redis: ArqRedis connection
        product_ids: Canonical or variant product ids
        trigger: Event that caused the update
        task_id: Task identifier (generated when omitted)

    Returns:
        The task id of the enqueued job
    """
    message = ListingPriceUpdateMessage(
        task_id=task_id or f"listing-{uuid.uuid4().hex[:12]}-{int(time.time())}",
        product_ids=product_ids,
        trigger=trigger,
    )
    await redis.enqueue_job("update_listing_prices_task", **message.to_task_kwargs())
    logger.debug(
        "listing_price_update_enqueued",
        task_id=message.task_id,
        product_count=len(message.product_ids),
        trigger=message.trigger,
    )
    return message.task_id

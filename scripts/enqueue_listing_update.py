#!/usr/bin/env python3
"""Enqueue a listing price update for one or more products.

Usage:
    python scripts/enqueue_listing_update.py 0190c5e2a1b87c3e9f1d2a4b6c8e0f12 \\
        0190c5e2a1b87c3e9f1d2a4b6c8e0f13 --trigger price_change
"""
import argparse
import asyncio
import sys

from arq import create_pool
from arq.connections import RedisSettings
from pydantic import ValidationError

from listing_indexer.config import settings
from listing_indexer.tasks.listing_price_tasks import enqueue_listing_price_update


async def main(product_ids: list[str], trigger: str, task_id: str | None) -> int:
    redis = await create_pool(
        RedisSettings.from_dsn(settings.redis_url),
        default_queue_name=settings.queue_name,
    )
    try:
        enqueued_id = await enqueue_listing_price_update(
            redis,
            product_ids=product_ids,
            trigger=trigger,
            task_id=task_id,
        )
    except ValidationError as e:
        print(f"❌ Invalid update request:\n{e}", file=sys.stderr)
        return 1
    finally:
        await redis.aclose()

    print(f"✅ Enqueued {enqueued_id} ({len(product_ids)} product(s), trigger={trigger})")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Enqueue a listing price update task")
    parser.add_argument("product_ids", nargs="+", help="Canonical or variant product ids (hex)")
    parser.add_argument(
        "--trigger",
        default="manual",
        choices=["price_change", "variant_change", "product_import", "manual"],
        help="Event that caused the update",
    )
    parser.add_argument("--task-id", default=None, help="Task identifier (generated if omitted)")
    args = parser.parse_args()

    sys.exit(asyncio.run(main(args.product_ids, args.trigger, args.task_id)))

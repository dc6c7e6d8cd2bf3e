#!/usr/bin/env python3
"""Recompute listing prices for every canonical product, in batches.

Usage:
    python scripts/reindex_listing_prices.py [--batch-size 1000]
"""
import argparse
import asyncio
import json
import sys

from listing_indexer.config import IndexerSettings
from listing_indexer.db.base import engine
from listing_indexer.errors import ListingIndexError
from listing_indexer.services.listing_price import reindex_all


async def main(batch_size: int | None) -> int:
    overrides = {"batch_size": batch_size} if batch_size else {}
    config = IndexerSettings(**overrides)
    try:
        report = await reindex_all(config=config)
    except ListingIndexError as e:
        print(f"❌ Reindex failed: {e.message}", file=sys.stderr)
        return 1
    finally:
        await engine.dispose()

    print(json.dumps(report.to_dict(), indent=2))
    return 1 if report.failed_count else 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Reindex listing prices of all products")
    parser.add_argument("--batch-size", type=int, default=None, help="Products per batch")
    args = parser.parse_args()

    sys.exit(asyncio.run(main(args.batch_size)))

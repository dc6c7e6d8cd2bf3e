"""Health check for the listing price worker container.

Exit code 0 when Redis answers and the products/prices schema is reachable.
"""
import sys
import asyncio
from redis.asyncio import Redis
from redis.exceptions import RedisError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import create_async_engine

from listing_indexer.config import settings
from listing_indexer.db.models import Product, ProductPrice


async def check_redis_connection() -> bool:
    """Check if the queue's Redis instance answers PING."""
    redis = Redis.from_url(settings.redis_url, decode_responses=True)
    try:
        await redis.ping()
        return True
    except (RedisError, OSError) as e:
        print(f"Redis health check failed: {e}", file=sys.stderr)
        return False
    finally:
        await redis.aclose()


async def check_database_schema() -> bool:
    """Check that the products and product_prices tables can be queried."""
    engine = create_async_engine(
        settings.database_url,
        connect_args={"server_settings": {"application_name": "listing_health_check"}},
    )
    try:
        async with engine.connect() as conn:
            await conn.execute(select(Product.id).limit(1))
            await conn.execute(select(ProductPrice.id).limit(1))
        return True
    except (SQLAlchemyError, OSError) as e:
        print(f"Database health check failed: {e}", file=sys.stderr)
        return False
    finally:
        await engine.dispose()


async def main() -> int:
    redis_ok = await check_redis_connection()
    database_ok = await check_database_schema()

    if not redis_ok:
        print("Health check failed: Redis connection unavailable", file=sys.stderr)
        return 1
    if not database_ok:
        print("Health check failed: listing price schema unavailable", file=sys.stderr)
        return 1

    print("Health check passed: All services available")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))

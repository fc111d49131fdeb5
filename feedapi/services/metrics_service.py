"""
Metrics service — dataset totals for the metrics endpoint.

Counting 60k+ comments on every dashboard refresh is wasteful, so the
totals go through the Redis cache-aside layer with a short TTL.  A cache
miss (or a missing Redis) falls back to four COUNT statements.
"""
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from feedapi.cache import cache
from feedapi.config import settings
from feedapi.errors import StoreError
from feedapi.models import Author, Comment, Post, Tag
from feedapi.schemas import MetricsResponse

CACHE_KEY = "metrics:totals"


async def _count(db: AsyncSession, model) -> int:
    return (await db.execute(select(func.count()).select_from(model))).scalar_one()


async def get_totals(db: AsyncSession) -> dict:
    cached = await cache.get(CACHE_KEY)
    if cached:
        return cached

    try:
        totals = {
            "total_posts": await _count(db, Post),
            "total_comments": await _count(db, Comment),
            "total_authors": await _count(db, Author),
            "total_tags": await _count(db, Tag),
        }
    except (SQLAlchemyError, OSError) as exc:
        raise StoreError(f"metrics totals failed: {exc}") from exc

    await cache.set(CACHE_KEY, totals, ttl=settings.CACHE_TTL_METRICS)
    return totals


async def get_metrics(db: AsyncSession) -> MetricsResponse:
    totals = await get_totals(db)
    posts = totals["total_posts"]
    avg_comments = totals["total_comments"] / posts if posts > 0 else 0
    return MetricsResponse(
        **totals,
        avg_comments_per_post=round(avg_comments, 2),
        cache_info=cache.stats,
    )

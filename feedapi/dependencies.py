from fastapi import Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from feedapi.config import settings
from feedapi.database import get_session_factory
from feedapi.services.feed_service import FeedAssembler
from feedapi.store import StoreAdapter


def get_store(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> StoreAdapter:
    """Store adapter bound to the application's session factory."""
    return StoreAdapter(session_factory)


def get_feed_assembler(store: StoreAdapter = Depends(get_store)) -> FeedAssembler:
    return FeedAssembler(
        store,
        default_limit=settings.DEFAULT_FEED_LIMIT,
        max_limit=settings.MAX_FEED_LIMIT,
        concurrent=settings.BATCHED_CONCURRENT_FETCH,
        timeout=settings.REQUEST_TIMEOUT_SECONDS,
    )


class FeedParams:
    """
    Reusable FastAPI dependency for the feed query parameters.

    Usage in a router::

        @router.get("/posts")
        async def list_posts(params: FeedParams = Depends()):
            ...

    Attributes
    ----------
    strategy:
        ``"naive"`` or ``"batched"``.  Left as a free string on purpose:
        omitted or unknown values fall back to ``naive`` in the service
        layer instead of failing request validation.
    limit:
        Maximum number of posts.  ``None`` means the configured default;
        negatives are rejected by the service (400), values above
        ``settings.MAX_FEED_LIMIT`` are clamped.
    """

    def __init__(
        self,
        strategy: str | None = Query(
            None,
            description="Fetch strategy: 'naive' (default) or 'batched'.",
        ),
        limit: int | None = Query(
            None,
            description=(
                f"Maximum number of posts (default {settings.DEFAULT_FEED_LIMIT}, "
                f"capped at {settings.MAX_FEED_LIMIT})."
            ),
        ),
    ) -> None:
        self.strategy = strategy
        self.limit = limit

"""
Feed service — the entry points the HTTP layer calls.

Design notes
------------
- ``FeedAssembler`` is built around an injected store adapter; it never
  reaches for a module-level client, so tests can hand it a fake store.
- Every ``list_feed`` / ``search_feed`` call wraps the store in a fresh
  ``InstrumentedStore``.  The counters therefore belong to one invocation
  only and feed ``meta.queryCount`` / ``meta.storeTimeMs``.
- Parameters are validated before the first round trip.  Any failure after
  that point is re-raised as ``AssemblyError`` (the cause is chained), so a
  caller gets either a complete feed or an error, never a partial feed.
- With a ``timeout`` configured the whole invocation runs under
  ``asyncio.wait_for``; expiry cancels the in-flight store call and raises
  ``RequestTimeoutError``.
"""
import asyncio
import logging
import time

from feedapi.config import settings
from feedapi.errors import AssemblyError, RequestTimeoutError, ValidationError
from feedapi.instrumentation import InstrumentedStore
from feedapi.schemas import FeedMeta, FeedResponse
from feedapi.search import SearchMode, get_search
from feedapi.strategies import StrategyKind, get_strategy

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Parameter resolution
# ---------------------------------------------------------------------------

def resolve_strategy_kind(value) -> StrategyKind:
    """
    Map a user-supplied strategy name to a ``StrategyKind``.

    Omitted, blank and unrecognised names fall back to ``naive``; only a
    value that is not a string at all is rejected.
    """
    if value is None:
        return StrategyKind.NAIVE
    if isinstance(value, StrategyKind):
        return value
    if not isinstance(value, str):
        raise ValidationError(f"strategy must be a string, got {type(value).__name__}")
    normalized = value.strip().lower()
    if not normalized:
        return StrategyKind.NAIVE
    try:
        return StrategyKind(normalized)
    except ValueError:
        logger.warning("Unknown strategy %r, falling back to naive", value)
        return StrategyKind.NAIVE


def resolve_search_mode(value) -> SearchMode:
    if value is None:
        return SearchMode.SCAN
    if isinstance(value, SearchMode):
        return value
    if not isinstance(value, str):
        raise ValidationError(f"mode must be a string, got {type(value).__name__}")
    try:
        return SearchMode(value.strip().lower() or SearchMode.SCAN.value)
    except ValueError:
        raise ValidationError(
            f"Unknown search mode {value!r}; expected 'scan' or 'indexed'"
        ) from None


# ---------------------------------------------------------------------------
# Assembler
# ---------------------------------------------------------------------------

class FeedAssembler:
    def __init__(
        self,
        store,
        default_limit: int = settings.DEFAULT_FEED_LIMIT,
        max_limit: int = settings.MAX_FEED_LIMIT,
        concurrent: bool = settings.BATCHED_CONCURRENT_FETCH,
        timeout: float | None = settings.REQUEST_TIMEOUT_SECONDS,
    ) -> None:
        self._store = store
        self._default_limit = default_limit
        self._max_limit = max_limit
        self._concurrent = concurrent
        self._timeout = timeout

    def resolve_limit(self, limit) -> int:
        """Apply the default, reject negatives, clamp to the configured ceiling."""
        if limit is None:
            limit = self._default_limit
        if isinstance(limit, bool) or not isinstance(limit, int):
            raise ValidationError(f"limit must be an integer, got {limit!r}")
        if limit < 0:
            raise ValidationError(f"limit must not be negative, got {limit}")
        return min(limit, self._max_limit)

    async def list_feed(self, strategy=None, limit=None) -> FeedResponse:
        """
        Return up to *limit* most recent posts (newest first), hydrated with
        the chosen strategy.
        """
        kind = resolve_strategy_kind(strategy)
        limit = self.resolve_limit(limit)

        async def work(store):
            posts = await store.get_posts_ordered(limit)
            fetcher = get_strategy(kind, store, concurrent=self._concurrent)
            return await fetcher.assemble([p.id for p in posts], posts=posts)

        return await self._run("list_feed", kind, work)

    async def search_feed(self, strategy=None, query: str | None = "", mode=None) -> FeedResponse:
        """
        Return the posts owning at least one comment that contains *query*
        (case-insensitive), in first-match order.  A blank query returns an
        empty feed.
        """
        kind = resolve_strategy_kind(strategy)
        search_mode = resolve_search_mode(mode)
        query = query or ""

        async def work(store):
            post_ids = await get_search(search_mode, store).search(query)
            if not post_ids:
                return []
            fetcher = get_strategy(kind, store, concurrent=self._concurrent)
            return await fetcher.assemble(post_ids)

        return await self._run("search_feed", kind, work, search_query=query)

    async def _run(self, operation: str, kind: StrategyKind, work, search_query=None) -> FeedResponse:
        store = InstrumentedStore(self._store)
        start = time.perf_counter()
        try:
            if self._timeout is not None:
                posts = await asyncio.wait_for(work(store), timeout=self._timeout)
            else:
                posts = await work(store)
        except asyncio.TimeoutError as exc:
            logger.warning(
                "%s [%s] timed out after %ss (%d store calls issued)",
                operation, kind.value, self._timeout, store.snapshot().call_count,
            )
            raise RequestTimeoutError(
                f"{operation} exceeded the {self._timeout}s request timeout"
            ) from exc
        except Exception as exc:
            logger.error("%s [%s] failed: %s", operation, kind.value, exc)
            raise AssemblyError(f"{operation} failed: {exc}", cause=exc) from exc

        elapsed_ms = round((time.perf_counter() - start) * 1000, 2)
        stats = store.snapshot()
        logger.info(
            "%s [%s] %d posts in %.1fms, %d store calls (%.2fms avg)",
            operation,
            kind.value,
            len(posts),
            elapsed_ms,
            stats.call_count,
            stats.total_elapsed_ms / stats.call_count if stats.call_count else 0.0,
        )
        return FeedResponse(
            posts=tuple(posts),
            meta=FeedMeta(
                count=len(posts),
                query_time_ms=elapsed_ms,
                query_count=stats.call_count,
                store_time_ms=stats.total_elapsed_ms,
                strategy=kind.value,
                search_query=search_query,
            ),
        )

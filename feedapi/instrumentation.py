"""
Per-request round-trip instrumentation around the store adapter.

``InstrumentedStore`` exposes the same read coroutines as ``StoreAdapter``
and records, for each one, a call count and the wall-clock time spent
awaiting it.  One instance belongs to exactly one request: the feed service
builds a fresh wrapper per invocation, so concurrent or timed-out requests
never share counters.
"""
import time

from feedapi.schemas import QueryStats


class InstrumentedStore:
    def __init__(self, store) -> None:
        self._store = store
        self._call_count = 0
        self._total_elapsed_ms = 0.0
        self.calls: list[tuple[str, float]] = []

    async def _timed(self, operation: str, *args):
        # Failed round trips are counted and timed too.
        self._call_count += 1
        start = time.perf_counter()
        try:
            return await getattr(self._store, operation)(*args)
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            self._total_elapsed_ms += elapsed_ms
            self.calls.append((operation, elapsed_ms))

    def snapshot(self) -> QueryStats:
        return QueryStats(
            call_count=self._call_count,
            total_elapsed_ms=round(self._total_elapsed_ms, 2),
        )

    # ------------------------------------------------------------------
    # Store operations
    # ------------------------------------------------------------------

    async def get_posts_ordered(self, limit):
        return await self._timed("get_posts_ordered", limit)

    async def get_post(self, post_id):
        return await self._timed("get_post", post_id)

    async def get_posts_by_ids(self, post_ids):
        return await self._timed("get_posts_by_ids", post_ids)

    async def get_author(self, author_id):
        return await self._timed("get_author", author_id)

    async def get_authors_by_ids(self, author_ids):
        return await self._timed("get_authors_by_ids", author_ids)

    async def get_comments_for_post(self, post_id):
        return await self._timed("get_comments_for_post", post_id)

    async def get_comments_for_posts(self, post_ids):
        return await self._timed("get_comments_for_posts", post_ids)

    async def get_all_comments(self):
        return await self._timed("get_all_comments")

    async def find_post_ids_by_comment(self, query):
        return await self._timed("find_post_ids_by_comment", query)

    async def get_tags_for_post(self, post_id):
        return await self._timed("get_tags_for_post", post_id)

    async def get_tags_for_posts(self, post_ids):
        return await self._timed("get_tags_for_posts", post_ids)

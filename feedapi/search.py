"""
Comment search — pick candidate post ids by comment content.

``CommentScanSearch`` loads every comment in one round trip and filters in
Python.  Its cost grows with the total number of comments, and it stays the
default because that cost profile is what the feed benchmarks compare
against.  ``IndexedCommentSearch`` pushes the same case-insensitive
substring test into a single ``LIKE`` statement.  Case folding there is
the database's ``lower()``: PostgreSQL folds non-ASCII letters per the
database locale, SQLite folds ASCII only, so on SQLite a query such as
"école" does not find "ÉCOLE".  The scan uses ``str.lower`` and folds all of
Unicode.

Both return distinct post ids in first-seen order (the order of each post's
earliest matching comment).  A blank query matches nothing and issues no
round trip.
"""
from enum import Enum


class SearchMode(str, Enum):
    SCAN = "scan"
    INDEXED = "indexed"


class CommentScanSearch:
    def __init__(self, store) -> None:
        self._store = store

    async def search(self, query: str) -> list[int]:
        if not query or not query.strip():
            return []
        needle = query.lower()
        comments = await self._store.get_all_comments()
        # dict preserves insertion order: distinct ids, first-seen first
        post_ids: dict[int, None] = {}
        for comment in comments:
            if needle in comment.content.lower():
                post_ids.setdefault(comment.post_id, None)
        return list(post_ids)


class IndexedCommentSearch:
    def __init__(self, store) -> None:
        self._store = store

    async def search(self, query: str) -> list[int]:
        if not query or not query.strip():
            return []
        return list(await self._store.find_post_ids_by_comment(query))


def get_search(mode: SearchMode, store):
    if mode is SearchMode.INDEXED:
        return IndexedCommentSearch(store)
    return CommentScanSearch(store)

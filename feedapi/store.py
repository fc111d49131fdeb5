"""
Store adapter — primitive reads against the relational store.

Design notes
------------
- Every public coroutine issues exactly one SQL statement, i.e. one round
  trip.  Singular reads (``get_author``, ``get_comments_for_post`` …) cost
  one round trip per call; bulk reads (``*_by_ids``, ``*_for_posts``) cost
  one round trip however many ids they are given.
- Each read opens its own short-lived session from the injected
  ``async_sessionmaker``.  Sessions are never shared between calls, so the
  batched strategy may run independent reads concurrently.
- Returned ORM instances are detached (``expire_on_commit=False``) and are
  treated as read-only values; nothing here adds, updates or deletes rows.
- A missing row is a normal ``None`` / empty result.  Driver and transport
  failures are re-raised as ``StoreError``.
"""
import logging
from collections.abc import Iterable

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from feedapi.errors import StoreError
from feedapi.models import Author, Comment, Post, Tag, post_tags

logger = logging.getLogger(__name__)

_LIKE_ESCAPE = "\\"


def _like_pattern(query: str) -> str:
    """Wrap *query* for a substring ``LIKE`` with wildcards escaped."""
    escaped = (
        query.replace(_LIKE_ESCAPE, _LIKE_ESCAPE * 2)
        .replace("%", _LIKE_ESCAPE + "%")
        .replace("_", _LIKE_ESCAPE + "_")
    )
    return f"%{escaped}%"


class StoreAdapter:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    # ------------------------------------------------------------------
    # Round-trip helpers
    # ------------------------------------------------------------------

    async def _scalars(self, operation: str, stmt) -> list:
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                return list(result.scalars().all())
        except (SQLAlchemyError, OSError) as exc:
            logger.error("Store read %s failed: %s", operation, exc)
            raise StoreError(f"{operation} failed: {exc}") from exc

    async def _rows(self, operation: str, stmt) -> list:
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                return list(result.all())
        except (SQLAlchemyError, OSError) as exc:
            logger.error("Store read %s failed: %s", operation, exc)
            raise StoreError(f"{operation} failed: {exc}") from exc

    # ------------------------------------------------------------------
    # Posts
    # ------------------------------------------------------------------

    async def get_posts_ordered(self, limit: int) -> list[Post]:
        """Return up to *limit* posts, newest first."""
        stmt = (
            select(Post)
            .order_by(Post.created_at.desc(), Post.id.desc())
            .limit(limit)
        )
        return await self._scalars("get_posts_ordered", stmt)

    async def get_post(self, post_id: int) -> Post | None:
        posts = await self._scalars("get_post", select(Post).where(Post.id == post_id))
        return posts[0] if posts else None

    async def get_posts_by_ids(self, post_ids: Iterable[int]) -> list[Post]:
        """Bulk read; result order is unspecified."""
        ids = sorted(set(post_ids))
        return await self._scalars("get_posts_by_ids", select(Post).where(Post.id.in_(ids)))

    # ------------------------------------------------------------------
    # Authors
    # ------------------------------------------------------------------

    async def get_author(self, author_id: int) -> Author | None:
        authors = await self._scalars(
            "get_author", select(Author).where(Author.id == author_id)
        )
        return authors[0] if authors else None

    async def get_authors_by_ids(self, author_ids: Iterable[int]) -> dict[int, Author]:
        ids = sorted(set(author_ids))
        authors = await self._scalars(
            "get_authors_by_ids", select(Author).where(Author.id.in_(ids))
        )
        return {a.id: a for a in authors}

    # ------------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------------

    async def get_comments_for_post(self, post_id: int) -> list[Comment]:
        stmt = select(Comment).where(Comment.post_id == post_id).order_by(Comment.id)
        return await self._scalars("get_comments_for_post", stmt)

    async def get_comments_for_posts(self, post_ids: Iterable[int]) -> list[Comment]:
        ids = sorted(set(post_ids))
        stmt = select(Comment).where(Comment.post_id.in_(ids)).order_by(Comment.id)
        return await self._scalars("get_comments_for_posts", stmt)

    async def get_all_comments(self) -> list[Comment]:
        """Full table scan, creation order.  Only the scan search uses this."""
        return await self._scalars("get_all_comments", select(Comment).order_by(Comment.id))

    async def find_post_ids_by_comment(self, query: str) -> list[int]:
        """
        Distinct ids of posts owning a comment that contains *query*
        (case-insensitive), ordered by each post's first matching comment.

        Case folding is the backend's ``lower()``, which on SQLite covers
        ASCII letters only.
        """
        first_match = func.min(Comment.id)
        stmt = (
            select(Comment.post_id)
            .where(
                func.lower(Comment.content).like(
                    _like_pattern(query.lower()), escape=_LIKE_ESCAPE
                )
            )
            .group_by(Comment.post_id)
            .order_by(first_match)
        )
        return await self._scalars("find_post_ids_by_comment", stmt)

    # ------------------------------------------------------------------
    # Tags
    # ------------------------------------------------------------------

    async def get_tags_for_post(self, post_id: int) -> list[Tag]:
        stmt = (
            select(Tag)
            .join(post_tags, post_tags.c.tag_id == Tag.id)
            .where(post_tags.c.post_id == post_id)
            .order_by(Tag.id)
        )
        return await self._scalars("get_tags_for_post", stmt)

    async def get_tags_for_posts(self, post_ids: Iterable[int]) -> dict[int, list[Tag]]:
        """Bulk read of tag associations; posts without tags are absent from the map."""
        ids = sorted(set(post_ids))
        stmt = (
            select(post_tags.c.post_id, Tag)
            .select_from(post_tags)
            .join(Tag, post_tags.c.tag_id == Tag.id)
            .where(post_tags.c.post_id.in_(ids))
            .order_by(post_tags.c.post_id, Tag.id)
        )
        tags_by_post: dict[int, list[Tag]] = {}
        for post_id, tag in await self._rows("get_tags_for_posts", stmt):
            tags_by_post.setdefault(post_id, []).append(tag)
        return tags_by_post

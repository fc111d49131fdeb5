"""
Fetch strategies — turn post ids into fully hydrated ``PostView`` objects.

Both strategies share one contract::

    await strategy.assemble(post_ids, posts=None) -> list[PostView]

The result follows the order of *post_ids*; ids whose post row does not
exist are dropped.  When the caller already holds the post rows (the feed
listing does) it passes them as *posts* and the strategy does not load them
again.

NaiveStrategy
    One round trip per related row, strictly sequential: an author lookup
    per post, a comment list per post, an author lookup per comment and a
    tag list per post.  For P posts with c1..cP comments that is
    ``3P + sum(c)`` round trips (plus P ``get_post`` calls when rows are not
    supplied).  Kept as the reference implementation of the N+1 pattern.

BatchedStrategy
    A fixed number of bulk round trips (at most four: posts, comments,
    tags, authors) followed by in-memory joins.  The post/comment/tag reads
    are independent and can be awaited together with ``concurrent=True``;
    the author read depends on the comments and always runs last.

Both strategies build the same views from the same snapshot.  A dangling
author reference resolves to ``None`` in either.
"""
import asyncio
import logging
from collections.abc import Iterable, Sequence
from enum import Enum
from functools import partial

from feedapi.schemas import AuthorView, CommentView, PostView, TagView

logger = logging.getLogger(__name__)


class StrategyKind(str, Enum):
    NAIVE = "naive"
    BATCHED = "batched"


# ---------------------------------------------------------------------------
# View construction (pure, no I/O)
# ---------------------------------------------------------------------------

def _author_view(author) -> AuthorView | None:
    if author is None:
        return None
    return AuthorView.model_validate(author)


def _comment_view(comment, author) -> CommentView:
    return CommentView(
        id=comment.id,
        content=comment.content,
        post_id=comment.post_id,
        author_id=comment.author_id,
        created_at=comment.created_at,
        author=_author_view(author),
    )


def _tag_views(tags: Iterable) -> tuple[TagView, ...]:
    unique = {tag.id: tag for tag in tags}
    return tuple(TagView.model_validate(unique[tag_id]) for tag_id in sorted(unique))


def _post_view(post, author, comments: Sequence[CommentView], tags) -> PostView:
    return PostView(
        id=post.id,
        title=post.title,
        content=post.content,
        author_id=post.author_id,
        created_at=post.created_at,
        author=_author_view(author),
        comments=tuple(comments),
        tags=_tag_views(tags),
    )


def _in_request_order(post_ids: Sequence[int], posts: Iterable) -> list:
    by_id = {post.id: post for post in posts}
    return [by_id[post_id] for post_id in post_ids if post_id in by_id]


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

class NaiveStrategy:
    kind = StrategyKind.NAIVE

    def __init__(self, store) -> None:
        self._store = store

    async def assemble(self, post_ids: Iterable[int], posts=None) -> list[PostView]:
        post_ids = list(post_ids)
        if posts is None:
            posts = []
            for post_id in post_ids:
                post = await self._store.get_post(post_id)
                if post is not None:
                    posts.append(post)
        posts = _in_request_order(post_ids, posts)
        if not posts:
            return []

        logger.debug("naive: hydrating %d posts one row at a time", len(posts))

        authors = []
        for post in posts:
            authors.append(await self._store.get_author(post.author_id))

        comments_per_post = []
        for post in posts:
            comments = await self._store.get_comments_for_post(post.id)
            hydrated = []
            for comment in comments:
                comment_author = await self._store.get_author(comment.author_id)
                hydrated.append(_comment_view(comment, comment_author))
            comments_per_post.append(hydrated)

        tags_per_post = []
        for post in posts:
            tags_per_post.append(await self._store.get_tags_for_post(post.id))

        return [
            _post_view(post, author, comments, tags)
            for post, author, comments, tags in zip(
                posts, authors, comments_per_post, tags_per_post
            )
        ]


class BatchedStrategy:
    kind = StrategyKind.BATCHED

    def __init__(self, store, concurrent: bool = False) -> None:
        self._store = store
        self._concurrent = concurrent

    async def _fetch(self, *reads):
        """Run independent zero-argument reads, together or one after another."""
        if self._concurrent:
            return await asyncio.gather(*(read() for read in reads))
        results = []
        for read in reads:
            results.append(await read())
        return results

    async def assemble(self, post_ids: Iterable[int], posts=None) -> list[PostView]:
        post_ids = list(post_ids)
        if not post_ids:
            return []

        if posts is None:
            posts, comments, tags_by_post = await self._fetch(
                partial(self._store.get_posts_by_ids, post_ids),
                partial(self._store.get_comments_for_posts, post_ids),
                partial(self._store.get_tags_for_posts, post_ids),
            )
        else:
            comments, tags_by_post = await self._fetch(
                partial(self._store.get_comments_for_posts, post_ids),
                partial(self._store.get_tags_for_posts, post_ids),
            )

        posts = _in_request_order(post_ids, posts)
        if not posts:
            return []

        author_ids = {post.author_id for post in posts}
        author_ids.update(comment.author_id for comment in comments)
        authors = await self._store.get_authors_by_ids(author_ids)

        logger.debug(
            "batched: %d posts, %d comments, %d authors resolved",
            len(posts), len(comments), len(authors),
        )

        comments_by_post: dict[int, list[CommentView]] = {}
        for comment in comments:
            comments_by_post.setdefault(comment.post_id, []).append(
                _comment_view(comment, authors.get(comment.author_id))
            )

        return [
            _post_view(
                post,
                authors.get(post.author_id),
                comments_by_post.get(post.id, []),
                tags_by_post.get(post.id, []),
            )
            for post in posts
        ]


def get_strategy(kind: StrategyKind, store, concurrent: bool = False):
    """Return the fetch strategy for *kind* bound to *store*."""
    if kind is StrategyKind.BATCHED:
        return BatchedStrategy(store, concurrent=concurrent)
    return NaiveStrategy(store)

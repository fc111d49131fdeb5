from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _View(BaseModel):
    """
    Base for read-only response models.

    Frozen so a hydrated view can never be patched after assembly; JSON keys
    are camelCase (``authorId``, ``createdAt``) while Python attributes stay
    snake_case.
    """

    model_config = ConfigDict(
        frozen=True,
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


# --- Author / Tag ---

class AuthorView(_View):
    id: int
    name: str
    email: str
    bio: str | None = None


class TagView(_View):
    id: int
    name: str


# --- Comment / Post ---

class CommentView(_View):
    id: int
    content: str
    post_id: int
    author_id: int
    created_at: datetime | None = None
    author: AuthorView | None = None


class PostView(_View):
    id: int
    title: str
    content: str
    author_id: int
    created_at: datetime | None = None
    author: AuthorView | None = None
    comments: tuple[CommentView, ...] = ()
    # Distinct tag ids, ascending.
    tags: tuple[TagView, ...] = ()


# --- Feed envelope ---

class QueryStats(BaseModel):
    """Round-trip counters captured for one request."""

    call_count: int = 0
    total_elapsed_ms: float = 0.0


class FeedMeta(_View):
    count: int
    query_time_ms: float
    query_count: int
    store_time_ms: float
    strategy: str
    search_query: str | None = Field(default=None)


class FeedResponse(_View):
    posts: tuple[PostView, ...]
    meta: FeedMeta


class ErrorBody(BaseModel):
    code: str
    message: str


class ErrorResponse(BaseModel):
    error: ErrorBody


# --- Metrics ---

class MetricsResponse(_View):
    total_posts: int
    total_comments: int
    total_authors: int
    total_tags: int
    avg_comments_per_post: float
    cache_info: dict = {}

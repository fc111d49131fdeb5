"""
Test infrastructure for the Post Feed API.

Strategy
--------
- SQLite in-memory via aiosqlite eliminates the need for a running Postgres
  instance in CI, keeping the suite fast and self-contained.
- StaticPool forces every session to share the same in-memory database
  connection; SQLite in-memory databases are connection-scoped, so a new
  connection would see an empty database.  Because the store adapter opens
  one session per round trip, seed data must be committed before reading.
- The app's session-factory and ``get_db`` dependencies are overridden so
  every test-time request uses the test engine.
- All tables are created fresh before each test and dropped after.
- The Redis cache is disabled by setting cache._redis = None; the
  CacheManager handles that gracefully (no-op reads and writes).
- ``FakeStore`` is an in-memory stand-in with the StoreAdapter interface.
  It records every call and the peak number of calls in flight, which the
  strategy tests use to check call counts and sequential/concurrent I/O.
"""
import asyncio
from datetime import datetime, timedelta

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from feedapi.cache import cache
from feedapi.database import Base, get_db, get_session_factory
from feedapi.main import app
from feedapi.middleware import install_query_counter
from feedapi.models import Author, Comment, Post, Tag, post_tags
from feedapi.store import StoreAdapter

# ---------------------------------------------------------------------------
# Test database engine — SQLite in-memory with aiosqlite
# ---------------------------------------------------------------------------

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine_test = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

# Register the per-request SQL statement counter on the test engine.
install_query_counter(engine_test)

async_session_test = async_sessionmaker(
    engine_test,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ---------------------------------------------------------------------------
# Dependency overrides
# ---------------------------------------------------------------------------

def override_get_session_factory():
    return async_session_test


async def override_get_db():
    async with async_session_test() as session:
        yield session


app.dependency_overrides[get_session_factory] = override_get_session_factory
app.dependency_overrides[get_db] = override_get_db


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Create all tables before each test, drop after to guarantee isolation."""
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    async with async_session_test() as session:
        yield session


@pytest.fixture
def store() -> StoreAdapter:
    return StoreAdapter(async_session_test)


@pytest_asyncio.fixture
async def async_client() -> AsyncClient:
    cache._redis = None
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


# ---------------------------------------------------------------------------
# Seed data
# ---------------------------------------------------------------------------

BASE_TIME = datetime(2024, 1, 1, 12, 0, 0)


async def seed_rows(db: AsyncSession, authors=(), tags=(), posts=(), comments=(), post_tag_pairs=()):
    """Insert ORM rows (and post/tag pairs) and commit so other sessions see them."""
    db.add_all([*authors, *tags])
    await db.flush()
    db.add_all(list(posts))
    await db.flush()
    db.add_all(list(comments))
    if post_tag_pairs:
        await db.execute(
            insert(post_tags),
            [{"post_id": post_id, "tag_id": tag_id} for post_id, tag_id in post_tag_pairs],
        )
    await db.commit()


def scenario_rows() -> dict:
    """
    Two authors, three posts (P3 newest), one comment each:

    - c1 on P1 by A2: "hello world"
    - c2 on P2 by A1: "goodbye"
    - c3 on P3 by A2: "Hello again"
    """
    return {
        "authors": [
            Author(id=1, name="Ada", email="ada@example.com", bio="first"),
            Author(id=2, name="Brian", email="brian@example.com", bio=None),
        ],
        "posts": [
            Post(id=1, title="P1", content="first post", author_id=1, created_at=BASE_TIME),
            Post(id=2, title="P2", content="second post", author_id=2,
                 created_at=BASE_TIME + timedelta(hours=1)),
            Post(id=3, title="P3", content="third post", author_id=1,
                 created_at=BASE_TIME + timedelta(hours=2)),
        ],
        "comments": [
            Comment(id=1, content="hello world", post_id=1, author_id=2, created_at=BASE_TIME),
            Comment(id=2, content="goodbye", post_id=2, author_id=1, created_at=BASE_TIME),
            Comment(id=3, content="Hello again", post_id=3, author_id=2, created_at=BASE_TIME),
        ],
    }


def rich_rows() -> dict:
    """
    Four posts with 0..3 comments, tags on some posts, and one comment
    whose author row does not exist (author_id=99).
    """
    authors = [
        Author(id=i, name=f"Author {i}", email=f"author{i}@example.com", bio=f"bio {i}")
        for i in range(1, 4)
    ]
    tags = [Tag(id=1, name="python"), Tag(id=2, name="sql"), Tag(id=3, name="async")]
    posts = [
        Post(id=i, title=f"Post {i}", content=f"content {i}", author_id=(i % 3) + 1,
             created_at=BASE_TIME + timedelta(minutes=i))
        for i in range(1, 5)
    ]
    comments = [
        Comment(id=1, content="First!", post_id=1, author_id=2),
        Comment(id=2, content="Needs more SQL", post_id=2, author_id=3),
        Comment(id=3, content="agreed, more sql", post_id=2, author_id=1),
        Comment(id=4, content="ghost comment", post_id=2, author_id=99),
        Comment(id=5, content="late reply on one", post_id=1, author_id=3),
        Comment(id=6, content="great read", post_id=4, author_id=1),
    ]
    pairs = [(1, 2), (1, 1), (2, 3), (4, 1), (4, 2), (4, 3)]
    return {"authors": authors, "tags": tags, "posts": posts, "comments": comments,
            "post_tag_pairs": pairs}


@pytest_asyncio.fixture
async def scenario(db_session: AsyncSession) -> dict:
    rows = scenario_rows()
    await seed_rows(db_session, **rows)
    return rows


@pytest_asyncio.fixture
async def rich(db_session: AsyncSession) -> dict:
    rows = rich_rows()
    await seed_rows(db_session, **rows)
    return rows


# ---------------------------------------------------------------------------
# In-memory store double
# ---------------------------------------------------------------------------

class FakeStore:
    """
    StoreAdapter stand-in over plain lists of (transient) ORM instances.

    ``delay`` makes every call yield to the event loop for that many
    seconds; ``fail_on`` names an operation that raises instead of
    answering.
    """

    def __init__(self, authors=(), tags=(), posts=(), comments=(), post_tag_pairs=(),
                 delay: float = 0.0, fail_on: str | None = None, error: Exception | None = None):
        self.authors = {a.id: a for a in authors}
        self.tags = {t.id: t for t in tags}
        self.posts = {p.id: p for p in posts}
        self.comments = sorted(comments, key=lambda c: c.id)
        self.post_tag_pairs = list(post_tag_pairs)
        self.delay = delay
        self.fail_on = fail_on
        self.error = error
        self.calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def _call(self, operation: str, result):
        self.calls.append(operation)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            if operation == self.fail_on:
                raise self.error or RuntimeError(f"{operation} exploded")
            return result
        finally:
            self.in_flight -= 1

    async def get_posts_ordered(self, limit):
        ordered = sorted(self.posts.values(), key=lambda p: (p.created_at, p.id), reverse=True)
        return await self._call("get_posts_ordered", ordered[:limit])

    async def get_post(self, post_id):
        return await self._call("get_post", self.posts.get(post_id))

    async def get_posts_by_ids(self, post_ids):
        ids = set(post_ids)
        return await self._call("get_posts_by_ids", [p for p in self.posts.values() if p.id in ids])

    async def get_author(self, author_id):
        return await self._call("get_author", self.authors.get(author_id))

    async def get_authors_by_ids(self, author_ids):
        ids = set(author_ids)
        return await self._call(
            "get_authors_by_ids", {i: a for i, a in self.authors.items() if i in ids}
        )

    async def get_comments_for_post(self, post_id):
        return await self._call(
            "get_comments_for_post", [c for c in self.comments if c.post_id == post_id]
        )

    async def get_comments_for_posts(self, post_ids):
        ids = set(post_ids)
        return await self._call(
            "get_comments_for_posts", [c for c in self.comments if c.post_id in ids]
        )

    async def get_all_comments(self):
        return await self._call("get_all_comments", list(self.comments))

    async def find_post_ids_by_comment(self, query):
        seen: dict[int, None] = {}
        for c in self.comments:
            if query.lower() in c.content.lower():
                seen.setdefault(c.post_id, None)
        return await self._call("find_post_ids_by_comment", list(seen))

    async def get_tags_for_post(self, post_id):
        tag_ids = sorted({t for p, t in self.post_tag_pairs if p == post_id})
        return await self._call("get_tags_for_post", [self.tags[t] for t in tag_ids])

    async def get_tags_for_posts(self, post_ids):
        ids = set(post_ids)
        result: dict[int, list] = {}
        for p, t in sorted(self.post_tag_pairs):
            if p in ids:
                result.setdefault(p, []).append(self.tags[t])
        return await self._call("get_tags_for_posts", result)


@pytest.fixture
def fake_rich() -> FakeStore:
    rows = rich_rows()
    for i, comment in enumerate(rows["comments"]):
        comment.created_at = BASE_TIME + timedelta(seconds=i)
    return FakeStore(**rows)

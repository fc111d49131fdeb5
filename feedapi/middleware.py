import time
from contextvars import ContextVar

from sqlalchemy import event
from starlette.types import ASGIApp, Receive, Scope, Send

# ---------------------------------------------------------------------------
# Per-request context variable
# ---------------------------------------------------------------------------

class StatementCounter:
    """Mutable per-request tally shared by every task the request spawns."""

    __slots__ = ("count",)

    def __init__(self) -> None:
        self.count = 0


# Bound once per request and mutated in place: tasks created by
# ``asyncio.gather`` / ``asyncio.wait_for`` run in a copy of the context,
# so rebinding the var there would never reach the middleware.
sql_statement_count_var: ContextVar[StatementCounter | None] = ContextVar(
    "sql_statement_count", default=None
)


def install_query_counter(engine) -> None:
    """
    Register a ``before_cursor_execute`` listener on *engine* that bumps
    the request's ``StatementCounter`` for every SQL statement sent to the
    driver.  Statements outside a request (seeding, tests) are not counted.

    This is a lower-level view than the store round-trip counter kept by
    ``InstrumentedStore``: a single round trip normally maps to a single
    statement, so the ``X-Query-Count`` header and ``meta.queryCount``
    agree for feed requests, including concurrent batched fetches and
    requests run under a timeout.  The header additionally covers
    endpoints that talk to the database directly (e.g. metrics).

    Must be called once per engine (production engine in ``database.py``,
    test engine in ``conftest.py``).
    """
    sync_engine = engine.sync_engine

    @event.listens_for(sync_engine, "before_cursor_execute")
    def _count_statement(conn, cursor, statement, parameters, context, executemany):
        counter = sql_statement_count_var.get()
        if counter is not None:
            counter.count += 1


# ---------------------------------------------------------------------------
# Middleware (pure ASGI, keeps ContextVar writes visible to the wrapper)
# ---------------------------------------------------------------------------

class TimingMiddleware:
    """
    Pure ASGI middleware that adds two diagnostic response headers:

    - ``X-Response-Time-Ms``: wall-clock time for the entire request.
    - ``X-Query-Count``: SQL statements executed while serving the request.

    ``BaseHTTPMiddleware`` would run the inner app in a child task, hiding
    its ``ContextVar`` mutations; calling the app directly avoids that.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        counter = StatementCounter()
        sql_statement_count_var.set(counter)
        start = time.perf_counter()

        async def send_wrapper(message):
            if message["type"] == "http.response.start":
                duration_ms = round((time.perf_counter() - start) * 1000, 2)
                headers = list(message.get("headers", []))
                headers.append((b"x-response-time-ms", str(duration_ms).encode()))
                headers.append((b"x-query-count", str(counter.count).encode()))
                message["headers"] = headers
            await send(message)

        await self.app(scope, receive, send_wrapper)

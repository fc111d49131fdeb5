"""
Error taxonomy for the feed API.

A missing row is not an error: store reads return ``None`` or an empty
collection and the view resolves the reference to ``null``.  Everything
else derives from ``FeedError`` and carries the ``code`` / ``status_code``
pair the HTTP boundary renders.
"""


class FeedError(Exception):
    code = "feed_error"
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class StoreError(FeedError):
    """The relational store could not be reached or the statement failed."""

    code = "store_error"
    status_code = 503


class ValidationError(FeedError):
    """Request parameters rejected before any store call is issued."""

    code = "validation_error"
    status_code = 400


class RequestTimeoutError(FeedError):
    code = "timeout"
    status_code = 504


class AssemblyError(FeedError):
    """
    A feed or search invocation failed part-way through hydration.

    The original exception is kept on ``cause`` (and chained as
    ``__cause__``); no partially hydrated result is ever returned alongside
    it.
    """

    code = "assembly_error"
    status_code = 500

    def __init__(self, message: str, cause: BaseException) -> None:
        super().__init__(message)
        self.cause = cause

    @property
    def cause_code(self) -> str:
        if isinstance(self.cause, FeedError):
            return self.cause.code
        return self.code

    @property
    def cause_status_code(self) -> int:
        if isinstance(self.cause, FeedError):
            return self.cause.status_code
        return self.status_code

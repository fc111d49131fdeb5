from fastapi import APIRouter, Depends, Query

from feedapi.dependencies import FeedParams, get_feed_assembler
from feedapi.schemas import ErrorResponse, FeedResponse
from feedapi.services.feed_service import FeedAssembler

router = APIRouter(
    prefix="/api/v1/posts",
    tags=["posts"],
    responses={
        400: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
        504: {"model": ErrorResponse},
    },
)

@router.get("", response_model=FeedResponse)
async def list_posts(
    params: FeedParams = Depends(),
    assembler: FeedAssembler = Depends(get_feed_assembler),
):
    return await assembler.list_feed(params.strategy, params.limit)

@router.get("/search", response_model=FeedResponse)
async def search_posts(
    q: str = Query("", description="Case-insensitive substring matched against comment content."),
    strategy: str | None = Query(None, description="Fetch strategy: 'naive' (default) or 'batched'."),
    mode: str | None = Query(None, description="'scan' (default, full comment scan) or 'indexed'."),
    assembler: FeedAssembler = Depends(get_feed_assembler),
):
    return await assembler.search_feed(strategy, q, mode)

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request

from portal_search.core import get_settings, limiter
from portal_search.dependencies import get_current_user_id, get_search_gateway
from portal_search.schemas import ErrorResponse, SearchRequest, SearchResponse
from portal_search.services import SearchGateway
from portal_search.services.search import QueryValidationError, SearchError
from portal_search.utils import error_response

logger = logging.getLogger(__name__)

router = APIRouter(tags=["search"])

_ERRORS = {400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}


@router.post("/search", response_model=SearchResponse, responses=_ERRORS)
@limiter.limit(get_settings().search_rate_limit)
async def search(
    request: Request,
    body: SearchRequest,
    user_id: Annotated[str, Depends(get_current_user_id)],
    gateway: Annotated[SearchGateway, Depends(get_search_gateway)],
):
    try:
        return await gateway.search(
            body.query,
            body.filters,
            match_threshold=body.match_threshold,
            match_count=body.match_count,
            sort_by=body.sort_by,
            log_search=body.log_search,
            user_id=user_id,
        )
    except QueryValidationError as e:
        return error_response(400, e.message)
    except SearchError as e:
        logger.warning("Search failed [%s]: %s", e.kind.value, e.message)
        return error_response(500, e.user_message)

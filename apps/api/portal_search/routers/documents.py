import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from portal_search.dependencies import get_current_user_id, get_listing_service
from portal_search.schemas import ErrorResponse, ListingRequest, ListingResponse
from portal_search.services import ListingService
from portal_search.services.search import SearchError
from portal_search.utils import error_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["documents"])


@router.post(
    "/list",
    response_model=ListingResponse,
    responses={401: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def list_documents(
    body: ListingRequest,
    _user_id: Annotated[str, Depends(get_current_user_id)],
    listing: Annotated[ListingService, Depends(get_listing_service)],
):
    try:
        return await listing.list_documents(body)
    except SearchError as e:
        logger.warning("Listing failed [%s]: %s", e.kind.value, e.message)
        return error_response(500, e.user_message)

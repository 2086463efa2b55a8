"""
TravelPlaces Backend — Attraction Route Handlers
==================================================

What:  Handles GET /attractions/{country} (paginated list) and
       GET /attraction/{country}/{id} (detail).
How:   Extracts and defaults query parameters, obtains a dataset handle via
       get_dataset, delegates to AttractionQueryService.
Who:   Called by the frontend's list and detail pages.

Request Flow (both routes):
    1. get_dataset downloads `{country}.db` and opens it
    2. AttractionQueryService runs the query
    3. ImageResolver replaces image flags with base64 payloads
    4. The response model is built and returned
    5. get_dataset closes the handle and deletes the local copy

Query parameters of the list route (names as used by existing clients):
    minReviews  minimum total_reviews (default 0, max 2**31 - 1)
    order       rating_desc (default) | rating_asc | reviews_asc |
                reviews_desc | positive_asc | positive_desc
    page        1-indexed page number (default 1, max 2**31 - 1)
    limit       page size (default 20, max settings.max_page_size)
    region      exact region filter (empty = no filter)
    county      exact county filter (empty = no filter; 400 when the
                dataset has no county column)
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.config import settings
from app.schemas.attraction import AttractionDetail, AttractionPage, ErrorResponse
from app.services.attraction_service import MAX_QUERY_INT, attraction_service
from app.services.dataset_service import DatasetHandle, get_dataset
from app.services.ordering import DEFAULT_SORT_ORDER, SortOrder

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Attractions"])


@router.get(
    "/attractions/{country}",
    response_model=AttractionPage,
    responses={
        200: {"description": "One page of attractions", "model": AttractionPage},
        400: {"description": "Invalid query parameters", "model": ErrorResponse},
        500: {"description": "Dataset query failed", "model": ErrorResponse},
        503: {"description": "Dataset could not be fetched", "model": ErrorResponse},
    },
    summary="List attractions of a country with filters, sorting and pagination",
    description=(
        "Returns `{total, data}` where `total` counts every attraction matching the "
        "filters and `data` is the requested page. Rating sorts always list "
        "attractions rated exactly '100%' first. `image1` is inlined as base64."
    ),
)
async def list_attractions(
    min_reviews: int = Query(
        default=0, ge=0, le=MAX_QUERY_INT, alias="minReviews", description="Minimum number of reviews"
    ),
    order: SortOrder = Query(default=DEFAULT_SORT_ORDER, description="Sort order token"),
    page: int = Query(default=1, ge=1, le=MAX_QUERY_INT, description="1-indexed page number"),
    limit: int = Query(
        default=settings.default_page_size,
        ge=1,
        le=settings.max_page_size,
        description="Items per page",
    ),
    region: Optional[str] = Query(default=None, description="Only this region"),
    county: Optional[str] = Query(default=None, description="Only this county"),
    handle: DatasetHandle = Depends(get_dataset),
) -> AttractionPage:
    return await attraction_service.list_attractions(
        handle,
        min_reviews=min_reviews,
        order=order,
        page=page,
        limit=limit,
        region=region or None,
        county=county or None,
    )


@router.get(
    "/attraction/{country}/{attraction_id}",
    response_model=AttractionDetail,
    responses={
        200: {"description": "Full attraction record", "model": AttractionDetail},
        404: {"description": "No attraction with that id", "model": ErrorResponse},
        500: {"description": "Dataset query failed", "model": ErrorResponse},
        503: {"description": "Dataset could not be fetched", "model": ErrorResponse},
    },
    summary="Get one attraction with all of its images",
)
async def get_attraction(
    attraction_id: int,
    handle: DatasetHandle = Depends(get_dataset),
) -> AttractionDetail:
    """
    Full record for one attraction.

    image1..image3 are inlined as base64, or null when the record has no
    image in that slot or the image object could not be fetched.
    """
    return await attraction_service.get_attraction(handle, attraction_id)

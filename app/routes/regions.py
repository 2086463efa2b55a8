"""
TravelPlaces Backend — Region & County Route Handlers
=======================================================

What:  Lists the distinct regions and counties of a country dataset.
How:   The get_dataset dependency materializes the dataset for the request;
       the handler calls AttractionQueryService and returns a JSON array.
Who:   Called by the frontend's location filters.

Routes:
    GET /regions/{country}            all regions
    GET /regions/{country}/{county}   regions within one county
                                      (see county_router; mounted when
                                      COUNTY_REGIONS_ENABLED is on)
    GET /countis/{country}            all counties (path spelling is part of
                                      the public API and kept as-is)
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends

from app.schemas.attraction import ErrorResponse
from app.services.attraction_service import attraction_service
from app.services.dataset_service import DatasetHandle, get_dataset

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Regions"])
county_router = APIRouter(tags=["Regions"])

_ERRORS = {
    400: {"description": "Invalid country code", "model": ErrorResponse},
    500: {"description": "Dataset query failed", "model": ErrorResponse},
    503: {"description": "Dataset could not be fetched", "model": ErrorResponse},
}


@router.get(
    "/regions/{country}",
    response_model=List[Optional[str]],
    responses=_ERRORS,
    summary="List the regions of a country",
)
async def list_regions(
    handle: DatasetHandle = Depends(get_dataset),
) -> List[Optional[str]]:
    return await attraction_service.list_regions(handle)


@county_router.get(
    "/regions/{country}/{county}",
    response_model=List[Optional[str]],
    responses=_ERRORS,
    summary="List the regions inside one county",
)
async def list_regions_in_county(
    county: str,
    handle: DatasetHandle = Depends(get_dataset),
) -> List[Optional[str]]:
    return await attraction_service.list_regions(handle, county=county)


@router.get(
    "/countis/{country}",
    response_model=List[Optional[str]],
    responses=_ERRORS,
    summary="List the counties of a country",
)
async def list_counties(
    handle: DatasetHandle = Depends(get_dataset),
) -> List[Optional[str]]:
    return await attraction_service.list_counties(handle)

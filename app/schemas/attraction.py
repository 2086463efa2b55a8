"""
TravelPlaces Backend — Pydantic Response Schemas
==================================================

What:  Pydantic models defining the API contract with the frontend.
How:   FastAPI serializes route return values through these models and
       generates the OpenAPI documentation from them.
Who:   Route handlers (return types) and AttractionQueryService (builds them
       from dataset rows).

Field names match the dataset columns, so existing clients keep working.
`rating_value` is additive: the numeric form of `rating` (see
services/ordering.normalize_rating).
"""

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


# ══════════════════════════════════════════════════════════════════════════
# Attraction Models
# ══════════════════════════════════════════════════════════════════════════


class AttractionSummary(BaseModel):
    """
    What:  One row of GET /attractions/{country}.
    Only the first image is resolved for list views.

    Text fields accept numbers, since some datasets store ratings or positions
    as numeric values; they are exposed as text like the rest.
    """
    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: int = Field(description="Attraction identifier within its country dataset")
    name: Optional[str] = Field(default=None)
    image1: Optional[str] = Field(default=None, description="Base64 PNG, or null when absent/unavailable")
    region: Optional[str] = Field(default=None)
    county: Optional[str] = Field(default=None)
    total_reviews: Optional[int] = Field(default=None, description="Number of reviews")
    rating: Optional[str] = Field(default=None, description="Rating as stored, e.g. '87%'")
    rating_value: Optional[float] = Field(default=None, description="Rating parsed as a number")
    positive_reviews: Optional[int] = Field(default=None, description="Number of positive reviews")


class AttractionDetail(AttractionSummary):
    """
    What:  Full record returned by GET /attraction/{country}/{id}.
    All three image slots are resolved.
    """
    image2: Optional[str] = Field(default=None, description="Base64 PNG, or null")
    image3: Optional[str] = Field(default=None, description="Base64 PNG, or null")
    overview: Optional[str] = Field(default=None)
    duration: Optional[str] = Field(default=None, description="Suggested visit duration")
    details: Optional[str] = Field(default=None, description="Free-text details")
    position: Optional[str] = Field(default=None, description="Geographic position as stored")
    website: Optional[str] = Field(default=None)


class AttractionPage(BaseModel):
    """
    What:  Paginated response of GET /attractions/{country}.

    total counts every row matching the filters, independent of page/limit.
    A page past the end has an empty `data` and the same `total`.
    """
    total: int = Field(description="Rows matching the filters, ignoring pagination")
    data: List[AttractionSummary] = Field(description="The requested page of rows")


# ══════════════════════════════════════════════════════════════════════════
# Service Models
# ══════════════════════════════════════════════════════════════════════════


class IPResponse(BaseModel):
    """Server self-identification for clients on the local network."""
    ip: str = Field(description="IPv4 address the server is reachable at")
    port: int = Field(description="Port the server listens on")


class ErrorResponse(BaseModel):
    """
    What:  Standardized error response format for all API errors.

    Example:
        {
            "error": "upstream_unavailable",
            "message": "Could not connect to the dataset. Please try again later.",
            "request_id": "3f9a1c2e"
        }
    """
    error: str = Field(description="Machine-readable error kind")
    message: str = Field(description="Human-readable error description")
    details: Optional[Any] = Field(default=None, description="Additional error context (object, or list of field errors)")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Health check response showing service and dependency status."""
    status: str = Field(description="Overall service status: healthy, degraded")
    version: str = Field(description="Application version")
    object_store: str = Field(description="S3 bucket reachability: available, unavailable")
    credential_store: str = Field(description="User database: connected, disconnected, disabled")
    uptime_seconds: float = Field(description="Seconds since service started")

"""
TravelPlaces Backend — Attraction Query Service
=================================================

What:  The four read queries against an open country dataset.
How:   SQLAlchemy Core SELECTs over models.attraction.attractions, executed on
       the DatasetHandle's async connection. Rows then go through the
       ImageResolver before being wrapped in response schemas.
Who:   Called by the regions and attractions route handlers.
When:  After the dataset is materialized, before the handle is released.

Query Shapes:
    list_regions(handle, county=None)   SELECT DISTINCT region [WHERE county = ?]
    list_counties(handle)               SELECT DISTINCT county
    list_attractions(handle, ...)       COUNT(*) + paged SELECT with filters
    get_attraction(handle, id)          SELECT ... WHERE id = ?

Every filter value is a bound parameter. The ORDER BY comes from the
SortOrder allow-list in services/ordering.py, never from raw client text.

Dataset variants:
    Some datasets have no `county` column. The column set is read once per
    handle (PRAGMA table_info) and only existing columns are selected; the
    missing ones come back as None. Filtering on a missing column is
    InvalidInputError.

Error Handling:
    SQLAlchemyError (corrupt file, missing table/column) → QueryFailedError
    carrying the driver's message. A row whose values do not fit the
    response schema → QueryFailedError. Absent id → NotFoundError.
"""

import logging
from typing import Any, Dict, FrozenSet, List, Optional, Sequence, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError
from sqlalchemy import Column, func, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql import Executable

from app.config import settings
from app.exceptions import InvalidInputError, NotFoundError, QueryFailedError
from app.models.attraction import (
    DETAIL_COLUMNS,
    IMAGE_SLOTS,
    OPTIONAL_COLUMNS,
    SUMMARY_COLUMNS,
    SUMMARY_IMAGE_SLOTS,
    attractions,
)
from app.schemas.attraction import AttractionDetail, AttractionPage, AttractionSummary
from app.services.dataset_service import DatasetHandle
from app.services.image_service import ImageResolver, image_resolver
from app.services.ordering import DEFAULT_SORT_ORDER, SortOrder, normalize_rating, order_by_clauses

logger = logging.getLogger(__name__)

# Upper bound for page and minReviews; keeps OFFSET inside SQLite's int64
MAX_QUERY_INT = 2**31 - 1

SchemaT = TypeVar("SchemaT", bound=BaseModel)


class AttractionQueryService:
    """
    Read-only queries over one materialized dataset.

    Stateless apart from the image resolver it delegates to; the handle is
    passed in for every call.
    """

    def __init__(self, resolver: Optional[ImageResolver] = None):
        self.resolver = resolver or image_resolver

    async def _execute(self, handle: DatasetHandle, query: Executable, description: str):
        try:
            return await handle.connection.execute(query)
        except SQLAlchemyError as e:
            reason = str(getattr(e, "orig", None) or e)
            logger.error("Query failed on %s dataset (%s): %s", handle.country, description, reason)
            raise QueryFailedError(
                message=f"Failed to query the {handle.country} dataset",
                reason=reason,
                context={"country": handle.country, "query": description},
            )

    async def _available_columns(self, handle: DatasetHandle) -> FrozenSet[str]:
        """Column names of the dataset's attractions table, cached on the handle."""
        if handle.columns is None:
            result = await self._execute(handle, text("PRAGMA table_info(attractions)"), "columns")
            columns = frozenset(row["name"] for row in result.mappings())
            if not columns:
                logger.error("Dataset %s has no attractions table", handle.country)
                raise QueryFailedError(
                    message=f"Failed to query the {handle.country} dataset",
                    reason="no such table: attractions",
                    context={"country": handle.country, "query": "columns"},
                )
            handle.columns = columns
        return handle.columns

    async def _select_columns(
        self, handle: DatasetHandle, columns: Sequence[Column]
    ) -> List[Column]:
        available = await self._available_columns(handle)
        return [c for c in columns if c.name in available or c.name not in OPTIONAL_COLUMNS]

    async def _require_column(self, handle: DatasetHandle, name: str) -> None:
        if name not in await self._available_columns(handle):
            raise InvalidInputError(
                message=f"The {handle.country} dataset has no {name} data",
                field=name,
            )

    @staticmethod
    def _build(handle: DatasetHandle, schema: Type[SchemaT], record: Dict[str, Any]) -> SchemaT:
        try:
            return schema(**record)
        except ValidationError as e:
            logger.error(
                "Unexpected values in %s dataset row %s: %s",
                handle.country,
                record.get("id"),
                e,
            )
            raise QueryFailedError(
                message=f"Failed to read the {handle.country} dataset",
                reason=f"unexpected value in attraction {record.get('id')}",
                context={"country": handle.country},
            )

    async def list_regions(
        self, handle: DatasetHandle, county: Optional[str] = None
    ) -> List[Optional[str]]:
        """Distinct region values, optionally restricted to one county. Unordered."""
        query = select(attractions.c.region).distinct()
        if county is not None:
            await self._require_column(handle, "county")
            query = query.where(attractions.c.county == county)
        result = await self._execute(handle, query, "regions")
        return [row.region for row in result]

    async def list_counties(self, handle: DatasetHandle) -> List[Optional[str]]:
        """Distinct county values. Unordered; empty when the dataset has no counties."""
        if "county" not in await self._available_columns(handle):
            return []
        query = select(attractions.c.county).distinct()
        result = await self._execute(handle, query, "counties")
        return [row.county for row in result]

    async def list_attractions(
        self,
        handle: DatasetHandle,
        min_reviews: int = 0,
        order: Union[SortOrder, str] = DEFAULT_SORT_ORDER,
        page: int = 1,
        limit: Optional[int] = None,
        region: Optional[str] = None,
        county: Optional[str] = None,
    ) -> AttractionPage:
        """
        Paginated, filtered, sorted attraction list.

        Args:
            handle:       Open dataset
            min_reviews:  Keep rows with total_reviews >= this value
            order:        SortOrder token (default rating_desc)
            page:         1-indexed page number
            limit:        Page size (default settings.default_page_size)
            region:       Exact region filter; empty string means no filter
            county:       Exact county filter; empty string means no filter

        Returns:
            AttractionPage with `total` ignoring pagination and `data` holding
            at most `limit` rows with image1 resolved.

        Raises:
            InvalidInputError: Unknown order token or out-of-range numbers
            QueryFailedError:  The dataset could not be queried
        """
        limit = settings.default_page_size if limit is None else limit
        try:
            order = SortOrder(order)
        except ValueError:
            raise InvalidInputError(
                message=(
                    f"Invalid order '{order}'. "
                    f"Must be one of: {', '.join(o.value for o in SortOrder)}"
                ),
                field="order",
            )
        if not 1 <= page <= MAX_QUERY_INT:
            raise InvalidInputError(
                message=f"page must be between 1 and {MAX_QUERY_INT}",
                field="page",
            )
        if not 1 <= limit <= settings.max_page_size:
            raise InvalidInputError(
                message=f"limit must be between 1 and {settings.max_page_size}",
                field="limit",
            )
        if not 0 <= min_reviews <= MAX_QUERY_INT:
            raise InvalidInputError(
                message=f"minReviews must be between 0 and {MAX_QUERY_INT}",
                field="minReviews",
            )

        offset = (page - 1) * limit

        filters = [attractions.c.total_reviews >= min_reviews]
        if region:
            filters.append(attractions.c.region == region)
        if county:
            await self._require_column(handle, "county")
            filters.append(attractions.c.county == county)

        count_query = select(func.count()).select_from(attractions).where(*filters)
        count_result = await self._execute(handle, count_query, "attraction count")
        total = count_result.scalar_one()

        data_query = (
            select(*await self._select_columns(handle, SUMMARY_COLUMNS))
            .where(*filters)
            .order_by(*order_by_clauses(attractions, order))
            .limit(limit)
            .offset(offset)
        )
        result = await self._execute(handle, data_query, "attraction page")
        rows = [self._with_rating_value(dict(row)) for row in result.mappings()]

        await self.resolver.resolve_records(handle.country, rows, SUMMARY_IMAGE_SLOTS)

        logger.info(
            "Attractions %s: page=%d limit=%d order=%s → %d of %d",
            handle.country,
            page,
            limit,
            order.value,
            len(rows),
            total,
        )
        return AttractionPage(
            total=total,
            data=[self._build(handle, AttractionSummary, row) for row in rows],
        )

    async def get_attraction(self, handle: DatasetHandle, attraction_id: int) -> AttractionDetail:
        """
        Full record with all three image slots resolved.

        Raises:
            NotFoundError:     No row with that id
            QueryFailedError:  The dataset could not be queried
        """
        row = None
        # SQLite ids are signed 64-bit; anything wider cannot match a row
        if -(2**63) <= attraction_id < 2**63:
            columns = await self._select_columns(handle, DETAIL_COLUMNS)
            query = select(*columns).where(attractions.c.id == attraction_id)
            result = await self._execute(handle, query, "attraction detail")
            row = result.mappings().first()

        if row is None:
            raise NotFoundError(
                resource="attraction",
                resource_id=str(attraction_id),
                context={"country": handle.country},
            )

        record = self._with_rating_value(dict(row))
        await self.resolver.resolve_record(handle.country, record, IMAGE_SLOTS)
        return self._build(handle, AttractionDetail, record)

    @staticmethod
    def _with_rating_value(row: Dict[str, Any]) -> Dict[str, Any]:
        row["rating_value"] = normalize_rating(row.get("rating"))
        return row


# ── Singleton Instance ────────────────────────────────────────────────────
attraction_service = AttractionQueryService()

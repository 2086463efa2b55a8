"""
TravelPlaces Backend — Attraction Sort Orders
===============================================

What:  The fixed allow-list of sort tokens and the rating normalizer.
How:   Each SortOrder maps to a tuple of SQLAlchemy ORDER BY clauses built
       server-side; client input only ever selects a key from ORDER_CLAUSES.
Who:   AttractionQueryService (list endpoint) and DatasetMaterializer (which
       registers normalize_rating as a SQLite function on every connection).

Rating ordering:
    1. Rows whose rating is textually exactly "100%" come first, in both
       directions.
    2. Remaining rows sort by normalize_rating(rating) in the requested
       direction.
    3. Every order ends with id ASC, so equal keys keep dataset order.

normalize_rating mirrors SQLite's CAST(REPLACE(rating, '%', '') AS REAL):
    "87%"      → 87.0
    " 4.5 "    → 4.5
    "92% (3)"  → 92.0     (leading numeric prefix)
    "n/a"      → 0.0
    None       → None
"""

import re
from enum import Enum
from typing import Callable, Dict, Optional, Tuple, Union

from sqlalchemy import Float, Table, case, func
from sqlalchemy.sql.elements import ColumnElement

PERFECT_RATING = "100%"

# SQL function name registered on each dataset connection
NORMALIZE_RATING_SQL = "normalize_rating"

_NUMERIC_PREFIX = re.compile(r"\s*([+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?)")


class SortOrder(str, Enum):
    """Sort tokens accepted by GET /attractions/{country}?order=..."""

    RATING_ASC = "rating_asc"
    RATING_DESC = "rating_desc"
    REVIEWS_ASC = "reviews_asc"
    REVIEWS_DESC = "reviews_desc"
    POSITIVE_ASC = "positive_asc"
    POSITIVE_DESC = "positive_desc"


DEFAULT_SORT_ORDER = SortOrder.RATING_DESC


def normalize_rating(value: Union[str, int, float, bytes, None]) -> Optional[float]:
    """
    Convert a stored rating to a real number.

    Strips every '%' and parses the leading numeric prefix; text without one
    becomes 0.0. Numbers pass through as floats.
    """
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="ignore")
    match = _NUMERIC_PREFIX.match(value.replace("%", ""))
    if not match:
        return 0.0
    try:
        return float(match.group(1))
    except ValueError:
        return 0.0


def _perfect_first(table: Table) -> ColumnElement:
    return case((table.c.rating == PERFECT_RATING, 1), else_=0).desc()


def _rating_value(table: Table) -> ColumnElement:
    return getattr(func, NORMALIZE_RATING_SQL)(table.c.rating, type_=Float)


ORDER_CLAUSES: Dict[SortOrder, Callable[[Table], Tuple[ColumnElement, ...]]] = {
    SortOrder.RATING_ASC: lambda t: (_perfect_first(t), _rating_value(t).asc()),
    SortOrder.RATING_DESC: lambda t: (_perfect_first(t), _rating_value(t).desc()),
    SortOrder.REVIEWS_ASC: lambda t: (t.c.total_reviews.asc(),),
    SortOrder.REVIEWS_DESC: lambda t: (t.c.total_reviews.desc(),),
    SortOrder.POSITIVE_ASC: lambda t: (t.c.positive_reviews.asc(),),
    SortOrder.POSITIVE_DESC: lambda t: (t.c.positive_reviews.desc(),),
}


def order_by_clauses(table: Table, order: SortOrder) -> Tuple[ColumnElement, ...]:
    """
    Build the ORDER BY clauses for a sort token.

    Raises:
        ValueError if `order` is not a SortOrder token (callers validate first).
    """
    return ORDER_CLAUSES[SortOrder(order)](table) + (table.c.id.asc(),)

"""
TravelPlaces Backend — Attraction Dataset Schema
==================================================

What:  SQLAlchemy Core description of the `attractions` table found in every
       country dataset file.
How:   A standalone MetaData (not the credential store's Base) so dataset
       tables are never created or migrated by this application; datasets are
       produced elsewhere and only read here.
Who:   AttractionQueryService builds its SELECTs from this table; tests use it
       to build fixture dataset files.

Column notes:
    county           Missing from some dataset variants (OPTIONAL_COLUMNS)
    rating           Text such as "87%"; see services/ordering.normalize_rating
    image1..image3   Presence flags only (any truthy value). The image bytes
                     live in object storage under `{country}-{id}-{slot}.png`.
                     Declared Integer; SQLite type affinity still returns
                     whatever the dataset stores (0/1, text, blobs).
"""

from sqlalchemy import Column, Integer, MetaData, Table, Text

dataset_metadata = MetaData()

attractions = Table(
    "attractions",
    dataset_metadata,
    Column("id", Integer, primary_key=True),
    Column("name", Text),
    Column("region", Text),
    Column("county", Text),
    Column("overview", Text),
    Column("duration", Text),
    Column("details", Text),
    Column("position", Text),
    Column("total_reviews", Integer),
    Column("rating", Text),
    Column("positive_reviews", Integer),
    Column("website", Text),
    Column("image1", Integer),
    Column("image2", Integer),
    Column("image3", Integer),
)

IMAGE_SLOTS = ("image1", "image2", "image3")

# Columns some dataset variants do not have; absent ones are read as NULL
OPTIONAL_COLUMNS = frozenset({"county"})

# Columns returned by the paginated list (only the first image is resolved)
SUMMARY_COLUMNS = (
    attractions.c.id,
    attractions.c.name,
    attractions.c.image1,
    attractions.c.region,
    attractions.c.county,
    attractions.c.total_reviews,
    attractions.c.rating,
    attractions.c.positive_reviews,
)
SUMMARY_IMAGE_SLOTS = ("image1",)

# Columns returned by the single-record endpoint
DETAIL_COLUMNS = (
    attractions.c.id,
    attractions.c.image1,
    attractions.c.image2,
    attractions.c.image3,
    attractions.c.name,
    attractions.c.region,
    attractions.c.county,
    attractions.c.overview,
    attractions.c.duration,
    attractions.c.details,
    attractions.c.position,
    attractions.c.total_reviews,
    attractions.c.rating,
    attractions.c.positive_reviews,
    attractions.c.website,
)

"""
TravelPlaces Backend — Dataset Materializer
=============================================

What:  Turns a country code into an open query handle over a fresh local copy
       of that country's SQLite dataset.
How:   Downloads `{country}.db` through the ObjectStoreGateway, writes it with
       aiofiles to a path unique to this request, opens an async SQLAlchemy
       connection (aiosqlite) against it, and hands back a DatasetHandle.
Who:   Route handlers, through the `get_dataset` FastAPI dependency.
When:  Once per request that reads attraction data. Nothing is reused across
       requests: every request pays the full download.

Lifecycle of a dataset copy:
    acquire   validate country → fetch object → write file → connect
    use       AttractionQueryService runs queries on handle.connection
    release   close connection → dispose engine → delete file

    `session()` and `get_dataset()` guarantee release on every exit path,
    including errors raised while querying or resolving images.

Local path layout:
    {dataset_dir}/{country}-{request id}-{random}.db

    The random suffix keeps two concurrent requests for the same country (or
    two requests reusing a client-supplied X-Request-ID) on separate files.

No validation of the downloaded bytes happens here. A corrupt or partial file
opens fine and fails at query time with QueryFailedError.
"""

import logging
import re
import time
import uuid
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, AsyncIterator, FrozenSet, Optional

import aiofiles
import aiofiles.os
from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool

from app.config import settings
from app.exceptions import InvalidInputError, QueryFailedError, UpstreamUnavailableError
from app.middleware.request_id import request_id_var, safe_request_id
from app.services.object_store import ObjectStoreGateway, object_store
from app.services.ordering import NORMALIZE_RATING_SQL, normalize_rating

logger = logging.getLogger(__name__)

# Country codes end up in object keys and file names
COUNTRY_CODE_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,32}$")


def _register_sql_functions(dbapi_connection, connection_record) -> None:
    """Connect hook: expose normalize_rating to SQL for the rating sort orders."""
    dbapi_connection.create_function(
        NORMALIZE_RATING_SQL, 1, normalize_rating, deterministic=True
    )


class DatasetHandle:
    """
    An open connection to one locally materialized country dataset.

    Valid until close() is called. close() is idempotent.
    """

    def __init__(
        self,
        country: str,
        path: Path,
        engine: AsyncEngine,
        connection: AsyncConnection,
        keep_file: bool = False,
    ):
        self.country = country
        self.path = path
        self.engine = engine
        self.connection = connection
        self.keep_file = keep_file
        self.closed = False
        # attractions column names, filled on first query
        self.columns: Optional[FrozenSet[str]] = None

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            await self.connection.close()
        except SQLAlchemyError as e:
            logger.error("Error closing dataset connection for %s: %s", self.country, str(e))
        finally:
            await self.engine.dispose()
            if not self.keep_file:
                await discard_file(self.path)
        logger.debug("Dataset handle closed: %s", self.path.name)

    def __repr__(self) -> str:
        return f"<DatasetHandle(country='{self.country}', path='{self.path.name}', closed={self.closed})>"


async def discard_file(path: Path) -> None:
    """Best-effort removal of a local dataset copy."""
    try:
        await aiofiles.os.remove(path)
    except FileNotFoundError:
        logger.debug("Cleanup: dataset file already gone: %s", path.name)
    except OSError as e:
        logger.warning("Failed to remove dataset file %s: %s", path, str(e))


class DatasetMaterializer:
    """
    Fetches, stores, and opens country datasets.

    Args:
        gateway:      Object store to download from (defaults to the shared S3 gateway)
        dataset_dir:  Override settings.dataset_dir (used in tests)
        bucket:       Override settings.s3_bucket
    """

    def __init__(
        self,
        gateway: Optional[ObjectStoreGateway] = None,
        dataset_dir: Optional[str] = None,
        bucket: Optional[str] = None,
    ):
        self.gateway = gateway or object_store
        self.dataset_dir = dataset_dir
        self.bucket = bucket

    @property
    def root(self) -> Path:
        return Path(self.dataset_dir or settings.dataset_dir).resolve()

    @staticmethod
    def validate_country(country: str) -> str:
        if not COUNTRY_CODE_PATTERN.match(country or ""):
            raise InvalidInputError(
                message=f"Invalid country code '{country}'. Use letters, digits, '-' or '_'.",
                field="country",
            )
        return country

    @staticmethod
    def object_key(country: str) -> str:
        return f"{country}.db"

    def local_path(self, country: str) -> Path:
        """Unique local file for one request's copy of a dataset."""
        rid = safe_request_id(request_id_var.get("")) or "norid"
        return self.root / f"{country}-{rid}-{uuid.uuid4().hex[:12]}.db"

    async def materialize(self, country: str) -> DatasetHandle:
        """
        Download and open a country dataset.

        The caller owns the returned handle and must close() it; prefer
        session() which does that automatically.

        Raises:
            InvalidInputError:         Malformed country code
            UpstreamUnavailableError:  `{country}.db` could not be fetched
            QueryFailedError:          Local write or connect failed
        """
        self.validate_country(country)
        key = self.object_key(country)
        bucket = self.bucket or settings.s3_bucket
        start_time = time.perf_counter()

        logger.info("Connecting to the %s dataset...", country)
        content = await self.gateway.fetch(bucket, key)
        if content is None:
            logger.error("Dataset object %s/%s could not be fetched", bucket, key)
            raise UpstreamUnavailableError(context={"country": country, "key": key})

        path = self.local_path(country)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to write dataset copy %s: %s", path, str(e))
            await discard_file(path)
            raise QueryFailedError(
                message="Could not prepare the dataset. Please try again.",
                context={"country": country, "os_error": str(e)},
            )

        engine = create_async_engine(f"sqlite+aiosqlite:///{path}", poolclass=NullPool)
        event.listen(engine.sync_engine, "connect", _register_sql_functions)
        try:
            connection = await engine.connect()
        except SQLAlchemyError as e:
            logger.error("Failed to open dataset %s: %s", path.name, str(e))
            await engine.dispose()
            await discard_file(path)
            raise QueryFailedError(
                message="Could not open the dataset.",
                reason=str(getattr(e, "orig", None) or e),
                context={"country": country},
            )

        logger.info(
            "Dataset %s ready: %s (%d bytes) in %.0fms",
            country,
            path.name,
            len(content),
            (time.perf_counter() - start_time) * 1000,
        )
        return DatasetHandle(
            country=country,
            path=path,
            engine=engine,
            connection=connection,
            keep_file=settings.keep_dataset_files,
        )

    @asynccontextmanager
    async def session(self, country: str) -> AsyncIterator[DatasetHandle]:
        """
        Scoped dataset access: acquire, yield, always release.

        Example:
            async with dataset_materializer.session("jp") as handle:
                regions = await attraction_service.list_regions(handle)
        """
        handle = await self.materialize(country)
        try:
            yield handle
        finally:
            await handle.close()


# ── Singleton Instance ────────────────────────────────────────────────────
dataset_materializer = DatasetMaterializer()


# ── Dataset Dependency ────────────────────────────────────────────────────
async def get_dataset(country: str) -> AsyncGenerator[DatasetHandle, None]:
    """
    FastAPI dependency that provides a dataset handle per request.

    `country` is taken from the route's path parameter of the same name.
    The handle is closed (and its file deleted) when the request finishes,
    whether the handler returned or raised.

    Example usage in a route:
        @router.get("/regions/{country}")
        async def list_regions(handle: DatasetHandle = Depends(get_dataset)):
            ...
    """
    async with dataset_materializer.session(country) as handle:
        yield handle

"""
TravelPlaces Backend — Object Store Gateway (S3)
==================================================

What:  Fetches named objects (dataset snapshots, images) from an S3 bucket.
How:   boto3 client created lazily from settings; the blocking get_object call
       runs in Starlette's thread pool so the event loop keeps serving.
Who:   Used by DatasetMaterializer (`{country}.db`) and ImageResolver
       (`{country}-{id}-{slot}.png`).
When:  Once per dataset materialization, once per resolved image.

Contract:
    fetch(bucket, key) -> bytes | None

    Any failure (missing object, access denied, network error, empty body)
    yields None. The cause is logged here; callers only see "unavailable".

Retry Policy:
    Transport errors (botocore.exceptions.BotoCoreError, e.g. endpoint
    connection failures) are retried with tenacity up to
    settings.object_store_max_attempts. The default of 1 means no retry.
    The policy is built from settings on every fetch.
    Service errors (ClientError: NoSuchKey, AccessDenied) are never retried.
"""

import logging
import time
from typing import Any, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from starlette.concurrency import run_in_threadpool
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from app.config import settings

logger = logging.getLogger(__name__)


class ObjectStoreGateway:
    """
    Thin async facade over an S3 client.

    The client is built on first use so importing the application never
    touches AWS configuration (useful in tests and during startup checks).
    A client instance can be injected for tests.
    """

    def __init__(self, client: Any = None):
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = boto3.client(
                "s3",
                region_name=settings.aws_region,
                aws_access_key_id=settings.aws_access_key_id or None,
                aws_secret_access_key=settings.aws_secret_access_key or None,
                endpoint_url=settings.s3_endpoint_url,
            )
            logger.info(
                "S3 client created (region=%s, endpoint=%s)",
                settings.aws_region,
                settings.s3_endpoint_url or "aws",
            )
        return self._client

    async def fetch(self, bucket: str, key: str) -> Optional[bytes]:
        """
        Download one object.

        Args:
            bucket: Bucket name (normally settings.s3_bucket)
            key:    Object key, e.g. "jp.db" or "jp-12-image1.png"

        Returns:
            The object's bytes, or None when it is unavailable for any reason.
        """
        start_time = time.perf_counter()
        try:
            body = await self._get_object_with_retry(bucket, key)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "Unknown")
            logger.warning("S3 object %s/%s unavailable: %s", bucket, key, code)
            return None
        except BotoCoreError as e:
            logger.error("S3 transport error fetching %s/%s: %s", bucket, key, str(e))
            return None

        if not body:
            logger.warning("S3 object %s/%s returned an empty body", bucket, key)
            return None

        logger.debug(
            "Fetched %s/%s (%d bytes) in %.0fms",
            bucket,
            key,
            len(body),
            (time.perf_counter() - start_time) * 1000,
        )
        return body

    @staticmethod
    def _retrying() -> AsyncRetrying:
        """Retry policy built from the current settings."""
        return AsyncRetrying(
            retry=retry_if_exception_type(BotoCoreError),
            stop=stop_after_attempt(settings.object_store_max_attempts),
            wait=wait_exponential_jitter(
                initial=settings.object_store_retry_min_wait,
                max=settings.object_store_retry_max_wait,
                jitter=1,
            ),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

    async def _get_object_with_retry(self, bucket: str, key: str) -> Optional[bytes]:
        """Runs the blocking get_object + body read in the thread pool."""
        async for attempt in self._retrying():
            with attempt:
                return await run_in_threadpool(self._read_object, bucket, key)
        return None

    def _read_object(self, bucket: str, key: str) -> Optional[bytes]:
        response = self.client.get_object(Bucket=bucket, Key=key)
        stream = response.get("Body")
        if stream is None:
            return None
        try:
            return stream.read()
        finally:
            stream.close()

    async def health_check(self, bucket: str) -> bool:
        """
        Check that the bucket is reachable with the configured credentials.

        Returns: True if HEAD bucket succeeds, False otherwise (never raises).
        """
        try:
            await run_in_threadpool(self.client.head_bucket, Bucket=bucket)
            return True
        except (ClientError, BotoCoreError) as e:
            logger.warning("Object store health check failed: %s", str(e))
            return False


# ── Singleton Instance ────────────────────────────────────────────────────
object_store = ObjectStoreGateway()

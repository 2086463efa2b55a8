"""
TravelPlaces Backend — Image Resolver
=======================================

What:  Replaces image presence flags in attraction rows with base64 payloads.
How:   For each slot whose flag is truthy, fetches `{country}-{id}-{slot}.png`
       from object storage and base64-encodes it. Fetches for one request run
       concurrently, bounded by settings.image_fetch_concurrency.
Who:   AttractionQueryService, after the list/detail queries return rows.

Semantics:
    - flag falsy              → slot becomes None (no fetch)
    - flag truthy, object ok  → slot becomes the base64 text
    - flag truthy, fetch fail → slot becomes None
    Missing images never fail the request.
"""

import asyncio
import base64
import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence

from app.config import settings
from app.services.object_store import ObjectStoreGateway, object_store

logger = logging.getLogger(__name__)


def image_key(country: str, record_id: Any, slot: str) -> str:
    """Object key of one attraction image, e.g. 'jp-12-image1.png'."""
    return f"{country}-{record_id}-{slot}.png"


class ImageResolver:
    """
    Turns image flags into inline base64 images.

    Uses the shared object store gateway and settings.s3_bucket unless a
    gateway or bucket is injected (tests use a fake store).
    """

    def __init__(self, gateway: Optional[ObjectStoreGateway] = None, bucket: Optional[str] = None):
        self.gateway = gateway or object_store
        self.bucket = bucket

    async def resolve(self, key: str) -> Optional[str]:
        """Fetch one image object; returns base64 text or None."""
        content = await self.gateway.fetch(self.bucket or settings.s3_bucket, key)
        if content is None:
            logger.info("Image %s unavailable", key)
            return None
        return base64.b64encode(content).decode("ascii")

    async def resolve_record(
        self,
        country: str,
        record: Dict[str, Any],
        slots: Sequence[str],
        semaphore: Optional[asyncio.Semaphore] = None,
    ) -> Dict[str, Any]:
        """Resolve the given image slots of one row in place and return it."""
        semaphore = semaphore or asyncio.Semaphore(settings.image_fetch_concurrency)

        async def _resolve_slot(slot: str) -> None:
            if not record.get(slot):
                record[slot] = None
                return
            async with semaphore:
                record[slot] = await self.resolve(image_key(country, record["id"], slot))

        await asyncio.gather(*(_resolve_slot(slot) for slot in slots))
        return record

    async def resolve_records(
        self,
        country: str,
        records: Iterable[Dict[str, Any]],
        slots: Sequence[str],
    ) -> List[Dict[str, Any]]:
        """Resolve image slots for many rows with one shared concurrency limit."""
        records = list(records)
        semaphore = asyncio.Semaphore(settings.image_fetch_concurrency)
        await asyncio.gather(
            *(self.resolve_record(country, record, slots, semaphore) for record in records)
        )
        return records


# ── Singleton Instance ────────────────────────────────────────────────────
image_resolver = ImageResolver()

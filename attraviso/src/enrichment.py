"""
Image enrichment for attraction lists.

A fixed pool of workers runs the image resolver over the first `max_items`
records. Records are mutated in place, so the caller's list keeps its order
and length regardless of which lookups finish first.
"""

import asyncio
import logging
from typing import List, Optional, Sequence

from attraviso.models import Attraction
from attraviso.providers.image_provider import ImageResolver
from attraviso.utils.async_utils import run_workers

logger = logging.getLogger(__name__)


async def enrich_attractions(
    records: Sequence[Attraction],
    resolver: ImageResolver,
    concurrency: int = 6,
    max_items: int = 40,
    stop: Optional[asyncio.Event] = None,
) -> Sequence[Attraction]:
    """Resolve images for up to `max_items` records, `concurrency` at a time.

    Args:
        records: Attractions to enrich (mutated in place)
        resolver: Image resolver chain
        concurrency: Maximum resolver chains in flight
        max_items: Only the first `max_items` records are enriched
        stop: Once set, no further resolver chains are started

    Returns:
        The same `records` sequence
    """
    subset = list(records[:max(0, max_items)])
    if not subset:
        return records
    await run_workers(subset, resolver.resolve, concurrency, stop=stop)
    found = sum(1 for r in subset if r.image_url)
    logger.info("Enriched %d/%d attractions with images", found, len(subset))
    return records


async def enrich_within(
    records: List[Attraction],
    resolver: ImageResolver,
    deadline: float,
    concurrency: int = 6,
    max_items: int = 40,
    background: set = None,
) -> bool:
    """Run enrichment but stop waiting after `deadline` seconds.

    Lookups still in flight are not cancelled; they finish on their own
    per-call timeouts and whatever they write lands after the caller has
    moved on. Records not yet started when the deadline passes are left
    alone. Pass a `background` set to keep a reference to the remaining task.

    Returns:
        True if enrichment finished before the deadline
    """
    stop = asyncio.Event()
    task = asyncio.ensure_future(enrich_attractions(records, resolver, concurrency, max_items, stop=stop))
    done, _ = await asyncio.wait({task}, timeout=deadline)
    if task in done:
        task.result()
        return True

    stop.set()
    logger.info("Enrichment still running after %.1fs; responding without waiting", deadline)
    if background is not None:
        background.add(task)
        task.add_done_callback(background.discard)
    return False

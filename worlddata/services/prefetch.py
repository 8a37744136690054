"""Startup cache warm-up for whole regions."""
from __future__ import annotations

import asyncio
import logging
from typing import Dict, Iterable, List

from .country import CountryService

logger = logging.getLogger(__name__)


async def collect_region_codes(service: CountryService, regions: Iterable[str]) -> List[str]:
    """Unique 3-letter codes of every country in ``regions``, in first-seen order."""
    seen: Dict[str, None] = {}
    for region in regions:
        for code in await service.restcountries.list_region_codes(region):
            seen.setdefault(code, None)
    return list(seen)


async def prefetch_regions(
    service: CountryService,
    regions: Iterable[str],
    concurrency: int = 3,
    delay: float = 0.2,
) -> int:
    """Warm the composite cache for every country in ``regions``.

    ``concurrency`` workers share one queue of codes and pause ``delay``
    seconds between their calls. Returns the number of countries processed.
    """
    codes = await collect_region_codes(service, regions)
    if not codes:
        logger.info("Prefetch found no countries to warm")
        return 0

    logger.info(f"Prefetching {len(codes)} countries for cache...")
    queue: asyncio.Queue[str] = asyncio.Queue()
    for code in codes:
        queue.put_nowait(code)

    processed = 0

    async def worker() -> None:
        nonlocal processed
        while True:
            try:
                code = queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            await service.get_country_combined(code)
            processed += 1
            if delay:
                await asyncio.sleep(delay)

    await asyncio.gather(*(worker() for _ in range(max(1, concurrency))))
    logger.info("Prefetch complete.")
    return processed

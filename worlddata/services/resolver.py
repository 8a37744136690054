"""Series fallback resolution.

Primary sources are treated as higher fidelity; an alternate only fills a
gap, so it is awaited lazily and never when the primary has data.
"""
from __future__ import annotations

import logging
from typing import Awaitable, Callable

from ..models import TimeSeries

logger = logging.getLogger(__name__)


async def resolve_series(
    primary: TimeSeries,
    alternate_fetch: Callable[[], Awaitable[TimeSeries]],
    label: str = "series",
) -> TimeSeries:
    """Return ``primary`` unchanged when non-empty, otherwise the alternate's result."""
    if primary:
        return primary
    logger.debug(f"Primary {label} empty, consulting fallback source")
    return await alternate_fetch()

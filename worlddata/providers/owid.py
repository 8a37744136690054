"""Our World in Data grapher CSV provider.

The grapher endpoint returns a whole dataset for every country at once, so the
rows for one country are filtered client-side.
"""
from __future__ import annotations

import csv
import io
import logging
import re
from typing import Dict, List, Optional

from ..config import get_settings
from ..models import (
    IndicatorKind,
    SeriesPoint,
    TimeSeries,
    normalize_series,
    parse_point,
    series_from_cache,
    series_to_cache,
)
from ..services.cache_store import CacheStore
from .base import BaseProvider, normalize_country_code

logger = logging.getLogger(__name__)

_CODE_HEADER = re.compile(r"code", re.IGNORECASE)
_YEAR_HEADER = re.compile(r"year", re.IGNORECASE)
_VALUE_HEADER = re.compile(r"value", re.IGNORECASE)
_ENTITY_HEADER = re.compile(r"entity|country", re.IGNORECASE)


def _find_column(header: List[str], pattern: re.Pattern) -> Optional[int]:
    for idx, name in enumerate(header):
        if pattern.search(name):
            return idx
    return None


def _value_column(header: List[str], code_idx: int, year_idx: int) -> Optional[int]:
    """A "value"-like header wins; otherwise the last plain data column."""
    idx = _find_column(header, _VALUE_HEADER)
    if idx is not None:
        return idx
    for idx in range(len(header) - 1, -1, -1):
        if idx in (code_idx, year_idx) or _ENTITY_HEADER.search(header[idx]):
            continue
        return idx
    return None


def parse_owid_csv(text: Optional[str], code: str) -> TimeSeries:
    """Extract one country's yearly series from a grapher CSV.

    Rows for other countries are skipped, rows whose year or value is not a
    finite number are dropped, and the result is sorted ascending by year.
    A CSV without recognisable code/year/value columns yields an empty series.
    """
    if not text:
        return []
    reader = csv.reader(io.StringIO(text))
    header = next(reader, None)
    if not header:
        return []

    code_idx = _find_column(header, _CODE_HEADER)
    year_idx = _find_column(header, _YEAR_HEADER)
    if code_idx is None or year_idx is None:
        logger.debug(f"OWID CSV without code/year columns: {header}")
        return []
    value_idx = _value_column(header, code_idx, year_idx)
    if value_idx is None:
        return []

    width = max(code_idx, year_idx, value_idx) + 1
    points: List[SeriesPoint] = []
    for row in reader:
        if len(row) < width or row[code_idx] != code:
            continue
        point = parse_point(row[year_idx], row[value_idx])
        if point is not None:
            points.append(point)
    return normalize_series(points)


class OWIDProvider(BaseProvider):
    """Fallback series from Our World in Data grapher datasets, cached 24 hours."""

    DATASETS: Dict[IndicatorKind, str] = {
        IndicatorKind.GDP_PER_CAPITA: "gdp-per-capita-worldbank",
        IndicatorKind.INFLATION: "inflation_annual",
    }

    CACHE_TTL = 60 * 60 * 24

    def __init__(self, cache: CacheStore, base_url: Optional[str] = None, timeout: Optional[float] = None) -> None:
        settings = get_settings()
        super().__init__(
            cache,
            base_url=base_url or settings.owid_base_url,
            timeout=timeout or settings.http_timeout,
        )

    @property
    def provider_name(self) -> str:
        return "Our World in Data"

    def dataset_for(self, kind: IndicatorKind) -> Optional[str]:
        return self.DATASETS.get(kind)

    @staticmethod
    def cache_key(dataset_id: str, code: str) -> str:
        return f"owid:{dataset_id}:{code}"

    async def fetch_series(self, code: str, dataset_id: str) -> TimeSeries:
        """Fetch ``dataset_id`` rows for a 3-letter ``code``; failures read as empty."""
        country = normalize_country_code(code)
        if not country or not dataset_id:
            return []
        key = self.cache_key(dataset_id, country)

        cached = series_from_cache(await self.cache.get(key))
        if cached:
            return cached

        series = await self._guarded(
            f"dataset {dataset_id} for {country}",
            lambda: self._fetch_remote(country, dataset_id),
            [],
        )
        if series:
            await self.cache.set(key, series_to_cache(series), self.CACHE_TTL)
        return series

    async def _fetch_remote(self, country: str, dataset_id: str) -> TimeSeries:
        response = await self._get(f"{self.base_url}/{dataset_id}.csv")
        return parse_owid_csv(response.text, country)

from __future__ import annotations

from typing import Any, Dict, List, Optional
import logging

from ..config import get_settings
from ..exceptions import DataNotAvailableError, MalformedPayloadError
from ..models import (
    IndicatorKind,
    SeriesPoint,
    parse_point,
    TimeSeries,
    normalize_series,
    series_from_cache,
    series_to_cache,
)
from ..services.cache_store import CacheStore
from .base import BaseProvider, normalize_country_code

logger = logging.getLogger(__name__)


def parse_worldbank_series(payload: Any) -> TimeSeries:
    """Normalize a World Bank ``[meta, rows]`` document into a TimeSeries.

    Rows with a null value, or a date/value that is not a number, are dropped
    one by one.

    Raises:
        DataNotAvailableError: If the API answered with an error message
        MalformedPayloadError: If the document is not a ``[meta, rows]`` pair
    """
    if not isinstance(payload, list) or not payload:
        raise MalformedPayloadError("Expected a [meta, rows] list", provider="World Bank")

    head = payload[0]
    if isinstance(head, dict) and "message" in head:
        messages = head["message"]
        detail = "Unknown error"
        if isinstance(messages, list) and messages and isinstance(messages[0], dict):
            detail = messages[0].get("value", detail)
        raise DataNotAvailableError(f"World Bank API error: {detail}", provider="World Bank")

    if len(payload) < 2 or payload[1] is None:
        return []
    rows = payload[1]
    if not isinstance(rows, list):
        raise MalformedPayloadError("Rows element is not a list", provider="World Bank")

    points: List[SeriesPoint] = []
    for row in rows:
        if not isinstance(row, dict) or row.get("value") is None:
            continue
        point = parse_point(row.get("date"), row["value"])
        if point is not None:
            points.append(point)
    return normalize_series(points)


class WorldBankProvider(BaseProvider):
    """World Bank indicator series provider.

    Series are keyed by country code + indicator code and cached for 12 hours.
    """

    INDICATOR_MAPPINGS: Dict[IndicatorKind, str] = {
        IndicatorKind.GDP: "NY.GDP.MKTP.CD",  # GDP (current US$)
        IndicatorKind.POPULATION: "SP.POP.TOTL",
        IndicatorKind.AREA: "AG.LND.TOTL.K2",  # Land area (sq. km)
        IndicatorKind.DENSITY: "EN.POP.DNST",  # People per sq. km of land area
        IndicatorKind.GDP_PER_CAPITA: "NY.GDP.PCAP.CD",
        IndicatorKind.GDP_GROWTH: "NY.GDP.MKTP.KD.ZG",  # GDP growth (annual %)
        IndicatorKind.INFLATION: "FP.CPI.TOTL.ZG",  # Inflation, consumer prices (annual %)
    }

    CACHE_TTL = 60 * 60 * 12
    PER_PAGE = 60

    def __init__(self, cache: CacheStore, base_url: Optional[str] = None, timeout: Optional[float] = None) -> None:
        settings = get_settings()
        super().__init__(
            cache,
            base_url=base_url or settings.worldbank_base_url,
            timeout=timeout or settings.http_timeout,
        )

    @property
    def provider_name(self) -> str:
        return "World Bank"

    def indicator_code(self, kind: IndicatorKind | str) -> str:
        """Map an IndicatorKind to its World Bank code; raw codes pass through."""
        if isinstance(kind, IndicatorKind):
            return self.INDICATOR_MAPPINGS[kind]
        try:
            return self.INDICATOR_MAPPINGS[IndicatorKind(kind)]
        except ValueError:
            return kind

    @staticmethod
    def cache_key(indicator: str, code: str) -> str:
        return f"wb:{indicator}:{code}"

    async def fetch_series(self, code: str, kind: IndicatorKind | str) -> TimeSeries:
        """Fetch one indicator series; failures read as an empty series."""
        country = normalize_country_code(code)
        if not country:
            return []
        indicator = self.indicator_code(kind)
        key = self.cache_key(indicator, country)

        cached = series_from_cache(await self.cache.get(key))
        if cached:
            return cached

        series = await self._guarded(
            f"{indicator} for {country}",
            lambda: self._fetch_remote(country, indicator),
            [],
        )
        if series:
            await self.cache.set(key, series_to_cache(series), self.CACHE_TTL)
        return series

    async def _fetch_remote(self, country: str, indicator: str) -> TimeSeries:
        url = f"{self.base_url}/country/{country}/indicator/{indicator}"
        params = {"format": "json", "per_page": self.PER_PAGE}
        response = await self._get(url, params=params, headers={"Accept": "application/json"})
        series = parse_worldbank_series(self._parse_json_safe(response))
        if not series:
            logger.debug(f"No data for {country} indicator {indicator}")
        return series

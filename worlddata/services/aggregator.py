"""
Country aggregation.

Per request: MISS -> FETCHING -> ASSEMBLED -> [ENRICHING] -> CACHED.

A composite record is built from two fetch waves: identity plus the headline
indicators first, then the five supplementary indicators. Each wave settles
completely before any of its results is used. GDP per capita and inflation
fall back to Our World in Data when World Bank has nothing, and missing
density / GDP per capita latest values are back-filled by formula.

The assembled record is cached for an hour and returned. The largest-city
lookup runs afterwards as a detached task and re-persists a patched copy of
the record under the same key. A reader arriving in between sees the record
with ``largestCity`` still set to the capital; that window is accepted.

Concurrent misses for one code are not de-duplicated; both build the same
record and the cache write is idempotent.

The composite key does not cover derivation inputs, so a back-filled density
can outlive a change in area or population until the record's TTL expires.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, List, Optional, Set, Tuple

from ..models import (
    HEADLINE_INDICATORS,
    SUPPLEMENTARY_INDICATORS,
    CountryIdentity,
    CountryRecord,
    GeoSocio,
    IndicatorKind,
    MetricSeries,
    TimeSeries,
    latest_point,
)
from ..providers.base import normalize_country_code
from ..providers.owid import OWIDProvider
from ..providers.restcountries import RestCountriesProvider
from ..providers.wikidata import WikidataProvider
from ..providers.worldbank import WorldBankProvider
from .cache_store import CacheStore
from .derived import area_latest, density_latest, gdp_per_capita_latest
from .resolver import resolve_series

logger = logging.getLogger(__name__)


async def settle(*calls: Awaitable[Any]) -> List[Any]:
    """Await every call together; raise the first failure only once all have finished."""
    results = await asyncio.gather(*calls, return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return results


class CountryAggregator:
    """Builds and caches composite CountryRecords."""

    COMBINED_TTL = 60 * 60
    KEY_VERSION = "v2"

    def __init__(
        self,
        cache: CacheStore,
        identity_provider: RestCountriesProvider,
        indicator_provider: WorldBankProvider,
        tabular_provider: OWIDProvider,
        graph_provider: WikidataProvider,
    ) -> None:
        self.cache = cache
        self.identity_provider = identity_provider
        self.indicator_provider = indicator_provider
        self.tabular_provider = tabular_provider
        self.graph_provider = graph_provider
        self._enrichment_tasks: Set[asyncio.Task] = set()

    @classmethod
    def composite_key(cls, code: str) -> str:
        return f"combined:{cls.KEY_VERSION}:{code}"

    async def get_country_combined(self, code: str) -> CountryRecord:
        """Composite record for ``code``. Never raises."""
        country = normalize_country_code(code)
        if not country:
            return await self._minimal_record(country)
        key = self.composite_key(country)

        cached = await self._cached_record(key)
        if cached is not None:
            return cached

        try:
            identity, record = await self._assemble(country)
            await self.cache.set(key, record.model_dump(mode="json"), self.COMBINED_TTL)
        except Exception as e:
            logger.error(f"Aggregation failed for {country}, returning minimal record: {e}", exc_info=True)
            return await self._minimal_record(country)

        self._schedule_enrichment(key, record, identity.alpha2 or country)
        return record

    async def _cached_record(self, key: str) -> Optional[CountryRecord]:
        try:
            cached = await self.cache.get(key)
            if isinstance(cached, dict):
                return CountryRecord.model_validate(cached)
        except Exception as e:
            logger.warning(f"Ignoring unreadable cached record {key}: {e}")
        return None

    async def _assemble(self, country: str) -> Tuple[CountryIdentity, CountryRecord]:
        identity, gdp, population = await settle(
            self.identity_provider.fetch_identity(country),
            *(self.indicator_provider.fetch_series(country, kind) for kind in HEADLINE_INDICATORS),
        )
        area, density, gdp_per_capita, gdp_growth, inflation = await settle(
            *(self.indicator_provider.fetch_series(country, kind) for kind in SUPPLEMENTARY_INDICATORS)
        )

        canonical = normalize_country_code(identity.alpha3) or country
        gdp_per_capita, inflation = await settle(
            resolve_series(
                gdp_per_capita,
                lambda: self._fallback_series(canonical, IndicatorKind.GDP_PER_CAPITA),
                "GDP per capita",
            ),
            resolve_series(
                inflation,
                lambda: self._fallback_series(canonical, IndicatorKind.INFLATION),
                "inflation",
            ),
        )

        gdp_latest = latest_point(gdp)
        population_latest = latest_point(population)
        area_point = area_latest(area, identity)

        record = CountryRecord(
            identity=identity,
            gdp=MetricSeries.from_series(gdp),
            population=MetricSeries.from_series(population),
            languages=dict(identity.languages),
            geoSocio=GeoSocio(
                areaKm2=area_point,
                populationDensity=density_latest(density, area_point, population_latest),
                gdpPerCapita=MetricSeries.from_series(
                    gdp_per_capita,
                    latest=gdp_per_capita_latest(gdp_per_capita, gdp_latest, population_latest),
                ),
                gdpGrowth=MetricSeries.from_series(gdp_growth),
                inflation=MetricSeries.from_series(inflation),
                capital=identity.capital,
                largestCity=identity.capital,
            ),
        )
        return identity, record

    async def _fallback_series(self, country: str, kind: IndicatorKind) -> TimeSeries:
        return await self.tabular_provider.fetch_series(country, self.tabular_provider.dataset_for(kind))

    async def _minimal_record(self, country: str) -> CountryRecord:
        """Identity-only record (identity itself best-effort); never cached."""
        try:
            identity = await self.identity_provider.fetch_identity(country)
        except Exception as e:
            logger.warning(f"Identity unavailable for minimal record {country or '<blank>'}: {e}")
            identity = CountryIdentity()
        return CountryRecord(
            identity=identity,
            languages=dict(identity.languages),
            geoSocio=GeoSocio(
                areaKm2=area_latest([], identity),
                capital=identity.capital,
                largestCity=identity.capital,
            ),
        )

    def _schedule_enrichment(self, key: str, record: CountryRecord, iso_code: str) -> None:
        task = asyncio.create_task(self._enrich_largest_city(key, record.model_copy(deep=True), iso_code))
        self._enrichment_tasks.add(task)
        task.add_done_callback(self._enrichment_tasks.discard)

    async def _enrich_largest_city(self, key: str, record: CountryRecord, iso_code: str) -> None:
        """Re-persist ``record`` (a private copy) with its largest city; failure leaves the cache as is."""
        try:
            city = await self.graph_provider.fetch_largest_city(iso_code)
            if not city:
                return
            record.geoSocio.largestCity = city
            await self.cache.set(key, record.model_dump(mode="json"), self.COMBINED_TTL)
            logger.debug(f"Largest city for {key}: {city}")
        except Exception as e:
            logger.debug(f"Largest-city enrichment failed for {key}: {e}")

    @property
    def pending_enrichments(self) -> int:
        return len(self._enrichment_tasks)

    async def wait_for_enrichment(self) -> None:
        """Wait until every detached enrichment task has finished."""
        while self._enrichment_tasks:
            await asyncio.gather(*list(self._enrichment_tasks), return_exceptions=True)

    async def aclose(self) -> None:
        """Cancel outstanding enrichment tasks (application shutdown)."""
        tasks = list(self._enrichment_tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._enrichment_tasks.clear()

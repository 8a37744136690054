"""Public entry point of the aggregation core.

``CountryService`` wires the providers and the aggregator around one injected
``CacheStore``; the application lifespan owns the store and this service.
"""
from __future__ import annotations

import logging
from typing import List, Optional

from ..config import Settings, get_settings
from ..models import CountryRecord, CountrySummary, IndicatorKind, TimeSeries
from ..providers.owid import OWIDProvider
from ..providers.restcountries import RestCountriesProvider
from ..providers.wikidata import WikidataProvider
from ..providers.worldbank import WorldBankProvider
from .aggregator import CountryAggregator
from .cache_store import CacheStore

logger = logging.getLogger(__name__)


class CountryService:
    def __init__(
        self,
        cache: CacheStore,
        restcountries: RestCountriesProvider,
        worldbank: WorldBankProvider,
        owid: OWIDProvider,
        wikidata: WikidataProvider,
    ) -> None:
        self.cache = cache
        self.restcountries = restcountries
        self.worldbank = worldbank
        self.owid = owid
        self.wikidata = wikidata
        self.aggregator = CountryAggregator(
            cache,
            identity_provider=restcountries,
            indicator_provider=worldbank,
            tabular_provider=owid,
            graph_provider=wikidata,
        )

    @classmethod
    def from_settings(cls, cache: CacheStore, settings: Optional[Settings] = None) -> "CountryService":
        settings = settings or get_settings()
        timeout = settings.http_timeout
        return cls(
            cache,
            restcountries=RestCountriesProvider(
                cache,
                base_url=settings.restcountries_base_url,
                timeout=timeout,
                translation_language=settings.search_translation_language,
            ),
            worldbank=WorldBankProvider(cache, base_url=settings.worldbank_base_url, timeout=timeout),
            owid=OWIDProvider(cache, base_url=settings.owid_base_url, timeout=timeout),
            wikidata=WikidataProvider(cache, base_url=settings.wikidata_sparql_url, timeout=timeout),
        )

    async def get_country_combined(self, code: str) -> CountryRecord:
        return await self.aggregator.get_country_combined(code)

    async def get_indicator_series(self, code: str, kind: IndicatorKind) -> TimeSeries:
        return await self.worldbank.fetch_series(code, kind)

    async def search_countries(self, query: str) -> List[CountrySummary]:
        return await self.restcountries.search(query)

    async def aclose(self) -> None:
        await self.aggregator.aclose()

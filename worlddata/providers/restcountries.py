from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from ..config import get_settings
from ..exceptions import MalformedPayloadError
from ..models import Coordinates, CountryIdentity, CountrySummary, FlagUrls
from ..services.cache_store import CacheStore
from .base import BaseProvider, normalize_country_code

logger = logging.getLogger(__name__)


def _str_or_none(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value else None


def _str_dict(value: Any) -> Dict[str, str]:
    if not isinstance(value, dict):
        return {}
    return {k: v for k, v in value.items() if isinstance(k, str) and isinstance(v, str)}


def _translations(value: Any) -> Dict[str, Dict[str, str]]:
    if not isinstance(value, dict):
        return {}
    return {lang: _str_dict(names) for lang, names in value.items() if isinstance(names, dict)}


def _coordinates(value: Any) -> Optional[Coordinates]:
    if not isinstance(value, list) or len(value) < 2:
        return None
    try:
        return Coordinates(lat=float(value[0]), lng=float(value[1]))
    except (TypeError, ValueError):
        return None


def _area(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        area = float(value)
    except (TypeError, ValueError):
        return None
    return area if area > 0 else None


def parse_identity(payload: Any) -> CountryIdentity:
    """Normalize a REST Countries ``alpha/{code}`` response.

    Each field is read independently; a field with an unexpected shape is left
    absent instead of failing the whole identity.

    Raises:
        MalformedPayloadError: If the response holds no country object
    """
    country = payload[0] if isinstance(payload, list) and payload else payload
    if not isinstance(country, dict):
        raise MalformedPayloadError("Expected a country object", provider="REST Countries")

    name = country.get("name") if isinstance(country.get("name"), dict) else {}
    flags = country.get("flags") if isinstance(country.get("flags"), dict) else {}
    capital = country.get("capital")
    if isinstance(capital, list):
        capital = capital[0] if capital else None

    flag_urls = FlagUrls(png=_str_or_none(flags.get("png")), svg=_str_or_none(flags.get("svg")))
    return CountryIdentity(
        commonName=_str_or_none(name.get("common")),
        officialName=_str_or_none(name.get("official")),
        translations=_translations(country.get("translations") or name.get("translations")),
        alpha2=_str_or_none(country.get("cca2")),
        alpha3=_str_or_none(country.get("cca3")),
        region=_str_or_none(country.get("region")),
        subregion=_str_or_none(country.get("subregion")),
        languages=_str_dict(country.get("languages")),
        flagUrls=flag_urls if (flag_urls.png or flag_urls.svg) else None,
        coordinates=_coordinates(country.get("latlng")),
        areaKm2=_area(country.get("area")),
        capital=_str_or_none(capital),
    )


def parse_summaries(payload: Any, translation_language: str) -> List[CountrySummary]:
    """Normalize a REST Countries ``name/{query}`` response, keeping upstream order."""
    if not isinstance(payload, list):
        raise MalformedPayloadError("Expected a list of countries", provider="REST Countries")

    results: List[CountrySummary] = []
    for country in payload:
        if not isinstance(country, dict):
            continue
        name = country.get("name") if isinstance(country.get("name"), dict) else {}
        translated = _translations(country.get("translations") or name.get("translations")).get(translation_language)
        flags = country.get("flags") if isinstance(country.get("flags"), dict) else {}
        results.append(CountrySummary(
            alpha2=_str_or_none(country.get("cca2")),
            alpha3=_str_or_none(country.get("cca3")),
            name=_str_or_none(name.get("common")),
            translatedName=_str_or_none(translated.get("common")) if translated else None,
            flag=_str_or_none(flags.get("png")) or _str_or_none(flags.get("svg")),
        ))
    return results


class RestCountriesProvider(BaseProvider):
    """Identity/geography and name search from restcountries.com.

    Identities are cached 24 hours, search results 30 minutes.
    """

    IDENTITY_TTL = 60 * 60 * 24
    SEARCH_TTL = 60 * 30
    SEARCH_FIELDS = "name,cca2,cca3,flags,translations"

    def __init__(
        self,
        cache: CacheStore,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        translation_language: Optional[str] = None,
    ) -> None:
        settings = get_settings()
        super().__init__(
            cache,
            base_url=base_url or settings.restcountries_base_url,
            timeout=timeout or settings.http_timeout,
        )
        self.translation_language = translation_language or settings.search_translation_language

    @property
    def provider_name(self) -> str:
        return "REST Countries"

    async def fetch_identity(self, code: str) -> CountryIdentity:
        """Identity for a 2- or 3-letter code; failures read as an empty identity."""
        country = normalize_country_code(code)
        if not country:
            return CountryIdentity()
        key = f"rc:{country}"

        cached = await self.cache.get(key)
        if isinstance(cached, dict):
            try:
                return CountryIdentity.model_validate(cached)
            except ValueError:
                logger.debug(f"Discarding unreadable cached identity {key}")

        identity = await self._guarded(
            f"identity for {country}",
            lambda: self._fetch_identity_remote(country),
            CountryIdentity(),
        )
        if not identity.is_empty():
            await self.cache.set(key, identity.model_dump(mode="json"), self.IDENTITY_TTL)
        return identity

    async def _fetch_identity_remote(self, country: str) -> CountryIdentity:
        response = await self._get(f"{self.base_url}/alpha/{quote(country, safe='')}")
        return parse_identity(self._parse_json_safe(response))

    async def search(self, query: str) -> List[CountrySummary]:
        """Countries whose name matches ``query``; blank queries never reach upstream."""
        q = (query or "").strip()
        if not q:
            return []
        key = f"search:{q.lower()}"

        cached = await self.cache.get(key)
        if isinstance(cached, list):
            try:
                return [CountrySummary.model_validate(item) for item in cached]
            except ValueError:
                logger.debug(f"Discarding unreadable cached search {key}")

        results = await self._guarded(
            f"search for {q!r}",
            lambda: self._search_remote(q),
            [],
        )
        if results:
            await self.cache.set(key, [r.model_dump(mode="json") for r in results], self.SEARCH_TTL)
        return results

    async def _search_remote(self, q: str) -> List[CountrySummary]:
        response = await self._get(
            f"{self.base_url}/name/{quote(q, safe='')}",
            params={"fields": self.SEARCH_FIELDS},
        )
        return parse_summaries(self._parse_json_safe(response), self.translation_language)

    async def list_region_codes(self, region: str) -> List[str]:
        """3-letter codes of every country in ``region``; uncached, empty on failure."""
        name = (region or "").strip()
        if not name:
            return []
        return await self._guarded(
            f"country list for region {name}",
            lambda: self._region_codes_remote(name),
            [],
        )

    async def _region_codes_remote(self, region: str) -> List[str]:
        response = await self._get(
            f"{self.base_url}/region/{quote(region, safe='')}",
            params={"fields": "cca3"},
        )
        payload = self._parse_json_safe(response)
        if not isinstance(payload, list):
            raise MalformedPayloadError("Expected a list of countries", provider=self.provider_name)
        return [
            normalize_country_code(item["cca3"])
            for item in payload
            if isinstance(item, dict) and isinstance(item.get("cca3"), str)
        ]

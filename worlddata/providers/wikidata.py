from __future__ import annotations

import logging
import re
from typing import Any, Optional

from ..config import get_settings
from ..exceptions import MalformedPayloadError
from ..services.cache_store import CacheStore
from .base import BaseProvider, normalize_country_code

logger = logging.getLogger(__name__)

_ISO_CODE = re.compile(r"^[A-Z]{2,3}$")

# Matches the country by ISO 3166-1 alpha-2 (P297) or alpha-3 (P298) code and
# picks the most populous city (Q515 or any subclass) located in it.
LARGEST_CITY_QUERY = """SELECT ?cityLabel WHERE {
  ?country wdt:P31 wd:Q6256 .
  VALUES ?code { "%s" }
  { ?country wdt:P297 ?code } UNION { ?country wdt:P298 ?code } .
  ?city wdt:P31/wdt:P279* wd:Q515 ; wdt:P17 ?country .
  OPTIONAL { ?city wdt:P1082 ?pop }
  SERVICE wikibase:label { bd:serviceParam wikibase:language "en". }
} ORDER BY DESC(?pop) LIMIT 1"""


def parse_largest_city(payload: Any) -> Optional[str]:
    """Read the first binding's ``cityLabel`` from a SPARQL JSON result."""
    if not isinstance(payload, dict):
        raise MalformedPayloadError("Expected a SPARQL result object", provider="Wikidata")
    bindings = (payload.get("results") or {}).get("bindings")
    if not isinstance(bindings, list) or not bindings:
        return None
    first = bindings[0]
    label = first.get("cityLabel") if isinstance(first, dict) else None
    value = label.get("value") if isinstance(label, dict) else None
    return value if isinstance(value, str) and value else None


class WikidataProvider(BaseProvider):
    """Largest city of a country via the Wikidata SPARQL endpoint, cached 7 days."""

    CACHE_TTL = 60 * 60 * 24 * 7

    def __init__(self, cache: CacheStore, base_url: Optional[str] = None, timeout: Optional[float] = None) -> None:
        settings = get_settings()
        super().__init__(
            cache,
            base_url=base_url or settings.wikidata_sparql_url,
            timeout=timeout or settings.http_timeout,
        )

    @property
    def provider_name(self) -> str:
        return "Wikidata"

    async def fetch_largest_city(self, iso_code: str) -> Optional[str]:
        """Name of the most populous city; None when unknown or on failure."""
        iso = normalize_country_code(iso_code)
        if not _ISO_CODE.match(iso):
            return None
        key = f"wikidata:largest:{iso}"

        cached = await self.cache.get(key)
        if isinstance(cached, str) and cached:
            return cached

        city = await self._guarded(
            f"largest city for {iso}",
            lambda: self._fetch_remote(iso),
            None,
        )
        if city:
            await self.cache.set(key, city, self.CACHE_TTL)
        return city

    async def _fetch_remote(self, iso: str) -> Optional[str]:
        response = await self._get(
            self.base_url,
            params={"query": LARGEST_CITY_QUERY % iso},
            headers={"Accept": "application/sparql-results+json"},
        )
        return parse_largest_city(self._parse_json_safe(response))

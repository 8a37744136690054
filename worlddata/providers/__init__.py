"""
Upstream data providers.

Each provider normalizes one wire format (JSON document, CSV table, SPARQL
result) into the shared models and fails closed on any error.
"""

from .base import BaseProvider, normalize_country_code
from .owid import OWIDProvider
from .restcountries import RestCountriesProvider
from .wikidata import WikidataProvider
from .worldbank import WorldBankProvider

__all__ = [
    "BaseProvider",
    "normalize_country_code",
    "OWIDProvider",
    "RestCountriesProvider",
    "WikidataProvider",
    "WorldBankProvider",
]

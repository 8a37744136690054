"""
Shared pytest fixtures for the world-data backend tests.

Import fixtures from here instead of defining them in individual test files.
"""
from __future__ import annotations

import os
from typing import Any, Dict, List

import pytest

# Set test environment before importing application modules
os.environ["ENVIRONMENT"] = "test"
os.environ.pop("REDIS_URL", None)
os.environ.pop("PREFETCH", None)


# ============================================================================
# Environment Fixtures
# ============================================================================

@pytest.fixture(autouse=True)
def test_environment():
    """Ensure test environment is set for all tests."""
    old_env = os.environ.copy()
    os.environ["ENVIRONMENT"] = "test"
    os.environ.pop("REDIS_URL", None)
    yield
    os.environ.clear()
    os.environ.update(old_env)


# ============================================================================
# Provider Fixtures
# ============================================================================

@pytest.fixture
def worldbank_sample_response() -> List[Any]:
    """Sample World Bank API response (newest first, one null value)."""
    return [
        {"page": 1, "pages": 1, "per_page": 60, "total": 4},
        [
            {"date": "2023", "value": None, "indicator": {"id": "NY.GDP.MKTP.CD"}},
            {"date": "2022", "value": 24000000000000, "indicator": {"id": "NY.GDP.MKTP.CD"}},
            {"date": "2021", "value": 23000000000000, "indicator": {"id": "NY.GDP.MKTP.CD"}},
            {"date": "2020", "value": 21000000000000, "indicator": {"id": "NY.GDP.MKTP.CD"}},
        ],
    ]


@pytest.fixture
def restcountries_sample_response() -> List[Dict[str, Any]]:
    """Sample REST Countries ``alpha/VNM`` response."""
    return [
        {
            "name": {
                "common": "Vietnam",
                "official": "Socialist Republic of Vietnam",
                "nativeName": {"vie": {"official": "Cộng hòa xã hội chủ nghĩa Việt Nam", "common": "Việt Nam"}},
            },
            "translations": {
                "vie": {"official": "Cộng hòa xã hội chủ nghĩa Việt Nam", "common": "Việt Nam"},
                "fra": {"official": "République socialiste du Viêt Nam", "common": "Viêt Nam"},
            },
            "cca2": "VN",
            "cca3": "VNM",
            "region": "Asia",
            "subregion": "South-Eastern Asia",
            "languages": {"vie": "Vietnamese"},
            "flags": {"png": "https://flagcdn.com/w320/vn.png", "svg": "https://flagcdn.com/vn.svg"},
            "latlng": [16.16666666, 107.83333333],
            "area": 331212.0,
            "capital": ["Hanoi"],
        }
    ]


@pytest.fixture
def owid_sample_csv() -> str:
    """Sample Our World in Data grapher CSV with a quoted entity name."""
    return (
        "Entity,Code,Year,GDP per capita\n"
        "Vietnam,VNM,2021,3700.5\n"
        "Vietnam,VNM,2019,3400\n"
        "\"Korea, South\",KOR,2021,34000\n"
        "Vietnam,VNM,2020,not-a-number\n"
        "Vietnam,VNM,2018,\n"
    )


@pytest.fixture
def wikidata_sample_response() -> Dict[str, Any]:
    """Sample SPARQL JSON result."""
    return {
        "head": {"vars": ["cityLabel"]},
        "results": {"bindings": [{"cityLabel": {"type": "literal", "value": "Ho Chi Minh City"}}]},
    }


# ============================================================================
# Cleanup Fixtures
# ============================================================================

@pytest.fixture(autouse=True)
def reset_singletons():
    """Reset cached settings and the shared HTTP pool between tests."""
    yield
    from worlddata.config import get_settings
    from worlddata.services.http_pool import HTTPClientPool

    get_settings.cache_clear()
    HTTPClientPool._client = None

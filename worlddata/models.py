from __future__ import annotations

import math
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, Field


class IndicatorKind(str, Enum):
    """Yearly indicators tracked per country."""

    GDP = "gdp"
    POPULATION = "population"
    AREA = "area"
    DENSITY = "density"
    GDP_PER_CAPITA = "gdp_per_capita"
    GDP_GROWTH = "gdp_growth"
    INFLATION = "inflation"


HEADLINE_INDICATORS = (IndicatorKind.GDP, IndicatorKind.POPULATION)
SUPPLEMENTARY_INDICATORS = (
    IndicatorKind.AREA,
    IndicatorKind.DENSITY,
    IndicatorKind.GDP_PER_CAPITA,
    IndicatorKind.GDP_GROWTH,
    IndicatorKind.INFLATION,
)


class SeriesPoint(BaseModel):
    year: int
    value: float


TimeSeries = List[SeriesPoint]


def parse_point(year: Any, value: Any) -> Optional[SeriesPoint]:
    """Build a point from raw year/value fields, or None unless both are finite numbers."""
    try:
        year_number = float(year)
        value_number = float(value)
    except (TypeError, ValueError):
        return None
    if not (math.isfinite(year_number) and math.isfinite(value_number)):
        return None
    if not year_number.is_integer():
        return None
    return SeriesPoint(year=int(year_number), value=value_number)


def normalize_series(points: Iterable[SeriesPoint]) -> TimeSeries:
    """Sort points ascending by year, keeping the last point seen for a repeated year."""
    by_year: Dict[int, SeriesPoint] = {}
    for point in points:
        by_year[point.year] = point
    return [by_year[year] for year in sorted(by_year)]


def latest_point(series: Optional[TimeSeries]) -> Optional[SeriesPoint]:
    if not series:
        return None
    return series[-1]


def series_from_cache(raw: Any) -> TimeSeries:
    """Rebuild a series from its cached JSON form; anything unexpected reads as empty."""
    if not isinstance(raw, list):
        return []
    try:
        return [SeriesPoint.model_validate(item) for item in raw]
    except ValueError:
        return []


def series_to_cache(series: TimeSeries) -> List[Dict[str, Any]]:
    return [point.model_dump() for point in series]


class FlagUrls(BaseModel):
    png: Optional[str] = None
    svg: Optional[str] = None


class Coordinates(BaseModel):
    lat: float
    lng: float


class CountryIdentity(BaseModel):
    """Name, codes and geography of one country as reported by the identity provider."""

    commonName: Optional[str] = None
    officialName: Optional[str] = None
    translations: Dict[str, Dict[str, str]] = Field(default_factory=dict)
    alpha2: Optional[str] = None
    alpha3: Optional[str] = None
    region: Optional[str] = None
    subregion: Optional[str] = None
    languages: Dict[str, str] = Field(default_factory=dict)
    flagUrls: Optional[FlagUrls] = None
    coordinates: Optional[Coordinates] = None
    areaKm2: Optional[float] = None
    capital: Optional[str] = None

    def is_empty(self) -> bool:
        return self == CountryIdentity()


class MetricSeries(BaseModel):
    latest: Optional[SeriesPoint] = None
    series: List[SeriesPoint] = Field(default_factory=list)

    @classmethod
    def from_series(cls, series: TimeSeries, latest: Optional[SeriesPoint] = None) -> "MetricSeries":
        return cls(latest=latest or latest_point(series), series=list(series))


class GeoSocio(BaseModel):
    areaKm2: Optional[SeriesPoint] = None
    populationDensity: Optional[SeriesPoint] = None
    gdpPerCapita: MetricSeries = Field(default_factory=MetricSeries)
    gdpGrowth: MetricSeries = Field(default_factory=MetricSeries)
    inflation: MetricSeries = Field(default_factory=MetricSeries)
    capital: Optional[str] = None
    largestCity: Optional[str] = None


class CountryRecord(BaseModel):
    """Composite per-country payload served to the map front end."""

    identity: CountryIdentity = Field(default_factory=CountryIdentity)
    gdp: MetricSeries = Field(default_factory=MetricSeries)
    population: MetricSeries = Field(default_factory=MetricSeries)
    languages: Dict[str, str] = Field(default_factory=dict)
    geoSocio: GeoSocio = Field(default_factory=GeoSocio)


class CountrySummary(BaseModel):
    """Lightweight search hit."""

    alpha2: Optional[str] = None
    alpha3: Optional[str] = None
    name: Optional[str] = None
    translatedName: Optional[str] = None
    flag: Optional[str] = None


class HealthResponse(BaseModel):
    ok: bool
    service: str
    timestamp: str
    environment: str
    cache: Dict[str, Any]
    http: Dict[str, Any] = Field(default_factory=dict)


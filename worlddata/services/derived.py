"""Best-effort back-fill of latest values no provider reported.

Only the latest point is ever computed; historical derived series are not
synthesized.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from ..models import CountryIdentity, SeriesPoint, TimeSeries, latest_point


def area_latest(area_series: TimeSeries, identity: CountryIdentity) -> Optional[SeriesPoint]:
    """Latest land area, or the identity's area tagged with the current year."""
    latest = latest_point(area_series)
    if latest is not None:
        return latest
    if identity.areaKm2:
        return SeriesPoint(year=datetime.now(timezone.utc).year, value=identity.areaKm2)
    return None


def density_latest(
    density_series: TimeSeries,
    area: Optional[SeriesPoint],
    population: Optional[SeriesPoint],
) -> Optional[SeriesPoint]:
    """Direct density if reported, else population / area in the population's year."""
    latest = latest_point(density_series)
    if latest is not None:
        return latest
    if area is None or population is None or not area.value or not population.value:
        return None
    return SeriesPoint(year=population.year, value=population.value / area.value)


def gdp_per_capita_latest(
    gdp_per_capita_series: TimeSeries,
    gdp: Optional[SeriesPoint],
    population: Optional[SeriesPoint],
) -> Optional[SeriesPoint]:
    """Reported GDP per capita if any, else gdp / population in the later of the two years.

    ``gdp_per_capita_series`` is the already-resolved series (primary or fallback).
    """
    latest = latest_point(gdp_per_capita_series)
    if latest is not None:
        return latest
    if gdp is None or population is None or not gdp.value or not population.value:
        return None
    return SeriesPoint(year=max(gdp.year, population.year), value=gdp.value / population.value)

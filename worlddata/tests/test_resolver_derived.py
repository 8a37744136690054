from __future__ import annotations

import unittest
from datetime import datetime, timezone
from unittest.mock import AsyncMock

from worlddata.models import CountryIdentity, SeriesPoint
from worlddata.services.derived import area_latest, density_latest, gdp_per_capita_latest
from worlddata.services.resolver import resolve_series
from worlddata.tests.utils import run


class ResolveSeriesTests(unittest.TestCase):
    def test_non_empty_primary_skips_alternate(self) -> None:
        primary = [SeriesPoint(year=2020, value=1.0)]
        alternate = AsyncMock(return_value=[SeriesPoint(year=2021, value=9.0)])

        result = run(resolve_series(primary, alternate))

        self.assertEqual(result, primary)
        alternate.assert_not_called()

    def test_empty_primary_uses_alternate(self) -> None:
        fallback = [SeriesPoint(year=2019, value=3.0)]
        alternate = AsyncMock(return_value=fallback)

        result = run(resolve_series([], alternate, "inflation"))

        self.assertEqual(result, fallback)
        alternate.assert_awaited_once()

    def test_both_empty_is_empty(self) -> None:
        self.assertEqual(run(resolve_series([], AsyncMock(return_value=[]))), [])


class DensityTests(unittest.TestCase):
    def test_reported_density_wins(self) -> None:
        reported = [SeriesPoint(year=2019, value=300.0), SeriesPoint(year=2020, value=310.0)]

        result = density_latest(reported, SeriesPoint(year=2020, value=1.0), SeriesPoint(year=2020, value=1.0))

        self.assertEqual(result, SeriesPoint(year=2020, value=310.0))

    def test_derived_from_population_over_area_in_population_year(self) -> None:
        result = density_latest([], SeriesPoint(year=2020, value=100.0), SeriesPoint(year=2021, value=500.0))

        self.assertEqual(result, SeriesPoint(year=2021, value=5.0))

    def test_zero_or_missing_inputs_give_none(self) -> None:
        population = SeriesPoint(year=2021, value=500.0)
        self.assertIsNone(density_latest([], SeriesPoint(year=2020, value=0.0), population))
        self.assertIsNone(density_latest([], None, population))
        self.assertIsNone(density_latest([], SeriesPoint(year=2020, value=100.0), None))


class GdpPerCapitaTests(unittest.TestCase):
    def test_derived_in_later_year(self) -> None:
        result = gdp_per_capita_latest([], SeriesPoint(year=2019, value=1000.0), SeriesPoint(year=2020, value=10.0))

        self.assertEqual(result, SeriesPoint(year=2020, value=100.0))

    def test_resolved_series_wins(self) -> None:
        series = [SeriesPoint(year=2022, value=4100.0)]

        result = gdp_per_capita_latest(series, SeriesPoint(year=2019, value=1000.0), SeriesPoint(year=2020, value=10.0))

        self.assertEqual(result, SeriesPoint(year=2022, value=4100.0))

    def test_zero_population_gives_none(self) -> None:
        self.assertIsNone(
            gdp_per_capita_latest([], SeriesPoint(year=2019, value=1000.0), SeriesPoint(year=2020, value=0.0))
        )


class AreaTests(unittest.TestCase):
    def test_series_latest_wins(self) -> None:
        series = [SeriesPoint(year=2018, value=310000.0), SeriesPoint(year=2020, value=313429.0)]

        self.assertEqual(area_latest(series, CountryIdentity(areaKm2=331212.0)), series[-1])

    def test_identity_area_tagged_with_current_year(self) -> None:
        result = area_latest([], CountryIdentity(areaKm2=331212.0))

        self.assertEqual(result.value, 331212.0)
        self.assertEqual(result.year, datetime.now(timezone.utc).year)

    def test_no_area_anywhere(self) -> None:
        self.assertIsNone(area_latest([], CountryIdentity()))


if __name__ == "__main__":
    unittest.main()

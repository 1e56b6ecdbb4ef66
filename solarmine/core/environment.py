# solarmine/core/environment.py
"""
Environmental resource resolution

Resolves the sun hours, ambient temperature, cloud cover and wind speed for
one location and day. Three lookups are tried in order and the first match
wins (no blending across granularities):

- hourly forecast: only when all 24 hours of the day are present
- daily forecast
- monthly climatology: exact (year, month) first, otherwise the same
  calendar month from the nearest year on record

Scenario environmental overrides are applied after raw resolution.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import TYPE_CHECKING, Dict, Iterable, List, Literal, Optional, Sequence, Tuple

import pandas as pd

from solarmine.config import settings
from solarmine.core.errors import NoEnvironmentalDataError

if TYPE_CHECKING:
    from solarmine.core.scenario_models import EnvironmentalOverrides
    from solarmine.core.system_models import Location

logger = logging.getLogger(__name__)

Granularity = Literal["hourly", "daily", "monthly"]
Season = Literal["winter", "spring", "summer", "autumn"]

_NORTHERN_SEASON_BY_MONTH = {
    12: "winter", 1: "winter", 2: "winter",
    3: "spring", 4: "spring", 5: "spring",
    6: "summer", 7: "summer", 8: "summer",
    9: "autumn", 10: "autumn", 11: "autumn",
}
_OPPOSITE_SEASON = {
    "winter": "summer",
    "summer": "winter",
    "spring": "autumn",
    "autumn": "spring",
}


def season_for(month: int, latitude: float) -> Season:
    season = _NORTHERN_SEASON_BY_MONTH[month]
    return _OPPOSITE_SEASON[season] if latitude < 0 else season


def representative_month(season: str, latitude: float) -> int:
    month = settings.SEASON_REPRESENTATIVE_MONTH[season]
    if latitude < 0:
        month = (month + 5) % 12 + 1
    return month


@dataclass(frozen=True)
class EnvironmentalSample:
    """Resolved solar/weather figures for one location and day."""

    location_id: str
    sample_date: date
    granularity: Granularity
    sun_hours: float  # peak-sun-hours equivalent (kWh/m²/day)
    temperature_c: float  # daytime ambient
    cloud_cover_percent: Optional[float] = None
    wind_speed_ms: Optional[float] = None
    season: Optional[str] = None
    confidence: float = 1.0
    weather_impact_factor: float = 1.0  # combined sun-hours scaling applied
    temperature_impact_factor: float = 1.0  # scales the panel thermal derate


@dataclass(frozen=True)
class HourlyReading:
    location_id: str
    timestamp: datetime
    ghi_w_m2: float  # global horizontal irradiance
    temperature_c: float
    cloud_cover_percent: Optional[float] = None
    wind_speed_ms: Optional[float] = None
    confidence: float = 1.0


@dataclass(frozen=True)
class DailyForecast:
    location_id: str
    forecast_date: date
    sun_hours: float
    temperature_c: float
    cloud_cover_percent: Optional[float] = None
    wind_speed_ms: Optional[float] = None
    confidence: float = 1.0


@dataclass(frozen=True)
class MonthlySolarRecord:
    location_id: str
    year: int
    month: int
    sun_hours: float  # average daily
    temperature_c: float
    cloud_cover_percent: Optional[float] = None
    wind_speed_ms: Optional[float] = None


def _mean(values: Sequence[Optional[float]]) -> Optional[float]:
    present = [v for v in values if v is not None]
    if not present:
        return None
    return sum(present) / len(present)


class HourlyForecastLookup:
    granularity: Granularity = "hourly"

    def __init__(self, readings: Iterable[HourlyReading] = ()) -> None:
        self._by_day: Dict[Tuple[str, date], Dict[int, HourlyReading]] = defaultdict(dict)
        for reading in readings:
            key = (reading.location_id, reading.timestamp.date())
            self._by_day[key][reading.timestamp.hour] = reading

    def lookup(self, location: "Location", on_date: date) -> Optional[EnvironmentalSample]:
        hours = self._by_day.get((location.id, on_date))
        if not hours or len(hours) < 24:
            return None

        readings = [hours[h] for h in range(24)]
        irradiance = [max(0.0, r.ghi_w_m2) for r in readings]
        total_irradiance = sum(irradiance)
        sun_hours = total_irradiance / settings.STC_IRRADIANCE_W_M2
        if total_irradiance > 0:
            # Daylight-weighted so night-time lows do not drag panel temperature
            temperature = (
                sum(r.temperature_c * g for r, g in zip(readings, irradiance))
                / total_irradiance
            )
        else:
            temperature = sum(r.temperature_c for r in readings) / 24

        return EnvironmentalSample(
            location_id=location.id,
            sample_date=on_date,
            granularity="hourly",
            sun_hours=sun_hours,
            temperature_c=temperature,
            cloud_cover_percent=_mean([r.cloud_cover_percent for r in readings]),
            wind_speed_ms=_mean([r.wind_speed_ms for r in readings]),
            confidence=min(r.confidence for r in readings),
        )


class DailyForecastLookup:
    granularity: Granularity = "daily"

    def __init__(self, forecasts: Iterable[DailyForecast] = ()) -> None:
        self._by_day: Dict[Tuple[str, date], DailyForecast] = {
            (f.location_id, f.forecast_date): f for f in forecasts
        }

    def lookup(self, location: "Location", on_date: date) -> Optional[EnvironmentalSample]:
        forecast = self._by_day.get((location.id, on_date))
        if forecast is None:
            return None
        return EnvironmentalSample(
            location_id=location.id,
            sample_date=on_date,
            granularity="daily",
            sun_hours=forecast.sun_hours,
            temperature_c=forecast.temperature_c,
            cloud_cover_percent=forecast.cloud_cover_percent,
            wind_speed_ms=forecast.wind_speed_ms,
            confidence=forecast.confidence,
        )


class MonthlyClimatologyLookup:
    """
    Monthly averages keyed uniquely by (location, year, month).

    A date whose year is not on record falls back to the same calendar
    month from the nearest recorded year (earlier year on ties).
    """

    granularity: Granularity = "monthly"

    def __init__(self, records: Iterable[MonthlySolarRecord] = ()) -> None:
        self._records: Dict[Tuple[str, int, int], MonthlySolarRecord] = {}
        self._years: Dict[Tuple[str, int], List[int]] = defaultdict(list)
        for record in records:
            if not 1 <= record.month <= 12:
                raise ValueError(f"Invalid month {record.month} for {record.location_id}")
            key = (record.location_id, record.year, record.month)
            if key in self._records:
                raise ValueError(
                    f"Duplicate monthly solar record for location={key[0]} "
                    f"year={key[1]} month={key[2]}"
                )
            self._records[key] = record
            self._years[(record.location_id, record.month)].append(record.year)

    @classmethod
    def from_dataframe(cls, df: pd.DataFrame) -> "MonthlyClimatologyLookup":
        """
        Build from a `monthly_solar_data`-shaped frame.

        Requires location_id, year, month, sun_hours and temperature columns;
        cloud_cover and wind_speed are optional.
        """
        required = {"location_id", "year", "month", "sun_hours", "temperature"}
        missing = required - set(df.columns)
        if missing:
            raise ValueError(f"DataFrame is missing columns: {sorted(missing)}")

        def _optional(row: pd.Series, column: str) -> Optional[float]:
            if column not in row or pd.isna(row[column]):
                return None
            return float(row[column])

        records = [
            MonthlySolarRecord(
                location_id=str(row["location_id"]),
                year=int(row["year"]),
                month=int(row["month"]),
                sun_hours=float(row["sun_hours"]),
                temperature_c=float(row["temperature"]),
                cloud_cover_percent=_optional(row, "cloud_cover"),
                wind_speed_ms=_optional(row, "wind_speed"),
            )
            for _, row in df.iterrows()
        ]
        return cls(records)

    def lookup_month(
        self, location: "Location", year: int, month: int
    ) -> Optional[MonthlySolarRecord]:
        record = self._records.get((location.id, year, month))
        if record is not None:
            return record
        years = self._years.get((location.id, month))
        if not years:
            return None
        nearest = min(years, key=lambda y: (abs(y - year), y))
        return self._records[(location.id, nearest, month)]

    def lookup(self, location: "Location", on_date: date) -> Optional[EnvironmentalSample]:
        record = self.lookup_month(location, on_date.year, on_date.month)
        if record is None:
            return None
        exact = record.year == on_date.year
        return EnvironmentalSample(
            location_id=location.id,
            sample_date=on_date,
            granularity="monthly",
            sun_hours=record.sun_hours,
            temperature_c=record.temperature_c,
            cloud_cover_percent=record.cloud_cover_percent,
            wind_speed_ms=record.wind_speed_ms,
            confidence=1.0 if exact else 0.5,
        )


def apply_environmental_overrides(
    sample: EnvironmentalSample,
    overrides: Optional["EnvironmentalOverrides"],
    latitude: float,
    seasonal: Optional[EnvironmentalSample] = None,
) -> EnvironmentalSample:
    """
    Layer scenario environmental overrides onto a raw sample.

    `seasonal` is the climatology sample for a forced season; when given it
    replaces the raw weather figures before the multipliers are applied.
    """
    base = sample
    if seasonal is not None:
        base = replace(
            seasonal,
            sample_date=sample.sample_date,
            location_id=sample.location_id,
        )

    season = base.season or season_for(base.sample_date.month, latitude)
    if overrides is None or overrides.is_empty:
        return replace(base, season=season)

    weather = (
        overrides.weather_impact_multiplier
        if overrides.weather_impact_multiplier is not None
        else 1.0
    )
    adjustment = overrides.cloud_cover_adjustment or 0.0
    cloud_factor = max(0.0, 1.0 - settings.CLOUD_SUN_HOURS_SENSITIVITY * adjustment / 100.0)
    temperature_factor = (
        overrides.temperature_impact_multiplier
        if overrides.temperature_impact_multiplier is not None
        else 1.0
    )

    cloud_cover = base.cloud_cover_percent
    if cloud_cover is not None or adjustment:
        cloud_cover = min(100.0, max(0.0, (cloud_cover or 0.0) + adjustment))

    return replace(
        base,
        sun_hours=min(24.0, max(0.0, base.sun_hours * weather * cloud_factor)),
        cloud_cover_percent=cloud_cover,
        season=overrides.forced_season or season,
        weather_impact_factor=base.weather_impact_factor * weather * cloud_factor,
        temperature_impact_factor=base.temperature_impact_factor * temperature_factor,
    )


class EnvironmentalResolver:
    """
    Chain of environmental lookups tried in priority order.

    Each lookup exposes `lookup(location, date) -> Optional[EnvironmentalSample]`.
    """

    def __init__(self, lookups: Sequence[object]) -> None:
        self._lookups = list(lookups)

    @classmethod
    def from_sources(
        cls,
        hourly: Iterable[HourlyReading] = (),
        daily: Iterable[DailyForecast] = (),
        monthly: Iterable[MonthlySolarRecord] = (),
    ) -> "EnvironmentalResolver":
        return cls(
            [
                HourlyForecastLookup(hourly),
                DailyForecastLookup(daily),
                MonthlyClimatologyLookup(monthly),
            ]
        )

    def _climatology(self) -> Optional[MonthlyClimatologyLookup]:
        for lookup in self._lookups:
            if isinstance(lookup, MonthlyClimatologyLookup):
                return lookup
        return None

    def raw(self, location: "Location", on_date: date) -> EnvironmentalSample:
        for lookup in self._lookups:
            sample = lookup.lookup(location, on_date)
            if sample is not None:
                return sample
        raise NoEnvironmentalDataError(
            f"No environmental data for location {location.id} "
            f"({on_date.year}-{on_date.month:02d})",
            date=on_date,
            component="environment",
        )

    def seasonal_sample(
        self, location: "Location", on_date: date, season: str
    ) -> Optional[EnvironmentalSample]:
        climatology = self._climatology()
        if climatology is None:
            return None
        month = representative_month(season, location.latitude)
        seasonal_date = date(on_date.year, month, 1)
        sample = climatology.lookup(location, seasonal_date)
        if sample is None:
            logger.debug(
                "No climatology for forced season %s at %s; relabelling only",
                season,
                location.id,
            )
        return sample

    def resolve(
        self,
        location: "Location",
        on_date: date,
        overrides: Optional["EnvironmentalOverrides"] = None,
    ) -> EnvironmentalSample:
        sample = self.raw(location, on_date)
        if sample.granularity != "hourly":
            logger.debug(
                "Environmental data for %s on %s resolved at %s granularity",
                location.id,
                on_date,
                sample.granularity,
            )

        seasonal = None
        if overrides is not None and overrides.forced_season:
            seasonal = self.seasonal_sample(location, on_date, overrides.forced_season)
        return apply_environmental_overrides(
            sample, overrides, location.latitude, seasonal=seasonal
        )

# solarmine/core/energy_flow.py
"""
Daily energy routing for a solar (+ wind, + storage) mining site.

The day is split into two periods: a solar window of `sun_hours` hours at
uniform irradiance, and the remaining dark hours. Wind output is flat
across the day. Within each period the dispatch is greedy:

1. renewables feed the miners directly (solar first, then wind)
2. surplus charges storage, then exports if grid-connected, else is wasted
3. deficit discharges storage, then imports from the grid when the mining
   mode allows it, else mining is throttled
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from solarmine.config import settings
from solarmine.core.degradation import DegradedSolarArray, DegradedStorage, DegradedWindTurbine
from solarmine.core.environment import EnvironmentalSample
from solarmine.core.equipment_models import InverterSpec
from solarmine.core.errors import ArithmeticDomainError
from solarmine.core.projection_models import EnergyFlowResult
from solarmine.core.system_models import SystemConfiguration


def panel_temperature_c(ambient_c: float) -> float:
    """Cell temperature at full sun using the NOCT model."""
    rise = (
        (settings.NOCT_C - settings.NOCT_AMBIENT_C)
        * settings.STC_IRRADIANCE_W_M2
        / settings.NOCT_IRRADIANCE_W_M2
    )
    return ambient_c + rise


def solar_generation_kwh(
    arrays: Sequence[DegradedSolarArray],
    env: EnvironmentalSample,
    performance_ratio: float,
) -> float:
    """
    DC-side daily output summed over panel line items:

    rated_w * units * PR * (1 + temp_coeff * (T_panel - 25) / 100) * sun_hours / 1000
    """
    sun_hours = min(max(env.sun_hours, 0.0), 24.0)
    if sun_hours == 0:
        return 0.0
    temp_delta = (
        panel_temperature_c(env.temperature_c) - settings.STC_TEMPERATURE_C
    ) * env.temperature_impact_factor

    total = 0.0
    for array in arrays:
        derate = max(0.0, 1.0 + array.spec.temperature_coefficient * temp_delta / 100.0)
        total += array.rated_power_w * array.units * performance_ratio * derate * sun_hours / 1000.0
    return max(0.0, total)


def apply_inverter(
    dc_kwh: float,
    inverter: Optional[InverterSpec],
    quantity: int,
    sun_hours: float,
) -> float:
    """AC energy after conversion losses and clipping at the inverter rating."""
    if inverter is None or dc_kwh <= 0:
        return dc_kwh
    ac_kwh = dc_kwh * inverter.efficiency_percent / 100.0
    ceiling_kwh = inverter.rated_power_w * max(quantity, 0) / 1000.0 * sun_hours
    return max(0.0, min(ac_kwh, ceiling_kwh))


@dataclass
class _StorageBank:
    capacity_kwh: float
    max_charge_kw: float
    max_discharge_kw: float
    round_trip_efficiency: float
    state_of_charge_kwh: float

    @classmethod
    def pool(
        cls,
        units: Sequence[DegradedStorage],
        state_of_charge_kwh: Optional[float],
        round_trip_efficiency: Optional[float],
    ) -> "_StorageBank":
        capacity = sum(u.total_capacity_kwh for u in units)
        if round_trip_efficiency is None:
            if capacity > 0:
                round_trip_efficiency = (
                    sum(u.spec.round_trip_efficiency * u.total_capacity_kwh for u in units)
                    / capacity
                )
            else:
                round_trip_efficiency = 1.0
        if not 0.0 <= round_trip_efficiency <= 1.0:
            raise ArithmeticDomainError(
                f"Round-trip efficiency must be within 0–1, got {round_trip_efficiency}",
                component="energy_flow",
            )
        if state_of_charge_kwh is None:
            state_of_charge_kwh = capacity * settings.INITIAL_STATE_OF_CHARGE_FRACTION
        return cls(
            capacity_kwh=capacity,
            max_charge_kw=sum(u.max_charge_kw for u in units),
            max_discharge_kw=sum(u.max_discharge_kw for u in units),
            round_trip_efficiency=round_trip_efficiency,
            state_of_charge_kwh=min(max(state_of_charge_kwh, 0.0), capacity),
        )

    def charge(self, offered_kwh: float, hours: float) -> float:
        """Accept up to `offered_kwh`; returns energy drawn from the source."""
        if offered_kwh <= 0 or self.round_trip_efficiency <= 0:
            return 0.0
        headroom = self.capacity_kwh - self.state_of_charge_kwh
        limit = min(self.max_charge_kw * hours, headroom / self.round_trip_efficiency)
        drawn = max(0.0, min(offered_kwh, limit))
        self.state_of_charge_kwh = min(
            self.capacity_kwh,
            self.state_of_charge_kwh + drawn * self.round_trip_efficiency,
        )
        return drawn

    def discharge(self, requested_kwh: float, hours: float) -> float:
        if requested_kwh <= 0:
            return 0.0
        delivered = max(
            0.0,
            min(requested_kwh, self.max_discharge_kw * hours, self.state_of_charge_kwh),
        )
        self.state_of_charge_kwh -= delivered
        return delivered


@dataclass
class _PeriodFlow:
    solar_direct: float = 0.0
    wind_direct: float = 0.0
    solar_to_storage: float = 0.0
    wind_to_storage: float = 0.0
    solar_exported: float = 0.0
    wind_exported: float = 0.0
    solar_wasted: float = 0.0
    discharge: float = 0.0
    grid_import: float = 0.0
    unmet: float = 0.0


def _dispatch_period(
    period_hours: float,
    mining_hours: float,
    mining_power_kw: float,
    solar_kwh: float,
    wind_kw: float,
    bank: _StorageBank,
    config: SystemConfiguration,
) -> _PeriodFlow:
    flow = _PeriodFlow()
    if period_hours <= 0:
        return flow

    solar_kw = solar_kwh / period_hours
    wind_kwh = wind_kw * period_hours

    solar_rate = min(solar_kw, mining_power_kw)
    wind_rate = min(wind_kw, mining_power_kw - solar_rate)
    flow.solar_direct = solar_rate * mining_hours
    flow.wind_direct = wind_rate * mining_hours
    deficit = (mining_power_kw - solar_rate - wind_rate) * mining_hours

    surplus_solar = max(0.0, solar_kwh - flow.solar_direct)
    surplus_wind = max(0.0, wind_kwh - flow.wind_direct)

    flow.solar_to_storage = bank.charge(surplus_solar, period_hours)
    surplus_solar -= flow.solar_to_storage
    flow.wind_to_storage = bank.charge(surplus_wind, period_hours)
    surplus_wind -= flow.wind_to_storage

    if config.is_grid_connected:
        flow.solar_exported = surplus_solar
        flow.wind_exported = surplus_wind
    else:
        flow.solar_wasted = surplus_solar

    flow.discharge = bank.discharge(deficit, period_hours)
    deficit -= flow.discharge

    if deficit > 0 and config.can_import_from_grid:
        ceiling = (
            config.max_grid_power_kw * mining_hours
            if config.max_grid_power_kw is not None
            else deficit
        )
        flow.grid_import = min(deficit, ceiling)
        deficit -= flow.grid_import

    flow.unmet = max(0.0, deficit)
    return flow


def simulate(
    config: SystemConfiguration,
    solar_arrays: Sequence[DegradedSolarArray],
    storage_units: Sequence[DegradedStorage],
    mining_power_kw: float,
    env: EnvironmentalSample,
    wind_turbines: Sequence[DegradedWindTurbine] = (),
    inverter: Optional[InverterSpec] = None,
    inverter_quantity: int = 1,
    state_of_charge_kwh: Optional[float] = None,
    performance_ratio: Optional[float] = None,
    round_trip_efficiency: Optional[float] = None,
) -> EnergyFlowResult:
    """
    Route one day's renewable output to the miners, storage and grid.

    `state_of_charge_kwh` is the opening storage level carried over from the
    previous day (None starts at INITIAL_STATE_OF_CHARGE_FRACTION).
    """
    if mining_power_kw < 0:
        raise ArithmeticDomainError(
            f"Mining power draw must be >= 0, got {mining_power_kw}",
            component="energy_flow",
        )
    pr = performance_ratio if performance_ratio is not None else config.solar_system_efficiency

    sun_hours = min(max(env.sun_hours, 0.0), 24.0)
    dark_hours = 24.0 - sun_hours

    solar_kwh = apply_inverter(
        solar_generation_kwh(solar_arrays, env, pr), inverter, inverter_quantity, sun_hours
    )
    wind_kw = sum(t.power_kw(env.wind_speed_ms) for t in wind_turbines)
    target_hours = config.target_mining_hours
    window_mining_hours = min(target_hours, sun_hours)
    dark_mining_hours = min(target_hours - window_mining_hours, dark_hours)

    bank = _StorageBank.pool(storage_units, state_of_charge_kwh, round_trip_efficiency)
    day = _dispatch_period(
        sun_hours, window_mining_hours, mining_power_kw, solar_kwh, wind_kw, bank, config
    )
    night = _dispatch_period(
        dark_hours, dark_mining_hours, mining_power_kw, 0.0, wind_kw, bank, config
    )

    # Curtailed wind is never generated
    wind_used = sum(
        p.wind_direct + p.wind_to_storage + p.wind_exported for p in (day, night)
    )
    solar_direct = day.solar_direct
    discharge = day.discharge + night.discharge
    grid_import = day.grid_import + night.grid_import
    consumption = (
        day.solar_direct + day.wind_direct + night.wind_direct + discharge + grid_import
    )

    if mining_power_kw > 0:
        effective_hours = consumption / mining_power_kw
        grid_hours = grid_import / mining_power_kw
    else:
        effective_hours = 0.0
        grid_hours = 0.0

    nameplate_kw = sum(a.total_rated_kw for a in solar_arrays)
    capacity_factor = solar_kwh / (nameplate_kw * 24.0) if nameplate_kw > 0 else 0.0

    return EnergyFlowResult(
        solar_generation_kwh=solar_kwh,
        wind_generation_kwh=wind_used,
        mining_consumption_kwh=consumption,
        solar_direct_to_mining_kwh=solar_direct,
        solar_to_storage_kwh=day.solar_to_storage,
        solar_exported_kwh=day.solar_exported,
        solar_wasted_kwh=day.solar_wasted,
        storage_charge_kwh=day.solar_to_storage + day.wind_to_storage + night.wind_to_storage,
        storage_discharge_kwh=discharge,
        storage_state_of_charge_kwh=bank.state_of_charge_kwh,
        grid_import_kwh=grid_import,
        grid_export_kwh=day.solar_exported + day.wind_exported + night.wind_exported,
        effective_mining_hours=effective_hours,
        mining_hours_solar_only=effective_hours - grid_hours,
        mining_hours_grid_assisted=grid_hours,
        solar_availability_hours=sun_hours if solar_kwh > 0 else 0.0,
        mining_availability_percent=effective_hours / 24.0 * 100.0,
        solar_capacity_factor=capacity_factor,
        unmet_demand_kwh=day.unmet + night.unmet,
    )

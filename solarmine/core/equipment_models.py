# solarmine/core/equipment_models.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple, Union

import numpy as np


@dataclass(frozen=True)
class MinerSpec:
    """
    Represents a single ASIC miner model in the equipment catalog.

    Annual rates are fractions (0.05 = 5%/year). The engine never mutates
    catalog entries; ageing produces a separate DegradedMiner.
    """

    id: str
    name: str
    hashrate_th: float  # terahash per second
    power_w: float  # watts at stock settings
    manufacturer: Optional[str] = None
    hashrate_degradation_annual: float = 0.05
    efficiency_degradation_annual: float = 0.03
    failure_rate_annual: float = 0.10
    operating_temp_min_c: Optional[float] = None
    operating_temp_max_c: Optional[float] = None
    price_usd: float = 0.0
    expected_lifespan_years: float = 5.0
    depreciation_rate_annual: float = 0.25  # declining balance, resale value

    @property
    def efficiency_j_per_th(self) -> float:
        if self.hashrate_th <= 0:
            return 0.0
        return self.power_w / self.hashrate_th

    def operates_at(self, ambient_temp_c: float) -> bool:
        if self.operating_temp_min_c is not None and ambient_temp_c < self.operating_temp_min_c:
            return False
        if self.operating_temp_max_c is not None and ambient_temp_c > self.operating_temp_max_c:
            return False
        return True


@dataclass(frozen=True)
class SolarPanelSpec:
    id: str
    name: str
    rated_power_w: float
    efficiency_percent: float
    temperature_coefficient: float  # %/°C of rated power, typically negative
    manufacturer: Optional[str] = None
    degradation_rate_annual: float = 0.005
    failure_rate_annual: float = 0.0
    cost_per_watt: float = 0.0
    expected_lifespan_years: float = 25.0


@dataclass(frozen=True)
class StorageSpec:
    id: str
    name: str
    capacity_kwh: float
    usable_capacity_kwh: float
    max_charge_rate_kw: float
    max_discharge_rate_kw: float
    round_trip_efficiency: float  # 0–1
    manufacturer: Optional[str] = None
    cycle_life: Optional[int] = None
    calendar_degradation_annual: float = 0.02
    failure_rate_annual: float = 0.0
    cost_per_kwh: float = 0.0
    expected_lifespan_years: float = 10.0


@dataclass(frozen=True)
class InverterSpec:
    id: str
    name: str
    rated_power_w: float
    efficiency_percent: float
    manufacturer: Optional[str] = None
    cost_usd: float = 0.0
    expected_lifespan_years: float = 15.0


@dataclass(frozen=True)
class WindTurbineSpec:
    """
    Small wind turbine with a tabulated power curve.

    power_curve holds (wind speed m/s, output W) points in ascending speed
    order; output between points is linearly interpolated.
    """

    id: str
    name: str
    rated_power_w: float
    power_curve: Tuple[Tuple[float, float], ...]
    cut_in_speed_ms: float = 3.0
    cut_out_speed_ms: float = 25.0
    manufacturer: Optional[str] = None
    degradation_rate_annual: float = 0.0
    failure_rate_annual: float = 0.0
    price_usd: float = 0.0
    maintenance_cost_annual_usd: float = 0.0
    expected_lifespan_years: float = 20.0

    def power_at(self, wind_speed_ms: float) -> float:
        """Output in watts at a steady wind speed (0 outside cut-in/cut-out)."""
        if not self.power_curve:
            return 0.0
        if wind_speed_ms < self.cut_in_speed_ms or wind_speed_ms > self.cut_out_speed_ms:
            return 0.0
        speeds = np.array([p[0] for p in self.power_curve], dtype=float)
        watts = np.array([p[1] for p in self.power_curve], dtype=float)
        power = float(np.interp(wind_speed_ms, speeds, watts, left=0.0, right=watts[-1]))
        return min(max(power, 0.0), self.rated_power_w)


EquipmentSpec = Union[MinerSpec, SolarPanelSpec, StorageSpec, InverterSpec, WindTurbineSpec]

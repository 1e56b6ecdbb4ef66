# solarmine/core/degradation.py
"""
Equipment ageing

Every capability declines with compound annual rates:

    value(t) = value(0) * (1 - annual_rate * multiplier) ** t

Annual failure rates are applied as an expected value, shrinking the
effective unit count by (1 - failure_rate) ** t. Nothing is ever driven
below zero.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Sequence, Tuple

from solarmine.config import settings
from solarmine.core.equipment_models import (
    EquipmentSpec,
    InverterSpec,
    MinerSpec,
    SolarPanelSpec,
    StorageSpec,
    WindTurbineSpec,
)
from solarmine.core.errors import ArithmeticDomainError, EquipmentNotFoundError
from solarmine.core.system_models import EquipmentLineItem, SystemConfiguration


def decline_factor(annual_rate: float, multiplier: float, age_years: float) -> float:
    if annual_rate < 0 or multiplier < 0:
        raise ArithmeticDomainError(
            f"Degradation rate and multiplier must be >= 0 "
            f"(rate={annual_rate}, multiplier={multiplier})",
            component="degradation",
        )
    if age_years <= 0:
        return 1.0
    base = 1.0 - annual_rate * multiplier
    if base <= 0:
        return 0.0
    return base**age_years


def survival_factor(failure_rate_annual: float, multiplier: float, age_years: float) -> float:
    """Expected fraction of units still running after `age_years`."""
    return decline_factor(failure_rate_annual, multiplier, age_years)


def equipment_age_years(
    item: EquipmentLineItem,
    on_date: date,
    default_start: date,
) -> float:
    installed = item.installation_date or default_start
    return max(0, (on_date - installed).days) / settings.DAYS_PER_YEAR


def _check_quantity(quantity: float, spec: EquipmentSpec) -> None:
    if quantity < 0:
        raise ArithmeticDomainError(
            f"Negative quantity {quantity} for {spec.id}", component="degradation"
        )


@dataclass(frozen=True)
class DegradedMiner:
    spec: MinerSpec
    hashrate_th: float  # per unit
    power_w: float  # per unit
    units: float  # expected operating units

    @property
    def total_hashrate_th(self) -> float:
        return self.hashrate_th * self.units

    @property
    def total_power_kw(self) -> float:
        return self.power_w * self.units / 1000.0


@dataclass(frozen=True)
class DegradedSolarArray:
    spec: SolarPanelSpec
    rated_power_w: float  # per panel
    units: float

    @property
    def total_rated_kw(self) -> float:
        return self.rated_power_w * self.units / 1000.0


@dataclass(frozen=True)
class DegradedStorage:
    spec: StorageSpec
    usable_capacity_kwh: float  # per unit
    units: float

    @property
    def total_capacity_kwh(self) -> float:
        return self.usable_capacity_kwh * self.units

    @property
    def max_charge_kw(self) -> float:
        return self.spec.max_charge_rate_kw * self.units

    @property
    def max_discharge_kw(self) -> float:
        return self.spec.max_discharge_rate_kw * self.units


@dataclass(frozen=True)
class DegradedWindTurbine:
    spec: WindTurbineSpec
    output_factor: float
    units: float

    def power_kw(self, wind_speed_ms: Optional[float]) -> float:
        if wind_speed_ms is None:
            return 0.0
        return self.spec.power_at(wind_speed_ms) * self.output_factor * self.units / 1000.0


def degrade(
    spec: EquipmentSpec,
    age_years: float,
    multiplier: float = 1.0,
    quantity: float = 1,
    failure_multiplier: float = 1.0,
    efficiency_multiplier: float = 1.0,
    power_limit_w: Optional[float] = None,
):
    """
    Age one catalog entry by `age_years`.

    Returns the matching Degraded* record; the catalog spec is untouched.
    """
    _check_quantity(quantity, spec)

    if isinstance(spec, MinerSpec):
        fh = decline_factor(spec.hashrate_degradation_annual, multiplier, age_years)
        fe = decline_factor(spec.efficiency_degradation_annual, multiplier, age_years)
        if fe <= 0 or fh <= 0:
            hashrate, power = 0.0, 0.0
        else:
            # J/TH rises as efficiency declines: power = hashrate * j0 / fe
            hashrate = spec.hashrate_th * fh
            power = spec.power_w * fh / fe
            hashrate *= efficiency_multiplier
            if power_limit_w is not None and power > power_limit_w:
                scale = max(power_limit_w, 0.0) / power
                hashrate *= scale
                power = max(power_limit_w, 0.0)
        units = quantity * survival_factor(spec.failure_rate_annual, failure_multiplier, age_years)
        return DegradedMiner(spec=spec, hashrate_th=hashrate, power_w=power, units=units)

    if isinstance(spec, SolarPanelSpec):
        if spec.rated_power_w < 0:
            raise ArithmeticDomainError(
                f"Negative rated power for {spec.id}", component="degradation"
            )
        factor = decline_factor(spec.degradation_rate_annual, multiplier, age_years)
        units = quantity * survival_factor(spec.failure_rate_annual, failure_multiplier, age_years)
        return DegradedSolarArray(
            spec=spec, rated_power_w=spec.rated_power_w * factor, units=units
        )

    if isinstance(spec, StorageSpec):
        if spec.usable_capacity_kwh < 0 or spec.capacity_kwh < 0:
            raise ArithmeticDomainError(
                f"Negative storage capacity for {spec.id}", component="degradation"
            )
        factor = decline_factor(spec.calendar_degradation_annual, multiplier, age_years)
        units = quantity * survival_factor(spec.failure_rate_annual, failure_multiplier, age_years)
        return DegradedStorage(
            spec=spec, usable_capacity_kwh=spec.usable_capacity_kwh * factor, units=units
        )

    if isinstance(spec, WindTurbineSpec):
        factor = decline_factor(spec.degradation_rate_annual, multiplier, age_years)
        units = quantity * survival_factor(spec.failure_rate_annual, failure_multiplier, age_years)
        return DegradedWindTurbine(spec=spec, output_factor=factor, units=units)

    if isinstance(spec, InverterSpec):
        return spec

    raise TypeError(f"Unsupported equipment spec: {type(spec).__name__}")


@dataclass(frozen=True)
class DegradedSystem:
    miners: Tuple[DegradedMiner, ...]
    solar_arrays: Tuple[DegradedSolarArray, ...]
    storage_units: Tuple[DegradedStorage, ...]
    wind_turbines: Tuple[DegradedWindTurbine, ...]
    inverter: Optional[InverterSpec] = None
    inverter_quantity: int = 1

    def operable_miners(self, ambient_temp_c: float) -> List[DegradedMiner]:
        """Miners whose operating limits admit the day's ambient temperature."""
        return [
            m
            if m.spec.operates_at(ambient_temp_c)
            else DegradedMiner(spec=m.spec, hashrate_th=m.hashrate_th, power_w=m.power_w, units=0.0)
            for m in self.miners
        ]

    @property
    def nameplate_solar_kw(self) -> float:
        return sum(a.spec.rated_power_w * a.units for a in self.solar_arrays) / 1000.0


def _degrade_items(
    items: Sequence[EquipmentLineItem],
    expected: type,
    catalog,
    on_date: date,
    default_start: date,
    degradation_multiplier: float,
    failure_multiplier: float,
    efficiency_multiplier: float = 1.0,
) -> list:
    degraded = []
    for item in items:
        spec = catalog.get(item.equipment_id)
        if not isinstance(spec, expected):
            raise EquipmentNotFoundError(
                f"Equipment {item.equipment_id} is not a {expected.__name__}",
                date=on_date,
                component="degradation",
            )
        degraded.append(
            degrade(
                spec,
                equipment_age_years(item, on_date, default_start),
                multiplier=degradation_multiplier,
                quantity=item.quantity if item.is_installed(on_date, default_start) else 0,
                failure_multiplier=failure_multiplier,
                efficiency_multiplier=efficiency_multiplier,
                power_limit_w=item.power_limit_w,
            )
        )
    return degraded


def degrade_system(
    config: SystemConfiguration,
    catalog,
    on_date: date,
    projection_start: date,
    degradation_multiplier: float = 1.0,
    failure_multiplier: float = 1.0,
    efficiency_multiplier: float = 1.0,
) -> DegradedSystem:
    """
    Age every line item of a configuration to `on_date`.

    Items without an installation date are aged from the configuration's
    commissioning date, else from the projection start. Items installed after
    `on_date` are not installed yet and contribute no units.
    """
    default_start = config.commissioning_date or projection_start
    args = (catalog, on_date, default_start, degradation_multiplier, failure_multiplier)

    inverter = None
    if config.inverter_id:
        inverter = catalog.get(config.inverter_id)
        if not isinstance(inverter, InverterSpec):
            raise EquipmentNotFoundError(
                f"Equipment {config.inverter_id} is not an InverterSpec",
                date=on_date,
                component="degradation",
            )
    return DegradedSystem(
        miners=tuple(_degrade_items(config.miners, MinerSpec, *args, efficiency_multiplier)),
        solar_arrays=tuple(_degrade_items(config.solar_panels, SolarPanelSpec, *args)),
        storage_units=tuple(_degrade_items(config.storage_systems, StorageSpec, *args)),
        wind_turbines=tuple(_degrade_items(config.wind_turbines, WindTurbineSpec, *args)),
        inverter=inverter,
        inverter_quantity=config.inverter_quantity,
    )

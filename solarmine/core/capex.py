# solarmine/core/capex.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterator, Optional, Tuple

from solarmine.config import settings
from solarmine.core.degradation import equipment_age_years
from solarmine.core.equipment_models import (
    EquipmentSpec,
    InverterSpec,
    MinerSpec,
    SolarPanelSpec,
    StorageSpec,
    WindTurbineSpec,
)
from solarmine.core.system_models import EquipmentLineItem, SystemConfiguration


@dataclass
class InvestmentBreakdown:
    """
    Up-front investment for a configuration in USD.

    Installation (racking, cabling, labour, commissioning) is charged as
    INSTALLATION_COST_FRACTION of the equipment cost.
    """

    miners_usd: float
    solar_usd: float
    storage_usd: float
    wind_usd: float
    inverter_usd: float
    installation_usd: float

    @property
    def equipment_usd(self) -> float:
        return (
            self.miners_usd
            + self.solar_usd
            + self.storage_usd
            + self.wind_usd
            + self.inverter_usd
        )

    @property
    def total_usd(self) -> float:
        return self.equipment_usd + self.installation_usd


def line_item_cost_usd(item: EquipmentLineItem, spec: EquipmentSpec) -> float:
    """Equipment cost for one line item, before installation."""
    if item.purchase_price_usd is not None:
        return max(0.0, item.purchase_price_usd)
    quantity = max(item.quantity, 0)
    if isinstance(spec, MinerSpec):
        return spec.price_usd * quantity
    if isinstance(spec, SolarPanelSpec):
        return spec.cost_per_watt * spec.rated_power_w * quantity
    if isinstance(spec, StorageSpec):
        return spec.cost_per_kwh * spec.capacity_kwh * quantity
    if isinstance(spec, WindTurbineSpec):
        return spec.price_usd * quantity
    if isinstance(spec, InverterSpec):
        return spec.cost_usd * quantity
    return 0.0


def _inverter_item(config: SystemConfiguration) -> Optional[EquipmentLineItem]:
    if not config.inverter_id:
        return None
    return EquipmentLineItem(
        equipment_id=config.inverter_id, quantity=config.inverter_quantity
    )


def iter_capital_items(
    config: SystemConfiguration, catalog
) -> Iterator[Tuple[EquipmentLineItem, EquipmentSpec]]:
    for items in (
        config.miners,
        config.solar_panels,
        config.storage_systems,
        config.wind_turbines,
    ):
        for item in items:
            yield item, catalog.get(item.equipment_id)
    inverter = _inverter_item(config)
    if inverter is not None:
        yield inverter, catalog.get(inverter.equipment_id)


def compute_investment(config: SystemConfiguration, catalog) -> InvestmentBreakdown:
    totals = {
        MinerSpec: 0.0,
        SolarPanelSpec: 0.0,
        StorageSpec: 0.0,
        WindTurbineSpec: 0.0,
        InverterSpec: 0.0,
    }
    for item, spec in iter_capital_items(config, catalog):
        totals[type(spec)] += line_item_cost_usd(item, spec)

    equipment = sum(totals.values())
    return InvestmentBreakdown(
        miners_usd=totals[MinerSpec],
        solar_usd=totals[SolarPanelSpec],
        storage_usd=totals[StorageSpec],
        wind_usd=totals[WindTurbineSpec],
        inverter_usd=totals[InverterSpec],
        installation_usd=equipment * settings.INSTALLATION_COST_FRACTION,
    )


def _installed_cost(item: EquipmentLineItem, spec: EquipmentSpec) -> float:
    return line_item_cost_usd(item, spec) * (1.0 + settings.INSTALLATION_COST_FRACTION)


def daily_depreciation_usd(
    config: SystemConfiguration,
    catalog,
    on_date: date,
    projection_start: date,
) -> float:
    """
    Straight-line depreciation for one day.

    Each line item (installation share included) is written off evenly over
    its expected lifespan from installation; nothing is charged before the
    item is installed or once it is fully depreciated.
    """
    default_start = config.commissioning_date or projection_start
    total = 0.0
    for item, spec in iter_capital_items(config, catalog):
        lifespan = spec.expected_lifespan_years
        if lifespan <= 0:
            continue
        if not item.is_installed(on_date, default_start):
            continue
        if equipment_age_years(item, on_date, default_start) >= lifespan:
            continue
        total += _installed_cost(item, spec) / (lifespan * settings.DAYS_PER_YEAR)
    return total


def resale_value_usd(
    config: SystemConfiguration,
    catalog,
    on_date: date,
    projection_start: date,
) -> float:
    """
    Estimated resale value of the installed equipment on `on_date`.

    Miners lose value on a declining balance at depreciation_rate_annual;
    everything else is valued at straight-line book value.
    """
    default_start = config.commissioning_date or projection_start
    total = 0.0
    for item, spec in iter_capital_items(config, catalog):
        cost = line_item_cost_usd(item, spec)
        age = equipment_age_years(item, on_date, default_start)
        if isinstance(spec, MinerSpec):
            rate = min(max(spec.depreciation_rate_annual, 0.0), 1.0)
            total += cost * (1.0 - rate) ** age
        elif spec.expected_lifespan_years > 0:
            total += cost * max(0.0, 1.0 - age / spec.expected_lifespan_years)
    return total

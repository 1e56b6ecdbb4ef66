# solarmine/core/cost_model.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from solarmine.config import settings
from solarmine.core.capex import daily_depreciation_usd
from solarmine.core.equipment_models import SolarPanelSpec, StorageSpec, WindTurbineSpec
from solarmine.core.system_models import SystemConfiguration


@dataclass
class CostModel:
    """Non-electricity operating costs for one day, in USD."""

    maintenance_usd: float
    insurance_usd: float
    property_tax_usd: float
    depreciation_usd: float

    @property
    def total_usd(self) -> float:
        return (
            self.maintenance_usd
            + self.insurance_usd
            + self.property_tax_usd
            + self.depreciation_usd
        )


def annual_maintenance_usd(config: SystemConfiguration, catalog) -> float:
    """
    Annual O&M budget before the scenario multiplier.

    Miners pay a flat per-unit maintenance and firmware licence; solar and
    storage scale with installed kW / kWh; turbines carry their own figure.
    """
    miner_count = sum(max(item.quantity, 0) for item in config.miners)
    total = miner_count * (
        settings.MAINTENANCE_COST_PER_MINER_PA_USD
        + settings.FIRMWARE_LICENSE_PER_MINER_PA_USD
    )

    for item in config.solar_panels:
        spec = catalog.get(item.equipment_id)
        if isinstance(spec, SolarPanelSpec):
            kw = spec.rated_power_w * max(item.quantity, 0) / 1000.0
            total += kw * settings.SOLAR_OM_COST_PER_KW_PA_USD

    for item in config.storage_systems:
        spec = catalog.get(item.equipment_id)
        if isinstance(spec, StorageSpec):
            kwh = spec.capacity_kwh * max(item.quantity, 0)
            total += kwh * settings.STORAGE_OM_COST_PER_KWH_PA_USD

    for item in config.wind_turbines:
        spec = catalog.get(item.equipment_id)
        if isinstance(spec, WindTurbineSpec):
            total += spec.maintenance_cost_annual_usd * max(item.quantity, 0)

    return total


def daily_costs(
    config: SystemConfiguration,
    catalog,
    total_investment_usd: float,
    on_date: date,
    projection_start: date,
    maintenance_cost_multiplier: float = 1.0,
    insurance_rate: float = settings.DEFAULT_INSURANCE_RATE_ANNUAL,
    property_tax_rate: float = settings.DEFAULT_PROPERTY_TAX_RATE_ANNUAL,
) -> CostModel:
    days = settings.DAYS_PER_YEAR
    return CostModel(
        maintenance_usd=annual_maintenance_usd(config, catalog)
        * maintenance_cost_multiplier
        / days,
        insurance_usd=total_investment_usd * insurance_rate / days,
        property_tax_usd=total_investment_usd * property_tax_rate / days,
        depreciation_usd=daily_depreciation_usd(config, catalog, on_date, projection_start),
    )

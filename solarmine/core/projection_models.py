# solarmine/core/projection_models.py
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional


@dataclass
class EnergyFlowResult:
    """One day of energy routing between sources, storage, grid and miners."""

    solar_generation_kwh: float
    wind_generation_kwh: float
    mining_consumption_kwh: float
    solar_direct_to_mining_kwh: float
    solar_to_storage_kwh: float
    solar_exported_kwh: float
    solar_wasted_kwh: float
    storage_charge_kwh: float  # energy drawn from sources into storage
    storage_discharge_kwh: float
    storage_state_of_charge_kwh: float  # closing
    grid_import_kwh: float
    grid_export_kwh: float
    effective_mining_hours: float
    mining_hours_solar_only: float
    mining_hours_grid_assisted: float
    solar_availability_hours: float
    mining_availability_percent: float
    solar_capacity_factor: float
    unmet_demand_kwh: float = 0.0

    @property
    def total_generation_kwh(self) -> float:
        return self.solar_generation_kwh + self.wind_generation_kwh


@dataclass
class MiningResult:
    total_hashrate_th: float
    effective_hashrate_th: float
    btc_mined: float
    mining_revenue_usd: float
    btc_price_usd: float
    network_difficulty: float
    network_hashrate_hs: float


@dataclass
class ProjectionResult:
    """
    One row per (system configuration, scenario, date).

    Mirrors the `projection_results` table. Rollup rows reuse the same
    shape, keyed by the first day of their period.
    """

    system_config_id: str
    scenario_id: str
    projection_date: date
    granularity: str = "daily"

    # Energy
    total_generation_kwh: float = 0.0
    solar_generation_kwh: float = 0.0
    wind_generation_kwh: float = 0.0
    mining_consumption_kwh: float = 0.0
    grid_import_kwh: float = 0.0
    grid_export_kwh: float = 0.0
    storage_charge_kwh: float = 0.0
    storage_discharge_kwh: float = 0.0
    storage_state_of_charge_kwh: float = 0.0
    solar_direct_to_mining_kwh: float = 0.0
    solar_to_storage_kwh: float = 0.0
    solar_exported_kwh: float = 0.0
    solar_wasted_kwh: float = 0.0

    # Hours
    mining_hours_solar_only: float = 0.0
    mining_hours_grid_assisted: float = 0.0
    effective_mining_hours: float = 0.0
    solar_availability_hours: float = 0.0
    mining_availability_percent: float = 0.0

    # Environment
    season: Optional[str] = None
    cloud_cover_avg_percent: Optional[float] = None
    weather_impact_factor: float = 1.0
    environmental_granularity: Optional[str] = None

    # Mining
    total_hashrate_th: float = 0.0
    effective_hashrate_th: float = 0.0
    btc_mined: float = 0.0
    btc_price_usd: float = 0.0
    network_difficulty: float = 0.0

    # Economics (USD)
    mining_revenue_usd: float = 0.0
    electricity_cost_usd: float = 0.0
    maintenance_cost_usd: float = 0.0
    insurance_cost_usd: float = 0.0
    property_tax_usd: float = 0.0
    equipment_depreciation_usd: float = 0.0
    total_operating_cost_usd: float = 0.0
    net_profit_usd: float = 0.0
    cash_flow_usd: float = 0.0
    cumulative_profit_usd: float = 0.0
    cumulative_cash_flow_usd: float = 0.0
    monthly_cash_flow_usd: float = 0.0  # calendar month to date
    annual_cash_flow_usd: float = 0.0  # calendar year to date

    # Ratios
    solar_capacity_factor: float = 0.0
    gross_profit_margin_percent: float = 0.0
    net_profit_margin_percent: float = 0.0
    roi_percent: float = 0.0
    break_even_btc_price_usd: Optional[float] = None
    break_even_electricity_rate_usd_kwh: Optional[float] = None

    # Investment
    total_investment_usd: float = 0.0
    equipment_resale_value_usd: float = 0.0
    net_equipment_value_usd: float = 0.0

    @property
    def key(self) -> tuple:
        return (self.system_config_id, self.scenario_id, self.projection_date)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# Aggregation rules used when rolling daily rows up to weeks/months/years.
SUM_FIELDS = (
    "total_generation_kwh",
    "solar_generation_kwh",
    "wind_generation_kwh",
    "mining_consumption_kwh",
    "grid_import_kwh",
    "grid_export_kwh",
    "storage_charge_kwh",
    "storage_discharge_kwh",
    "solar_direct_to_mining_kwh",
    "solar_to_storage_kwh",
    "solar_exported_kwh",
    "solar_wasted_kwh",
    "mining_hours_solar_only",
    "mining_hours_grid_assisted",
    "effective_mining_hours",
    "solar_availability_hours",
    "btc_mined",
    "mining_revenue_usd",
    "electricity_cost_usd",
    "maintenance_cost_usd",
    "insurance_cost_usd",
    "property_tax_usd",
    "equipment_depreciation_usd",
    "total_operating_cost_usd",
    "net_profit_usd",
    "cash_flow_usd",
)
LAST_FIELDS = (
    "storage_state_of_charge_kwh",
    "cumulative_profit_usd",
    "cumulative_cash_flow_usd",
    "monthly_cash_flow_usd",
    "annual_cash_flow_usd",
    "roi_percent",
    "total_investment_usd",
    "equipment_resale_value_usd",
    "net_equipment_value_usd",
)
MEAN_FIELDS = (
    "mining_availability_percent",
    "cloud_cover_avg_percent",
    "weather_impact_factor",
    "total_hashrate_th",
    "effective_hashrate_th",
    "btc_price_usd",
    "network_difficulty",
    "solar_capacity_factor",
    "break_even_btc_price_usd",
    "break_even_electricity_rate_usd_kwh",
)
FIRST_FIELDS = (
    "system_config_id",
    "scenario_id",
    "season",
    "environmental_granularity",
)


@dataclass
class FinancialSummary:
    """
    Headline metrics for one projection run.

    Optional fields are None when the metric is undefined (e.g. payback not
    reached within the horizon, IRR without a sign change); `notes` says why.
    """

    days: int
    total_investment_usd: float
    total_revenue_usd: float
    total_operating_cost_usd: float
    total_profit_usd: float
    total_cash_flow_usd: float
    total_btc_mined: float
    total_energy_generated_kwh: float
    total_grid_import_kwh: float
    total_grid_export_kwh: float
    average_capacity_factor: float
    roi_percent: Optional[float]
    adjusted_roi_percent: Optional[float]
    payback_period_months: Optional[float]
    discounted_payback_period_months: Optional[float]
    npv_usd: float
    irr_percent: Optional[float]
    profitability_index: Optional[float]
    break_even_btc_price_usd: Optional[float]
    break_even_electricity_rate_usd_kwh: Optional[float]
    equipment_resale_value_usd: float
    notes: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

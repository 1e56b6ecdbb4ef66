from dataclasses import replace
from datetime import date

import pytest

from solarmine.config import settings
from solarmine.core.capex import compute_investment, daily_depreciation_usd, resale_value_usd
from solarmine.core.cost_model import annual_maintenance_usd, daily_costs
from solarmine.core.system_models import EquipmentLineItem

START = date(2025, 1, 1)


def test_investment_includes_installation(solar_config, catalog):
    investment = compute_investment(solar_config, catalog)
    assert investment.miners_usd == pytest.approx(2000.0)
    assert investment.solar_usd == pytest.approx(10 * 550 * 0.30)
    assert investment.storage_usd == pytest.approx(10.0 * 400.0)
    assert investment.installation_usd == pytest.approx(
        investment.equipment_usd * settings.INSTALLATION_COST_FRACTION
    )
    assert investment.total_usd == pytest.approx(investment.equipment_usd * 1.10)


def test_purchase_price_overrides_catalogue_price(grid_config, catalog):
    config = replace(
        grid_config,
        miners=(EquipmentLineItem(equipment_id="test_miner", quantity=3, purchase_price_usd=4500.0),),
    )
    assert compute_investment(config, catalog).miners_usd == pytest.approx(4500.0)


def test_inverter_is_a_capital_item(grid_config, catalog):
    config = replace(grid_config, inverter_id="inverter_002", inverter_quantity=2)
    assert compute_investment(config, catalog).inverter_usd == pytest.approx(4200.0)


def test_straight_line_depreciation_stops_after_lifespan(grid_config, catalog):
    daily = daily_depreciation_usd(grid_config, catalog, START, START)
    assert daily == pytest.approx(2200.0 / (5 * settings.DAYS_PER_YEAR))
    assert daily_depreciation_usd(grid_config, catalog, date(2030, 6, 1), START) == 0.0


def test_miner_resale_declines_on_a_balance(grid_config, catalog):
    assert resale_value_usd(grid_config, catalog, START, START) == pytest.approx(2000.0)
    one_year = date(2026, 1, 1)
    years = 365 / settings.DAYS_PER_YEAR
    assert resale_value_usd(grid_config, catalog, one_year, START) == pytest.approx(
        2000.0 * 0.75**years
    )


def test_maintenance_budget(solar_config, catalog):
    expected = (
        settings.MAINTENANCE_COST_PER_MINER_PA_USD
        + settings.FIRMWARE_LICENSE_PER_MINER_PA_USD
        + 5.5 * settings.SOLAR_OM_COST_PER_KW_PA_USD
        + 10.0 * settings.STORAGE_OM_COST_PER_KWH_PA_USD
    )
    assert annual_maintenance_usd(solar_config, catalog) == pytest.approx(expected)


def test_daily_costs_use_annual_rates(grid_config, catalog):
    costs = daily_costs(
        grid_config,
        catalog,
        total_investment_usd=2200.0,
        on_date=START,
        projection_start=START,
        maintenance_cost_multiplier=2.0,
        insurance_rate=0.01,
        property_tax_rate=0.02,
    )
    days = settings.DAYS_PER_YEAR
    assert costs.maintenance_usd == pytest.approx(2 * 70.0 / days)
    assert costs.insurance_usd == pytest.approx(22.0 / days)
    assert costs.property_tax_usd == pytest.approx(44.0 / days)
    assert costs.total_usd == pytest.approx(
        costs.maintenance_usd + costs.insurance_usd + costs.property_tax_usd + costs.depreciation_usd
    )


def test_zero_quantity_costs_nothing(grid_config, catalog):
    config = replace(grid_config, miners=(EquipmentLineItem(equipment_id="test_miner", quantity=0),))
    assert compute_investment(config, catalog).total_usd == 0.0
    assert annual_maintenance_usd(config, catalog) == 0.0
    assert daily_depreciation_usd(config, catalog, START, START) == 0.0


def test_no_depreciation_before_installation(grid_config, catalog):
    later = replace(
        grid_config,
        miners=(
            EquipmentLineItem(
                equipment_id="test_miner", quantity=1, installation_date=date(2025, 7, 1)
            ),
        ),
    )
    assert daily_depreciation_usd(later, catalog, START, START) == 0.0
    assert daily_depreciation_usd(later, catalog, date(2025, 7, 1), START) == pytest.approx(
        2200.0 / (5 * settings.DAYS_PER_YEAR)
    )

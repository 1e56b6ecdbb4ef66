# tests/conftest.py
from datetime import date

import pytest

from solarmine.core.btc_forecast_engine import MarketSnapshot
from solarmine.core.data_access import InMemoryMarketData
from solarmine.core.environment import (
    DailyForecastLookup,
    EnvironmentalResolver,
    HourlyForecastLookup,
    MonthlyClimatologyLookup,
    MonthlySolarRecord,
)
from solarmine.core.equipment_models import MinerSpec, SolarPanelSpec, StorageSpec
from solarmine.core.scenario_models import BitcoinOverrides, Scenario
from solarmine.core.system_models import EquipmentLineItem, Location, SystemConfiguration
from solarmine.data.equipment_catalog import build_catalog

LOCATION = Location(
    id="loc_tx",
    name="Central Texas",
    latitude=31.9686,
    longitude=-99.9018,
    timezone="America/Chicago",
)


def climatology(location_id: str, sun_hours: float, temperature_c: float = 20.0, year: int = 2025):
    """Twelve identical months for one year."""
    return MonthlyClimatologyLookup(
        [
            MonthlySolarRecord(
                location_id=location_id,
                year=year,
                month=month,
                sun_hours=sun_hours,
                temperature_c=temperature_c,
                cloud_cover_percent=20.0,
                wind_speed_ms=4.0,
            )
            for month in range(1, 13)
        ]
    )


def resolver_for(location_id: str, sun_hours: float, temperature_c: float = 20.0):
    return EnvironmentalResolver(
        [
            HourlyForecastLookup(),
            DailyForecastLookup(),
            climatology(location_id, sun_hours, temperature_c),
        ]
    )


@pytest.fixture()
def location() -> Location:
    return LOCATION


@pytest.fixture()
def flat_miner() -> MinerSpec:
    """100 TH/s, 3000 W, no ageing."""
    return MinerSpec(
        id="test_miner",
        name="Test miner 100TH",
        hashrate_th=100.0,
        power_w=3000.0,
        hashrate_degradation_annual=0.0,
        efficiency_degradation_annual=0.0,
        failure_rate_annual=0.0,
        price_usd=2000.0,
    )


@pytest.fixture()
def flat_panel() -> SolarPanelSpec:
    """550 W panel with no thermal derate or ageing."""
    return SolarPanelSpec(
        id="test_panel",
        name="Test panel 550W",
        rated_power_w=550.0,
        efficiency_percent=21.0,
        temperature_coefficient=0.0,
        degradation_rate_annual=0.0,
        cost_per_watt=0.30,
    )


@pytest.fixture()
def small_battery() -> StorageSpec:
    return StorageSpec(
        id="test_battery",
        name="Test battery 10kWh",
        capacity_kwh=10.0,
        usable_capacity_kwh=10.0,
        max_charge_rate_kw=5.0,
        max_discharge_rate_kw=5.0,
        round_trip_efficiency=0.9,
        calendar_degradation_annual=0.0,
        cost_per_kwh=400.0,
    )


@pytest.fixture()
def catalog(flat_miner, flat_panel, small_battery):
    catalog = build_catalog()
    catalog.add(flat_miner)
    catalog.add(flat_panel)
    catalog.add(small_battery)
    return catalog


@pytest.fixture()
def grid_config(location) -> SystemConfiguration:
    """One flat miner on grid power at $0.10/kWh."""
    return SystemConfiguration(
        id="cfg_grid",
        name="Grid test rig",
        location=location,
        miners=(EquipmentLineItem(equipment_id="test_miner", quantity=1),),
        electricity_rate_usd_kwh=0.10,
        grid_connection_type="grid_tied",
        mining_mode="hybrid",
    )


@pytest.fixture()
def solar_config(location) -> SystemConfiguration:
    """Off-grid: one flat miner, ten flat panels, one small battery."""
    return SystemConfiguration(
        id="cfg_solar",
        name="Off-grid solar rig",
        location=location,
        miners=(EquipmentLineItem(equipment_id="test_miner", quantity=1),),
        solar_panels=(EquipmentLineItem(equipment_id="test_panel", quantity=10),),
        storage_systems=(EquipmentLineItem(equipment_id="test_battery", quantity=1),),
        grid_connection_type="none",
        mining_mode="solar_only",
    )


@pytest.fixture()
def dark_environment(location) -> EnvironmentalResolver:
    return resolver_for(location.id, sun_hours=0.0)


@pytest.fixture()
def sunny_environment(location) -> EnvironmentalResolver:
    return resolver_for(location.id, sun_hours=5.0, temperature_c=25.0)


@pytest.fixture()
def market() -> InMemoryMarketData:
    return InMemoryMarketData(
        [
            MarketSnapshot(
                recorded_date=date(2025, 1, 1),
                btc_price_usd=50_000.0,
                block_reward_btc=6.25,
                network_hashrate_hs=500e18,
            )
        ]
    )


@pytest.fixture()
def fixed_market_scenario() -> Scenario:
    """Pins price, network hashrate and reward for the grid rig."""
    return Scenario(
        id="sc_fixed",
        system_config_id="cfg_grid",
        name="Fixed market",
        bitcoin=BitcoinOverrides(
            price_usd=50_000.0,
            network_hashrate_eh=500.0,
            block_reward_btc=6.25,
            avg_block_time_s=600.0,
            apply_halvings=False,
        ),
    )

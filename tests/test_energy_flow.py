from dataclasses import replace
from datetime import date

import pytest

from solarmine.core.degradation import degrade
from solarmine.core.energy_flow import apply_inverter, simulate, solar_generation_kwh
from solarmine.core.environment import EnvironmentalSample
from solarmine.core.equipment_models import InverterSpec
from solarmine.core.system_models import SystemConfiguration
from solarmine.data.equipment_catalog import WIND_TURBINES


def _sample(sun_hours: float, temperature_c: float = 25.0, wind: float = None) -> EnvironmentalSample:
    return EnvironmentalSample(
        location_id="loc_tx",
        sample_date=date(2025, 6, 1),
        granularity="daily",
        sun_hours=sun_hours,
        temperature_c=temperature_c,
        wind_speed_ms=wind,
    )


def test_solar_generation_with_performance_ratio(flat_panel):
    arrays = [degrade(flat_panel, 0.0, quantity=10)]
    # 5.5 kW * 0.8 PR * 5 h
    assert solar_generation_kwh(arrays, _sample(5.0), 0.8) == pytest.approx(22.0)
    assert solar_generation_kwh(arrays, _sample(0.0), 0.8) == 0.0


def test_hot_panels_lose_output(flat_panel):
    hot_panel = replace(flat_panel, temperature_coefficient=-0.4)
    arrays = [degrade(hot_panel, 0.0, quantity=10)]
    cool = solar_generation_kwh(arrays, _sample(5.0, temperature_c=0.0), 0.8)
    hot = solar_generation_kwh(arrays, _sample(5.0, temperature_c=40.0), 0.8)
    assert hot < cool


def test_inverter_clips_and_applies_efficiency():
    inverter = InverterSpec(id="i", name="i", rated_power_w=2000, efficiency_percent=95.0)
    assert apply_inverter(10.0, inverter, 1, 5.0) == pytest.approx(9.5)
    assert apply_inverter(20.0, inverter, 1, 5.0) == pytest.approx(10.0)
    assert apply_inverter(20.0, None, 1, 5.0) == 20.0


def test_off_grid_surplus_is_wasted_and_deficit_unmet(solar_config, flat_panel):
    arrays = [degrade(flat_panel, 0.0, quantity=10)]
    flow = simulate(solar_config, arrays, [], 3.0, _sample(5.0), performance_ratio=0.8)

    assert flow.solar_generation_kwh == pytest.approx(22.0)
    assert flow.solar_direct_to_mining_kwh == pytest.approx(15.0)
    assert flow.solar_wasted_kwh == pytest.approx(7.0)
    assert flow.grid_import_kwh == 0.0
    assert flow.grid_export_kwh == 0.0
    assert flow.unmet_demand_kwh == pytest.approx(3.0 * 19)
    assert flow.effective_mining_hours == pytest.approx(5.0)
    assert flow.mining_hours_grid_assisted == 0.0
    assert flow.solar_capacity_factor == pytest.approx(22.0 / (5.5 * 24))


def test_storage_shifts_surplus_into_the_night(solar_config, flat_panel, small_battery):
    arrays = [degrade(flat_panel, 0.0, quantity=10)]
    batteries = [degrade(small_battery, 0.0)]
    flow = simulate(solar_config, arrays, batteries, 3.0, _sample(5.0), performance_ratio=0.8)

    # Starts half full (5 kWh); 5/0.9 kWh of surplus fills it
    assert flow.solar_to_storage_kwh == pytest.approx(5.0 / 0.9)
    assert flow.solar_wasted_kwh == pytest.approx(7.0 - 5.0 / 0.9)
    assert flow.storage_discharge_kwh == pytest.approx(10.0)
    assert flow.storage_state_of_charge_kwh == pytest.approx(0.0)
    assert flow.mining_consumption_kwh == pytest.approx(25.0)
    assert flow.effective_mining_hours == pytest.approx(25.0 / 3.0)


def test_state_of_charge_carries_over(solar_config, flat_panel, small_battery):
    arrays = [degrade(flat_panel, 0.0, quantity=10)]
    batteries = [degrade(small_battery, 0.0)]
    empty_start = simulate(
        solar_config,
        arrays,
        batteries,
        3.0,
        _sample(5.0),
        state_of_charge_kwh=0.0,
        performance_ratio=0.8,
    )
    # 7 kWh surplus in, 6.3 kWh stored, all of it discharged overnight
    assert empty_start.solar_to_storage_kwh == pytest.approx(7.0)
    assert empty_start.storage_discharge_kwh == pytest.approx(6.3)


def test_generation_is_fully_accounted(location, flat_panel, small_battery):
    config = SystemConfiguration(
        id="c",
        name="c",
        location=location,
        grid_connection_type="grid_tied",
        mining_mode="hybrid",
        electricity_rate_usd_kwh=0.1,
    )
    arrays = [degrade(flat_panel, 0.0, quantity=40)]
    batteries = [degrade(small_battery, 0.0)]
    flow = simulate(config, arrays, batteries, 3.0, _sample(5.0), performance_ratio=0.8)

    accounted = (
        flow.solar_direct_to_mining_kwh
        + flow.solar_to_storage_kwh
        + flow.solar_exported_kwh
        + flow.solar_wasted_kwh
    )
    assert flow.solar_generation_kwh == pytest.approx(accounted)
    assert flow.solar_generation_kwh >= flow.solar_direct_to_mining_kwh + flow.solar_wasted_kwh
    assert flow.grid_export_kwh > 0
    assert flow.unmet_demand_kwh == pytest.approx(0.0)


def test_grid_import_respects_ceiling(grid_config):
    capped = replace(grid_config, max_grid_power_kw=1.0)
    flow = simulate(capped, [], [], 3.0, _sample(0.0))
    assert flow.grid_import_kwh == pytest.approx(24.0)
    assert flow.unmet_demand_kwh == pytest.approx(48.0)
    assert flow.effective_mining_hours == pytest.approx(8.0)
    assert flow.mining_hours_grid_assisted == pytest.approx(8.0)


def test_manual_hours_limit_demand(grid_config):
    manual = replace(grid_config, auto_calculate_hours=False, manual_mining_hours_per_day=6)
    flow = simulate(manual, [], [], 3.0, _sample(0.0))
    assert flow.mining_consumption_kwh == pytest.approx(18.0)
    assert flow.mining_availability_percent == pytest.approx(25.0)


def test_wind_runs_through_the_night(solar_config):
    turbines = [degrade(WIND_TURBINES["turbine_001"], 0.0)]
    flow = simulate(solar_config, [], [], 3.0, _sample(0.0, wind=12.0), wind_turbines=turbines)
    # 2.4 kW flat for 24 h, all of it used by a 3 kW load
    assert flow.wind_generation_kwh == pytest.approx(2.4 * 24)
    assert flow.mining_consumption_kwh == pytest.approx(2.4 * 24)

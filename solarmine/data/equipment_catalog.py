# solarmine/data/equipment_catalog.py
from __future__ import annotations

from typing import Dict

from solarmine.core.data_access import InMemoryEquipmentCatalog
from solarmine.core.equipment_models import (
    InverterSpec,
    MinerSpec,
    SolarPanelSpec,
    StorageSpec,
    WindTurbineSpec,
)

# Seed catalogue. Prices are indicative list prices in USD.
MINERS: Dict[str, MinerSpec] = {
    "miner_001": MinerSpec(
        id="miner_001",
        name="Antminer S19 Pro",
        manufacturer="Bitmain",
        hashrate_th=110.0,
        power_w=3250,
        operating_temp_min_c=5.0,
        operating_temp_max_c=40.0,
        price_usd=900.0,
    ),
    "miner_002": MinerSpec(
        id="miner_002",
        name="Antminer S19j Pro",
        manufacturer="Bitmain",
        hashrate_th=104.0,
        power_w=3068,
        operating_temp_min_c=5.0,
        operating_temp_max_c=40.0,
        price_usd=750.0,
    ),
    "miner_003": MinerSpec(
        id="miner_003",
        name="WhatsMiner M30S++",
        manufacturer="MicroBT",
        hashrate_th=112.0,
        power_w=3472,
        operating_temp_min_c=-5.0,
        operating_temp_max_c=40.0,
        price_usd=850.0,
    ),
    "miner_004": MinerSpec(
        id="miner_004",
        name="Antminer S19 XP",
        manufacturer="Bitmain",
        hashrate_th=140.0,
        power_w=3010,
        operating_temp_min_c=5.0,
        operating_temp_max_c=40.0,
        price_usd=1600.0,
    ),
    "miner_005": MinerSpec(
        id="miner_005",
        name="WhatsMiner M50S",
        manufacturer="MicroBT",
        hashrate_th=126.0,
        power_w=3276,
        operating_temp_min_c=-5.0,
        operating_temp_max_c=40.0,
        price_usd=1400.0,
    ),
    "miner_006": MinerSpec(
        id="miner_006",
        name="Antminer S21",
        manufacturer="Bitmain",
        hashrate_th=200.0,
        power_w=3500,
        operating_temp_min_c=0.0,
        operating_temp_max_c=45.0,
        price_usd=3100.0,
        hashrate_degradation_annual=0.04,
        efficiency_degradation_annual=0.02,
        failure_rate_annual=0.08,
    ),
}

SOLAR_PANELS: Dict[str, SolarPanelSpec] = {
    "panel_001": SolarPanelSpec(
        id="panel_001",
        name="SunPower Maxeon 3",
        manufacturer="SunPower",
        rated_power_w=400,
        efficiency_percent=19.4,
        temperature_coefficient=-0.29,
        degradation_rate_annual=0.0025,
        cost_per_watt=0.55,
    ),
    "panel_002": SolarPanelSpec(
        id="panel_002",
        name="LG NeON R",
        manufacturer="LG",
        rated_power_w=365,
        efficiency_percent=21.6,
        temperature_coefficient=-0.30,
        degradation_rate_annual=0.003,
        cost_per_watt=0.50,
    ),
    "panel_003": SolarPanelSpec(
        id="panel_003",
        name="Canadian Solar HiKu6",
        manufacturer="Canadian Solar",
        rated_power_w=550,
        efficiency_percent=21.2,
        temperature_coefficient=-0.35,
        cost_per_watt=0.30,
    ),
    "panel_004": SolarPanelSpec(
        id="panel_004",
        name="Jinko Tiger Pro",
        manufacturer="JinkoSolar",
        rated_power_w=535,
        efficiency_percent=20.8,
        temperature_coefficient=-0.38,
        cost_per_watt=0.28,
    ),
    "panel_005": SolarPanelSpec(
        id="panel_005",
        name="REC Alpha Pure",
        manufacturer="REC",
        rated_power_w=380,
        efficiency_percent=20.9,
        temperature_coefficient=-0.26,
        cost_per_watt=0.45,
        expected_lifespan_years=20.0,
    ),
}

STORAGE_SYSTEMS: Dict[str, StorageSpec] = {
    "storage_001": StorageSpec(
        id="storage_001",
        name="Tesla Powerwall 2",
        manufacturer="Tesla",
        capacity_kwh=14.0,
        usable_capacity_kwh=13.5,
        max_charge_rate_kw=5.0,
        max_discharge_rate_kw=5.0,
        round_trip_efficiency=0.90,
        cycle_life=5000,
        cost_per_kwh=650.0,
    ),
    "storage_002": StorageSpec(
        id="storage_002",
        name="BYD Battery-Box Premium HVM 22.1",
        manufacturer="BYD",
        capacity_kwh=22.1,
        usable_capacity_kwh=22.1,
        max_charge_rate_kw=20.0,
        max_discharge_rate_kw=20.0,
        round_trip_efficiency=0.95,
        cycle_life=6000,
        cost_per_kwh=450.0,
    ),
}

INVERTERS: Dict[str, InverterSpec] = {
    "inverter_001": InverterSpec(
        id="inverter_001",
        name="SMA Sunny Tripower 25000TL",
        manufacturer="SMA",
        rated_power_w=25_000,
        efficiency_percent=98.3,
        cost_usd=3800.0,
    ),
    "inverter_002": InverterSpec(
        id="inverter_002",
        name="Fronius Symo 10.0-3-M",
        manufacturer="Fronius",
        rated_power_w=10_000,
        efficiency_percent=98.0,
        cost_usd=2100.0,
    ),
}

WIND_TURBINES: Dict[str, WindTurbineSpec] = {
    "turbine_001": WindTurbineSpec(
        id="turbine_001",
        name="Skystream 3.7",
        manufacturer="Xzeres",
        rated_power_w=2400,
        cut_in_speed_ms=3.5,
        cut_out_speed_ms=25.0,
        power_curve=((3, 0), (4, 100), (6, 400), (8, 1000), (10, 1800), (12, 2400)),
        price_usd=12_000.0,
        maintenance_cost_annual_usd=150.0,
    ),
    "turbine_002": WindTurbineSpec(
        id="turbine_002",
        name="Bergey Excel 10",
        manufacturer="Bergey Windpower",
        rated_power_w=10_000,
        cut_in_speed_ms=2.5,
        cut_out_speed_ms=22.0,
        power_curve=((3, 0), (5, 500), (8, 3000), (11, 8000), (15, 10000)),
        price_usd=45_000.0,
        maintenance_cost_annual_usd=500.0,
    ),
}


def build_catalog() -> InMemoryEquipmentCatalog:
    """Catalog holding every seed entry above."""
    return InMemoryEquipmentCatalog(
        [
            *MINERS.values(),
            *SOLAR_PANELS.values(),
            *STORAGE_SYSTEMS.values(),
            *INVERTERS.values(),
            *WIND_TURBINES.values(),
        ]
    )

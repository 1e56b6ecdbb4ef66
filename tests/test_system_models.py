import json

import pytest

from solarmine.core.equipment_models import MinerSpec, WindTurbineSpec
from solarmine.core.system_models import EquipmentLineItem, SystemConfiguration


def test_from_dict_accepts_json_string_arrays(location):
    record = {
        "id": "cfg_1",
        "name": "Texas Solar Mining Setup",
        "miners": json.dumps([{"model_id": "miner_001", "quantity": 10}]),
        "solar_panels": [{"model_id": "panel_003", "quantity": 50}],
        "storage_systems": "",
        "electricity_rate": 0.12,
        "grid_connection_type": "net_metering",
        "mining_mode": "hybrid",
        "solar_system_efficiency": 0.85,
    }
    config = SystemConfiguration.from_dict(record, location)

    assert config.miners == (EquipmentLineItem(equipment_id="miner_001", quantity=10),)
    assert config.solar_panels[0].quantity == 50
    assert config.storage_systems == ()
    assert config.can_import_from_grid
    # Net metering without an explicit rate credits exports at retail
    assert config.export_rate_usd_kwh == pytest.approx(0.12)


def test_line_item_requires_model_id_and_quantity():
    with pytest.raises(ValueError):
        EquipmentLineItem.from_dict({"quantity": 1})
    with pytest.raises(ValueError):
        EquipmentLineItem.from_dict({"model_id": "miner_001"})
    with pytest.raises(ValueError):
        EquipmentLineItem.from_dict({"model_id": "miner_001", "quantity": -1})


def test_line_item_parses_installation_date():
    item = EquipmentLineItem.from_dict(
        {"model_id": "miner_001", "quantity": 2, "installation_date": "2024-06-01"}
    )
    assert item.installation_date.isoformat() == "2024-06-01"


def test_configuration_rejects_unknown_modes(location):
    with pytest.raises(ValueError):
        SystemConfiguration(id="x", name="x", location=location, mining_mode="turbo")
    with pytest.raises(ValueError):
        SystemConfiguration(id="x", name="x", location=location, grid_connection_type="mains")
    with pytest.raises(ValueError):
        SystemConfiguration(
            id="x",
            name="x",
            location=location,
            auto_calculate_hours=False,
            manual_mining_hours_per_day=25,
        )


def test_solar_only_never_imports(location):
    config = SystemConfiguration(
        id="x",
        name="x",
        location=location,
        grid_connection_type="grid_tied",
        mining_mode="solar_only",
    )
    assert config.is_grid_connected
    assert not config.can_import_from_grid
    assert config.export_rate_usd_kwh == 0.0


def test_manual_mining_hours(location):
    config = SystemConfiguration(
        id="x",
        name="x",
        location=location,
        auto_calculate_hours=False,
        manual_mining_hours_per_day=8,
    )
    assert config.target_mining_hours == 8


def test_miner_efficiency_and_temperature_window():
    miner = MinerSpec(
        id="m",
        name="m",
        hashrate_th=110.0,
        power_w=3250.0,
        operating_temp_min_c=5.0,
        operating_temp_max_c=40.0,
    )
    assert miner.efficiency_j_per_th == pytest.approx(29.545, rel=1e-3)
    assert miner.operates_at(25.0)
    assert not miner.operates_at(45.0)
    assert not miner.operates_at(0.0)


def test_wind_power_curve_interpolates_and_cuts_out():
    turbine = WindTurbineSpec(
        id="t",
        name="t",
        rated_power_w=2400,
        cut_in_speed_ms=3.5,
        cut_out_speed_ms=25.0,
        power_curve=((3, 0), (4, 100), (6, 400), (8, 1000), (10, 1800), (12, 2400)),
    )
    assert turbine.power_at(3.0) == 0.0  # below cut-in
    assert turbine.power_at(5.0) == pytest.approx(250.0)
    assert turbine.power_at(20.0) == pytest.approx(2400.0)
    assert turbine.power_at(26.0) == 0.0

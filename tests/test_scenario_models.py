import pytest

from solarmine.core.errors import InvalidScenarioError
from solarmine.core.scenario_models import (
    BitcoinOverrides,
    EconomicOverrides,
    EnvironmentalOverrides,
    Scenario,
)


def test_scenario_from_record_parses_json_blobs():
    scenario = Scenario.from_record(
        {
            "id": "sc_1",
            "system_config_id": "cfg_1",
            "name": "Bull run",
            "bitcoin_parameters": '{"price_usd": 80000}',
            "economic_parameters": {"electricity_rate_multiplier": 1.1},
            "environmental_parameters": None,
            "equipment_parameters": "",
        }
    )
    assert scenario.bitcoin.price_usd == 80000.0
    assert scenario.bitcoin.difficulty is None
    assert scenario.economic.electricity_rate_multiplier == pytest.approx(1.1)
    assert scenario.environmental.is_empty
    assert scenario.equipment.is_empty


@pytest.mark.parametrize(
    "raw",
    [
        '{"price_usd": ',  # invalid JSON
        "[1, 2]",  # not an object
        {"price": 80000},  # unknown key
        {"price_usd": "80000"},  # wrong type
        {"price_usd": True},  # bools are not numbers
        {"price_multiplier": -1},  # negative multiplier
        {"apply_halvings": 1},  # not a bool
        42,
    ],
)
def test_invalid_bitcoin_overrides_are_rejected(raw):
    with pytest.raises(InvalidScenarioError) as excinfo:
        BitcoinOverrides.from_json(raw)
    assert excinfo.value.component == "scenario_resolver"


def test_forced_season_must_be_a_known_season():
    assert EnvironmentalOverrides.from_json({"forced_season": "winter"}).forced_season == "winter"
    with pytest.raises(InvalidScenarioError):
        EnvironmentalOverrides.from_json({"forced_season": "monsoon"})


def test_null_fields_are_treated_as_absent():
    overrides = EconomicOverrides.from_json({"electricity_rate_usd_kwh": None})
    assert overrides.is_empty
    assert overrides.to_dict() == {}


def test_error_serialises_for_api_layer():
    with pytest.raises(InvalidScenarioError) as excinfo:
        EconomicOverrides.from_json({"bogus": 1})
    payload = excinfo.value.to_dict()
    assert payload["error"] == "InvalidScenarioError"
    assert "bogus" in payload["message"]
    assert payload["component"] == "scenario_resolver"
    assert payload["date"] is None

# solarmine/core/scenario_models.py
from __future__ import annotations

import json
import math
from dataclasses import dataclass, field, fields
from datetime import date
from typing import Any, ClassVar, FrozenSet, Mapping, Optional, get_args

from solarmine.core.environment import EnvironmentalSample, Season
from solarmine.core.errors import InvalidScenarioError


def _coerce_number(group: str, key: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidScenarioError(
            f"{group} override '{key}' must be a number, got {type(value).__name__}",
            component="scenario_resolver",
        )
    number = float(value)
    if math.isnan(number) or math.isinf(number):
        raise InvalidScenarioError(
            f"{group} override '{key}' must be finite", component="scenario_resolver"
        )
    if key.endswith("_multiplier") and number < 0:
        raise InvalidScenarioError(
            f"{group} override '{key}' must be >= 0, got {number}",
            component="scenario_resolver",
        )
    return number


class _OverrideGroup:
    """
    Shared parsing for the typed override groups.

    Every field is Optional; None means "absent, use the baseline". Unknown
    keys, wrong types and non-object payloads raise InvalidScenarioError.
    """

    GROUP: ClassVar[str] = ""
    BOOL_FIELDS: ClassVar[FrozenSet[str]] = frozenset()
    CHOICE_FIELDS: ClassVar[Mapping[str, tuple]] = {}

    @classmethod
    def from_json(cls, raw: Any):
        if raw is None:
            return cls()
        if isinstance(raw, cls):
            return raw
        if isinstance(raw, str):
            if not raw.strip():
                return cls()
            try:
                raw = json.loads(raw)
            except json.JSONDecodeError as exc:
                raise InvalidScenarioError(
                    f"{cls.GROUP} overrides are not valid JSON: {exc.msg}",
                    component="scenario_resolver",
                ) from exc
        if not isinstance(raw, Mapping):
            raise InvalidScenarioError(
                f"{cls.GROUP} overrides must be a JSON object, got {type(raw).__name__}",
                component="scenario_resolver",
            )

        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in raw.items():
            if key not in known:
                raise InvalidScenarioError(
                    f"Unknown {cls.GROUP} override '{key}'",
                    component="scenario_resolver",
                )
            if value is None:
                continue
            if key in cls.BOOL_FIELDS:
                if not isinstance(value, bool):
                    raise InvalidScenarioError(
                        f"{cls.GROUP} override '{key}' must be true/false",
                        component="scenario_resolver",
                    )
                kwargs[key] = value
            elif key in cls.CHOICE_FIELDS:
                if value not in cls.CHOICE_FIELDS[key]:
                    raise InvalidScenarioError(
                        f"{cls.GROUP} override '{key}' must be one of "
                        f"{', '.join(cls.CHOICE_FIELDS[key])}",
                        component="scenario_resolver",
                    )
                kwargs[key] = value
            else:
                kwargs[key] = _coerce_number(cls.GROUP, key, value)
        return cls(**kwargs)

    def to_dict(self) -> dict:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }

    @property
    def is_empty(self) -> bool:
        return not self.to_dict()


@dataclass(frozen=True)
class BitcoinOverrides(_OverrideGroup):
    GROUP: ClassVar[str] = "bitcoin"
    BOOL_FIELDS: ClassVar[FrozenSet[str]] = frozenset({"apply_halvings"})

    price_usd: Optional[float] = None
    difficulty: Optional[float] = None
    network_hashrate_eh: Optional[float] = None
    block_reward_btc: Optional[float] = None
    avg_block_time_s: Optional[float] = None
    tx_fees_btc_per_block: Optional[float] = None
    pool_fee_percent: Optional[float] = None
    price_multiplier: Optional[float] = None
    difficulty_multiplier: Optional[float] = None
    price_growth_annual_percent: Optional[float] = None
    difficulty_growth_annual_percent: Optional[float] = None
    difficulty_price_elasticity: Optional[float] = None
    apply_halvings: Optional[bool] = None


@dataclass(frozen=True)
class EconomicOverrides(_OverrideGroup):
    GROUP: ClassVar[str] = "economic"

    electricity_rate_usd_kwh: Optional[float] = None
    net_metering_rate_usd_kwh: Optional[float] = None
    electricity_rate_multiplier: Optional[float] = None
    electricity_rate_escalation_percent: Optional[float] = None
    discount_rate_percent: Optional[float] = None
    maintenance_cost_multiplier: Optional[float] = None
    insurance_rate_percent: Optional[float] = None
    property_tax_rate_percent: Optional[float] = None


@dataclass(frozen=True)
class EnvironmentalOverrides(_OverrideGroup):
    GROUP: ClassVar[str] = "environmental"
    CHOICE_FIELDS: ClassVar[Mapping[str, tuple]] = {"forced_season": get_args(Season)}

    weather_impact_multiplier: Optional[float] = None
    temperature_impact_multiplier: Optional[float] = None
    cloud_cover_adjustment: Optional[float] = None  # percentage points
    forced_season: Optional[str] = None


@dataclass(frozen=True)
class EquipmentOverrides(_OverrideGroup):
    GROUP: ClassVar[str] = "equipment"

    degradation_multiplier: Optional[float] = None
    efficiency_multiplier: Optional[float] = None
    failure_rate_multiplier: Optional[float] = None
    solar_performance_ratio: Optional[float] = None
    storage_round_trip_efficiency: Optional[float] = None


@dataclass(frozen=True)
class Scenario:
    """
    Named parameter-override set layered on one SystemConfiguration.

    Which scenario runs is passed to the orchestrator explicitly; there is
    no "active" flag here.
    """

    id: str
    system_config_id: str
    name: str
    bitcoin: BitcoinOverrides = field(default_factory=BitcoinOverrides)
    economic: EconomicOverrides = field(default_factory=EconomicOverrides)
    environmental: EnvironmentalOverrides = field(default_factory=EnvironmentalOverrides)
    equipment: EquipmentOverrides = field(default_factory=EquipmentOverrides)
    is_baseline: bool = False
    is_user_created: bool = True
    description: Optional[str] = None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Scenario":
        """Parse a `scenarios` row with its four JSON override blobs."""
        return cls(
            id=str(record["id"]),
            system_config_id=str(record["system_config_id"]),
            name=str(record.get("name", record["id"])),
            bitcoin=BitcoinOverrides.from_json(record.get("bitcoin_parameters")),
            economic=EconomicOverrides.from_json(record.get("economic_parameters")),
            environmental=EnvironmentalOverrides.from_json(
                record.get("environmental_parameters")
            ),
            equipment=EquipmentOverrides.from_json(record.get("equipment_parameters")),
            is_baseline=bool(record.get("is_baseline", False)),
            is_user_created=bool(record.get("is_user_created", True)),
            description=record.get("description"),
        )


@dataclass(frozen=True)
class ResolvedParameters:
    """
    Concrete parameter set for one projection date after the scenario's
    overrides have been merged onto the market/environment baselines.
    """

    on_date: date

    # Market
    btc_price_usd: float
    difficulty: float
    network_hashrate_hs: float
    block_reward_btc: float
    avg_block_time_s: float
    tx_fees_btc_per_block: float
    pool_fee_fraction: float
    difficulty_price_elasticity: float

    # Economics
    electricity_rate_usd_kwh: float
    electricity_escalation_factor: float  # rate relative to the start date
    net_metering_rate_usd_kwh: float
    discount_rate: float
    maintenance_cost_multiplier: float
    insurance_rate: float
    property_tax_rate: float

    # Equipment
    degradation_multiplier: float
    efficiency_multiplier: float
    failure_rate_multiplier: float
    solar_performance_ratio: float
    storage_round_trip_efficiency: Optional[float]

    environment: EnvironmentalSample

# solarmine/core/system_models.py
from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable, Literal, Mapping, Optional, Tuple, get_args

from solarmine.config import settings

GridConnectionType = Literal["none", "grid_tied", "net_metering"]
MiningMode = Literal["solar_only", "hybrid", "grid_assisted"]


@dataclass(frozen=True)
class Location:
    id: str
    name: str
    latitude: float
    longitude: float
    elevation_m: float = 0.0
    timezone: str = "UTC"

    @property
    def is_southern_hemisphere(self) -> bool:
        return self.latitude < 0


@dataclass(frozen=True)
class EquipmentLineItem:
    """
    One `{equipment_id, quantity}` entry in a configuration, with optional
    per-item overrides.
    """

    equipment_id: str
    quantity: int
    power_limit_w: Optional[float] = None  # miners only: underclock ceiling
    installation_date: Optional[date] = None
    purchase_price_usd: Optional[float] = None  # total for the line item

    def is_installed(self, on_date: date, default_start: Optional[date] = None) -> bool:
        installed = self.installation_date or default_start
        return installed is None or on_date >= installed

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "EquipmentLineItem":
        equipment_id = data.get("model_id", data.get("equipment_id"))
        if equipment_id is None or "quantity" not in data:
            raise ValueError(
                f"Line item needs 'model_id' and 'quantity', got {dict(data)}"
            )
        quantity = int(data["quantity"])
        if quantity < 0:
            raise ValueError(f"Line item quantity must be >= 0, got {quantity}")

        installed = data.get("installation_date") or data.get("purchase_date")
        if isinstance(installed, str):
            installed = date.fromisoformat(installed)

        power_limit = data.get("power_limit_w")
        price = data.get("purchase_price_usd")
        return cls(
            equipment_id=str(equipment_id),
            quantity=quantity,
            power_limit_w=float(power_limit) if power_limit is not None else None,
            installation_date=installed,
            purchase_price_usd=float(price) if price is not None else None,
        )


def _line_items(raw: Any) -> Tuple[EquipmentLineItem, ...]:
    if raw is None:
        return ()
    if isinstance(raw, str):
        raw = json.loads(raw) if raw.strip() else []
    if not isinstance(raw, Iterable) or isinstance(raw, Mapping):
        raise ValueError(f"Expected a list of line items, got {type(raw).__name__}")
    return tuple(
        item if isinstance(item, EquipmentLineItem) else EquipmentLineItem.from_dict(item)
        for item in raw
    )


@dataclass(frozen=True)
class SystemConfiguration:
    """
    A named bundle of equipment at one site plus its economic parameters.

    Immutable for the duration of a projection run. Rates are fractions
    (discount_rate=0.08 means 8%/year).
    """

    id: str
    name: str
    location: Location
    miners: Tuple[EquipmentLineItem, ...] = ()
    solar_panels: Tuple[EquipmentLineItem, ...] = ()
    storage_systems: Tuple[EquipmentLineItem, ...] = ()
    wind_turbines: Tuple[EquipmentLineItem, ...] = ()
    electricity_rate_usd_kwh: float = 0.0
    net_metering_rate_usd_kwh: Optional[float] = None
    grid_connection_type: GridConnectionType = "none"
    mining_mode: MiningMode = "solar_only"
    max_grid_power_kw: Optional[float] = None  # None = no import ceiling
    auto_calculate_hours: bool = True
    manual_mining_hours_per_day: float = 0.0
    inverter_id: Optional[str] = None
    inverter_quantity: int = 1
    solar_system_efficiency: float = settings.DEFAULT_PERFORMANCE_RATIO
    discount_rate: float = settings.DEFAULT_DISCOUNT_RATE
    electricity_rate_escalation: float = settings.DEFAULT_ELECTRICITY_ESCALATION
    commissioning_date: Optional[date] = None

    def __post_init__(self) -> None:
        if self.grid_connection_type not in get_args(GridConnectionType):
            raise ValueError(f"Unknown grid_connection_type: {self.grid_connection_type!r}")
        if self.mining_mode not in get_args(MiningMode):
            raise ValueError(f"Unknown mining_mode: {self.mining_mode!r}")
        if not 0.0 <= self.manual_mining_hours_per_day <= 24.0:
            raise ValueError("manual_mining_hours_per_day must be within 0–24")
        if self.max_grid_power_kw is not None and self.max_grid_power_kw < 0:
            raise ValueError("max_grid_power_kw must be >= 0")

    @property
    def is_grid_connected(self) -> bool:
        return self.grid_connection_type != "none"

    @property
    def can_import_from_grid(self) -> bool:
        return self.is_grid_connected and self.mining_mode in ("hybrid", "grid_assisted")

    @property
    def export_rate_usd_kwh(self) -> float:
        """Credit per exported kWh; net metering defaults to the retail rate."""
        if self.net_metering_rate_usd_kwh is not None:
            return self.net_metering_rate_usd_kwh
        if self.grid_connection_type == "net_metering":
            return self.electricity_rate_usd_kwh
        return 0.0

    @property
    def target_mining_hours(self) -> float:
        return 24.0 if self.auto_calculate_hours else self.manual_mining_hours_per_day

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], location: Location) -> "SystemConfiguration":
        """
        Build a configuration from a `system_configs` record.

        Equipment arrays may be lists of dicts or JSON strings of the same.
        """
        commissioning = data.get("commissioning_date")
        if isinstance(commissioning, str):
            commissioning = date.fromisoformat(commissioning)

        def _opt_float(key: str) -> Optional[float]:
            value = data.get(key)
            return float(value) if value is not None else None

        return cls(
            id=str(data["id"]),
            name=str(data.get("name", data["id"])),
            location=location,
            miners=_line_items(data.get("miners")),
            solar_panels=_line_items(data.get("solar_panels")),
            storage_systems=_line_items(data.get("storage_systems")),
            wind_turbines=_line_items(data.get("wind_turbines")),
            electricity_rate_usd_kwh=float(data.get("electricity_rate", 0.0)),
            net_metering_rate_usd_kwh=_opt_float("net_metering_rate"),
            grid_connection_type=data.get("grid_connection_type") or "none",
            mining_mode=data.get("mining_mode") or "solar_only",
            max_grid_power_kw=_opt_float("max_grid_power_kw"),
            auto_calculate_hours=bool(data.get("auto_calculate_hours", True)),
            manual_mining_hours_per_day=float(data.get("manual_mining_hours_per_day") or 0.0),
            inverter_id=data.get("inverter_id"),
            inverter_quantity=int(data.get("inverter_quantity") or 1),
            solar_system_efficiency=float(
                data.get("solar_system_efficiency", settings.DEFAULT_PERFORMANCE_RATIO)
            ),
            discount_rate=float(data.get("discount_rate", settings.DEFAULT_DISCOUNT_RATE)),
            electricity_rate_escalation=float(
                data.get(
                    "electricity_rate_escalation",
                    settings.DEFAULT_ELECTRICITY_ESCALATION,
                )
            ),
            commissioning_date=commissioning,
        )

# scripts/smoke_projection.py
from __future__ import annotations

import sys
from datetime import date
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from solarmine.core.btc_forecast_engine import default_snapshot  # noqa: E402
from solarmine.core.data_access import InMemoryMarketData, InMemoryResultStore  # noqa: E402
from solarmine.core.environment import EnvironmentalResolver, MonthlySolarRecord  # noqa: E402
from solarmine.core.live_data import LiveMarketDataSource  # noqa: E402
from solarmine.core.projection_engine import ProjectionEngine, ProjectionRequest  # noqa: E402
from solarmine.core.risk_analysis import run_stress_tests  # noqa: E402
from solarmine.core.scenario_config import build_default_scenarios  # noqa: E402
from solarmine.core.system_models import (  # noqa: E402
    EquipmentLineItem,
    Location,
    SystemConfiguration,
)
from solarmine.data.equipment_catalog import build_catalog  # noqa: E402

# Rough central-Texas climatology: (sun hours, daytime °C) per month
TEXAS_MONTHS = [
    (4.1, 14.0), (4.8, 16.0), (5.6, 20.0), (6.2, 24.0), (6.5, 28.0), (6.9, 32.0),
    (7.0, 34.0), (6.6, 34.0), (5.8, 30.0), (5.0, 25.0), (4.3, 19.0), (3.9, 15.0),
]


def build_environment(location: Location, year: int) -> EnvironmentalResolver:
    """
    Minimal dummy climatology for the smoke run.

    It only needs to be plausible enough to confirm the engine, settings
    and catalog are wired together.
    """
    return EnvironmentalResolver.from_sources(
        monthly=[
            MonthlySolarRecord(
                location_id=location.id,
                year=year,
                month=month,
                sun_hours=sun_hours,
                temperature_c=temperature_c,
                cloud_cover_percent=25.0,
                wind_speed_ms=4.5,
            )
            for month, (sun_hours, temperature_c) in enumerate(TEXAS_MONTHS, start=1)
        ]
    )


def main() -> None:
    start = date(2025, 1, 1)
    end = date(2025, 12, 31)

    location = Location(
        id="loc_tx", name="Central Texas", latitude=31.9686, longitude=-99.9018
    )
    config = SystemConfiguration(
        id="cfg_smoke",
        name="Smoke test site",
        location=location,
        miners=(EquipmentLineItem(equipment_id="miner_006", quantity=4),),
        solar_panels=(EquipmentLineItem(equipment_id="panel_004", quantity=60),),
        storage_systems=(EquipmentLineItem(equipment_id="storage_001", quantity=2),),
        inverter_id="inverter_001",
        electricity_rate_usd_kwh=0.06,
        grid_connection_type="net_metering",
        mining_mode="hybrid",
    )

    market = LiveMarketDataSource(fallback=InMemoryMarketData([default_snapshot(start)]))
    store = InMemoryResultStore()
    engine = ProjectionEngine(build_catalog(), build_environment(location, start.year), market, store)

    base = build_default_scenarios(config.id)["base"]
    request = ProjectionRequest(config=config, scenario=base, start_date=start, end_date=end)
    outcome = engine.run(request)
    outcome.raise_for_status()
    summary = outcome.summary

    print("=== Projection engine smoke test ===")
    print(f"Days: {summary.days}  (stored rows: {len(store)})")
    print(f"Investment ($): {summary.total_investment_usd:,.0f}")
    print(f"Total BTC: {summary.total_btc_mined:,.5f}")
    print(f"Total revenue ($): {summary.total_revenue_usd:,.0f}")
    print(f"Total opex ($): {summary.total_operating_cost_usd:,.0f}")
    print(f"Net profit ($): {summary.total_profit_usd:,.0f}")
    print(f"NPV ($): {summary.npv_usd:,.0f}")
    if summary.irr_percent is not None:
        print(f"IRR (%): {summary.irr_percent:,.1f}")
    if summary.payback_period_months is not None:
        print(f"Payback (months): {summary.payback_period_months:,.1f}")
    for note in summary.notes:
        print(f"Note: {note}")

    print("\n=== Stress tests ===")
    table = run_stress_tests(engine, request)
    print(table[["scenario", "state", "total_profit_usd", "roi_percent"]].to_string(index=False))


if __name__ == "__main__":
    main()

# solarmine/core/data_access.py
"""
Read-only collaborators consumed by the projection engine, plus the result
store it writes to.

The engine only depends on the small protocols below; the in-memory
implementations back the tests and ad-hoc runs. Database-backed versions
live in the API layer.
"""
from __future__ import annotations

import bisect
import logging
import threading
from datetime import date
from typing import Dict, Iterable, List, Mapping, Optional, Protocol, Sequence, Tuple

import pandas as pd

from solarmine.config import settings
from solarmine.core.btc_forecast_engine import MarketSnapshot
from solarmine.core.equipment_models import EquipmentSpec
from solarmine.core.errors import EquipmentNotFoundError, NoMarketDataError
from solarmine.core.projection_models import ProjectionResult

logger = logging.getLogger(__name__)


class EquipmentCatalog(Protocol):
    def get(self, equipment_id: str) -> EquipmentSpec: ...


class MarketDataSource(Protocol):
    def snapshot_for(self, on_date: date) -> MarketSnapshot: ...


class ResultStore(Protocol):
    def replace_results(
        self,
        system_config_id: str,
        scenario_id: str,
        rows: Sequence[ProjectionResult],
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> None: ...


class InMemoryEquipmentCatalog:
    """Equipment specs keyed by id."""

    def __init__(self, specs: Iterable[EquipmentSpec] = ()) -> None:
        self._specs: Dict[str, EquipmentSpec] = {}
        for spec in specs:
            self.add(spec)

    def add(self, spec: EquipmentSpec) -> None:
        if spec.id in self._specs:
            raise ValueError(f"Duplicate equipment id: {spec.id}")
        self._specs[spec.id] = spec

    def get(self, equipment_id: str) -> EquipmentSpec:
        try:
            return self._specs[equipment_id]
        except KeyError:
            raise EquipmentNotFoundError(
                f"Equipment {equipment_id!r} is not in the catalog",
                component="equipment_catalog",
            ) from None

    def __contains__(self, equipment_id: object) -> bool:
        return equipment_id in self._specs

    def __len__(self) -> int:
        return len(self._specs)


class InMemoryMarketData:
    """
    Historical market snapshots.

    `snapshot_for(d)` returns the latest snapshot recorded on or before `d`
    (the engine projects it forward from there).
    """

    def __init__(self, snapshots: Iterable[MarketSnapshot] = ()) -> None:
        ordered = sorted(snapshots, key=lambda s: s.recorded_date)
        self._dates: List[date] = [s.recorded_date for s in ordered]
        self._snapshots: List[MarketSnapshot] = ordered
        if len(set(self._dates)) != len(self._dates):
            raise ValueError("Duplicate market snapshot dates")

    @classmethod
    def from_dataframe(cls, df: pd.DataFrame) -> "InMemoryMarketData":
        """
        Build from a price/network table.

        Required columns: date, btc_price_usd, block_reward_btc, and one of
        difficulty / network_hashrate_hs. Optional: avg_block_time_s,
        tx_fees_btc_per_block.
        """
        required = {"date", "btc_price_usd", "block_reward_btc"}
        missing = required - set(df.columns)
        if missing:
            raise ValueError(f"Market table is missing columns: {sorted(missing)}")
        if "difficulty" not in df.columns and "network_hashrate_hs" not in df.columns:
            raise ValueError("Market table needs a difficulty or network_hashrate_hs column")

        def _opt(row: Mapping, key: str) -> Optional[float]:
            value = row.get(key)
            if value is None or pd.isna(value):
                return None
            return float(value)

        snapshots = []
        for row in df.to_dict("records"):
            snapshots.append(
                MarketSnapshot(
                    recorded_date=pd.Timestamp(row["date"]).date(),
                    btc_price_usd=float(row["btc_price_usd"]),
                    block_reward_btc=float(row["block_reward_btc"]),
                    difficulty=_opt(row, "difficulty"),
                    network_hashrate_hs=_opt(row, "network_hashrate_hs"),
                    avg_block_time_s=_opt(row, "avg_block_time_s")
                    or settings.DEFAULT_BLOCK_TIME_S,
                    tx_fees_btc_per_block=_opt(row, "tx_fees_btc_per_block") or 0.0,
                )
            )
        return cls(snapshots)

    def snapshot_for(self, on_date: date) -> MarketSnapshot:
        index = bisect.bisect_right(self._dates, on_date) - 1
        if index < 0:
            raise NoMarketDataError(
                f"No market snapshot on or before {on_date.isoformat()}",
                date=on_date,
                component="market_data",
            )
        return self._snapshots[index]


class InMemoryResultStore:
    """
    Projection rows keyed by (system_config_id, scenario_id, projection_date).

    `replace_results` drops the stored rows of one (config, scenario) pair
    that fall inside the re-run's date range and merges the new rows in,
    all under a lock. Re-running a projection never duplicates rows, rows
    outside the range survive, and readers never see a half-written series.
    """

    def __init__(self) -> None:
        self._rows: Dict[Tuple[str, str], Dict[date, ProjectionResult]] = {}
        self._lock = threading.Lock()

    def replace_results(
        self,
        system_config_id: str,
        scenario_id: str,
        rows: Sequence[ProjectionResult],
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> None:
        fresh: Dict[date, ProjectionResult] = {}
        for row in rows:
            if (row.system_config_id, row.scenario_id) != (system_config_id, scenario_id):
                raise ValueError(
                    f"Row {row.key} does not belong to "
                    f"({system_config_id}, {scenario_id})"
                )
            fresh[row.projection_date] = row

        # Rollup rows are dated at their period start, which can precede start_date
        bounds = list(fresh)
        bounds += [d for d in (start_date, end_date) if d is not None]
        if not bounds:
            return
        low, high = min(bounds), max(bounds)

        with self._lock:
            series = self._rows.setdefault((system_config_id, scenario_id), {})
            for stale in [d for d in series if low <= d <= high]:
                del series[stale]
            series.update(fresh)
        logger.debug(
            "Stored %d rows for config=%s scenario=%s (%s..%s)",
            len(fresh),
            system_config_id,
            scenario_id,
            low.isoformat(),
            high.isoformat(),
        )

    def rows_for(self, system_config_id: str, scenario_id: str) -> List[ProjectionResult]:
        with self._lock:
            series = dict(self._rows.get((system_config_id, scenario_id), {}))
        return [series[d] for d in sorted(series)]

    def __len__(self) -> int:
        with self._lock:
            return sum(len(series) for series in self._rows.values())

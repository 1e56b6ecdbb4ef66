# solarmine/core/errors.py
from __future__ import annotations

from datetime import date
from typing import Any, Dict, Optional


class ProjectionError(RuntimeError):
    """
    Base class for every error raised by the projection engine.

    Carries the projection date and component that failed so an API layer
    can surface them verbatim (e.g. "no environmental data for 2026-03-04").
    """

    def __init__(
        self,
        message: str,
        *,
        date: Optional[date] = None,
        component: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.date = date
        self.component = component

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": type(self).__name__,
            "message": self.message,
            "date": self.date.isoformat() if self.date is not None else None,
            "component": self.component,
        }

    def __str__(self) -> str:
        parts = [self.message]
        if self.component:
            parts.append(f"component={self.component}")
        if self.date is not None:
            parts.append(f"date={self.date.isoformat()}")
        return " | ".join(parts)


class InvalidScenarioError(ProjectionError):
    """Scenario override blob is malformed, has unknown keys or bad types."""


class NoEnvironmentalDataError(ProjectionError):
    """No hourly, daily or monthly sample exists for a location/date."""


class NoMarketDataError(ProjectionError):
    """No market snapshot is available on or before a projection date."""


class IRRNotConvergedError(ProjectionError):
    """IRR bisection found no sign change or ran out of iterations."""


class ArithmeticDomainError(ProjectionError):
    """Negative capacity, zero network hashrate and similar domain violations."""


class EquipmentNotFoundError(ProjectionError):
    """A configuration references an equipment id missing from the catalog."""


class DataTimeoutError(ProjectionError):
    """External data for a date did not arrive within the bounded wait."""


class ProjectionCancelledError(ProjectionError):
    """Run was cancelled between dates."""

# src/models/trend.py

"""Trend summary model derived from a model's recent price history."""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class TrendDirection(str, Enum):
    """Direction of a model's price movement."""

    UP = "up"
    DOWN = "down"
    STABLE = "stable"


@dataclass(frozen=True)
class TrendSummary:
    """Direction plus magnitude of a price move (0 when stable)."""

    direction: TrendDirection
    change_percent: float = 0.0

    @classmethod
    def stable(cls) -> "TrendSummary":
        return cls(TrendDirection.STABLE, 0.0)

    @property
    def is_stable(self) -> bool:
        return self.direction is TrendDirection.STABLE

    def to_dict(self) -> dict[str, Any]:
        return {
            "direction": self.direction.value,
            "changePercent": self.change_percent,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TrendSummary":
        return cls(
            direction=TrendDirection(data["direction"]),
            change_percent=float(data.get("changePercent", 0.0)),
        )

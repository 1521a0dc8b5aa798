# src/models/price_observation.py

"""Dated price observation model for price history tracking."""

from dataclasses import dataclass, field
from typing import Any

from src.config.settings import Settings


@dataclass(frozen=True)
class RoutePrice:
    """Per-million-token prices for one distribution route."""

    input_per_1m: float
    output_per_1m: float
    currency: str = Settings.DEFAULT_CURRENCY

    def to_dict(self) -> dict[str, Any]:
        return {
            "inputPer1M": self.input_per_1m,
            "outputPer1M": self.output_per_1m,
            "currency": self.currency,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RoutePrice":
        return cls(
            input_per_1m=float(data["inputPer1M"]),
            output_per_1m=float(data["outputPer1M"]),
            currency=str(data.get("currency") or Settings.DEFAULT_CURRENCY),
        )


@dataclass
class PriceObservation:
    """One snapshot of a model's prices, dated to a calendar day.

    ``date`` is an ISO ``YYYY-MM-DD`` string so that same-day checks and
    ordering are plain string comparisons.
    """

    date: str
    routes: dict[str, RoutePrice] = field(default_factory=dict)

    def has_route(self, route: str) -> bool:
        """Return True if this observation carries prices for *route*."""
        return route in self.routes

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "routes": {
                name: price.to_dict()
                for name, price in self.routes.items()
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PriceObservation":
        raw_routes: dict[str, Any] = data.get("routes") or {}
        return cls(
            date=str(data["date"]),
            routes={
                name: RoutePrice.from_dict(price)
                for name, price in raw_routes.items()
            },
        )

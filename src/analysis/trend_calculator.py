# src/analysis/trend_calculator.py

"""Short-term price trend over the trailing window of a model's history."""

from collections.abc import Sequence

from src.config.settings import Settings
from src.models.price_observation import PriceObservation
from src.models.trend import TrendDirection, TrendSummary


def compute_trend(
    history: Sequence[PriceObservation],
    route: str = Settings.TREND_ROUTE,
    window: int = Settings.TREND_WINDOW,
) -> TrendSummary:
    """Classify the input-price move of *route* over the last *window* entries.

    The window counts history entries, not calendar days.  Within it the
    earliest and the most recent entries carrying *route* are compared on
    their input price only.  Moves inside the fixed ±5% band (boundaries
    included) are reported as stable with a change of 0.
    """
    if len(history) < 2 or window < 1:
        return TrendSummary.stable()

    recent = list(history[-window:])
    priced = [obs for obs in recent if obs.has_route(route)]
    if len(priced) < 2:
        return TrendSummary.stable()

    first = priced[0].routes[route].input_per_1m
    last = priced[-1].routes[route].input_per_1m
    if first <= 0:
        return TrendSummary.stable()

    change = (last - first) / first * 100
    threshold = Settings.TREND_THRESHOLD_PERCENT

    if change > threshold:
        return TrendSummary(TrendDirection.UP, round(abs(change), 1))
    if change < -threshold:
        return TrendSummary(TrendDirection.DOWN, round(abs(change), 1))
    return TrendSummary.stable()

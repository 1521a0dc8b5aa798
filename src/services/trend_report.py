# src/services/trend_report.py

"""Lists the models whose price trend moved beyond the noise band."""

from dataclasses import dataclass

from src.models.model_history import HistoryDocument
from src.models.trend import TrendDirection, TrendSummary


@dataclass
class TrendChange:
    """A model with a non-stable trend, ready for display."""

    model_id: str
    name: str
    trend: TrendSummary


def summarize_trends(document: HistoryDocument) -> list[TrendChange]:
    """Return every model whose stored trend is up or down, in document order."""
    return [
        TrendChange(
            model_id=model_id,
            name=model.name or model_id,
            trend=model.trend,
        )
        for model_id, model in document.models.items()
        if model.trend is not None and not model.trend.is_stable
    ]


def format_trend_line(change: TrendChange) -> str:
    arrow = "▲" if change.trend.direction is TrendDirection.UP else "▼"
    return (
        f"{arrow} {change.name}: {change.trend.direction.value} "
        f"{change.trend.change_percent:.1f}%"
    )

# src/models/model_history.py

"""Per-model price history and the persisted history document."""

from dataclasses import dataclass, field
from typing import Any

from src.config.settings import Settings
from src.models.price_observation import PriceObservation
from src.models.trend import TrendSummary


@dataclass
class ModelHistory:
    """Chronological price observations for a single model."""

    model_id: str
    name: str = ""
    provider: str = ""
    history: list[PriceObservation] = field(default_factory=list)
    trend: TrendSummary | None = None

    @property
    def latest(self) -> PriceObservation | None:
        return self.history[-1] if self.history else None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "provider": self.provider,
            "history": [obs.to_dict() for obs in self.history],
        }
        if self.trend is not None:
            data["trend"] = self.trend.to_dict()
        return data

    @classmethod
    def from_dict(
        cls, model_id: str, data: dict[str, Any],
    ) -> "ModelHistory":
        raw_trend = data.get("trend")
        return cls(
            model_id=model_id,
            name=str(data.get("name", "")),
            provider=str(data.get("provider", "")),
            history=[
                PriceObservation.from_dict(entry)
                for entry in data.get("history") or []
            ],
            trend=(
                TrendSummary.from_dict(raw_trend)
                if isinstance(raw_trend, dict)
                else None
            ),
        )


@dataclass
class HistoryMetadata:
    """Header block of the history document."""

    first_record_date: str
    last_updated_date: str | None = None
    version: int = Settings.HISTORY_VERSION
    description: str = Settings.HISTORY_DESCRIPTION
    update_frequency: str = Settings.HISTORY_UPDATE_FREQUENCY

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "description": self.description,
            "firstRecordDate": self.first_record_date,
            "lastUpdatedDate": self.last_updated_date,
            "updateFrequency": self.update_frequency,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "HistoryMetadata":
        return cls(
            first_record_date=str(data["firstRecordDate"]),
            last_updated_date=data.get("lastUpdatedDate"),
            version=int(data.get("version", Settings.HISTORY_VERSION)),
            description=str(
                data.get("description", Settings.HISTORY_DESCRIPTION)
            ),
            update_frequency=str(
                data.get(
                    "updateFrequency", Settings.HISTORY_UPDATE_FREQUENCY,
                )
            ),
        )


@dataclass
class HistoryDocument:
    """The whole persisted store: metadata plus every tracked model."""

    metadata: HistoryMetadata
    models: dict[str, ModelHistory] = field(default_factory=dict)

    @classmethod
    def fresh(cls, today: str) -> "HistoryDocument":
        return cls(metadata=HistoryMetadata(first_record_date=today))

    def to_dict(self) -> dict[str, Any]:
        return {
            "metadata": self.metadata.to_dict(),
            "models": {
                model_id: model.to_dict()
                for model_id, model in self.models.items()
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "HistoryDocument":
        """Build a document from parsed JSON.

        Raises ``KeyError``, ``TypeError`` or ``ValueError`` when the
        structure does not match the expected layout.
        """
        raw_models = data["models"]
        if not isinstance(raw_models, dict):
            raise TypeError("'models' must be a mapping")
        return cls(
            metadata=HistoryMetadata.from_dict(data["metadata"]),
            models={
                str(model_id): ModelHistory.from_dict(str(model_id), entry)
                for model_id, entry in raw_models.items()
            },
        )

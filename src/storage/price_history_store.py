# src/storage/price_history_store.py

"""JSON-backed price history store for daily per-route price tracking."""

import json
import logging
import math
import os
import stat
import tempfile
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from src.analysis.trend_calculator import compute_trend
from src.config.settings import Settings
from src.models.model_history import HistoryDocument, ModelHistory
from src.models.price_observation import PriceObservation, RoutePrice
from src.models.trend import TrendSummary

logger = logging.getLogger("ai_price_compare.price_history")


class HistoryStoreError(Exception):
    """Base class for price history store failures."""


class StoreCorruptError(HistoryStoreError):
    """The persisted history exists but cannot be parsed (strict mode)."""


class InvalidPricingError(HistoryStoreError):
    """A model entry carries no usable route prices (strict mode)."""


class PersistError(HistoryStoreError):
    """Writing the history document failed; nothing was written."""


class RecordOutcome(str, Enum):
    """What ``record_observation`` did to a model's history."""

    APPENDED = "appended"
    REPLACED = "replaced"
    UNCHANGED = "unchanged"
    REJECTED = "rejected"


@dataclass
class UpdateStats:
    """Counters for one batch update run."""

    new_entries: int = 0
    updated_entries: int = 0
    unchanged: int = 0
    skipped: int = 0


def utc_today() -> str:
    """Return today's UTC date as ``YYYY-MM-DD``."""
    return datetime.now(timezone.utc).date().isoformat()


def _parse_price(value: Any) -> float | None:
    """Coerce a JSON price to float; None for missing or non-numeric."""
    if value is None or isinstance(value, bool):
        return None
    try:
        price = float(value)
    except (TypeError, ValueError):
        return None
    return price if math.isfinite(price) else None


def _route_price(raw: Any) -> RoutePrice | None:
    """Build a RoutePrice when *raw* has both an input and output price."""
    if not isinstance(raw, dict):
        return None
    input_price = _parse_price(raw.get("inputPer1M"))
    output_price = _parse_price(raw.get("outputPer1M"))
    if input_price is None or output_price is None:
        return None
    return RoutePrice(
        input_per_1m=input_price,
        output_per_1m=output_price,
        currency=str(raw.get("currency") or Settings.DEFAULT_CURRENCY),
    )


def extract_observation(
    pricing: Any, date: str,
) -> PriceObservation | None:
    """Build a dated observation from a model's current pricing object.

    Accepts the flat ``{inputPer1M, outputPer1M, currency}`` shape (read
    as the direct route) or the routed shape keyed by the pricing keys in
    ``Settings.ROUTE_SOURCES``.  Each route is taken independently; returns
    None when no route has both prices.
    """
    if not isinstance(pricing, dict):
        return None

    routes: dict[str, RoutePrice] = {}
    for route, source_key in Settings.ROUTE_SOURCES.items():
        raw = pricing.get(source_key)
        if route == "direct" and raw is None:
            raw = pricing
        price = _route_price(raw)
        if price is not None:
            routes[route] = price

    if not routes:
        return None
    return PriceObservation(date=date, routes=routes)


class PriceHistoryStore:
    """In-memory price history backed by a single JSON document.

    Load once, record any number of observations, then ``persist`` the
    whole document.  One writer per run; concurrent runs must be
    serialised by the caller.
    """

    def __init__(
        self,
        path: Path | None = None,
        today: str | None = None,
        strict: bool | None = None,
    ) -> None:
        self.path: Path = path or Settings.HISTORY_PATH
        self.today: str = today or utc_today()
        self.strict: bool = (
            Settings.STRICT_VALIDATION if strict is None else strict
        )
        self.document: HistoryDocument = HistoryDocument.fresh(self.today)

    # ── Loading ──────────────────────────────────────────

    def load(self) -> HistoryDocument:
        """Read the persisted history, or start a fresh one.

        A missing file always yields a fresh document.  An unreadable or
        malformed file yields a fresh document with a warning, unless the
        store is strict, in which case ``StoreCorruptError`` is raised.
        """
        if not self.path.exists():
            logger.info(
                "No price history at %s, starting fresh", self.path,
            )
            self.document = HistoryDocument.fresh(self.today)
            return self.document

        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise TypeError("history root must be an object")
            self.document = HistoryDocument.from_dict(data)
        except (
            OSError,
            json.JSONDecodeError,
            KeyError,
            TypeError,
            ValueError,
            AttributeError,
        ) as exc:
            if self.strict:
                raise StoreCorruptError(
                    f"Cannot read price history {self.path}: {exc}"
                ) from exc
            logger.warning(
                "Unreadable price history %s (%s), starting fresh",
                self.path,
                exc,
            )
            self.document = HistoryDocument.fresh(self.today)
            return self.document

        for model in self.document.models.values():
            model.history.sort(key=lambda obs: obs.date)

        logger.debug(
            "Loaded price history for %d models from %s",
            len(self.document.models),
            self.path,
        )
        return self.document

    # ── Recording ────────────────────────────────────────

    def record_observation(
        self,
        model_id: str,
        observation: PriceObservation,
        name: str = "",
        provider: str = "",
    ) -> RecordOutcome:
        """Upsert *observation* into the model's history.

        Same date with different routes replaces the latest entry, a later
        date appends, identical data is a no-op.  Observations older than
        the latest entry are rejected since past days are immutable.  The
        model's trend is recomputed after every append or replace.
        """
        model = self.document.models.get(model_id)
        if model is None:
            model = ModelHistory(
                model_id=model_id, name=name, provider=provider,
            )
            self.document.models[model_id] = model

        latest = model.latest
        if latest is None or observation.date > latest.date:
            model.history.append(observation)
            outcome = RecordOutcome.APPENDED
        elif observation.date == latest.date:
            if latest.routes == observation.routes:
                return RecordOutcome.UNCHANGED
            model.history[-1] = observation
            outcome = RecordOutcome.REPLACED
        else:
            logger.warning(
                "Rejected %s observation for %s: history already at %s",
                observation.date,
                model_id,
                latest.date,
            )
            return RecordOutcome.REJECTED

        model.trend = compute_trend(
            model.history, Settings.TREND_ROUTE, Settings.TREND_WINDOW,
        )
        logger.debug(
            "%s %s entry for %s (trend %s)",
            outcome.value.capitalize(),
            observation.date,
            model_id,
            model.trend.direction.value,
        )
        return outcome

    def update_from_pricing(
        self, pricing_document: dict[str, Any],
    ) -> UpdateStats:
        """Record today's observation for every model in a pricing document.

        ``models`` may be a list of ``{id, name, provider, pricing}`` entries
        or a mapping from model id to such entries.  Models without usable
        pricing are skipped unless the store is strict.
        """
        stats = UpdateStats()
        raw_models = pricing_document.get("models") or []
        if isinstance(raw_models, dict):
            entries = [
                {"id": model_id, **entry}
                for model_id, entry in raw_models.items()
                if isinstance(entry, dict)
            ]
        else:
            entries = [e for e in raw_models if isinstance(e, dict)]

        for entry in entries:
            model_id = entry.get("id")
            observation = (
                extract_observation(entry.get("pricing"), self.today)
                if model_id
                else None
            )
            if observation is None:
                if self.strict:
                    raise InvalidPricingError(
                        f"No usable pricing for model {model_id!r}"
                    )
                logger.warning(
                    "Skipping model %r: no usable route pricing",
                    model_id,
                )
                stats.skipped += 1
                continue

            outcome = self.record_observation(
                str(model_id),
                observation,
                name=str(entry.get("name", "")),
                provider=str(entry.get("provider", "")),
            )
            if outcome is RecordOutcome.APPENDED:
                stats.new_entries += 1
            elif outcome is RecordOutcome.REPLACED:
                stats.updated_entries += 1
            elif outcome is RecordOutcome.UNCHANGED:
                stats.unchanged += 1
            else:
                stats.skipped += 1

        logger.info(
            "History update: %d new, %d updated, %d unchanged, %d skipped",
            stats.new_entries,
            stats.updated_entries,
            stats.unchanged,
            stats.skipped,
        )
        return stats

    # ── Querying ─────────────────────────────────────────

    def get_model(self, model_id: str) -> ModelHistory | None:
        """Return a model's history, or None if it was never tracked."""
        return self.document.models.get(model_id)

    def get_trend(self, model_id: str) -> TrendSummary | None:
        """Return a model's latest trend; None means no trend available."""
        model = self.document.models.get(model_id)
        return model.trend if model is not None else None

    # ── Persisting ───────────────────────────────────────

    def _target_mode(self) -> int:
        """Mode of the existing history file, else 0666 minus the umask."""
        try:
            return stat.S_IMODE(os.stat(self.path).st_mode)
        except FileNotFoundError:
            umask = os.umask(0)
            os.umask(umask)
            return 0o666 & ~umask

    def persist(self) -> Path:
        """Write the whole document, stamping ``lastUpdatedDate``.

        The JSON is written to a temporary file next to the target and
        then swapped in, so a failed write leaves the previous file intact.
        Raises ``PersistError`` on any filesystem failure.
        """
        self.document.metadata.last_updated_date = self.today
        payload = json.dumps(
            self.document.to_dict(), ensure_ascii=False, indent=2,
        )

        tmp_name: str | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.write("\n")
            # mkstemp creates 0600 files; match the published file mode
            os.chmod(tmp_name, self._target_mode())
            os.replace(tmp_name, self.path)
        except OSError as exc:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            logger.error(
                "Failed to persist price history to %s: %s",
                self.path,
                exc,
                exc_info=True,
            )
            raise PersistError(
                f"Cannot write price history {self.path}: {exc}"
            ) from exc

        logger.info(
            "Persisted price history for %d models to %s",
            len(self.document.models),
            self.path,
        )
        return self.path

# tests/test_price_history_store.py

"""Tests for the JSON-backed price history store."""

import json
import os
import stat
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from src.models.price_observation import PriceObservation, RoutePrice
from src.models.trend import TrendDirection, TrendSummary
from src.storage.price_history_store import (
    InvalidPricingError,
    PersistError,
    PriceHistoryStore,
    RecordOutcome,
    StoreCorruptError,
    extract_observation,
)


def _direct(date: str, input_price: float, output_price: float = 10.0) -> PriceObservation:
    """Observation carrying only a direct route."""
    return PriceObservation(
        date=date,
        routes={"direct": RoutePrice(input_price, output_price)},
    )


class TestExtractObservation(unittest.TestCase):
    """Tests for building observations from pricing objects."""

    def test_flat_pricing_is_direct_route(self) -> None:
        """A flat pricing object maps onto the direct route."""
        obs = extract_observation(
            {"inputPer1M": 0.27, "outputPer1M": 1.1, "currency": "USD"},
            "2026-03-01",
        )
        assert obs is not None
        self.assertEqual(obs.date, "2026-03-01")
        self.assertEqual(list(obs.routes), ["direct"])
        self.assertEqual(obs.routes["direct"], RoutePrice(0.27, 1.1, "USD"))

    def test_routed_pricing_all_routes(self) -> None:
        """Direct, openrouter and syntheticRoute keys are all read."""
        obs = extract_observation(
            {
                "direct": {"inputPer1M": 3, "outputPer1M": 15},
                "openrouter": {"inputPer1M": 3, "outputPer1M": 15, "url": "x"},
                "syntheticRoute": {"inputPer1M": 2, "outputPer1M": 9},
            },
            "2026-03-01",
        )
        assert obs is not None
        self.assertEqual(
            set(obs.routes), {"direct", "openrouter", "synthetic"},
        )
        self.assertEqual(obs.routes["synthetic"].input_per_1m, 2.0)

    def test_currency_defaults_to_usd(self) -> None:
        """Routes without a currency are priced in USD."""
        obs = extract_observation(
            {"direct": {"inputPer1M": 1, "outputPer1M": 2}}, "2026-03-01",
        )
        assert obs is not None
        self.assertEqual(obs.routes["direct"].currency, "USD")

    def test_partial_route_is_skipped(self) -> None:
        """A route missing its output price is dropped, others survive."""
        obs = extract_observation(
            {
                "direct": {"inputPer1M": 1},
                "openrouter": {"inputPer1M": 1.2, "outputPer1M": 2.4},
            },
            "2026-03-01",
        )
        assert obs is not None
        self.assertEqual(list(obs.routes), ["openrouter"])

    def test_aggregator_only_pricing(self) -> None:
        """An observation may carry no direct route at all."""
        obs = extract_observation(
            {"openrouter": {"inputPer1M": 1, "outputPer1M": 2}},
            "2026-03-01",
        )
        assert obs is not None
        self.assertFalse(obs.has_route("direct"))

    def test_numeric_strings_accepted(self) -> None:
        """Prices stored as numeric strings are coerced."""
        obs = extract_observation(
            {"inputPer1M": "2.5", "outputPer1M": "10"}, "2026-03-01",
        )
        assert obs is not None
        self.assertEqual(obs.routes["direct"].input_per_1m, 2.5)

    def test_no_valid_route_returns_none(self) -> None:
        """Malformed pricing yields no observation."""
        self.assertIsNone(extract_observation({}, "2026-03-01"))
        self.assertIsNone(extract_observation(None, "2026-03-01"))
        self.assertIsNone(
            extract_observation(
                {"inputPer1M": "abc", "outputPer1M": 1}, "2026-03-01",
            )
        )
        self.assertIsNone(
            extract_observation(
                {"direct": {"inputPer1M": None, "outputPer1M": 1}},
                "2026-03-01",
            )
        )


class TestRecordObservation(unittest.TestCase):
    """Tests for the idempotent upsert and trend refresh."""

    def setUp(self) -> None:
        """Create a store backed by a temp file."""
        self.tmp_dir = tempfile.mkdtemp()
        self.path = Path(self.tmp_dir) / "history.json"
        self.store = PriceHistoryStore(
            path=self.path, today="2026-03-03", strict=False,
        )

    def test_creates_model_entry(self) -> None:
        """First observation creates the model with name and provider."""
        outcome = self.store.record_observation(
            "gpt-4o", _direct("2026-03-03", 2.5), "GPT-4o", "OpenAI",
        )
        self.assertEqual(outcome, RecordOutcome.APPENDED)
        model = self.store.get_model("gpt-4o")
        assert model is not None
        self.assertEqual(model.name, "GPT-4o")
        self.assertEqual(model.provider, "OpenAI")
        self.assertEqual(len(model.history), 1)

    def test_identical_observation_is_noop(self) -> None:
        """Recording the same data twice keeps exactly one entry."""
        self.store.record_observation("m", _direct("2026-03-03", 2.5))
        outcome = self.store.record_observation(
            "m", _direct("2026-03-03", 2.5),
        )
        self.assertEqual(outcome, RecordOutcome.UNCHANGED)
        model = self.store.get_model("m")
        assert model is not None
        self.assertEqual(len(model.history), 1)
        self.assertEqual(model.history[0].routes["direct"].input_per_1m, 2.5)

    def test_same_day_correction_replaces(self) -> None:
        """Different routes on the same date replace the latest entry."""
        self.store.record_observation("m", _direct("2026-03-03", 2.5))
        outcome = self.store.record_observation(
            "m", _direct("2026-03-03", 2.0),
        )
        self.assertEqual(outcome, RecordOutcome.REPLACED)
        model = self.store.get_model("m")
        assert model is not None
        self.assertEqual(len(model.history), 1)
        self.assertEqual(model.history[0].routes["direct"].input_per_1m, 2.0)

    def test_output_only_change_is_a_correction(self) -> None:
        """Route comparison covers every field, not just input price."""
        self.store.record_observation("m", _direct("2026-03-03", 2.5, 10))
        outcome = self.store.record_observation(
            "m", _direct("2026-03-03", 2.5, 12),
        )
        self.assertEqual(outcome, RecordOutcome.REPLACED)

    def test_append_across_days(self) -> None:
        """Distinct ascending dates produce ascending entries."""
        for date in ("2026-03-01", "2026-03-02", "2026-03-03"):
            self.store.record_observation("m", _direct(date, 1.0))
        model = self.store.get_model("m")
        assert model is not None
        self.assertEqual(
            [obs.date for obs in model.history],
            ["2026-03-01", "2026-03-02", "2026-03-03"],
        )

    def test_older_observation_rejected(self) -> None:
        """Past days are immutable once a newer entry exists."""
        self.store.record_observation("m", _direct("2026-03-03", 1.0))
        outcome = self.store.record_observation(
            "m", _direct("2026-03-01", 9.0),
        )
        self.assertEqual(outcome, RecordOutcome.REJECTED)
        model = self.store.get_model("m")
        assert model is not None
        self.assertEqual([obs.date for obs in model.history], ["2026-03-03"])

    def test_trend_recomputed_after_append(self) -> None:
        """Appending a 6% higher price flips the trend to up."""
        self.store.record_observation("m", _direct("2026-03-01", 100))
        self.store.record_observation("m", _direct("2026-03-02", 106))
        self.assertEqual(
            self.store.get_trend("m"),
            TrendSummary(TrendDirection.UP, 6.0),
        )

    def test_trend_recomputed_after_replace(self) -> None:
        """A same-day correction refreshes the trend."""
        self.store.record_observation("m", _direct("2026-03-02", 100))
        self.store.record_observation("m", _direct("2026-03-03", 106))
        self.store.record_observation("m", _direct("2026-03-03", 94))
        self.assertEqual(
            self.store.get_trend("m"),
            TrendSummary(TrendDirection.DOWN, 6.0),
        )

    def test_single_entry_trend_is_stable(self) -> None:
        """One observation always reports stable, 0."""
        self.store.record_observation("m", _direct("2026-03-03", 100))
        self.assertEqual(self.store.get_trend("m"), TrendSummary.stable())

    def test_aggregator_only_entry_keeps_direct_stable(self) -> None:
        """An openrouter-only observation does not count as direct data."""
        self.store.record_observation("m", _direct("2026-03-02", 100))
        self.store.record_observation(
            "m",
            PriceObservation(
                date="2026-03-03",
                routes={"openrouter": RoutePrice(50, 100)},
            ),
        )
        self.assertEqual(self.store.get_trend("m"), TrendSummary.stable())

    def test_get_trend_unknown_model(self) -> None:
        """Unknown models have no trend rather than raising."""
        self.assertIsNone(self.store.get_trend("missing"))


class TestLoadAndPersist(unittest.TestCase):
    """Tests for loading, persisting and round-tripping the document."""

    def setUp(self) -> None:
        """Create a temp directory for the history file."""
        self.tmp_dir = tempfile.mkdtemp()
        self.path = Path(self.tmp_dir) / "history.json"

    def _store(self, today: str = "2026-03-03", strict: bool = False) -> PriceHistoryStore:
        return PriceHistoryStore(path=self.path, today=today, strict=strict)

    def test_missing_file_starts_fresh(self) -> None:
        """No file means a fresh version-1 document dated today."""
        doc = self._store().load()
        self.assertEqual(doc.metadata.version, 1)
        self.assertEqual(doc.metadata.first_record_date, "2026-03-03")
        self.assertEqual(doc.models, {})

    def test_missing_file_strict_still_fresh(self) -> None:
        """Absence is never an error, even in strict mode."""
        doc = self._store(strict=True).load()
        self.assertEqual(doc.models, {})

    def test_corrupt_file_lenient_starts_fresh(self) -> None:
        """Invalid JSON is treated as no history."""
        self.path.write_text("NOT JSON {{{", encoding="utf-8")
        doc = self._store().load()
        self.assertEqual(doc.models, {})

    def test_wrong_shape_lenient_starts_fresh(self) -> None:
        """A JSON list instead of an object is treated as no history."""
        self.path.write_text("[1, 2, 3]", encoding="utf-8")
        doc = self._store().load()
        self.assertEqual(doc.models, {})

    def test_corrupt_file_strict_raises(self) -> None:
        """Strict mode surfaces corruption as a distinct error."""
        self.path.write_text("NOT JSON {{{", encoding="utf-8")
        with self.assertRaises(StoreCorruptError):
            self._store(strict=True).load()

    def test_round_trip_preserves_history(self) -> None:
        """Persist then load yields the same dates, routes and order."""
        store = self._store()
        store.load()
        store.record_observation(
            "m", _direct("2026-03-01", 100), "Model", "Acme",
        )
        store.record_observation(
            "m",
            PriceObservation(
                date="2026-03-02",
                routes={
                    "direct": RoutePrice(106, 12),
                    "synthetic": RoutePrice(80, 9, "EUR"),
                },
            ),
        )
        store.persist()

        reloaded = self._store().load()
        self.assertEqual(
            reloaded.models["m"].history,
            store.document.models["m"].history,
        )
        self.assertEqual(
            reloaded.models["m"].trend,
            TrendSummary(TrendDirection.UP, 6.0),
        )
        self.assertEqual(reloaded.models["m"].name, "Model")

    def test_persist_stamps_last_updated(self) -> None:
        """persist writes today's date into the metadata."""
        store = self._store(today="2026-03-05")
        store.load()
        store.persist()
        with open(self.path, encoding="utf-8") as f:
            data = json.load(f)
        self.assertEqual(data["metadata"]["lastUpdatedDate"], "2026-03-05")
        self.assertEqual(data["metadata"]["firstRecordDate"], "2026-03-05")

    def test_persisted_json_layout(self) -> None:
        """Routes and trends use the camelCase document keys."""
        store = self._store()
        store.record_observation("m", _direct("2026-03-03", 2.5))
        store.persist()
        with open(self.path, encoding="utf-8") as f:
            data = json.load(f)
        entry = data["models"]["m"]
        self.assertEqual(
            entry["history"][0]["routes"]["direct"],
            {"inputPer1M": 2.5, "outputPer1M": 10.0, "currency": "USD"},
        )
        self.assertEqual(
            entry["trend"], {"direction": "stable", "changePercent": 0.0},
        )

    def test_load_sorts_history(self) -> None:
        """Out-of-order history on disk is reordered by date."""
        self.path.write_text(json.dumps({
            "metadata": {"version": 1, "firstRecordDate": "2026-03-01"},
            "models": {
                "m": {
                    "name": "M",
                    "provider": "P",
                    "history": [
                        {"date": "2026-03-02", "routes": {}},
                        {"date": "2026-03-01", "routes": {}},
                    ],
                },
            },
        }), encoding="utf-8")
        doc = self._store().load()
        self.assertEqual(
            [obs.date for obs in doc.models["m"].history],
            ["2026-03-01", "2026-03-02"],
        )

    @unittest.skipIf(os.name == "nt", "POSIX permission bits")
    def test_persist_keeps_existing_file_mode(self) -> None:
        """A world-readable history file stays world-readable."""
        store = self._store()
        store.persist()
        os.chmod(self.path, 0o644)

        store = self._store(today="2026-03-04")
        store.load()
        store.record_observation("m", _direct("2026-03-04", 1.0))
        store.persist()

        self.assertEqual(stat.S_IMODE(os.stat(self.path).st_mode), 0o644)

    @unittest.skipIf(os.name == "nt", "POSIX permission bits")
    def test_persist_new_file_follows_umask(self) -> None:
        """A first write gets the usual 0666-minus-umask mode, not 0600."""
        previous = os.umask(0o022)
        self.addCleanup(os.umask, previous)

        store = self._store()
        store.load()
        store.persist()

        mode = stat.S_IMODE(os.stat(self.path).st_mode)
        self.assertEqual(mode, 0o644)
        self.assertEqual(mode & 0o044, 0o044)

    def test_persist_failure_leaves_previous_file(self) -> None:
        """A failed write raises and keeps the old document intact."""
        store = self._store()
        store.record_observation("m", _direct("2026-03-03", 1.0))
        store.persist()
        original = self.path.read_text(encoding="utf-8")

        store.record_observation("other", _direct("2026-03-03", 2.0))
        with patch(
            "src.storage.price_history_store.os.replace",
            side_effect=OSError("write denied"),
        ):
            with self.assertRaises(PersistError):
                store.persist()

        self.assertEqual(self.path.read_text(encoding="utf-8"), original)
        self.assertEqual(
            sorted(p.name for p in Path(self.tmp_dir).iterdir()),
            ["history.json"],
        )


class TestUpdateFromPricing(unittest.TestCase):
    """Tests for the batch update driver."""

    def setUp(self) -> None:
        """Create a store and a small pricing document."""
        self.tmp_dir = tempfile.mkdtemp()
        self.path = Path(self.tmp_dir) / "history.json"
        self.pricing = {
            "models": [
                {
                    "id": "gpt-4o",
                    "name": "GPT-4o",
                    "provider": "OpenAI",
                    "pricing": {
                        "direct": {"inputPer1M": 2.5, "outputPer1M": 10},
                    },
                },
                {
                    "id": "deepseek-v3",
                    "name": "DeepSeek V3",
                    "provider": "DeepSeek",
                    "pricing": {"inputPer1M": 0.27, "outputPer1M": 1.1},
                },
                {
                    "id": "broken",
                    "name": "Broken",
                    "provider": "Nobody",
                    "pricing": {"direct": {"inputPer1M": 1}},
                },
            ],
        }

    def _store(self, today: str = "2026-03-03", strict: bool = False) -> PriceHistoryStore:
        store = PriceHistoryStore(path=self.path, today=today, strict=strict)
        store.load()
        return store

    def test_counts_new_and_skipped(self) -> None:
        """Valid models are appended, malformed ones skipped."""
        stats = self._store().update_from_pricing(self.pricing)
        self.assertEqual(stats.new_entries, 2)
        self.assertEqual(stats.skipped, 1)

    def test_skipped_model_not_tracked(self) -> None:
        """A malformed model does not get a history entry."""
        store = self._store()
        store.update_from_pricing(self.pricing)
        self.assertIsNone(store.get_model("broken"))
        self.assertIsNone(store.get_trend("broken"))

    def test_strict_raises_on_malformed_model(self) -> None:
        """Strict mode aborts on a model without usable pricing."""
        with self.assertRaises(InvalidPricingError):
            self._store(strict=True).update_from_pricing(self.pricing)

    def test_rerun_same_day_is_unchanged(self) -> None:
        """A second identical run on the same day changes nothing."""
        store = self._store()
        store.update_from_pricing(self.pricing)
        stats = store.update_from_pricing(self.pricing)
        self.assertEqual(stats.new_entries, 0)
        self.assertEqual(stats.updated_entries, 0)
        self.assertEqual(stats.unchanged, 2)

    def test_same_day_price_change_counts_as_update(self) -> None:
        """A repriced model on the same day is an update, not a new entry."""
        store = self._store()
        store.update_from_pricing(self.pricing)
        self.pricing["models"][0]["pricing"]["direct"]["inputPer1M"] = 2.0
        stats = store.update_from_pricing(self.pricing)
        self.assertEqual(stats.updated_entries, 1)
        model = store.get_model("gpt-4o")
        assert model is not None
        self.assertEqual(len(model.history), 1)

    def test_next_day_run_appends_and_keeps_absent_models(self) -> None:
        """Models dropped from the source keep their history."""
        first = self._store(today="2026-03-03")
        first.update_from_pricing(self.pricing)
        first.persist()

        second = self._store(today="2026-03-04")
        second.update_from_pricing({"models": self.pricing["models"][:1]})
        gpt = second.get_model("gpt-4o")
        deepseek = second.get_model("deepseek-v3")
        assert gpt is not None and deepseek is not None
        self.assertEqual(len(gpt.history), 2)
        self.assertEqual(len(deepseek.history), 1)

    def test_mapping_form_models(self) -> None:
        """Models keyed by id are accepted too."""
        stats = self._store().update_from_pricing({
            "models": {
                "gpt-4o": {
                    "name": "GPT-4o",
                    "pricing": {"inputPer1M": 2.5, "outputPer1M": 10},
                },
            },
        })
        self.assertEqual(stats.new_entries, 1)

    def test_entry_without_id_skipped(self) -> None:
        """Entries lacking an id cannot be keyed and are skipped."""
        stats = self._store().update_from_pricing({
            "models": [{"pricing": {"inputPer1M": 1, "outputPer1M": 2}}],
        })
        self.assertEqual(stats.skipped, 1)
        self.assertEqual(stats.new_entries, 0)


if __name__ == "__main__":
    unittest.main()

# src/storage/pricing_file.py

"""Reads and writes the current pricing document (``prices.json``)."""

import json
import logging
from pathlib import Path
from typing import Any

from src.config.settings import Settings

logger = logging.getLogger("ai_price_compare.storage")


class PricingFileError(Exception):
    """The pricing document is missing or not valid JSON."""


def load_pricing(path: Path | None = None) -> dict[str, Any]:
    """Load the pricing document; raise ``PricingFileError`` on failure."""
    filepath = path or Settings.PRICES_PATH
    try:
        with open(filepath, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        logger.error("Error loading %s: %s", filepath, exc)
        raise PricingFileError(
            f"Cannot load pricing document {filepath}: {exc}"
        ) from exc

    if not isinstance(data, dict) or "models" not in data:
        raise PricingFileError(
            f"Pricing document {filepath} has no 'models' section"
        )

    logger.debug(
        "Loaded %d models from %s", len(data["models"]), filepath,
    )
    return data


def save_pricing(
    data: dict[str, Any], path: Path | None = None,
) -> Path:
    """Write the pricing document as indented UTF-8 JSON."""
    filepath = path or Settings.PRICES_PATH
    filepath.parent.mkdir(parents=True, exist_ok=True)

    with open(filepath, "w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2)
        f.write("\n")

    logger.info(
        "Saved %d models to %s", len(data.get("models", [])), filepath,
    )
    return filepath

# src/services/price_updater.py

"""Fetches aggregator prices from OpenRouter and merges them into pricing."""

import copy
import logging
import math
from dataclasses import dataclass
from typing import Any

from curl_cffi import requests as curl_requests

from src.config.settings import Settings

logger = logging.getLogger("ai_price_compare.updater")

_TOKENS_PER_MILLION = 1_000_000


@dataclass
class PriceChange:
    """An OpenRouter price that is new or differs from the stored one."""

    model: str
    old: str
    new: str


def _per_million(value: Any) -> float | None:
    """Convert a per-token price string to an unrounded per-1M price."""
    try:
        price = float(value) * _TOKENS_PER_MILLION
    except (TypeError, ValueError):
        return None
    return price if math.isfinite(price) else None


def parse_openrouter_models(
    payload: dict[str, Any],
) -> dict[str, dict[str, Any]]:
    """Map an OpenRouter ``/models`` payload onto site model ids.

    Only ids listed in ``Settings.OPENROUTER_MAPPINGS`` are kept, and only
    when the input price is a positive number.
    """
    prices: dict[str, dict[str, Any]] = {}
    for model in payload.get("data") or []:
        if not isinstance(model, dict):
            continue
        site_id = Settings.OPENROUTER_MAPPINGS.get(str(model.get("id")))
        pricing = model.get("pricing")
        if site_id is None or not isinstance(pricing, dict):
            continue
        if site_id in Settings.MANUAL_MODELS:
            continue

        input_price = _per_million(pricing.get("prompt"))
        output_price = _per_million(pricing.get("completion"))
        # Checked on the raw value: sub-cent prices round to 0.0
        if input_price is None or output_price is None or input_price <= 0:
            logger.debug("Ignoring invalid OpenRouter pricing for %s", site_id)
            continue

        prices[site_id] = {
            "inputPer1M": round(input_price, 2),
            "outputPer1M": round(output_price, 2),
            "currency": Settings.DEFAULT_CURRENCY,
            "url": (
                f"https://openrouter.ai/{model['id']}"
                f"?ref={Settings.OPENROUTER_REFERRAL}"
            ),
        }
    return prices


def fetch_openrouter_prices(
    session: curl_requests.Session | None = None,
) -> dict[str, dict[str, Any]]:
    """Fetch current OpenRouter prices; returns ``{}`` on any failure.

    A single attempt is made per run.
    """
    logger.info("Fetching prices from %s", Settings.OPENROUTER_API)
    client = session or curl_requests.Session()
    try:
        resp = client.get(
            Settings.OPENROUTER_API,
            headers=Settings.DEFAULT_HEADERS,
            timeout=Settings.REQUEST_TIMEOUT,
        )
        if resp.status_code != 200:
            logger.error(
                "OpenRouter API error: HTTP %d", resp.status_code,
            )
            return {}
        payload = resp.json()
    except Exception as exc:
        logger.error(
            "Error fetching OpenRouter prices: %s", exc, exc_info=True,
        )
        return {}
    finally:
        if session is None:
            client.close()

    if not isinstance(payload, dict):
        logger.error("Unexpected OpenRouter payload type: %s", type(payload))
        return {}

    prices = parse_openrouter_models(payload)
    logger.info("Fetched prices for %d models from OpenRouter", len(prices))
    return prices


def _format_price(value: Any) -> str:
    """Render whole-dollar floats without a trailing ``.0``."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _format_pair(price: dict[str, Any]) -> str:
    return (
        f"${_format_price(price.get('inputPer1M'))}"
        f"/${_format_price(price.get('outputPer1M'))}"
    )


def _iter_models(document: dict[str, Any]) -> list[tuple[str, dict[str, Any]]]:
    """Return ``(model_id, entry)`` pairs for list- or mapping-shaped models.

    Entries are the document's own dicts, so edits land in *document*.
    Non-dict items are skipped.
    """
    raw_models = document.get("models") or []
    if isinstance(raw_models, dict):
        return [
            (str(model_id), entry)
            for model_id, entry in raw_models.items()
            if isinstance(entry, dict)
        ]
    return [
        (str(entry.get("id")), entry)
        for entry in raw_models
        if isinstance(entry, dict)
    ]


def merge_prices(
    current: dict[str, Any],
    fetched: dict[str, dict[str, Any]],
    today: str,
) -> tuple[dict[str, Any], list[PriceChange]]:
    """Return an updated copy of *current* plus the list of price changes.

    Every matched model gets its ``pricing.openrouter`` block replaced;
    a change is reported when the block is new or either price moved.
    """
    updated = copy.deepcopy(current)
    updated["lastUpdated"] = today
    changes: list[PriceChange] = []

    for model_id, model in _iter_models(updated):
        new_price = fetched.get(model_id)
        if new_price is None:
            continue

        pricing = model.get("pricing")
        if not isinstance(pricing, dict):
            pricing = {}
            model["pricing"] = pricing
        old_price = pricing.get("openrouter")

        pricing["openrouter"] = {
            "provider": "OpenRouter",
            "inputPer1M": new_price["inputPer1M"],
            "outputPer1M": new_price["outputPer1M"],
            "currency": new_price["currency"],
            "url": new_price["url"],
        }

        if (
            not isinstance(old_price, dict)
            or old_price.get("inputPer1M") != new_price["inputPer1M"]
            or old_price.get("outputPer1M") != new_price["outputPer1M"]
        ):
            changes.append(PriceChange(
                model=str(model.get("name") or model_id),
                old=(
                    _format_pair(old_price)
                    if isinstance(old_price, dict)
                    else "new"
                ),
                new=_format_pair(new_price),
            ))

    logger.info("Merged OpenRouter prices: %d changes", len(changes))
    return updated, changes


def format_change_report(changes: list[PriceChange]) -> str:
    """Render the change list as a plain-text report."""
    if not changes:
        return "No price changes detected."

    lines = [f"Price updates ({len(changes)} models):", ""]
    for change in changes:
        lines.append(f"  - {change.model}: {change.old} -> {change.new}")
    return "\n".join(lines)

# main.py

"""Entry point for the ai_price_compare data tooling."""

import argparse
import logging
import sys
from pathlib import Path

from src.config.logging_config import setup_logging
from src.config.settings import Settings

logger = logging.getLogger("ai_price_compare.main")


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="ai_price_compare",
        description="AI model API price history tracker.",
        epilog="Without an action flag, today's prices are recorded "
        "into the price history.",
    )
    action = parser.add_mutually_exclusive_group()
    action.add_argument(
        "--update-prices",
        action="store_true",
        default=False,
        dest="update_prices",
        help="Fetch OpenRouter prices and merge them into prices.json.",
    )
    action.add_argument(
        "--summary",
        action="store_true",
        default=False,
        help="Print models whose price trend is up or down.",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        default=None,
        help="Fail on a corrupt history file or malformed pricing "
        "(default: skip and warn).",
    )
    parser.add_argument(
        "--prices",
        type=Path,
        default=None,
        dest="prices_path",
        help=f"Pricing document (default: {Settings.PRICES_PATH}).",
    )
    parser.add_argument(
        "--history",
        type=Path,
        default=None,
        dest="history_path",
        help=f"Price history document (default: {Settings.HISTORY_PATH}).",
    )
    return parser


def main() -> None:
    """Route to the updater, the summary report or the history tracker."""
    log_file = setup_logging()
    logger.info("ai_price_compare starting, log file: %s", log_file)

    parser = _build_parser()
    args = parser.parse_args()

    from src.cli.runner import (
        run_summary,
        run_track_history,
        run_update_prices,
    )

    if args.update_prices:
        exit_code = run_update_prices(args.prices_path)
    elif args.summary:
        exit_code = run_summary(args.history_path, args.strict)
    else:
        exit_code = run_track_history(
            args.prices_path, args.history_path, args.strict,
        )
    sys.exit(exit_code)


if __name__ == "__main__":
    main()

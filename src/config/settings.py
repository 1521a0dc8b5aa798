# src/config/settings.py

"""Central configuration for the ai_price_compare tooling."""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Central configuration for the ai_price_compare tooling."""

    # --- Trend ---
    TREND_WINDOW: int = 30              # Trailing history entries, not days
    TREND_ROUTE: str = "direct"
    TREND_THRESHOLD_PERCENT: float = 5.0

    # --- Pricing ---
    DEFAULT_CURRENCY: str = "USD"
    # History route name -> key in a model's pricing object
    ROUTE_SOURCES: dict[str, str] = {
        "direct": "direct",
        "openrouter": "openrouter",
        "synthetic": "syntheticRoute",
    }

    # --- Validation ---
    STRICT_VALIDATION: bool = (
        os.getenv("PRICE_HISTORY_STRICT", "0").lower() in ("1", "true", "yes")
    )

    # --- Logging ---
    LOG_CONSOLE_LEVEL: str = os.getenv("PRICE_LOG_LEVEL", "WARNING").upper()
    LOG_KEEP_RUNS: int = int(os.getenv("PRICE_LOG_KEEP_RUNS", "30"))

    # --- History document ---
    HISTORY_VERSION: int = 1
    HISTORY_DESCRIPTION: str = "Historical price data for AI models"
    HISTORY_UPDATE_FREQUENCY: str = "daily"

    # --- OpenRouter ---
    OPENROUTER_API: str = os.getenv(
        "OPENROUTER_API", "https://openrouter.ai/api/v1/models"
    )
    OPENROUTER_REFERRAL: str = "aipricecompare"
    REQUEST_TIMEOUT: int = 15           # Seconds before a request times out
    DEFAULT_HEADERS: dict[str, str] = {
        "HTTP-Referer": "https://aipricecompare.com",
        "X-Title": "AI Price Compare",
        "Accept": "application/json",
    }
    # OpenRouter model id -> site model id
    OPENROUTER_MAPPINGS: dict[str, str] = {
        "openai/gpt-4o": "gpt-4o",
        "openai/gpt-4o-mini": "gpt-4o-mini",
        "openai/o3-mini": "o3-mini",
        "openai/o1": "o1",
        "anthropic/claude-3.5-sonnet": "claude-3-5-sonnet",
        "anthropic/claude-3.5-haiku": "claude-3-5-haiku",
        "anthropic/claude-3.7-sonnet": "claude-3-7-sonnet",
        "google/gemini-2.0-flash-001": "gemini-2-flash",
        "google/gemini-2.0-pro-exp-02-05": "gemini-2-pro",
        "google/gemini-2.0-flash-thinking-exp-01-21": "gemini-2-flash-thinking",
        "deepseek/deepseek-chat": "deepseek-v3",
        "deepseek/deepseek-r1": "deepseek-r1",
        "meta-llama/llama-3.3-70b-instruct": "llama-3-3-70b",
        "mistralai/mistral-large": "mistral-large",
        "mistralai/mistral-small-24b-instruct-2501": "mistral-small-3",
        "qwen/qwen-2.5-72b-instruct": "qwen-2-5-72b",
        "x-ai/grok-2": "grok-2",
        "x-ai/grok-2-vision": "grok-2-vision",
        "cohere/command-r-plus": "command-r-plus",
        "cohere/command-a": "cohere-command-a",
        "perplexity/sonar": "perplexity-sonar",
        "perplexity/sonar-pro": "perplexity-sonar-pro",
        "microsoft/phi-4": "microsoft-phi-4",
    }
    # Priced by hand; never touched by the updater
    MANUAL_MODELS: list[str] = ["kimi-k2-5", "gpt-4-5"]

    # --- Paths ---
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    DATA_DIR: Path = BASE_DIR / "data"
    PRICES_PATH: Path = DATA_DIR / "prices.json"
    HISTORY_PATH: Path = DATA_DIR / "price-history.json"
    LOGS_DIR: Path = BASE_DIR / "logs"

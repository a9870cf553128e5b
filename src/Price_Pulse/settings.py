"""Dashboard settings with JSON file persistence.

Settings are static for the lifetime of a run: they are loaded once at
startup and passed down explicitly. A missing file means defaults; an
unreadable or invalid file is logged and also falls back to defaults.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Final

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from Price_Pulse.models.portfolio import LotConfig

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_PATH: Final[Path] = Path("data/settings.json")
SETTINGS_PATH_ENV: Final[str] = "PRICE_PULSE_CONFIG"


class AssetSettings(BaseModel):
    """Identifiers of the tracked asset on each provider."""

    model_config = ConfigDict(frozen=True)

    symbol: str = "FIL"
    coinbase_product: str = "FIL-USD"
    kraken_pair: str = "FIL/USD"
    kraken_rest_pair: str = "FILUSD"
    coingecko_id: str = "filecoin"
    decimals: int = Field(default=18, ge=0)


class EndpointSettings(BaseModel):
    """Provider endpoints. Overridable mostly for testing against mirrors."""

    model_config = ConfigDict(frozen=True)

    coinbase_ws: str = "wss://ws-feed.exchange.coinbase.com"
    kraken_ws: str = "wss://ws.kraken.com/"
    coinbase_spot: str = "https://api.coinbase.com/v2/prices/{product}/spot"
    kraken_ticker: str = "https://api.kraken.com/0/public/Ticker"
    coingecko_price: str = "https://api.coingecko.com/api/v3/simple/price"
    coinbase_stats: str = "https://api.exchange.coinbase.com/products/{product}/stats"
    lotus_rpc: list[str] = Field(
        default_factory=lambda: ["https://api.node.glif.io/rpc/v1", "https://api.node.glif.io"]
    )
    filfox_address: str = "https://filfox.info/api/v1/address/{address}"


class DashboardSettings(BaseModel):
    """Everything configurable about a dashboard run.

    Thresholds set to None are disabled.
    """

    model_config = ConfigDict(frozen=True)

    asset: AssetSettings = Field(default_factory=AssetSettings)
    endpoints: EndpointSettings = Field(default_factory=EndpointSettings)

    addresses: list[str] = Field(default_factory=list)
    use_onchain_balance: bool = True
    lots: list[LotConfig] = Field(default_factory=list)

    stop_loss: float | None = 2.00
    take_profit: float | None = 3.50
    alerts_enabled: bool = True
    alert_cooldown_minutes: float = Field(default=60.0, ge=0)
    webhook_url: str | None = None

    preferred_price_source: str = "coinbase"
    buffer_capacity: int = Field(default=600, ge=1)
    poll_interval_seconds: float = Field(default=5.0, gt=0)
    quantity_refresh_seconds: float = Field(default=60.0, gt=0)
    stats_refresh_seconds: float = Field(default=60.0, gt=0)
    render_interval_seconds: float = Field(default=1.0, gt=0)


def resolve_settings_path(path: Path | None = None) -> Path:
    """Return *path*, else ``$PRICE_PULSE_CONFIG``, else the default location."""
    if path is not None:
        return path
    env_path = os.environ.get(SETTINGS_PATH_ENV)
    return Path(env_path) if env_path else DEFAULT_SETTINGS_PATH


def load_settings(path: Path | None = None) -> DashboardSettings:
    """Load settings from the JSON file, falling back to defaults."""
    settings_path = resolve_settings_path(path)
    if not settings_path.exists():
        logger.info("No settings file at %s, using defaults", settings_path)
        return DashboardSettings()
    try:
        settings = DashboardSettings.model_validate_json(
            settings_path.read_text(encoding="utf-8")
        )
    except (ValidationError, OSError) as exc:
        logger.warning("Failed to read settings file %s, using defaults: %s", settings_path, exc)
        return DashboardSettings()
    logger.info("Loaded settings from %s", settings_path)
    return settings


def save_settings(settings: DashboardSettings, path: Path | None = None) -> Path:
    """Persist settings to JSON, creating parent directories if needed."""
    settings_path = resolve_settings_path(path)
    settings_path.parent.mkdir(parents=True, exist_ok=True)
    payload = settings.model_dump(mode="json", by_alias=False)
    settings_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    logger.info("Settings saved to %s", settings_path)
    return settings_path

"""
Configuration for the contract-address sniper.

All secrets are loaded from environment variables (a local .env file
is honoured). Intervals are in seconds; buy caps are in whole units of
the chain's native asset.
"""

import os
from dataclasses import dataclass, field
from dotenv import load_dotenv

load_dotenv()

# Values that failed to parse are recorded here and reported by validate_config()
_ENV_ERRORS: list[str] = []


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        _ENV_ERRORS.append(f"{name} must be a number, got {raw!r}")
        return default


def _env_optional_float(name: str) -> float | None:
    """Unset or empty means no value."""
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        return float(raw)
    except ValueError:
        _ENV_ERRORS.append(f"{name} must be a number, got {raw!r}")
        return None


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        _ENV_ERRORS.append(f"{name} must be an integer, got {raw!r}")
        return default


def _env_bool(*names: str) -> bool:
    for name in names:
        raw = os.getenv(name)
        if raw is not None:
            return raw.strip().lower() in {"1", "true", "yes", "on"}
    return False


def _env_list(name: str, default: str = "") -> tuple[str, ...]:
    raw = os.getenv(name, default)
    return tuple(item.strip().lower() for item in raw.split(",") if item.strip())


# ---------------------------------------------------------------------------
# API Keys: loaded from env vars, never hard-coded
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class APIKeys:
    twitter_bearer_token: str = os.getenv("TWITTER_BEARER_TOKEN", "")


# ---------------------------------------------------------------------------
# Post monitoring
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MonitorConfig:
    target_username: str = os.getenv("TARGET_USERNAME", "elonmusk")
    check_interval: float = _env_float("CHECK_INTERVAL", 30.0)
    fetch_limit: int = _env_int("FETCH_LIMIT", 10)              # most recent posts per tick
    post_pacing_seconds: float = _env_float("POST_PACING_SECONDS", 1.0)
    watch_keywords: tuple[str, ...] = _env_list("WATCH_KEYWORDS")


# ---------------------------------------------------------------------------
# Trading
# ---------------------------------------------------------------------------

SOLANA_VENUES: set[str] = {"pumpfun", "meteora", "raydium"}
BSC_VENUES: set[str] = {"pancakeswap"}


@dataclass(frozen=True)
class TradingConfig:
    auto_execute: bool = _env_bool("AUTO_EXECUTE", "AUTO_BUY_ENABLED")
    solana_private_key: str = os.getenv("SOLANA_PRIVATE_KEY", "")     # base58 secret key
    bsc_private_key: str = os.getenv("BSC_PRIVATE_KEY", "")           # hex private key
    solana_rpc_url: str = os.getenv("SOLANA_RPC_URL", "https://api.mainnet-beta.solana.com")
    bsc_rpc_url: str = os.getenv("BSC_RPC_URL", "https://bsc-dataseed.binance.org/")
    # Optional per-buy caps; unset means spend the whole-unit balance
    max_buy_amount_sol: float | None = _env_optional_float("MAX_BUY_AMOUNT_SOL")
    max_buy_amount_bnb: float | None = _env_optional_float("MAX_BUY_AMOUNT_BNB")
    slippage_bps: int = _env_int("SLIPPAGE_BPS", 500)                 # memecoins move fast
    priority_fee_sol: float = _env_float("PRIORITY_FEE_SOL", 0.00005)
    execution_pacing_seconds: float = _env_float("EXECUTION_PACING_SECONDS", 2.0)
    # Venue priority per (chain, direction); order is tried left to right
    solana_buy_venues: tuple[str, ...] = _env_list("SOLANA_BUY_VENUES", "pumpfun,meteora,raydium")
    solana_sell_venues: tuple[str, ...] = _env_list("SOLANA_SELL_VENUES", "meteora,raydium,pumpfun")
    bsc_buy_venues: tuple[str, ...] = _env_list("BSC_BUY_VENUES", "pancakeswap")
    bsc_sell_venues: tuple[str, ...] = _env_list("BSC_SELL_VENUES", "pancakeswap")


# ---------------------------------------------------------------------------
# Position tracking
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TrackerConfig:
    interval: float = _env_float("TRACKER_INTERVAL", 1.0)
    quote_amount_native: float = 0.1        # probe size used to derive a unit price


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class WebhookConfig:
    url: str = os.getenv("WEBHOOK_URL", "")
    timeout: float = _env_float("WEBHOOK_TIMEOUT", 10.0)


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StorageConfig:
    alert_log_path: str = os.getenv("ALERT_LOG_PATH", "data/alerts.jsonl")


# ---------------------------------------------------------------------------
# Rate Limiting
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RateLimitConfig:
    twitter_requests_per_15min: int = 900
    jupiter_requests_per_minute: int = 60
    http_timeout: float = 30.0


# ---------------------------------------------------------------------------
# Master Config: single import point
# ---------------------------------------------------------------------------

@dataclass
class Config:
    api_keys: APIKeys = field(default_factory=APIKeys)
    monitor: MonitorConfig = field(default_factory=MonitorConfig)
    trading: TradingConfig = field(default_factory=TradingConfig)
    tracker: TrackerConfig = field(default_factory=TrackerConfig)
    webhook: WebhookConfig = field(default_factory=WebhookConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)


class ConfigError(Exception):
    """Raised when the configuration cannot be used to start the monitor."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("; ".join(errors))


def validate_config(cfg: "Config") -> list[str]:
    """Return every configuration problem found; an empty list means valid."""
    errors = list(_ENV_ERRORS)

    if not cfg.api_keys.twitter_bearer_token:
        errors.append("TWITTER_BEARER_TOKEN is required")
    if not cfg.monitor.target_username:
        errors.append("TARGET_USERNAME is required")
    if cfg.monitor.check_interval <= 0:
        errors.append("CHECK_INTERVAL must be positive")
    if cfg.monitor.fetch_limit < 1:
        errors.append("FETCH_LIMIT must be at least 1")
    if cfg.tracker.interval <= 0:
        errors.append("TRACKER_INTERVAL must be positive")

    trading = cfg.trading
    if trading.auto_execute:
        if not trading.solana_private_key and not trading.bsc_private_key:
            errors.append(
                "SOLANA_PRIVATE_KEY or BSC_PRIVATE_KEY is required when auto-execute is enabled"
            )
        venue_lists = {
            "SOLANA_BUY_VENUES": (trading.solana_buy_venues, SOLANA_VENUES),
            "SOLANA_SELL_VENUES": (trading.solana_sell_venues, SOLANA_VENUES),
            "BSC_BUY_VENUES": (trading.bsc_buy_venues, BSC_VENUES),
            "BSC_SELL_VENUES": (trading.bsc_sell_venues, BSC_VENUES),
        }
        for env_name, (names, known) in venue_lists.items():
            unknown = [n for n in names if n not in known]
            if unknown:
                errors.append(f"{env_name} has unknown venues: {', '.join(unknown)}")
        if not 0 <= trading.slippage_bps <= 10_000:
            errors.append("SLIPPAGE_BPS must be between 0 and 10000")

    return errors


def check_config(cfg: "Config") -> None:
    """Raise ConfigError listing every problem if `cfg` cannot start the monitor."""
    errors = validate_config(cfg)
    if errors:
        raise ConfigError(errors)


# Global config instance
config = Config()

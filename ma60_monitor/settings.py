"""
Centralized settings loading for the MA60 crossing monitor.

- Single source of truth for environment variables
- Loads the project root .env once (cloud deployments may set vars directly)
- Validates the webhook endpoint and schedule at start-up

Usage:
    from ma60_monitor.settings import load_settings

    settings = load_settings()
    client = BinanceClient(settings.binance_api_key, settings.binance_secret_key)
"""

import logging
import os
from dataclasses import dataclass
from datetime import time
from pathlib import Path
from typing import Optional

import pytz
from dotenv import load_dotenv

from ma60_monitor import config
from ma60_monitor.exceptions import ConfigError

logger = logging.getLogger(__name__)

# Flag to track if .env has been loaded
_ENV_LOADED = False


@dataclass(frozen=True)
class MonitorSettings:
    """Resolved runtime settings."""

    dingtalk_webhook_url: str
    binance_api_key: Optional[str] = None
    binance_secret_key: Optional[str] = None
    dingtalk_secret: Optional[str] = None
    state_file: str = config.DEFAULT_STATE_FILE
    run_time: time = time(8, 0)
    timezone: str = config.DEFAULT_TIMEZONE
    request_timeout: float = config.REQUEST_TIMEOUT_SECONDS
    log_level: str = "INFO"

    @property
    def has_binance_credentials(self) -> bool:
        return bool(self.binance_api_key and self.binance_secret_key)


def load_env(env_path: Optional[Path] = None, force_reload: bool = False) -> None:
    """
    Load environment variables from a .env file.

    Missing .env is not an error: containers and systemd units usually
    inject variables directly.

    Args:
        env_path: Explicit .env path (default: project root .env)
        force_reload: If True, reload even if already loaded
    """
    global _ENV_LOADED

    if _ENV_LOADED and not force_reload:
        return

    if env_path is None:
        env_path = Path(__file__).parent.parent / ".env"

    if Path(env_path).exists():
        load_dotenv(env_path, override=False)
        logger.debug(f"Loaded environment from {env_path}")
    else:
        logger.debug(f"No .env file at {env_path}, using process environment")

    _ENV_LOADED = True


def parse_run_time(value: str) -> time:
    """
    Parse a HH:MM wall-clock time.

    Raises:
        ConfigError: If the value is not a valid HH:MM time
    """
    parts = value.strip().split(":")
    if len(parts) != 2:
        raise ConfigError(f"Invalid run time '{value}', expected HH:MM")
    try:
        return time(int(parts[0]), int(parts[1]))
    except ValueError as e:
        raise ConfigError(f"Invalid run time '{value}': {e}") from e


def _get_env(name: str) -> Optional[str]:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return None
    return value.strip()


def load_settings(env_path: Optional[Path] = None) -> MonitorSettings:
    """
    Build MonitorSettings from the environment.

    Args:
        env_path: Optional explicit .env path

    Returns:
        MonitorSettings

    Raises:
        ConfigError: If DINGTALK_WEBHOOK_URL is missing or not a DingTalk robot
            URL, or another value is invalid
    """
    load_env(env_path)

    webhook_url = _get_env("DINGTALK_WEBHOOK_URL")
    if not webhook_url:
        raise ConfigError(
            "DINGTALK_WEBHOOK_URL is not set. Add it to .env or the environment."
        )
    if not webhook_url.startswith(config.DINGTALK_WEBHOOK_PREFIX):
        raise ConfigError(
            f"DINGTALK_WEBHOOK_URL must start with {config.DINGTALK_WEBHOOK_PREFIX}"
        )

    api_key = _get_env("BINANCE_API_KEY")
    secret_key = _get_env("BINANCE_SECRET_KEY")
    if not api_key or not secret_key:
        logger.warning(
            "Binance API credentials not found. Using public market data endpoints."
        )

    timezone = _get_env("MA60_TIMEZONE") or config.DEFAULT_TIMEZONE
    try:
        pytz.timezone(timezone)
    except pytz.UnknownTimeZoneError as e:
        raise ConfigError(f"Unknown timezone '{timezone}'") from e

    timeout_raw = _get_env("MA60_REQUEST_TIMEOUT")
    try:
        request_timeout = (
            float(timeout_raw) if timeout_raw else config.REQUEST_TIMEOUT_SECONDS
        )
    except ValueError as e:
        raise ConfigError(f"Invalid MA60_REQUEST_TIMEOUT '{timeout_raw}'") from e
    if request_timeout <= 0:
        raise ConfigError("MA60_REQUEST_TIMEOUT must be positive")

    return MonitorSettings(
        dingtalk_webhook_url=webhook_url,
        binance_api_key=api_key,
        binance_secret_key=secret_key,
        dingtalk_secret=_get_env("DINGTALK_SECRET"),
        state_file=_get_env("MA60_STATE_FILE") or config.DEFAULT_STATE_FILE,
        run_time=parse_run_time(_get_env("MA60_RUN_TIME") or config.DEFAULT_RUN_TIME),
        timezone=timezone,
        request_timeout=request_timeout,
        log_level=(_get_env("MA60_LOG_LEVEL") or "INFO").upper(),
    )

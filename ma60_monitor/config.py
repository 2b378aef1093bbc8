"""
Configuration for the MA60 crossing monitor.

Defines exchange endpoints, symbol filters, moving-average parameters,
scheduling defaults and webhook limits.
"""

from typing import Dict

# =============================================================================
# EXCHANGE CONFIGURATION
# =============================================================================

# Public REST API (no auth required for klines / exchangeInfo)
BINANCE_PUBLIC_API: str = "https://api.binance.com"

# Symbol filter applied to exchangeInfo
QUOTE_ASSET: str = "USDT"
TRADING_STATUS: str = "TRADING"

# Daily candles only
KLINE_INTERVAL: str = "1d"

# Per-request timeout so one unresponsive symbol cannot stall the batch
REQUEST_TIMEOUT_SECONDS: float = 10.0

# =============================================================================
# MOVING AVERAGE
# =============================================================================

# MA60 is the mean of the 60 closes preceding the latest candle
MA_PERIOD: int = 60

# Candles requested per symbol: MA window + the latest candle
CANDLE_LOOKBACK: int = MA_PERIOD + 1

# =============================================================================
# STATE
# =============================================================================

DEFAULT_STATE_FILE: str = "state.json"

# =============================================================================
# SCHEDULING
# =============================================================================

# 08:00 Asia/Shanghai == 00:00 UTC, when Binance daily candles roll over
DEFAULT_RUN_TIME: str = "08:00"
DEFAULT_TIMEZONE: str = "Asia/Shanghai"

# Seconds a missed daily run may still fire late
MISFIRE_GRACE_SECONDS: int = 3600

# =============================================================================
# WEBHOOK (DingTalk custom robot)
# =============================================================================

DINGTALK_WEBHOOK_PREFIX: str = "https://oapi.dingtalk.com/robot/send"

# DingTalk: 20 messages per minute per robot
DINGTALK_RATE_LIMIT_WINDOW: int = 60
DINGTALK_RATE_LIMIT_MAX: int = 18

REPORT_TITLE: str = "MA60 Crossing Monitor"

# Section titles, in the order they are rendered
REPORT_SECTIONS: Dict[str, str] = {
    "daily_breakouts": "🚀 Daily Breakouts (MA60)",
    "daily_breakdowns": "🚨 Daily Breakdowns (MA60)",
    "tracked_gains": "📈 Tracked Breakouts",
    "tracked_losses": "📉 Tracked Breakdowns",
}

EMPTY_SECTION_PLACEHOLDER: str = "None"

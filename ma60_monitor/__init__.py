"""
MA60 crossing monitor for Binance USDT spot pairs.

Scans every tradable USDT pair once a day, detects closes crossing the
60-day simple moving average, follows earlier crossings and posts a
four-section report to a DingTalk robot.

Modules:
- exchange: Binance market-data client (daily candles, symbol listing)
- data: Crossing state model and JSON snapshot store
- scanning: Crossing analyzer, daily scheduler and daemon
- alerters: Report formatting and DingTalk webhook delivery
"""

__version__ = "0.1.0"

# Convenience imports for common usage
from ma60_monitor.data.state import (
    CrossingState,
    CrossingStatus,
    StateStore,
    TrackedAsset,
)
from ma60_monitor.scanning.analyzer import (
    CrossingKind,
    CrossingReport,
    CrossingResult,
    MA60CrossingAnalyzer,
    classify_crossing,
)
from ma60_monitor.scanning.daemon import MA60DaemonConfig, MA60MonitorDaemon

__all__ = [
    # State
    "CrossingState",
    "CrossingStatus",
    "StateStore",
    "TrackedAsset",
    # Analyzer
    "CrossingKind",
    "CrossingReport",
    "CrossingResult",
    "MA60CrossingAnalyzer",
    "classify_crossing",
    # Daemon
    "MA60DaemonConfig",
    "MA60MonitorDaemon",
]

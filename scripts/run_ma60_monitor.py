#!/usr/bin/env python
"""
MA60 Crossing Monitor - Command Line Entry Point

Start the daily MA60 crossing monitor for Binance USDT spot pairs.

Usage:
    # Start daemon (one pass now, then daily at MA60_RUN_TIME)
    python scripts/run_ma60_monitor.py

    # Single pass, e.g. from cron or a systemd timer
    python scripts/run_ma60_monitor.py --once

    # Custom state file and log file
    python scripts/run_ma60_monitor.py --state-file data/state.json --log-file logs/ma60.log

Environment Variables:
    DINGTALK_WEBHOOK_URL: DingTalk robot webhook (required)
    DINGTALK_SECRET: DingTalk robot signing secret (optional)
    BINANCE_API_KEY: Binance API key (optional, public API otherwise)
    BINANCE_SECRET_KEY: Binance secret key (optional)
    MA60_STATE_FILE: State snapshot path (default: state.json)
    MA60_RUN_TIME: Daily run time HH:MM (default: 08:00)
    MA60_TIMEZONE: Timezone for MA60_RUN_TIME (default: Asia/Shanghai)
    MA60_REQUEST_TIMEOUT: Exchange request timeout in seconds (default: 10)
    MA60_LOG_LEVEL: Log level (default: INFO)
"""

import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from ma60_monitor.cli import main


if __name__ == '__main__':
    sys.exit(main())

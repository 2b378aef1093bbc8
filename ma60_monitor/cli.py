"""
Command line entry point for the MA60 crossing monitor.

Starts the daemon: one immediate pass, then one pass per day at the
configured time. Flags override the environment settings.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from ma60_monitor.exceptions import ConfigError
from ma60_monitor.settings import load_settings, parse_run_time

logger = logging.getLogger(__name__)


def setup_logging(level: str = 'INFO', log_file: Optional[str] = None) -> None:
    """Configure logging for the daemon."""
    handlers = [logging.StreamHandler()]

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding='utf-8'))

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s | %(levelname)s | %(name)s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
        handlers=handlers,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='ma60-monitor',
        description='Daily MA60 crossing monitor for Binance USDT pairs',
    )
    parser.add_argument('--once', action='store_true',
                        help='Run a single pass and exit')
    parser.add_argument('--no-startup-run', action='store_true',
                        help='Skip the immediate pass at start-up')
    parser.add_argument('--state-file', help='State snapshot path')
    parser.add_argument('--run-time', help='Daily run time HH:MM')
    parser.add_argument('--timezone', help='Timezone for the daily run time')
    parser.add_argument('--env-file', help='Path to .env file')
    parser.add_argument('--log-level', help='Log level (default: INFO)')
    parser.add_argument('--log-file', help='Also log to this file')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Run the monitor. Returns the process exit code."""
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings(Path(args.env_file) if args.env_file else None)
        run_time = parse_run_time(args.run_time) if args.run_time else settings.run_time
    except ConfigError as e:
        setup_logging(args.log_level or 'INFO', args.log_file)
        logger.error(f"Configuration error: {e}")
        return 1

    setup_logging(args.log_level or settings.log_level, args.log_file)

    from ma60_monitor.scanning.daemon import MA60DaemonConfig, MA60MonitorDaemon

    daemon_config = MA60DaemonConfig(
        state_file=args.state_file or settings.state_file,
        run_time=run_time,
        timezone=args.timezone or settings.timezone,
        run_on_startup=not args.no_startup_run,
        binance_api_key=settings.binance_api_key,
        binance_secret_key=settings.binance_secret_key,
        request_timeout=settings.request_timeout,
        dingtalk_webhook_url=settings.dingtalk_webhook_url,
        dingtalk_secret=settings.dingtalk_secret,
    )

    logger.info(
        f"Configuration: state={daemon_config.state_file} "
        f"run_time={daemon_config.run_time.strftime('%H:%M')} {daemon_config.timezone} "
        f"binance_auth={'yes' if settings.has_binance_credentials else 'no'}"
    )

    try:
        daemon = MA60MonitorDaemon(config=daemon_config)
    except Exception as e:
        logger.error(f"Failed to start monitor: {e}")
        return 1

    if args.once:
        report = daemon.run_check()
        return 0 if report is not None else 1

    daemon.start(block=True)
    return 0


if __name__ == '__main__':
    sys.exit(main())
